"""Result types: ShareLinkView, RedeemResult, FileDownload, etc."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from filegate.models.files import FileRecord
    from filegate.models.permissions import Capability, PermissionRecord
    from filegate.storage.formats import FileFormat, FileType


@dataclass(frozen=True)
class ShareLinkView:
    """Public view of an issued share link. Never carries the password hash."""

    id: str
    url: str
    capabilities: frozenset[Capability]
    expires_at: datetime | None
    is_password_protected: bool
    max_uses: int | None
    use_count: int
    created_at: datetime


@dataclass(frozen=True)
class SharedFileInfo:
    """File metadata disclosed through a share link."""

    id: str
    name: str
    file_type: FileType
    file_format: FileFormat
    size_bytes: int
    description: str
    uploaded_at: datetime

    @classmethod
    def from_record(cls, record: FileRecord) -> SharedFileInfo:
        return cls(
            id=record.id,
            name=record.name,
            file_type=record.file_type,
            file_format=record.file_format,
            size_bytes=record.size_bytes,
            description=record.description,
            uploaded_at=record.uploaded_at,
        )


@dataclass(frozen=True)
class RedeemResult:
    """Outcome of a successful share-link redemption.

    ``content`` is set only when the link grants download.
    """

    file: SharedFileInfo
    capabilities: frozenset[Capability]
    use_count: int
    content: bytes | None = None

    @property
    def has_content(self) -> bool:
        return self.content is not None


@dataclass(frozen=True)
class FileDownload:
    """File bytes plus the metadata a downloader needs."""

    name: str
    file_type: FileType
    file_format: FileFormat
    size_bytes: int
    content: bytes


@dataclass
class FilePermissionsView:
    """Permission records visible to the requesting user.

    ``complete`` is True when the requester may see every record on the
    file, False when only their own record is included.
    """

    file_id: str
    complete: bool
    permissions: list[PermissionRecord] = field(default_factory=list)
