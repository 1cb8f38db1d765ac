"""FileGateAsync: primary async class wiring the access-control components."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from filegate.access.activity import ActivityRecorder
from filegate.access.permissions import PermissionRegistry, to_capabilities
from filegate.access.sharing import SharingService
from filegate.access.size_policy import SizePolicy
from filegate.config import Settings, get_settings
from filegate.exceptions import FileGateError, NotFoundError
from filegate.models.activity import ActivityType
from filegate.models.files import FileRecord
from filegate.models.permissions import ALL_CAPABILITIES, Capability
from filegate.storage.formats import FileFormat, FileType, detect_format
from filegate.storage.local_disk import LocalDiskStorage
from filegate.store import MemoryStore
from filegate.types import FileDownload, FilePermissionsView

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from pathlib import Path

    from filegate.access.passwords import PasswordHasher
    from filegate.models.activity import ActivityEntry
    from filegate.models.limits import SizeLimitRule
    from filegate.models.permissions import PermissionRecord
    from filegate.models.shares import EmailShare, UserShare
    from filegate.types import RedeemResult, ShareLinkView

logger = logging.getLogger(__name__)


class FileGateAsync:
    """Async facade over size policy, storage, permissions, sharing and activity.

    Every component shares one :class:`MemoryStore`. Pass your own store
    (or settings, storage, hasher, clock) to control them; otherwise they
    are built from :func:`get_settings`.

    Usage::

        async with FileGateAsync(upload_dir="/srv/uploads") as gate:
            record = await gate.upload_file(
                "proj-1", "alice", "report.pdf", data, file_type=FileType.DOCUMENT
            )
            link = await gate.issue_share_link(
                record.id, "alice", [Capability.DOWNLOAD], max_uses=1
            )
            result = await gate.redeem_share_link(link.url.rsplit("/", 1)[-1])
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        upload_dir: str | Path | None = None,
        store: MemoryStore | None = None,
        storage: LocalDiskStorage | None = None,
        hasher: PasswordHasher | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._closed = False

        self._store = store or MemoryStore(
            global_max_file_size=self._settings.global_max_file_size
        )
        self._storage = storage or LocalDiskStorage(upload_dir or self._settings.upload_dir)

        self._size_policy = SizePolicy(self._store)
        self._permissions = PermissionRegistry(self._store)
        self._activity = ActivityRecorder(self._store, clock=self._clock)
        self._sharing = SharingService(
            self._store,
            self._permissions,
            self._storage,
            settings=self._settings,
            hasher=hasher,
            clock=self._clock,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise FileGateError("FileGate is closed")

    def _get_file(self, file_id: str) -> FileRecord:
        record = self._store.files.get(file_id)
        if record is None:
            raise NotFoundError("File not found")
        return record

    # ------------------------------------------------------------------
    # Size policy
    # ------------------------------------------------------------------

    def evaluate_upload_size(
        self,
        size_bytes: int,
        file_type: FileType | None = None,
        file_format: FileFormat | None = None,
    ) -> None:
        """Raise :class:`SizeLimitExceededError` if the upload is too large."""
        self._check_open()
        self._size_policy.evaluate(size_bytes, file_type, file_format)

    def update_size_limit(
        self,
        max_bytes: int,
        affected_types: Iterable[FileType] | None = None,
        affected_formats: Iterable[FileFormat] | None = None,
    ) -> SizeLimitRule | None:
        self._check_open()
        return self._size_policy.upsert_limit(max_bytes, affected_types, affected_formats)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def upload_file(
        self,
        project_id: str,
        user_id: str,
        name: str,
        content: bytes,
        *,
        file_type: FileType = FileType.OTHER,
        file_format: FileFormat | None = None,
        description: str = "",
    ) -> FileRecord:
        """Store *content* as a new file in *project_id* owned by *user_id*.

        The size policy runs before any bytes are written. The uploader is
        given every capability and a ``file_added`` activity is recorded.
        """
        self._check_open()
        file_type = FileType(file_type)
        file_format = FileFormat(file_format) if file_format else detect_format(name)
        size = len(content)

        self._size_policy.evaluate(size, file_type, file_format)
        path = await self._storage.store(name, content)

        now = self._clock()
        record = FileRecord(
            project_id=project_id,
            name=name,
            path=path,
            file_type=file_type,
            file_format=file_format,
            size_bytes=size,
            description=description,
            uploaded_by=user_id,
            uploaded_at=now,
            updated_at=now,
        )
        self._store.files.add(record.id, record)
        self._permissions.set_permissions(record.id, user_id, ALL_CAPABILITIES)

        self._activity.record(
            project_id,
            user_id,
            ActivityType.FILE_ADDED,
            {
                "file_id": record.id,
                "file_name": record.name,
                "file_type": file_type.value,
                "file_format": file_format.value,
                "file_size": size,
            },
        )
        logger.info("Uploaded %s (%d bytes) to project %s", record.id, size, project_id)
        return record

    def get_file(self, file_id: str) -> FileRecord:
        self._check_open()
        return self._get_file(file_id)

    async def download_file(self, file_id: str, user_id: str) -> FileDownload:
        """Return the file's bytes. Requires ``DOWNLOAD``."""
        self._check_open()
        record = self._get_file(file_id)
        self._permissions.require_capability(file_id, user_id, Capability.DOWNLOAD)

        content = await self._storage.retrieve(record.path)
        self._activity.record(
            record.project_id,
            user_id,
            ActivityType.FILE_DOWNLOADED,
            {"file_id": record.id, "file_name": record.name},
        )
        return FileDownload(
            name=record.name,
            file_type=record.file_type,
            file_format=record.file_format,
            size_bytes=record.size_bytes,
            content=content,
        )

    async def delete_file(self, file_id: str, user_id: str) -> FileRecord:
        """Delete the file record, its bytes and its permissions. Requires ``DELETE``.

        If the bytes cannot be removed, :class:`StorageError` is raised and
        the record, its permissions and the activity log are unchanged.
        Share links to the file stay on record but can no longer be redeemed.
        """
        self._check_open()
        record = self._get_file(file_id)
        self._permissions.require_capability(file_id, user_id, Capability.DELETE)

        await self._storage.remove(record.path)
        self._store.files.pop(file_id)
        self._permissions.revoke_all(file_id)

        self._activity.record(
            record.project_id,
            user_id,
            ActivityType.FILE_DELETED,
            {
                "file_id": record.id,
                "file_name": record.name,
                "file_type": record.file_type.value,
            },
        )
        return record

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def set_file_permissions(
        self,
        file_id: str,
        user_id: str,
        capabilities: Iterable[Capability | str],
    ) -> PermissionRecord:
        """Replace *user_id*'s capabilities on *file_id*. No acting-user check."""
        self._check_open()
        return self._permissions.set_permissions(file_id, user_id, capabilities)

    def has_capability(self, file_id: str, user_id: str, capability: Capability | str) -> bool:
        self._check_open()
        return self._permissions.has_capability(file_id, user_id, capability)

    def require_capability(
        self, file_id: str, user_id: str, capability: Capability | str
    ) -> None:
        self._check_open()
        self._permissions.require_capability(file_id, user_id, capability)

    def get_file_permissions(self, file_id: str, user_id: str) -> FilePermissionsView:
        """Permission records *user_id* may see on *file_id*.

        Requires ``VIEW``. Holders of ``SHARE`` see every record; everyone
        else sees only their own.
        """
        self._check_open()
        self._get_file(file_id)
        self._permissions.require_capability(file_id, user_id, Capability.VIEW)

        if self._permissions.has_capability(file_id, user_id, Capability.SHARE):
            return FilePermissionsView(
                file_id=file_id,
                complete=True,
                permissions=self._permissions.list_permissions(file_id),
            )
        own = self._permissions.get_permissions(file_id, user_id)
        return FilePermissionsView(
            file_id=file_id,
            complete=False,
            permissions=[own] if own is not None else [],
        )

    def update_file_permissions(
        self,
        file_id: str,
        acting_user_id: str,
        user_permissions: Mapping[str, Iterable[Capability | str]],
    ) -> list[PermissionRecord]:
        """Replace capabilities for several users at once. Requires ``SHARE``."""
        self._check_open()
        record = self._get_file(file_id)
        self._permissions.require_capability(file_id, acting_user_id, Capability.SHARE)

        parsed = {user: to_capabilities(caps) for user, caps in user_permissions.items()}
        updated = [
            self._permissions.set_permissions(file_id, user, caps)
            for user, caps in parsed.items()
        ]
        self._activity.record(
            record.project_id,
            acting_user_id,
            ActivityType.FILE_PERMISSION_UPDATED,
            {
                "file_id": file_id,
                "file_name": record.name,
                "updated_permissions": {
                    user: sorted(c.value for c in caps) for user, caps in parsed.items()
                },
            },
        )
        return updated

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    def share_with_user(
        self,
        file_id: str,
        shared_by: str,
        user_id: str,
        capabilities: Iterable[Capability | str],
        *,
        message: str = "",
        expires_at: datetime | None = None,
    ) -> UserShare:
        self._check_open()
        share = self._sharing.share_with_user(
            file_id,
            shared_by,
            user_id,
            capabilities,
            message=message,
            expires_at=expires_at,
        )
        record = self._get_file(file_id)
        self._activity.record(
            record.project_id,
            shared_by,
            ActivityType.FILE_SHARED,
            {
                "file_id": file_id,
                "file_name": record.name,
                "shared_with_user_id": user_id,
                "permissions": sorted(c.value for c in share.capabilities),
            },
        )
        return share

    def share_with_email(
        self,
        file_id: str,
        shared_by: str,
        email: str,
        capabilities: Iterable[Capability | str],
        *,
        message: str = "",
        expires_at: datetime | None = None,
    ) -> EmailShare:
        self._check_open()
        share = self._sharing.share_with_email(
            file_id,
            shared_by,
            email,
            capabilities,
            message=message,
            expires_at=expires_at,
        )
        record = self._get_file(file_id)
        self._activity.record(
            record.project_id,
            shared_by,
            ActivityType.FILE_SHARED,
            {
                "file_id": file_id,
                "file_name": record.name,
                "shared_with_email": share.email,
                "permissions": sorted(c.value for c in share.capabilities),
            },
        )
        return share

    async def issue_share_link(
        self,
        file_id: str,
        issuer_id: str,
        capabilities: Iterable[Capability | str],
        *,
        expires_at: datetime | None = None,
        password: str | None = None,
        max_uses: int | None = None,
    ) -> ShareLinkView:
        self._check_open()
        view = await self._sharing.issue(
            file_id,
            issuer_id,
            capabilities,
            expires_at=expires_at,
            password=password,
            max_uses=max_uses,
        )
        record = self._get_file(file_id)
        self._activity.record(
            record.project_id,
            issuer_id,
            ActivityType.FILE_SHARED,
            {
                "file_id": file_id,
                "file_name": record.name,
                "share_link": True,
                "permissions": sorted(c.value for c in view.capabilities),
            },
        )
        return view

    async def redeem_share_link(self, token: str, password: str | None = None) -> RedeemResult:
        self._check_open()
        return await self._sharing.redeem(token, password)

    def list_share_links(self, file_id: str) -> list[ShareLinkView]:
        self._check_open()
        return self._sharing.list_links(file_id)

    # ------------------------------------------------------------------
    # Activity
    # ------------------------------------------------------------------

    def record_activity(
        self,
        project_id: str,
        user_id: str,
        activity_type: ActivityType | str,
        details: Mapping[str, Any] | None = None,
    ) -> ActivityEntry:
        self._check_open()
        return self._activity.record(project_id, user_id, activity_type, details)

    def query_activity(self, project_id: str, limit: int | None = None) -> list[ActivityEntry]:
        self._check_open()
        return self._activity.query(project_id, limit)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        self._closed = True

    async def __aenter__(self) -> FileGateAsync:
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def store(self) -> MemoryStore:
        return self._store

    @property
    def storage(self) -> LocalDiskStorage:
        return self._storage

    @property
    def permissions(self) -> PermissionRegistry:
        return self._permissions

    @property
    def sharing(self) -> SharingService:
        return self._sharing

    @property
    def size_policy(self) -> SizePolicy:
        return self._size_policy

    @property
    def activity(self) -> ActivityRecorder:
        return self._activity
