"""SizeLimitRule model: an override ceiling for some file types/formats."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from filegate.storage.formats import FileFormat, FileType


class SizeLimitRule(SQLModel):
    """Maximum upload size for the listed types and/or formats.

    A rule with neither set would be the global limit, which is kept
    separately by the size policy.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    max_bytes: int = Field(gt=0)
    affected_types: frozenset[FileType] = Field(default_factory=frozenset)
    affected_formats: frozenset[FileFormat] = Field(default_factory=frozenset)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )

    def applies_to(self, file_type: FileType | None, file_format: FileFormat | None) -> bool:
        # Either side matching is enough, even when both sets are configured.
        type_matches = file_type is not None and file_type in self.affected_types
        format_matches = file_format is not None and file_format in self.affected_formats
        return type_matches or format_matches
