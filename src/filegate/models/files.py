"""FileRecord model: metadata for one uploaded file.

The bytes live in storage; access-control components refer to a file
by ``id`` only.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from filegate.storage.formats import FileFormat, FileType


class FileRecord(SQLModel):
    """Uploaded file metadata. ``uploaded_by`` is the owner."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    project_id: str = Field(index=True)
    name: str
    path: str
    file_type: FileType = Field(default=FileType.OTHER)
    file_format: FileFormat = Field(default=FileFormat.OTHER)
    size_bytes: int = Field(default=0, ge=0)
    description: str = Field(default="")
    uploaded_by: str = Field(index=True)
    is_shared: bool = Field(default=False)
    uploaded_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
