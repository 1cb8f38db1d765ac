"""ActivityEntry model: append-only audit record of a domain event."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class ActivityType(str, Enum):
    """Kinds of project events written to the activity log."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    COMMENTED = "commented"
    FILE_ADDED = "file_added"
    FILE_UPDATED = "file_updated"
    FILE_DELETED = "file_deleted"
    FILE_MOVED = "file_moved"
    FILE_DOWNLOADED = "file_downloaded"
    FILE_SHARED = "file_shared"
    FILE_PERMISSION_UPDATED = "file_permission_updated"
    TAG_ADDED = "tag_added"
    TAG_REMOVED = "tag_removed"


class ActivityEntry(SQLModel):
    """One event in a project's activity log.

    ``sequence`` is assigned by the store at append time and breaks
    timestamp ties in insertion order.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    project_id: str = Field(index=True)
    user_id: str
    activity_type: ActivityType
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
    details: dict[str, Any] = Field(default_factory=dict)
    sequence: int = Field(default=0)
