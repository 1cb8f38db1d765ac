"""Capability enum and the per-file, per-user PermissionRecord."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class Capability(str, Enum):
    """What a user may do to a file. ``FULL_ACCESS`` implies every other one."""

    VIEW = "view"
    DOWNLOAD = "download"
    EDIT = "edit"
    DELETE = "delete"
    SHARE = "share"
    FULL_ACCESS = "full_access"


ALL_CAPABILITIES: frozenset[Capability] = frozenset(Capability)


class PermissionRecord(SQLModel):
    """Capability set held by ``user_id`` on ``file_id``.

    At most one record exists per (file_id, user_id); setting a new one
    replaces the old set outright.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    file_id: str = Field(index=True)
    user_id: str = Field(index=True)
    capabilities: frozenset[Capability] = Field(default_factory=frozenset)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )

    def grants(self, capability: Capability) -> bool:
        return Capability.FULL_ACCESS in self.capabilities or capability in self.capabilities
