"""Share models: token links, user grants and email invitations.

``ShareLink`` is the only one that gates access. ``UserShare`` and
``EmailShare`` are point-in-time grant records kept for auditing.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from filegate.models.permissions import Capability


class ShareLink(SQLModel):
    """Token-bearing link to one file, optionally bounded by time, uses and a password."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    file_id: str = Field(index=True)
    token: str = Field(index=True, unique=True)
    created_by: str
    capabilities: frozenset[Capability] = Field(default_factory=frozenset)
    expires_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),
    )
    password_hash: str | None = Field(default=None, repr=False)
    max_uses: int | None = Field(default=None, gt=0)
    use_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )

    @property
    def is_password_protected(self) -> bool:
        return self.password_hash is not None

    def is_expired(self, now: datetime) -> bool:
        if self.expires_at is None:
            return False
        exp = self.expires_at
        if exp.tzinfo is None:
            exp = exp.replace(tzinfo=UTC)
        return now > exp

    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.use_count >= self.max_uses


class UserShare(SQLModel):
    """Record of a file shared directly with another user."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    file_id: str = Field(index=True)
    shared_by: str
    shared_with_user_id: str = Field(index=True)
    capabilities: frozenset[Capability] = Field(default_factory=frozenset)
    message: str = Field(default="")
    expires_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )


class EmailShare(SQLModel):
    """Invitation to an email address; ``is_accepted`` starts False."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    file_id: str = Field(index=True)
    shared_by: str
    email: str = Field(index=True)
    capabilities: frozenset[Capability] = Field(default_factory=frozenset)
    message: str = Field(default="")
    expires_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),
    )
    is_accepted: bool = Field(default=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
