"""SQLModel record models for filegate."""

from filegate.models.activity import ActivityEntry, ActivityType
from filegate.models.files import FileRecord
from filegate.models.limits import SizeLimitRule
from filegate.models.permissions import ALL_CAPABILITIES, Capability, PermissionRecord
from filegate.models.shares import EmailShare, ShareLink, UserShare

__all__ = [
    "ALL_CAPABILITIES",
    "ActivityEntry",
    "ActivityType",
    "Capability",
    "EmailShare",
    "FileRecord",
    "PermissionRecord",
    "ShareLink",
    "SizeLimitRule",
    "UserShare",
]
