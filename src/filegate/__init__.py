"""filegate: file access control and sharing.

Capability checks, share links, upload size policy and an activity log
for files stored on local disk.
"""

__version__ = "0.1.0"

from filegate._filegate import FileGate
from filegate._filegate_async import FileGateAsync
from filegate.access import (
    ActivityRecorder,
    PasslibHasher,
    PasswordHasher,
    PermissionRegistry,
    SharingService,
    SizePolicy,
)
from filegate.config import Settings, get_settings
from filegate.exceptions import (
    BadRequestError,
    ConflictError,
    FileGateError,
    ForbiddenError,
    NotFoundError,
    ShareLinkExhaustedError,
    ShareLinkExpiredError,
    SizeLimitExceededError,
    StorageError,
    UnauthorizedError,
)
from filegate.models import (
    ActivityEntry,
    ActivityType,
    Capability,
    EmailShare,
    FileRecord,
    PermissionRecord,
    ShareLink,
    SizeLimitRule,
    UserShare,
)
from filegate.storage import FileFormat, FileType, LocalDiskStorage, detect_format
from filegate.store import MemoryStore
from filegate.types import (
    FileDownload,
    FilePermissionsView,
    RedeemResult,
    SharedFileInfo,
    ShareLinkView,
)

__all__ = [
    "ActivityEntry",
    "ActivityRecorder",
    "ActivityType",
    "BadRequestError",
    "Capability",
    "ConflictError",
    "EmailShare",
    "FileDownload",
    "FileFormat",
    "FileGate",
    "FileGateAsync",
    "FileGateError",
    "FilePermissionsView",
    "FileRecord",
    "FileType",
    "ForbiddenError",
    "LocalDiskStorage",
    "MemoryStore",
    "NotFoundError",
    "PasslibHasher",
    "PasswordHasher",
    "PermissionRecord",
    "PermissionRegistry",
    "RedeemResult",
    "Settings",
    "ShareLink",
    "ShareLinkExhaustedError",
    "ShareLinkExpiredError",
    "ShareLinkView",
    "SharedFileInfo",
    "SharingService",
    "SizeLimitExceededError",
    "SizeLimitRule",
    "SizePolicy",
    "StorageError",
    "UnauthorizedError",
    "UserShare",
    "__version__",
    "detect_format",
    "get_settings",
]
