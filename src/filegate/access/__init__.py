"""Access control: capabilities, size policy, share links and the activity log."""

from filegate.access.activity import ActivityRecorder
from filegate.access.passwords import PasslibHasher, PasswordHasher
from filegate.access.permissions import PermissionRegistry, to_capabilities, to_capability
from filegate.access.sharing import SharingService
from filegate.access.size_policy import GLOBAL_SCOPE, OVERRIDE_SCOPE, SizePolicy

__all__ = [
    "GLOBAL_SCOPE",
    "OVERRIDE_SCOPE",
    "ActivityRecorder",
    "PasslibHasher",
    "PasswordHasher",
    "PermissionRegistry",
    "SharingService",
    "SizePolicy",
    "to_capabilities",
    "to_capability",
]
