"""Custom exception hierarchy for the filegate access-control layer."""

from __future__ import annotations


class FileGateError(Exception):
    """Base exception for all filegate errors."""


class NotFoundError(FileGateError):
    """Raised when a file, project or share link does not exist."""


class ForbiddenError(FileGateError):
    """Raised when a user lacks the capability an operation requires."""

    def __init__(self, capability: str, message: str | None = None) -> None:
        self.capability = capability
        super().__init__(message or f"You don't have {capability} permission for this file")


class UnauthorizedError(FileGateError):
    """Raised when a share-link password is missing or incorrect."""


class BadRequestError(FileGateError):
    """Raised when a request is rejected as invalid (size, link state, storage I/O)."""


class ConflictError(FileGateError):
    """Reserved for callers layering CRUD on top of filegate."""


class SizeLimitExceededError(BadRequestError):
    """Raised when an upload exceeds the global or an override size limit."""

    def __init__(self, limit_bytes: int, scope: str) -> None:
        self.limit_bytes = limit_bytes
        self.scope = scope
        megabytes = limit_bytes / (1024 * 1024)
        shown = f"{megabytes:,.0f}" if megabytes.is_integer() else f"{megabytes:,.2f}"
        message = f"File size exceeds the maximum allowed limit of {shown} MB"
        if scope == "override":
            message += " for this file type"
        super().__init__(message)


class ShareLinkExpiredError(BadRequestError):
    """Raised when a share link is redeemed after its expiration instant."""

    def __init__(self) -> None:
        super().__init__("Share link has expired")


class ShareLinkExhaustedError(BadRequestError):
    """Raised when a share link has reached its maximum number of uses."""

    def __init__(self) -> None:
        super().__init__("Share link has reached its maximum number of uses (exhausted)")


class StorageError(BadRequestError):
    """Raised on disk I/O failures; carries the underlying OS message."""
