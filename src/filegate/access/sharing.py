"""SharingService: share links, user grants and email invitations.

Share links move through Active → Expired or Exhausted; a redemption is a
side effect on an Active link, not a state of its own. Link records are
never deleted, only made unusable.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from filegate.access.passwords import PasslibHasher
from filegate.access.permissions import to_capabilities
from filegate.config import Settings
from filegate.exceptions import (
    BadRequestError,
    NotFoundError,
    ShareLinkExhaustedError,
    ShareLinkExpiredError,
    UnauthorizedError,
)
from filegate.models.permissions import Capability
from filegate.models.shares import EmailShare, ShareLink, UserShare
from filegate.types import RedeemResult, SharedFileInfo, ShareLinkView

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from filegate.access.passwords import PasswordHasher
    from filegate.access.permissions import PermissionRegistry
    from filegate.models.files import FileRecord
    from filegate.storage.local_disk import LocalDiskStorage
    from filegate.store import MemoryStore

logger = logging.getLogger(__name__)

_MAX_TOKEN_ATTEMPTS = 5


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class SharingService:
    """Issues and redeems share links, and records direct grants.

    Every sharing operation requires the acting user to hold ``SHARE`` on
    the file, checked through the :class:`PermissionRegistry`.
    """

    def __init__(
        self,
        store: MemoryStore,
        permissions: PermissionRegistry,
        storage: LocalDiskStorage,
        *,
        settings: Settings | None = None,
        hasher: PasswordHasher | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._permissions = permissions
        self._storage = storage
        self._settings = settings or Settings()
        self._hasher = hasher or PasslibHasher(self._settings.password_schemes)
        self._clock = clock or (lambda: datetime.now(UTC))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_file(self, file_id: str) -> FileRecord:
        record = self._store.files.get(file_id)
        if record is None:
            raise NotFoundError("File not found")
        return record

    def _mark_shared(self, file_id: str) -> None:
        with self._store.files.lock:
            record = self._store.files.get(file_id)
            if record is not None:
                record.is_shared = True

    def _new_token(self) -> str:
        return secrets.token_hex(self._settings.token_bytes)

    def _view(self, link: ShareLink) -> ShareLinkView:
        return ShareLinkView(
            id=link.id,
            url=self._settings.share_url(link.token),
            capabilities=link.capabilities,
            expires_at=link.expires_at,
            is_password_protected=link.is_password_protected,
            max_uses=link.max_uses,
            use_count=link.use_count,
            created_at=link.created_at,
        )

    # ------------------------------------------------------------------
    # Share links
    # ------------------------------------------------------------------

    async def issue(
        self,
        file_id: str,
        issuer_id: str,
        capabilities: Iterable[Capability | str],
        *,
        expires_at: datetime | None = None,
        password: str | None = None,
        max_uses: int | None = None,
    ) -> ShareLinkView:
        """Create a share link for *file_id* on behalf of *issuer_id*.

        Only a salted hash of *password* is kept. The file is marked shared
        after the link is stored; the two writes are not one transaction.
        """
        self._get_file(file_id)
        self._permissions.require_capability(file_id, issuer_id, Capability.SHARE)

        caps = to_capabilities(capabilities)
        if max_uses is not None and max_uses <= 0:
            raise BadRequestError(f"max_uses must be positive, got {max_uses}")

        password_hash = None
        if password:
            password_hash = await asyncio.to_thread(self._hasher.hash, password)

        table = self._store.share_links
        for _ in range(_MAX_TOKEN_ATTEMPTS):
            link = ShareLink(
                file_id=file_id,
                token=self._new_token(),
                created_by=issuer_id,
                capabilities=caps,
                expires_at=_as_utc(expires_at),
                password_hash=password_hash,
                max_uses=max_uses,
                created_at=self._clock(),
            )
            try:
                table.add(link.token, link)
                break
            except KeyError:
                continue
        else:
            raise BadRequestError("Could not allocate a unique share token")

        self._mark_shared(file_id)
        logger.info(
            "Share link %s issued for %s by %s (uses=%s, expires=%s, password=%s)",
            link.id,
            file_id,
            issuer_id,
            max_uses,
            link.expires_at,
            link.is_password_protected,
        )
        return self._view(link)

    async def redeem(self, token: str, password: str | None = None) -> RedeemResult:
        """Use a share link.

        Checks run in a fixed order: expiry, exhaustion, then password.
        The use count is re-checked and incremented under the share-link
        lock, so with ``max_uses=1`` only one of two racing calls succeeds.
        """
        table = self._store.share_links
        link = table.get(token)
        if link is None:
            raise NotFoundError("Share link not found or has expired")

        now = self._clock()
        if link.is_expired(now):
            logger.warning("Share link %s redeemed after expiry", link.id)
            raise ShareLinkExpiredError
        if link.is_exhausted():
            logger.warning("Share link %s redeemed after exhaustion", link.id)
            raise ShareLinkExhaustedError

        if link.password_hash is not None:
            if not password:
                raise UnauthorizedError("Password is required to access this file")
            valid = await asyncio.to_thread(self._hasher.verify, password, link.password_hash)
            if not valid:
                logger.warning("Share link %s: invalid password", link.id)
                raise UnauthorizedError("Invalid password")

        file = self._get_file(link.file_id)

        with table.lock:
            if link.is_exhausted():
                raise ShareLinkExhaustedError
            link.use_count += 1
            use_count = link.use_count

        logger.debug("Share link %s redeemed (%d uses)", link.id, use_count)

        info = SharedFileInfo.from_record(file)
        if Capability.DOWNLOAD in link.capabilities or Capability.FULL_ACCESS in link.capabilities:
            content = await self._storage.retrieve(file.path)
            return RedeemResult(
                file=info,
                capabilities=link.capabilities,
                use_count=use_count,
                content=content,
            )
        return RedeemResult(file=info, capabilities=link.capabilities, use_count=use_count)

    def get_link(self, token: str) -> ShareLink | None:
        return self._store.share_links.get(token)

    def list_links(self, file_id: str) -> list[ShareLinkView]:
        """Views of every link ever issued for *file_id*, oldest first."""
        links = self._store.share_links.select(lambda link: link.file_id == file_id)
        return [self._view(link) for link in links]

    # ------------------------------------------------------------------
    # Direct grants
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
        """Grant *user_id* the given capabilities and keep a record of it.

        The grantee's permission record is replaced, not merged.
        """
        self._get_file(file_id)
        self._permissions.require_capability(file_id, shared_by, Capability.SHARE)

        caps = to_capabilities(capabilities)
        share = UserShare(
            file_id=file_id,
            shared_by=shared_by,
            shared_with_user_id=user_id,
            capabilities=caps,
            message=message,
            expires_at=_as_utc(expires_at),
            created_at=self._clock(),
        )
        self._store.user_shares.add(share.id, share)
        self._permissions.set_permissions(file_id, user_id, caps)
        self._mark_shared(file_id)
        logger.debug("File %s shared with user %s by %s", file_id, user_id, shared_by)
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
        """Record an invitation for *email*. Grants nothing until accepted."""
        self._get_file(file_id)
        self._permissions.require_capability(file_id, shared_by, Capability.SHARE)

        email = email.strip()
        if "@" not in email:
            raise BadRequestError(f"Invalid email address: {email!r}")

        share = EmailShare(
            file_id=file_id,
            shared_by=shared_by,
            email=email,
            capabilities=to_capabilities(capabilities),
            message=message,
            expires_at=_as_utc(expires_at),
            created_at=self._clock(),
        )
        self._store.email_shares.add(share.id, share)
        self._mark_shared(file_id)
        logger.debug("File %s shared with %s by %s", file_id, email, shared_by)
        return share

    def list_user_shares(self, file_id: str) -> list[UserShare]:
        return self._store.user_shares.select(lambda s: s.file_id == file_id)

    def list_email_shares(self, file_id: str) -> list[EmailShare]:
        return self._store.email_shares.select(lambda s: s.file_id == file_id)
