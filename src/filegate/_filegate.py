"""Main FileGate class: sync wrappers around FileGateAsync."""

from __future__ import annotations

import asyncio
import threading
from typing import TYPE_CHECKING, Any

from filegate._filegate_async import FileGateAsync
from filegate.exceptions import FileGateError
from filegate.storage.formats import FileType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from datetime import datetime
    from pathlib import Path

    from filegate.access.passwords import PasswordHasher
    from filegate.config import Settings
    from filegate.models.activity import ActivityEntry, ActivityType
    from filegate.models.files import FileRecord
    from filegate.models.limits import SizeLimitRule
    from filegate.models.permissions import Capability, PermissionRecord
    from filegate.models.shares import EmailShare, UserShare
    from filegate.storage.formats import FileFormat
    from filegate.store import MemoryStore
    from filegate.types import FileDownload, FilePermissionsView, RedeemResult, ShareLinkView


class FileGate:
    """Synchronous facade for plain threaded callers.

    Presents a synchronous API backed by a private event loop in a
    background thread. Coroutine operations (uploads, downloads, share
    links) are submitted to that loop; in-memory operations call straight
    through, guarded by the store's table locks. Safe to share between
    request-handler threads. After :meth:`close` every operation raises
    :class:`FileGateError`.

    Usage::

        with FileGate(upload_dir="/srv/uploads") as gate:
            record = gate.upload_file("proj-1", "alice", "a.pdf", data)
            gate.require_capability(record.id, "bob", "view")
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        upload_dir: str | Path | None = None,
        store: MemoryStore | None = None,
        hasher: PasswordHasher | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._closed = False
        self._async = FileGateAsync(
            settings=settings,
            upload_dir=upload_dir,
            store=store,
            hasher=hasher,
            clock=clock,
        )

        # Private event loop in a daemon thread
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._thread.start()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _run(self, coro: Any) -> Any:
        """Submit *coro* to the private loop and block for the result."""
        if self._closed:
            coro.close()
            raise FileGateError("FileGate is closed")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the async facade, stop the event loop and join the thread."""
        if self._closed:
            return

        try:
            self._run(self._async.close())
        finally:
            self._closed = True
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=5)

    def __enter__(self) -> FileGate:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Files (sync)
    # ------------------------------------------------------------------

    def upload_file(
        self,
        project_id: str,
        user_id: str,
        name: str,
        content: bytes,
        *,
        file_type: FileType = FileType.OTHER,
        file_format: FileFormat | None = None,
        description: str = "",
    ) -> FileRecord:
        return self._run(
            self._async.upload_file(
                project_id,
                user_id,
                name,
                content,
                file_type=file_type,
                file_format=file_format,
                description=description,
            )
        )

    def download_file(self, file_id: str, user_id: str) -> FileDownload:
        return self._run(self._async.download_file(file_id, user_id))

    def delete_file(self, file_id: str, user_id: str) -> FileRecord:
        return self._run(self._async.delete_file(file_id, user_id))

    def get_file(self, file_id: str) -> FileRecord:
        return self._async.get_file(file_id)

    # ------------------------------------------------------------------
    # Size policy (sync, in-memory)
    # ------------------------------------------------------------------

    def evaluate_upload_size(
        self,
        size_bytes: int,
        file_type: FileType | None = None,
        file_format: FileFormat | None = None,
    ) -> None:
        self._async.evaluate_upload_size(size_bytes, file_type, file_format)

    def update_size_limit(
        self,
        max_bytes: int,
        affected_types: Iterable[FileType] | None = None,
        affected_formats: Iterable[FileFormat] | None = None,
    ) -> SizeLimitRule | None:
        return self._async.update_size_limit(max_bytes, affected_types, affected_formats)

    # ------------------------------------------------------------------
    # Permissions (sync, in-memory)
    # ------------------------------------------------------------------

    def set_file_permissions(
        self, file_id: str, user_id: str, capabilities: Iterable[Capability | str]
    ) -> PermissionRecord:
        return self._async.set_file_permissions(file_id, user_id, capabilities)

    def has_capability(self, file_id: str, user_id: str, capability: Capability | str) -> bool:
        return self._async.has_capability(file_id, user_id, capability)

    def require_capability(
        self, file_id: str, user_id: str, capability: Capability | str
    ) -> None:
        self._async.require_capability(file_id, user_id, capability)

    def get_file_permissions(self, file_id: str, user_id: str) -> FilePermissionsView:
        return self._async.get_file_permissions(file_id, user_id)

    def update_file_permissions(
        self,
        file_id: str,
        acting_user_id: str,
        user_permissions: Mapping[str, Iterable[Capability | str]],
    ) -> list[PermissionRecord]:
        return self._async.update_file_permissions(file_id, acting_user_id, user_permissions)

    # ------------------------------------------------------------------
    # Sharing
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
        return self._async.share_with_user(
            file_id, shared_by, user_id, capabilities, message=message, expires_at=expires_at
        )

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
        return self._async.share_with_email(
            file_id, shared_by, email, capabilities, message=message, expires_at=expires_at
        )

    def issue_share_link(
        self,
        file_id: str,
        issuer_id: str,
        capabilities: Iterable[Capability | str],
        *,
        expires_at: datetime | None = None,
        password: str | None = None,
        max_uses: int | None = None,
    ) -> ShareLinkView:
        return self._run(
            self._async.issue_share_link(
                file_id,
                issuer_id,
                capabilities,
                expires_at=expires_at,
                password=password,
                max_uses=max_uses,
            )
        )

    def redeem_share_link(self, token: str, password: str | None = None) -> RedeemResult:
        return self._run(self._async.redeem_share_link(token, password))

    def list_share_links(self, file_id: str) -> list[ShareLinkView]:
        return self._async.list_share_links(file_id)

    # ------------------------------------------------------------------
    # Activity (sync, in-memory)
    # ------------------------------------------------------------------

    def record_activity(
        self,
        project_id: str,
        user_id: str,
        activity_type: ActivityType | str,
        details: Mapping[str, Any] | None = None,
    ) -> ActivityEntry:
        return self._async.record_activity(project_id, user_id, activity_type, details)

    def query_activity(self, project_id: str, limit: int | None = None) -> list[ActivityEntry]:
        return self._async.query_activity(project_id, limit)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def aio(self) -> FileGateAsync:
        """The underlying async facade."""
        return self._async
