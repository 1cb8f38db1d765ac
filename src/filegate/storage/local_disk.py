"""LocalDiskStorage: content-named byte storage under a base directory."""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import logging
import os
import secrets
import tempfile
import time
from pathlib import Path

from filegate.exceptions import BadRequestError, StorageError

logger = logging.getLogger(__name__)


class LocalDiskStorage:
    """Stores uploaded bytes as ``{hash}-{name}`` files under *base_dir*.

    The hash is the md5 of the current epoch milliseconds, a random nonce
    and the name hint, so two uploads of the same name land in different
    files even within one millisecond.
    The base directory is created on construction if it does not exist.

    Security: reads resolve the requested path and refuse anything that
    falls outside *base_dir*.
    """

    def __init__(self, base_dir: Path | str) -> None:
        self.base_dir = Path(base_dir).resolve()
        if self.base_dir.exists() and not self.base_dir.is_dir():
            raise NotADirectoryError(f"Storage path is not a directory: {self.base_dir}")
        self.base_dir.mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # Key derivation
    # =========================================================================

    @staticmethod
    def _clean_name(name_hint: str) -> str:
        name = Path(name_hint.strip().replace("\\", "/")).name
        if not name or name in (".", ".."):
            raise BadRequestError(f"Invalid file name: {name_hint!r}")
        if "\x00" in name:
            raise BadRequestError("File name contains null bytes")
        return name

    def storage_key(self, name_hint: str) -> str:
        """Return a fresh ``{hash}-{name}`` key for *name_hint*."""
        name = self._clean_name(name_hint)
        stamp = int(time.time() * 1000)
        nonce = secrets.token_hex(8)
        digest = hashlib.md5(f"{stamp}-{nonce}-{name}".encode()).hexdigest()  # noqa: S324
        return f"{digest}-{name}"

    def _resolve(self, path: str | Path) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.base_dir / candidate
        resolved = candidate.resolve()
        try:
            resolved.relative_to(self.base_dir)
        except ValueError:
            raise BadRequestError(
                f"Path traversal detected: {path} resolves outside storage directory"
            ) from None
        return resolved

    # =========================================================================
    # Read / Write
    # =========================================================================

    async def store(self, name_hint: str, content: bytes) -> str:
        """Write *content* under a new key and return its absolute path.

        Atomic via tempfile + replace.
        """
        target = self.base_dir / self.storage_key(name_hint)

        def _write() -> None:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.base_dir), suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(content)
                Path(tmp_path).replace(target)
            except Exception:
                with contextlib.suppress(OSError):
                    Path(tmp_path).unlink()
                raise

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            logger.error("Write failed for %s: %s", target, e, exc_info=True)
            raise StorageError(f"Failed to write file: {e}") from e

        logger.debug("Stored %d bytes at %s", len(content), target)
        return str(target)

    async def retrieve(self, path: str | Path) -> bytes:
        """Read the bytes stored at *path*."""
        resolved = self._resolve(path)
        try:
            return await asyncio.to_thread(resolved.read_bytes)
        except OSError as e:
            logger.error("Read failed for %s: %s", resolved, e, exc_info=True)
            raise StorageError(f"Failed to read file: {e}") from e

    async def remove(self, path: str | Path) -> bool:
        """Delete the stored bytes at *path*. Returns True if a file was removed."""
        resolved = self._resolve(path)
        try:
            await asyncio.to_thread(resolved.unlink)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error("Delete failed for %s: %s", resolved, e, exc_info=True)
            raise StorageError(f"Failed to delete file: {e}") from e
        return True
