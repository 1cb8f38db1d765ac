"""PermissionRegistry: per-file, per-user capability sets.

Resolution order for ``has_capability``:

1. The file's uploader always passes.
2. No record for (file, user) fails.
3. A record holding ``FULL_ACCESS`` passes.
4. Otherwise the capability must be in the record's set.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from filegate.exceptions import BadRequestError, ForbiddenError, NotFoundError
from filegate.models.permissions import Capability, PermissionRecord

if TYPE_CHECKING:
    from collections.abc import Iterable

    from filegate.models.files import FileRecord
    from filegate.store import MemoryStore

logger = logging.getLogger(__name__)


def to_capability(value: Capability | str) -> Capability:
    try:
        return Capability(value)
    except ValueError:
        raise BadRequestError(f"Invalid permission: {value!r}") from None


def to_capabilities(values: Iterable[Capability | str]) -> frozenset[Capability]:
    return frozenset(to_capability(v) for v in values)


class PermissionRegistry:
    """Stores, replaces and checks capability sets held on files."""

    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    def _get_file(self, file_id: str) -> FileRecord:
        record = self._store.files.get(file_id)
        if record is None:
            raise NotFoundError("File not found")
        return record

    def set_permissions(
        self,
        file_id: str,
        user_id: str,
        capabilities: Iterable[Capability | str],
    ) -> PermissionRecord:
        """Replace the capability set *user_id* holds on *file_id*.

        An empty set leaves a record with no capabilities, which revokes
        access for anyone but the owner.
        """
        self._get_file(file_id)
        record = PermissionRecord(
            file_id=file_id,
            user_id=user_id,
            capabilities=to_capabilities(capabilities),
        )
        self._store.permissions.put((file_id, user_id), record)
        logger.debug(
            "Permissions for %s on %s set to %s",
            user_id,
            file_id,
            sorted(c.value for c in record.capabilities),
        )
        return record

    def get_permissions(self, file_id: str, user_id: str) -> PermissionRecord | None:
        return self._store.permissions.get((file_id, user_id))

    def list_permissions(self, file_id: str) -> list[PermissionRecord]:
        """All permission records on *file_id*."""
        return self._store.permissions.select(lambda r: r.file_id == file_id)

    def revoke_all(self, file_id: str) -> int:
        """Drop every record on *file_id*. Returns the number removed."""
        return self._store.permissions.delete_where(lambda r: r.file_id == file_id)

    def has_capability(
        self,
        file_id: str,
        user_id: str,
        capability: Capability | str,
    ) -> bool:
        capability = to_capability(capability)
        file = self._store.files.get(file_id)
        if file is not None and file.uploaded_by == user_id:
            return True

        record = self._store.permissions.get((file_id, user_id))
        if record is None:
            return False
        return record.grants(capability)

    def require_capability(
        self,
        file_id: str,
        user_id: str,
        capability: Capability | str,
    ) -> None:
        """Raise :class:`ForbiddenError` unless *user_id* holds *capability*."""
        capability = to_capability(capability)
        if not self.has_capability(file_id, user_id, capability):
            logger.warning(
                "Denied %s on %s for %s", capability.value, file_id, user_id
            )
            raise ForbiddenError(capability.value)
