"""MemoryStore: the in-process tables every filegate component shares.

Each logical table carries its own re-entrant lock. Single-row reads and
writes lock internally; components that need a read-check-write sequence
hold ``table.lock`` around it.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Generic, TypeVar

from filegate.config import DEFAULT_MAX_FILE_SIZE

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from filegate.models.activity import ActivityEntry
    from filegate.models.files import FileRecord
    from filegate.models.limits import SizeLimitRule
    from filegate.models.permissions import PermissionRecord
    from filegate.models.shares import EmailShare, ShareLink, UserShare

K = TypeVar("K")
V = TypeVar("V")


class Table(Generic[K, V]):
    """Insertion-ordered key/value table guarded by one lock."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.lock = threading.RLock()
        self._rows: dict[K, V] = {}

    def get(self, key: K) -> V | None:
        with self.lock:
            return self._rows.get(key)

    def put(self, key: K, value: V) -> V:
        """Insert or overwrite the row at *key*."""
        with self.lock:
            self._rows[key] = value
            return value

    def add(self, key: K, value: V) -> V:
        """Insert a new row. Raises KeyError if *key* is already taken."""
        with self.lock:
            if key in self._rows:
                raise KeyError(f"Duplicate key in {self.name}: {key!r}")
            self._rows[key] = value
            return value

    def pop(self, key: K) -> V | None:
        with self.lock:
            return self._rows.pop(key, None)

    def values(self) -> list[V]:
        """Snapshot of all rows in insertion order."""
        with self.lock:
            return list(self._rows.values())

    def select(self, predicate: Callable[[V], bool]) -> list[V]:
        with self.lock:
            return [row for row in self._rows.values() if predicate(row)]

    def delete_where(self, predicate: Callable[[V], bool]) -> int:
        with self.lock:
            doomed = [k for k, v in self._rows.items() if predicate(v)]
            for k in doomed:
                del self._rows[k]
            return len(doomed)

    def __contains__(self, key: object) -> bool:
        with self.lock:
            return key in self._rows

    def __len__(self) -> int:
        with self.lock:
            return len(self._rows)

    def __iter__(self) -> Iterator[V]:
        return iter(self.values())


class ActivityLog:
    """Append-only list of activity entries with a monotonic sequence."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self._entries: list[ActivityEntry] = []
        self._next_sequence = 1

    def append(self, entry: ActivityEntry) -> ActivityEntry:
        with self.lock:
            entry.sequence = self._next_sequence
            self._next_sequence += 1
            self._entries.append(entry)
            return entry

    def select(self, predicate: Callable[[ActivityEntry], bool]) -> list[ActivityEntry]:
        with self.lock:
            return [e for e in self._entries if predicate(e)]

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)


class MemoryStore:
    """Every table filegate keeps, in one object.

    Pass the same store to each component that should see the same data;
    create a fresh one per test for isolation.
    """

    def __init__(self, *, global_max_file_size: int = DEFAULT_MAX_FILE_SIZE) -> None:
        self.files: Table[str, FileRecord] = Table("files")
        # keyed by (file_id, user_id)
        self.permissions: Table[tuple[str, str], PermissionRecord] = Table("permissions")
        # keyed by token
        self.share_links: Table[str, ShareLink] = Table("share_links")
        self.user_shares: Table[str, UserShare] = Table("user_shares")
        self.email_shares: Table[str, EmailShare] = Table("email_shares")
        # override rules; guarded together with ``global_max_file_size``
        self.size_rules: Table[str, SizeLimitRule] = Table("size_rules")
        self.global_max_file_size = global_max_file_size
        self.activity = ActivityLog()
