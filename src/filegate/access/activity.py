"""ActivityRecorder: append-only project audit log."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from filegate.exceptions import BadRequestError
from filegate.models.activity import ActivityEntry, ActivityType

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from filegate.store import MemoryStore

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """Writes and reads activity entries in the store's log."""

    def __init__(
        self,
        store: MemoryStore,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(UTC))

    def record(
        self,
        project_id: str,
        user_id: str,
        activity_type: ActivityType | str,
        details: Mapping[str, Any] | None = None,
    ) -> ActivityEntry:
        if not project_id or not user_id or not activity_type:
            raise BadRequestError("Activity requires a project id, user id and type")
        try:
            activity_type = ActivityType(activity_type)
        except ValueError:
            raise BadRequestError(f"Unknown activity type: {activity_type!r}") from None
        entry = ActivityEntry(
            project_id=project_id,
            user_id=user_id,
            activity_type=activity_type,
            timestamp=self._clock(),
            details=dict(details or {}),
        )
        self._store.activity.append(entry)
        logger.debug(
            "Activity %s on project %s by %s", entry.activity_type.value, project_id, user_id
        )
        return entry

    def query(self, project_id: str, limit: int | None = None) -> list[ActivityEntry]:
        """Entries for *project_id*, newest first.

        Timestamp ties are broken by insertion order. A positive *limit*
        keeps only that many entries; None or a non-positive limit keeps all.
        """
        entries = self._store.activity.select(lambda e: e.project_id == project_id)
        entries.sort(key=lambda e: (e.timestamp, e.sequence), reverse=True)
        if limit is not None and limit > 0:
            entries = entries[:limit]
        return entries
