"""SizePolicy: upload size ceilings, global and per type/format."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from filegate.exceptions import BadRequestError, SizeLimitExceededError
from filegate.models.limits import SizeLimitRule

if TYPE_CHECKING:
    from collections.abc import Iterable

    from filegate.storage.formats import FileFormat, FileType
    from filegate.store import MemoryStore

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = "global"
OVERRIDE_SCOPE = "override"


class SizePolicy:
    """Evaluates candidate upload sizes against the store's limits.

    The global limit is checked first. Override rules are then checked
    in registration order, and only when a type or format was declared.
    A rule applies when its type set contains the type *or* its format
    set contains the format.
    """

    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    @property
    def global_limit(self) -> int:
        with self._store.size_rules.lock:
            return self._store.global_max_file_size

    def rules(self) -> list[SizeLimitRule]:
        """Override rules in the order they were registered."""
        return self._store.size_rules.values()

    def evaluate(
        self,
        size_bytes: int,
        file_type: FileType | None = None,
        file_format: FileFormat | None = None,
    ) -> None:
        """Raise :class:`SizeLimitExceededError` if *size_bytes* is over a limit.

        A size equal to a limit is accepted.
        """
        table = self._store.size_rules
        with table.lock:
            global_limit = self._store.global_max_file_size
            rules = table.values()

        if size_bytes > global_limit:
            logger.warning(
                "Upload of %d bytes exceeds global limit of %d", size_bytes, global_limit
            )
            raise SizeLimitExceededError(global_limit, GLOBAL_SCOPE)

        if file_type is None and file_format is None:
            return

        for rule in rules:
            if rule.applies_to(file_type, file_format) and size_bytes > rule.max_bytes:
                logger.warning(
                    "Upload of %d bytes (%s/%s) exceeds override limit of %d",
                    size_bytes,
                    getattr(file_type, "value", file_type),
                    getattr(file_format, "value", file_format),
                    rule.max_bytes,
                )
                raise SizeLimitExceededError(rule.max_bytes, OVERRIDE_SCOPE)

    def upsert_limit(
        self,
        max_bytes: int,
        affected_types: Iterable[FileType] | None = None,
        affected_formats: Iterable[FileFormat] | None = None,
    ) -> SizeLimitRule | None:
        """Set the global limit, or add/replace an override rule.

        With neither set given, *max_bytes* becomes the global limit and
        None is returned. Otherwise the rule whose type and format sets
        are equal to the given ones has its limit replaced; if there is
        none a new rule is appended. No rule is ever removed.
        """
        if max_bytes <= 0:
            raise BadRequestError(f"Size limit must be positive, got {max_bytes}")

        table = self._store.size_rules
        if affected_types is None and affected_formats is None:
            with table.lock:
                self._store.global_max_file_size = max_bytes
            logger.debug("Global size limit set to %d bytes", max_bytes)
            return None

        types = frozenset(affected_types or ())
        formats = frozenset(affected_formats or ())

        with table.lock:
            for rule in table.values():
                if rule.affected_types == types and rule.affected_formats == formats:
                    rule.max_bytes = max_bytes
                    logger.debug("Size rule %s updated to %d bytes", rule.id, max_bytes)
                    return rule

            rule = SizeLimitRule(
                max_bytes=max_bytes,
                affected_types=types,
                affected_formats=formats,
            )
            table.add(rule.id, rule)
            logger.debug("Size rule %s added: %d bytes", rule.id, max_bytes)
            return rule
