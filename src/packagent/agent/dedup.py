"""DedupPolicy — each tool runs at most once per orchestration run."""

from __future__ import annotations

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)


class DedupPolicy:
    """Tracks which tool names have been admitted during one run.

    ``admit`` checks and marks in one synchronous step (no ``await`` in
    between), so within the single-threaded control loop two admits for the
    same name can never both succeed. One instance belongs to one run.
    """

    def __init__(self, names: Iterable[str] | None = None) -> None:
        self._allowed: frozenset[str] | None = (
            frozenset(names) if names is not None else None
        )
        self._used: set[str] = set()

    def admit(self, name: str) -> bool:
        """Admit ``name`` once. Later calls for the same name return False."""
        if not self.admissible(name):
            return False
        self._used.add(name)
        logger.debug("Admitted tool %s", name)
        return True

    def admissible(self, name: str) -> bool:
        """Would ``admit(name)`` succeed? Does not mark anything."""
        if self._allowed is not None and name not in self._allowed:
            return False
        return name not in self._used

    def is_used(self, name: str) -> bool:
        return name in self._used

    @property
    def used(self) -> frozenset[str]:
        return frozenset(self._used)
