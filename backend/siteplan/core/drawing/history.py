"""Linear undo/redo history of drawn-object snapshots.

Snapshots hold tuples of immutable :class:`DrawnObject` values, so taking
one copies references only and unchanged objects are shared between
entries.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from siteplan.config import settings
from siteplan.core.drawing.objects import DrawnObject


@dataclass(frozen=True)
class HistoryEntry:
    buildings: tuple[DrawnObject, ...]
    parkings: tuple[DrawnObject, ...]
    active_id: str | None
    label: str = ""
    timestamp: float = field(default_factory=time.time)


class History:
    """Bounded list of snapshots with a cursor.

    Entries before the cursor are states that can be returned to with
    :meth:`undo`. The live state is not stored until the first undo, which
    appends it so :meth:`redo` can come back to it. Pushing discards every
    entry from the cursor on.
    """

    def __init__(self, max_size: int | None = None) -> None:
        self.max_size = max(1, settings.max_history if max_size is None else max_size)
        self._entries: list[HistoryEntry] = []
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def index(self) -> int:
        return self._cursor

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def push(self, entry: HistoryEntry) -> None:
        del self._entries[self._cursor:]
        self._entries.append(entry)
        self._trim()
        self._cursor = len(self._entries)

    def undo(self, current: HistoryEntry) -> HistoryEntry | None:
        """Step back; ``current`` is the live state, saved when leaving the tip."""
        if self._cursor <= 0:
            return None
        if self._cursor >= len(self._entries):
            self._entries.append(current)
            self._trim()
            self._cursor = len(self._entries) - 1
            if self._cursor <= 0:
                return None
        self._cursor -= 1
        return self._entries[self._cursor]

    def redo(self) -> HistoryEntry | None:
        if not self.can_redo:
            return None
        self._cursor += 1
        return self._entries[self._cursor]

    def clear(self) -> None:
        self._entries.clear()
        self._cursor = 0

    def _trim(self) -> None:
        overflow = len(self._entries) - self.max_size
        if overflow > 0:
            del self._entries[:overflow]
