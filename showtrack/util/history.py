"""
History Manager
===============

Bounded stack of full snapshots driving undo/redo.

The stack has a single current index. ``index == -1`` means empty history;
undo is possible while ``index > 0`` and redo while ``index < size - 1``.
Recording after an undo discards everything past the index, so there are no
branching futures. When the stack grows past ``max_size`` the oldest entry is
evicted and the index stays pinned on the newest one.

Snapshots are deep copies; mutating the store after a snapshot is taken never
alters it.
"""

import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from showtrack.errors import ConfigurationError, HistoryUnavailable

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Any]


def take_snapshot(entries: Mapping[str, Any]) -> Snapshot:
    """Deep, alias-free copy of a raw entry mapping."""
    return {path: copy.deepcopy(value) for path, value in entries.items()}


@dataclass(frozen=True)
class HistoryEntry:
    """One recorded state of the raw store."""

    state: Snapshot
    action: str
    timestamp: float = field(default_factory=time.time)

    def restore_copy(self) -> Snapshot:
        """Fresh deep copy of ``state`` for applying to a live store."""
        return take_snapshot(self.state)

    def __repr__(self) -> str:
        return f"HistoryEntry({self.action!r}, paths={len(self.state)})"


class HistoryManager:
    """
    Snapshot stack with a movable current index.

    Args:
        max_size: Maximum number of entries kept (at least 1)
    """

    def __init__(self, max_size: int = 50):
        if max_size < 1:
            raise ConfigurationError(f"max_size must be at least 1, got {max_size}")
        self._max_size = max_size
        self._entries: List[HistoryEntry] = []
        self._index = -1

    @property
    def index(self) -> int:
        return self._index

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def current(self) -> Optional[HistoryEntry]:
        if self._index < 0:
            return None
        return self._entries[self._index]

    def __len__(self) -> int:
        return len(self._entries)

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def record(self, snapshot: Snapshot, action: str) -> HistoryEntry:
        """
        Append a snapshot as the new current entry.

        The caller hands over ownership of ``snapshot``; it must not be shared
        with live state (use ``take_snapshot``).

        Args:
            snapshot: Deep copy of the raw entries
            action: Human-readable label

        Returns:
            The recorded entry
        """
        # Drop the redo tail left by earlier undos
        if self._index < len(self._entries) - 1:
            del self._entries[self._index + 1 :]

        entry = HistoryEntry(state=snapshot, action=action)
        self._entries.append(entry)

        if len(self._entries) > self._max_size:
            self._entries.pop(0)
            self._index = len(self._entries) - 1
        else:
            self._index += 1

        logger.debug(
            f"History entry added: {action} index={self._index} size={len(self._entries)}"
        )
        return entry

    def undo(self) -> HistoryEntry:
        """
        Step back one entry.

        Returns:
            The entry that is now current

        Raises:
            HistoryUnavailable: If there is nothing to undo
        """
        if not self.can_undo():
            raise HistoryUnavailable("Cannot undo: no history available")
        self._index -= 1
        return self._entries[self._index]

    def redo(self) -> HistoryEntry:
        """
        Step forward one entry.

        Raises:
            HistoryUnavailable: If there is nothing to redo
        """
        if not self.can_redo():
            raise HistoryUnavailable("Cannot redo: no future history available")
        self._index += 1
        return self._entries[self._index]

    def clear(self) -> None:
        self._entries.clear()
        self._index = -1

    def info(self) -> Dict[str, Any]:
        return {
            "can_undo": self.can_undo(),
            "can_redo": self.can_redo(),
            "current_index": self._index,
            "size": len(self._entries),
        }
