"""
Keyed Store
===========

Path -> value store with declared-dependency computed values, synchronous
observers, snapshot undo/redo and best-effort persistence.

Every mutation follows the same pipeline:

1. the raw map is written
2. computed values depending on the written paths are invalidated (their
   subscribers hear about it right away, recomputation waits for the next read)
3. subscribers of the written paths are notified, path observers before
   wildcard observers
4. a history snapshot is recorded, unless a restore is in progress
5. the persistence adapter saves a snapshot, unless a restore is in progress

Example:
    store = KeyedStore(StoreConfig(max_history_size=20))
    store.set("items", [{"price": 1.5, "qty": 2}, {"price": 2, "qty": 1}])
    store.register_computed(
        "total",
        lambda: sum(i["price"] * i["qty"] for i in store.get("items") or []),
        ["items"],
    )

    store.get("total")   # 5.0
    store.set("items", [{"price": 1.5, "qty": 4}, {"price": 2, "qty": 1}])
    store.get("total")   # 8.0
    store.undo()
    store.get("total")   # 5.0

The store is single-threaded and fully synchronous. A callback that writes to
the store from inside a notification (outside of a restore) produces a nested
history entry and notification cascade; that is not guarded against.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

import numpy as np

from showtrack.errors import ConfigurationError, HistoryUnavailable
from showtrack.persistence import (
    JsonPersistenceAdapter,
    MemoryBlobBackend,
    PersistenceAdapter,
)
from showtrack.util.computed_registry import ComputedRegistry
from showtrack.util.history import HistoryEntry, HistoryManager, take_snapshot
from showtrack.util.observer_bus import WILDCARD, Observer, ObserverBus

logger = logging.getLogger(__name__)

DEFAULT_PERSISTENCE_KEY = "tv-show-guide-state"


@dataclass
class StoreConfig:
    """
    Store behaviour switches.

    Attributes:
        persistence_key: Key of the persisted blob (used by the default adapter)
        enable_persistence: Save a snapshot after every committed mutation
        enable_history: Record snapshots for undo/redo
        max_history_size: Number of history entries kept, oldest evicted first
    """

    persistence_key: str = DEFAULT_PERSISTENCE_KEY
    enable_persistence: bool = True
    enable_history: bool = True
    max_history_size: int = 50

    def __post_init__(self):
        if not self.persistence_key:
            raise ConfigurationError("persistence_key must not be empty")
        if self.max_history_size < 1:
            raise ConfigurationError(
                f"max_history_size must be at least 1, got {self.max_history_size}"
            )


def _values_equal(a: Any, b: Any) -> bool:
    """Strict equality: same object, or same type and equal content."""
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    try:
        if isinstance(a, np.ndarray):
            return a.dtype == b.dtype and np.array_equal(a, b)
        return bool(a == b)
    except (ValueError, TypeError):
        return False


class KeyedStore:
    """
    Reactive path -> value store.

    Args:
        config: Behaviour switches, defaults to ``StoreConfig()``
        persistence: Adapter used by ``load``/``clear_persisted`` and after
            each mutation. Defaults to a JSON adapter over an in-memory backend.
    """

    # Sentinel for "path not present" so None can be stored as a value
    _MISSING = object()

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        persistence: Optional[PersistenceAdapter] = None,
    ):
        self.config = config if config is not None else StoreConfig()

        self._values: Dict[str, Any] = {}
        self._bus = ObserverBus()
        self._computed = ComputedRegistry(self._bus.notify)
        self._history = HistoryManager(self.config.max_history_size)

        if persistence is None:
            persistence = JsonPersistenceAdapter(
                MemoryBlobBackend(), key=self.config.persistence_key
            )
        self._persistence = persistence

        self._restoring = False

        logger.info(f"KeyedStore initialized: {self.config}")

    # ========================================================================
    # CORE API
    # ========================================================================

    def set(self, path: str, value: Any, label: str = "update") -> None:
        """
        Store ``value`` at ``path``.

        Does nothing (no notification, history entry or save) when ``value``
        strictly equals the stored value.

        Raises:
            ValueError: If ``path`` is a computed or reserved path
        """
        self._ensure_writable(path)

        old_value = self._values.get(path, self._MISSING)
        if old_value is not self._MISSING and _values_equal(old_value, value):
            return

        self._values[path] = value
        logger.debug(f"State updated: {path}")

        self._computed.invalidate(path)
        self._bus.notify(path, value, None if old_value is self._MISSING else old_value)
        self._commit(label)

    def get(self, path: str, default: Any = None) -> Any:
        """
        Value at ``path``.

        Computed paths resolve through their getter (None if it fails); raw
        paths return the stored value, or ``default`` when absent.
        """
        if path in self._computed:
            return self._computed.resolve(path)
        return self._values.get(path, default)

    def has(self, path: str) -> bool:
        """True if ``path`` holds a raw value or is a registered computed path."""
        return path in self._values or path in self._computed

    def delete(self, path: str, label: str = "delete") -> bool:
        """
        Remove the raw entry at ``path``.

        Returns:
            False if there was no raw entry, True otherwise
        """
        if path not in self._values:
            return False

        old_value = self._values.pop(path)
        logger.debug(f"State deleted: {path}")

        self._computed.invalidate(path)
        self._bus.notify(path, None, old_value)
        self._commit(label)
        return True

    def batch(self, updates: Mapping[str, Any], label: str = "batch update") -> None:
        """
        Apply several writes as one history entry and one save.

        All raw writes land before anything is notified. Computed dependents
        are then invalidated, and each changed path is notified once, in the
        order of ``updates``. Unchanged values are skipped; a batch that
        changes nothing records and saves nothing.

        Raises:
            ValueError: If any path is computed or reserved (nothing is written)
        """
        updates = dict(updates)
        for path in updates:
            self._ensure_writable(path)

        old_values: Dict[str, Any] = {}
        for path, value in updates.items():
            old_value = self._values.get(path, self._MISSING)
            if old_value is not self._MISSING and _values_equal(old_value, value):
                continue
            self._values[path] = value
            old_values[path] = None if old_value is self._MISSING else old_value

        if not old_values:
            logger.debug(f"Batch update had no effect: {label}")
            return

        self._computed.invalidate(*old_values)
        for path, old_value in old_values.items():
            self._bus.notify(path, updates[path], old_value)
        self._commit(label)

        logger.info(f"Batch update completed: {label} paths={len(old_values)}")

    def _ensure_writable(self, path: str) -> None:
        if path in self._computed:
            raise ValueError(f"Cannot update computed value '{path}'")
        if path == WILDCARD:
            raise ValueError(f"'{WILDCARD}' is reserved for wildcard observers")

    def _commit(self, label: str) -> None:
        """Record history and persist after a committed mutation."""
        if self._restoring:
            return

        if self.config.enable_history:
            self._history.record(take_snapshot(self._values), label)

        if self.config.enable_persistence:
            self._persist()

    # ========================================================================
    # SUBSCRIPTION
    # ========================================================================

    def subscribe(self, path: str, observer: Observer) -> Callable[[], None]:
        """
        Call ``observer(new_value, old_value, path)`` on every change at ``path``.

        Subscribe to ``"*"`` to hear about every path. Returns an unsubscribe
        closure.
        """
        return self._bus.subscribe(path, observer)

    def unsubscribe(self, path: str, observer: Observer) -> bool:
        return self._bus.unsubscribe(path, observer)

    # ========================================================================
    # COMPUTED VALUES
    # ========================================================================

    def register_computed(
        self,
        path: str,
        getter: Callable[[], Any],
        dependencies: Optional[List[str]] = None,
    ) -> None:
        """
        Declare ``path`` as computed by ``getter``.

        The cached value is dropped whenever one of ``dependencies`` changes.
        Paths read by ``getter`` but missing from ``dependencies`` will not
        invalidate it.

        Raises:
            ValueError: If ``path`` already holds a raw value
        """
        if path in self._values:
            raise ValueError(f"Path '{path}' already holds a raw value")
        if path == WILDCARD:
            raise ValueError(f"'{WILDCARD}' is reserved for wildcard observers")
        self._computed.register(path, getter, list(dependencies or ()))

    # ========================================================================
    # HISTORY
    # ========================================================================

    def undo(self) -> bool:
        """Restore the previous history entry. False if there is none."""
        return self._step("undo")

    def redo(self) -> bool:
        """Restore the next history entry. False if there is none."""
        return self._step("redo")

    def _step(self, direction: str) -> bool:
        if not self.config.enable_history:
            logger.warning(f"Cannot {direction}: history is disabled")
            return False

        try:
            if direction == "undo":
                entry = self._history.undo()
            else:
                entry = self._history.redo()
        except HistoryUnavailable as e:
            logger.warning(str(e))
            return False

        self._restore(entry.restore_copy())
        logger.info(
            f"{direction.capitalize()}: {entry.action} index={self._history.index}"
        )
        return True

    def can_undo(self) -> bool:
        return self.config.enable_history and self._history.can_undo()

    def can_redo(self) -> bool:
        return self.config.enable_history and self._history.can_redo()

    def get_history_info(self) -> Dict[str, Any]:
        """``{"can_undo", "can_redo", "current_index", "size"}``"""
        info = self._history.info()
        info["can_undo"] = self.can_undo()
        info["can_redo"] = self.can_redo()
        return info

    def checkpoint(self, label: str = "checkpoint") -> None:
        """Record the current state as a history entry without mutating."""
        if self.config.enable_history and not self._restoring:
            self._history.record(take_snapshot(self._values), label)

    def clear_history(self) -> None:
        self._history.clear()
        logger.debug("History cleared")

    def history(self, limit: int = 100) -> List[HistoryEntry]:
        """Most recent history entries, oldest first."""
        return list(self._history.entries)[-limit:]

    @property
    def is_restoring(self) -> bool:
        return self._restoring

    def _restore(self, snapshot: Dict[str, Any]) -> None:
        """
        Replace the raw map with ``snapshot`` and tell everyone.

        ``snapshot`` must already be a private copy. Writes made by observers
        while the restore runs are applied but neither recorded nor saved.
        """
        for path in [p for p in snapshot if p in self._computed]:
            logger.warning(f"Ignoring restored value for computed path: {path}")
            del snapshot[path]

        self._restoring = True
        try:
            previous = self._values
            self._values = snapshot

            changed = [
                path
                for path, value in snapshot.items()
                if path not in previous or not _values_equal(previous[path], value)
            ]
            removed = [path for path in previous if path not in snapshot]

            self._computed.invalidate(*changed, *removed)
            self._computed.invalidate_all()

            for path, value in list(snapshot.items()):
                self._bus.notify(path, value, previous.get(path))
            for path in removed:
                self._bus.notify(path, None, previous[path])
        finally:
            self._restoring = False

        logger.info("State restored from snapshot")

    # ========================================================================
    # PERSISTENCE
    # ========================================================================

    def _persist(self) -> None:
        try:
            self._persistence.save(take_snapshot(self._values))
            logger.debug("State persisted")
        except Exception as e:
            logger.error(f"Failed to persist state: {e}")

    def load(self) -> bool:
        """
        Replace the raw entries with the persisted snapshot.

        Returns:
            True if a snapshot was found and applied
        """
        try:
            snapshot = self._persistence.load()
        except Exception as e:
            logger.error(f"Failed to load persisted state: {e}")
            return False

        if snapshot is None:
            logger.info("No persisted state found")
            return False

        self._restore(take_snapshot(snapshot))
        logger.info(f"State loaded: paths={len(self._values)}")
        return True

    def clear_persisted(self) -> None:
        try:
            self._persistence.clear()
            logger.info("Persisted state cleared")
        except Exception as e:
            logger.error(f"Failed to clear persisted state: {e}")

    @property
    def persistence(self) -> PersistenceAdapter:
        return self._persistence

    # ========================================================================
    # UTILITY METHODS
    # ========================================================================

    def get_all(self) -> Dict[str, Any]:
        """Deep copy of every raw entry; computed values are not included."""
        return take_snapshot(self._values)

    def keys(self) -> List[str]:
        return list(self._values.keys()) + self._computed.paths()

    def reset(self) -> None:
        """
        Drop every raw entry, the history and all computed caches.

        Every formerly known path is notified with ``(None, old_value)``.
        The persisted snapshot is cleared when persistence is enabled.
        """
        previous = self._values
        cached = {}
        for path in self._computed.paths():
            definition = self._computed.definition(path)
            cached[path] = definition.cached_value()

        self._values = {}
        self._history.clear()
        self._computed.invalidate_all()
        logger.info("State reset to initial values")

        for path, old_value in previous.items():
            self._bus.notify(path, None, old_value)
        for path, old_value in cached.items():
            self._bus.notify(path, None, old_value)

        if self.config.enable_persistence:
            self.clear_persisted()

    def stats(self) -> Dict[str, Any]:
        return {
            "total_keys": len(self._values) + len(self._computed),
            "source_keys": len(self._values),
            "computed_keys": len(self._computed),
            "computations": sum(
                self._computed.definition(path).compute_count
                for path in self._computed.paths()
            ),
            "observers": self._bus.subscriber_count(),
            "observer_errors": self._bus.error_count,
            "history_size": len(self._history),
            "history_index": self._history.index,
        }

    def __len__(self) -> int:
        """Number of raw and computed paths."""
        return len(self._values) + len(self._computed)

    def __contains__(self, path: str) -> bool:
        return self.has(path)

    def __getitem__(self, path: str) -> Any:
        if not self.has(path):
            raise KeyError(f"Key not found: {path}")
        return self.get(path)

    def __setitem__(self, path: str, value: Any) -> None:
        self.set(path, value)

    def __delitem__(self, path: str) -> None:
        if not self.delete(path):
            raise KeyError(f"Key not found: {path}")

    def __repr__(self) -> str:
        return f"KeyedStore(keys={len(self.keys())})"
