"""
Observer Bus
============

Path-keyed subscription registry with a reserved wildcard path.

Notification is synchronous: ``notify`` runs every callback registered at the
path (in registration order), then every wildcard callback. A failing callback
is logged and skipped; it never stops its siblings and never reaches the code
that triggered the notification.

Usage:
    bus = ObserverBus()
    unsubscribe = bus.subscribe("shows", lambda new, old, path: render(new))
    bus.subscribe(WILDCARD, lambda new, old, path: print(path))

    bus.notify("shows", {...}, None)  # "shows" observer first, then wildcard
    unsubscribe()
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from showtrack.errors import ObserverError

logger = logging.getLogger(__name__)

# Reserved path that receives every notification
WILDCARD = "*"

Observer = Callable[[Any, Any, str], None]


class ObserverBus:
    """Synchronous fan-out of ``(new_value, old_value, path)`` notifications."""

    def __init__(self):
        self._observers: Dict[str, List[Observer]] = defaultdict(list)
        self._error_count = 0

    def subscribe(self, path: str, callback: Observer) -> Callable[[], None]:
        """
        Register ``callback`` under ``path``.

        Args:
            path: Path to observe, or ``WILDCARD`` for every path
            callback: Called as ``callback(new_value, old_value, path)``

        Returns:
            A closure that removes this registration. Calling it more than
            once is harmless.
        """
        self._observers[path].append(callback)
        logger.debug(f"Observer subscribed to: {path}")

        subscribed = True

        def unsubscribe():
            nonlocal subscribed
            if subscribed:
                subscribed = False
                self.unsubscribe(path, callback)

        return unsubscribe

    def unsubscribe(self, path: str, callback: Observer) -> bool:
        """Remove one registration of ``callback`` at ``path``."""
        observers = self._observers.get(path)
        if not observers or callback not in observers:
            return False

        observers.remove(callback)
        logger.debug(f"Observer unsubscribed from: {path}")

        # Drop empty lists so subscriber_count stays accurate
        if not observers:
            del self._observers[path]
        return True

    def notify(self, path: str, new_value: Any, old_value: Any) -> None:
        """Invoke path observers, then wildcard observers."""
        # Copy so callbacks may unsubscribe while we iterate
        path_observers = list(self._observers.get(path, ()))
        if path_observers:
            logger.debug(f"Notifying {len(path_observers)} observers for: {path}")
        for callback in path_observers:
            self._invoke(callback, path, new_value, old_value)

        if path == WILDCARD:
            return

        for callback in list(self._observers.get(WILDCARD, ())):
            self._invoke(callback, path, new_value, old_value)

    def _invoke(
        self, callback: Observer, path: str, new_value: Any, old_value: Any
    ) -> None:
        try:
            callback(new_value, old_value, path)
        except Exception as e:
            self._error_count += 1
            logger.error(str(ObserverError(path, e)), exc_info=True)

    def subscriber_count(self, path: Optional[str] = None) -> int:
        """Number of registrations at ``path``, or across all paths."""
        if path is not None:
            return len(self._observers.get(path, ()))
        return sum(len(observers) for observers in self._observers.values())

    def paths(self) -> List[str]:
        """Paths that currently have at least one observer."""
        return [path for path, observers in self._observers.items() if observers]

    @property
    def error_count(self) -> int:
        """Number of observer callbacks that raised so far."""
        return self._error_count

    def clear(self) -> None:
        self._observers.clear()
