"""
Building blocks of the keyed store.
"""

from .computed_registry import ComputedDefinition, ComputedRegistry
from .history import HistoryEntry, HistoryManager, take_snapshot
from .observer_bus import WILDCARD, ObserverBus

__all__ = [
    "ComputedDefinition",
    "ComputedRegistry",
    "HistoryEntry",
    "HistoryManager",
    "ObserverBus",
    "WILDCARD",
    "take_snapshot",
]
