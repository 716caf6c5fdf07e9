"""
showtrack - reactive state for episodic show schedules

A key-path store with declared-dependency computed values, synchronous
observers, snapshot undo/redo and best-effort persistence, plus a show
database façade built on top of it.
"""

from .errors import (
    ComputationError,
    ConfigurationError,
    HistoryUnavailable,
    ObserverError,
    PersistenceError,
    StoreError,
)
from .persistence import (
    BlobBackend,
    FileBlobBackend,
    JsonPersistenceAdapter,
    MemoryBlobBackend,
    PersistenceAdapter,
)
from .store import KeyedStore, StoreConfig
from .tracker import ShowTracker
from .util import WILDCARD, HistoryEntry, HistoryManager, ObserverBus

__version__ = "0.1.0"

__all__ = [
    # Store
    "KeyedStore",
    "StoreConfig",
    "WILDCARD",
    # Building blocks
    "ObserverBus",
    "HistoryManager",
    "HistoryEntry",
    # Persistence
    "PersistenceAdapter",
    "JsonPersistenceAdapter",
    "BlobBackend",
    "MemoryBlobBackend",
    "FileBlobBackend",
    # Domain
    "ShowTracker",
    # Exceptions
    "StoreError",
    "ConfigurationError",
    "ComputationError",
    "PersistenceError",
    "ObserverError",
    "HistoryUnavailable",
]
