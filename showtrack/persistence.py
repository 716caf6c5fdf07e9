"""
Persistence Adapters
====================

The store persists full snapshots of its raw entries through a
``PersistenceAdapter``. The bundled ``JsonPersistenceAdapter`` writes one JSON
object per store (path -> value, raw entries only) into a ``BlobBackend``
under a configured key.

Adapters report every failure as ``PersistenceError``. The store catches
those at the call site; persistence is best effort and never blocks an
in-memory mutation.

Usage:
    adapter = JsonPersistenceAdapter(FileBlobBackend("~/.showtrack"), "state")
    store = KeyedStore(persistence=adapter)
    store.load()
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np

from showtrack.errors import PersistenceError

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Any]


# ============================================================================
# BLOB BACKENDS
# ============================================================================


class BlobBackend(ABC):
    """Key -> serialized blob storage."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Stored blob for ``key``, or None"""
        pass

    @abstractmethod
    def set(self, key: str, blob: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove ``key``; a missing key is not an error"""
        pass


class MemoryBlobBackend(BlobBackend):
    """Process-local backend, mostly useful for tests and throwaway stores."""

    def __init__(self):
        self._blobs: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    def set(self, key: str, blob: str) -> None:
        self._blobs[key] = blob

    def remove(self, key: str) -> None:
        self._blobs.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._blobs


class FileBlobBackend(BlobBackend):
    """
    One ``<key>.json`` file per key inside ``directory``.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash mid-write leaves the previous blob intact.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, blob: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(blob)
            os.replace(tmp_name, self._path(key))
            logger.debug(f"Blob written: {self._path(key)}")
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


# ============================================================================
# ADAPTERS
# ============================================================================


class PersistenceAdapter(ABC):
    """Saves and loads full raw-entry snapshots."""

    @abstractmethod
    def save(self, snapshot: Snapshot) -> None:
        """Persist ``snapshot``; raise PersistenceError on failure"""
        pass

    @abstractmethod
    def load(self) -> Optional[Snapshot]:
        """Return the persisted snapshot, or None if nothing is stored"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove the persisted snapshot"""
        pass


def _encode_default(value: Any) -> Any:
    """JSON fallback for numpy values and sets."""
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_snapshot(snapshot: Snapshot) -> str:
    """Serialize a snapshot to the JSON wire format."""
    return json.dumps(snapshot, default=_encode_default, ensure_ascii=False)


def decode_snapshot(blob: str) -> Snapshot:
    """Parse the JSON wire format; the top level must be an object."""
    data = json.loads(blob)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


class JsonPersistenceAdapter(PersistenceAdapter):
    """
    Stores snapshots as one JSON blob under ``key`` in ``backend``.

    Serializing to JSON is also the deep copy: the stored blob shares nothing
    with live state, and every ``load`` returns fresh objects.
    """

    def __init__(self, backend: Optional[BlobBackend] = None, key: str = "state"):
        self.backend = backend if backend is not None else MemoryBlobBackend()
        self.key = key

    def save(self, snapshot: Snapshot) -> None:
        try:
            blob = encode_snapshot(snapshot)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Cannot serialize state for '{self.key}': {e}") from e

        try:
            self.backend.set(self.key, blob)
        except Exception as e:
            raise PersistenceError(f"Cannot write state for '{self.key}': {e}") from e

    def load(self) -> Optional[Snapshot]:
        try:
            blob = self.backend.get(self.key)
        except Exception as e:
            raise PersistenceError(f"Cannot read state for '{self.key}': {e}") from e

        if not blob:
            logger.debug(f"No stored state for key: {self.key}")
            return None

        try:
            return decode_snapshot(blob)
        except ValueError as e:
            raise PersistenceError(f"Corrupt state for '{self.key}': {e}") from e

    def clear(self) -> None:
        try:
            self.backend.remove(self.key)
        except Exception as e:
            raise PersistenceError(f"Cannot clear state for '{self.key}': {e}") from e

    def __repr__(self) -> str:
        return f"JsonPersistenceAdapter({type(self.backend).__name__}, key={self.key!r})"
