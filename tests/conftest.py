"""
Shared pytest fixtures for showtrack tests.
"""

import pytest

from showtrack import JsonPersistenceAdapter, KeyedStore, MemoryBlobBackend, StoreConfig


@pytest.fixture
def backend():
    """In-memory blob backend shared between stores in one test."""
    return MemoryBlobBackend()


@pytest.fixture
def adapter(backend):
    return JsonPersistenceAdapter(backend, key="test-state")


@pytest.fixture
def store(adapter):
    """Provide a fresh KeyedStore persisting into the test backend."""
    return KeyedStore(StoreConfig(persistence_key="test-state"), persistence=adapter)


@pytest.fixture
def recorder():
    """Observer that records every ``(new_value, old_value, path)`` call."""

    class Recorder:
        def __init__(self):
            self.calls = []

        def __call__(self, new_value, old_value, path):
            self.calls.append((new_value, old_value, path))

        @property
        def paths(self):
            return [path for _, _, path in self.calls]

    return Recorder()


@pytest.fixture
def sample_shows():
    return {
        "1": {
            "title": "Abbott Elementary",
            "platform": "hulu",
            "network": "ABC",
            "season": 4,
            "start": "2024-10-09",
            "end": "2025-04-16",
            "episodes": 22,
            "air_day": "Wednesday",
            "returning": True,
        },
        "2": {
            "title": "St. Denis Medical",
            "platform": "peacock",
            "network": "NBC",
            "season": 1,
            "start": "2024-11-12",
            "end": "2025-03-04",
            "episodes": 18,
            "air_day": "Tuesday",
            "returning": True,
        },
        "3": {
            "title": "Tracker",
            "platform": "paramount",
            "network": "CBS",
            "season": 2,
            "start": "2024-10-13",
            "end": "2025-05-11",
            "episodes": 20,
            "air_day": "Sunday",
            "returning": False,
        },
    }
