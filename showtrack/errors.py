"""
Exception hierarchy for the showtrack store.

Every failure mode inside the store has its own type so that log records and
tests can tell them apart. The building blocks raise them; ``KeyedStore``
lets only ``ConfigurationError`` reach its callers and catches the others
where they happen, degrading a single feature.
"""


class StoreError(Exception):
    """Base exception for all store failures."""


class ConfigurationError(StoreError):
    """Raised for an invalid store configuration."""


class ComputationError(StoreError):
    """Raised when a computed value fails to evaluate."""

    def __init__(self, path: str, cause: BaseException):
        super().__init__(f"Error in '{path}': {cause}")
        self.path = path
        self.cause = cause


class PersistenceError(StoreError):
    """Raised when a snapshot cannot be saved, loaded or cleared."""


class ObserverError(StoreError):
    """Raised when a subscriber callback fails."""

    def __init__(self, path: str, cause: BaseException):
        super().__init__(f"Error in observer for '{path}': {cause}")
        self.path = path
        self.cause = cause


class HistoryUnavailable(StoreError):
    """Raised when undo or redo is requested with nothing to move to."""
