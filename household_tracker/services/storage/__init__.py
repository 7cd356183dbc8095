"""
Storage Services Package

Provides the abstract persistence interfaces the engine depends on and
an in-memory implementation. Real backends live outside this package.
"""

from household_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    FetchError,
    NotFoundError,
    RecordSource,
    RecordWriter,
    StorageError,
)
from household_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
)
from household_tracker.services.storage.retrying import RetryingRecordSource

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordSource",
    "RecordWriter",
    # Exceptions
    "DuplicateError",
    "FetchError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
    "RetryingRecordSource",
]
