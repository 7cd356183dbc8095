"""Services package."""

from household_tracker.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    FetchError,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    NotFoundError,
    RecordSource,
    RecordWriter,
    RetryingRecordSource,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "DuplicateError",
    "FetchError",
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
    "NotFoundError",
    "RecordSource",
    "RecordWriter",
    "RetryingRecordSource",
    "StorageError",
]
