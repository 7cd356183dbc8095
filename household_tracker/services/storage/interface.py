"""
Abstract Storage Interface

DESIGN DECISION: The engine never talks to a database. It depends on two
narrow interfaces implemented by the persistence collaborator:
1. RecordSource - fetch actual records and recurring templates
2. RecordWriter - create/update/delete actual records (UI-driven)

This allows us to:
1. Keep the expansion engine pure and testable
2. Use in-memory storage for testing
3. Add retry or caching layers transparently

The interface is intentionally simple - we're not building a full ORM.
"""

from abc import ABC, abstractmethod

from household_tracker.models.audit import AuditEvent
from household_tracker.models.finance import (
    ActualRecord,
    EventKind,
    RecurringTemplate,
)


class RecordSource(ABC):
    """
    Read side of the persistence collaborator.

    Both fetches are the engine's only suspension points.
    """

    @abstractmethod
    async def fetch_actual_records(
        self,
        user_id: str,
        kind: EventKind,
    ) -> list[ActualRecord]:
        """
        Fetch every recorded event of one kind for a user.

        Args:
            user_id: Owning user
            kind: Event kind (paycheck, deposit)

        Returns:
            Records in storage order

        Raises:
            StorageError: On network or storage failure
        """
        pass

    @abstractmethod
    async def fetch_recurring_templates(
        self,
        user_id: str,
        kind: EventKind,
    ) -> list[RecurringTemplate]:
        """
        Fetch every recurrence template of one kind for a user.

        Args:
            user_id: Owning user
            kind: Event kind (paycheck, deposit)

        Returns:
            Templates ordered by start date

        Raises:
            StorageError: On network or storage failure
        """
        pass


class RecordWriter(ABC):
    """
    Write side of the persistence collaborator.

    The engine never calls these itself. The UI does, through
    RecordMutationFlow, which then refreshes the matching aggregator.
    """

    @abstractmethod
    async def create_record(
        self,
        kind: EventKind,
        record: ActualRecord,
    ) -> ActualRecord:
        """
        Persist a new record.

        Raises:
            DuplicateError: If a record with this id already exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_record(
        self,
        kind: EventKind,
        record: ActualRecord,
    ) -> ActualRecord:
        """
        Replace an existing record.

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_record(
        self,
        kind: EventKind,
        user_id: str,
        record_id: str,
    ) -> bool:
        """
        Delete a record by ID.

        Returns:
            True if a record was deleted, False if it did not exist
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(IOError):
    """Base exception for storage operations (network or storage failure)."""
    pass


class FetchError(StorageError):
    """Reading records or templates failed."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
