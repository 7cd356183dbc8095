"""
In-Memory Storage Implementation

Keeps records and templates as plain JSON-ready rows, the way a real
backend would hold them, and re-validates every row on the way out.
Used by tests, demos, and anywhere a backend is not configured.

TRADEOFFS:
- Nothing survives the process (fine for tests and demos)
- No concurrency control (the engine is single-threaded anyway)
"""

from typing import Optional

from household_tracker.models.audit import AuditEvent
from household_tracker.models.finance import (
    ActualRecord,
    EventKind,
    RecurringTemplate,
)
from household_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RecordSource,
    RecordWriter,
)


class InMemoryFinanceStorage(RecordSource, RecordWriter):
    """
    Record and template storage held in dictionaries.

    Rows are keyed by event kind, then by id. Dict insertion order is the
    storage order returned by fetch_actual_records.
    """

    def __init__(self):
        self._records: dict[str, dict[str, dict]] = {}
        self._templates: dict[str, dict[str, dict]] = {}

    def _record_rows(self, kind: EventKind) -> dict[str, dict]:
        return self._records.setdefault(kind.key, {})

    def _template_rows(self, kind: EventKind) -> dict[str, dict]:
        return self._templates.setdefault(kind.key, {})

    # -------------------------------------------------------------------------
    # Seeding (templates are managed outside the engine)
    # -------------------------------------------------------------------------

    def add_template(self, kind: EventKind, template: RecurringTemplate) -> None:
        """Store or replace a recurrence template."""
        self._template_rows(kind)[template.id] = template.model_dump(mode="json")

    def remove_template(self, kind: EventKind, template_id: str) -> bool:
        """Remove a recurrence template. Returns False if it was not stored."""
        return self._template_rows(kind).pop(template_id, None) is not None

    # -------------------------------------------------------------------------
    # RecordSource
    # -------------------------------------------------------------------------

    async def fetch_actual_records(
        self,
        user_id: str,
        kind: EventKind,
    ) -> list[ActualRecord]:
        """Fetch a user's records in insertion order."""
        return [
            ActualRecord.model_validate(row)
            for row in self._record_rows(kind).values()
            if row["user_id"] == user_id
        ]

    async def fetch_recurring_templates(
        self,
        user_id: str,
        kind: EventKind,
    ) -> list[RecurringTemplate]:
        """Fetch a user's templates ordered by start date."""
        templates = [
            RecurringTemplate.model_validate(row)
            for row in self._template_rows(kind).values()
            if row["user_id"] == user_id
        ]
        templates.sort(key=lambda t: t.start_date)
        return templates

    # -------------------------------------------------------------------------
    # RecordWriter
    # -------------------------------------------------------------------------

    async def create_record(
        self,
        kind: EventKind,
        record: ActualRecord,
    ) -> ActualRecord:
        """Insert a new record."""
        rows = self._record_rows(kind)
        if record.id in rows:
            raise DuplicateError(f"{kind.label} already exists: {record.id}")
        rows[record.id] = record.model_dump(mode="json")
        return record

    async def update_record(
        self,
        kind: EventKind,
        record: ActualRecord,
    ) -> ActualRecord:
        """Replace an existing record owned by the same user."""
        rows = self._record_rows(kind)
        existing = rows.get(record.id)
        if existing is None or existing["user_id"] != record.user_id:
            raise NotFoundError(f"{kind.label} not found: {record.id}")
        rows[record.id] = record.model_dump(mode="json")
        return record

    async def delete_record(
        self,
        kind: EventKind,
        user_id: str,
        record_id: str,
    ) -> bool:
        """Delete a record by ID."""
        rows = self._record_rows(kind)
        existing = rows.get(record_id)
        if existing is None or existing["user_id"] != user_id:
            return False
        del rows[record_id]
        return True

    async def get_record(
        self,
        kind: EventKind,
        record_id: str,
    ) -> Optional[ActualRecord]:
        """Retrieve a single record, or None."""
        row = self._record_rows(kind).get(record_id)
        return ActualRecord.model_validate(row) if row else None


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
