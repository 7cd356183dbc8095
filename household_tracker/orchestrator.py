"""
Main Orchestrator for Household Tracker

This module ties together all the components and defines:
1. Component wiring (one aggregator per event kind, sharing one codec)
2. The record mutation flow (write → audit → refresh the matching aggregator)

DESIGN DECISION: The engine never writes. The UI saves or deletes a
record through RecordMutationFlow, and the flow is responsible for
telling the engine to refresh so the published list reflects the change.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from household_tracker.audit import AuditLogger, configure_logging, create_correlation_id
from household_tracker.config import get_settings
from household_tracker.engine import RecurringEventAggregator, TimezoneDateCodec
from household_tracker.models.audit import AuditEventBuilder
from household_tracker.models.finance import (
    DEPOSIT,
    PAYCHECK,
    ActualRecord,
    EventKind,
    MergePolicy,
    RefreshResult,
    utc_now,
)
from household_tracker.services.storage import (
    AuditStorageInterface,
    RecordSource,
    RecordWriter,
    RetryingRecordSource,
)


class RecordMutationFlow:
    """
    Passes record mutations through to the persistence layer and then
    refreshes the aggregator for that record's kind.

    Flow:
    1. Write → RecordWriter (errors propagate to the UI unchanged)
    2. Audit → the mutation is logged as a user action
    3. Refresh → recorded events of that kind are refetched

    Returns the written record (or deletion flag) together with the
    RefreshResult, so the UI can tell "saved but list is stale" apart
    from "saved and up to date".
    """

    def __init__(
        self,
        writer: RecordWriter,
        aggregators: dict[str, RecurringEventAggregator],
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._writer = writer
        self._aggregators = aggregators
        self._audit_logger = audit_logger

    def _aggregator_for(self, kind: EventKind) -> RecurringEventAggregator:
        try:
            return self._aggregators[kind.key]
        except KeyError:
            raise ValueError(f"No aggregator registered for {kind.key}")

    async def _after_mutation(
        self,
        aggregator: RecurringEventAggregator,
        user_id: str,
        record_id: str,
        action: str,
        correlation_id: UUID,
    ) -> RefreshResult:
        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.record_mutated(
                kind=aggregator.kind.key,
                user_id=user_id,
                record_id=record_id,
                action=action,
                correlation_id=correlation_id,
            ))
        return await aggregator.refresh_actual_records(correlation_id)

    async def create_record(
        self,
        kind: EventKind,
        record: ActualRecord,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ActualRecord, RefreshResult]:
        """Save a new paycheck/deposit and refresh."""
        correlation_id = correlation_id or create_correlation_id()
        aggregator = self._aggregator_for(kind)
        saved = await self._writer.create_record(kind, record)
        result = await self._after_mutation(
            aggregator, saved.user_id, saved.id, "created", correlation_id
        )
        return saved, result

    async def update_record(
        self,
        kind: EventKind,
        record: ActualRecord,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ActualRecord, RefreshResult]:
        """Replace an existing paycheck/deposit and refresh."""
        correlation_id = correlation_id or create_correlation_id()
        aggregator = self._aggregator_for(kind)
        saved = await self._writer.update_record(kind, record)
        result = await self._after_mutation(
            aggregator, saved.user_id, saved.id, "updated", correlation_id
        )
        return saved, result

    async def delete_record(
        self,
        kind: EventKind,
        user_id: str,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[bool, RefreshResult]:
        """Delete a paycheck/deposit and refresh."""
        correlation_id = correlation_id or create_correlation_id()
        aggregator = self._aggregator_for(kind)
        deleted = await self._writer.delete_record(kind, user_id, record_id)
        result = await self._after_mutation(
            aggregator, user_id, record_id, "deleted", correlation_id
        )
        return deleted, result


@dataclass
class TrackerComponents:
    """Everything the UI layer needs for one signed-in user."""

    paychecks: RecurringEventAggregator
    deposits: RecurringEventAggregator
    mutations: RecordMutationFlow
    audit_logger: AuditLogger

    @property
    def aggregators(self) -> list[RecurringEventAggregator]:
        return [self.paychecks, self.deposits]

    async def initialize(self) -> list[RefreshResult]:
        """First load of every aggregator."""
        return [await aggregator.initialize() for aggregator in self.aggregators]


def create_tracker_components(
    user_id: str,
    source: RecordSource,
    writer: RecordWriter,
    audit_storage: Optional[AuditStorageInterface] = None,
    clock: Callable[[], datetime] = utc_now,
) -> TrackerComponents:
    """
    Factory function to create all engine components for one user.

    Reads window length, merge policy, timezone, retry and log level
    settings from configuration. Retries wrap the source only when more
    than one attempt is configured.
    """
    settings = get_settings()
    tz_settings = settings.timezone
    engine_settings = settings.engine

    configure_logging(settings.app.log_level)

    codec = TimezoneDateCodec(
        timezone_name=tz_settings.device_timezone,
        fallback_timezone=tz_settings.fallback_timezone,
    )
    audit_logger = AuditLogger(audit_storage)

    if engine_settings.fetch_retry_attempts > 1:
        source = RetryingRecordSource(
            source,
            attempts=engine_settings.fetch_retry_attempts,
            max_wait_seconds=engine_settings.fetch_retry_max_wait_seconds,
        )

    def build(kind: EventKind) -> RecurringEventAggregator:
        return RecurringEventAggregator(
            kind=kind,
            user_id=user_id,
            source=source,
            codec=codec,
            window_weeks=engine_settings.window_weeks,
            merge_policy=MergePolicy(engine_settings.merge_policy),
            clock=clock,
            audit_logger=audit_logger,
        )

    paychecks = build(PAYCHECK)
    deposits = build(DEPOSIT)

    mutations = RecordMutationFlow(
        writer=writer,
        aggregators={PAYCHECK.key: paychecks, DEPOSIT.key: deposits},
        audit_logger=audit_logger,
    )

    return TrackerComponents(
        paychecks=paychecks,
        deposits=deposits,
        mutations=mutations,
        audit_logger=audit_logger,
    )
