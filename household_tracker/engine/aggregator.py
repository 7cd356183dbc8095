"""
Recurring Event Aggregator

Owns the published list for one event kind (paycheck, deposit) and one
user. It:
1. Fetches recorded events and recurrence templates from a RecordSource
2. Expands every template over the rolling window [today, today + N weeks)
3. Merges the result and publishes it to get_instances() and subscribers

STATE MACHINE:
    UNINITIALIZED -> LOADING -> READY, and READY -> LOADING on every refresh.
There is no error state. A failed fetch leaves the last published list in
place, marks it stale, and is reported through the RefreshResult. The list
stays stale until that same source is fetched successfully.

ORDERING: every fetch gets a per-source sequence number. A fetch that
completes after a newer fetch of the same source has already been stored
is discarded, so the stored snapshot is always the most recently issued
one that succeeded.

"Now" is read from an injectable clock at recompute time, never cached:
two recomputes over the same snapshots can differ once the day changes.
"""

from datetime import date, datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from household_tracker.audit import AuditLogger
from household_tracker.engine.dates import TimezoneDateCodec
from household_tracker.engine.merger import merge
from household_tracker.engine.recurrence import InvalidRecurrenceConfigError, expand
from household_tracker.engine.synthesizer import synthesize_all
from household_tracker.models.audit import AuditEvent, AuditEventBuilder
from household_tracker.models.finance import (
    ActualRecord,
    AggregatorState,
    EventKind,
    Instance,
    MergePolicy,
    RecurringTemplate,
    RefreshResult,
    utc_now,
)
from household_tracker.services.storage import RecordSource

RECORDS = "records"
TEMPLATES = "templates"

DEFAULT_WINDOW_WEEKS = 6

InstancesCallback = Callable[[list[Instance]], None]


def _content(instances: list[Instance]) -> list[dict]:
    # Generated created_at is stamped at recompute time and carries no data
    return [
        i.model_dump(exclude={"created_at"} if i.is_generated else None)
        for i in instances
    ]


class RecurringEventAggregator:
    """
    Publishes the merged recorded + generated list for one event kind.

    Instantiate once per kind:
        paychecks = RecurringEventAggregator(PAYCHECK, user_id, storage)
        deposits = RecurringEventAggregator(DEPOSIT, user_id, storage)
    """

    def __init__(
        self,
        kind: EventKind,
        user_id: str,
        source: RecordSource,
        codec: Optional[TimezoneDateCodec] = None,
        window_weeks: int = DEFAULT_WINDOW_WEEKS,
        merge_policy: MergePolicy = MergePolicy.KEEP_ALL,
        clock: Callable[[], datetime] = utc_now,
        audit_logger: Optional[AuditLogger] = None,
    ):
        if window_weeks < 1:
            raise ValueError("window_weeks must be at least 1")

        self._kind = kind
        self._user_id = user_id
        self._source = source
        self._codec = codec or TimezoneDateCodec()
        self._window_weeks = window_weeks
        self._merge_policy = merge_policy
        self._clock = clock
        self._audit_logger = audit_logger

        # Latest stored snapshots (None until the first successful fetch)
        self._records: Optional[tuple[ActualRecord, ...]] = None
        self._templates: Optional[tuple[RecurringTemplate, ...]] = None

        self._issued = {RECORDS: 0, TEMPLATES: 0}
        self._stored = {RECORDS: 0, TEMPLATES: 0}
        self._refresh_sequence = 0
        self._in_flight = 0

        self._state = AggregatorState.UNINITIALIZED
        self._instances: list[Instance] = []
        self._published_window: Optional[tuple[date, date]] = None
        # Set while the stored snapshots have no successfully published list
        self._needs_recompute = False
        # Sources whose latest fetch failed, with the failure
        self._failed: dict[str, Exception] = {}

        self._subscribers: list[InstancesCallback] = []
        self._pending_events: list[AuditEvent] = []

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def kind(self) -> EventKind:
        return self._kind

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def state(self) -> AggregatorState:
        return self._state

    @property
    def last_error(self) -> Optional[Exception]:
        """The most recent fetch failure that made the published list stale, if any."""
        return next(reversed(self._failed.values()), None)

    @property
    def published_window(self) -> Optional[tuple[date, date]]:
        """Inclusive window the published list was computed for."""
        return self._published_window

    def get_instances(self) -> list[Instance]:
        """The current merged list (a copy)."""
        return list(self._instances)

    def is_loading(self) -> bool:
        return self._state == AggregatorState.LOADING

    def is_stale(self) -> bool:
        """
        True while a source's latest fetch has failed, or once a refresh has
        finished without both snapshots ever having been loaded.
        """
        if self._failed:
            return True
        return self._state == AggregatorState.READY and not self._loaded()

    def current_window(self, now: Optional[datetime] = None) -> tuple[date, date]:
        """
        Inclusive calendar window for instant `now`.

        [today, today + N weeks) as calendar dates, i.e. the last included
        day is today + N weeks - 1 day, with "today" taken in the device
        timezone.
        """
        today = self._codec.local_today(now or self._clock())
        return today, today + timedelta(weeks=self._window_weeks) - timedelta(days=1)

    def subscribe(self, callback: InstancesCallback) -> Callable[[], None]:
        """
        Call `callback` with the new list every time one is published.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Refresh entry points
    # -------------------------------------------------------------------------

    async def initialize(self, correlation_id: Optional[UUID] = None) -> RefreshResult:
        """First load: records, then templates, then the first published list."""
        return await self.refresh(correlation_id)

    async def refresh(self, correlation_id: Optional[UUID] = None) -> RefreshResult:
        """Refetch records and templates (sequentially) and republish."""
        return await self._run_refresh([RECORDS, TEMPLATES], correlation_id)

    async def refresh_actual_records(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> RefreshResult:
        """Refetch only recorded events, e.g. after the user saved a paycheck."""
        return await self._run_refresh([RECORDS], correlation_id)

    async def refresh_templates(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> RefreshResult:
        """Refetch only recurrence templates."""
        return await self._run_refresh([TEMPLATES], correlation_id)

    def recompute(self, now: Optional[datetime] = None) -> list[Instance]:
        """
        Recompute and publish the merged list from the stored snapshots.

        Does nothing until both snapshots have been loaded at least once.
        Subscribers are only notified when the merged list differs from the
        one already published.

        Raises:
            InvalidRecurrenceConfigError: a stored template cannot be expanded;
                the previously published list is kept
        """
        if self._records is None or self._templates is None:
            return self.get_instances()

        now = now or self._clock()
        window_start, window_end = self.current_window(now)

        generated: list[Instance] = []
        for template in self._templates:
            try:
                dates = expand(template, window_start, window_end)
            except InvalidRecurrenceConfigError as e:
                self._needs_recompute = True
                self._pending_events.append(AuditEventBuilder.recurrence_config_invalid(
                    kind=self._kind.key,
                    user_id=self._user_id,
                    template_id=template.id,
                    error_message=str(e),
                ))
                raise
            generated.extend(synthesize_all(template, dates, self._kind, now))

        merged = merge(self._records, generated, self._kind, self._merge_policy)

        changed = (
            self._published_window is None
            or _content(merged) != _content(self._instances)
        )
        self._instances = merged
        self._needs_recompute = False
        self._published_window = (window_start, window_end)
        self._pending_events.append(AuditEventBuilder.instances_recomputed(
            kind=self._kind.key,
            user_id=self._user_id,
            window_start=window_start,
            window_end=window_end,
            actual_count=len(self._records),
            generated_count=len(generated),
        ))

        if changed:
            for callback in list(self._subscribers):
                callback(self.get_instances())

        return self.get_instances()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _run_refresh(
        self,
        sources: list[str],
        correlation_id: Optional[UUID],
    ) -> RefreshResult:
        self._refresh_sequence += 1
        sequence = self._refresh_sequence
        self._in_flight += 1
        self._state = AggregatorState.LOADING

        self._pending_events.append(AuditEventBuilder.refresh_started(
            kind=self._kind.key,
            user_id=self._user_id,
            sources=sources,
            sequence=sequence,
            correlation_id=correlation_id,
        ))

        try:
            changed = False
            for source in sources:
                try:
                    changed = await self._fetch(source) or changed
                except OSError as e:
                    # StorageError, ConnectionError, TimeoutError ...
                    return self._fetch_failed(source, e, sequence, correlation_id)
                self._failed.pop(source, None)

            if not self._loaded():
                return self._not_loaded(sequence, correlation_id)

            now = self._clock()
            if (
                changed
                or self._needs_recompute
                or self._published_window != self.current_window(now)
            ):
                self.recompute(now)

            self._pending_events.append(AuditEventBuilder.refresh_completed(
                kind=self._kind.key,
                user_id=self._user_id,
                sequence=sequence,
                record_count=len(self._records),
                template_count=len(self._templates),
                correlation_id=correlation_id,
            ))
            return RefreshResult(success=True, stale=self.is_stale(), sequence=sequence)
        except InvalidRecurrenceConfigError:
            raise
        except Exception as e:
            self._pending_events.append(AuditEventBuilder.system_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"kind": self._kind.key, "sources": sources, "sequence": sequence},
                correlation_id=correlation_id,
            ))
            raise
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._state = AggregatorState.READY
            await self._flush_audit()

    async def _fetch(self, source: str) -> bool:
        """
        Fetch one source and store it unless a newer fetch already landed.

        Returns True if the stored snapshot changed by value.
        """
        self._issued[source] += 1
        ticket = self._issued[source]

        try:
            if source == RECORDS:
                result = tuple(
                    await self._source.fetch_actual_records(self._user_id, self._kind)
                )
            else:
                result = tuple(
                    await self._source.fetch_recurring_templates(self._user_id, self._kind)
                )
        except OSError:
            if ticket < self._stored[source]:
                # A newer fetch already succeeded; this failure is moot
                return False
            raise

        if ticket < self._stored[source]:
            self._pending_events.append(AuditEventBuilder.stale_result_discarded(
                kind=self._kind.key,
                user_id=self._user_id,
                source=source,
                sequence=ticket,
                latest_sequence=self._stored[source],
            ))
            return False

        self._stored[source] = ticket
        if source == RECORDS:
            changed = result != self._records
            self._records = result
        else:
            changed = result != self._templates
            self._templates = result
        return changed

    def _fetch_failed(
        self,
        source: str,
        error: OSError,
        sequence: int,
        correlation_id: Optional[UUID],
    ) -> RefreshResult:
        self._failed[source] = error
        self._pending_events.append(AuditEventBuilder.refresh_failed(
            kind=self._kind.key,
            user_id=self._user_id,
            source=source,
            error_type=type(error).__name__,
            error_message=str(error),
            sequence=sequence,
            correlation_id=correlation_id,
        ))
        return RefreshResult(
            success=False,
            stale=True,
            error_type=type(error).__name__,
            error_message=str(error),
            sequence=sequence,
        )

    def _loaded(self) -> bool:
        return self._records is not None and self._templates is not None

    def _not_loaded(
        self,
        sequence: int,
        correlation_id: Optional[UUID],
    ) -> RefreshResult:
        """A partial refresh succeeded but the other source has never loaded."""
        missing = RECORDS if self._records is None else TEMPLATES
        error = self._failed.get(missing)
        error_type = type(error).__name__ if error else "NotLoaded"
        error_message = str(error) if error else f"{missing} have not been loaded yet"
        self._pending_events.append(AuditEventBuilder.refresh_failed(
            kind=self._kind.key,
            user_id=self._user_id,
            source=missing,
            error_type=error_type,
            error_message=error_message,
            sequence=sequence,
            correlation_id=correlation_id,
        ))
        return RefreshResult(
            success=False,
            stale=True,
            error_type=error_type,
            error_message=error_message,
            sequence=sequence,
        )

    async def _flush_audit(self) -> None:
        events, self._pending_events = self._pending_events, []
        if self._audit_logger:
            for event in events:
                await self._audit_logger.log(event)
