"""
Shared fixtures for Household Tracker tests.

No real storage or network: the persistence collaborator is replaced by
FakeSource (controllable failures and ordering) or InMemoryFinanceStorage.
"""

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from household_tracker.config import get_settings
from household_tracker.engine import TimezoneDateCodec
from household_tracker.models.finance import (
    ActualRecord,
    EventKind,
    RecurrenceUnit,
    RecurringTemplate,
)
from household_tracker.services.storage import RecordSource

USER_ID = "user-1"


def make_template(
    template_id: str = "tpl-1",
    start_date: date = date(2024, 1, 1),
    unit: RecurrenceUnit = RecurrenceUnit.WEEK,
    interval: int = 2,
    end_date: Optional[date] = None,
    amount: str = "1500.00",
    **anchors,
) -> RecurringTemplate:
    return RecurringTemplate(
        id=template_id,
        user_id=USER_ID,
        amount=Decimal(amount),
        start_date=start_date,
        end_date=end_date,
        recurrence_unit=unit,
        interval=interval,
        **anchors,
    )


def make_record(
    record_id: str = "rec-1",
    on: Optional[date] = date(2024, 1, 15),
    amount: str = "1480.25",
    **fields,
) -> ActualRecord:
    return ActualRecord(
        id=record_id,
        user_id=USER_ID,
        amount=Decimal(amount),
        date=on,
        created_at=datetime(2024, 1, 15, 18, 0, tzinfo=timezone.utc),
        **fields,
    )


class FixedClock:
    """Injectable clock; move it by assigning .now."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeSource(RecordSource):
    """
    RecordSource with scripted behaviour.

    Each fetch captures the data and error configured at call time, then
    optionally waits on the next queued gate before returning.
    """

    def __init__(self, records=None, templates=None):
        self.records: list[ActualRecord] = list(records or [])
        self.templates: list[RecurringTemplate] = list(templates or [])
        self.record_error: Optional[Exception] = None
        self.template_error: Optional[Exception] = None
        self.record_gates: list[asyncio.Event] = []
        self.record_calls = 0
        self.template_calls = 0

    async def fetch_actual_records(self, user_id: str, kind: EventKind) -> list[ActualRecord]:
        self.record_calls += 1
        snapshot = [r for r in self.records if r.user_id == user_id]
        error = self.record_error
        if self.record_gates:
            await self.record_gates.pop(0).wait()
        if error:
            raise error
        return snapshot

    async def fetch_recurring_templates(
        self, user_id: str, kind: EventKind
    ) -> list[RecurringTemplate]:
        self.template_calls += 1
        if self.template_error:
            raise self.template_error
        return [t for t in self.templates if t.user_id == user_id]


@pytest.fixture
def codec() -> TimezoneDateCodec:
    return TimezoneDateCodec("America/New_York")


@pytest.fixture
def clock() -> FixedClock:
    # 10:00 in New York on 2024-01-01
    return FixedClock(datetime(2024, 1, 1, 15, 0, tzinfo=timezone.utc))


@pytest.fixture
def biweekly_template() -> RecurringTemplate:
    return make_template()


@pytest.fixture
def clean_settings(monkeypatch):
    """Settings read from a controlled environment."""
    for name in (
        "TRACKER_DEVICE_TIMEZONE",
        "TRACKER_FALLBACK_TIMEZONE",
        "TRACKER_WINDOW_WEEKS",
        "TRACKER_MERGE_POLICY",
        "TRACKER_FETCH_RETRY_ATTEMPTS",
        "TRACKER_FETCH_RETRY_MAX_WAIT_SECONDS",
        "TRACKER_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TRACKER_DEVICE_TIMEZONE", "America/New_York")
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()
