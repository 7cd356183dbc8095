"""
Tests for the in-memory storage, the retrying source and the audit logger.
"""

import logging
from datetime import date

import pytest

from household_tracker.audit import AuditLogger, configure_logging, create_correlation_id
from household_tracker.models.audit import AuditEventBuilder
from household_tracker.models.finance import DEPOSIT, PAYCHECK
from household_tracker.services.storage import (
    DuplicateError,
    FetchError,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    NotFoundError,
    RetryingRecordSource,
    StorageError,
)

from conftest import USER_ID, FakeSource, make_record, make_template


class TestInMemoryFinanceStorage:
    """Tests for InMemoryFinanceStorage."""

    @pytest.mark.asyncio
    async def test_records_round_trip(self):
        storage = InMemoryFinanceStorage()
        record = make_record(name="Bonus", recurring_template_id="tpl-1")
        await storage.create_record(PAYCHECK, record)

        assert await storage.fetch_actual_records(USER_ID, PAYCHECK) == [record]
        assert await storage.get_record(PAYCHECK, "rec-1") == record

    @pytest.mark.asyncio
    async def test_kinds_are_separate(self):
        storage = InMemoryFinanceStorage()
        await storage.create_record(PAYCHECK, make_record())
        assert await storage.fetch_actual_records(USER_ID, DEPOSIT) == []

    @pytest.mark.asyncio
    async def test_records_filtered_by_user(self):
        storage = InMemoryFinanceStorage()
        await storage.create_record(PAYCHECK, make_record())
        assert await storage.fetch_actual_records("someone-else", PAYCHECK) == []

    @pytest.mark.asyncio
    async def test_records_keep_insertion_order(self):
        storage = InMemoryFinanceStorage()
        await storage.create_record(PAYCHECK, make_record("rec-b", on=date(2024, 2, 1)))
        await storage.create_record(PAYCHECK, make_record("rec-a", on=date(2024, 1, 1)))
        records = await storage.fetch_actual_records(USER_ID, PAYCHECK)
        assert [r.id for r in records] == ["rec-b", "rec-a"]

    @pytest.mark.asyncio
    async def test_templates_sorted_by_start_date(self):
        storage = InMemoryFinanceStorage()
        storage.add_template(PAYCHECK, make_template("tpl-late", start_date=date(2024, 3, 1)))
        storage.add_template(PAYCHECK, make_template("tpl-early", start_date=date(2023, 1, 1)))

        templates = await storage.fetch_recurring_templates(USER_ID, PAYCHECK)

        assert [t.id for t in templates] == ["tpl-early", "tpl-late"]

    @pytest.mark.asyncio
    async def test_remove_template(self):
        storage = InMemoryFinanceStorage()
        storage.add_template(PAYCHECK, make_template())
        assert storage.remove_template(PAYCHECK, "tpl-1")
        assert not storage.remove_template(PAYCHECK, "tpl-1")
        assert await storage.fetch_recurring_templates(USER_ID, PAYCHECK) == []

    @pytest.mark.asyncio
    async def test_duplicate_create(self):
        storage = InMemoryFinanceStorage()
        await storage.create_record(PAYCHECK, make_record())
        with pytest.raises(DuplicateError):
            await storage.create_record(PAYCHECK, make_record())

    @pytest.mark.asyncio
    async def test_update_requires_same_owner(self):
        storage = InMemoryFinanceStorage()
        await storage.create_record(PAYCHECK, make_record())
        intruder = make_record().model_copy(update={"user_id": "user-2"})
        with pytest.raises(NotFoundError):
            await storage.update_record(PAYCHECK, intruder)

    @pytest.mark.asyncio
    async def test_delete(self):
        storage = InMemoryFinanceStorage()
        await storage.create_record(PAYCHECK, make_record())
        assert not await storage.delete_record(PAYCHECK, "user-2", "rec-1")
        assert await storage.delete_record(PAYCHECK, USER_ID, "rec-1")
        assert await storage.get_record(PAYCHECK, "rec-1") is None

    def test_storage_errors_are_io_errors(self):
        """The engine treats every IOError as a fetch failure."""
        assert issubclass(StorageError, IOError)
        assert issubclass(FetchError, StorageError)


class TestRetryingRecordSource:
    """Tests for RetryingRecordSource."""

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        inner = FakeSource(templates=[make_template()])
        inner.template_error = FetchError("flaky")
        calls = []

        original = inner.fetch_recurring_templates

        async def flaky(user_id, kind):
            calls.append(user_id)
            if len(calls) == 3:
                inner.template_error = None
            return await original(user_id, kind)

        inner.fetch_recurring_templates = flaky
        source = RetryingRecordSource(inner, attempts=3, max_wait_seconds=0)

        templates = await source.fetch_recurring_templates(USER_ID, PAYCHECK)

        assert [t.id for t in templates] == ["tpl-1"]
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_reraises_after_last_attempt(self):
        inner = FakeSource()
        inner.record_error = FetchError("down")
        source = RetryingRecordSource(inner, attempts=2, max_wait_seconds=0)

        with pytest.raises(FetchError):
            await source.fetch_actual_records(USER_ID, PAYCHECK)
        assert inner.record_calls == 2

    @pytest.mark.asyncio
    async def test_does_not_retry_other_errors(self):
        inner = FakeSource()
        inner.record_error = KeyError("bad row")
        source = RetryingRecordSource(inner, attempts=3, max_wait_seconds=0)

        with pytest.raises(KeyError):
            await source.fetch_actual_records(USER_ID, PAYCHECK)
        assert inner.record_calls == 1

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryingRecordSource(FakeSource(), attempts=0)


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_logs_without_storage(self):
        logger = AuditLogger()
        event = AuditEventBuilder.system_error("ValueError", "boom")
        assert await logger.log(event) is True

    @pytest.mark.asyncio
    async def test_persists_to_storage(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        await logger.log(AuditEventBuilder.refresh_started("paycheck", USER_ID, ["records"], 1, correlation_id))
        await logger.log(AuditEventBuilder.refresh_completed("paycheck", USER_ID, 1, 0, 0, correlation_id))

        events = await storage.get_recent_events(limit=1)
        assert len(events) == 1
        assert events[0].correlation_id == correlation_id
        assert events[0].details["sequence"] == 1

    @pytest.mark.asyncio
    async def test_storage_failure_returns_false(self):
        class BrokenStorage(InMemoryAuditStorage):
            async def append_event(self, event):
                raise StorageError("unavailable")

        logger = AuditLogger(BrokenStorage())
        event = AuditEventBuilder.system_error("ValueError", "boom")
        assert await logger.log(event) is False

    def test_configure_logging_changes_level(self):
        """A second call changes the level seen by loggers already in use."""
        configure_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG

        configure_logging("WARNING")
        assert logging.getLogger().level == logging.WARNING
        configure_logging("INFO")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
