"""
Tests for Household Tracker models

Test strategy:
1. Unit tests for individual components (models, codec, expander, merger)
2. Async tests for the aggregator and mutation flow (with fake storage)
3. No real storage or network calls in tests
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from household_tracker.models.finance import (
    DEPOSIT,
    PAYCHECK,
    ActualRecord,
    DayOfWeek,
    EventKind,
    Instance,
    RecurrenceUnit,
    RecurringTemplate,
    RefreshResult,
)
from household_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestTemplateModel:
    """Tests for RecurringTemplate."""

    def test_template_creation(self):
        """Test RecurringTemplate model creation."""
        template = RecurringTemplate(
            id="tpl-1",
            user_id="user-1",
            amount=Decimal("1500.00"),
            start_date=date(2024, 1, 5),
            recurrence_unit=RecurrenceUnit.WEEK,
            interval=2,
        )
        assert template.end_date is None
        assert template.recurrence_unit == RecurrenceUnit.WEEK
        assert template.anchor_count == 0

    def test_template_parses_stored_row(self):
        """Test a row as the database returns it (strings everywhere)."""
        template = RecurringTemplate.model_validate({
            "id": "tpl-1",
            "user_id": "user-1",
            "amount": "1500.00",
            "start_date": "2024-01-05",
            "end_date": "2024-06-30",
            "recurrence_unit": "month",
            "interval": 1,
            "last_business_day_of_month": True,
        })
        assert template.amount == Decimal("1500.00")
        assert template.start_date == date(2024, 1, 5)
        assert template.anchor_count == 1

    def test_template_parses_day_of_week(self):
        """Test a weekly row pinned to a weekday."""
        template = RecurringTemplate.model_validate({
            "id": "tpl-1",
            "user_id": "user-1",
            "amount": "1500.00",
            "start_date": "2024-01-01",
            "recurrence_unit": "week",
            "interval": 2,
            "day_of_week": "friday",
        })
        assert template.day_of_week == DayOfWeek.FRIDAY
        assert template.day_of_week.weekday == 4
        assert template.anchor_count == 0

    def test_template_rejects_unknown_day_of_week(self):
        with pytest.raises(ValidationError):
            RecurringTemplate(
                id="tpl-1",
                user_id="user-1",
                amount=Decimal("10"),
                start_date=date(2024, 1, 1),
                recurrence_unit=RecurrenceUnit.WEEK,
                day_of_week="funday",
            )

    def test_template_rejects_unknown_unit(self):
        """Test only day/week/month/year units are accepted."""
        with pytest.raises(ValidationError):
            RecurringTemplate(
                id="tpl-1",
                user_id="user-1",
                amount=Decimal("10"),
                start_date=date(2024, 1, 1),
                recurrence_unit="fortnight",
            )

    def test_template_keeps_non_positive_interval(self):
        """Interval problems are reported by the expander, not at parse time."""
        template = RecurringTemplate(
            id="tpl-1",
            user_id="user-1",
            amount=Decimal("10"),
            start_date=date(2024, 1, 1),
            recurrence_unit=RecurrenceUnit.DAY,
            interval=0,
        )
        assert template.interval == 0

    def test_template_is_frozen(self):
        """Test fetched templates cannot be mutated."""
        template = RecurringTemplate(
            id="tpl-1",
            user_id="user-1",
            amount=Decimal("10"),
            start_date=date(2024, 1, 1),
            recurrence_unit=RecurrenceUnit.DAY,
        )
        with pytest.raises(ValidationError):
            template.interval = 3

    def test_template_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            RecurringTemplate(
                id="tpl-1",
                user_id="user-1",
                amount=Decimal("-1"),
                start_date=date(2024, 1, 1),
                recurrence_unit=RecurrenceUnit.DAY,
            )


class TestRecordAndInstanceModels:
    """Tests for ActualRecord and Instance."""

    def test_record_allows_missing_date(self):
        """Undated deposits exist in the wild."""
        record = ActualRecord(id="rec-1", user_id="user-1", amount=Decimal("20"))
        assert record.date is None
        assert record.created_at.tzinfo is not None

    def test_record_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        record = ActualRecord(
            id="rec-1",
            user_id="user-1",
            amount=Decimal("20"),
            name="  Bonus  ",
        )
        assert record.name == "Bonus"

    def test_generated_instance_requires_date(self):
        """Generated instances always fall on a date."""
        with pytest.raises(ValidationError, match="must have a date"):
            Instance(
                id="tpl-1-2024-01-01",
                user_id="user-1",
                name="Recurring: $10",
                amount=Decimal("10"),
                created_at=datetime.now(timezone.utc),
                is_generated=True,
                recurring_template_id="tpl-1",
            )

    def test_generated_instance_requires_template_reference(self):
        """Generated instances point back at their template."""
        with pytest.raises(ValidationError, match="must reference its template"):
            Instance(
                id="tpl-1-2024-01-01",
                user_id="user-1",
                name="Recurring: $10",
                amount=Decimal("10"),
                date=date(2024, 1, 1),
                created_at=datetime.now(timezone.utc),
                is_generated=True,
            )


class TestEventKind:
    """Tests for the paycheck/deposit descriptors."""

    def test_builtin_kinds(self):
        assert PAYCHECK.key == "paycheck"
        assert DEPOSIT.key == "deposit"
        assert PAYCHECK != DEPOSIT

    def test_generated_name(self):
        """Test the default display name for generated occurrences."""
        assert PAYCHECK.generated_name(Decimal("1500")) == "Recurring: $1500"

    def test_custom_name_template(self):
        kind = EventKind(
            key="allowance",
            label="Allowance",
            default_record_name="Allowance",
            generated_name_template="Allowance ({amount})",
        )
        assert kind.generated_name(Decimal("25.00")) == "Allowance (25.00)"

    def test_key_must_be_machine_name(self):
        with pytest.raises(ValidationError):
            EventKind(key="Pay Check", label="x", default_record_name="x")


class TestRefreshResult:
    """Tests for RefreshResult."""

    def test_success_defaults(self):
        result = RefreshResult(success=True, sequence=1)
        assert result.stale is False
        assert result.error_message is None

    def test_failure(self):
        result = RefreshResult(
            success=False,
            stale=True,
            error_type="FetchError",
            error_message="network down",
            sequence=2,
        )
        assert result.stale is True
        assert result.error_type == "FetchError"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.REFRESH_STARTED,
            description="Refreshing paycheck data",
        )
        assert event.event_type == AuditEventType.REFRESH_STARTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            description="Paycheck rec-1 created",
            entity_id="rec-1",
            details={"amount": "1500"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "record_created"
        assert log_dict["entity_id"] == "rec-1"
        assert log_dict["details"]["amount"] == "1500"

    def test_system_error_builder(self):
        """Test the builder used for unexpected refresh failures."""
        event = AuditEventBuilder.system_error(
            "RuntimeError",
            "bug",
            details={"kind": "paycheck"},
        )
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.error_code == "RuntimeError"
        assert event.details == {"kind": "paycheck"}

    def test_refresh_failed_builder(self):
        """Test AuditEventBuilder.refresh_failed."""
        correlation_id = uuid4()
        event = AuditEventBuilder.refresh_failed(
            kind="paycheck",
            user_id="user-1",
            source="records",
            error_type="FetchError",
            error_message="network down",
            sequence=4,
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.REFRESH_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.error_code == "FetchError"
        assert event.details["sequence"] == 4
        assert event.correlation_id == correlation_id

    def test_instances_recomputed_builder(self):
        """Test AuditEventBuilder.instances_recomputed."""
        event = AuditEventBuilder.instances_recomputed(
            kind="deposit",
            user_id="user-1",
            window_start=date(2024, 1, 1),
            window_end=date(2024, 2, 11),
            actual_count=2,
            generated_count=3,
        )
        assert event.details["window_end"] == "2024-02-11"
        assert "5 deposit instances" in event.description

    def test_record_mutated_builder(self):
        """Test AuditEventBuilder.record_mutated marks a user action."""
        event = AuditEventBuilder.record_mutated(
            kind="paycheck",
            user_id="user-1",
            record_id="rec-1",
            action="updated",
        )
        assert event.event_type == AuditEventType.RECORD_UPDATED
        assert event.is_user_action is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
