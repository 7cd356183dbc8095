"""
Core Data Models for Household Tracker

These models define the strict schemas for everything the recurring
event engine reads and produces:
1. RecurringTemplate - a persisted rule ("every 2 weeks, $1500")
2. ActualRecord - a paycheck/deposit the user actually entered
3. Instance - the engine's output, one per record or generated occurrence

DESIGN DECISION: Inputs are frozen. The engine never mutates what the
persistence layer handed it; every refresh produces brand new Instances.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# Records and instances have a field named "date"; annotate it through an
# alias so the field name does not shadow the type inside the class body.
CalendarDate = date


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class RecurrenceUnit(str, Enum):
    """Calendar unit a recurrence advances by."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class DayOfWeek(str, Enum):
    """Weekday a weekly recurrence is pinned to."""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def weekday(self) -> int:
        """date.weekday() number (Monday is 0)."""
        return list(DayOfWeek).index(self)


class MergePolicy(str, Enum):
    """
    How recorded events interact with generated occurrences.

    KEEP_ALL is the default: a paycheck the user already entered does NOT
    hide the generated occurrence for the same day. Whether it should is
    an open product question, so suppression is strictly opt-in.
    """
    KEEP_ALL = "keep_all"
    SUPPRESS_MATCHED = "suppress_matched"


class AggregatorState(str, Enum):
    """Lifecycle of a RecurringEventAggregator."""
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


# =============================================================================
# EVENT KIND
# =============================================================================

class EventKind(BaseModel):
    """
    Describes one kind of recurring financial event.

    Paychecks and deposits behave identically; only their labels differ.
    One aggregator class is instantiated per kind.
    """
    model_config = ConfigDict(frozen=True)

    key: str = Field(
        ...,
        pattern="^[a-z_]+$",
        description="Machine name, e.g. 'paycheck'"
    )
    label: str = Field(
        ...,
        description="Human label, e.g. 'Paycheck'"
    )
    default_record_name: str = Field(
        ...,
        description="Display name for recorded events that have none"
    )
    generated_name_template: str = Field(
        default="Recurring: ${amount}",
        description="str.format template for generated occurrence names"
    )

    def generated_name(self, amount: Decimal) -> str:
        return self.generated_name_template.format(amount=amount)


PAYCHECK = EventKind(
    key="paycheck",
    label="Paycheck",
    default_record_name="Paycheck",
)

DEPOSIT = EventKind(
    key="deposit",
    label="Deposit",
    default_record_name="Deposit",
)


# =============================================================================
# PERSISTED INPUTS
# =============================================================================

class RecurringTemplate(BaseModel):
    """
    A persisted recurrence rule.

    NOTE: interval and date ordering are NOT rejected here. A template
    with interval 0 is still a row the user owns; the expander reports it
    as InvalidRecurrenceConfigError so the problem surfaces where the
    occurrences would have been.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Template identity (unique across templates)"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owning user"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Amount of every occurrence"
    )
    start_date: date = Field(
        ...,
        description="First occurrence"
    )
    end_date: Optional[date] = Field(
        default=None,
        description="Last possible occurrence (inclusive)"
    )
    recurrence_unit: RecurrenceUnit
    interval: int = Field(
        default=1,
        description="Number of units between occurrences"
    )

    # Monthly anchors (month/year units only)
    day_of_month: Optional[int] = Field(
        default=None,
        ge=1,
        le=31,
        description="Pin occurrences to this day, clamped to the month's length"
    )
    last_day_of_month: bool = False
    last_business_day_of_month: bool = False

    # Weekly anchor (week unit only)
    day_of_week: Optional[DayOfWeek] = Field(
        default=None,
        description="Move every occurrence forward to this weekday"
    )

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def anchor_count(self) -> int:
        """Number of monthly anchors set."""
        return sum((
            self.day_of_month is not None,
            self.last_day_of_month,
            self.last_business_day_of_month,
        ))


class ActualRecord(BaseModel):
    """
    A paycheck or deposit the user has explicitly entered.

    Read-only input for the engine.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    name: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Display name chosen by the user"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2
    )
    date: Optional[CalendarDate] = Field(
        default=None,
        description="Calendar date of the event; undated records are allowed"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000
    )
    recurring_template_id: Optional[str] = Field(
        default=None,
        description="Template this record realizes, if the user linked one"
    )
    created_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# ENGINE OUTPUT
# =============================================================================

class Instance(BaseModel):
    """
    One row of the merged list published by the engine.

    Either a recorded event (is_generated=False, id == record id) or a
    generated occurrence (is_generated=True, id == "<template-id>-<date>").
    Instances are derived state and are never persisted.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    name: str
    amount: Decimal
    date: Optional[CalendarDate] = None
    notes: Optional[str] = None
    created_at: datetime
    is_generated: bool
    recurring_template_id: Optional[str] = None

    @model_validator(mode='after')
    def validate_generated_identity(self) -> 'Instance':
        """Generated occurrences must be dated and traceable to a template."""
        if self.is_generated:
            if self.date is None:
                raise ValueError("Generated instance must have a date")
            if not self.recurring_template_id:
                raise ValueError("Generated instance must reference its template")
        return self


class RefreshResult(BaseModel):
    """
    Outcome of an aggregator refresh.

    A failed refresh never clears the published list; it marks it stale.
    """

    success: bool
    stale: bool = Field(
        default=False,
        description="True when the published list predates a failed fetch"
    )
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    sequence: int = Field(
        default=0,
        ge=0,
        description="Refresh sequence number this result belongs to"
    )
    completed_at: datetime = Field(default_factory=utc_now)
