"""
Recurring event engine.

Leaves first: date codec -> recurrence expander -> synthesizer ->
merger -> aggregator. Weekly grouping is a consumer-side helper.
"""

from household_tracker.engine.aggregator import RecurringEventAggregator
from household_tracker.engine.dates import (
    InvalidDateError,
    TimezoneDateCodec,
    format_date,
    parse_date,
)
from household_tracker.engine.merger import merge, record_to_instance
from household_tracker.engine.recurrence import (
    InvalidRecurrenceConfigError,
    describe_recurrence,
    expand,
    validate_template,
)
from household_tracker.engine.synthesizer import (
    generated_instance_id,
    synthesize,
    synthesize_all,
)
from household_tracker.engine.weekly import (
    MONDAY,
    SUNDAY,
    WeekGroup,
    WeeklyBreakdown,
    group_by_week,
)

__all__ = [
    # Aggregation
    "RecurringEventAggregator",
    # Dates
    "InvalidDateError",
    "TimezoneDateCodec",
    "format_date",
    "parse_date",
    # Expansion
    "InvalidRecurrenceConfigError",
    "describe_recurrence",
    "expand",
    "validate_template",
    # Synthesis and merging
    "generated_instance_id",
    "merge",
    "record_to_instance",
    "synthesize",
    "synthesize_all",
    # Weekly grouping
    "MONDAY",
    "SUNDAY",
    "WeekGroup",
    "WeeklyBreakdown",
    "group_by_week",
]
