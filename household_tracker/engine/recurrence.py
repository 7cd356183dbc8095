"""
Recurrence Rule Expander

Turns one RecurringTemplate and a date window into the calendar dates
on which the template occurs.

DESIGN DECISIONS:
1. Occurrence k is computed from the START DATE (start + k * interval),
   never from occurrence k-1. Stepping month by month from Jan 31 would
   clamp to Feb 29 and then stay on the 29th forever.
2. Month/year arithmetic clamps to the end of the month:
   Jan 31 + 1 month = Feb 29 (2024) / Feb 28; Feb 29 + 1 year = Feb 28.
3. A broken template raises InvalidRecurrenceConfigError. It is never
   skipped: a silently missing paycheck misrepresents the user's money.
4. A weekly day_of_week moves the first occurrence forward to that
   weekday; later occurrences keep the weekly step from there.

Expansion is a pure function of its inputs; calling it again with the
same arguments always yields the same list.
"""

from calendar import monthrange
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from household_tracker.models.finance import RecurrenceUnit, RecurringTemplate

_WEEKDAY_NAMES = [
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
]
_MONTH_UNITS = (RecurrenceUnit.MONTH, RecurrenceUnit.YEAR)


class InvalidRecurrenceConfigError(ValueError):
    """A template (or window) cannot be expanded."""

    def __init__(self, template_id: str, message: str):
        self.template_id = template_id
        super().__init__(message)


def validate_template(template: RecurringTemplate) -> None:
    """
    Check a template can be expanded.

    Raises:
        InvalidRecurrenceConfigError: non-positive interval, end before start,
            more than one monthly anchor, a monthly anchor on a day/week unit,
            or day_of_week on anything but a week unit
    """
    if template.interval <= 0:
        raise InvalidRecurrenceConfigError(
            template.id,
            f"Recurring template {template.id}: interval must be positive, "
            f"got {template.interval}",
        )
    if template.end_date is not None and template.end_date < template.start_date:
        raise InvalidRecurrenceConfigError(
            template.id,
            f"Recurring template {template.id}: end date {template.end_date} "
            f"is before start date {template.start_date}",
        )
    if template.anchor_count > 1:
        raise InvalidRecurrenceConfigError(
            template.id,
            f"Recurring template {template.id}: only one of day_of_month, "
            "last_day_of_month, last_business_day_of_month may be set",
        )
    if template.anchor_count and template.recurrence_unit not in _MONTH_UNITS:
        raise InvalidRecurrenceConfigError(
            template.id,
            f"Recurring template {template.id}: monthly anchors need a month "
            f"or year unit, not {template.recurrence_unit.value}",
        )
    if template.day_of_week is not None and template.recurrence_unit != RecurrenceUnit.WEEK:
        raise InvalidRecurrenceConfigError(
            template.id,
            f"Recurring template {template.id}: day_of_week needs a week unit, "
            f"not {template.recurrence_unit.value}",
        )


def last_day_of_month(day: date) -> date:
    return day.replace(day=monthrange(day.year, day.month)[1])


def last_business_day_of_month(day: date) -> date:
    """Last Monday-Friday of the month. Public holidays are not considered."""
    candidate = last_day_of_month(day)
    while candidate.weekday() >= 5:
        candidate -= timedelta(days=1)
    return candidate


def _apply_anchor(template: RecurringTemplate, day: date) -> date:
    if template.last_business_day_of_month:
        return last_business_day_of_month(day)
    if template.last_day_of_month:
        return last_day_of_month(day)
    if template.day_of_month is not None:
        return day.replace(day=min(template.day_of_month, monthrange(day.year, day.month)[1]))
    return day


def _origin(template: RecurringTemplate) -> date:
    """First candidate date: the start date, moved forward to day_of_week if set."""
    start = template.start_date
    if template.day_of_week is None:
        return start
    return start + timedelta(days=(template.day_of_week.weekday - start.weekday()) % 7)


def occurrence(template: RecurringTemplate, index: int) -> date:
    """The index-th candidate date (index 0 is derived from the start date)."""
    steps = index * template.interval
    unit = template.recurrence_unit

    if unit == RecurrenceUnit.DAY:
        return _origin(template) + timedelta(days=steps)
    if unit == RecurrenceUnit.WEEK:
        return _origin(template) + timedelta(weeks=steps)
    if unit == RecurrenceUnit.MONTH:
        shifted = template.start_date + relativedelta(months=steps)
    else:
        shifted = template.start_date + relativedelta(years=steps)
    return _apply_anchor(template, shifted)


def _first_candidate_index(template: RecurringTemplate, first: date) -> int:
    """
    A candidate index at or before the first one that can land on `first`.

    Lets long-running templates skip straight to the window instead of
    walking every occurrence since the start date.
    """
    unit = template.recurrence_unit

    if unit in (RecurrenceUnit.DAY, RecurrenceUnit.WEEK):
        step_days = template.interval * (7 if unit == RecurrenceUnit.WEEK else 1)
        return max(0, (first - _origin(template)).days // step_days)

    start = template.start_date
    months = (first.year - start.year) * 12 + (first.month - start.month)
    step_months = template.interval * (12 if unit == RecurrenceUnit.YEAR else 1)
    # Back off one step: an anchored occurrence can fall earlier in its month
    return max(0, months // step_months - 1)


def expand(
    template: RecurringTemplate,
    window_start: date,
    window_end: date,
) -> list[date]:
    """
    All occurrence dates of a template inside [window_start, window_end].

    Both bounds are inclusive. Dates are strictly ascending and never
    before the template's start date or after its end date.

    Raises:
        InvalidRecurrenceConfigError: the template is invalid or the window
            is inverted
    """
    validate_template(template)
    if window_start > window_end:
        raise InvalidRecurrenceConfigError(
            template.id,
            f"Window start {window_start} is after window end {window_end}",
        )

    if template.start_date > window_end:
        return []
    if template.end_date is not None and template.end_date < window_start:
        return []

    first = max(window_start, template.start_date)
    last = window_end if template.end_date is None else min(window_end, template.end_date)

    dates = []
    index = _first_candidate_index(template, first)
    while True:
        candidate = occurrence(template, index)
        if candidate > last:
            break
        if candidate >= first:
            dates.append(candidate)
        index += 1

    return dates


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return f"{day}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def describe_recurrence(template: RecurringTemplate) -> str:
    """
    Human-readable cadence, e.g. "every 2 weeks on Friday" or
    "month on last business day".
    """
    unit = template.recurrence_unit.value
    if template.interval == 1:
        cadence = unit
    else:
        cadence = f"every {template.interval} {unit}s"

    if template.recurrence_unit == RecurrenceUnit.WEEK:
        if template.day_of_week is not None:
            return f"{cadence} on {template.day_of_week.value.capitalize()}"
        return f"{cadence} on {_WEEKDAY_NAMES[template.start_date.weekday()]}"

    if template.recurrence_unit in _MONTH_UNITS:
        if template.last_business_day_of_month:
            return f"{cadence} on last business day"
        if template.last_day_of_month:
            return f"{cadence} on last day"
        day = template.day_of_month or template.start_date.day
        if template.recurrence_unit == RecurrenceUnit.YEAR:
            return f"{cadence} on {template.start_date.strftime('%b')} {_ordinal(day)}"
        return f"{cadence} on {_ordinal(day)}"

    return cadence
