"""
Instance Synthesizer

Builds the Instance for one generated occurrence.

The identity "<template-id>-<YYYY-MM-DD>" is deterministic: the same
template and date always produce the same id, across refreshes and
devices, so the UI can key rows on it. Template ids are unique and dates
are canonical, so ids never collide across templates.
"""

from datetime import date, datetime
from typing import Iterable, Optional

from household_tracker.engine.dates import format_date
from household_tracker.models.finance import (
    EventKind,
    Instance,
    RecurringTemplate,
    utc_now,
)


def generated_instance_id(template_id: str, occurrence_date: date) -> str:
    return f"{template_id}-{format_date(occurrence_date)}"


def synthesize(
    template: RecurringTemplate,
    occurrence_date: date,
    kind: EventKind,
    now: Optional[datetime] = None,
) -> Instance:
    """
    Generated Instance for one occurrence of a template.

    created_at is informational only; pass `now` to make it deterministic.
    """
    return Instance(
        id=generated_instance_id(template.id, occurrence_date),
        user_id=template.user_id,
        name=kind.generated_name(template.amount),
        amount=template.amount,
        date=occurrence_date,
        notes=None,
        created_at=now or utc_now(),
        is_generated=True,
        recurring_template_id=template.id,
    )


def synthesize_all(
    template: RecurringTemplate,
    occurrence_dates: Iterable[date],
    kind: EventKind,
    now: Optional[datetime] = None,
) -> list[Instance]:
    """Generated Instances for several occurrences, sharing one timestamp."""
    now = now or utc_now()
    return [synthesize(template, d, kind, now) for d in occurrence_dates]
