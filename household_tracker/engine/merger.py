"""
Instance Merger

Combines recorded events with generated occurrences into the single
list the UI renders.

Order is fixed: recorded events first (in the order the store returned
them), then generated occurrences (in the order they were produced).
The same inputs always yield the same output.

KNOWN GAP: under the default KEEP_ALL policy a recorded paycheck does
not hide the generated occurrence for the same template and day; both
are listed. SUPPRESS_MATCHED is available but must be chosen explicitly.
"""

from typing import Sequence

from household_tracker.models.finance import (
    ActualRecord,
    EventKind,
    Instance,
    MergePolicy,
)


def record_to_instance(record: ActualRecord, kind: EventKind) -> Instance:
    """Recorded event as an Instance; identity is the record's own id."""
    return Instance(
        id=record.id,
        user_id=record.user_id,
        name=record.name or kind.default_record_name,
        amount=record.amount,
        date=record.date,
        notes=record.notes,
        created_at=record.created_at,
        is_generated=False,
        recurring_template_id=record.recurring_template_id,
    )


def merge(
    actual_records: Sequence[ActualRecord],
    generated: Sequence[Instance],
    kind: EventKind,
    policy: MergePolicy = MergePolicy.KEEP_ALL,
) -> list[Instance]:
    """
    Merge recorded events and generated occurrences.

    With SUPPRESS_MATCHED, a generated occurrence is dropped when a record
    linked to the same template exists on the same date. Records without
    a template link never suppress anything.
    """
    actual = [record_to_instance(record, kind) for record in actual_records]

    if policy == MergePolicy.SUPPRESS_MATCHED:
        realized = {
            (record.recurring_template_id, record.date)
            for record in actual_records
            if record.recurring_template_id and record.date is not None
        }
        generated = [
            instance for instance in generated
            if (instance.recurring_template_id, instance.date) not in realized
        ]

    return actual + list(generated)
