"""
Data Models Package

This package contains all Pydantic models used by the Household Tracker engine.
All data flowing through the engine must conform to these schemas.
"""

from household_tracker.models.finance import (
    DEPOSIT,
    PAYCHECK,
    ActualRecord,
    AggregatorState,
    DayOfWeek,
    EventKind,
    Instance,
    MergePolicy,
    RecurrenceUnit,
    RecurringTemplate,
    RefreshResult,
    utc_now,
)
from household_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "DEPOSIT",
    "PAYCHECK",
    "ActualRecord",
    "AggregatorState",
    "DayOfWeek",
    "EventKind",
    "Instance",
    "MergePolicy",
    "RecurrenceUnit",
    "RecurringTemplate",
    "RefreshResult",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
