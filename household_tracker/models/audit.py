"""
Audit Models for Household Tracker

Every refresh, recompute and failure of the recurring event engine is
recorded as an AuditEvent. This provides:
1. Traceability of what the published list was built from
2. Debugging information when a fetch fails or a template is broken
3. A history the user can inspect ("why is this paycheck missing?")

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from household_tracker.models.finance import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Refresh lifecycle
    REFRESH_STARTED = "refresh_started"
    REFRESH_COMPLETED = "refresh_completed"
    REFRESH_FAILED = "refresh_failed"
    STALE_RESULT_DISCARDED = "stale_result_discarded"

    # Recompute
    INSTANCES_RECOMPUTED = "instances_recomputed"
    RECURRENCE_CONFIG_INVALID = "recurrence_config_invalid"

    # Mutations passed through to the persistence layer
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    entity_type is usually the event kind ("paycheck", "deposit") and
    entity_id the record or template the event is about.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context
    entity_type: Optional[str] = Field(
        default=None,
        description="Event kind or entity type (e.g. 'paycheck', 'template')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the record or template this event relates to"
    )
    user_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g. a mutation and its refresh)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.refresh_started("paycheck", user_id, sequence=3)
        event = AuditEventBuilder.refresh_failed("deposit", user_id, "FetchError", "timeout")
    """

    @staticmethod
    def refresh_started(
        kind: str,
        user_id: str,
        sources: list[str],
        sequence: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REFRESH_STARTED,
            severity=AuditSeverity.DEBUG,
            entity_type=kind,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Refreshing {kind} data: {', '.join(sources)}",
            details={
                "sources": sources,
                "sequence": sequence,
            },
        )

    @staticmethod
    def refresh_completed(
        kind: str,
        user_id: str,
        sequence: int,
        record_count: int,
        template_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REFRESH_COMPLETED,
            entity_type=kind,
            user_id=user_id,
            correlation_id=correlation_id,
            description=(
                f"Refreshed {kind} data: {record_count} records, "
                f"{template_count} templates"
            ),
            details={
                "sequence": sequence,
                "record_count": record_count,
                "template_count": template_count,
            },
        )

    @staticmethod
    def refresh_failed(
        kind: str,
        user_id: str,
        source: str,
        error_type: str,
        error_message: str,
        sequence: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REFRESH_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=kind,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Failed to fetch {kind} {source}; keeping last published list",
            error_code=error_type,
            error_message=error_message,
            details={
                "source": source,
                "sequence": sequence,
            },
        )

    @staticmethod
    def stale_result_discarded(
        kind: str,
        user_id: str,
        source: str,
        sequence: int,
        latest_sequence: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESULT_DISCARDED,
            severity=AuditSeverity.DEBUG,
            entity_type=kind,
            user_id=user_id,
            description=f"Discarded out-of-order {kind} {source} fetch #{sequence}",
            details={
                "source": source,
                "sequence": sequence,
                "latest_sequence": latest_sequence,
            },
        )

    @staticmethod
    def instances_recomputed(
        kind: str,
        user_id: str,
        window_start: date,
        window_end: date,
        actual_count: int,
        generated_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSTANCES_RECOMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type=kind,
            user_id=user_id,
            description=(
                f"Published {actual_count + generated_count} {kind} instances "
                f"({generated_count} generated)"
            ),
            details={
                "window_start": window_start.isoformat(),
                "window_end": window_end.isoformat(),
                "actual": actual_count,
                "generated": generated_count,
            },
        )

    @staticmethod
    def recurrence_config_invalid(
        kind: str,
        user_id: str,
        template_id: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRENCE_CONFIG_INVALID,
            severity=AuditSeverity.ERROR,
            entity_type=kind,
            entity_id=template_id,
            user_id=user_id,
            description=f"Recurring {kind} {template_id} cannot be expanded",
            error_code="InvalidRecurrenceConfigError",
            error_message=error_message,
        )

    @staticmethod
    def record_mutated(
        kind: str,
        user_id: str,
        record_id: str,
        action: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        event_type = {
            "created": AuditEventType.RECORD_CREATED,
            "updated": AuditEventType.RECORD_UPDATED,
            "deleted": AuditEventType.RECORD_DELETED,
        }[action]
        return AuditEvent(
            event_type=event_type,
            entity_type=kind,
            entity_id=record_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} {record_id} {action}",
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_code=error_type,
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
