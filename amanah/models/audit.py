"""
Audit Models for the Amānah ledger

Every state change to an obligation is logged for audit purposes.
This provides:
1. Complete traceability of who did what to which entry
2. Debugging information when an operation is rejected
3. A way to explain a balance to both parties

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every engine operation has its own event type.
    """
    # Entry lifecycle
    ENTRY_CREATED = "entry_created"
    ENTRY_CONFIRMED = "entry_confirmed"
    COUNTERPART_LINKED = "counterpart_linked"
    ENTRY_FULFILLED = "entry_fulfilled"
    ENTRY_FORGIVEN = "entry_forgiven"
    ENTRY_CONVERTED_TO_CHARITY = "entry_converted_to_charity"
    RESOLUTION_RETRACTED = "resolution_retracted"
    ENTRY_PURGED = "entry_purged"

    # Payments
    PAYMENT_RECORDED = "payment_recorded"

    # Reminders and notifications
    REMINDERS_SCANNED = "reminders_scanned"
    NOTIFICATION_DELIVERED = "notification_delivered"

    # Users
    USER_REGISTERED = "user_registered"
    REMINDER_SETTINGS_UPDATED = "reminder_settings_updated"

    # Failures
    OPERATION_REJECTED = "operation_rejected"
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about and who caused it?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'entry', 'user')"
    )
    entity_id: Optional[str] = None
    actor_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

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
            "actor_id": self.actor_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_created(entry_id, creator_id, ...)
        event = AuditEventBuilder.payment_recorded(entry_id, actor_id, ...)
    """

    @staticmethod
    def entry_created(
        entry_id: str,
        creator_id: str,
        entry_type: str,
        status: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_CREATED,
            entity_type="entry",
            entity_id=entry_id,
            actor_id=creator_id,
            correlation_id=correlation_id,
            description=f"Entry created as {status}",
            details={
                "entry_type": entry_type,
                "status": status,
            },
        )

    @staticmethod
    def status_changed(
        event_type: AuditEventType,
        entry_id: str,
        actor_id: Optional[str],
        previous_status: str,
        new_status: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="entry",
            entity_id=entry_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Entry moved from {previous_status} to {new_status}",
            details={
                "previous_status": previous_status,
                "new_status": new_status,
            },
        )

    @staticmethod
    def counterpart_linked(
        entry_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COUNTERPART_LINKED,
            entity_type="entry",
            entity_id=entry_id,
            actor_id=user_id,
            correlation_id=correlation_id,
            description="Counterpart linked to a registered user",
        )

    @staticmethod
    def payment_recorded(
        entry_id: str,
        actor_id: Optional[str],
        amount: Decimal,
        remaining: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            entity_type="entry",
            entity_id=entry_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Payment of {amount} recorded, {remaining} remaining",
            details={
                "amount": str(amount),
                "remaining": str(remaining),
            },
        )

    @staticmethod
    def entry_purged(
        entry_id: str,
        actor_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_PURGED,
            severity=AuditSeverity.WARNING,
            entity_type="entry",
            entity_id=entry_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description="Entry removed from history",
        )

    @staticmethod
    def reminders_scanned(
        user_id: Optional[str],
        notification_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        scope = f"user {user_id}" if user_id else "all users"
        return AuditEvent(
            event_type=AuditEventType.REMINDERS_SCANNED,
            entity_type="user" if user_id else None,
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Reminder scan for {scope} produced {notification_count} notifications",
            details={
                "notification_count": notification_count,
            },
        )

    @staticmethod
    def notification_delivered(
        notification_id: str,
        recipient_id: str,
        entry_id: str,
        kind: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_DELIVERED,
            severity=AuditSeverity.DEBUG,
            entity_type="notification",
            entity_id=notification_id,
            correlation_id=correlation_id,
            description=f"Notification '{kind}' delivered",
            details={
                "recipient_id": recipient_id,
                "entry_id": entry_id,
            },
        )

    @staticmethod
    def user_registered(
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="user",
            entity_id=user_id,
            actor_id=user_id,
            correlation_id=correlation_id,
            description="User registered",
        )

    @staticmethod
    def reminder_settings_updated(
        user_id: str,
        settings: dict,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_SETTINGS_UPDATED,
            entity_type="user",
            entity_id=user_id,
            actor_id=user_id,
            correlation_id=correlation_id,
            description="Reminder preferences updated",
            details=settings,
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        error: Exception,
        entity_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="entry" if entity_id else None,
            entity_id=entity_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Operation rejected: {operation}",
            error_code=type(error).__name__,
            error_message=str(error),
            details={
                "operation": operation,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            correlation_id=correlation_id,
            details={
                "operation": operation,
            },
        )
