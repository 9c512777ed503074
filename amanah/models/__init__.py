"""
Data Models Package

This package contains all Pydantic models used by the Amānah ledger.
All data flowing through the engine must conform to these schemas.
"""

from amanah.models.entry import (
    ACTIVE_STATUSES,
    RESOLVED_STATUSES,
    CreateEntryRequest,
    Direction,
    Divisible,
    EntryStatus,
    EntryType,
    Indivisible,
    LedgerEntry,
    Obligation,
    PaymentRecord,
    ReminderSettings,
    RetractionRecord,
    Role,
    User,
    new_id,
)
from amanah.models.notification import (
    AppNotification,
    NotificationKind,
    ReminderScan,
    TransitionOutcome,
)
from amanah.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entry models
    "ACTIVE_STATUSES",
    "RESOLVED_STATUSES",
    "CreateEntryRequest",
    "Direction",
    "Divisible",
    "EntryStatus",
    "EntryType",
    "Indivisible",
    "LedgerEntry",
    "Obligation",
    "PaymentRecord",
    "ReminderSettings",
    "RetractionRecord",
    "Role",
    "User",
    "new_id",
    # Notification models
    "AppNotification",
    "NotificationKind",
    "ReminderScan",
    "TransitionOutcome",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
