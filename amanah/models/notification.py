"""
Notification and operation-result models.

The engine never delivers anything itself. Operations return these
objects and the caller decides where they go.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from amanah.models.entry import LedgerEntry, new_id


class NotificationKind(str, Enum):
    """Why a notification was generated."""
    DUE_REMINDER = "due_reminder"
    FORGIVEN = "forgiven"
    RETRACTED = "retracted"


class AppNotification(BaseModel):
    """A message for exactly one recipient about one entry."""

    id: str = Field(default_factory=new_id)
    user_id: str = Field(..., description="Recipient")
    entry_id: str
    kind: NotificationKind
    title: str = Field(..., max_length=200)
    message: str = Field(..., max_length=1000)
    created_at: datetime
    is_read: bool = False


class TransitionOutcome(BaseModel):
    """Result of a state machine or payment ledger operation."""

    entry: LedgerEntry
    notifications: list[AppNotification] = Field(default_factory=list)


class ReminderScan(BaseModel):
    """
    Result of one reminder pass.

    ``triggered`` is the full, updated deduplication table; persist it
    as-is and pass it into the next scan.
    """

    notifications: list[AppNotification] = Field(default_factory=list)
    triggered: dict[str, bool] = Field(default_factory=dict)
