"""Notification dispatch package."""

from amanah.notifications.dispatch import (
    InMemoryOutbox,
    NotificationDispatcher,
    NotificationSink,
    address,
    mark_read,
    unread_for,
)

__all__ = [
    "InMemoryOutbox",
    "NotificationDispatcher",
    "NotificationSink",
    "address",
    "mark_read",
    "unread_for",
]
