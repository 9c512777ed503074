"""
Notification Dispatch

Routes notifications generated by the engine to their recipients,
independent of transport.

DESIGN DECISION: The engine only *builds* notifications. Delivery is a
separate step behind the NotificationSink contract (an outbox, a push
feed, a repository). This keeps every engine operation free of I/O.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional

import structlog

from amanah.errors import NotFoundError, PermissionError
from amanah.models.entry import LedgerEntry
from amanah.models.notification import AppNotification, NotificationKind


logger = structlog.get_logger(__name__)


def address(
    recipient_id: Optional[str],
    entry: LedgerEntry,
    kind: NotificationKind,
    title: str,
    message: str,
    created_at: datetime,
) -> list[AppNotification]:
    """
    Build a notification for one recipient.

    Returns an empty list when the recipient is not a registered user
    (a partner known only by name has no inbox).
    """
    if not recipient_id:
        return []
    return [
        AppNotification(
            user_id=recipient_id,
            entry_id=entry.id,
            kind=kind,
            title=title,
            message=message,
            created_at=created_at,
        )
    ]


class NotificationSink(ABC):
    """Anything that can accept a notification for delivery."""

    @abstractmethod
    def deliver(self, notification: AppNotification) -> None:
        """
        Deliver one notification.

        Raises:
            StorageError: If the sink cannot accept it
        """
        pass


class InMemoryOutbox(NotificationSink):
    """Collects delivered notifications in memory. Handy for tests and CLIs."""

    def __init__(self):
        self.delivered: list[AppNotification] = []

    def deliver(self, notification: AppNotification) -> None:
        self.delivered.append(notification)

    def for_user(self, user_id: str) -> list[AppNotification]:
        return [n for n in self.delivered if n.user_id == user_id]


class NotificationDispatcher:
    """
    Hands notifications to a sink, one recipient at a time.

    When a set of known user ids is supplied, notifications addressed to
    anyone else are dropped and logged instead of delivered.
    """

    def __init__(
        self,
        sink: NotificationSink,
        known_user_ids: Optional[Iterable[str]] = None,
    ):
        self._sink = sink
        self._known = set(known_user_ids) if known_user_ids is not None else None

    def dispatch(self, notifications: Iterable[AppNotification]) -> list[AppNotification]:
        """Deliver each notification; returns the ones actually delivered."""
        delivered = []
        for notification in notifications:
            if self._known is not None and notification.user_id not in self._known:
                logger.warning(
                    "notification_recipient_unknown",
                    notification_id=notification.id,
                    recipient_id=notification.user_id,
                    entry_id=notification.entry_id,
                )
                continue
            self._sink.deliver(notification)
            delivered.append(notification)
        return delivered


def unread_for(notifications: Iterable[AppNotification], user_id: str) -> list[AppNotification]:
    """Unread notifications for one recipient, newest first."""
    return sorted(
        (n for n in notifications if n.user_id == user_id and not n.is_read),
        key=lambda n: n.created_at,
        reverse=True,
    )


def mark_read(
    notifications: list[AppNotification],
    notification_id: str,
    user_id: str,
) -> list[AppNotification]:
    """
    Return a copy of the list with one notification marked read.

    Raises:
        NotFoundError: No notification with that id
        PermissionError: The user is not its recipient
    """
    for index, notification in enumerate(notifications):
        if notification.id != notification_id:
            continue
        if notification.user_id != user_id:
            raise PermissionError("Only the recipient may mark a notification as read")
        updated = list(notifications)
        updated[index] = notification.model_copy(update={"is_read": True})
        return updated
    raise NotFoundError(f"Notification {notification_id} not found")
