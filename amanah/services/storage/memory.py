"""
In-memory storage, used by tests and the default service wiring.

Every load and save deep-copies so callers can never alias stored state.
"""

from typing import Mapping
from uuid import UUID

from amanah.models.audit import AuditEvent
from amanah.models.entry import LedgerEntry, User
from amanah.models.notification import AppNotification
from amanah.services.storage.interface import (
    AuditStorageInterface,
    LedgerRepository,
)


def _copies(items):
    return [item.model_copy(deep=True) for item in items]


class InMemoryRepository(LedgerRepository):

    def __init__(self):
        self._entries: list[LedgerEntry] = []
        self._users: list[User] = []
        self._notifications: list[AppNotification] = []
        self._triggered: dict[str, bool] = {}

    def load_entries(self) -> list[LedgerEntry]:
        return _copies(self._entries)

    def save_entries(self, entries: list[LedgerEntry]) -> None:
        self._entries = _copies(entries)

    def load_users(self) -> list[User]:
        return _copies(self._users)

    def save_users(self, users: list[User]) -> None:
        self._users = _copies(users)

    def load_notifications(self) -> list[AppNotification]:
        return _copies(self._notifications)

    def save_notifications(self, notifications: list[AppNotification]) -> None:
        self._notifications = _copies(notifications)

    def load_triggered(self) -> dict[str, bool]:
        return dict(self._triggered)

    def save_triggered(self, triggered: Mapping[str, bool]) -> None:
        self._triggered = dict(triggered)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(reversed(self._events), key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
