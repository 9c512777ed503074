"""
Abstract Storage Interface

DESIGN DECISION: The engine never touches storage. The service layer
loads whole collections, hands them to the pure engine functions, and
saves the results back. This allows us to:
1. Use in-memory storage for testing
2. Persist to plain JSON files for a single-user install
3. Swap in a real database later without changing business logic

The interface is intentionally simple - we're not building a full ORM.
Collections are small (one person's debts and trusts), so load-all /
save-all is the unit of work.
"""

from abc import ABC, abstractmethod
from typing import Mapping, Optional
from uuid import UUID

from amanah.models.audit import AuditEvent
from amanah.models.entry import LedgerEntry, User
from amanah.models.notification import AppNotification


class LedgerRepository(ABC):
    """
    Abstract interface for the ledger's persistent collections.

    Any storage implementation must implement these methods. Loads
    return copies: mutating a loaded object never changes storage
    until it is saved.
    """

    @abstractmethod
    def load_entries(self) -> list[LedgerEntry]:
        """
        Load every ledger entry.

        Returns:
            All entries, in insertion order

        Raises:
            StorageError: If the collection cannot be read
        """
        pass

    @abstractmethod
    def save_entries(self, entries: list[LedgerEntry]) -> None:
        """
        Replace the entry collection.

        Args:
            entries: The complete, updated collection

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def load_users(self) -> list[User]:
        """Load every registered user."""
        pass

    @abstractmethod
    def save_users(self, users: list[User]) -> None:
        """Replace the user collection."""
        pass

    @abstractmethod
    def load_notifications(self) -> list[AppNotification]:
        """Load every in-app notification."""
        pass

    @abstractmethod
    def save_notifications(self, notifications: list[AppNotification]) -> None:
        """Replace the notification collection."""
        pass

    @abstractmethod
    def load_triggered(self) -> dict[str, bool]:
        """
        Load the reminder triggered table.

        Returns:
            Mapping of "{entry_id}_{threshold}" -> already sent
        """
        pass

    @abstractmethod
    def save_triggered(self, triggered: Mapping[str, bool]) -> None:
        """Replace the reminder triggered table."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one service call).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'entry', 'user')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)
