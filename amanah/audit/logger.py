"""
Audit Logger

DESIGN DECISION: Every state change and every rejected operation is logged.
This provides:
1. Complete traceability of who moved an entry where
2. Debugging capability
3. A history users can be shown on dispute

The audit logger:
- Gracefully handles failures (a broken audit store never blocks a
  ledger operation)
- Supports correlation IDs to trace the events of one service call
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from amanah.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from amanah.services.storage import AuditStorageInterface, StorageError


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog for local logging.

    Called once by the application factory with the logging settings.
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, level))
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("amanah.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        severity = event.severity.value
        if severity == "error":
            self._logger.error("audit_event", **log_dict)
        elif severity == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif severity == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except StorageError as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_entry_created(
        self,
        entry_id: str,
        creator_id: str,
        entry_type: str,
        status: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.entry_created(
            entry_id=entry_id,
            creator_id=creator_id,
            entry_type=entry_type,
            status=status,
            correlation_id=correlation_id,
        ))

    def log_status_changed(
        self,
        event_type: AuditEventType,
        entry_id: str,
        actor_id: Optional[str],
        previous_status: str,
        new_status: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a lifecycle transition (confirm, fulfil, forgive, retract...)."""
        self.log(AuditEventBuilder.status_changed(
            event_type=event_type,
            entry_id=entry_id,
            actor_id=actor_id,
            previous_status=previous_status,
            new_status=new_status,
            correlation_id=correlation_id,
        ))

    def log_rejection(
        self,
        operation: str,
        error: Exception,
        entity_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an operation the engine refused."""
        self.log(AuditEventBuilder.operation_rejected(
            operation=operation,
            error=error,
            entity_id=entity_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a service call and pass it through all
    events that call produces.
    """
    return uuid4()
