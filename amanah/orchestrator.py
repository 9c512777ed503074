"""
Main Orchestrator for the Amānah ledger

This module ties together all the components and defines the
end-to-end flow of every user action:

    load -> find -> apply (pure engine) -> save -> dispatch -> audit

DESIGN DECISION: The orchestrator enforces the boundaries:
- The engine never sees storage; it gets a snapshot and returns a result
- Nothing is saved unless the engine operation succeeded
- Every accepted AND every rejected operation is audited

This is the "glue" that hosts (web UI, REST backend, CLI) call into.
"""

from decimal import Decimal
from typing import Callable, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError as SchemaError

from amanah.audit import AuditLogger, configure_logging, create_correlation_id
from amanah.clock import DEFAULT_CLOCK, SystemClock
from amanah.config import Settings, get_settings
from amanah.engine import (
    confirm,
    convert_to_charity,
    create_entry,
    forgive,
    link_counterpart,
    mark_fulfilled,
    record_payment,
    require_party,
    retract_resolution,
    scan_all_reminders,
    scan_reminders,
)
from amanah.errors import (
    LedgerError,
    NotFoundError,
    PermissionError,
    ValidationError,
)
from amanah.models import (
    AppNotification,
    AuditEventBuilder,
    AuditEventType,
    CreateEntryRequest,
    LedgerEntry,
    ReminderSettings,
    TransitionOutcome,
    User,
)
from amanah.notifications import (
    InMemoryOutbox,
    NotificationDispatcher,
    NotificationSink,
    mark_read,
    unread_for,
)
from amanah.queries import (
    DashboardView,
    HistorySummary,
    dashboard,
    find_entry,
    history,
)
from amanah.services.storage import (
    InMemoryAuditStorage,
    InMemoryRepository,
    JsonFileRepository,
    JsonLinesAuditStorage,
    LedgerRepository,
    StorageError,
)


logger = structlog.get_logger(__name__)

Transition = Callable[[LedgerEntry], TransitionOutcome]


def _find_user(users: list[User], user_id: str) -> User:
    for user in users:
        if user.id == user_id:
            return user
    raise NotFoundError(f"User {user_id} not found")


class LedgerService:
    """
    Runs ledger operations against a repository.

    Single writer: callers serialize calls against the same repository.
    Every public method either returns the result or raises a
    LedgerError (engine refusal) or StorageError (persistence failure).
    """

    def __init__(
        self,
        repository: LedgerRepository,
        audit_logger: Optional[AuditLogger] = None,
        sink: Optional[NotificationSink] = None,
        clock: SystemClock = DEFAULT_CLOCK,
        default_require_verification: bool = True,
    ):
        self._repository = repository
        self._audit = audit_logger or AuditLogger()
        self._sink = sink or InMemoryOutbox()
        self._clock = clock
        self._default_require_verification = default_require_verification

    @property
    def repository(self) -> LedgerRepository:
        return self._repository

    @property
    def sink(self) -> NotificationSink:
        return self._sink

    # ==========================================================================
    # INTERNALS
    # ==========================================================================

    def _reject(
        self,
        operation: str,
        error: LedgerError,
        entry_id: Optional[str],
        actor_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        self._audit.log_rejection(
            operation=operation,
            error=error,
            entity_id=entry_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )

    def _persist(self, operation: str, correlation_id: UUID, save: Callable[[], None]) -> None:
        try:
            save()
        except StorageError as e:
            self._audit.log_storage_error(operation, str(e), correlation_id=correlation_id)
            raise

    def _deliver(self, notifications: list[AppNotification], correlation_id: UUID) -> list[AppNotification]:
        """Hand notifications to the sink and keep them in the inbox collection."""
        if not notifications:
            return []

        users = self._repository.load_users()
        dispatcher = NotificationDispatcher(self._sink, known_user_ids=[u.id for u in users])
        delivered = dispatcher.dispatch(notifications)
        if not delivered:
            return []

        inbox = self._repository.load_notifications()
        inbox.extend(delivered)
        self._persist(
            "save_notifications",
            correlation_id,
            lambda: self._repository.save_notifications(inbox),
        )
        for notification in delivered:
            self._audit.log(AuditEventBuilder.notification_delivered(
                notification_id=notification.id,
                recipient_id=notification.user_id,
                entry_id=notification.entry_id,
                kind=notification.kind.value,
                correlation_id=correlation_id,
            ))
        return delivered

    def _apply(
        self,
        operation: str,
        entry_id: str,
        actor_id: Optional[str],
        transition: Transition,
    ) -> tuple[LedgerEntry, LedgerEntry, UUID]:
        """
        Run one engine transition against the stored entry.

        Returns (before, after, correlation_id). On a LedgerError nothing
        is saved and the rejection is audited before re-raising.
        """
        correlation_id = create_correlation_id()
        entries = self._repository.load_entries()

        try:
            before = find_entry(entries, entry_id)
            outcome = transition(before)
        except LedgerError as e:
            self._reject(operation, e, entry_id, actor_id, correlation_id)
            raise

        entries = [outcome.entry if e.id == entry_id else e for e in entries]
        self._persist(operation, correlation_id, lambda: self._repository.save_entries(entries))
        self._deliver(outcome.notifications, correlation_id)
        return before, outcome.entry, correlation_id

    def _status_change(
        self,
        operation: str,
        event_type: AuditEventType,
        entry_id: str,
        actor_id: str,
        transition: Transition,
    ) -> LedgerEntry:
        before, after, correlation_id = self._apply(operation, entry_id, actor_id, transition)
        self._audit.log_status_changed(
            event_type=event_type,
            entry_id=entry_id,
            actor_id=actor_id,
            previous_status=before.status.value,
            new_status=after.status.value,
            correlation_id=correlation_id,
        )
        return after

    # ==========================================================================
    # USERS
    # ==========================================================================

    def register_user(
        self,
        name: str,
        email: str,
        credential_hash: Optional[str] = None,
    ) -> User:
        """
        Register a new user.

        Raises:
            ValidationError: Malformed name/email or the email is taken
        """
        correlation_id = create_correlation_id()
        users = self._repository.load_users()

        try:
            normalized = email.strip().lower()
            if any(u.email.lower() == normalized for u in users):
                raise ValidationError(f"Email {email} is already registered")
            try:
                user = User(name=name.strip(), email=normalized, credential_hash=credential_hash)
            except SchemaError as e:
                raise ValidationError(f"Invalid user details: {e}")
        except LedgerError as e:
            self._reject("register_user", e, None, None, correlation_id)
            raise

        users.append(user)
        self._persist("register_user", correlation_id, lambda: self._repository.save_users(users))
        self._audit.log(AuditEventBuilder.user_registered(user.id, correlation_id=correlation_id))
        return user

    def get_user(self, user_id: str) -> User:
        return _find_user(self._repository.load_users(), user_id)

    def update_reminder_settings(self, user_id: str, settings: ReminderSettings) -> User:
        """Replace a user's reminder preferences."""
        correlation_id = create_correlation_id()
        users = self._repository.load_users()

        try:
            user = _find_user(users, user_id)
        except LedgerError as e:
            self._reject("update_reminder_settings", e, None, user_id, correlation_id)
            raise

        updated = user.model_copy(update={"reminder_settings": settings.model_copy()})
        users = [updated if u.id == user_id else u for u in users]
        self._persist(
            "update_reminder_settings",
            correlation_id,
            lambda: self._repository.save_users(users),
        )
        self._audit.log(AuditEventBuilder.reminder_settings_updated(
            user_id,
            settings.model_dump(),
            correlation_id=correlation_id,
        ))
        return updated

    # ==========================================================================
    # ENTRY LIFECYCLE
    # ==========================================================================

    def create_entry(self, request: CreateEntryRequest) -> LedgerEntry:
        """
        Record a new obligation.

        When the request does not say whether verification is required,
        the configured default applies.

        Raises:
            NotFoundError: Creator or linked target is not registered
            ValidationError: Malformed creation input
        """
        correlation_id = create_correlation_id()
        if "require_verification" not in request.model_fields_set:
            request = request.model_copy(
                update={"require_verification": self._default_require_verification}
            )

        users = self._repository.load_users()
        try:
            _find_user(users, request.creator_id)
            if request.target_user_id:
                _find_user(users, request.target_user_id)
            entry = create_entry(request, clock=self._clock)
        except LedgerError as e:
            self._reject("create_entry", e, None, request.creator_id, correlation_id)
            raise

        entries = self._repository.load_entries()
        entries.append(entry)
        self._persist("create_entry", correlation_id, lambda: self._repository.save_entries(entries))
        self._audit.log_entry_created(
            entry_id=entry.id,
            creator_id=entry.creator_id,
            entry_type=entry.type.value,
            status=entry.status.value,
            correlation_id=correlation_id,
        )
        return entry

    def get_entry(self, entry_id: str, viewer_id: Optional[str] = None) -> LedgerEntry:
        """
        Fetch one entry, optionally checking the viewer is a party.

        Raises:
            NotFoundError: No such entry
            PermissionError: ``viewer_id`` given and not a party
        """
        entry = find_entry(self._repository.load_entries(), entry_id)
        if viewer_id is not None:
            require_party(entry, viewer_id)
        return entry

    def confirm(self, entry_id: str, actor_id: str) -> LedgerEntry:
        return self._status_change(
            "confirm",
            AuditEventType.ENTRY_CONFIRMED,
            entry_id,
            actor_id,
            lambda entry: confirm(entry, actor_id, clock=self._clock),
        )

    def link_counterpart(self, entry_id: str, user_id: str) -> LedgerEntry:
        """A registered user claims an entry recorded against their name."""
        correlation_id = create_correlation_id()
        try:
            _find_user(self._repository.load_users(), user_id)
        except LedgerError as e:
            self._reject("link_counterpart", e, entry_id, user_id, correlation_id)
            raise

        _, after, correlation_id = self._apply(
            "link_counterpart",
            entry_id,
            user_id,
            lambda entry: link_counterpart(entry, user_id),
        )
        self._audit.log(AuditEventBuilder.counterpart_linked(
            entry_id,
            user_id,
            correlation_id=correlation_id,
        ))
        return after

    def record_payment(
        self,
        entry_id: str,
        amount: Union[Decimal, int, float, str],
        actor_id: str,
    ) -> LedgerEntry:
        _, after, correlation_id = self._apply(
            "record_payment",
            entry_id,
            actor_id,
            lambda entry: record_payment(entry, amount, actor_id=actor_id, clock=self._clock),
        )
        self._audit.log(AuditEventBuilder.payment_recorded(
            entry_id=entry_id,
            actor_id=actor_id,
            amount=after.payment_log[-1].amount,
            remaining=after.remaining_amount,
            correlation_id=correlation_id,
        ))
        return after

    def mark_fulfilled(self, entry_id: str, actor_id: str) -> LedgerEntry:
        return self._status_change(
            "mark_fulfilled",
            AuditEventType.ENTRY_FULFILLED,
            entry_id,
            actor_id,
            lambda entry: mark_fulfilled(entry, actor_id, clock=self._clock),
        )

    def forgive(self, entry_id: str, actor_id: str) -> LedgerEntry:
        return self._status_change(
            "forgive",
            AuditEventType.ENTRY_FORGIVEN,
            entry_id,
            actor_id,
            lambda entry: forgive(entry, actor_id, clock=self._clock),
        )

    def convert_to_charity(self, entry_id: str, actor_id: str) -> LedgerEntry:
        return self._status_change(
            "convert_to_charity",
            AuditEventType.ENTRY_CONVERTED_TO_CHARITY,
            entry_id,
            actor_id,
            lambda entry: convert_to_charity(entry, actor_id, clock=self._clock),
        )

    def retract_resolution(self, entry_id: str, actor_id: str) -> LedgerEntry:
        return self._status_change(
            "retract_resolution",
            AuditEventType.RESOLUTION_RETRACTED,
            entry_id,
            actor_id,
            lambda entry: retract_resolution(entry, actor_id, clock=self._clock),
        )

    def purge_entry(self, entry_id: str, actor_id: str) -> None:
        """
        Delete an entry from history. Creator only.

        Its reminder keys go with it; delivered notifications stay.
        """
        correlation_id = create_correlation_id()
        entries = self._repository.load_entries()

        try:
            entry = find_entry(entries, entry_id)
            if entry.creator_id != actor_id:
                raise PermissionError("Only the creator may delete an entry")
        except LedgerError as e:
            self._reject("purge_entry", e, entry_id, actor_id, correlation_id)
            raise

        remaining = [e for e in entries if e.id != entry_id]
        self._persist("purge_entry", correlation_id, lambda: self._repository.save_entries(remaining))

        prefix = f"{entry_id}_"
        triggered = self._repository.load_triggered()
        kept = {k: v for k, v in triggered.items() if not k.startswith(prefix)}
        if len(kept) != len(triggered):
            self._persist("purge_entry", correlation_id, lambda: self._repository.save_triggered(kept))

        self._audit.log(AuditEventBuilder.entry_purged(entry_id, actor_id, correlation_id=correlation_id))

    # ==========================================================================
    # REMINDERS
    # ==========================================================================

    def run_reminders(self, user_id: str) -> list[AppNotification]:
        """
        Scan one user's entries for newly due reminders and deliver them.

        Safe to call repeatedly: the triggered table is saved before the
        notifications are delivered.
        """
        correlation_id = create_correlation_id()
        try:
            user = _find_user(self._repository.load_users(), user_id)
        except LedgerError as e:
            self._reject("run_reminders", e, None, user_id, correlation_id)
            raise

        scan = scan_reminders(
            self._repository.load_entries(),
            user,
            self._repository.load_triggered(),
            clock=self._clock,
        )
        return self._finish_scan(scan, user_id, correlation_id)

    def run_all_reminders(self) -> list[AppNotification]:
        """Scan every registered user, e.g. from a periodic job."""
        correlation_id = create_correlation_id()
        scan = scan_all_reminders(
            self._repository.load_entries(),
            self._repository.load_users(),
            self._repository.load_triggered(),
            clock=self._clock,
        )
        return self._finish_scan(scan, None, correlation_id)

    def _finish_scan(self, scan, user_id: Optional[str], correlation_id: UUID) -> list[AppNotification]:
        if scan.notifications:
            self._persist(
                "run_reminders",
                correlation_id,
                lambda: self._repository.save_triggered(scan.triggered),
            )
        delivered = self._deliver(scan.notifications, correlation_id)
        self._audit.log(AuditEventBuilder.reminders_scanned(
            user_id,
            len(delivered),
            correlation_id=correlation_id,
        ))
        return delivered

    # ==========================================================================
    # QUERIES
    # ==========================================================================

    def dashboard(self, viewer_id: str) -> DashboardView:
        return dashboard(self._repository.load_entries(), viewer_id)

    def history(self, viewer_id: str) -> HistorySummary:
        return history(self._repository.load_entries(), viewer_id)

    def notifications_for(self, user_id: str, unread_only: bool = False) -> list[AppNotification]:
        """A user's inbox, newest first."""
        notifications = self._repository.load_notifications()
        if unread_only:
            return unread_for(notifications, user_id)
        return sorted(
            (n for n in notifications if n.user_id == user_id),
            key=lambda n: n.created_at,
            reverse=True,
        )

    def mark_notification_read(self, notification_id: str, user_id: str) -> AppNotification:
        correlation_id = create_correlation_id()
        try:
            updated = mark_read(self._repository.load_notifications(), notification_id, user_id)
        except LedgerError as e:
            self._reject("mark_notification_read", e, None, user_id, correlation_id)
            raise

        self._persist(
            "mark_notification_read",
            correlation_id,
            lambda: self._repository.save_notifications(updated),
        )
        return next(n for n in updated if n.id == notification_id)


def create_app_components(
    settings: Optional[Settings] = None,
    sink: Optional[NotificationSink] = None,
    clock: SystemClock = DEFAULT_CLOCK,
) -> LedgerService:
    """
    Factory function to create a fully wired LedgerService.

    Args:
        settings: Settings to use (defaults to ``get_settings()``)
        sink: Where notifications are delivered (defaults to an in-memory outbox)
        clock: Time source

    Returns:
        The service, backed by the configured storage
    """
    settings = settings or get_settings()
    configure_logging(settings.logging.level, settings.logging.json_output)

    storage_settings = settings.storage
    repository: LedgerRepository
    if storage_settings.backend == "json":
        try:
            repository = JsonFileRepository(
                storage_settings.data_dir,
                write_attempts=storage_settings.write_attempts,
            )
            audit_logger = AuditLogger(JsonLinesAuditStorage(storage_settings.data_dir))
        except OSError as e:
            # Data directory not usable - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            repository = InMemoryRepository()
            audit_logger = AuditLogger(InMemoryAuditStorage())
    else:
        repository = InMemoryRepository()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    return LedgerService(
        repository,
        audit_logger=audit_logger,
        sink=sink,
        clock=clock,
        default_require_verification=settings.app.default_require_verification,
    )
