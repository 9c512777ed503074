"""
Reminder Scheduler

Pure function over the entry collection: which due-date thresholds have
newly elapsed for a user, and which reminders does that produce?

Thresholds are checked in order (7 days, then 1 day) and independently.
An entry first scanned one day before it is due therefore yields BOTH
the 7-day and the 1-day reminder in the same pass; each threshold fires
at most once per entry, tracked by the ``"{entry_id}_{threshold}"``
keys of the triggered table.

The scheduler performs no I/O. It returns the new notifications and the
updated triggered table for the caller to persist.
"""

from datetime import date
from typing import Iterable, Mapping, Optional

from amanah.clock import DEFAULT_CLOCK, SystemClock
from amanah.config import REMINDER_THRESHOLDS_DAYS
from amanah.engine.entries import role_of
from amanah.models.entry import LedgerEntry, Role, User
from amanah.models.notification import (
    AppNotification,
    NotificationKind,
    ReminderScan,
)
from amanah.notifications import address


def threshold_key(entry_id: str, threshold_days: int) -> str:
    return f"{entry_id}_{threshold_days}"


def days_until(due: date, today: date) -> int:
    """Whole calendar days from today to the due date (negative when overdue)."""
    return (due - today).days


def is_reminder_applicable(entry: LedgerEntry, user: User) -> bool:
    """
    Should this user ever be reminded about this entry?

    Requires a due date, an active status, the user being a party, and
    the user being the one who has to fulfil it.
    """
    if entry.due_date is None or not entry.is_active:
        return False
    if not entry.involves(user.id):
        return False
    return role_of(entry, user.id) == Role.DEBTOR


def _reminder_text(entry: LedgerEntry, diff_days: int) -> tuple[str, str]:
    if diff_days == 1:
        return (
            "Due tomorrow",
            f"Your obligation of {entry.amount} is due tomorrow.",
        )
    return (
        f"Due in {diff_days} days",
        f"Your obligation of {entry.amount} is due in {diff_days} days.",
    )


def scan_reminders(
    entries: Iterable[LedgerEntry],
    user: User,
    triggered: Optional[Mapping[str, bool]] = None,
    clock: SystemClock = DEFAULT_CLOCK,
) -> ReminderScan:
    """
    Compute newly due reminders for one user.

    The input ``triggered`` mapping is never modified.
    """
    updated = dict(triggered or {})
    notifications: list[AppNotification] = []
    now = clock.now()
    today = now.date()

    for entry in entries:
        if not is_reminder_applicable(entry, user):
            continue
        diff_days = days_until(entry.due_date, today)

        for threshold in REMINDER_THRESHOLDS_DAYS:
            if not user.reminder_settings.allows(threshold):
                continue
            if not 0 < diff_days <= threshold:
                continue
            key = threshold_key(entry.id, threshold)
            if updated.get(key):
                continue

            title, message = _reminder_text(entry, diff_days)
            notifications.extend(address(
                user.id,
                entry,
                NotificationKind.DUE_REMINDER,
                title=title,
                message=message,
                created_at=now,
            ))
            updated[key] = True

    return ReminderScan(notifications=notifications, triggered=updated)


def scan_all_reminders(
    entries: Iterable[LedgerEntry],
    users: Iterable[User],
    triggered: Optional[Mapping[str, bool]] = None,
    clock: SystemClock = DEFAULT_CLOCK,
) -> ReminderScan:
    """Run ``scan_reminders`` for every user, threading the triggered table through."""
    entries = list(entries)
    result = ReminderScan(triggered=dict(triggered or {}))

    for user in users:
        scan = scan_reminders(entries, user, result.triggered, clock=clock)
        result.notifications.extend(scan.notifications)
        result.triggered = scan.triggered

    return result
