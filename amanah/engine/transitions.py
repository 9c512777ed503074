"""
Status State Machine

    PENDING -> CONFIRMED -> PARTIALLY_FULFILLED <-> CONFIRMED -> FULFILLED
    CONFIRMED / PARTIALLY_FULFILLED -> FORGIVEN
    CONFIRMED -> CHARITY

FORGIVEN and CHARITY are terminal. FULFILLED and PARTIALLY_FULFILLED can
be reopened by a retraction (see ``amanah.engine.payments``).

Role checks run before state checks: an actor without the right role
gets PermissionError no matter what state the entry is in.
"""

from decimal import Decimal

from amanah.clock import DEFAULT_CLOCK, SystemClock
from amanah.engine.entries import (
    debtor_id,
    require_creditor,
    require_party,
    revalidated,
)
from amanah.errors import InvalidTransitionError, PermissionError, ValidationError
from amanah.models.entry import Divisible, EntryStatus, LedgerEntry, PaymentRecord
from amanah.models.notification import NotificationKind, TransitionOutcome
from amanah.notifications import address


LEGAL_TRANSITIONS: dict[EntryStatus, frozenset[EntryStatus]] = {
    EntryStatus.PENDING: frozenset({EntryStatus.CONFIRMED}),
    EntryStatus.CONFIRMED: frozenset({
        EntryStatus.PARTIALLY_FULFILLED,
        EntryStatus.FULFILLED,
        EntryStatus.FORGIVEN,
        EntryStatus.CHARITY,
    }),
    EntryStatus.PARTIALLY_FULFILLED: frozenset({
        EntryStatus.PARTIALLY_FULFILLED,
        EntryStatus.CONFIRMED,
        EntryStatus.FULFILLED,
        EntryStatus.FORGIVEN,
    }),
    # Only reachable backwards through a retraction
    EntryStatus.FULFILLED: frozenset({
        EntryStatus.CONFIRMED,
        EntryStatus.PARTIALLY_FULFILLED,
        EntryStatus.FULFILLED,
    }),
    EntryStatus.FORGIVEN: frozenset(),
    EntryStatus.CHARITY: frozenset(),
}


def can_transition(current: EntryStatus, target: EntryStatus) -> bool:
    return target in LEGAL_TRANSITIONS[current]


def ensure_transition(entry: LedgerEntry, target: EntryStatus) -> None:
    """Raise InvalidTransitionError unless ``target`` is reachable from the entry's status."""
    if not can_transition(entry.status, target):
        raise InvalidTransitionError(entry.status.value, target.value)


def ensure_from(entry: LedgerEntry, allowed: set[EntryStatus], target: EntryStatus) -> None:
    """Narrower check for operations legal only from specific states."""
    if entry.status not in allowed:
        raise InvalidTransitionError(entry.status.value, target.value)


def confirm(
    entry: LedgerEntry,
    actor_id: str,
    clock: SystemClock = DEFAULT_CLOCK,
) -> TransitionOutcome:
    """
    Counterpart acknowledges the entry's terms.

    Raises:
        PermissionError: The creator tried to confirm their own entry,
            or the actor is not the linked counterpart
        InvalidTransitionError: The entry is not PENDING
    """
    if actor_id == entry.creator_id:
        raise PermissionError("The creator cannot confirm their own entry")
    require_party(entry, actor_id)
    ensure_from(entry, {EntryStatus.PENDING}, EntryStatus.CONFIRMED)

    draft = entry.model_copy(deep=True)
    draft.status = EntryStatus.CONFIRMED
    if draft.confirmed_at is None:
        draft.confirmed_at = clock.now()
    return TransitionOutcome(entry=revalidated(draft))


def link_counterpart(
    entry: LedgerEntry,
    user_id: str,
) -> TransitionOutcome:
    """
    Attach a registered user to an entry recorded against a name only.

    This is how a guest who received a verification link claims the
    entry before confirming it. The link is permanent.

    Raises:
        ValidationError: The creator tried to link themselves
        InvalidTransitionError: A counterpart is already linked
    """
    if user_id == entry.creator_id:
        raise ValidationError("The creator cannot be linked as their own counterpart")
    if entry.target_user_id is not None:
        raise InvalidTransitionError(
            entry.status.value,
            entry.status.value,
            message=f"Entry {entry.id} already has a linked counterpart",
        )

    draft = entry.model_copy(deep=True)
    draft.target_user_id = user_id
    return TransitionOutcome(entry=revalidated(draft))


def mark_fulfilled(
    entry: LedgerEntry,
    actor_id: str,
    clock: SystemClock = DEFAULT_CLOCK,
) -> TransitionOutcome:
    """
    Either party attests the obligation has been honored in full.

    An outstanding balance is recorded as one settling payment, so the
    payment log always accounts for the whole total.
    """
    require_party(entry, actor_id)
    ensure_from(
        entry,
        {EntryStatus.CONFIRMED, EntryStatus.PARTIALLY_FULFILLED},
        EntryStatus.FULFILLED,
    )

    now = clock.now()
    draft = entry.model_copy(deep=True)
    draft.status = EntryStatus.FULFILLED
    if isinstance(draft.obligation, Divisible) and draft.obligation.remaining > 0:
        obligation = draft.obligation
        obligation.payment_log.append(PaymentRecord(amount=obligation.remaining, date=now))
        obligation.remaining = Decimal("0")
    draft.resolved_at = now
    return TransitionOutcome(entry=revalidated(draft))


def forgive(
    entry: LedgerEntry,
    actor_id: str,
    clock: SystemClock = DEFAULT_CLOCK,
) -> TransitionOutcome:
    """
    Creditor waives what is still owed (an act of grace).

    The debtor is notified.
    """
    require_creditor(entry, actor_id, "forgive an obligation")
    ensure_from(
        entry,
        {EntryStatus.CONFIRMED, EntryStatus.PARTIALLY_FULFILLED},
        EntryStatus.FORGIVEN,
    )

    now = clock.now()
    draft = entry.model_copy(deep=True)
    draft.status = EntryStatus.FORGIVEN
    draft.resolved_at = now
    committed = revalidated(draft)

    notifications = address(
        debtor_id(committed),
        committed,
        NotificationKind.FORGIVEN,
        title="Act of Grace",
        message=f"Your obligation of {committed.amount} has been forgiven.",
        created_at=now,
    )
    return TransitionOutcome(entry=committed, notifications=notifications)


def convert_to_charity(
    entry: LedgerEntry,
    actor_id: str,
    clock: SystemClock = DEFAULT_CLOCK,
) -> TransitionOutcome:
    """Creditor converts a confirmed obligation into charity."""
    require_creditor(entry, actor_id, "convert an obligation to charity")
    ensure_from(entry, {EntryStatus.CONFIRMED}, EntryStatus.CHARITY)

    draft = entry.model_copy(deep=True)
    draft.status = EntryStatus.CHARITY
    draft.resolved_at = clock.now()
    return TransitionOutcome(entry=revalidated(draft))
