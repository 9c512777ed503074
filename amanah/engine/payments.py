"""
Payment Ledger

Records partial payments and reopens resolutions, keeping
``remaining`` and ``status`` consistent with the payment history.

Invariant, for every divisible entry after every operation here:

    remaining + sum(non-reverted payments) == total

Retraction withdraws the live payments from the log into the
RetractionRecord and recomputes the balance from what is left, so
re-recording the same payments lands on the same balance and status.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from amanah.clock import DEFAULT_CLOCK, SystemClock
from amanah.engine.entries import counterpart_of, require_party, revalidated
from amanah.engine.transitions import ensure_from, ensure_transition
from amanah.errors import InvalidTransitionError, ValidationError
from amanah.models.entry import (
    Divisible,
    EntryStatus,
    LedgerEntry,
    PaymentRecord,
    RetractionRecord,
)
from amanah.models.notification import NotificationKind, TransitionOutcome
from amanah.notifications import address
from amanah.validation import raise_for_issues, validate_payment


RETRACTABLE_STATUSES = frozenset({
    EntryStatus.FULFILLED,
    EntryStatus.PARTIALLY_FULFILLED,
})

ZERO = Decimal("0")


def _to_decimal(amount: Union[Decimal, int, float, str]) -> Decimal:
    if isinstance(amount, float):
        amount = str(amount)
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Payment amount is not a number: {amount!r}")
    if not value.is_finite():
        raise ValidationError(f"Payment amount is not a number: {amount!r}")
    return value


def record_payment(
    entry: LedgerEntry,
    amount: Union[Decimal, int, float, str],
    actor_id: Optional[str] = None,
    clock: SystemClock = DEFAULT_CLOCK,
) -> TransitionOutcome:
    """
    Append a partial payment and pay down the balance.

    Reaching zero resolves the entry as FULFILLED; anything else leaves
    it PARTIALLY_FULFILLED.

    Raises:
        PermissionError: ``actor_id`` given and not a party to the entry
        ValidationError: Not a debt, no numeric amount, or the payment is
            not within (0, remaining]. Checked before the state.
        InvalidTransitionError: Entry is pending verification or resolved
    """
    if actor_id is not None:
        require_party(entry, actor_id)
    value = _to_decimal(amount)
    raise_for_issues(validate_payment(entry, value))
    ensure_from(
        entry,
        {EntryStatus.CONFIRMED, EntryStatus.PARTIALLY_FULFILLED},
        EntryStatus.PARTIALLY_FULFILLED,
    )

    now = clock.now()
    draft = entry.model_copy(deep=True)
    obligation: Divisible = draft.obligation
    obligation.payment_log.append(PaymentRecord(amount=value, date=now))
    obligation.remaining = max(ZERO, obligation.remaining - value)

    if obligation.remaining == 0:
        target = EntryStatus.FULFILLED
        draft.resolved_at = now
    else:
        target = EntryStatus.PARTIALLY_FULFILLED
    ensure_transition(entry, target)
    draft.status = target

    return TransitionOutcome(entry=revalidated(draft))


def recomputed_status(obligation: Divisible) -> EntryStatus:
    """Status implied by a freshly recomputed balance."""
    if obligation.remaining == 0:
        return EntryStatus.FULFILLED
    if obligation.active_payments:
        return EntryStatus.PARTIALLY_FULFILLED
    return EntryStatus.CONFIRMED


def retract_resolution(
    entry: LedgerEntry,
    actor_id: str,
    clock: SystemClock = DEFAULT_CLOCK,
) -> TransitionOutcome:
    """
    Reopen a FULFILLED or PARTIALLY_FULFILLED entry.

    Live payments are moved out of the log into the RetractionRecord,
    then the balance is rebuilt as ``total - sum(non-reverted payments)``
    over what remains. The counterpart of the actor is notified.

    No payment is flagged ``is_reverted`` by this operation.
    """
    require_party(entry, actor_id)
    if entry.status not in RETRACTABLE_STATUSES:
        raise InvalidTransitionError(
            entry.status.value,
            "reopened",
            message=f"Cannot retract an entry that is {entry.status.value}",
        )

    now = clock.now()
    draft = entry.model_copy(deep=True)

    withdrawn = []
    if isinstance(draft.obligation, Divisible):
        obligation = draft.obligation
        withdrawn = obligation.active_payments
        obligation.payment_log = [p for p in obligation.payment_log if p.is_reverted]
        obligation.remaining = max(ZERO, obligation.total - obligation.paid_total)
        target = recomputed_status(obligation)
    else:
        target = EntryStatus.CONFIRMED

    ensure_transition(entry, target)
    draft.status = target
    draft.resolved_at = now if target == EntryStatus.FULFILLED else None
    draft.retraction_history.append(RetractionRecord(
        date=now,
        previous_status=entry.status,
        initiator_id=actor_id,
        withdrawn_payments=withdrawn,
    ))
    committed = revalidated(draft)

    notifications = address(
        counterpart_of(committed, actor_id),
        committed,
        NotificationKind.RETRACTED,
        title="Resolution Retracted",
        message=(
            f"The resolution of {committed.amount} was retracted. "
            f"The entry is now {committed.status.value.replace('_', ' ')}."
        ),
        created_at=now,
    )
    return TransitionOutcome(entry=committed, notifications=notifications)
