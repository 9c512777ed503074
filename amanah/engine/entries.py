"""
Entry Model

Builds well-formed ledger entries and answers perspective questions
about them.

CRITICAL: ``direction`` is stored from the creator's point of view only.
Every "who owes whom" question goes through ``role_of`` and the party
helpers below. Nothing else in the code base interprets ``direction``.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from amanah.clock import DEFAULT_CLOCK, SystemClock
from amanah.errors import PermissionError
from amanah.models.entry import (
    CreateEntryRequest,
    Direction,
    Divisible,
    EntryStatus,
    EntryType,
    Indivisible,
    LedgerEntry,
    Role,
)
from amanah.validation import (
    parse_numeric_amount,
    raise_for_issues,
    validate_create_request,
)


def create_entry(
    request: CreateEntryRequest,
    clock: SystemClock = DEFAULT_CLOCK,
) -> LedgerEntry:
    """
    Construct a new entry from creation input.

    The numeric amount is parsed from the display amount for debts only;
    an amanah is indivisible unless the caller supplies a valuation.
    Entries that waive verification start out CONFIRMED.

    Raises:
        ValidationError: partner name or amount is empty, or the
            valuation is negative
    """
    raise_for_issues(validate_create_request(request))

    numeric = request.numeric_amount
    if numeric is None and request.type == EntryType.DEBT:
        numeric = parse_numeric_amount(request.amount)

    if numeric is not None:
        obligation = Divisible(total=numeric, remaining=numeric)
    else:
        obligation = Indivisible()

    now = clock.now()
    verified_upfront = not request.require_verification

    return LedgerEntry(
        creator_id=request.creator_id,
        target_user_id=request.target_user_id or None,
        partner_name=request.partner_name,
        type=request.type,
        direction=request.direction,
        amount=request.amount,
        obligation=obligation,
        require_verification=request.require_verification,
        due_date=request.due_date,
        notes=request.notes,
        status=EntryStatus.CONFIRMED if verified_upfront else EntryStatus.PENDING,
        created_at=now,
        confirmed_at=now if verified_upfront else None,
    )


def role_of(entry: LedgerEntry, viewer_id: str) -> Role:
    """
    The viewer's role relative to the entry.

    Creditor iff (viewer is creator AND direction is OWED_TO_ME) or
    (viewer is the counterpart AND direction is I_OWE). Debtor otherwise.
    """
    is_creator = viewer_id == entry.creator_id
    if is_creator and entry.direction == Direction.OWED_TO_ME:
        return Role.CREDITOR
    if not is_creator and entry.direction == Direction.I_OWE:
        return Role.CREDITOR
    return Role.DEBTOR


def creditor_id(entry: LedgerEntry) -> Optional[str]:
    """Registered id of the party owed, or None if that party is unlinked."""
    if entry.direction == Direction.OWED_TO_ME:
        return entry.creator_id
    return entry.target_user_id


def debtor_id(entry: LedgerEntry) -> Optional[str]:
    """Registered id of the party who must fulfil, or None if unlinked."""
    if entry.direction == Direction.I_OWE:
        return entry.creator_id
    return entry.target_user_id


def counterpart_of(entry: LedgerEntry, user_id: str) -> Optional[str]:
    """The other party, from ``user_id``'s point of view."""
    if user_id == entry.creator_id:
        return entry.target_user_id
    return entry.creator_id


def require_party(entry: LedgerEntry, actor_id: str) -> None:
    """Reject actors who are neither creator nor linked counterpart."""
    if not entry.involves(actor_id):
        raise PermissionError(
            f"User {actor_id} is not a party to entry {entry.id}"
        )


def require_creditor(entry: LedgerEntry, actor_id: str, action: str) -> None:
    require_party(entry, actor_id)
    if role_of(entry, actor_id) != Role.CREDITOR:
        raise PermissionError(f"Only the creditor may {action}")


def percent(part: Union[Decimal, int], whole: Union[Decimal, int]) -> int:
    """Whole-number percentage of ``part`` in ``whole``, halves rounded up."""
    ratio = Decimal(part) * 100 / Decimal(whole)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def progress_percent(entry: LedgerEntry) -> int:
    """
    Percentage of the numeric amount already paid, 0-100.

    0 for indivisible entries and zero-valued ones. Halves round up.
    """
    total = entry.numeric_amount
    remaining = entry.remaining_amount
    if total is None or remaining is None or total <= 0:
        return 0
    return percent(total - remaining, total)


def revalidated(draft: LedgerEntry) -> LedgerEntry:
    """
    Re-run model validation over a mutated draft.

    Engine operations mutate a deep copy and commit it through here,
    so a draft that breaks an invariant never escapes.
    """
    return LedgerEntry.model_validate(draft.model_dump())
