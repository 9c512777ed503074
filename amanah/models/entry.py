"""
Core Data Models for the Amānah ledger

These models define the strict schemas for every obligation the engine
tracks. They are designed to:
1. Make illegal combinations unrepresentable where possible
2. Provide clear validation error messages
3. Be JSON-serializable for any repository backend

DESIGN DECISION: The amount of an obligation is a tagged variant.
An entry is either Indivisible (an item held in trust, only a display
amount) or Divisible (total, remaining and a payment log that always
travel together). The "all present or all absent" rule is then enforced
by the schema rather than by convention.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)


def new_id() -> str:
    """Generate an opaque identifier."""
    return uuid4().hex


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntryType(str, Enum):
    """
    What kind of obligation is being recorded.

    DEBT is monetary and divisible. AMANAH is an item held in trust and
    is returned whole, unless it carries an explicit valuation.
    """
    DEBT = "debt"
    AMANAH = "amanah"


class Direction(str, Enum):
    """
    Direction of the obligation, stated from the CREATOR's perspective.

    The counterpart sees the inverse. Never interpret this directly;
    use ``amanah.engine.entries.role_of``.
    """
    I_OWE = "i_owe"
    OWED_TO_ME = "owed_to_me"


class EntryStatus(str, Enum):
    """Lifecycle status of a ledger entry."""
    PENDING = "pending"                          # Awaiting counterpart confirmation
    CONFIRMED = "confirmed"                      # Both parties agree on the terms
    PARTIALLY_FULFILLED = "partially_fulfilled"  # Some payments recorded
    FULFILLED = "fulfilled"                      # Fully honored
    FORGIVEN = "forgiven"                        # Creditor waived the remainder
    CHARITY = "charity"                          # Creditor converted it to charity


ACTIVE_STATUSES = frozenset({
    EntryStatus.PENDING,
    EntryStatus.CONFIRMED,
    EntryStatus.PARTIALLY_FULFILLED,
})

RESOLVED_STATUSES = frozenset({
    EntryStatus.FULFILLED,
    EntryStatus.FORGIVEN,
    EntryStatus.CHARITY,
})


class Role(str, Enum):
    """A viewer's role relative to an entry."""
    CREDITOR = "creditor"  # Owed the obligation
    DEBTOR = "debtor"      # Responsible for fulfilling it


# =============================================================================
# USERS
# =============================================================================

class ReminderSettings(BaseModel):
    """Which due-date reminders a user wants to receive."""

    enabled: bool = Field(
        default=True,
        description="Master switch for all due-date reminders"
    )
    seven_day: bool = Field(
        default=True,
        description="Remind when the due date is within 7 days"
    )
    one_day: bool = Field(
        default=True,
        description="Remind when the due date is within 1 day"
    )

    def allows(self, threshold_days: int) -> bool:
        if not self.enabled:
            return False
        if threshold_days == 7:
            return self.seven_day
        if threshold_days == 1:
            return self.one_day
        return False


class User(BaseModel):
    """A registered party. Authentication lives outside the engine."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    credential_hash: Optional[str] = Field(
        default=None,
        description="Opaque credential hash, managed by the auth layer"
    )
    reminder_settings: ReminderSettings = Field(default_factory=ReminderSettings)


# =============================================================================
# PAYMENT HISTORY
# =============================================================================

class PaymentRecord(BaseModel):
    """
    One partial payment.

    Payments are only appended, except that a retraction withdraws the
    live ones into its RetractionRecord. ``is_reverted`` exists so a
    single payment can be voided in place; no engine operation sets it yet.
    """

    id: str = Field(default_factory=new_id)
    amount: Decimal = Field(..., gt=0)
    date: datetime
    is_reverted: bool = False


class RetractionRecord(BaseModel):
    """Trace of a resolution being reopened."""

    id: str = Field(default_factory=new_id)
    date: datetime
    previous_status: EntryStatus
    initiator_id: str
    withdrawn_payments: list[PaymentRecord] = Field(
        default_factory=list,
        description="Payments taken out of the balance by this retraction"
    )


# =============================================================================
# OBLIGATION VARIANT
# =============================================================================

class Indivisible(BaseModel):
    """An obligation settled as a whole (typically an item held in trust)."""

    kind: Literal["indivisible"] = "indivisible"


class Divisible(BaseModel):
    """
    A numeric obligation that can be paid down in parts.

    CRITICAL: ``remaining + sum(non-reverted payments) == total`` holds
    in every status. Marking an entry fulfilled records the outstanding
    remainder as a settling payment rather than zeroing the balance.
    """

    kind: Literal["divisible"] = "divisible"
    total: Decimal = Field(..., ge=0)
    remaining: Decimal = Field(..., ge=0)
    payment_log: list[PaymentRecord] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_remaining(self) -> 'Divisible':
        if self.remaining > self.total:
            raise ValueError("Remaining amount cannot exceed the total")
        if self.remaining + self.paid_total != self.total:
            raise ValueError(
                f"Remaining {self.remaining} plus payments {self.paid_total} "
                f"does not equal the total {self.total}"
            )
        return self

    @property
    def active_payments(self) -> list[PaymentRecord]:
        return [p for p in self.payment_log if not p.is_reverted]

    @property
    def paid_total(self) -> Decimal:
        """Sum of non-reverted payments."""
        return sum((p.amount for p in self.active_payments), Decimal("0"))


Obligation = Annotated[
    Union[Indivisible, Divisible],
    Field(discriminator="kind"),
]


# =============================================================================
# LEDGER ENTRY
# =============================================================================

class LedgerEntry(BaseModel):
    """
    The central entity: one obligation between two parties.

    CRITICAL: Entries are only changed through the engine operations in
    ``amanah.engine``. Those work on a copy and return a new entry, so a
    failed operation never leaves a half-updated record behind.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: str = Field(default_factory=new_id)
    creator_id: str = Field(..., min_length=1)
    target_user_id: Optional[str] = Field(
        default=None,
        description="Registered counterpart; immutable once set"
    )
    partner_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name of the counterpart"
    )

    # Terms
    type: EntryType
    direction: Direction
    amount: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display amount, e.g. '$250' or 'Gold Ring'"
    )
    obligation: Obligation = Field(default_factory=Indivisible)
    require_verification: bool = True
    due_date: Optional[date] = None
    notes: str = Field(default="", max_length=2000)

    # Lifecycle
    status: EntryStatus = EntryStatus.PENDING
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    retraction_history: list[RetractionRecord] = Field(default_factory=list)

    @computed_field
    @property
    def is_confirmed(self) -> bool:
        """Derived from status; never stored independently."""
        return self.status != EntryStatus.PENDING

    @property
    def is_divisible(self) -> bool:
        return isinstance(self.obligation, Divisible)

    @property
    def numeric_amount(self) -> Optional[Decimal]:
        if isinstance(self.obligation, Divisible):
            return self.obligation.total
        return None

    @property
    def remaining_amount(self) -> Optional[Decimal]:
        if isinstance(self.obligation, Divisible):
            return self.obligation.remaining
        return None

    @property
    def payment_log(self) -> Optional[list[PaymentRecord]]:
        if isinstance(self.obligation, Divisible):
            return self.obligation.payment_log
        return None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_resolved(self) -> bool:
        return self.status in RESOLVED_STATUSES

    def involves(self, user_id: str) -> bool:
        """Is this user one of the two parties?"""
        return user_id == self.creator_id or (
            self.target_user_id is not None and user_id == self.target_user_id
        )

    @model_validator(mode='after')
    def validate_lifecycle(self) -> 'LedgerEntry':
        """Validate status against lifecycle timestamps."""
        if self.status in RESOLVED_STATUSES and self.resolved_at is None:
            raise ValueError(f"A {self.status.value} entry must have resolved_at")
        if self.status not in RESOLVED_STATUSES and self.resolved_at is not None:
            raise ValueError(f"A {self.status.value} entry cannot have resolved_at")
        if self.status == EntryStatus.PENDING and self.confirmed_at is not None:
            raise ValueError("A pending entry cannot have confirmed_at")
        if self.target_user_id is not None and self.target_user_id == self.creator_id:
            raise ValueError("Creator cannot be their own counterpart")
        return self


class CreateEntryRequest(BaseModel):
    """
    Input for creating an entry.

    Deliberately lenient: the engine performs the business validation
    and raises ``amanah.errors.ValidationError`` with a clear message.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    creator_id: str
    partner_name: str = ""
    target_user_id: Optional[str] = None
    amount: str = ""
    type: EntryType = EntryType.DEBT
    direction: Direction = Direction.I_OWE
    numeric_amount: Optional[Decimal] = Field(
        default=None,
        description="Explicit valuation; parsed from amount for debts when omitted"
    )
    require_verification: bool = True
    due_date: Optional[date] = None
    notes: str = ""
