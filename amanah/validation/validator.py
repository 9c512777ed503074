"""
Input Validation for ledger operations

DESIGN DECISION: Validation is collected, then raised once.
All problems with an input are reported together as ValidationIssue
objects attached to a single ValidationError, so a form can highlight
every bad field in one round trip.

IMPORTANT: Validation NEVER silently fixes issues.
An empty partner name is an error, not a default.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, Field

from amanah.errors import ValidationError
from amanah.models.entry import CreateEntryRequest, EntryType, LedgerEntry


# First number in a display amount: "$250", "₦1,500.50", "250 USD", "-$50".
# A minus only counts as a sign when it does not follow a word ("Item-2").
_NUMBER_PATTERN = re.compile(
    r"(?:(?<!\w)(?P<sign>-))?[^\w\s.,-]{0,3}"
    r"(?P<number>\d[\d,]*(?:\.\d+)?|\.\d+)"
)


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'exceeds_balance')"
    )
    message: str


def parse_numeric_amount(text: str) -> Optional[Decimal]:
    """
    Extract the numeric value from a display amount.

    Thousands separators are dropped and a leading minus is kept, so a
    negative amount reaches validation instead of flipping sign. Returns
    None when the text holds no number at all (e.g. "Gold Ring").
    """
    match = _NUMBER_PATTERN.search(text or "")
    if not match:
        return None
    try:
        value = Decimal(match.group("number").replace(",", ""))
    except InvalidOperation:
        return None
    return -value if match.group("sign") else value


def raise_for_issues(issues: list[ValidationIssue]) -> None:
    """Raise a single ValidationError carrying every issue, if any."""
    if issues:
        message = "; ".join(issue.message for issue in issues)
        raise ValidationError(message, issues=issues)


def validate_create_request(request: CreateEntryRequest) -> list[ValidationIssue]:
    """
    Check an entry creation request.

    Checks:
    - Partner name and display amount are present
    - Neither an explicit valuation nor a debt amount is negative
    - The creator is not also the counterpart
    """
    issues = []

    if not request.creator_id:
        issues.append(ValidationIssue(
            field="creator_id",
            issue_type="missing",
            message="Creator is required",
        ))

    if not request.partner_name:
        issues.append(ValidationIssue(
            field="partner_name",
            issue_type="missing",
            message="Partner name is required",
        ))

    if not request.amount:
        issues.append(ValidationIssue(
            field="amount",
            issue_type="missing",
            message="Amount is required",
        ))

    if request.numeric_amount is not None and request.numeric_amount < 0:
        issues.append(ValidationIssue(
            field="numeric_amount",
            issue_type="invalid_value",
            message="Numeric amount cannot be negative",
        ))

    if request.numeric_amount is None and request.type == EntryType.DEBT:
        parsed = parse_numeric_amount(request.amount)
        if parsed is not None and parsed < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount cannot be negative",
            ))

    if request.target_user_id and request.target_user_id == request.creator_id:
        issues.append(ValidationIssue(
            field="target_user_id",
            issue_type="invalid_value",
            message="You cannot record an obligation with yourself",
        ))

    return issues


def validate_payment(entry: LedgerEntry, amount: Decimal) -> list[ValidationIssue]:
    """
    Check a partial payment against an entry.

    Partial payments are only accepted on monetary debts, must be
    positive and cannot exceed the outstanding balance.
    """
    issues = []

    if entry.type != EntryType.DEBT:
        issues.append(ValidationIssue(
            field="type",
            issue_type="not_divisible",
            message="Partial payments are only supported for debts",
        ))
        return issues

    remaining = entry.remaining_amount
    if remaining is None:
        issues.append(ValidationIssue(
            field="amount",
            issue_type="not_divisible",
            message="This entry has no numeric amount to pay down",
        ))
        return issues

    if amount <= 0:
        issues.append(ValidationIssue(
            field="amount",
            issue_type="invalid_value",
            message="Payment amount must be greater than zero",
        ))
    elif amount > remaining:
        issues.append(ValidationIssue(
            field="amount",
            issue_type="exceeds_balance",
            message=f"Payment of {amount} exceeds the remaining balance of {remaining}",
        ))

    return issues
