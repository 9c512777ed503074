"""Validation package."""

from amanah.validation.validator import (
    ValidationIssue,
    parse_numeric_amount,
    raise_for_issues,
    validate_create_request,
    validate_payment,
)

__all__ = [
    "ValidationIssue",
    "parse_numeric_amount",
    "raise_for_issues",
    "validate_create_request",
    "validate_payment",
]
