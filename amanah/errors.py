"""
Error taxonomy for ledger operations.

Every engine operation either returns the updated entity or raises one
of these. Callers (UI, API) translate them into user-facing messages or
HTTP status codes.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger engine operations."""
    pass


class ValidationError(LedgerError):
    """Malformed input: empty partner name, bad amount, bad payment."""

    def __init__(self, message: str, issues: Optional[list] = None):
        self.issues = issues or []
        super().__init__(message)


class PermissionError(LedgerError):
    """Actor lacks the role required for the requested action."""
    pass


class InvalidTransitionError(LedgerError):
    """Requested transition is not legal from the entry's current state."""

    def __init__(self, current: str, target: str, message: Optional[str] = None):
        self.current = current
        self.target = target
        super().__init__(
            message or f"Cannot move entry from {current} to {target}"
        )


class NotFoundError(LedgerError):
    """Referenced entry, user or notification does not exist."""
    pass
