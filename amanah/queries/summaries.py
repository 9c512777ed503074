"""
Read-side views over the entry collection

DESIGN DECISION: Queries are DETERMINISTIC functions of the collection.
They never modify entries and never guess: an entry without a numeric
amount contributes nothing to a monetary total.

All perspective questions go through ``role_of``.
"""

from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, Field

from amanah.engine.entries import percent, role_of
from amanah.errors import NotFoundError
from amanah.models.entry import EntryStatus, LedgerEntry, Role


class DashboardView(BaseModel):
    """Active entries for a viewer, split by who has to act."""

    viewer_id: str
    obligations: list[LedgerEntry] = Field(
        default_factory=list,
        description="Entries the viewer has to fulfil"
    )
    trusts: list[LedgerEntry] = Field(
        default_factory=list,
        description="Entries the viewer is owed"
    )
    outstanding_owed_by_viewer: Decimal = Decimal("0")
    outstanding_owed_to_viewer: Decimal = Decimal("0")
    awaiting_confirmation: int = 0


class HistorySummary(BaseModel):
    """Resolved entries for a viewer with honor statistics."""

    viewer_id: str
    entries: list[LedgerEntry] = Field(default_factory=list)
    fulfilled: int = 0
    forgiven: int = 0
    charity: int = 0
    honor_rate: int = Field(
        default=0,
        ge=0,
        le=100,
        description="Percentage of resolved entries that were fulfilled"
    )
    by_month: dict[str, list[str]] = Field(
        default_factory=dict,
        description="'YYYY-MM' -> entry ids, newest month first"
    )


def find_entry(entries: Iterable[LedgerEntry], entry_id: str) -> LedgerEntry:
    """
    Look up one entry by id.

    Raises:
        NotFoundError: No entry with that id
    """
    for entry in entries:
        if entry.id == entry_id:
            return entry
    raise NotFoundError(f"Entry {entry_id} not found")


def entries_for(entries: Iterable[LedgerEntry], viewer_id: str) -> list[LedgerEntry]:
    """Entries where the viewer is creator or linked counterpart."""
    return [e for e in entries if e.involves(viewer_id)]


def dashboard(entries: Iterable[LedgerEntry], viewer_id: str) -> DashboardView:
    """Partition the viewer's active entries into obligations and trusts."""
    view = DashboardView(viewer_id=viewer_id)

    for entry in entries_for(entries, viewer_id):
        if not entry.is_active:
            continue
        if entry.status == EntryStatus.PENDING:
            view.awaiting_confirmation += 1

        remaining = entry.remaining_amount or Decimal("0")
        if role_of(entry, viewer_id) == Role.DEBTOR:
            view.obligations.append(entry)
            view.outstanding_owed_by_viewer += remaining
        else:
            view.trusts.append(entry)
            view.outstanding_owed_to_viewer += remaining

    return view


def history(entries: Iterable[LedgerEntry], viewer_id: str) -> HistorySummary:
    """Resolved entries, newest resolution first, grouped by month."""
    resolved = sorted(
        (e for e in entries_for(entries, viewer_id) if e.is_resolved),
        key=lambda e: e.resolved_at or e.created_at,
        reverse=True,
    )
    summary = HistorySummary(viewer_id=viewer_id, entries=resolved)
    if not resolved:
        return summary

    summary.fulfilled = sum(1 for e in resolved if e.status == EntryStatus.FULFILLED)
    summary.forgiven = sum(1 for e in resolved if e.status == EntryStatus.FORGIVEN)
    summary.charity = sum(1 for e in resolved if e.status == EntryStatus.CHARITY)
    summary.honor_rate = percent(summary.fulfilled, len(resolved))

    for entry in resolved:
        key = (entry.resolved_at or entry.created_at).strftime("%Y-%m")
        summary.by_month.setdefault(key, []).append(entry.id)

    return summary
