"""Read-side query package."""

from amanah.queries.summaries import (
    DashboardView,
    HistorySummary,
    dashboard,
    entries_for,
    find_entry,
    history,
)

__all__ = [
    "DashboardView",
    "HistorySummary",
    "dashboard",
    "entries_for",
    "find_entry",
    "history",
]
