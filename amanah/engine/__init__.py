"""
Ledger Entry Lifecycle Engine

Pure, synchronous operations over ledger entries. Every operation takes
an entry (or a collection) and returns a new value; nothing here reads
or writes storage.
"""

from amanah.engine.entries import (
    counterpart_of,
    create_entry,
    creditor_id,
    debtor_id,
    progress_percent,
    require_party,
    role_of,
)
from amanah.engine.transitions import (
    LEGAL_TRANSITIONS,
    can_transition,
    confirm,
    convert_to_charity,
    forgive,
    link_counterpart,
    mark_fulfilled,
)
from amanah.engine.payments import record_payment, retract_resolution
from amanah.engine.reminders import scan_all_reminders, scan_reminders

__all__ = [
    # Entry model
    "counterpart_of",
    "create_entry",
    "creditor_id",
    "debtor_id",
    "progress_percent",
    "require_party",
    "role_of",
    # State machine
    "LEGAL_TRANSITIONS",
    "can_transition",
    "confirm",
    "convert_to_charity",
    "forgive",
    "link_counterpart",
    "mark_fulfilled",
    # Payment ledger
    "record_payment",
    "retract_resolution",
    # Reminders
    "scan_all_reminders",
    "scan_reminders",
]
