"""
Shared fixtures for the ledger test suites.

Test strategy:
1. Engine tests run pure functions against a FixedClock
2. Service tests use in-memory storage and an in-memory outbox
3. Only the JSON repository tests touch the filesystem (tmp_path)
"""

from datetime import datetime, timezone

import pytest

from amanah.clock import FixedClock
from amanah.engine import create_entry
from amanah.models import CreateEntryRequest, Direction, EntryType, User


NOW = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def make_entry(clock):
    """
    Build an entry through the engine.

    Defaults: alice is owed $250 by bob, verification waived, so the
    entry starts CONFIRMED with alice as creditor and bob as debtor.
    """
    def _make(**overrides):
        fields = dict(
            creator_id="alice",
            target_user_id="bob",
            partner_name="Bob",
            amount="$250",
            type=EntryType.DEBT,
            direction=Direction.OWED_TO_ME,
            require_verification=False,
        )
        fields.update(overrides)
        return create_entry(CreateEntryRequest(**fields), clock=clock)

    return _make


@pytest.fixture
def alice():
    return User(id="alice", name="Alice", email="alice@example.com")


@pytest.fixture
def bob():
    return User(id="bob", name="Bob", email="bob@example.com")
