"""Tests for the reminder scheduler."""

from datetime import timedelta

import pytest

from amanah.engine import mark_fulfilled, scan_all_reminders, scan_reminders
from amanah.engine.reminders import days_until, is_reminder_applicable, threshold_key
from amanah.models import Direction, NotificationKind, ReminderSettings, User


@pytest.fixture
def due_in(make_entry, clock):
    """Entry alice is owed by bob, due ``days`` from the clock's today."""
    def _due_in(days, **overrides):
        return make_entry(due_date=clock.today() + timedelta(days=days), **overrides)
    return _due_in


class TestThresholds:
    """Tests for the 7-day and 1-day thresholds."""

    def test_due_tomorrow_fires_both_thresholds(self, due_in, bob, clock):
        entry = due_in(1)
        scan = scan_reminders([entry], bob, {}, clock=clock)

        assert len(scan.notifications) == 2
        assert scan.triggered == {f"{entry.id}_7": True, f"{entry.id}_1": True}
        for notification in scan.notifications:
            assert notification.user_id == "bob"
            assert notification.entry_id == entry.id
            assert notification.kind == NotificationKind.DUE_REMINDER
            assert notification.title == "Due tomorrow"
            assert notification.created_at == clock.now()

    def test_second_scan_is_silent(self, due_in, bob, clock):
        entries = [due_in(1), due_in(5)]
        first = scan_reminders(entries, bob, {}, clock=clock)
        second = scan_reminders(entries, bob, first.triggered, clock=clock)

        assert len(first.notifications) == 3
        assert second.notifications == []
        assert second.triggered == first.triggered

    def test_input_table_not_modified(self, due_in, bob, clock):
        triggered = {}
        scan_reminders([due_in(1)], bob, triggered, clock=clock)
        assert triggered == {}

    def test_seven_day_then_one_day(self, due_in, bob, clock):
        entry = due_in(5)
        first = scan_reminders([entry], bob, {}, clock=clock)
        assert list(first.triggered) == [threshold_key(entry.id, 7)]
        assert first.notifications[0].title == "Due in 5 days"
        assert first.notifications[0].message.endswith("is due in 5 days.")

        clock.advance(days=4)
        second = scan_reminders([entry], bob, first.triggered, clock=clock)
        assert len(second.notifications) == 1
        assert second.notifications[0].title == "Due tomorrow"
        assert second.triggered[threshold_key(entry.id, 1)] is True

    def test_exactly_seven_days_out(self, due_in, bob, clock):
        scan = scan_reminders([due_in(7)], bob, {}, clock=clock)
        assert len(scan.notifications) == 1

    @pytest.mark.parametrize("days", [8, 30, 0, -1, -10])
    def test_outside_window_is_silent(self, due_in, bob, clock, days):
        scan = scan_reminders([due_in(days)], bob, {}, clock=clock)
        assert scan.notifications == []
        assert scan.triggered == {}

    def test_days_until_uses_calendar_dates(self, clock):
        today = clock.today()
        assert days_until(today + timedelta(days=1), today) == 1
        assert days_until(today - timedelta(days=2), today) == -2


class TestApplicability:
    """Tests for who gets reminded about what."""

    def test_creditor_is_never_reminded(self, due_in, alice, clock):
        scan = scan_reminders([due_in(1)], alice, {}, clock=clock)
        assert scan.notifications == []

    def test_creator_who_owes_is_reminded(self, due_in, alice, clock):
        entry = due_in(1, direction=Direction.I_OWE)
        scan = scan_reminders([entry], alice, {}, clock=clock)
        assert {n.user_id for n in scan.notifications} == {"alice"}

    def test_stranger_is_never_reminded(self, due_in, clock):
        carol = User(id="carol", name="Carol", email="carol@example.com")
        assert scan_reminders([due_in(1)], carol, {}, clock=clock).notifications == []

    def test_resolved_entries_are_skipped(self, due_in, bob, clock):
        entry = mark_fulfilled(due_in(1), "bob", clock=clock).entry
        assert not is_reminder_applicable(entry, bob)
        assert scan_reminders([entry], bob, {}, clock=clock).notifications == []

    def test_pending_entries_still_remind(self, due_in, bob, clock):
        entry = due_in(1, require_verification=True)
        assert is_reminder_applicable(entry, bob)

    def test_no_due_date_no_reminder(self, make_entry, bob):
        assert not is_reminder_applicable(make_entry(), bob)

    def test_one_day_preference_off(self, due_in, bob, clock):
        bob.reminder_settings = ReminderSettings(one_day=False)
        entry = due_in(1)
        scan = scan_reminders([entry], bob, {}, clock=clock)
        assert list(scan.triggered) == [f"{entry.id}_7"]

    def test_seven_day_preference_off(self, due_in, bob, clock):
        bob.reminder_settings = ReminderSettings(seven_day=False)
        entry = due_in(1)
        scan = scan_reminders([entry], bob, {}, clock=clock)
        assert list(scan.triggered) == [f"{entry.id}_1"]

    def test_master_switch_off(self, due_in, bob, clock):
        bob.reminder_settings = ReminderSettings(enabled=False)
        scan = scan_reminders([due_in(1)], bob, {}, clock=clock)
        assert scan.notifications == []


class TestScanAll:
    """Tests for scanning every user in one pass."""

    def test_only_debtors_are_reminded(self, due_in, alice, bob, clock):
        entries = [due_in(1), due_in(3, direction=Direction.I_OWE)]
        scan = scan_all_reminders(entries, [alice, bob], {}, clock=clock)

        recipients = sorted(n.user_id for n in scan.notifications)
        assert recipients == ["alice", "bob", "bob"]
        assert len(scan.triggered) == 3

    def test_carries_existing_table(self, due_in, alice, bob, clock):
        entry = due_in(1)
        existing = {f"{entry.id}_7": True}
        scan = scan_all_reminders([entry], [alice, bob], existing, clock=clock)
        assert len(scan.notifications) == 1
        assert scan.triggered == {f"{entry.id}_7": True, f"{entry.id}_1": True}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
