"""Tests for the repository and audit storage implementations."""

import os
from decimal import Decimal

import pytest

from amanah.audit import create_correlation_id
from amanah.engine import record_payment
from amanah.models import (
    AppNotification,
    AuditEventBuilder,
    EntryStatus,
    NotificationKind,
    ReminderSettings,
)
from amanah.services.storage import (
    InMemoryAuditStorage,
    InMemoryRepository,
    JsonFileRepository,
    JsonLinesAuditStorage,
    StorageError,
)
from amanah.services.storage.json_file import ENTRIES_FILE


@pytest.fixture
def paid_entry(make_entry, clock):
    return record_payment(make_entry(amount="$250"), "100", clock=clock).entry


@pytest.fixture
def notification(paid_entry, clock):
    return AppNotification(
        user_id="bob",
        entry_id=paid_entry.id,
        kind=NotificationKind.RETRACTED,
        title="Resolution Retracted",
        message="Reopened.",
        created_at=clock.now(),
    )


class TestInMemoryRepository:
    """Tests for the in-memory repository."""

    def test_empty_by_default(self):
        repo = InMemoryRepository()
        assert repo.load_entries() == []
        assert repo.load_users() == []
        assert repo.load_notifications() == []
        assert repo.load_triggered() == {}

    def test_loaded_copies_are_detached(self, paid_entry):
        repo = InMemoryRepository()
        repo.save_entries([paid_entry])

        loaded = repo.load_entries()[0]
        loaded.status = EntryStatus.CHARITY
        loaded.obligation.payment_log.clear()

        stored = repo.load_entries()[0]
        assert stored.status == EntryStatus.PARTIALLY_FULFILLED
        assert len(stored.payment_log) == 1

    def test_saved_lists_are_detached(self, paid_entry):
        repo = InMemoryRepository()
        entries = [paid_entry]
        repo.save_entries(entries)
        entries.clear()
        assert len(repo.load_entries()) == 1

    def test_triggered_table(self):
        repo = InMemoryRepository()
        table = {"abc_7": True}
        repo.save_triggered(table)
        table["abc_1"] = True
        assert repo.load_triggered() == {"abc_7": True}


class TestJsonFileRepository:
    """Tests for the JSON file repository."""

    def test_missing_files_read_as_empty(self, tmp_path):
        repo = JsonFileRepository(tmp_path / "data")
        assert repo.load_entries() == []
        assert repo.load_triggered() == {}

    def test_entries_round_trip(self, tmp_path, paid_entry):
        repo = JsonFileRepository(tmp_path)
        repo.save_entries([paid_entry])

        [loaded] = JsonFileRepository(tmp_path).load_entries()
        assert loaded == paid_entry
        assert loaded.remaining_amount == Decimal("150")
        assert loaded.payment_log[0].amount == Decimal("100")

    def test_users_round_trip(self, tmp_path, bob):
        bob.reminder_settings = ReminderSettings(one_day=False)
        repo = JsonFileRepository(tmp_path)
        repo.save_users([bob])

        [loaded] = repo.load_users()
        assert loaded.id == "bob"
        assert loaded.reminder_settings.one_day is False

    def test_notifications_and_triggered_round_trip(self, tmp_path, notification):
        repo = JsonFileRepository(tmp_path)
        repo.save_notifications([notification])
        repo.save_triggered({f"{notification.entry_id}_7": True})

        assert repo.load_notifications() == [notification]
        assert repo.load_triggered() == {f"{notification.entry_id}_7": True}

    def test_no_temp_file_left_behind(self, tmp_path, paid_entry):
        JsonFileRepository(tmp_path).save_entries([paid_entry])
        assert sorted(p.name for p in tmp_path.iterdir()) == [ENTRIES_FILE]

    def test_corrupt_file_raises(self, tmp_path):
        (tmp_path / ENTRIES_FILE).write_text("{not json")
        with pytest.raises(StorageError, match=ENTRIES_FILE):
            JsonFileRepository(tmp_path).load_entries()

    def test_transient_write_failure_is_retried(self, tmp_path, paid_entry, monkeypatch):
        real_replace = os.replace
        calls = []

        def flaky_replace(src, dst):
            calls.append(dst)
            if len(calls) == 1:
                raise OSError("disk busy")
            real_replace(src, dst)

        monkeypatch.setattr(os, "replace", flaky_replace)
        repo = JsonFileRepository(tmp_path, write_attempts=3, retry_wait_seconds=0)
        repo.save_entries([paid_entry])

        assert len(calls) == 2
        assert repo.load_entries() == [paid_entry]

    def test_persistent_write_failure_raises(self, tmp_path, paid_entry, monkeypatch):
        def broken_replace(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr(os, "replace", broken_replace)
        repo = JsonFileRepository(tmp_path, write_attempts=2, retry_wait_seconds=0)

        with pytest.raises(StorageError, match="read-only"):
            repo.save_entries([paid_entry])
        assert list(tmp_path.iterdir()) == []


class TestAuditStorage:
    """Tests for the append-only audit stores."""

    @pytest.fixture(params=["memory", "jsonl"])
    def storage(self, request, tmp_path):
        if request.param == "memory":
            return InMemoryAuditStorage()
        return JsonLinesAuditStorage(tmp_path)

    def test_events_by_entity(self, storage):
        storage.append_event(AuditEventBuilder.entry_created("e1", "alice", "debt", "pending"))
        storage.append_event(AuditEventBuilder.entry_purged("e1", "alice"))
        storage.append_event(AuditEventBuilder.entry_created("e2", "alice", "debt", "pending"))

        events = storage.get_events_by_entity("entry", "e1")
        assert [e.event_type.value for e in events] == ["entry_created", "entry_purged"]

    def test_events_by_correlation_id(self, storage):
        correlation_id = create_correlation_id()
        storage.append_event(AuditEventBuilder.user_registered("bob", correlation_id=correlation_id))
        storage.append_event(AuditEventBuilder.user_registered("carol"))

        [event] = storage.get_events_by_correlation_id(correlation_id)
        assert event.entity_id == "bob"

    def test_recent_events_newest_first(self, storage):
        for entry_id in ["e1", "e2", "e3"]:
            assert storage.append_event(AuditEventBuilder.entry_purged(entry_id, "alice")) is True

        recent = storage.get_recent_events(limit=2)
        assert [e.entity_id for e in recent] == ["e3", "e2"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
