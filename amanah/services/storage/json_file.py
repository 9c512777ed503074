"""
JSON File Storage Implementation

DESIGN DECISION: Plain JSON files are the persistent backend because:
1. Users can read and back up their ledger without tools
2. No database setup required
3. pydantic already knows how to (de)serialize every model

Each collection lives in its own file under ``data_dir``. Writes go to a
temporary file first and are moved into place with ``os.replace`` so a
crash mid-write never leaves a truncated collection behind.

TRADEOFFS:
- Whole-collection rewrites (we're fine for personal use)
- No cross-file transactions (the service saves entries first)
"""

import os
from pathlib import Path
from typing import Any, Mapping, Union
from uuid import UUID

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from amanah.models.audit import AuditEvent
from amanah.models.entry import LedgerEntry, User
from amanah.models.notification import AppNotification
from amanah.services.storage.interface import (
    AuditStorageInterface,
    LedgerRepository,
    StorageError,
)


logger = structlog.get_logger(__name__)

ENTRIES_FILE = "entries.json"
USERS_FILE = "users.json"
NOTIFICATIONS_FILE = "notifications.json"
TRIGGERED_FILE = "triggered_reminders.json"
AUDIT_FILE = "audit.jsonl"

_ENTRIES = TypeAdapter(list[LedgerEntry])
_USERS = TypeAdapter(list[User])
_NOTIFICATIONS = TypeAdapter(list[AppNotification])
_TRIGGERED = TypeAdapter(dict[str, bool])


class JsonFileRepository(LedgerRepository):
    """
    File-per-collection repository.

    A missing file reads as an empty collection. A file that exists but
    does not parse raises StorageError rather than silently dropping data.
    """

    def __init__(
        self,
        data_dir: Union[str, Path],
        write_attempts: int = 3,
        retry_wait_seconds: float = 0.1,
    ):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._write = retry(
            stop=stop_after_attempt(write_attempts),
            wait=wait_exponential(multiplier=retry_wait_seconds, max=2),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )(self._write_once)

    def _path(self, name: str) -> Path:
        return self.data_dir / name

    def _read(self, name: str, adapter: TypeAdapter, empty: Any) -> Any:
        path = self._path(name)
        if not path.exists():
            return empty
        try:
            return adapter.validate_json(path.read_bytes())
        except (OSError, SchemaError) as e:
            raise StorageError(f"Failed to read {name}: {e}", path=str(path))

    def _write_once(self, path: Path, payload: bytes) -> None:
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp.write_bytes(payload)
            os.replace(tmp, path)
        finally:
            tmp.unlink(missing_ok=True)

    def _save(self, name: str, adapter: TypeAdapter, value: Any) -> None:
        path = self._path(name)
        payload = adapter.dump_json(value, indent=2)
        try:
            self._write(path, payload)
        except OSError as e:
            logger.error("collection_write_failed", file=name, error=str(e))
            raise StorageError(f"Failed to write {name}: {e}", path=str(path))

    def load_entries(self) -> list[LedgerEntry]:
        return self._read(ENTRIES_FILE, _ENTRIES, [])

    def save_entries(self, entries: list[LedgerEntry]) -> None:
        self._save(ENTRIES_FILE, _ENTRIES, list(entries))

    def load_users(self) -> list[User]:
        return self._read(USERS_FILE, _USERS, [])

    def save_users(self, users: list[User]) -> None:
        self._save(USERS_FILE, _USERS, list(users))

    def load_notifications(self) -> list[AppNotification]:
        return self._read(NOTIFICATIONS_FILE, _NOTIFICATIONS, [])

    def save_notifications(self, notifications: list[AppNotification]) -> None:
        self._save(NOTIFICATIONS_FILE, _NOTIFICATIONS, list(notifications))

    def load_triggered(self) -> dict[str, bool]:
        return self._read(TRIGGERED_FILE, _TRIGGERED, {})

    def save_triggered(self, triggered: Mapping[str, bool]) -> None:
        self._save(TRIGGERED_FILE, _TRIGGERED, dict(triggered))


class JsonLinesAuditStorage(AuditStorageInterface):
    """Append-only audit log, one JSON event per line."""

    def __init__(self, data_dir: Union[str, Path]):
        self.path = Path(data_dir) / AUDIT_FILE
        self.path.parent.mkdir(parents=True, exist_ok=True)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, max=2),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _append_line(self, line: str) -> None:
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    def append_event(self, event: AuditEvent) -> bool:
        try:
            self._append_line(event.model_dump_json())
        except OSError as e:
            raise StorageError(f"Failed to append audit event: {e}", path=str(self.path))
        return True

    def _all_events(self) -> list[AuditEvent]:
        if not self.path.exists():
            return []
        events = []
        with self.path.open(encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(AuditEvent.model_validate_json(line))
                except SchemaError:
                    logger.warning("audit_line_unreadable", path=str(self.path))
        return events

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._all_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(reversed(self._all_events()), key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
