"""Services package."""

from amanah.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryRepository,
    JsonFileRepository,
    JsonLinesAuditStorage,
    LedgerRepository,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryRepository",
    "JsonFileRepository",
    "JsonLinesAuditStorage",
    "LedgerRepository",
    "StorageError",
]
