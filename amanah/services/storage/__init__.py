"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
In-memory for tests, JSON files for persistence; designed to be swappable.
"""

from amanah.services.storage.interface import (
    AuditStorageInterface,
    LedgerRepository,
    StorageError,
)
from amanah.services.storage.json_file import (
    JsonFileRepository,
    JsonLinesAuditStorage,
)
from amanah.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRepository,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerRepository",
    # Exceptions
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRepository",
    # JSON file implementation
    "JsonFileRepository",
    "JsonLinesAuditStorage",
]
