"""
Storage Services Package

Abstract interfaces plus two implementations: Google Sheets (shared,
persistent) and in-memory (tests, offline use).
"""

from receivables.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ContactStorageInterface,
    NotFoundError,
    PrefixStorageInterface,
    SnapshotStorageInterface,
    StorageError,
)
from receivables.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryContactStorage,
    InMemoryPrefixStorage,
    InMemorySnapshotStorage,
)
from receivables.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsContactStorage,
    GoogleSheetsPrefixStorage,
    GoogleSheetsSnapshotStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ContactStorageInterface",
    "PrefixStorageInterface",
    "SnapshotStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryContactStorage",
    "InMemoryPrefixStorage",
    "InMemorySnapshotStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsContactStorage",
    "GoogleSheetsPrefixStorage",
    "GoogleSheetsSnapshotStorage",
]
