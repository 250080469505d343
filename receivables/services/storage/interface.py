"""
Abstract Storage Interface

DESIGN DECISION: The console keeps its working ledger in memory and only
persists a few small things: the contact book, the prefix guide, one
shared ledger snapshot and the audit log. Each gets its own narrow
interface so that:
1. Google Sheets can be swapped for a real database later
2. Tests run against in-memory storage
3. A storage outage never touches the in-memory ledger

The interface is intentionally simple - we're not building a full ORM.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from receivables.models.audit import AuditEvent
from receivables.models.ledger import LedgerSnapshot


class ContactStorageInterface(ABC):
    """
    Master contact book: party name -> phone number.

    Keys are stored exactly as the ledger export spells the party name.
    """

    @abstractmethod
    async def fetch_contacts(self) -> dict[str, str]:
        """
        All known contacts.

        Returns:
            {party_name: phone_number}, entries with a blank phone omitted

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def upsert_contact(self, party_name: str, phone_number: str) -> bool:
        """
        Insert or update one contact keyed by the trimmed party name.

        Returns:
            True if saved successfully
        """
        pass


class PrefixStorageInterface(ABC):
    """Shared bill prefix guide: prefix -> company name."""

    @abstractmethod
    async def fetch_prefixes(self) -> dict[str, str]:
        """
        The stored guide, empty when nothing has been saved yet.

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def save_prefixes(self, prefixes: dict[str, str]) -> bool:
        """
        Upsert prefixes: existing ones get the new company, new ones are added.
        Prefixes not in the argument are left alone.
        """
        pass


class SnapshotStorageInterface(ABC):
    """
    The one shared reconciled ledger.

    Single record, last write wins. There is no merging of concurrent
    edits.
    """

    @abstractmethod
    async def load_snapshot(self) -> Optional[LedgerSnapshot]:
        """The saved snapshot, or None when nothing is stored."""
        pass

    @abstractmethod
    async def save_snapshot(self, snapshot: LedgerSnapshot) -> bool:
        """Replace the stored snapshot."""
        pass

    @abstractmethod
    async def clear_snapshot(self) -> bool:
        """Remove the stored snapshot."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events of one flow (e.g. one upload), oldest first."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
