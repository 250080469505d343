"""
In-Memory Storage

Dict-backed implementations of every storage interface, for the test suite
and for injecting into create_app_components. Without Google Sheets the
console itself runs with no stores at all and skips persistence.
"""

from typing import Optional
from uuid import UUID

from receivables.models.audit import AuditEvent
from receivables.models.ledger import LedgerSnapshot
from receivables.services.storage.interface import (
    AuditStorageInterface,
    ContactStorageInterface,
    PrefixStorageInterface,
    SnapshotStorageInterface,
)


class InMemoryContactStorage(ContactStorageInterface):

    def __init__(self, contacts: Optional[dict[str, str]] = None):
        self._contacts: dict[str, str] = dict(contacts or {})

    async def fetch_contacts(self) -> dict[str, str]:
        return {name: phone for name, phone in self._contacts.items() if phone}

    async def upsert_contact(self, party_name: str, phone_number: str) -> bool:
        self._contacts[party_name.strip()] = phone_number
        return True


class InMemoryPrefixStorage(PrefixStorageInterface):

    def __init__(self, prefixes: Optional[dict[str, str]] = None):
        self._prefixes: dict[str, str] = dict(prefixes or {})

    async def fetch_prefixes(self) -> dict[str, str]:
        return dict(self._prefixes)

    async def save_prefixes(self, prefixes: dict[str, str]) -> bool:
        self._prefixes.update(prefixes)
        return True


class InMemorySnapshotStorage(SnapshotStorageInterface):
    """Stores the serialized JSON so loads return fresh objects, like a real store."""

    def __init__(self):
        self._content: Optional[str] = None

    async def load_snapshot(self) -> Optional[LedgerSnapshot]:
        if self._content is None:
            return None
        return LedgerSnapshot.model_validate_json(self._content)

    async def save_snapshot(self, snapshot: LedgerSnapshot) -> bool:
        self._content = snapshot.model_dump_json()
        return True

    async def clear_snapshot(self) -> bool:
        self._content = None
        return True


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
