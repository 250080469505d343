"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the shared backend because:
1. The office can open the contact book and prefix guide directly in Sheets
2. No database setup required
3. Several console users see the same snapshot

TRADEOFFS:
- No transactions; the last snapshot written wins
- A cell holds at most 50,000 characters, so the snapshot JSON is split
  across rows and joined again on load
- Filtering happens in Python after reading the whole sheet
"""

import json
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from receivables.config import get_settings
from receivables.models.audit import AuditEvent, AuditEventType, AuditSeverity
from receivables.models.ledger import LedgerSnapshot
from receivables.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ContactStorageInterface,
    PrefixStorageInterface,
    SnapshotStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

CONTACT_COLUMNS = ["party_name", "phone_number", "updated_at"]
PREFIX_COLUMNS = ["prefix", "company_name", "updated_at"]
SNAPSHOT_COLUMNS = ["chunk_index", "content", "last_updated"]
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Stay well below the 50,000 character cell limit
SNAPSHOT_CHUNK_SIZE = 40000

_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and creates missing worksheets with headers.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @_retry
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet, writing the header row on creation."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    def get_contacts_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.contacts_sheet_name, CONTACT_COLUMNS, rows=10000)

    def get_prefixes_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.prefixes_sheet_name, PREFIX_COLUMNS)

    def get_snapshot_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.snapshot_sheet_name, SNAPSHOT_COLUMNS, rows=200)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


class GoogleSheetsContactStorage(ContactStorageInterface):
    """Contacts sheet: one row per party name."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @_retry
    async def fetch_contacts(self) -> dict[str, str]:
        try:
            rows = self._client.get_contacts_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to fetch contacts: {e}")

        contacts = {}
        for row in rows:
            name, phone = _safe_get(row, 0).strip(), _safe_get(row, 1).strip()
            if name and phone:
                contacts[name] = phone
        return contacts

    @_retry
    async def upsert_contact(self, party_name: str, phone_number: str) -> bool:
        name = party_name.strip()
        try:
            sheet = self._client.get_contacts_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):  # row 1 is the header
                if row and _safe_get(row, 0).strip() == name:
                    sheet.update_cell(idx, 2, phone_number)
                    sheet.update_cell(idx, 3, _now())
                    return True

            sheet.append_row([name, phone_number, _now()], value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to save contact: {e}")


class GoogleSheetsPrefixStorage(PrefixStorageInterface):
    """Prefix guide sheet: one row per prefix."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @_retry
    async def fetch_prefixes(self) -> dict[str, str]:
        try:
            rows = self._client.get_prefixes_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to fetch prefixes: {e}")

        prefixes = {}
        for row in rows:
            prefix, company = _safe_get(row, 0).strip(), _safe_get(row, 1).strip()
            if prefix and company:
                prefixes[prefix] = company
        return prefixes

    @_retry
    async def save_prefixes(self, prefixes: dict[str, str]) -> bool:
        try:
            sheet = self._client.get_prefixes_sheet()
            all_rows = sheet.get_all_values()
            existing = {
                _safe_get(row, 0).strip(): idx
                for idx, row in enumerate(all_rows[1:], start=2)
                if row
            }

            new_rows = []
            for prefix, company in prefixes.items():
                if prefix in existing:
                    sheet.update_cell(existing[prefix], 2, company)
                    sheet.update_cell(existing[prefix], 3, _now())
                else:
                    new_rows.append([prefix, company, _now()])

            if new_rows:
                sheet.append_rows(new_rows, value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to save prefixes: {e}")


class GoogleSheetsSnapshotStorage(SnapshotStorageInterface):
    """
    Snapshot sheet holding the shared ledger as chunked JSON.

    IMPORTANT: A save appends the new chunks before deleting the old ones,
    so a failed write never loses the previous snapshot. Loading reads from
    the last chunk 0 onwards. The last writer wins.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @_retry
    async def load_snapshot(self) -> Optional[LedgerSnapshot]:
        try:
            rows = self._client.get_snapshot_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to load snapshot: {e}")

        rows = [row for row in rows if _safe_get(row, 0).isdigit()]
        if not rows:
            return None

        # Leftovers of an interrupted save sit above the newest chunks
        newest = max((i for i, row in enumerate(rows) if _safe_get(row, 0) == "0"), default=0)
        chunks = sorted((int(_safe_get(row, 0)), _safe_get(row, 1)) for row in rows[newest:])

        content = "".join(chunk for _, chunk in chunks)
        try:
            return LedgerSnapshot.model_validate_json(content)
        except ValueError as e:
            raise StorageError(f"Stored snapshot is unreadable: {e}")

    @_retry
    async def save_snapshot(self, snapshot: LedgerSnapshot) -> bool:
        content = snapshot.model_dump_json()
        timestamp = _now()
        rows = [
            [str(index), content[start:start + SNAPSHOT_CHUNK_SIZE], timestamp]
            for index, start in enumerate(range(0, len(content), SNAPSHOT_CHUNK_SIZE))
        ]
        try:
            sheet = self._client.get_snapshot_sheet()
            stale_count = len(sheet.get_all_values())
            payload = rows if stale_count else [SNAPSHOT_COLUMNS, *rows]
            sheet.append_rows(payload, value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to save snapshot: {e}")

        if stale_count > 1:
            try:
                sheet.delete_rows(2, stale_count)
            except Exception as e:
                # The new chunks are stored and win on load
                logger.warning("snapshot_cleanup_failed", error=str(e), stale_rows=stale_count - 1)

        logger.info("snapshot_written", chunk_count=len(rows), size=len(content))
        return True

    @_retry
    async def clear_snapshot(self) -> bool:
        try:
            sheet = self._client.get_snapshot_sheet()
            sheet.clear()
            sheet.append_row(SNAPSHOT_COLUMNS)
            return True
        except Exception as e:
            raise StorageError(f"Failed to clear snapshot: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=UUID(_safe_get(row, 5)) if _safe_get(row, 5) else None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        rows = self._client.get_audit_sheet().get_all_values()[1:]
        events = []
        for row in rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError):
                logger.warning("audit_row_unreadable", event_id=row[0])
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Failures are logged, never raised."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            logger.warning("audit_write_failed", error=str(e), event_type=event.event_type.value)
            return False

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        try:
            events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
