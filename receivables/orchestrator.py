"""
Main Orchestrator for the Receivables Console

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger upload (file -> validate -> parse -> reconcile -> merge contacts -> persist)
2. Prefix guide (upload or fetch -> replace the active table)
3. Session actions (paid / dispute / partial payment / phone)
4. Reminders and exports

DESIGN DECISION: The orchestrator enforces the boundaries:
- A bad file fails the whole upload; nothing is committed
- A failed cloud sync (contacts, guide, snapshot, audit) is logged and
  audited but never rolls back what the user sees
- Every user action is audited

The in-memory model is the source of truth for the session. Storage is
a best-effort mirror of it.
"""

from typing import NamedTuple, Optional
from uuid import UUID

import structlog

from receivables.agents import Reminder, ReminderAgent
from receivables.audit import AuditLogger, create_correlation_id
from receivables.export import (
    EmptyExportError,
    company_wise_workbook,
    export_filename,
    outstanding_workbook,
    paid_dispute_workbook,
    prefix_guide_workbook,
    workbook_to_bytes,
)
from receivables.ledger import (
    LedgerFileError,
    PrefixRegistry,
    PrefixTable,
    parse_ledger_async,
    parse_prefix_guide,
    unmapped_parties,
)
from receivables.models.ledger import BillFilter, ExportLayout, LedgerSnapshot, Party
from receivables.queries import filter_parties
from receivables.services import count_with_phone, merge_phone_numbers
from receivables.services.storage import (
    AuditStorageInterface,
    ContactStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsContactStorage,
    GoogleSheetsPrefixStorage,
    GoogleSheetsSnapshotStorage,
    PrefixStorageInterface,
    SnapshotStorageInterface,
)
from receivables.session import LedgerSession
from receivables.validation import UploadValidationError, UploadValidator


logger = structlog.get_logger(__name__)


class _Flow:
    """Shared audit and best-effort persistence helpers."""

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        snapshot_storage: Optional[SnapshotStorageInterface] = None,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        self._snapshot_storage = snapshot_storage

    async def _service_failed(self, service: str, error: Exception, correlation_id: Optional[UUID]) -> None:
        logger.warning("external_service_failed", service=service, error=str(error))
        await self._audit_logger.log_external_service_error(
            service=service,
            error_message=str(error),
            correlation_id=correlation_id,
        )

    async def _persist_snapshot(self, snapshot: LedgerSnapshot, correlation_id: Optional[UUID] = None) -> bool:
        """Mirror the snapshot to storage. Returns False (never raises) on failure."""
        if self._snapshot_storage is None:
            return False
        try:
            await self._snapshot_storage.save_snapshot(snapshot)
        except Exception as e:
            await self._service_failed("snapshot_storage", e, correlation_id)
            return False
        await self._audit_logger.log_snapshot_saved(len(snapshot.parties), correlation_id)
        return True


class LedgerUploadFlow(_Flow):
    """
    Orchestrates the ledger upload flow.

    Flow:
    1. Validate -> name, extension, size
    2. Parse -> read rows in a worker thread, group, settle FIFO
    3. Merge -> phone numbers from the contact book
    4. Commit -> swap the session snapshot
    5. Persist -> mirror to the shared snapshot store

    Steps 1-2 can reject the upload. Steps 3 and 5 can only degrade.
    """

    def __init__(
        self,
        session: LedgerSession,
        registry: PrefixRegistry,
        validator: Optional[UploadValidator] = None,
        contact_storage: Optional[ContactStorageInterface] = None,
        snapshot_storage: Optional[SnapshotStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger, snapshot_storage)
        self._session = session
        self._registry = registry
        self._validator = validator or UploadValidator()
        self._contact_storage = contact_storage

    async def merge_contacts(
        self,
        parties: list[Party],
        correlation_id: Optional[UUID] = None,
    ) -> list[Party]:
        """Fill phone numbers from the contact book; on failure keep the parties as they are."""
        if self._contact_storage is None:
            return parties
        try:
            contacts = await self._contact_storage.fetch_contacts()
        except Exception as e:
            await self._service_failed("contact_storage", e, correlation_id)
            return parties

        merged = merge_phone_numbers(parties, contacts)
        await self._audit_logger.log_contacts_synced(count_with_phone(merged), len(merged), correlation_id)
        return merged

    async def process_upload(
        self,
        data: bytes,
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[LedgerSnapshot, str]:
        """
        Load a ledger export into the session.

        Returns:
            (snapshot, message)

        Raises:
            UploadValidationError: rejected before parsing
            LedgerFileError: the file could not be read
        """
        correlation_id = correlation_id or create_correlation_id()
        await self._audit_logger.log_ledger_uploaded(filename, len(data), correlation_id)

        try:
            self._validator.validate(filename, len(data))
            parties = await parse_ledger_async(data, filename)
        except (UploadValidationError, LedgerFileError) as e:
            await self._audit_logger.log_ledger_parse_failed(filename, str(e), correlation_id)
            raise

        parties = await self.merge_contacts(parties, correlation_id)

        snapshot = LedgerSnapshot(parties=tuple(parties), source_filename=filename)
        self._session.load(snapshot)
        await self._audit_logger.log_ledger_parsed(
            filename,
            len(snapshot.parties),
            snapshot.bill_count,
            correlation_id,
        )

        saved = await self._persist_snapshot(snapshot, correlation_id)

        message = f"Loaded {len(snapshot.parties)} parties with {snapshot.bill_count} outstanding bills"
        unmapped = unmapped_parties(snapshot.parties, self._registry.current)
        if unmapped:
            message += f"; {len(unmapped)} parties have bills with no known prefix"
        if self._snapshot_storage is not None and not saved:
            message += " (cloud save failed, working locally)"
        return snapshot, message

    async def restore_snapshot(self) -> Optional[LedgerSnapshot]:
        """Load the shared snapshot into the session, if one is stored."""
        if self._snapshot_storage is None:
            return None
        try:
            snapshot = await self._snapshot_storage.load_snapshot()
        except Exception as e:
            await self._service_failed("snapshot_storage", e, None)
            return None

        if snapshot is not None:
            snapshot = snapshot.model_copy(
                update={"parties": tuple(await self.merge_contacts(list(snapshot.parties)))}
            )
            self._session.load(snapshot)
        return snapshot

    async def clear(self) -> None:
        """Drop the session ledger and the shared copy."""
        self._session.clear()
        if self._snapshot_storage is not None:
            try:
                await self._snapshot_storage.clear_snapshot()
            except Exception as e:
                await self._service_failed("snapshot_storage", e, None)
        await self._audit_logger.log_snapshot_cleared()


class PrefixGuideFlow(_Flow):
    """
    Replaces the active prefix table.

    An uploaded or fetched guide is overlaid on the built-in one, so
    prefixes the guide does not mention keep their default company.
    """

    def __init__(
        self,
        registry: PrefixRegistry,
        prefix_storage: Optional[PrefixStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger)
        self._registry = registry
        self._prefix_storage = prefix_storage

    @property
    def table(self) -> PrefixTable:
        return self._registry.current

    async def load_guide(self, data: bytes, filename: str) -> PrefixTable:
        """
        Parse an uploaded guide, activate it and share it.

        Raises:
            PrefixGuideError: the file could not be read
        """
        correlation_id = create_correlation_id()
        guide = parse_prefix_guide(data, filename)
        table = PrefixTable.with_defaults(guide)
        self._registry.replace(table)
        await self._audit_logger.log_prefix_guide_replaced(len(guide), f"upload:{filename}", correlation_id)

        if self._prefix_storage is not None and guide:
            try:
                await self._prefix_storage.save_prefixes(guide)
            except Exception as e:
                await self._service_failed("prefix_storage", e, correlation_id)
        return table

    async def sync_from_storage(self) -> PrefixTable:
        """Activate the shared guide; the current table stays on failure or when none is stored."""
        if self._prefix_storage is None:
            return self._registry.current
        try:
            guide = await self._prefix_storage.fetch_prefixes()
        except Exception as e:
            await self._service_failed("prefix_storage", e, None)
            return self._registry.current

        if not guide:
            return self._registry.current

        table = PrefixTable.with_defaults(guide)
        self._registry.replace(table)
        await self._audit_logger.log_prefix_guide_replaced(len(guide), "storage")
        return table


class SessionFlow(_Flow):
    """
    Session actions with audit and best-effort persistence.

    Rejected actions (SessionMutationError, ValueError) propagate to the
    caller with the session unchanged. Successful ones are mirrored to
    the shared snapshot; a failed mirror is audited and ignored.
    """

    def __init__(
        self,
        session: LedgerSession,
        contact_storage: Optional[ContactStorageInterface] = None,
        snapshot_storage: Optional[SnapshotStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger, snapshot_storage)
        self._session = session
        self._contact_storage = contact_storage

    @property
    def session(self) -> LedgerSession:
        return self._session

    async def _status_change(self, action, party_id: UUID, bill_id: UUID) -> Party:
        before = self._session.get_party(party_id)
        old_bill = before.get_bill(bill_id)
        party = action(party_id, bill_id)
        new_bill = party.get_bill(bill_id)

        await self._audit_logger.log_bill_status_changed(
            party_id=party.id,
            party_name=party.party_name,
            bill_no=new_bill.bill_no,
            old_status=old_bill.status.value,
            new_status=new_bill.status.value,
        )
        await self._persist_snapshot(self._session.snapshot)
        return party

    async def mark_paid(self, party_id: UUID, bill_id: UUID) -> Party:
        return await self._status_change(self._session.mark_paid, party_id, bill_id)

    async def mark_dispute(self, party_id: UUID, bill_id: UUID) -> Party:
        return await self._status_change(self._session.mark_dispute, party_id, bill_id)

    async def undo_status(self, party_id: UUID, bill_id: UUID) -> Party:
        return await self._status_change(self._session.undo_status, party_id, bill_id)

    async def apply_partial_payment(
        self,
        party_id: UUID,
        bill_id: UUID,
        amount: float,
        confirm_overpayment: bool = False,
    ) -> Party:
        party = self._session.apply_partial_payment(
            party_id,
            bill_id,
            amount,
            confirm_overpayment=confirm_overpayment,
        )
        bill = party.get_bill(bill_id)
        await self._audit_logger.log_partial_payment_applied(
            party_id=party.id,
            party_name=party.party_name,
            bill_no=bill.bill_no,
            amount=amount,
            remaining=bill.bill_amt,
        )
        await self._persist_snapshot(self._session.snapshot)
        return party

    async def undo_partial_payment(self, party_id: UUID, bill_id: UUID) -> Party:
        before = self._session.get_party(party_id).get_bill(bill_id)
        party = self._session.undo_partial_payment(party_id, bill_id)
        bill = party.get_bill(bill_id)
        await self._audit_logger.log_partial_payment_reverted(
            party_id=party.id,
            party_name=party.party_name,
            bill_no=bill.bill_no,
            reverted_amount=before.manual_adjustment if before else 0.0,
        )
        await self._persist_snapshot(self._session.snapshot)
        return party

    async def set_phone_number(self, party_id: UUID, phone_number: str) -> Party:
        """Update the phone in the session and upsert it to the contact book by exact party name."""
        party = self._session.set_phone_number(party_id, phone_number)
        await self._audit_logger.log_phone_number_updated(party.id, party.party_name)

        if self._contact_storage is not None:
            try:
                await self._contact_storage.upsert_contact(party.party_name, party.phone_number)
            except Exception as e:
                await self._service_failed("contact_storage", e, None)

        await self._persist_snapshot(self._session.snapshot)
        return party


class ReminderFlow(_Flow):
    """Payment reminders for one party at a time."""

    def __init__(
        self,
        registry: PrefixRegistry,
        agent: Optional[ReminderAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger)
        self._registry = registry
        self._agent = agent or ReminderAgent()

    async def generate(self, party: Party) -> Reminder:
        reminder = await self._agent.generate(party, self._registry.current)
        await self._audit_logger.log_reminder_generated(party.id, party.party_name, reminder.used_model)
        return reminder


class ExportFlow(_Flow):
    """
    Builds downloadable spreadsheets from the current session.

    Outstanding exports list the parties the dashboard lists for the same
    filter. Every download is audited.
    """

    def __init__(
        self,
        session: LedgerSession,
        registry: PrefixRegistry,
        bills_per_row: int = 4,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger)
        self._session = session
        self._registry = registry
        self._bills_per_row = bills_per_row

    async def _finish(self, stem: str, wb) -> tuple[str, bytes]:
        filename = export_filename(stem)
        await self._audit_logger.log_export_generated(filename, wb.active.max_row - 1)
        return filename, workbook_to_bytes(wb)

    async def outstanding(
        self,
        bill_filter: BillFilter,
        layout: ExportLayout = ExportLayout.STANDARD,
    ) -> tuple[str, bytes]:
        table = self._registry.current
        parties = filter_parties(self._session.snapshot.parties, bill_filter, table)
        if not parties:
            raise EmptyExportError("No parties match the current filter.")
        wb = outstanding_workbook(parties, bill_filter, table, layout, self._bills_per_row)
        stem = "combined_bill_outstanding_report" if layout == ExportLayout.COMBINED else "processed_outstanding_payment"
        return await self._finish(stem, wb)

    async def company_wise(
        self,
        bill_filter: BillFilter,
        layout: ExportLayout = ExportLayout.STANDARD,
    ) -> tuple[str, bytes]:
        wb = company_wise_workbook(
            self._session.snapshot.parties,
            bill_filter,
            self._registry.current,
            layout,
            self._bills_per_row,
        )
        return await self._finish(f"filtered_outstanding_{layout.value}", wb)

    async def paid_dispute(self, bill_filter: BillFilter) -> tuple[str, bytes]:
        wb = paid_dispute_workbook(self._session.snapshot.parties, bill_filter, self._registry.current)
        return await self._finish("paid_dispute_report", wb)

    async def prefix_guide(self) -> tuple[str, bytes]:
        return await self._finish("bill_number_prefix_guide", prefix_guide_workbook(self._registry.current))


class AppComponents(NamedTuple):
    session: LedgerSession
    registry: PrefixRegistry
    upload_flow: LedgerUploadFlow
    prefix_flow: PrefixGuideFlow
    session_flow: SessionFlow
    reminder_flow: ReminderFlow
    export_flow: ExportFlow
    sheets_client: Optional[GoogleSheetsClient]


def create_app_components(
    use_storage: bool = True,
    contact_storage: Optional[ContactStorageInterface] = None,
    prefix_storage: Optional[PrefixStorageInterface] = None,
    snapshot_storage: Optional[SnapshotStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    reminder_agent: Optional[ReminderAgent] = None,
    validator: Optional[UploadValidator] = None,
    bills_per_row: int = 4,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage for any
                    store not passed in. Set to False for tests and
                    offline use.

    Returns:
        AppComponents sharing one session and one prefix registry
    """
    sheets_client = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            contact_storage = contact_storage or GoogleSheetsContactStorage(sheets_client)
            prefix_storage = prefix_storage or GoogleSheetsPrefixStorage(sheets_client)
            snapshot_storage = snapshot_storage or GoogleSheetsSnapshotStorage(sheets_client)
            audit_storage = audit_storage or GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            # Storage not configured - continue with whatever was passed in
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

    audit_logger = AuditLogger(audit_storage)
    session = LedgerSession()
    registry = PrefixRegistry()

    return AppComponents(
        session=session,
        registry=registry,
        upload_flow=LedgerUploadFlow(
            session,
            registry,
            validator=validator,
            contact_storage=contact_storage,
            snapshot_storage=snapshot_storage,
            audit_logger=audit_logger,
        ),
        prefix_flow=PrefixGuideFlow(registry, prefix_storage, audit_logger),
        session_flow=SessionFlow(session, contact_storage, snapshot_storage, audit_logger),
        reminder_flow=ReminderFlow(registry, reminder_agent, audit_logger),
        export_flow=ExportFlow(session, registry, bills_per_row, audit_logger),
        sheets_client=sheets_client,
    )
