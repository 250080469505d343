"""
Audit Logger

DESIGN DECISION: Every action that changes what the console shows is
logged: uploads, guide replacements, status changes, payments, syncs.
This provides:
1. Traceability of who marked what during a session
2. Debugging capability when a total looks wrong
3. A history the office can read in the audit sheet

The audit logger:
- Is async so persistence never blocks a UI action
- Gracefully handles failures (a broken audit sheet never fails an action)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from receivables.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from receivables.services.storage import AuditStorageInterface


def configure_logging(debug: bool = False) -> None:
    """
    Configure structlog (JSON lines, ISO timestamps) on top of stdlib logging.

    Safe to call again, e.g. once settings are loaded.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # Ledger lifecycle

    async def log_ledger_uploaded(self, filename: str, file_size: int, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.ledger_uploaded(filename, file_size, correlation_id))

    async def log_ledger_parsed(
        self,
        filename: str,
        party_count: int,
        bill_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.ledger_parsed(filename, party_count, bill_count, correlation_id))

    async def log_ledger_parse_failed(self, filename: str, error_message: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.ledger_parse_failed(filename, error_message, correlation_id))

    async def log_prefix_guide_replaced(
        self,
        prefix_count: int,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.prefix_guide_replaced(prefix_count, source, correlation_id))

    async def log_snapshot_saved(self, party_count: int, correlation_id: Optional[UUID] = None) -> None:
        await self.log(AuditEventBuilder.snapshot_saved(party_count, correlation_id))

    async def log_snapshot_cleared(self, correlation_id: Optional[UUID] = None) -> None:
        await self.log(AuditEventBuilder.snapshot_cleared(correlation_id))

    async def log_contacts_synced(self, matched: int, total: int, correlation_id: Optional[UUID] = None) -> None:
        await self.log(AuditEventBuilder.contacts_synced(matched, total, correlation_id))

    # Session actions

    async def log_bill_status_changed(
        self,
        party_id: UUID,
        party_name: str,
        bill_no: str,
        old_status: str,
        new_status: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.bill_status_changed(
            party_id=party_id,
            party_name=party_name,
            bill_no=bill_no,
            old_status=old_status,
            new_status=new_status,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_partial_payment_applied(
        self,
        party_id: UUID,
        party_name: str,
        bill_no: str,
        amount: float,
        remaining: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.partial_payment_applied(
            party_id=party_id,
            party_name=party_name,
            bill_no=bill_no,
            amount=amount,
            remaining=remaining,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_partial_payment_reverted(
        self,
        party_id: UUID,
        party_name: str,
        bill_no: str,
        reverted_amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.partial_payment_reverted(
            party_id=party_id,
            party_name=party_name,
            bill_no=bill_no,
            reverted_amount=reverted_amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_phone_number_updated(
        self,
        party_id: UUID,
        party_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.phone_number_updated(party_id, party_name, correlation_id))

    # Outputs

    async def log_reminder_generated(
        self,
        party_id: UUID,
        party_name: str,
        used_model: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.reminder_generated(party_id, party_name, used_model, correlation_id))

    async def log_export_generated(
        self,
        export_name: str,
        row_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.export_generated(export_name, row_count, correlation_id))

    # Failures

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., a ledger upload).
    Pass it through all subsequent operations.
    """
    return uuid4()
