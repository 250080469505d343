"""
Audit Models for the Receivables Console

Every upload, guide change and session action is logged for audit purposes.
This provides:
1. A record of who marked what as paid or disputed, and when
2. Debugging information when an upload produces odd balances
3. Visibility into failed cloud syncs that the console shrugged off

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Ledger uploads
    LEDGER_UPLOADED = "ledger_uploaded"
    LEDGER_PARSED = "ledger_parsed"
    LEDGER_PARSE_FAILED = "ledger_parse_failed"

    # Prefix guide
    PREFIX_GUIDE_REPLACED = "prefix_guide_replaced"

    # Session actions
    BILL_STATUS_CHANGED = "bill_status_changed"
    PARTIAL_PAYMENT_APPLIED = "partial_payment_applied"
    PARTIAL_PAYMENT_REVERTED = "partial_payment_reverted"
    PHONE_NUMBER_UPDATED = "phone_number_updated"

    # Sync and persistence
    CONTACTS_SYNCED = "contacts_synced"
    SNAPSHOT_SAVED = "snapshot_saved"
    SNAPSHOT_CLEARED = "snapshot_cleared"

    # Outputs
    REMINDER_GENERATED = "reminder_generated"
    EXPORT_GENERATED = "export_generated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'party', 'bill', 'ledger')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one upload)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.ledger_uploaded(filename, size, correlation_id)
        event = AuditEventBuilder.bill_status_changed(party_id, ...)
    """

    @staticmethod
    def ledger_uploaded(
        filename: str,
        file_size: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_UPLOADED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Ledger uploaded: {filename}",
            details={
                "filename": filename,
                "file_size_bytes": file_size,
            },
            is_user_action=True,
        )

    @staticmethod
    def ledger_parsed(
        filename: str,
        party_count: int,
        bill_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_PARSED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Ledger parsed: {party_count} parties, {bill_count} bills",
            details={
                "filename": filename,
                "party_count": party_count,
                "bill_count": bill_count,
            },
        )

    @staticmethod
    def ledger_parse_failed(
        filename: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_PARSE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Ledger could not be read: {filename}",
            error_message=error_message,
            details={"filename": filename},
        )

    @staticmethod
    def prefix_guide_replaced(
        prefix_count: int,
        source: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREFIX_GUIDE_REPLACED,
            entity_type="prefix_guide",
            correlation_id=correlation_id,
            description=f"Prefix guide replaced from {source} ({prefix_count} prefixes)",
            details={
                "prefix_count": prefix_count,
                "source": source,
            },
            is_user_action=source.startswith("upload"),
        )

    @staticmethod
    def bill_status_changed(
        party_id: UUID,
        party_name: str,
        bill_no: str,
        old_status: str,
        new_status: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_STATUS_CHANGED,
            entity_type="party",
            entity_id=party_id,
            correlation_id=correlation_id,
            description=f"{party_name}: bill {bill_no or '-'} {old_status} -> {new_status}",
            details={
                "bill_no": bill_no,
                "old_status": old_status,
                "new_status": new_status,
            },
            is_user_action=True,
        )

    @staticmethod
    def partial_payment_applied(
        party_id: UUID,
        party_name: str,
        bill_no: str,
        amount: float,
        remaining: float,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTIAL_PAYMENT_APPLIED,
            entity_type="party",
            entity_id=party_id,
            correlation_id=correlation_id,
            description=f"{party_name}: ₹{amount} received against bill {bill_no or '-'}",
            details={
                "bill_no": bill_no,
                "amount": amount,
                "remaining": remaining,
            },
            is_user_action=True,
        )

    @staticmethod
    def partial_payment_reverted(
        party_id: UUID,
        party_name: str,
        bill_no: str,
        reverted_amount: float,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTIAL_PAYMENT_REVERTED,
            entity_type="party",
            entity_id=party_id,
            correlation_id=correlation_id,
            description=f"{party_name}: payment of ₹{reverted_amount} on bill {bill_no or '-'} cancelled",
            details={
                "bill_no": bill_no,
                "reverted_amount": reverted_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def phone_number_updated(
        party_id: UUID,
        party_name: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PHONE_NUMBER_UPDATED,
            entity_type="party",
            entity_id=party_id,
            correlation_id=correlation_id,
            description=f"Phone number updated for {party_name}",
            is_user_action=True,
        )

    @staticmethod
    def contacts_synced(
        matched: int,
        total: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTACTS_SYNCED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Phone numbers found for {matched} of {total} parties",
            details={"matched": matched, "total": total},
        )

    @staticmethod
    def snapshot_saved(
        party_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_SAVED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Shared ledger saved ({party_count} parties)",
            details={"party_count": party_count},
        )

    @staticmethod
    def snapshot_cleared(correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_CLEARED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="Shared ledger cleared",
            is_user_action=True,
        )

    @staticmethod
    def reminder_generated(
        party_id: UUID,
        party_name: str,
        used_model: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_GENERATED,
            entity_type="party",
            entity_id=party_id,
            correlation_id=correlation_id,
            description=f"Payment reminder generated for {party_name}",
            details={"used_model": used_model},
            is_user_action=True,
        )

    @staticmethod
    def export_generated(
        export_name: str,
        row_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            entity_type="export",
            correlation_id=correlation_id,
            description=f"Export generated: {export_name}",
            details={"export_name": export_name, "row_count": row_count},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
