"""
Data Models Package

This package contains all Pydantic models used in the Receivables Console.
"""

from receivables.models.ledger import (
    Bill,
    BillFilter,
    BillStatus,
    ExportLayout,
    FilterMode,
    LedgerSnapshot,
    Party,
    format_amount,
)
from receivables.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Bill",
    "BillFilter",
    "BillStatus",
    "ExportLayout",
    "FilterMode",
    "LedgerSnapshot",
    "Party",
    "format_amount",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
