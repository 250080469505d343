"""
Core Data Models for the Receivables Console

These models define the schemas for everything that flows out of an
uploaded ledger. They are designed to:
1. Be immutable once built (every change produces a new object)
2. Serialize cleanly for snapshot storage and logging
3. Keep derived values (company name, "(B)" marker) out of storage

DESIGN DECISION: Bills and parties are frozen Pydantic models.
Session actions never edit a bill in place; they build a replacement
with model_copy(update=...). Readers holding an older snapshot keep a
consistent view while the console swaps in the new one.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


def format_amount(value: float) -> str:
    """Render an amount without a trailing ".0" (1500.0 -> "1500", 99.5 -> "99.5")."""
    if float(value).is_integer():
        return str(int(value))
    return str(round(value, 2))


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BillStatus(str, Enum):
    """
    Session-local bill classification.

    Independent of the uploaded ledger: a bill marked PAID here is still
    outstanding in the accounting software until the next export.
    """
    UNPAID = "unpaid"
    PAID = "paid"
    DISPUTE = "dispute"


class FilterMode(str, Enum):
    """How the filter predicate treats session status."""
    ACTIVE = "active"    # paid/disputed bills are excluded
    DISPLAY = "display"  # status is not checked


class ExportLayout(str, Enum):
    """Column layout of the outstanding exports."""
    STANDARD = "standard"  # date | company | amount per bill
    COMBINED = "combined"  # date | "company   amount" per bill


# =============================================================================
# CORE LEDGER MODELS
# =============================================================================

class Bill(BaseModel):
    """
    A single invoice line owed by a party.

    bill_amt is the live outstanding amount; original_bill_amt is the
    amount the bill was created with and never changes. A bill whose
    bill_amt dropped below its original amount is shown with a "(B)"
    marker in every view and export.
    """
    model_config = ConfigDict(frozen=True)

    bill_id: UUID = Field(
        default_factory=uuid4,
        description="Process-local identity (bill numbers are not unique)"
    )
    bill_no: str = Field(
        default="",
        description="Bill number, may carry a company prefix"
    )
    bill_date: str = Field(
        default="",
        description="Bill date exactly as exported"
    )
    bill_amt: float = Field(
        ...,
        description="Current outstanding amount (signed)"
    )
    original_bill_amt: float = Field(
        ...,
        description="Amount before any credit adjustment"
    )
    due_date: str = Field(
        default="",
        description="Due date text from the export"
    )
    days: int = Field(
        default=0,
        description="Aging in days, supplied by the export"
    )
    status: BillStatus = Field(
        default=BillStatus.UNPAID,
        description="Session status"
    )
    manual_adjustment: float = Field(
        default=0.0,
        ge=0,
        description="Amount marked as received in this session"
    )

    @property
    def is_adjusted(self) -> bool:
        """True when credit or a session payment has reduced the bill."""
        return self.bill_amt < self.original_bill_amt

    @property
    def is_active(self) -> bool:
        """Paid and disputed bills drop out of active totals."""
        return self.status not in (BillStatus.PAID, BillStatus.DISPUTE)

    @property
    def display_amount(self) -> str:
        """Amount text as shown in exports and reminders."""
        text = format_amount(self.bill_amt)
        return f"{text} (B)" if self.is_adjusted else text


class Party(BaseModel):
    """
    Aggregate for one customer.

    party_name is kept exactly as it appeared in the export because it is
    also the join key for the contact store.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Fresh per upload; disambiguates duplicate names"
    )
    party_name: str = Field(
        ...,
        min_length=1,
        description="Party name as exported"
    )
    raw_balance: float = Field(
        default=0.0,
        description="balance_debit - balance_credit"
    )
    balance_debit: float = Field(
        default=0.0,
        description="Sum of outstanding bill amounts"
    )
    balance_credit: float = Field(
        default=0.0,
        ge=0,
        description="Credit left after FIFO allocation"
    )
    phone_number: str = Field(
        default="",
        description="Contact number, synced separately"
    )
    bills: tuple[Bill, ...] = Field(
        default=(),
        description="Bills in FIFO order"
    )

    def get_bill(self, bill_id: UUID) -> Optional[Bill]:
        """Find a bill by its identity."""
        for bill in self.bills:
            if bill.bill_id == bill_id:
                return bill
        return None


class LedgerSnapshot(BaseModel):
    """
    The full reconciled dataset the console works on.

    CRITICAL: Updates produce a new snapshot. Filters, totals and exports
    running against an older snapshot never observe a half-applied change.
    """
    model_config = ConfigDict(frozen=True)

    parties: tuple[Party, ...] = Field(default=())
    loaded_at: datetime = Field(
        default_factory=datetime.now,
        description="When the ledger was uploaded"
    )
    source_filename: Optional[str] = None

    @property
    def bill_count(self) -> int:
        return sum(len(p.bills) for p in self.parties)

    def get_party(self, party_id: UUID) -> Optional[Party]:
        for party in self.parties:
            if party.id == party_id:
                return party
        return None

    def replace_party(self, party: Party) -> "LedgerSnapshot":
        """Return a new snapshot with the party of the same id replaced."""
        parties = tuple(party if p.id == party.id else p for p in self.parties)
        return self.model_copy(update={"parties": parties})


# =============================================================================
# FILTER MODEL
# =============================================================================

class BillFilter(BaseModel):
    """
    Filter parameters shared by the dashboard, detail view, stats and exports.

    Every consumer passes the same BillFilter to the same predicate so the
    downloaded spreadsheet always matches what is on screen.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    companies: list[str] = Field(
        default_factory=list,
        description="Company names to keep (empty = all)"
    )
    min_days: Optional[int] = Field(
        default=None,
        ge=0,
        description="Keep bills aged at least this many days"
    )
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: str = Field(
        default="",
        description="Case-insensitive party name search"
    )

    @model_validator(mode='after')
    def validate_range(self) -> 'BillFilter':
        """A two-sided range must not be inverted."""
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("Date range end cannot be before start")
        return self

    @property
    def has_date_range(self) -> bool:
        return self.date_from is not None or self.date_to is not None

    @property
    def is_active(self) -> bool:
        """True when any bill-level criterion is set (search excluded)."""
        return bool(self.companies) or self.min_days is not None or self.has_date_range
