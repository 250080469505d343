"""
FIFO Reconciliation Engine

A party's export lists bills (positive) and receipts/credit notes
(negative) side by side. The engine pools every credit and lets the
oldest bills absorb it first, leaving the newest bills outstanding.

CRITICAL: Finalization runs exactly once per party, right after grouping.
Session actions (paid, dispute, partial payment) must never re-run it:
re-allocating credit would move it onto different bills and silently
undo what the user has marked.

DESIGN DECISION: reconcile_bills builds a new tuple of bills and never
edits its input, so the raw list and the settled list cannot alias.
"""

from collections.abc import Sequence
from uuid import UUID, uuid4

import structlog
from pydantic import BaseModel, ConfigDict, Field

from receivables.ledger.normalize import parse_date, round_currency
from receivables.models.ledger import Bill, Party


logger = structlog.get_logger(__name__)


class RawParty(BaseModel):
    """
    A party as grouped from the export, before credit allocation.

    opening_balance is the "Balance" cell of the party's header row.
    """

    id: UUID = Field(default_factory=uuid4)
    party_name: str
    opening_balance: float = 0.0
    bills: list[Bill] = Field(default_factory=list)

    @property
    def opening_credit(self) -> float:
        """
        Credit carried on the header row only.

        A negative header balance counts as on-account credit when the
        detail rows list no credit lines of their own; when they do, the
        header is just their net and counting it again would double it.
        """
        if self.opening_balance >= 0:
            return 0.0
        if any(bill.bill_amt < 0 for bill in self.bills):
            return 0.0
        return round_currency(abs(self.opening_balance))


class Settlement(BaseModel):
    """Outcome of allocating a credit pool over a party's bills."""
    model_config = ConfigDict(frozen=True)

    bills: tuple[Bill, ...]
    balance_debit: float
    balance_credit: float
    credit_pool: float
    credit_consumed: float

    @property
    def raw_balance(self) -> float:
        return round_currency(self.balance_debit - self.balance_credit)


def reconcile_bills(bills: Sequence[Bill], opening_credit: float = 0.0) -> Settlement:
    """
    Allocate credit to the oldest bills first.

    Positive bills are ordered by parsed bill date (stable, so ties keep
    file order; undated bills sort first). Each bill the pool fully covers
    drops out; the first one it only partly covers keeps the remainder
    with its original amount unchanged; the rest pass through untouched.
    Negative and zero bills never appear in the result.
    """
    positives = sorted(
        (bill for bill in bills if bill.bill_amt > 0),
        key=lambda bill: parse_date(bill.bill_date),
    )
    credits = (abs(bill.bill_amt) for bill in bills if bill.bill_amt < 0)
    credit_pool = round_currency(sum(credits) + abs(opening_credit))

    available = credit_pool
    settled: list[Bill] = []
    for bill in positives:
        if available <= 0:
            settled.append(bill)
        elif available >= bill.bill_amt:
            available = round_currency(available - bill.bill_amt)
        else:
            remaining = round_currency(bill.bill_amt - available)
            settled.append(bill.model_copy(update={"bill_amt": remaining}))
            available = 0.0

    return Settlement(
        bills=tuple(settled),
        balance_debit=round_currency(sum(bill.bill_amt for bill in settled)),
        balance_credit=available,
        credit_pool=credit_pool,
        credit_consumed=round_currency(credit_pool - available),
    )


def finalize_party(raw: RawParty) -> Party:
    """Settle a grouped party into its authoritative form."""
    settlement = reconcile_bills(raw.bills, opening_credit=raw.opening_credit)

    party = Party(
        id=raw.id,
        party_name=raw.party_name,
        raw_balance=settlement.raw_balance,
        balance_debit=settlement.balance_debit,
        balance_credit=settlement.balance_credit,
        bills=settlement.bills,
    )

    if abs(raw.opening_balance - party.raw_balance) > 0.01:
        logger.debug(
            "header_balance_differs",
            party_name=raw.party_name,
            header_balance=raw.opening_balance,
            reconciled_balance=party.raw_balance,
        )

    return party
