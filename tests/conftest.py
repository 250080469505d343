"""Shared fixtures for the receivables console tests."""

import pytest

from receivables.ledger import PrefixTable
from receivables.models.ledger import Bill, Party


LEDGER_CSV = """Party Name,Bill No.,Bill Date,Bill Amt.,Received,Balance,Due Date,Days
ACME STORES,,,,,"1,450.00",,
,R/25-26/12,01-Apr-25,"1,200.00",,,01-May-25,45
,C25Y0091,04-Apr-25,750.00,500.00,,04-May-25,42
BETA MART,,,,,600.00,,
,R/25-26/1,01-Apr-25,"1,000.00",,,,75
,R/25-26/2,10-Apr-25,800.00,,,,66
,,15-Apr-25,"(1,200.00)",,,,
GAMMA TRADERS,,,,,500 Cr,,
"""


def make_bill(bill_no="R/25-26/1", amount=1000.0, bill_date="01-Apr-25", days=30, **kwargs) -> Bill:
    kwargs.setdefault("original_bill_amt", amount)
    return Bill(bill_no=bill_no, bill_date=bill_date, bill_amt=amount, days=days, **kwargs)


def make_party(name="ACME STORES", bills=(), balance_credit=0.0, **kwargs) -> Party:
    bills = tuple(bills)
    debit = round(sum(b.bill_amt for b in bills if b.is_active), 2)
    return Party(
        party_name=name,
        bills=bills,
        balance_debit=debit,
        balance_credit=balance_credit,
        raw_balance=round(debit - balance_credit, 2),
        **kwargs,
    )


@pytest.fixture
def table() -> PrefixTable:
    return PrefixTable.default()


@pytest.fixture
def ledger_csv() -> bytes:
    return LEDGER_CSV.encode("utf-8")


@pytest.fixture
def acme() -> Party:
    """Two Havells bills and one Cadbury bill, one of them reduced by credit."""
    return make_party(
        "ACME STORES",
        [
            make_bill("R/25-26/12", 1200.0, "01-Apr-25", days=95),
            make_bill("C25Y0091", 250.0, "04-Apr-25", days=42, original_bill_amt=750.0),
            make_bill("R/25-26/30", 400.0, "20-Apr-25", days=10),
        ],
        phone_number="9800000001",
    )
