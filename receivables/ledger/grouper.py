"""
Row Grouper

Bill-wise outstanding exports are flat but hierarchical: a row carrying
a party name opens that party, and the rows beneath it (party name blank)
are its bills, until the next named row.

    Party Name | Bill No.   | Bill Date | Bill Amt. | Received | Balance
    ACME STORES|            |           |           |          | 1,450.00
               | R/25-26/12 | 01-Apr-25 | 1,200.00  |          |
               | C25Y0091   | 04-Apr-25 | 750.00    | 500.00   |

Row-level problems never abort the upload: unreadable cells fall back to
0/"" and stray rows are skipped with a warning.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Optional

import structlog

from receivables.ledger.normalize import (
    cell_text,
    clean_currency,
    parse_days,
    round_currency,
)
from receivables.ledger.reconcile import RawParty, finalize_party
from receivables.models.ledger import Bill, Party


logger = structlog.get_logger(__name__)

# Column headers of the export
PARTY_NAME = "Party Name"
BILL_NO = "Bill No."
BILL_DATE = "Bill Date"
BILL_AMT = "Bill Amt."
RECEIVED = "Received"
BALANCE = "Balance"
DUE_DATE = "Due Date"
DAYS = "Days"

LEDGER_COLUMNS = [
    PARTY_NAME,
    BILL_NO,
    BILL_DATE,
    BILL_AMT,
    RECEIVED,
    BALANCE,
    DUE_DATE,
    DAYS,
]


def build_bill(row: Mapping[str, Any]) -> Optional[Bill]:
    """
    Bill for a detail row, or None for a padding row.

    The outstanding amount is Bill Amt. less Received. A row with no
    amount, no bill number and no date is layout padding.
    """
    bill_amt = clean_currency(row.get(BILL_AMT))
    received = clean_currency(row.get(RECEIVED))
    if abs(received) > 0:
        bill_amt -= received
    bill_amt = round_currency(bill_amt)

    bill_no = cell_text(row.get(BILL_NO))
    bill_date = cell_text(row.get(BILL_DATE))

    if bill_amt == 0 and not bill_no and not bill_date:
        return None

    return Bill(
        bill_no=bill_no,
        bill_date=bill_date,
        bill_amt=bill_amt,
        original_bill_amt=bill_amt,
        due_date=cell_text(row.get(DUE_DATE)),
        days=parse_days(row.get(DAYS)),
    )


def group_rows(rows: Iterable[Mapping[str, Any]]) -> list[Party]:
    """
    Split the export into finalized parties, in file order.

    Each party is settled (FIFO) as soon as its last bill has been read.
    """
    parties: list[Party] = []
    current: Optional[RawParty] = None
    orphan_rows = 0

    for index, row in enumerate(rows):
        party_name = cell_text(row.get(PARTY_NAME))

        if party_name:
            if current is not None:
                parties.append(finalize_party(current))
            current = RawParty(
                party_name=party_name,
                opening_balance=clean_currency(row.get(BALANCE)),
            )
            continue

        if current is None:
            orphan_rows += 1
            logger.warning("detail_row_before_party", row_index=index)
            continue

        bill = build_bill(row)
        if bill is not None:
            current.bills.append(bill)

    if current is not None:
        parties.append(finalize_party(current))

    logger.info(
        "ledger_grouped",
        party_count=len(parties),
        bill_count=sum(len(p.bills) for p in parties),
        skipped_rows=orphan_rows,
    )
    return parties
