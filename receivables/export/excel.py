"""
Excel Exports

Spreadsheet versions of what the console shows. Each export runs the
same bill_matches predicate as the screen, so a filtered download lists
exactly the bills the user is looking at.

Outstanding layouts put several bills side by side on one row:

    S No. | Party Name | Balance Debit | Balance Credit | Phone Number |
    Bill Date 1 | Bill No 1 | Bill Amt 1 | Bill Date 2 | ...

A party with more bills continues on the next row with its header cells
left blank. Credit balances are written as negative numbers.
"""

import io
from collections.abc import Iterable
from datetime import date
from typing import Any, Optional

import structlog
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from receivables.ledger.normalize import round_currency
from receivables.ledger.prefixes import UNMAPPED_KEY, PrefixTable, company_for
from receivables.models.ledger import Bill, BillFilter, BillStatus, ExportLayout, Party
from receivables.queries.filters import (
    active_debit,
    filter_bills,
    matches_company,
    matches_date_range,
)


logger = structlog.get_logger(__name__)

BILLS_PER_ROW = 4
GRAND_TOTAL = "GRAND TOTAL"
PARTY_HEADERS = ["S No.", "Party Name", "Balance Debit", "Balance Credit", "Phone Number"]

HIGHLIGHT_FILL = PatternFill(fill_type="solid", start_color="FFFF00", end_color="FFFF00")
TOTAL_FILL = PatternFill(fill_type="solid", start_color="EFEFEF", end_color="EFEFEF")
BOLD = Font(bold=True)


class ExportError(Exception):
    """Base exception for exports."""
    pass


class EmptyExportError(ExportError):
    """Nothing matched the selected filter."""
    pass


# =============================================================================
# CELL HELPERS
# =============================================================================

def _amount_cell(bill: Bill) -> Any:
    """Plain number, or "<amt> (B)" text for a bill reduced by credit or payment."""
    return bill.display_amount if bill.is_adjusted else bill.bill_amt


def _credit_cell(balance_credit: float) -> Any:
    return -balance_credit if balance_credit > 0 else ""


def _bill_cells(
    bill: Bill,
    table: PrefixTable,
    layout: ExportLayout,
    fallback: Optional[str] = None,
) -> list[Any]:
    label = table.classify(bill.bill_no) or bill.bill_no or (fallback or "")
    if layout == ExportLayout.COMBINED:
        amount = bill.display_amount
        return [bill.bill_date, f"{label}   {amount}"]
    return [bill.bill_date, label, _amount_cell(bill)]


def _cells_per_bill(layout: ExportLayout) -> int:
    return 2 if layout == ExportLayout.COMBINED else 3


def _chunks(bills: tuple[Bill, ...], size: int) -> Iterable[tuple[Bill, ...]]:
    for start in range(0, len(bills), size):
        yield bills[start:start + size]


def _has_unclassified(bills: Iterable[Bill], table: PrefixTable) -> bool:
    return any(b.bill_no and table.classify(b.bill_no) is None for b in bills)


def _style_rows(
    ws,
    highlight_rows: set[int],
    total_row: int,
    column_count: int,
) -> None:
    """Yellow rows with unclassified bills, bold "(B)" cells, grey bold total row."""
    for row in ws.iter_rows(min_row=2, max_row=ws.max_row, max_col=column_count):
        for cell in row:
            if cell.row in highlight_rows:
                cell.fill = HIGHLIGHT_FILL
            if isinstance(cell.value, str) and "(B)" in cell.value:
                cell.font = BOLD
            if cell.row == total_row:
                cell.font = BOLD
                cell.fill = TOTAL_FILL


def _set_widths(ws, widths: list[int]) -> None:
    for index, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(index)].width = width


def _bill_headers(layout: ExportLayout, bills_per_row: int, company_wise: bool) -> list[str]:
    headers = []
    for i in range(1, bills_per_row + 1):
        if layout == ExportLayout.COMBINED:
            second = f"Company & Amt {i}" if company_wise else f"Bill No & Amt {i}"
            headers += [f"Bill Date {i}", second]
        else:
            second = f"Company {i}" if company_wise else f"Bill No {i}"
            headers += [f"Bill Date {i}", second, f"Bill Amt {i}"]
    return headers


def _bill_widths(layout: ExportLayout, bills_per_row: int, company_wise: bool) -> list[int]:
    if layout == ExportLayout.COMBINED:
        return [12, 35] * bills_per_row
    return [12, 25 if company_wise else 12, 15] * bills_per_row


# =============================================================================
# EXPORTS
# =============================================================================

def outstanding_workbook(
    parties: Iterable[Party],
    bill_filter: BillFilter,
    table: PrefixTable,
    layout: ExportLayout = ExportLayout.STANDARD,
    bills_per_row: int = BILLS_PER_ROW,
) -> Workbook:
    """
    Outstanding report for the parties on screen.

    Every party gets at least one row, even with no matching bills. The
    debit column is the sum of the party's matching active bills.
    """
    width = _cells_per_bill(layout) * bills_per_row
    wb = Workbook()
    ws = wb.active
    ws.title = "Combined Data" if layout == ExportLayout.COMBINED else "Processed Data"
    ws.append(PARTY_HEADERS + _bill_headers(layout, bills_per_row, company_wise=False))

    highlight_rows: set[int] = set()
    grand_debit = 0.0
    grand_credit = 0.0
    counter = 1

    for party in parties:
        bills = filter_bills(party, bill_filter, table)
        debit = active_debit(bills)
        grand_debit += debit
        grand_credit += party.balance_credit

        head = [counter, party.party_name, debit if debit > 0 else "", _credit_cell(party.balance_credit), party.phone_number]
        counter += 1

        if not bills:
            ws.append(head + [""] * width)
            continue

        for chunk in _chunks(bills, bills_per_row):
            cells = [c for bill in chunk for c in _bill_cells(bill, table, layout)]
            cells += [""] * (width - len(cells))
            ws.append(head + cells)
            if _has_unclassified(chunk, table):
                highlight_rows.add(ws.max_row)
            head = [""] * len(PARTY_HEADERS)

    grand_debit = round_currency(grand_debit)
    grand_credit = round_currency(grand_credit)
    ws.append(["", GRAND_TOTAL, grand_debit if grand_debit > 0 else "", _credit_cell(grand_credit), ""] + [""] * width)

    _style_rows(ws, highlight_rows, ws.max_row, len(PARTY_HEADERS) + width)
    _set_widths(ws, [8, 30, 15, 15, 15] + _bill_widths(layout, bills_per_row, company_wise=False))

    logger.info("outstanding_export_built", layout=layout.value, party_count=counter - 1)
    return wb


def company_wise_workbook(
    parties: Iterable[Party],
    bill_filter: BillFilter,
    table: PrefixTable,
    layout: ExportLayout = ExportLayout.STANDARD,
    bills_per_row: int = BILLS_PER_ROW,
) -> Workbook:
    """
    Outstanding report limited to the selected companies.

    Only parties with at least one matching bill are listed. Unclassified
    bills show their bill number in place of a company name.

    Raises:
        EmptyExportError: no bill matches the filter
    """
    width = _cells_per_bill(layout) * bills_per_row
    wb = Workbook()
    ws = wb.active
    ws.title = "Outstanding"
    headers = ["S No.", "Party Name", "Total Debit (Selected Filter)", "Balance Credit", "Phone Number"]
    ws.append(headers + _bill_headers(layout, bills_per_row, company_wise=True))

    grand_debit = 0.0
    grand_credit = 0.0
    counter = 1

    for party in parties:
        bills = filter_bills(party, bill_filter, table)
        if not bills:
            continue

        debit = active_debit(bills)
        grand_debit += debit
        grand_credit += party.balance_credit

        head = [counter, party.party_name, debit, _credit_cell(party.balance_credit), party.phone_number]
        counter += 1

        for chunk in _chunks(bills, bills_per_row):
            cells = [c for bill in chunk for c in _bill_cells(bill, table, layout, fallback=UNMAPPED_KEY)]
            cells += [""] * (width - len(cells))
            ws.append(head + cells)
            head = [""] * len(headers)

    if counter == 1:
        raise EmptyExportError("No outstanding found matching the selected filter.")

    grand_debit = round_currency(grand_debit)
    grand_credit = round_currency(grand_credit)
    ws.append(["", GRAND_TOTAL, grand_debit if grand_debit > 0 else "", _credit_cell(grand_credit), ""] + [""] * width)

    _style_rows(ws, set(), ws.max_row, len(headers) + width)
    _set_widths(ws, [8, 30, 25, 15, 15] + _bill_widths(layout, bills_per_row, company_wise=True))

    logger.info("company_wise_export_built", layout=layout.value, party_count=counter - 1)
    return wb


def paid_dispute_workbook(
    parties: Iterable[Party],
    bill_filter: BillFilter,
    table: PrefixTable,
) -> Workbook:
    """
    Bills marked paid or disputed this session.

    Only the company and date criteria apply. Rows are sorted by company,
    then status, then party name.

    Raises:
        EmptyExportError: no paid or disputed bill matches
    """
    entries = []
    for party in parties:
        for bill in party.bills:
            if bill.status not in (BillStatus.PAID, BillStatus.DISPUTE):
                continue
            if not matches_company(bill, bill_filter.companies, table):
                continue
            if not matches_date_range(bill, bill_filter.date_from, bill_filter.date_to):
                continue
            entries.append((company_for(bill.bill_no, table), bill.status.value, party.party_name, bill))

    if not entries:
        raise EmptyExportError("No Paid or Disputed bills found matching the current filters.")

    entries.sort(key=lambda entry: (entry[0], entry[1], entry[2]))

    wb = Workbook()
    ws = wb.active
    ws.title = "Paid_Dispute_Report"
    ws.append(["S No.", "Company", "Party Name", "Bill No", "Bill Date", "Bill Amt", "Status"])
    for counter, (company, status, party_name, bill) in enumerate(entries, start=1):
        ws.append([counter, company, party_name, bill.bill_no, bill.bill_date, bill.bill_amt, status.upper()])

    for cell in ws[1]:
        cell.font = BOLD
    _set_widths(ws, [8, 20, 30, 20, 15, 15, 15])

    logger.info("paid_dispute_export_built", row_count=len(entries))
    return wb


def prefix_guide_workbook(table: PrefixTable) -> Workbook:
    """The active prefix guide, in the same two-column shape it is uploaded in."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Prefix Guide"
    ws.append(["Bill Number Prefix", "Company Name"])
    for prefix, company in table.items():
        ws.append([prefix, company])

    for cell in ws[1]:
        cell.font = BOLD
    _set_widths(ws, [25, 25])
    return wb


def workbook_to_bytes(wb: Workbook) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def export_filename(stem: str, on: Optional[date] = None) -> str:
    """e.g. filtered_outstanding_standard_2025-04-01.xlsx"""
    return f"{stem}_{(on or date.today()).isoformat()}.xlsx"
