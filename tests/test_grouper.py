"""Tests for row grouping and the end-to-end ledger parse."""

import io

import pytest
from openpyxl import Workbook

from receivables.ledger.grouper import build_bill, group_rows
from receivables.ledger.reader import (
    LedgerParseError,
    UnsupportedFileTypeError,
    parse_ledger,
    read_ledger_file,
)


def row(party="", bill_no="", bill_date="", amount="", received="", balance="", days=""):
    return {
        "Party Name": party,
        "Bill No.": bill_no,
        "Bill Date": bill_date,
        "Bill Amt.": amount,
        "Received": received,
        "Balance": balance,
        "Due Date": "",
        "Days": days,
    }


class TestBuildBill:

    def test_received_is_subtracted(self):
        bill = build_bill(row(bill_no="C25Y0091", bill_date="04-Apr-25", amount="750.00", received="500"))
        assert bill.bill_amt == 250.0
        assert bill.original_bill_amt == 250.0
        assert not bill.is_adjusted

    def test_padding_row_skipped(self):
        assert build_bill(row()) is None

    def test_unreadable_cells_fall_back(self):
        bill = build_bill(row(bill_no="R/25-26/1", amount="n/a", days="soon"))
        assert bill.bill_amt == 0.0
        assert bill.days == 0


class TestGroupRows:

    def test_bills_follow_their_party(self):
        parties = group_rows([
            row(party="ACME", balance="300"),
            row(bill_no="A1", bill_date="01-Apr-25", amount="100"),
            row(bill_no="A2", bill_date="02-Apr-25", amount="200"),
            row(party="BETA", balance="50"),
            row(bill_no="B1", bill_date="01-Apr-25", amount="50"),
        ])

        assert [p.party_name for p in parties] == ["ACME", "BETA"]
        assert [b.bill_no for b in parties[0].bills] == ["A1", "A2"]
        assert parties[0].balance_debit == 300.0

    def test_rows_before_first_party_skipped(self):
        parties = group_rows([row(bill_no="X", amount="10"), row(party="ACME")])
        assert len(parties) == 1
        assert parties[0].bills == ()

    def test_duplicate_party_names_stay_separate(self):
        parties = group_rows([row(party="ACME"), row(party="ACME")])
        assert len(parties) == 2
        assert parties[0].id != parties[1].id


class TestParseLedger:
    """The sample export from end to end."""

    def test_csv_export(self, ledger_csv, table):
        parties = {p.party_name: p for p in parse_ledger(ledger_csv, "outstanding.csv")}

        acme = parties["ACME STORES"]
        assert acme.balance_debit == 1450.0
        assert acme.balance_credit == 0.0
        assert acme.raw_balance == 1450.0
        assert [b.bill_amt for b in acme.bills] == [1200.0, 250.0]
        assert acme.bills[0].days == 45

        beta = parties["BETA MART"]
        assert [b.bill_no for b in beta.bills] == ["R/25-26/2"]
        assert beta.bills[0].display_amount == "600 (B)"
        assert beta.balance_debit == 600.0

        gamma = parties["GAMMA TRADERS"]
        assert gamma.bills == ()
        assert gamma.balance_credit == 500.0
        assert gamma.raw_balance == -500.0

    def test_xlsx_export(self):
        wb = Workbook()
        ws = wb.active
        ws.append(["Party Name", "Bill No.", "Bill Date", "Bill Amt.", "Received", "Balance", "Due Date", "Days"])
        ws.append(["ACME STORES", None, None, None, None, 1200, None, None])
        ws.append([None, "R/25-26/12", "01-Apr-25", 1200, None, None, None, 45])
        buffer = io.BytesIO()
        wb.save(buffer)

        parties = parse_ledger(buffer.getvalue(), "outstanding.xlsx")

        assert len(parties) == 1
        assert parties[0].bills[0].bill_amt == 1200.0
        assert parties[0].bills[0].days == 45

    def test_missing_columns_are_filled(self):
        rows = read_ledger_file(b"Party Name,Bill Amt.\nACME,\n,100\n", "short.csv")
        assert rows[0]["Bill No."] == ""
        assert rows[1]["Bill Amt."] == "100"

    def test_headers_trimmed(self):
        rows = read_ledger_file(b" Party Name , Balance \nACME,10\n", "padded.csv")
        assert rows[0]["Party Name"] == "ACME"
        assert rows[0]["Balance"] == "10"

    def test_unsupported_extension(self):
        with pytest.raises(UnsupportedFileTypeError):
            read_ledger_file(b"data", "ledger.pdf")

    def test_corrupt_workbook(self):
        with pytest.raises(LedgerParseError):
            read_ledger_file(b"not a zip file", "ledger.xlsx")


def test_header_credit_applied_to_first_bill():
    """A negative header balance with no credit lines is on-account credit."""
    parties = group_rows([
        {"Party Name": "Acme", "Balance": "-100"},
        {"Bill No.": "X1", "Bill Amt.": "300", "Bill Date": "01-Jan-24", "Days": "40"},
    ])

    assert len(parties) == 1
    assert parties[0].balance_credit == 0.0
    bill = parties[0].bills[0]
    assert bill.bill_amt == 200.0
    assert bill.original_bill_amt == 300.0
    assert bill.days == 40
