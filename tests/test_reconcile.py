"""Tests for FIFO credit allocation."""

from conftest import make_bill
from receivables.ledger.reconcile import RawParty, finalize_party, reconcile_bills


class TestReconcileBills:
    """Oldest bills absorb credit first."""

    def test_no_credit_passes_bills_through(self):
        bills = [make_bill("A", 100.0, "01-Apr-25"), make_bill("B", 50.0, "02-Apr-25")]
        settlement = reconcile_bills(bills)

        assert [b.bill_no for b in settlement.bills] == ["A", "B"]
        assert settlement.balance_debit == 150.0
        assert settlement.balance_credit == 0.0

    def test_credit_settles_oldest_first(self):
        bills = [
            make_bill("NEW", 800.0, "10-Apr-25"),
            make_bill("OLD", 1000.0, "01-Apr-25"),
            make_bill("", -1200.0, "15-Apr-25"),
        ]
        settlement = reconcile_bills(bills)

        assert len(settlement.bills) == 1
        remaining = settlement.bills[0]
        assert remaining.bill_no == "NEW"
        assert remaining.bill_amt == 600.0
        assert remaining.original_bill_amt == 800.0
        assert remaining.is_adjusted
        assert settlement.balance_debit == 600.0
        assert settlement.credit_consumed == 1200.0

    def test_excess_credit_remains(self):
        bills = [make_bill("A", 100.0), make_bill("", -250.0)]
        settlement = reconcile_bills(bills)

        assert settlement.bills == ()
        assert settlement.balance_credit == 150.0
        assert settlement.raw_balance == -150.0

    def test_opening_credit_joins_pool(self):
        settlement = reconcile_bills([make_bill("A", 100.0)], opening_credit=40.0)
        assert settlement.bills[0].bill_amt == 60.0

    def test_undated_bills_sort_first(self):
        bills = [make_bill("DATED", 100.0, "01-Apr-25"), make_bill("UNDATED", 100.0, ""), make_bill("", -100.0)]
        settlement = reconcile_bills(bills)
        assert [b.bill_no for b in settlement.bills] == ["DATED"]

    def test_same_date_keeps_file_order(self):
        bills = [
            make_bill("FIRST", 100.0, "01-Apr-25"),
            make_bill("SECOND", 100.0, "01-Apr-25"),
            make_bill("", -100.0),
        ]
        settlement = reconcile_bills(bills)
        assert [b.bill_no for b in settlement.bills] == ["SECOND"]

    def test_input_not_modified(self):
        bills = [make_bill("A", 100.0), make_bill("", -30.0)]
        reconcile_bills(bills)
        assert bills[0].bill_amt == 100.0
        assert len(bills) == 2

    def test_zero_bills_dropped(self):
        settlement = reconcile_bills([make_bill("ZERO", 0.0), make_bill("A", 10.0)])
        assert [b.bill_no for b in settlement.bills] == ["A"]


class TestFinalizeParty:

    def test_negative_header_is_opening_credit(self):
        raw = RawParty(party_name="GAMMA", opening_balance=-500.0)
        party = finalize_party(raw)

        assert party.balance_credit == 500.0
        assert party.balance_debit == 0.0
        assert party.raw_balance == -500.0

    def test_header_not_double_counted_with_credit_lines(self):
        raw = RawParty(
            party_name="DELTA",
            opening_balance=-100.0,
            bills=[make_bill("A", 200.0), make_bill("", -300.0)],
        )
        party = finalize_party(raw)
        assert party.balance_credit == 100.0

    def test_keeps_raw_id(self):
        raw = RawParty(party_name="ACME", bills=[make_bill("A", 1.0)])
        assert finalize_party(raw).id == raw.id


class TestFifoProperties:
    """Credit is neither created nor destroyed, and oldest bills go first."""

    def test_ordering_example(self):
        bills = [
            make_bill("MAR", 100.0, "2024-03-01"),
            make_bill("JAN", 200.0, "2024-01-01"),
            make_bill("FEB", 50.0, "2024-02-01"),
            make_bill("", -250.0),
        ]
        settlement = reconcile_bills(bills)

        assert [(b.bill_no, b.bill_amt) for b in settlement.bills] == [("MAR", 100.0)]
        assert settlement.balance_debit == 100.0
        assert settlement.balance_credit == 0.0

    def test_conservation(self):
        bills = [
            make_bill("A", 120.25, "01-Jan-24"),
            make_bill("B", 80.5, "05-Jan-24"),
            make_bill("C", 300.0, "09-Jan-24"),
            make_bill("", -150.0),
            make_bill("", -60.75),
        ]
        settlement = reconcile_bills(bills)

        positive_total = sum(b.original_bill_amt for b in bills if b.bill_amt > 0)
        remaining_total = sum(b.bill_amt for b in settlement.bills)
        assert round(positive_total - remaining_total, 2) == settlement.credit_consumed
        assert round(settlement.credit_consumed + settlement.balance_credit, 2) == 210.75

    def test_iso_datetime_bills_settle_in_calendar_order(self):
        bills = [
            make_bill("JAN", 100.0, "2024-01-20 00:00:00"),
            make_bill("MAR", 100.0, "2024-03-01 00:00:00"),
            make_bill("", -100.0),
        ]
        settlement = reconcile_bills(bills)
        assert [b.bill_no for b in settlement.bills] == ["MAR"]
