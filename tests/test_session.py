"""Tests for session mutations (status, partial payments, phone numbers)."""

from uuid import uuid4

import pytest

from conftest import make_bill, make_party
from receivables.models.ledger import BillStatus, LedgerSnapshot
from receivables.session import (
    BillNotFoundError,
    InvalidStatusTransitionError,
    LedgerSession,
    OverpaymentNotConfirmedError,
    PartyNotFoundError,
    apply_partial_payment,
    mark_dispute,
    mark_paid,
    set_phone_number,
    undo_partial_payment,
    undo_status,
)


@pytest.fixture
def party():
    return make_party(
        "ACME",
        [make_bill("R/25-26/1", 1000.0), make_bill("R/25-26/2", 500.0)],
        balance_credit=0.0,
    )


class TestStatusTransitions:

    def test_mark_paid_drops_bill_from_debit(self, party):
        bill_id = party.bills[0].bill_id
        updated = mark_paid(party, bill_id)

        assert updated.get_bill(bill_id).status == BillStatus.PAID
        assert updated.balance_debit == 500.0
        assert updated.raw_balance == 500.0
        assert party.balance_debit == 1500.0

    def test_mark_dispute(self, party):
        updated = mark_dispute(party, party.bills[1].bill_id)
        assert updated.bills[1].status == BillStatus.DISPUTE
        assert updated.balance_debit == 1000.0

    def test_cannot_mark_paid_twice(self, party):
        updated = mark_paid(party, party.bills[0].bill_id)
        with pytest.raises(InvalidStatusTransitionError):
            mark_dispute(updated, party.bills[0].bill_id)

    def test_undo_restores_debit(self, party):
        bill_id = party.bills[0].bill_id
        restored = undo_status(mark_paid(party, bill_id), bill_id)
        assert restored.get_bill(bill_id).status == BillStatus.UNPAID
        assert restored.balance_debit == 1500.0

    def test_credit_untouched(self):
        party = make_party("ACME", [make_bill(amount=300.0)], balance_credit=100.0)
        updated = mark_paid(party, party.bills[0].bill_id)
        assert updated.balance_credit == 100.0
        assert updated.raw_balance == -100.0

    def test_unknown_bill(self, party):
        with pytest.raises(BillNotFoundError):
            mark_paid(party, uuid4())


class TestPartialPayment:

    def test_partial_payment_reduces_bill(self, party):
        bill_id = party.bills[0].bill_id
        updated = apply_partial_payment(party, bill_id, 400.0)
        bill = updated.get_bill(bill_id)

        assert bill.bill_amt == 600.0
        assert bill.manual_adjustment == 400.0
        assert bill.status == BillStatus.UNPAID
        assert bill.display_amount == "600 (B)"
        assert updated.balance_debit == 1100.0

    def test_exact_payment_settles_bill(self, party):
        bill_id = party.bills[1].bill_id
        bill = apply_partial_payment(party, bill_id, 500.0).get_bill(bill_id)
        assert bill.bill_amt == 0.0
        assert bill.status == BillStatus.PAID

    def test_overpayment_needs_confirmation(self, party):
        bill_id = party.bills[1].bill_id
        with pytest.raises(OverpaymentNotConfirmedError) as exc_info:
            apply_partial_payment(party, bill_id, 800.0)
        assert exc_info.value.outstanding == 500.0

    def test_confirmed_overpayment_records_outstanding_only(self, party):
        bill_id = party.bills[1].bill_id
        updated = apply_partial_payment(party, bill_id, 800.0, confirm_overpayment=True)
        assert updated.get_bill(bill_id).manual_adjustment == 500.0

        restored = undo_partial_payment(updated, bill_id).get_bill(bill_id)
        assert restored.bill_amt == 500.0
        assert restored.status == BillStatus.UNPAID

    def test_payments_accumulate_and_undo_together(self, party):
        bill_id = party.bills[0].bill_id
        updated = apply_partial_payment(party, bill_id, 100.0)
        updated = apply_partial_payment(updated, bill_id, 250.5)
        assert updated.get_bill(bill_id).manual_adjustment == 350.5

        restored = undo_partial_payment(updated, bill_id)
        assert restored.get_bill(bill_id).bill_amt == 1000.0
        assert restored.get_bill(bill_id).manual_adjustment == 0.0
        assert restored.balance_debit == 1500.0

    def test_payment_on_paid_bill_resets_status(self, party):
        bill_id = party.bills[0].bill_id
        updated = apply_partial_payment(mark_paid(party, bill_id), bill_id, 100.0)
        assert updated.get_bill(bill_id).status == BillStatus.UNPAID

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount_rejected(self, party, amount):
        with pytest.raises(ValueError):
            apply_partial_payment(party, party.bills[0].bill_id, amount)

    def test_undo_without_payment_is_noop(self, party):
        assert undo_partial_payment(party, party.bills[0].bill_id) is party


class TestLedgerSession:

    def test_operations_swap_snapshot(self, party):
        session = LedgerSession(LedgerSnapshot(parties=(party,)))
        before = session.snapshot

        session.mark_paid(party.id, party.bills[0].bill_id)

        assert session.snapshot is not before
        assert before.parties[0].bills[0].status == BillStatus.UNPAID
        assert session.get_party(party.id).bills[0].status == BillStatus.PAID

    def test_failed_operation_keeps_snapshot(self, party):
        session = LedgerSession(LedgerSnapshot(parties=(party,)))
        before = session.snapshot

        with pytest.raises(OverpaymentNotConfirmedError):
            session.apply_partial_payment(party.id, party.bills[1].bill_id, 900.0)

        assert session.snapshot is before

    def test_unknown_party(self):
        with pytest.raises(PartyNotFoundError):
            LedgerSession().mark_paid(uuid4(), uuid4())

    def test_phone_number_trimmed(self, party):
        assert set_phone_number(party, " 98765 43210 ").phone_number == "98765 43210"

    def test_clear(self, party):
        session = LedgerSession(LedgerSnapshot(parties=(party,)))
        assert session.is_loaded
        session.clear()
        assert not session.is_loaded


def test_revert_of_300_on_1000():
    party = make_party("ACME", [make_bill(amount=1000.0)])
    bill_id = party.bills[0].bill_id
    bill = undo_partial_payment(apply_partial_payment(party, bill_id, 300.0), bill_id).get_bill(bill_id)
    assert (bill.bill_amt, bill.manual_adjustment, bill.status) == (1000.0, 0.0, BillStatus.UNPAID)
