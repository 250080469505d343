"""
Session Mutation Layer

Everything the user does to a reconciled ledger during a session: mark
bills paid or disputed, record partial payments, undo either, attach a
phone number.

CRITICAL: FIFO reconciliation is NEVER re-run here. Credit was allocated
once when the ledger was loaded; a mutation only touches the bill it
names and then recomputes the party's debit from its active bills.
balance_credit is left exactly as reconciliation set it.

DESIGN DECISION: Every operation takes a Party and returns a new Party.
LedgerSession holds the current snapshot and swaps it wholesale, so a
failed operation (any SessionMutationError) leaves the snapshot as it was.

Bill states:

    unpaid --mark_paid--> paid
    unpaid --mark_dispute--> dispute
    paid / dispute --undo_status--> unpaid

Partial payments set the status themselves (paid when settled, unpaid
otherwise) whatever it was before.
"""

from typing import Callable, Optional
from uuid import UUID

import structlog

from receivables.ledger.normalize import round_currency
from receivables.models.ledger import Bill, BillStatus, LedgerSnapshot, Party


logger = structlog.get_logger(__name__)


class SessionMutationError(Exception):
    """Base exception for rejected session actions."""
    pass


class InvalidStatusTransitionError(SessionMutationError):
    """The bill cannot move from its current status to the requested one."""
    pass


class OverpaymentNotConfirmedError(SessionMutationError):
    """
    The payment exceeds the outstanding amount and was not confirmed.

    Recoverable: ask the user, then retry with confirm_overpayment=True.
    """

    def __init__(self, amount: float, outstanding: float):
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(
            f"Payment {amount} exceeds outstanding amount {outstanding}; "
            "confirmation required"
        )


class BillNotFoundError(SessionMutationError):
    pass


class PartyNotFoundError(SessionMutationError):
    pass


# =============================================================================
# PURE OPERATIONS (Party in, new Party out)
# =============================================================================

def recompute_totals(party: Party, bills: tuple[Bill, ...]) -> Party:
    """
    Rebuild a party around a new bill list.

    balance_debit is the rounded sum of active bills and raw_balance
    follows it; balance_credit does not change.
    """
    debit = round_currency(sum(b.bill_amt for b in bills if b.is_active))
    return party.model_copy(update={
        "bills": bills,
        "balance_debit": debit,
        "raw_balance": round_currency(debit - party.balance_credit),
    })


def _find_bill(party: Party, bill_id: UUID) -> Bill:
    bill = party.get_bill(bill_id)
    if bill is None:
        raise BillNotFoundError(f"Bill {bill_id} not found for {party.party_name}")
    return bill


def _replace_bill(party: Party, bill_id: UUID, **changes) -> Party:
    bills = tuple(
        b.model_copy(update=changes) if b.bill_id == bill_id else b
        for b in party.bills
    )
    return recompute_totals(party, bills)


def _set_status(party: Party, bill_id: UUID, status: BillStatus) -> Party:
    bill = _find_bill(party, bill_id)
    if bill.status != BillStatus.UNPAID:
        raise InvalidStatusTransitionError(
            f"Bill {bill.bill_no or bill_id} is {bill.status.value}; "
            f"undo it before marking it {status.value}"
        )
    return _replace_bill(party, bill_id, status=status)


def mark_paid(party: Party, bill_id: UUID) -> Party:
    """Mark an unpaid bill paid; it drops out of the active debit."""
    return _set_status(party, bill_id, BillStatus.PAID)


def mark_dispute(party: Party, bill_id: UUID) -> Party:
    """Mark an unpaid bill disputed; it drops out of the active debit."""
    return _set_status(party, bill_id, BillStatus.DISPUTE)


def undo_status(party: Party, bill_id: UUID) -> Party:
    """Reset a bill to unpaid from any status."""
    _find_bill(party, bill_id)
    return _replace_bill(party, bill_id, status=BillStatus.UNPAID)


def apply_partial_payment(
    party: Party,
    bill_id: UUID,
    amount: float,
    confirm_overpayment: bool = False,
) -> Party:
    """
    Record a payment against one bill.

    A payment that covers the outstanding amount settles the bill (amount
    0, status paid). Only the outstanding part is added to
    manual_adjustment so an undo restores the bill exactly, never above
    its original amount. A smaller payment reduces the bill and leaves it
    unpaid.

    Raises:
        ValueError: amount is not positive
        OverpaymentNotConfirmedError: amount exceeds the outstanding
            amount and confirm_overpayment is False
    """
    if amount <= 0:
        raise ValueError("Payment amount must be greater than 0")

    bill = _find_bill(party, bill_id)
    outstanding = bill.bill_amt

    if amount >= outstanding:
        if amount > outstanding and not confirm_overpayment:
            raise OverpaymentNotConfirmedError(amount, outstanding)
        applied = max(outstanding, 0.0)
        return _replace_bill(
            party,
            bill_id,
            bill_amt=0.0,
            status=BillStatus.PAID,
            manual_adjustment=round_currency(bill.manual_adjustment + applied),
        )

    return _replace_bill(
        party,
        bill_id,
        bill_amt=round_currency(outstanding - amount),
        status=BillStatus.UNPAID,
        manual_adjustment=round_currency(bill.manual_adjustment + amount),
    )


def undo_partial_payment(party: Party, bill_id: UUID) -> Party:
    """
    Put every session payment on a bill back.

    The bill ends unpaid when something is outstanding again, paid when
    it is still at 0 (a bill settled by credit, for instance).
    """
    bill = _find_bill(party, bill_id)
    if bill.manual_adjustment <= 0:
        return party

    restored = round_currency(bill.bill_amt + bill.manual_adjustment)
    return _replace_bill(
        party,
        bill_id,
        bill_amt=restored,
        manual_adjustment=0.0,
        status=BillStatus.UNPAID if restored > 0 else BillStatus.PAID,
    )


def set_phone_number(party: Party, phone_number: str) -> Party:
    return party.model_copy(update={"phone_number": (phone_number or "").strip()})


# =============================================================================
# SESSION (holds the current snapshot)
# =============================================================================

class LedgerSession:
    """
    The console's working copy of the ledger.

    Single shared snapshot, last write wins. Callers read `snapshot` once
    per render and work against that object.
    """

    def __init__(self, snapshot: Optional[LedgerSnapshot] = None):
        self._snapshot = snapshot or LedgerSnapshot()

    @property
    def snapshot(self) -> LedgerSnapshot:
        return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return bool(self._snapshot.parties)

    def load(self, snapshot: LedgerSnapshot) -> None:
        self._snapshot = snapshot
        logger.info(
            "session_loaded",
            party_count=len(snapshot.parties),
            bill_count=snapshot.bill_count,
            source=snapshot.source_filename,
        )

    def clear(self) -> None:
        self._snapshot = LedgerSnapshot()
        logger.info("session_cleared")

    def get_party(self, party_id: UUID) -> Party:
        party = self._snapshot.get_party(party_id)
        if party is None:
            raise PartyNotFoundError(f"Party {party_id} not found")
        return party

    def _apply(self, party_id: UUID, operation: Callable[..., Party], *args, **kwargs) -> Party:
        snapshot = self._snapshot
        party = snapshot.get_party(party_id)
        if party is None:
            raise PartyNotFoundError(f"Party {party_id} not found")

        updated = operation(party, *args, **kwargs)
        self._snapshot = snapshot.replace_party(updated)
        return updated

    def mark_paid(self, party_id: UUID, bill_id: UUID) -> Party:
        return self._apply(party_id, mark_paid, bill_id)

    def mark_dispute(self, party_id: UUID, bill_id: UUID) -> Party:
        return self._apply(party_id, mark_dispute, bill_id)

    def undo_status(self, party_id: UUID, bill_id: UUID) -> Party:
        return self._apply(party_id, undo_status, bill_id)

    def apply_partial_payment(
        self,
        party_id: UUID,
        bill_id: UUID,
        amount: float,
        confirm_overpayment: bool = False,
    ) -> Party:
        return self._apply(
            party_id,
            apply_partial_payment,
            bill_id,
            amount,
            confirm_overpayment=confirm_overpayment,
        )

    def undo_partial_payment(self, party_id: UUID, bill_id: UUID) -> Party:
        return self._apply(party_id, undo_partial_payment, bill_id)

    def set_phone_number(self, party_id: UUID, phone_number: str) -> Party:
        return self._apply(party_id, set_phone_number, phone_number)

    def replace_parties(self, parties: list[Party]) -> None:
        """Swap in a whole new party list (after a contact sync, say)."""
        self._snapshot = self._snapshot.model_copy(update={"parties": tuple(parties)})
