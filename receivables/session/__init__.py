"""Session-local changes to the reconciled ledger."""

from receivables.session.mutations import (
    BillNotFoundError,
    InvalidStatusTransitionError,
    LedgerSession,
    OverpaymentNotConfirmedError,
    PartyNotFoundError,
    SessionMutationError,
    apply_partial_payment,
    mark_dispute,
    mark_paid,
    recompute_totals,
    set_phone_number,
    undo_partial_payment,
    undo_status,
)

__all__ = [
    "BillNotFoundError",
    "InvalidStatusTransitionError",
    "LedgerSession",
    "OverpaymentNotConfirmedError",
    "PartyNotFoundError",
    "SessionMutationError",
    "apply_partial_payment",
    "mark_dispute",
    "mark_paid",
    "recompute_totals",
    "set_phone_number",
    "undo_partial_payment",
    "undo_status",
]
