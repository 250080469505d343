"""
Tests for the Receivables Console

Test strategy:
1. Unit tests for individual components (models, engine, queries)
2. Integration tests for flows (with in-memory storage)
3. No real API calls in tests (use stubs)
"""

from datetime import date
from uuid import uuid4

import pytest
from pydantic import ValidationError

from receivables.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from receivables.models.ledger import (
    Bill,
    BillFilter,
    BillStatus,
    LedgerSnapshot,
    Party,
    format_amount,
)


class TestLedgerModels:
    """Tests for bill, party and snapshot models."""

    def test_bill_defaults(self):
        """A new bill is unpaid, unadjusted and active."""
        bill = Bill(bill_no="R/25-26/1", bill_amt=500.0, original_bill_amt=500.0)
        assert bill.status == BillStatus.UNPAID
        assert bill.manual_adjustment == 0.0
        assert bill.is_active
        assert not bill.is_adjusted

    def test_bill_ids_are_unique_for_duplicate_numbers(self):
        """Two bills with the same number are still distinct."""
        a = Bill(bill_no="X1", bill_amt=1.0, original_bill_amt=1.0)
        b = Bill(bill_no="X1", bill_amt=1.0, original_bill_amt=1.0)
        assert a.bill_id != b.bill_id

    def test_bill_is_frozen(self):
        """Bills cannot be edited in place."""
        bill = Bill(bill_amt=500.0, original_bill_amt=500.0)
        with pytest.raises(ValidationError):
            bill.bill_amt = 10.0

    def test_adjusted_bill_display_amount(self):
        """A reduced bill carries the (B) marker."""
        bill = Bill(bill_amt=250.0, original_bill_amt=750.0)
        assert bill.is_adjusted
        assert bill.display_amount == "250 (B)"

    def test_paid_and_disputed_bills_are_inactive(self):
        """Only unpaid bills count towards active debit."""
        paid = Bill(bill_amt=1.0, original_bill_amt=1.0, status=BillStatus.PAID)
        dispute = Bill(bill_amt=1.0, original_bill_amt=1.0, status=BillStatus.DISPUTE)
        assert not paid.is_active
        assert not dispute.is_active

    def test_negative_manual_adjustment_rejected(self):
        """Session payments are never negative."""
        with pytest.raises(ValidationError):
            Bill(bill_amt=1.0, original_bill_amt=1.0, manual_adjustment=-5)

    def test_format_amount(self):
        """Whole amounts drop the trailing .0."""
        assert format_amount(1500.0) == "1500"
        assert format_amount(99.5) == "99.5"
        assert format_amount(10.126) == "10.13"

    def test_party_requires_name(self):
        """An empty party name is rejected."""
        with pytest.raises(ValidationError):
            Party(party_name="")

    def test_snapshot_replace_party_returns_new_snapshot(self):
        """Replacing a party leaves the original snapshot untouched."""
        party = Party(party_name="ACME")
        snapshot = LedgerSnapshot(parties=(party,))
        updated = snapshot.replace_party(party.model_copy(update={"phone_number": "98"}))

        assert snapshot.parties[0].phone_number == ""
        assert updated.parties[0].phone_number == "98"
        assert updated.get_party(party.id).phone_number == "98"

    def test_snapshot_bill_count(self):
        bills = (Bill(bill_amt=1.0, original_bill_amt=1.0),) * 3
        snapshot = LedgerSnapshot(parties=(Party(party_name="A", bills=bills), Party(party_name="B")))
        assert snapshot.bill_count == 3

    def test_snapshot_json_roundtrip_keeps_ids(self):
        """Snapshots restored from storage keep party and bill identities."""
        bill = Bill(bill_no="R/1", bill_amt=10.0, original_bill_amt=20.0, status=BillStatus.DISPUTE)
        party = Party(party_name="ACME", bills=(bill,))
        restored = LedgerSnapshot.model_validate_json(LedgerSnapshot(parties=(party,)).model_dump_json())

        assert restored.parties[0].id == party.id
        assert restored.parties[0].bills[0].bill_id == bill.bill_id
        assert restored.parties[0].bills[0].status == BillStatus.DISPUTE


class TestBillFilter:
    """Tests for the shared filter model."""

    def test_empty_filter_is_inactive(self):
        assert not BillFilter().is_active

    def test_search_alone_is_not_a_bill_criterion(self):
        """Search narrows parties, not bills."""
        assert not BillFilter(search="acme").is_active

    def test_single_bound_counts_as_range(self):
        bill_filter = BillFilter(date_to=date(2025, 4, 1))
        assert bill_filter.has_date_range
        assert bill_filter.is_active

    def test_inverted_range_rejected(self):
        with pytest.raises(ValidationError):
            BillFilter(date_from=date(2025, 5, 1), date_to=date(2025, 4, 1))

    def test_negative_min_days_rejected(self):
        with pytest.raises(ValidationError):
            BillFilter(min_days=-1)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.LEDGER_UPLOADED,
            description="Ledger uploaded",
        )
        assert event.event_type == AuditEventType.LEDGER_UPLOADED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            description="Export generated",
            details={"export_name": "paid_dispute_report.xlsx"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "export_generated"
        assert log_dict["details"]["export_name"] == "paid_dispute_report.xlsx"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.SNAPSHOT_CLEARED,
            description="Shared ledger cleared",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "snapshot_cleared"  # event_type
        assert row[10] == "True"  # is_user_action

    def test_audit_event_builder_bill_status_changed(self):
        """Test AuditEventBuilder.bill_status_changed."""
        party_id = uuid4()
        event = AuditEventBuilder.bill_status_changed(
            party_id=party_id,
            party_name="ACME",
            bill_no="R/25-26/1",
            old_status="unpaid",
            new_status="paid",
        )

        assert event.event_type == AuditEventType.BILL_STATUS_CHANGED
        assert event.entity_id == party_id
        assert event.details["new_status"] == "paid"
        assert event.is_user_action is True

    def test_audit_event_builder_ledger_parse_failed(self):
        """A rejected upload is a warning."""
        correlation_id = uuid4()
        event = AuditEventBuilder.ledger_parse_failed("bad.pdf", "Unsupported", correlation_id)
        assert event.severity == AuditSeverity.WARNING
        assert event.correlation_id == correlation_id
        assert event.error_message == "Unsupported"

    def test_prefix_guide_upload_is_user_action(self):
        uploaded = AuditEventBuilder.prefix_guide_replaced(3, "upload:guide.xlsx")
        fetched = AuditEventBuilder.prefix_guide_replaced(3, "storage")
        assert uploaded.is_user_action is True
        assert fetched.is_user_action is False
