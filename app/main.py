"""
Streamlit Frontend for the Receivables Console

The office uses this screen every morning: upload the bill-wise
outstanding export, see who owes what, chase payments, download lists
for the salesmen.

DESIGN PRINCIPLES:
1. One filter, shared by every view and every download
2. Nothing about the accounting software is changed from here;
   paid / dispute marks are session-local
3. Clear error messages in simple language
4. A cloud outage degrades to local work, it never blocks the screen
"""

import asyncio
from datetime import date
from typing import Optional
from uuid import UUID

import pandas as pd
import streamlit as st
from pydantic import ValidationError

from receivables.config import get_settings, validate_all_settings
from receivables.export import EmptyExportError
from receivables.ledger import LedgerFileError, PrefixGuideError, company_for, unique_companies, unmapped_parties
from receivables.models.ledger import BillFilter, BillStatus, ExportLayout, FilterMode, Party
from receivables.orchestrator import AppComponents, create_app_components
from receivables.queries import active_debit, compute_dashboard_stats, filter_bills, filter_parties, format_inr
from receivables.session import OverpaymentNotConfirmedError, SessionMutationError
from receivables.validation import UploadValidationError


# Page configuration
st.set_page_config(
    page_title="Receivables Console",
    page_icon="📒",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .warning-box {
        padding: 16px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached), then pull shared state once."""
    settings = get_settings().app
    components = create_app_components(use_storage=True, bills_per_row=settings.export_bills_per_row)
    run_async(components.prefix_flow.sync_from_storage())
    run_async(components.upload_flow.restore_snapshot())
    return components


def main():
    """Main application entry point."""
    components = get_components()

    st.sidebar.title("📒 Receivables Console")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "🧾 Party Detail", "🏷️ Prefix Guide", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    bill_filter = render_filter_sidebar(components)

    if page == "📊 Dashboard":
        render_dashboard_page(components, bill_filter)
    elif page == "🧾 Party Detail":
        render_party_page(components, bill_filter)
    elif page == "🏷️ Prefix Guide":
        render_prefix_page(components)
    elif page == "⚙️ Settings":
        render_settings_page(components)


# =============================================================================
# FILTERS
# =============================================================================

def render_filter_sidebar(components: AppComponents) -> BillFilter:
    """Sidebar filter controls. Returns the filter every page applies."""
    st.sidebar.markdown("### Filters")
    table = components.registry.current

    search = st.sidebar.text_input("Search party", key="filter_search")
    companies = st.sidebar.multiselect("Companies", unique_companies(table), key="filter_companies")
    min_days = st.sidebar.number_input("Min. days", min_value=0, value=0, step=15, key="filter_min_days")
    dates = st.sidebar.date_input(
        "Bill date (one date = up to that day)",
        value=(),
        key="filter_dates",
    )

    date_from: Optional[date] = None
    date_to: Optional[date] = None
    if isinstance(dates, (list, tuple)):
        if len(dates) >= 1:
            date_from = dates[0]
        if len(dates) >= 2:
            date_to = dates[1]
    elif isinstance(dates, date):
        date_from = dates

    try:
        return BillFilter(
            companies=companies,
            min_days=min_days or None,
            date_from=date_from,
            date_to=date_to,
            search=search,
        )
    except ValidationError:
        st.sidebar.error("The end date is before the start date; date filter ignored.")
        return BillFilter(companies=companies, min_days=min_days or None, search=search)


# =============================================================================
# DASHBOARD
# =============================================================================

def render_upload(components: AppComponents):
    uploaded_file = st.file_uploader(
        "Upload bill-wise outstanding export",
        type=get_settings().app.supported_formats_list,
        help="CSV or Excel export with Party Name, Bill No., Bill Date, Bill Amt., Received, Balance, Due Date, Days",
    )
    if uploaded_file is None:
        return

    # Streamlit keeps the file across reruns; only process a new one
    upload_key = (uploaded_file.name, uploaded_file.size)
    if st.session_state.get("last_upload") == upload_key:
        return

    with st.spinner("Reading and reconciling ledger..."):
        try:
            _, message = run_async(
                components.upload_flow.process_upload(uploaded_file.getvalue(), uploaded_file.name)
            )
        except UploadValidationError as e:
            for issue in e.issues:
                st.error(f"❌ {issue}")
            return
        except LedgerFileError as e:
            st.error(f"❌ Could not read the file: {e}")
            return

    st.session_state.last_upload = upload_key
    st.success(f"✅ {message}")


def render_dashboard_page(components: AppComponents, bill_filter: BillFilter):
    st.title("📊 Outstanding Dashboard")
    render_upload(components)

    snapshot = components.session.snapshot
    table = components.registry.current
    if not snapshot.parties:
        st.info("📋 Upload a ledger export to get started.")
        return

    st.caption(
        f"Source: {snapshot.source_filename or 'shared snapshot'} · "
        f"loaded {snapshot.loaded_at.strftime('%d %b %Y %H:%M')}"
    )

    stats = compute_dashboard_stats(snapshot.parties, table, bill_filter)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Debit", f"₹ {format_inr(stats.total_debit)}", f"{stats.debit_party_count} parties")
    col2.metric("Total Credit", f"₹ {format_inr(stats.total_credit)}", f"{stats.credit_party_count} parties")
    col3.metric("Net Balance", f"₹ {format_inr(stats.net_balance)}")
    col4.metric("Parties", stats.party_count)

    unmapped = unmapped_parties(snapshot.parties, table)
    if unmapped:
        st.markdown(
            f'<div class="warning-box">⚠️ {len(unmapped)} parties have bills with no known prefix. '
            "Upload an updated prefix guide to classify them.</div>",
            unsafe_allow_html=True,
        )

    chart_col, aging_col = st.columns(2)
    with chart_col:
        st.markdown("#### Company-wise outstanding")
        if stats.company_totals:
            st.bar_chart(pd.DataFrame(
                {"Amount": [t.amount for t in stats.company_totals]},
                index=[t.company for t in stats.company_totals],
            ))
    with aging_col:
        st.markdown("#### Aging")
        st.bar_chart(pd.DataFrame(
            {"Amount": [b.amount for b in stats.aging]},
            index=[b.label for b in stats.aging],
        ))

    parties = filter_parties(snapshot.parties, bill_filter, table)
    st.markdown(f"### Parties ({len(parties)})")
    rows = []
    for party in parties:
        bills = filter_bills(party, bill_filter, table)
        rows.append({
            "Party Name": party.party_name,
            "Phone": party.phone_number,
            "Debit": active_debit(bills),
            "Credit": party.balance_credit,
            "Bills": len(bills),
            "Oldest (days)": max((b.days for b in bills), default=0),
        })
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

    render_exports(components, bill_filter)


def render_exports(components: AppComponents, bill_filter: BillFilter):
    st.markdown("### Downloads")
    flow = components.export_flow
    exports = [
        ("Outstanding (Standard)", lambda: flow.outstanding(bill_filter, ExportLayout.STANDARD)),
        ("Outstanding (Combined)", lambda: flow.outstanding(bill_filter, ExportLayout.COMBINED)),
        ("Company-wise (Standard)", lambda: flow.company_wise(bill_filter, ExportLayout.STANDARD)),
        ("Company-wise (Combined)", lambda: flow.company_wise(bill_filter, ExportLayout.COMBINED)),
        ("Paid / Dispute report", lambda: flow.paid_dispute(bill_filter)),
    ]

    columns = st.columns(len(exports))
    for column, (label, build) in zip(columns, exports):
        with column:
            if st.button(f"Prepare {label}", key=f"prepare_{label}"):
                try:
                    st.session_state[f"export_{label}"] = run_async(build())
                except EmptyExportError as e:
                    st.warning(str(e))
            prepared = st.session_state.get(f"export_{label}")
            if prepared:
                filename, content = prepared
                st.download_button(
                    f"⬇️ {label}",
                    data=content,
                    file_name=filename,
                    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                    key=f"download_{label}",
                )


# =============================================================================
# PARTY DETAIL
# =============================================================================

def _status_badge(status: BillStatus) -> str:
    return {
        BillStatus.UNPAID: "🟡 Unpaid",
        BillStatus.PAID: "🟢 Paid",
        BillStatus.DISPUTE: "🔴 Dispute",
    }[status]


def _run_action(coro) -> bool:
    try:
        run_async(coro)
        return True
    except (SessionMutationError, ValueError) as e:
        st.error(f"❌ {e}")
        return False


def render_bill_actions(components: AppComponents, party: Party, bill_id: UUID):
    flow = components.session_flow
    bill = party.get_bill(bill_id)
    key = str(bill_id)

    c1, c2, c3 = st.columns(3)
    if bill.status == BillStatus.UNPAID:
        if c1.button("Mark paid", key=f"paid_{key}") and _run_action(flow.mark_paid(party.id, bill_id)):
            st.rerun()
        if c2.button("Dispute", key=f"dispute_{key}") and _run_action(flow.mark_dispute(party.id, bill_id)):
            st.rerun()
    elif c3.button("Undo status", key=f"undo_{key}") and _run_action(flow.undo_status(party.id, bill_id)):
        st.rerun()

    p1, p2, p3 = st.columns([2, 1, 1])
    amount = p1.number_input("Payment received", min_value=0.0, step=100.0, key=f"amount_{key}")
    if p2.button("Apply payment", key=f"apply_{key}"):
        try:
            run_async(flow.apply_partial_payment(party.id, bill_id, amount))
            st.rerun()
        except OverpaymentNotConfirmedError as e:
            st.session_state.pending_overpayment = (party.id, bill_id, amount, e.outstanding)
        except (SessionMutationError, ValueError) as e:
            st.error(f"❌ {e}")
    if bill.manual_adjustment > 0:
        if p3.button("Undo payment", key=f"undo_pay_{key}") and _run_action(
            flow.undo_partial_payment(party.id, bill_id)
        ):
            st.rerun()

    pending = st.session_state.get("pending_overpayment")
    if pending and pending[1] == bill_id:
        _, _, pending_amount, outstanding = pending
        st.warning(
            f"₹{pending_amount} is more than the ₹{outstanding} outstanding on this bill. "
            "Settle the bill anyway?"
        )
        yes, no = st.columns(2)
        if yes.button("Yes, settle bill", key=f"confirm_{key}"):
            st.session_state.pending_overpayment = None
            if _run_action(flow.apply_partial_payment(party.id, bill_id, pending_amount, confirm_overpayment=True)):
                st.rerun()
        if no.button("Cancel", key=f"cancel_{key}"):
            st.session_state.pending_overpayment = None
            st.rerun()


def render_party_page(components: AppComponents, bill_filter: BillFilter):
    st.title("🧾 Party Detail")
    snapshot = components.session.snapshot
    table = components.registry.current

    parties = filter_parties(snapshot.parties, bill_filter, table)
    if not parties:
        st.info("No parties match the current filter.")
        return

    party = st.selectbox("Party", parties, format_func=lambda p: p.party_name)
    party = components.session.get_party(party.id)

    bills = filter_bills(party, bill_filter, table, FilterMode.DISPLAY)
    active = filter_bills(party, bill_filter, table)

    col1, col2, col3 = st.columns(3)
    col1.metric("Active Debit", f"₹ {format_inr(active_debit(active), 2)}")
    col2.metric("Credit", f"₹ {format_inr(party.balance_credit, 2)}")
    col3.metric("Raw Balance", f"₹ {format_inr(party.raw_balance, 2)}")

    with st.form("phone_form"):
        phone = st.text_input("Phone number", value=party.phone_number)
        if st.form_submit_button("Save phone"):
            run_async(components.session_flow.set_phone_number(party.id, phone))
            st.success("✅ Phone number saved")

    st.markdown(f"### Bills ({len(bills)})")
    for bill in bills:
        header = (
            f"{bill.bill_date} · {company_for(bill.bill_no, table)} · {bill.bill_no} · "
            f"₹{bill.display_amount} · {bill.days} days · {_status_badge(bill.status)}"
        )
        with st.expander(header):
            if bill.is_adjusted:
                st.caption(f"Original amount ₹{bill.original_bill_amt}; received this session ₹{bill.manual_adjustment}")
            render_bill_actions(components, party, bill.bill_id)

    st.markdown("### Payment Reminder")
    if st.button("✍️ Generate reminder"):
        with st.spinner("Drafting reminder..."):
            reminder = run_async(components.reminder_flow.generate(party))
        st.text_area("Reminder", reminder.text, height=320)
        if not reminder.used_model:
            st.caption("Generated from the standard template.")


# =============================================================================
# PREFIX GUIDE
# =============================================================================

def render_prefix_page(components: AppComponents):
    st.title("🏷️ Bill Prefix Guide")
    st.markdown(
        "Bill numbers start with a code that identifies the company. "
        "Upload a two-column sheet (Prefix, Company Name) to update the guide."
    )

    uploaded = st.file_uploader("Upload prefix guide", type=["csv", "xlsx", "xls"], key="prefix_upload")
    if uploaded is not None and st.button("Use this guide"):
        try:
            table = run_async(components.prefix_flow.load_guide(uploaded.getvalue(), uploaded.name))
            st.success(f"✅ Guide updated: {len(table)} prefixes active")
        except PrefixGuideError as e:
            st.error(f"❌ {e}")

    table = components.registry.current
    st.dataframe(
        pd.DataFrame(list(table.items()), columns=["Bill Number Prefix", "Company Name"]),
        use_container_width=True,
        hide_index=True,
    )

    if st.button("Prepare guide download"):
        st.session_state.prefix_export = run_async(components.export_flow.prefix_guide())
    if st.session_state.get("prefix_export"):
        filename, content = st.session_state.prefix_export
        st.download_button("⬇️ Prefix guide", data=content, file_name=filename)

    unmapped = unmapped_parties(components.session.snapshot.parties, table)
    if unmapped:
        st.markdown("#### Parties with unmapped bills")
        st.write(", ".join(unmapped))


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(components: AppComponents):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")
    status = validate_all_settings()

    services = [
        ("Google Sheets (Contacts, Guide, Snapshot, Audit)", "google_sheets"),
        ("Gemini (Reminders)", "gemini"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Shared Ledger")
    if st.button("🗑️ Clear shared ledger"):
        run_async(components.upload_flow.clear())
        st.session_state.last_upload = None
        st.success("✅ Ledger cleared")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "Configure the console with environment variables or a `.env` file: "
        "`GOOGLE_SHEETS_CREDENTIALS_PATH`, `GOOGLE_SHEETS_SPREADSHEET_ID`, "
        "`GEMINI_API_KEY`, `MAX_UPLOAD_SIZE_MB`."
    )


if __name__ == "__main__":
    main()
