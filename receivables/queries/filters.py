"""
Filter Predicate Evaluator

DESIGN DECISION: One predicate for every consumer.
The dashboard, the party detail view, the statistics panel and every
export call bill_matches with the same BillFilter. Whatever the user sees
on screen is exactly what ends up in the downloaded spreadsheet.

The predicate is pure: (bill, filter, prefix table, mode) -> bool.
"""

from collections.abc import Iterable
from datetime import date
from typing import Optional

from receivables.ledger.normalize import date_to_timestamp, parse_date, round_currency
from receivables.ledger.prefixes import PrefixTable, company_for
from receivables.models.ledger import Bill, BillFilter, FilterMode, Party


def matches_company(bill: Bill, companies: Iterable[str], table: PrefixTable) -> bool:
    """True when no companies are selected or the bill's company is one of them."""
    selected = set(companies)
    if not selected:
        return True
    return company_for(bill.bill_no, table) in selected


def matches_date_range(
    bill: Bill,
    date_from: Optional[date],
    date_to: Optional[date],
) -> bool:
    """
    Date range check against the parsed bill date.

    IMPORTANT: A single bound, whichever side it was entered on, means
    "up to and including that day". Users pick one date to see everything
    older than it. Only when both are set is it a [from, to] range.

    A bill without a readable date never matches an active range.
    """
    if date_from is None and date_to is None:
        return True

    bill_ts = parse_date(bill.bill_date)
    if bill_ts == 0:
        return False

    if date_from is not None and date_to is not None:
        return date_to_timestamp(date_from) <= bill_ts <= date_to_timestamp(date_to)

    upper = date_from if date_from is not None else date_to
    return bill_ts <= date_to_timestamp(upper)


def bill_matches(
    bill: Bill,
    bill_filter: BillFilter,
    table: PrefixTable,
    mode: FilterMode = FilterMode.ACTIVE,
) -> bool:
    """
    Whether a bill passes the filter.

    Nothing with a zero or negative amount matches. ACTIVE mode drops paid
    and disputed bills; DISPLAY mode ignores status so the detail view can
    still show them. Company, age and date criteria are the same in both.
    """
    if bill.bill_amt <= 0:
        return False
    if mode == FilterMode.ACTIVE and not bill.is_active:
        return False
    if not matches_company(bill, bill_filter.companies, table):
        return False
    if bill_filter.min_days is not None and bill.days < bill_filter.min_days:
        return False
    return matches_date_range(bill, bill_filter.date_from, bill_filter.date_to)


def filter_bills(
    party: Party,
    bill_filter: BillFilter,
    table: PrefixTable,
    mode: FilterMode = FilterMode.ACTIVE,
) -> tuple[Bill, ...]:
    """A party's matching bills, in stored (FIFO) order."""
    return tuple(b for b in party.bills if bill_matches(b, bill_filter, table, mode))


def filter_parties(
    parties: Iterable[Party],
    bill_filter: BillFilter,
    table: PrefixTable,
) -> list[Party]:
    """
    Parties to list on the dashboard.

    The search term is a case-insensitive substring of the party name.
    Once any bill-level criterion is set, parties left with no active
    matching bill are dropped.
    """
    term = bill_filter.search.lower()
    result = []
    for party in parties:
        if term and term not in party.party_name.lower():
            continue
        if bill_filter.is_active and not filter_bills(party, bill_filter, table):
            continue
        result.append(party)
    return result


def active_debit(bills: Iterable[Bill]) -> float:
    """Rounded sum of bill amounts."""
    return round_currency(sum(b.bill_amt for b in bills))
