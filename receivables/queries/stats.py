"""
Dashboard Statistics

Deterministic aggregation over the current snapshot. Figures here feed
the summary cards and charts; they are never estimated.
"""

from collections.abc import Iterable
from typing import Optional

from pydantic import BaseModel, Field

from receivables.ledger.normalize import round_currency
from receivables.ledger.prefixes import PrefixTable, company_for
from receivables.models.ledger import BillFilter, Party
from receivables.queries.filters import bill_matches


AGING_BUCKETS = (
    ("0-30 Days", 0, 30),
    ("31-60 Days", 31, 60),
    ("61-90 Days", 61, 90),
    ("90+ Days", 91, None),
)


def format_inr(amount: float, decimals: int = 0) -> str:
    """
    Indian digit grouping: 10000000 -> "1,00,00,000".

    The last three digits form one group, every group above has two.
    """
    negative = amount < 0
    text = f"{abs(amount):.{decimals}f}"
    whole, _, fraction = text.partition(".")

    head, tail = whole[:-3], whole[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    grouped = ",".join(groups + [tail])

    if fraction:
        grouped = f"{grouped}.{fraction}"
    return f"-{grouped}" if negative else grouped


class CompanyTotal(BaseModel):
    company: str
    amount: float
    bill_count: int = 0


class AgingBucket(BaseModel):
    label: str
    amount: float = 0.0


class DashboardStats(BaseModel):
    """Summary figures for the dashboard."""

    total_debit: float = 0.0
    total_credit: float = 0.0
    debit_party_count: int = 0
    credit_party_count: int = 0
    party_count: int = 0
    company_totals: list[CompanyTotal] = Field(default_factory=list)
    aging: list[AgingBucket] = Field(default_factory=list)

    @property
    def net_balance(self) -> float:
        return round_currency(self.total_debit - self.total_credit)


def _bucket_for(days: int) -> str:
    for label, low, high in AGING_BUCKETS:
        if days >= low and (high is None or days <= high):
            return label
    return AGING_BUCKETS[0][0]


def compute_dashboard_stats(
    parties: Iterable[Party],
    table: PrefixTable,
    bill_filter: Optional[BillFilter] = None,
) -> DashboardStats:
    """
    Totals, counts, company-wise and aging breakdowns.

    Party totals come from the stored balances. Company and aging figures
    sum the active bills that pass bill_filter (all active bills when no
    filter is given), company totals sorted largest first.
    """
    bill_filter = bill_filter or BillFilter()
    parties = list(parties)

    total_debit = 0.0
    total_credit = 0.0
    debit_count = 0
    credit_count = 0
    by_company: dict[str, float] = {}
    company_bills: dict[str, int] = {}
    aging = {label: 0.0 for label, _, _ in AGING_BUCKETS}

    for party in parties:
        total_debit += party.balance_debit
        total_credit += party.balance_credit
        if party.balance_debit > 0:
            debit_count += 1
        if party.balance_credit > 0:
            credit_count += 1

        for bill in party.bills:
            if not bill_matches(bill, bill_filter, table):
                continue
            company = company_for(bill.bill_no, table)
            by_company[company] = by_company.get(company, 0.0) + bill.bill_amt
            company_bills[company] = company_bills.get(company, 0) + 1
            aging[_bucket_for(bill.days)] += bill.bill_amt

    company_totals = [
        CompanyTotal(
            company=company,
            amount=round_currency(amount),
            bill_count=company_bills[company],
        )
        for company, amount in by_company.items()
    ]
    company_totals.sort(key=lambda total: total.amount, reverse=True)

    return DashboardStats(
        total_debit=round_currency(total_debit),
        total_credit=round_currency(total_credit),
        debit_party_count=debit_count,
        credit_party_count=credit_count,
        party_count=len(parties),
        company_totals=company_totals,
        aging=[AgingBucket(label=label, amount=round_currency(amount)) for label, amount in aging.items()],
    )
