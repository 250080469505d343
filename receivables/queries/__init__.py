"""Filtering and aggregation over reconciled parties."""

from receivables.queries.filters import (
    active_debit,
    bill_matches,
    filter_bills,
    filter_parties,
    matches_company,
    matches_date_range,
)
from receivables.queries.stats import (
    AgingBucket,
    CompanyTotal,
    DashboardStats,
    compute_dashboard_stats,
    format_inr,
)

__all__ = [
    "active_debit",
    "bill_matches",
    "filter_bills",
    "filter_parties",
    "matches_company",
    "matches_date_range",
    "AgingBucket",
    "CompanyTotal",
    "DashboardStats",
    "compute_dashboard_stats",
    "format_inr",
]
