"""Ledger parsing, classification and reconciliation package."""

from receivables.ledger.grouper import LEDGER_COLUMNS, build_bill, group_rows
from receivables.ledger.normalize import (
    clean_currency,
    date_to_timestamp,
    parse_date,
    parse_days,
    round_currency,
)
from receivables.ledger.prefixes import (
    DEFAULT_PREFIX_MAP,
    UNMAPPED_KEY,
    PrefixGuideError,
    PrefixRegistry,
    PrefixTable,
    classify,
    company_for,
    parse_prefix_guide,
    unique_companies,
    unmapped_parties,
)
from receivables.ledger.reader import (
    LedgerFileError,
    LedgerParseError,
    UnsupportedFileTypeError,
    parse_ledger,
    parse_ledger_async,
    read_ledger_file,
)
from receivables.ledger.reconcile import (
    RawParty,
    Settlement,
    finalize_party,
    reconcile_bills,
)

__all__ = [
    # Normalizer
    "clean_currency",
    "date_to_timestamp",
    "parse_date",
    "parse_days",
    "round_currency",
    # Prefix classifier
    "DEFAULT_PREFIX_MAP",
    "UNMAPPED_KEY",
    "PrefixGuideError",
    "PrefixRegistry",
    "PrefixTable",
    "classify",
    "company_for",
    "parse_prefix_guide",
    "unique_companies",
    "unmapped_parties",
    # Grouper and reconciliation
    "LEDGER_COLUMNS",
    "RawParty",
    "Settlement",
    "build_bill",
    "finalize_party",
    "group_rows",
    "reconcile_bills",
    # File reading
    "LedgerFileError",
    "LedgerParseError",
    "UnsupportedFileTypeError",
    "parse_ledger",
    "parse_ledger_async",
    "read_ledger_file",
]
