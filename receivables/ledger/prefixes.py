"""
Prefix Classifier

Distributors number their bills per principal company: "R/25-26/0412"
is a Havells bill, "C25Y0091" a Cadbury one. The prefix guide maps those
leading codes to company names.

DESIGN DECISION: Classification is a pure function of (bill_no, table).
The company name is never stored on a Bill; swapping in a new guide
reclassifies every bill on the next read without touching the ledger.

The process-wide PrefixRegistry only exists at the app seam. It swaps
whole tables by reference, so a reader either sees the old guide or the
new one, never a half-written mix.
"""

import io
import re
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Optional

import pandas as pd
import structlog

from receivables.ledger.normalize import cell_text
from receivables.models.ledger import Party


logger = structlog.get_logger(__name__)

UNMAPPED_KEY = "D.N/TCS"

DEFAULT_PREFIX_MAP: dict[str, str] = {
    "Al/25-26/": "GSK",
    "*HAL/25/": "GSK",
    "BSO25": "Johnson",
    "JJGS25": "Johnson",
    "C25Y": "Cadbury",
    "D/25-26/": "Figaro",
    "E/25-26/": "Hershey",
    "FR2526027": "Ferrero",
    "H/25-26/": "Haldram",
    "I/25-26/": "Ziggy",
    "K/25-26/": "Kellogs",
    "LIN10025": "Loreal",
    "LCBL04725": "Loreal",
    "M/25-26/": "Malas",
    "N/25-26/": "3M",
    "O/25-26/": "Lotte",
    "Q/25-26/": "Jimmy",
    "*Q/24-25/": "Jimmy",
    "R/25-26/": "Havells",
    "*R/24-25/": "Havells",
    "S2526411": "Catch",
    "*S2425411": "Catch",
    "T/25-26/": "Tops",
    "U/25-26/": "Budweiser",
    "V/25-26/": "Vebba",
    "W/25-26/": "Wabh Bakri",
    "Z/25-26/": "Delmonte",
}

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


class PrefixGuideError(Exception):
    """The uploaded prefix guide could not be read."""
    pass


def _strip_star(text: str) -> str:
    return text[1:] if text.startswith("*") else text


def _alnum(text: str) -> str:
    return _NON_ALNUM.sub("", text.upper())


class PrefixTable(Mapping):
    """
    Read-only prefix -> company mapping.

    Normalized forms of every prefix are computed once here rather than on
    each classification call.
    """

    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        entries = {}
        for prefix, company in (mapping or {}).items():
            prefix, company = str(prefix).strip(), str(company).strip()
            if prefix and company:
                entries[prefix] = company
        self._entries = MappingProxyType(entries)

        # (upper, upper without leading "*", alphanumeric only, company)
        self._normalized = tuple(
            (prefix.upper(), _strip_star(prefix.upper()), _alnum(prefix), company)
            for prefix, company in entries.items()
        )

    @classmethod
    def default(cls) -> "PrefixTable":
        return cls(DEFAULT_PREFIX_MAP)

    @classmethod
    def with_defaults(cls, mapping: Mapping[str, str]) -> "PrefixTable":
        """Built-in guide overlaid with a fetched or uploaded one."""
        return cls({**DEFAULT_PREFIX_MAP, **mapping})

    def __getitem__(self, prefix: str) -> str:
        return self._entries[prefix]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"PrefixTable({len(self)} prefixes)"

    def classify(self, bill_no: str) -> Optional[str]:
        """
        Company for a bill number, or None.

        Match order, first hit wins:
        1. bill starts with prefix (trimmed, case-insensitive)
        2. same, with a leading "*" dropped from the bill
        3. same, with a leading "*" dropped from both
        4. alphanumeric-only bill starts with alphanumeric-only prefix
        """
        upper_bill = (bill_no or "").strip().upper()
        if not upper_bill:
            return None

        stripped_bill = _strip_star(upper_bill)

        for prefix, _, _, company in self._normalized:
            if upper_bill.startswith(prefix):
                return company
        for prefix, _, _, company in self._normalized:
            if stripped_bill.startswith(prefix):
                return company
        for _, stripped_prefix, _, company in self._normalized:
            if stripped_prefix and stripped_bill.startswith(stripped_prefix):
                return company

        # Tolerates "/" and "-" drift between the ledger and the guide
        clean_bill = _alnum(upper_bill)
        if clean_bill:
            for _, _, clean_prefix, company in self._normalized:
                if clean_prefix and clean_bill.startswith(clean_prefix):
                    return company

        return None

    def companies(self) -> list[str]:
        """Distinct company names, sorted."""
        return sorted(set(self._entries.values()))


class PrefixRegistry:
    """
    Process-wide holder for the active prefix table.

    Readers take `current` once and classify against that object.
    Writers replace the whole table; nothing is edited in place.
    """

    def __init__(self, table: Optional[PrefixTable] = None):
        self._table = table if table is not None else PrefixTable.default()

    @property
    def current(self) -> PrefixTable:
        return self._table

    def replace(self, table: PrefixTable) -> PrefixTable:
        """Swap in a new table, returning the previous one."""
        previous, self._table = self._table, table
        logger.info(
            "prefix_table_replaced",
            previous_count=len(previous),
            prefix_count=len(table),
        )
        return previous


def classify(bill_no: str, table: PrefixTable) -> Optional[str]:
    """Company for a bill number, or None when no prefix matches."""
    return table.classify(bill_no)


def company_for(bill_no: str, table: PrefixTable) -> str:
    """Company for display, export and grouping (unmapped sentinel on a miss)."""
    return table.classify(bill_no) or UNMAPPED_KEY


def unique_companies(table: PrefixTable) -> list[str]:
    """Filter options: the unmapped sentinel first, then companies A-Z."""
    return [UNMAPPED_KEY, *table.companies()]


def unmapped_parties(parties: Iterable[Party], table: PrefixTable) -> list[str]:
    """
    Names of parties holding at least one bill the guide cannot classify.

    Bills without a number are not counted; there is nothing to map.
    """
    names = {
        party.party_name
        for party in parties
        if any(bill.bill_no and table.classify(bill.bill_no) is None for bill in party.bills)
    }
    return sorted(names)


def parse_prefix_guide(data: bytes, filename: str) -> dict[str, str]:
    """
    Read a prefix guide file into {prefix: company}.

    First sheet (or the CSV), first two columns, header row ignored.
    Rows with a blank prefix or company are skipped.
    """
    ext = Path(filename).suffix.lower()
    try:
        if ext in {".xlsx", ".xls"}:
            raw = pd.read_excel(
                io.BytesIO(data),
                header=None,
                dtype=object,
                engine="openpyxl" if ext == ".xlsx" else None,
            )
        elif ext == ".csv":
            raw = pd.read_csv(
                io.BytesIO(data),
                header=None,
                dtype=str,
                keep_default_na=False,
                engine="python",
            )
        else:
            raise PrefixGuideError(f"Unsupported prefix guide type: {ext or filename}")
    except PrefixGuideError:
        raise
    except Exception as e:
        raise PrefixGuideError(f"Could not read prefix guide {filename}: {e}") from e

    if raw.shape[1] < 2:
        raise PrefixGuideError("Prefix guide needs two columns: Prefix, Company Name")

    guide: dict[str, str] = {}
    for prefix_cell, company_cell in raw.iloc[1:, :2].itertuples(index=False):
        prefix, company = cell_text(prefix_cell), cell_text(company_cell)
        if prefix and company:
            guide[prefix] = company

    logger.info("prefix_guide_parsed", filename=filename, prefix_count=len(guide))
    return guide
