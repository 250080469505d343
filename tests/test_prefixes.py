"""Tests for bill prefix classification and the prefix guide."""

import io

import pytest
from openpyxl import Workbook

from conftest import make_bill, make_party
from receivables.ledger.prefixes import (
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


class TestClassify:
    """Match order and normalization rules."""

    def test_direct_prefix(self, table):
        assert classify("R/25-26/0412", table) == "Havells"
        assert classify("C25Y0091", table) == "Cadbury"

    def test_case_and_whitespace_insensitive(self, table):
        assert classify("  r/25-26/0412 ", table) == "Havells"

    def test_star_prefix_matches_star_bill(self, table):
        assert classify("*R/24-25/0007", table) == "Havells"

    def test_star_on_bill_only(self, table):
        """A leading * on the bill is ignored against a plain prefix."""
        assert classify("*C25Y0091", table) == "Cadbury"

    def test_star_on_prefix_only(self, table):
        """A starred guide entry still matches the bill without the star."""
        assert classify("HAL/25/0001", table) == "GSK"

    def test_alphanumeric_fallback(self, table):
        """Separator drift between ledger and guide still matches."""
        assert classify("R-25-26-0412", table) == "Havells"
        assert classify("R2526/0412", table) == "Havells"

    def test_first_entry_wins(self):
        table = PrefixTable({"AB": "First", "A": "Second"})
        assert classify("ABC1", table) == "First"

    def test_unknown_and_empty(self, table):
        assert classify("ZZZ999", table) is None
        assert classify("", table) is None
        assert company_for("ZZZ999", table) == UNMAPPED_KEY

    def test_blank_entries_dropped(self):
        table = PrefixTable({"": "Nobody", "X/": "", " Y/ ": " Yes "})
        assert dict(table) == {"Y/": "Yes"}


class TestPrefixTable:

    def test_with_defaults_overlays_guide(self):
        table = PrefixTable.with_defaults({"R/25-26/": "Havells India", "NEW/": "Newco"})
        assert table["R/25-26/"] == "Havells India"
        assert table["NEW/"] == "Newco"
        assert table["C25Y"] == "Cadbury"

    def test_unique_companies_puts_sentinel_first(self, table):
        companies = unique_companies(table)
        assert companies[0] == UNMAPPED_KEY
        assert companies[1:] == sorted(set(table.values()))

    def test_registry_swaps_whole_table(self, table):
        registry = PrefixRegistry()
        held = registry.current
        replacement = PrefixTable({"Q": "Q Co"})

        previous = registry.replace(replacement)

        assert previous is held
        assert registry.current is replacement
        assert classify("R/25-26/1", held) == "Havells"
        assert classify("R/25-26/1", registry.current) is None

    def test_unmapped_parties(self, table):
        parties = [
            make_party("ACME", [make_bill("R/25-26/1")]),
            make_party("ZETA", [make_bill("ZZZ1"), make_bill("R/25-26/2")]),
            make_party("NONUM", [make_bill("")]),
        ]
        assert unmapped_parties(parties, table) == ["ZETA"]


class TestParsePrefixGuide:

    def test_csv_guide(self):
        data = b"Prefix,Company Name\nR/25-26/,Havells\nNEW/,Newco\n,Blank\n"
        assert parse_prefix_guide(data, "guide.csv") == {"R/25-26/": "Havells", "NEW/": "Newco"}

    def test_xlsx_guide(self):
        wb = Workbook()
        ws = wb.active
        ws.append(["Bill Number Prefix", "Company Name"])
        ws.append(["X25/", "Xeno"])
        ws.append(["Y25/", None])
        buffer = io.BytesIO()
        wb.save(buffer)

        assert parse_prefix_guide(buffer.getvalue(), "guide.xlsx") == {"X25/": "Xeno"}

    def test_single_column_rejected(self):
        with pytest.raises(PrefixGuideError):
            parse_prefix_guide(b"Prefix\nR/\n", "guide.csv")

    def test_unsupported_type_rejected(self):
        with pytest.raises(PrefixGuideError):
            parse_prefix_guide(b"whatever", "guide.pdf")


def test_fallback_chain_on_custom_guide():
    table = PrefixTable({"ABC/": "X"})
    assert classify("*ABC/123", table) == "X"
    assert classify("AB-C/123", table) == "X"
