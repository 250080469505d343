"""Tests for currency, day and date normalization."""

from datetime import date, datetime

import pytest

from receivables.ledger.normalize import (
    clean_currency,
    date_to_timestamp,
    parse_date,
    parse_days,
    round_currency,
)


class TestCleanCurrency:
    """Amount cells in every shape the exports use."""

    @pytest.mark.parametrize("value,expected", [
        ("1,234.50", 1234.5),
        ("(1,234.50)", -1234.5),
        ("500 Cr", -500.0),
        ("500 Dr", 500.0),
        ("-500", -500.0),
        ("₹ 2,000", 2000.0),
        (750, 750.0),
        (-12.5, -12.5),
    ])
    def test_parses_signed_amounts(self, value, expected):
        assert clean_currency(value) == expected

    @pytest.mark.parametrize("value", ["", None, "abc", "-", float("nan"), "0.00"])
    def test_unreadable_is_zero(self, value):
        assert clean_currency(value) == 0.0

    def test_credit_mark_wins_over_sign(self):
        """Cr is checked before anything else."""
        assert clean_currency("-500 Cr") == -500.0
        assert clean_currency("(500) Dr") == 500.0

    @pytest.mark.parametrize("value,expected", [
        ("Rs. 500", 500.0),
        ("Rs.1,250.75", 1250.75),
        ("500.00 Cr.", -500.0),
        (".50", 0.5),
    ])
    def test_abbreviation_dots_are_not_decimals(self, value, expected):
        assert clean_currency(value) == expected


class TestRoundCurrency:

    def test_half_up(self):
        assert round_currency(1.005) == 1.01
        assert round_currency(2.675) == 2.68

    def test_plain_values_unchanged(self):
        assert round_currency(1450.0) == 1450.0
        assert round_currency(0.1 + 0.2) == 0.3


class TestParseDays:

    @pytest.mark.parametrize("value,expected", [
        ("45", 45),
        ("1,200", 1200),
        (" 30 days", 30),
        (12.0, 12),
        ("", 0),
        ("n/a", 0),
        (None, 0),
    ])
    def test_parse_days(self, value, expected):
        assert parse_days(value) == expected


class TestParseDate:
    """Bill dates parse to local-midnight epoch milliseconds."""

    def test_day_month_name_two_digit_year(self):
        assert parse_date("15-Mar-24") == date_to_timestamp(date(2024, 3, 15))

    def test_day_first_numeric(self):
        assert parse_date("05/03/2024") == date_to_timestamp(date(2024, 3, 5))

    def test_iso(self):
        assert parse_date("2025-04-01") == date_to_timestamp(date(2025, 4, 1))

    def test_full_month_name(self):
        assert parse_date("01-April-2025") == date_to_timestamp(date(2025, 4, 1))

    def test_date_and_datetime_values(self):
        assert parse_date(date(2025, 4, 1)) == date_to_timestamp(date(2025, 4, 1))
        assert parse_date(datetime(2025, 4, 1)) == date_to_timestamp(date(2025, 4, 1))

    @pytest.mark.parametrize("value", ["", None, "not a date", "31-Foo-25"])
    def test_unparsable_is_zero(self, value):
        assert parse_date(value) == 0

    def test_ordering(self):
        assert parse_date("01-Apr-25") < parse_date("04-Apr-25") < parse_date("01-May-25")

    @pytest.mark.parametrize("value", ["2024-03-01 00:00:00", "2024-03-01T00:00:00"])
    def test_iso_datetime_keeps_month(self, value):
        assert parse_date(value) == date_to_timestamp(date(2024, 3, 1))

    def test_iso_datetime_with_time_of_day(self):
        assert parse_date("2024-03-01T10:00:00") == int(datetime(2024, 3, 1, 10).timestamp() * 1000)

    def test_month_and_year_only_is_zero(self):
        """Without a day there is no bill date to age or sort by."""
        assert parse_date("Mar-24") == 0
