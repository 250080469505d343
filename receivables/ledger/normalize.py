"""
Currency & Date Normalizer

Ledger exports write the same number in many ways: "1,234.50",
"(1,234.50)", "500 Cr", "500 Dr", "-500". Dates arrive as ISO strings,
"15-Mar-24", "15/03/2024" or spreadsheet timestamps.

IMPORTANT: Nothing in here raises for bad cell content. A cell that cannot
be read becomes 0 (amounts, days) or 0 (dates, meaning "no valid date").
Callers must treat a 0 date as missing, never as 1970-01-01.
"""

import math
import numbers
import re
import sys
import warnings
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import pandas as pd


CENT = Decimal("0.01")

# Anything earlier is a parser artefact, not a bill date.
MIN_YEAR = 1900

_NON_NUMERIC = re.compile(r"[^0-9.\-()]")
# "Rs." and "Cr." abbreviations, not decimal points
_LABEL_DOT = re.compile(r"(?<=[A-Za-z])\.")
_LEADING_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_CREDIT_MARK = re.compile(r"cr", re.IGNORECASE)
_DEBIT_MARK = re.compile(r"dr", re.IGNORECASE)
_DATE_SEPARATORS = re.compile(r"[-/\s]")

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def cell_text(value: Any) -> str:
    """Text content of a spreadsheet cell; blanks and NaN become ""."""
    if value is None:
        return ""
    if _is_number(value) and math.isnan(value):
        return ""
    return str(value).strip()


def round_currency(value: float) -> float:
    """
    Round half-up to 2 decimals.

    Epsilon is added first so values like 1.005, stored as 1.00499999...,
    still round up.
    """
    nudged = Decimal(str(value + sys.float_info.epsilon))
    return float(nudged.quantize(CENT, rounding=ROUND_HALF_UP))


def clean_currency(value: Any) -> float:
    """
    Parse an amount cell into a signed float.

    Sign rules, checked against the original text in this order:
    "Cr" -> negative, "Dr" -> positive, wrapped in parentheses -> negative,
    any "-" -> negative, otherwise the sign of the parsed number.
    """
    if _is_number(value):
        return 0.0 if math.isnan(value) else float(value)

    text = cell_text(value)
    if not text:
        return 0.0

    cleaned = _NON_NUMERIC.sub("", _LABEL_DOT.sub("", text))
    in_parens = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        in_parens = True
        cleaned = cleaned.replace("(", "").replace(")", "")

    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0

    number = float(match.group())
    magnitude = abs(number)
    if magnitude == 0:
        return 0.0

    if _CREDIT_MARK.search(text):
        return -magnitude
    if _DEBIT_MARK.search(text):
        return magnitude
    if in_parens:
        return -magnitude
    if "-" in text:
        return -magnitude
    if number < 0:
        return -magnitude
    return magnitude


def parse_days(value: Any) -> int:
    """Aging cell -> int. Thousands separators are ignored; junk is 0."""
    if _is_number(value):
        return 0 if math.isnan(value) else int(value)

    match = _LEADING_INT.match(cell_text(value).replace(",", ""))
    return int(match.group(1)) if match else 0


def _to_epoch_ms(moment: datetime) -> int:
    # Naive datetimes are local time.
    try:
        return int(round(moment.timestamp() * 1000))
    except (OverflowError, OSError, ValueError):
        return 0


def date_to_timestamp(day: date) -> int:
    """Local-midnight epoch milliseconds for a calendar date."""
    return _to_epoch_ms(datetime(day.year, day.month, day.day))


def _to_local_ms(parsed: Any) -> int:
    if parsed is None or pd.isna(parsed):
        return 0
    moment = parsed.to_pydatetime() if isinstance(parsed, pd.Timestamp) else parsed
    # Partial strings like "Mar-24" come back as year 1 or similar.
    if moment.year < MIN_YEAR:
        return 0
    return _to_epoch_ms(moment)


def _parse_general(text: str) -> int:
    # ISO first: a day-first parse swaps day and month on "2024-03-01 00:00:00".
    iso = _to_local_ms(pd.to_datetime(text, format="ISO8601", errors="coerce"))
    if iso:
        return iso
    with warnings.catch_warnings():
        # pandas warns when it has to guess the format per element
        warnings.simplefilter("ignore")
        parsed = pd.to_datetime(text, errors="coerce", dayfirst=True)
    return _to_local_ms(parsed)


def _parse_day_month_name(text: str) -> int:
    """Fallback for "15-Mar-24" style dates the general parser missed."""
    parts = _DATE_SEPARATORS.split(text)
    if len(parts) < 3:
        return 0

    day_match = _LEADING_INT.match(parts[0])
    year_match = _LEADING_INT.match(parts[2])
    month = MONTHS.get(parts[1].lower()[:3])
    if month is None or not day_match or not year_match:
        return 0

    year = int(year_match.group(1))
    if year < 100:
        year += 2000

    try:
        return _to_epoch_ms(datetime(year, month, int(day_match.group(1))))
    except ValueError:
        return 0


def parse_date(value: Any) -> int:
    """
    Parse a bill date into epoch milliseconds, or 0 if unparsable.

    Tries ISO 8601 first, then a day-first general parse (numeric, month names),
    then a day/month-name/year split with two-digit years read as 20XX.
    """
    if isinstance(value, datetime):
        return _to_epoch_ms(value)
    if isinstance(value, date):
        return date_to_timestamp(value)

    text = cell_text(value)
    if not text:
        return 0

    return _parse_general(text) or _parse_day_month_name(text)
