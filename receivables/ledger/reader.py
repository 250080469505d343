"""
Ledger File Reader

Turns an uploaded CSV/XLSX export into the flat row stream the grouper
consumes: one dict per row, keyed by the export's column headers, every
value a string.

Parse-level failures (unknown extension, unreadable file) raise and the
whole upload is rejected. Everything finer grained is the grouper's job.
"""

import asyncio
import io
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd
import structlog

from receivables.ledger.grouper import LEDGER_COLUMNS, group_rows
from receivables.models.ledger import Party


logger = structlog.get_logger(__name__)

CSV_EXTENSIONS = {".csv"}
EXCEL_EXTENSIONS = {".xlsx", ".xls"}


class LedgerFileError(Exception):
    """Base exception for ledger files that cannot be used at all."""
    pass


class UnsupportedFileTypeError(LedgerFileError):
    """The file extension is not a ledger format we read."""
    pass


class LedgerParseError(LedgerFileError):
    """The file could not be parsed into rows."""
    pass


def _cell_value(value: Any) -> str:
    """Spreadsheet cell -> the text a user would see in it."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, (pd.Timestamp, datetime, date)):
        if pd.isna(value):
            return ""
        return value.strftime("%d-%b-%Y")
    return str(value).strip()


def _read_csv(data: bytes) -> pd.DataFrame:
    options = dict(dtype=str, keep_default_na=False, skip_blank_lines=True, engine="python")
    try:
        return pd.read_csv(io.BytesIO(data), encoding="utf-8-sig", **options)
    except UnicodeDecodeError:
        return pd.read_csv(io.BytesIO(data), encoding="cp1252", **options)


def _read_excel(data: bytes, ext: str) -> pd.DataFrame:
    engine = "openpyxl" if ext == ".xlsx" else None
    return pd.read_excel(io.BytesIO(data), sheet_name=0, dtype=object, engine=engine)


def read_ledger_file(data: bytes, filename: str) -> list[dict[str, str]]:
    """
    Read the first sheet (or the CSV) into row dicts.

    Column headers are trimmed; expected columns missing from the file are
    filled with "" so the grouper can rely on every key being present.
    Fully blank rows are dropped.
    """
    ext = Path(filename).suffix.lower()
    if ext not in CSV_EXTENSIONS | EXCEL_EXTENSIONS:
        raise UnsupportedFileTypeError(f"Unsupported file type: {ext or filename}")

    try:
        frame = _read_csv(data) if ext in CSV_EXTENSIONS else _read_excel(data, ext)
    except Exception as e:
        raise LedgerParseError(f"Could not read {filename}: {e}") from e

    frame.columns = [str(column).strip() for column in frame.columns]
    for column in LEDGER_COLUMNS:
        if column not in frame.columns:
            frame[column] = ""

    rows = []
    for record in frame.to_dict(orient="records"):
        row = {str(key): _cell_value(value) for key, value in record.items()}
        if any(row.values()):
            rows.append(row)

    logger.info("ledger_rows_read", filename=filename, row_count=len(rows))
    return rows


def parse_ledger(data: bytes, filename: str) -> list[Party]:
    """Read and reconcile an export in one synchronous step."""
    return group_rows(read_ledger_file(data, filename))


async def parse_ledger_async(data: bytes, filename: str) -> list[Party]:
    """
    Parse an uploaded export without blocking the event loop.

    File reading is the only slow step; it runs in a worker thread.
    """
    return await asyncio.to_thread(parse_ledger, data, filename)
