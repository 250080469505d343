"""Spreadsheet exports."""

from receivables.export.excel import (
    BILLS_PER_ROW,
    GRAND_TOTAL,
    EmptyExportError,
    ExportError,
    company_wise_workbook,
    export_filename,
    outstanding_workbook,
    paid_dispute_workbook,
    prefix_guide_workbook,
    workbook_to_bytes,
)

__all__ = [
    "BILLS_PER_ROW",
    "GRAND_TOTAL",
    "EmptyExportError",
    "ExportError",
    "company_wise_workbook",
    "export_filename",
    "outstanding_workbook",
    "paid_dispute_workbook",
    "prefix_guide_workbook",
    "workbook_to_bytes",
]
