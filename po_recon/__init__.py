"""Purchase-order vs ERP price-list reconciliation."""

from .capture import StagingResult, extract_po_data
from .columns import detect_all_columns, detect_columns
from .documents import build_mailto_link, generate_corrected_invoice, generate_credit_note, generate_email_draft
from .engine import reconcile, reconcile_located
from .errors import ColumnResolutionError, HeaderNotFoundError, ParseError, ReconError, UnsupportedFormatError
from .formatting import CurrencySettings, format_currency
from .headers import apply_column_overrides, load_grid, load_table, locate_header
from .ingest import read_raw_tables
from .models import (
    ColumnRoles,
    LocatedTable,
    ParsedTable,
    RawTable,
    ReconciliationLine,
    ReconciliationResult,
    ReconciliationSummary,
    Status,
)
from .writer import build_workbook, workbook_bytes

__all__ = [
    "ColumnResolutionError",
    "ColumnRoles",
    "CurrencySettings",
    "HeaderNotFoundError",
    "LocatedTable",
    "ParseError",
    "ParsedTable",
    "RawTable",
    "ReconError",
    "ReconciliationLine",
    "ReconciliationResult",
    "ReconciliationSummary",
    "StagingResult",
    "Status",
    "UnsupportedFormatError",
    "apply_column_overrides",
    "build_workbook",
    "build_mailto_link",
    "detect_all_columns",
    "detect_columns",
    "extract_po_data",
    "format_currency",
    "generate_corrected_invoice",
    "generate_credit_note",
    "generate_email_draft",
    "load_grid",
    "load_table",
    "locate_header",
    "read_raw_tables",
    "reconcile",
    "reconcile_located",
    "workbook_bytes",
]
