from __future__ import annotations

import io
import logging
import re
from datetime import date, datetime
from pathlib import Path

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from .capture import StagingResult
from .documents import CorrectedInvoice, CreditNote
from .formatting import CurrencySettings, format_currency, format_percent
from .models import ReconciliationResult, Status

logger = logging.getLogger(__name__)

HEADER_BG = "1F4E79"
HEADER_FG = "FFFFFF"
ALERT_FG = "A4262C"

_INVALID_TITLE = re.compile(r"[\[\]:*?/\\]")

STATUS_FILLS = {
    Status.EXCEPTION: "FFC7CE",
    Status.NOT_IN_ERP: "FFC7CE",
    Status.NOT_IN_PO: "FFC7CE",
    Status.TOLERANCE: "FFEB9C",
    Status.MATCH: "C6EFCE",
    Status.WARNING: "F2F2F2",
}

RESULT_HEADERS = ["Status", "SKU", "Product Name", "ERP Price", "PO Price", "Difference", "% Diff", "Action"]
CREDIT_HEADERS = ["SKU", "Product Name", "Qty", "Original Price", "Line Total", "Credit Amount"]
INVOICE_HEADERS = ["SKU", "Product Name", "Qty", "Corrected Price", "Line Total", "Price Changed"]
STAGING_HEADERS = ["#", "SKU", "Product Name", "Qty", "Unit Price", "UOM", "Line Total", "Delivery Date", "Status"]


def excel_safe(v):
    if v is None:
        return None
    if isinstance(v, date) and not isinstance(v, datetime):
        return datetime(v.year, v.month, v.day)
    return v


def _fill(color):
    return PatternFill(start_color=color, end_color=color, fill_type="solid")


def _replace_sheet(wb, name):
    if name in wb.sheetnames:
        wb.remove(wb[name])
    return wb.create_sheet(name)


def _write_summary(ws, title, pairs):
    ws.cell(1, 1).value = title
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=2)
    ws.cell(1, 1).font = Font(bold=True, size=14, color=HEADER_BG)
    for i, (label, value) in enumerate(pairs, start=2):
        ws.cell(i, 1).value = label
        ws.cell(i, 1).font = Font(bold=True)
        ws.cell(i, 2).value = excel_safe(value)


def _write_table(ws, start_row, headers, rows, money_cols=(), number_format="0.00"):
    for j, h in enumerate(headers, start=1):
        c = ws.cell(start_row, j)
        c.value = h
        c.font = Font(bold=True, color=HEADER_FG)
        c.fill = _fill(HEADER_BG)
    for i, values in enumerate(rows, start=start_row + 1):
        for j, v in enumerate(values, start=1):
            c = ws.cell(i, j)
            c.value = excel_safe(v)
            if j in money_cols:
                c.number_format = number_format
    ws.freeze_panes = ws.cell(start_row + 1, 1)
    for j in range(1, len(headers) + 1):
        ws.column_dimensions[get_column_letter(j)].width = 18


def sheet_name(prefix, when=None):
    when = when or date.today()
    return f"{prefix}_{when:%Y-%m-%d}"


def write_results_sheet(wb, result: ReconciliationResult, tolerance, settings=None, when=None):
    settings = settings or CurrencySettings()
    ws = _replace_sheet(wb, sheet_name("Recon", when))
    s = result.summary

    _write_summary(ws, "PO Reconciliation Summary", [
        ("Total Line Items", s.total),
        ("Perfect Matches", s.matches),
        ("Within Tolerance", s.tolerances),
        ("Exceptions", s.exceptions),
        ("Total Exposure", format_currency(s.exposure, settings)),
        ("Tolerance Used", format_currency(tolerance, settings)),
        ("Timestamp", s.timestamp),
    ])
    for c in (1, 2):
        ws.cell(5, c).font = Font(bold=True, color=ALERT_FG)

    table_row = 10
    values = [
        [
            f"{ln.status} (DUP)" if ln.duplicate else str(ln.status),
            f"{ln.sku} → {ln.erp_sku}" if ln.erp_sku else ln.sku,
            ln.name or "",
            ln.erp_price,
            ln.po_price,
            ln.diff,
            format_percent(ln.pct_diff),
            ln.action,
        ]
        for ln in result.rows
    ]
    _write_table(ws, table_row, RESULT_HEADERS, values, money_cols=(4, 5, 6),
                 number_format=settings.excel_number_format)

    for i, ln in enumerate(result.rows, start=table_row + 1):
        fill = _fill(STATUS_FILLS[ln.status])
        for j in range(1, len(RESULT_HEADERS) + 1):
            ws.cell(i, j).fill = fill
    return ws


def write_credit_note_sheet(wb, note: CreditNote, settings=None, when=None):
    settings = settings or CurrencySettings()
    ws = _replace_sheet(wb, sheet_name("Credit", when))
    _write_summary(ws, "Credit Note", [
        ("Lines Credited", note.totals.line_count),
        ("Total Credit", format_currency(note.totals.total_credit, settings)),
    ])
    values = [
        [r.sku, r.name, r.qty, r.original_price, r.line_total, r.credit_amount]
        for r in note.credit_rows
    ]
    _write_table(ws, 5, CREDIT_HEADERS, values, money_cols=(4, 5, 6),
                 number_format=settings.excel_number_format)
    return ws


def write_invoice_sheet(wb, invoice: CorrectedInvoice, settings=None, when=None):
    settings = settings or CurrencySettings()
    ws = _replace_sheet(wb, sheet_name("Reinvoice", when))
    _write_summary(ws, "Corrected Invoice", [
        ("Lines Invoiced", invoice.totals.line_count),
        ("Total Invoice", format_currency(invoice.totals.total_invoice, settings)),
    ])
    values = [
        [r.sku, r.name, r.qty, r.corrected_price, r.line_total, "Yes" if r.price_changed else ""]
        for r in invoice.invoice_rows
    ]
    _write_table(ws, 5, INVOICE_HEADERS, values, money_cols=(4, 5),
                 number_format=settings.excel_number_format)
    return ws


def write_staging_sheet(wb, staging: StagingResult, settings=None):
    settings = settings or CurrencySettings()
    md = staging.metadata
    ws = _replace_sheet(wb, _INVALID_TITLE.sub("-", f"Staging_{md.po_ref}")[:31])
    _write_summary(ws, "PO Staging Sheet", [
        ("PO Reference", md.po_ref),
        ("Customer", md.customer),
        ("Line Items", md.line_count),
        ("Total Value", format_currency(md.total_value, settings)),
        ("Warnings", md.warning_count),
        ("Extracted", md.extracted_at),
    ])
    if md.warning_count:
        ws.cell(6, 2).font = Font(bold=True, color=ALERT_FG)

    values = [
        [r.line_num, r.sku, r.name, r.qty, r.price, r.uom, r.line_total, r.delivery_date, r.status]
        for r in staging.rows
    ]
    _write_table(ws, 9, STAGING_HEADERS, values, money_cols=(5, 7),
                 number_format=settings.excel_number_format)
    return ws


def build_workbook(
    result, tolerance, settings=None, credit_note=None, invoice=None, staging=None, template=None, when=None
):
    """Write the result (and optional derived documents) into a workbook.

    ``template`` may be a path or an uploaded workbook; its sheets are kept and
    same-named output sheets are replaced.
    """
    if isinstance(template, (str, Path)):
        wb = load_workbook(template)
    elif isinstance(template, (bytes, bytearray)):
        wb = load_workbook(io.BytesIO(template))
    elif template is not None:
        template.seek(0)
        wb = load_workbook(io.BytesIO(template.read()))
    else:
        wb = Workbook()
        wb.remove(wb.active)

    write_results_sheet(wb, result, tolerance, settings, when=when)
    if credit_note is not None:
        write_credit_note_sheet(wb, credit_note, settings, when=when)
    if invoice is not None:
        write_invoice_sheet(wb, invoice, settings, when=when)
    if staging is not None:
        write_staging_sheet(wb, staging, settings)
    logger.info(f"Workbook sheets: {', '.join(wb.sheetnames)}")
    return wb


def workbook_bytes(wb) -> bytes:
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
