"""
Documents derived from a reconciliation result.

Credit note: company policy is to reverse the whole PO at the prices that were
invoiced (the PO prices), whatever each line's status. Corrected re-invoice:
re-bill every line at the ERP price, falling back to the PO price.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, urlencode

from .formatting import CurrencySettings, format_currency
from .models import ReconciliationResult, Status
from .settings import EMAIL_TOP_EXCEPTIONS
from .values import round2

EXCEPTION_STATUSES = (Status.EXCEPTION, Status.NOT_IN_ERP, Status.NOT_IN_PO)

_PO_NUMBER = re.compile(r"PO[-_ ]?(\d+(?:-\d+)*)", re.IGNORECASE)


@dataclass(frozen=True)
class CreditLine:
    sku: str
    name: str
    qty: float
    original_price: float
    line_total: float
    credit_amount: float


@dataclass(frozen=True)
class CreditNoteTotals:
    line_count: int
    total_credit: float


@dataclass(frozen=True)
class CreditNote:
    credit_rows: tuple[CreditLine, ...]
    totals: CreditNoteTotals


@dataclass(frozen=True)
class InvoiceLine:
    sku: str
    name: str
    qty: float
    corrected_price: float
    line_total: float
    price_changed: bool


@dataclass(frozen=True)
class InvoiceTotals:
    line_count: int
    total_invoice: float


@dataclass(frozen=True)
class CorrectedInvoice:
    invoice_rows: tuple[InvoiceLine, ...]
    totals: InvoiceTotals


@dataclass(frozen=True)
class EmailDraft:
    subject: str
    body: str


def generate_credit_note(result: ReconciliationResult) -> CreditNote:
    rows = []
    total = 0.0
    for line in result.rows:
        if line.status == Status.NOT_IN_PO or line.po_price is None:
            continue
        qty = line.po_qty or 1
        line_total = round2(line.po_price * qty)
        credit = round2(-line_total)
        rows.append(CreditLine(line.sku, line.name or "", qty, line.po_price, line_total, credit))
        total = round2(total + credit)
    return CreditNote(tuple(rows), CreditNoteTotals(len(rows), total))


def generate_corrected_invoice(result: ReconciliationResult) -> CorrectedInvoice:
    rows = []
    total = 0.0
    for line in result.rows:
        if line.status == Status.NOT_IN_PO:
            continue
        if line.po_price is None and line.erp_price is None:
            continue
        qty = line.po_qty or 1
        price = line.erp_price if line.erp_price is not None else line.po_price
        changed = (
            line.erp_price is not None and line.po_price is not None and line.erp_price != line.po_price
        )
        line_total = round2(price * qty)
        rows.append(InvoiceLine(line.sku, line.name or "", qty, price, line_total, changed))
        total = round2(total + line_total)
    return CorrectedInvoice(tuple(rows), InvoiceTotals(len(rows), total))


def extract_po_number(filename) -> str:
    if not filename:
        return "Unknown"
    stem = Path(str(filename)).stem
    m = _PO_NUMBER.search(stem)
    if m:
        return f"PO-{m.group(1)}"
    return stem


def _exception_line(line, settings) -> str:
    if line.status == Status.NOT_IN_ERP:
        return f"  - SKU {line.sku}: Not found in ERP"
    if line.status == Status.NOT_IN_PO:
        return f"  - SKU {line.sku}: In ERP but not on PO"
    return (
        f"  - SKU {line.sku}: PO {format_currency(line.po_price, settings)} "
        f"vs ERP {format_currency(line.erp_price, settings)} "
        f"(diff: {format_currency(line.diff, settings)})"
    )


def generate_email_draft(result: ReconciliationResult, filename=None, settings: CurrencySettings | None = None):
    po_number = extract_po_number(filename)
    summary = result.summary
    flagged = [ln for ln in result.rows if ln.status in EXCEPTION_STATUSES]

    plural = "" if summary.exceptions == 1 else "s"
    subject = f"{po_number} — Reconciliation: {summary.exceptions} exception{plural} found"

    if summary.exceptions > 0:
        top = [_exception_line(ln, settings) for ln in flagged[:EMAIL_TOP_EXCEPTIONS]]
        details = "Top exceptions:\n" + "\n".join(top) + "\n"
        if len(flagged) > EMAIL_TOP_EXCEPTIONS:
            details += f"  ... and {len(flagged) - EMAIL_TOP_EXCEPTIONS} more\n"
    else:
        details = "All items matched within tolerance.\n"

    body = (
        "Hi Team,\n\n"
        f"PO reconciliation for {po_number} has been completed. Please see the summary below:\n\n"
        f"  Total line items:    {summary.total}\n"
        f"  Perfect matches:     {summary.matches}\n"
        f"  Within tolerance:    {summary.tolerances}\n"
        f"  Exceptions:          {summary.exceptions}\n"
        f"  Total exposure:      {format_currency(summary.exposure, settings)}\n\n"
        f"{details}"
        "Full reconciliation details are in the attached reconciliation workbook.\n\n"
        "Please review and advise on next steps.\n\n"
        "Best regards"
    )
    return EmailDraft(subject=subject, body=body)


def build_mailto_link(draft: EmailDraft) -> str:
    return "mailto:?" + urlencode({"subject": draft.subject, "body": draft.body}, quote_via=quote)
