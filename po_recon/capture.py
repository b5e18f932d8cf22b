"""
PO capture: turn a located PO table into review-ready staging rows.

Uses the extended column roles (delivery date, PO reference, customer, UOM,
line total) and collects per-line warnings instead of failing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import numpy as np
from dateutil.parser import parse as dt_parse

from .columns import detect_all_columns
from .errors import ColumnResolutionError
from .models import ColumnRoles, ParsedTable
from .settings import LINE_TOTAL_CHECK_TOLERANCE, QTY_OUTLIER_FACTOR, QTY_OUTLIER_MIN_ROWS
from .values import parse_number, round2, to_str

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagingWarning:
    line: int
    field: str
    message: str


@dataclass(frozen=True)
class StagingRow:
    line_num: int
    sku: str
    name: str
    qty: float
    price: float
    uom: str
    line_total: float
    delivery_date: str
    status: str = "Pending"


@dataclass(frozen=True)
class StagingMetadata:
    line_count: int
    total_value: float
    po_ref: str
    customer: str
    detected_fields: list[str]
    warning_count: int
    extracted_at: str


@dataclass(frozen=True)
class StagingResult:
    rows: list[StagingRow]
    metadata: StagingMetadata
    warnings: list[StagingWarning] = field(default_factory=list)


def normalize_date(value) -> str:
    """ISO ``YYYY-MM-DD`` when the text parses as a date, else the text unchanged."""
    s = to_str(value)
    if not s:
        return ""
    try:
        return dt_parse(s).date().isoformat()
    except (ValueError, OverflowError):
        return s


def _cell(row, column) -> str:
    return to_str(row.get(column)) if column else ""


def _number(row, column, label, line_num, warnings):
    raw = _cell(row, column)
    if not raw:
        return None
    num = parse_number(raw)
    if num is None:
        warnings.append(StagingWarning(line_num, label, f'Non-numeric {label.lower()}: "{raw}"'))
    return num


def flag_quantity_outliers(rows: list[StagingRow]) -> list[StagingWarning]:
    positive = np.sort(np.array([r.qty for r in rows if r.qty > 0], dtype=float))
    if len(positive) < QTY_OUTLIER_MIN_ROWS:
        return []
    median = float(positive[len(positive) // 2])
    threshold = median * QTY_OUTLIER_FACTOR
    return [
        StagingWarning(r.line_num, "Qty", f"Unusually large quantity: {r.qty:g} (median: {median:g})")
        for r in rows
        if r.qty > threshold
    ]


def extract_po_data(parsed: ParsedTable, roles: ColumnRoles | None = None) -> StagingResult:
    cols = roles or detect_all_columns(parsed.headers)
    if not cols.sku:
        raise ColumnResolutionError(
            "Cannot find SKU column. Available headers: " + ", ".join(parsed.headers), ["sku"]
        )

    rows: list[StagingRow] = []
    warnings: list[StagingWarning] = []
    po_ref = None
    customer = None

    for line_num, raw in enumerate(parsed.rows, start=1):
        sku = _cell(raw, cols.sku)
        if not sku:
            warnings.append(StagingWarning(line_num, "SKU", "Empty SKU — row skipped"))
            continue

        price = _number(raw, cols.price, "Price", line_num, warnings)
        qty = _number(raw, cols.qty, "Qty", line_num, warnings)
        if qty is not None and qty <= 0:
            warnings.append(StagingWarning(line_num, "Qty", f"Zero or negative quantity: {qty:g}"))

        line_total = _number(raw, cols.line_total, "Line Total", line_num, warnings)
        if price is not None and qty is not None:
            expected = round2(price * qty)
            if line_total is None:
                line_total = expected
            elif abs(line_total - expected) > LINE_TOTAL_CHECK_TOLERANCE:
                warnings.append(StagingWarning(
                    line_num, "Line Total", f"Mismatch: {line_total:g} vs expected {expected:g} (price × qty)"
                ))

        if po_ref is None and _cell(raw, cols.po_ref):
            po_ref = _cell(raw, cols.po_ref)
        if customer is None and _cell(raw, cols.customer):
            customer = _cell(raw, cols.customer)

        rows.append(StagingRow(
            line_num=line_num,
            sku=sku,
            name=_cell(raw, cols.name),
            qty=qty if qty is not None else 1,
            price=price if price is not None else 0,
            uom=_cell(raw, cols.uom),
            line_total=line_total if line_total is not None else 0,
            delivery_date=normalize_date(_cell(raw, cols.delivery_date)) if cols.delivery_date else "",
        ))

    warnings.extend(flag_quantity_outliers(rows))

    metadata = StagingMetadata(
        line_count=len(rows),
        total_value=round2(sum(r.line_total for r in rows)),
        po_ref=po_ref or "Unknown",
        customer=customer or "Unknown",
        detected_fields=cols.detected_fields(),
        warning_count=len(warnings),
        extracted_at=datetime.now(timezone.utc).isoformat(),
    )
    logger.info(f"Captured {metadata.line_count} PO lines ({metadata.warning_count} warnings)")
    return StagingResult(rows=rows, metadata=metadata, warnings=warnings)
