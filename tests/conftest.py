"""Pytest configuration: local package imports and shared table fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

from po_recon.columns import detect_columns  # noqa: E402
from po_recon.engine import reconcile  # noqa: E402
from po_recon.models import ParsedTable  # noqa: E402


def make_table(headers: list[str], *rows: list[str]) -> ParsedTable:
    """Build a ParsedTable from positional rows."""
    return ParsedTable(headers=headers, rows=[dict(zip(headers, row)) for row in rows])


def run(po: ParsedTable, erp: ParsedTable, tolerance: float = 0.02):
    return reconcile(po, detect_columns(po.headers), erp, detect_columns(erp.headers), tolerance=tolerance)


@pytest.fixture
def mixed_result():
    """One line of each PO-side status plus one ERP-only SKU."""
    po = make_table(
        ["SKU", "Name", "Qty", "Price"],
        ["A1", "Widget", "2", "10.00"],
        ["B2", "Gadget", "1", "13.50"],
        ["C3", "Gizmo", "", "5.00"],
        ["E5", "Sprocket", "4", "10.00"],
    )
    erp = make_table(
        ["SKU", "Name", "Price"],
        ["A1", "Widget", "10.00"],
        ["B2", "Gadget", "12.99"],
        ["D4", "Bracket", "7.00"],
        ["E5", "Sprocket", "9.99"],
    )
    return run(po, erp)
