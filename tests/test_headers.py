"""Header location across cover rows, fallbacks and multi-sheet workbooks."""

from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import Workbook

from po_recon.errors import HeaderNotFoundError
from po_recon.headers import (
    apply_column_overrides,
    load_grid,
    load_table,
    locate_header,
    make_unique,
    rank_candidates,
    score_row,
)
from po_recon.ingest import raw_table_from_grid

ORDER_FORM_HEADER = [
    "Item #", "Unit Qty", "Description", "Price", "Order Rule Check",
    "Order Rule", "Total Due", "Status", "Notes",
]


def _order_form_rows() -> list[list[str]]:
    cover = [
        ["ACME WHOLESALE SUPPLY CO."],
        ["Prepared by", "Jane Doe"],
        ["Please enter the unit price for every item ordered below this block"],
        [],
        ["Legend:", "Red means over budget"],
        ["Account", "ACC-1009"],
        ["Ship via", "Ground"],
        ["Terms", "Net 30"],
        ["Instructions"],
        ["1. Fill in quantities"],
        ["2. Check order rules"],
        [""],
        ["Contact", "orders@example.com"],
        ["Revision", "7"],
        ["Page", "1 of 1"],
    ]
    data = [
        ["11082", "12", "Widget", "21.99", "OK", "Min 6", "263.88", "Open", ""],
        ["11080", "6", "Gadget", "13.50", "OK", "Min 6", "81.00", "Open", "rush"],
    ]
    return cover + [ORDER_FORM_HEADER] + data


def test_header_row_found_below_cover_rows() -> None:
    located = load_grid(_order_form_rows())
    assert located.header_row == 15
    assert located.auto_resolved
    assert located.table.headers == ORDER_FORM_HEADER
    assert located.roles.sku == "Item #"
    assert located.roles.qty == "Unit Qty"
    assert [r["Item #"] for r in located.table.rows] == ["11082", "11080"]


def test_header_row_outranks_every_cover_row() -> None:
    ranked = rank_candidates(raw_table_from_grid(_order_form_rows()))
    assert ranked[0].row_index == 15
    assert ranked[0].keyword_hits == 9
    assert ranked[0].score == 9 * 3 + 9


def test_candidate_without_sku_and_price_is_skipped() -> None:
    rows = [
        ["Status", "Notes", "Total Due", "Unit"],
        ["SKU", "Price"],
        ["A1", "1.00"],
    ]
    located = load_grid(rows)
    assert located.header_row == 1
    assert located.auto_resolved


def test_candidate_without_data_rows_is_not_auto_resolved() -> None:
    located = load_grid([["Notes", "x"], ["SKU", "Price", "Name"]])
    assert not located.auto_resolved
    assert located.header_row == 1
    assert located.table.rows == []


def test_fallback_to_widest_row_for_manual_selection() -> None:
    located = load_grid([["Ref", "Value", "Desc"], ["A", "1", "x"]])
    assert not located.auto_resolved
    assert located.needs_manual_columns
    assert located.header_row == 0
    assert located.table.headers == ["Ref", "Value", "Desc"]

    chosen = apply_column_overrides(located, {"sku": "Ref", "price": "Value", "name": None})
    assert not chosen.needs_manual_columns
    assert chosen.roles.sku == "Ref"
    assert chosen.roles.name == "Desc"


def test_override_with_unknown_column_is_rejected() -> None:
    located = load_grid([["Ref", "Value"], ["A", "1"]])
    with pytest.raises(ValueError, match="Columns not in the table: Nope"):
        apply_column_overrides(located, {"sku": "Nope"})


def test_override_can_clear_a_detected_role() -> None:
    located = load_grid([["SKU", "Description", "Price"], ["A1", "Widget", "2.50"]])
    assert located.roles.name == "Description"

    kept = apply_column_overrides(located, {"sku": "SKU", "price": "Price", "name": None})
    assert kept.roles.name == "Description"

    cleared = apply_column_overrides(located, {"sku": "SKU", "price": "Price", "name": None}, clear_empty=True)
    assert cleared.roles.name is None
    assert (cleared.roles.sku, cleared.roles.price) == ("SKU", "Price")


def test_no_candidate_rows_raises() -> None:
    with pytest.raises(HeaderNotFoundError, match="at least two column labels"):
        load_grid([["only one cell"], ["another"]])


def test_no_tables_raises() -> None:
    with pytest.raises(HeaderNotFoundError):
        locate_header([])


def test_score_row_needs_two_filled_cells() -> None:
    assert score_row(0, ["SKU", "", "  "]) is None
    cand = score_row(3, ["", "SKU", "", "Price"])
    assert cand.positions == [1, 3]
    assert cand.headers == ["SKU", "Price"]


def test_data_rows_follow_header_positions_and_pad_short_rows() -> None:
    located = load_grid([["", "SKU", "", "Price", "Name"], ["", "A1", "", "2.50"], ["", "", "", "", ""]])
    assert located.table.rows == [{"SKU": "A1", "Price": "2.50", "Name": ""}]


def test_make_unique_suffixes_repeated_labels() -> None:
    assert make_unique(["Price", "SKU", "Price", "Price"]) == ["Price", "SKU", "Price (2)", "Price (3)"]


def test_make_unique_skips_suffixes_already_used_as_headers() -> None:
    assert make_unique(["Price", "Price (2)", "Price"]) == ["Price", "Price (2)", "Price (3)"]


def test_repeated_label_does_not_shadow_a_suffixed_header() -> None:
    located = load_grid([["SKU", "Price", "Price (2)", "Price"], ["A1", "1", "2", "3"]])
    assert located.table.headers == ["SKU", "Price", "Price (2)", "Price (3)"]
    assert located.table.rows == [{"SKU": "A1", "Price": "1", "Price (2)": "2", "Price (3)": "3"}]


def _save_workbook(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(row)
    wb.save(path)
    return path


def test_workbook_cover_sheet_is_skipped(tmp_path: Path) -> None:
    path = _save_workbook(
        tmp_path / "po.xlsx",
        {
            "Cover": [["Purchase Order", "PO-123"], ["Supplier", "Acme"]],
            "Lines": [["SKU", "Description", "Qty", "Price"], ["11082", "Widget", 12, 21.99]],
        },
    )
    located = load_table(path)
    assert located.source == "Lines"
    assert located.auto_resolved
    assert located.table.rows == [{"SKU": "11082", "Description": "Widget", "Qty": "12", "Price": "21.99"}]


def test_workbook_fallback_uses_widest_candidate_across_sheets(tmp_path: Path) -> None:
    path = _save_workbook(
        tmp_path / "erp.xlsx",
        {
            "First": [["Ref", "Value"], ["A", 1]],
            "Second": [["Ref", "Value", "Desc"], ["A", 1, "x"]],
        },
    )
    located = load_table(path)
    assert located.source == "Second"
    assert not located.auto_resolved
