"""Workbook output: result sheet layout, derived sheets and templates."""

from __future__ import annotations

import io
from datetime import date

from openpyxl import Workbook, load_workbook

from conftest import make_table, run
from po_recon.capture import extract_po_data
from po_recon.documents import generate_corrected_invoice, generate_credit_note
from po_recon.formatting import CurrencySettings
from po_recon.writer import RESULT_HEADERS, build_workbook, sheet_name, workbook_bytes

WHEN = date(2025, 1, 31)


def test_sheet_name_uses_iso_date() -> None:
    assert sheet_name("Recon", WHEN) == "Recon_2025-01-31"


def test_results_sheet_layout(mixed_result) -> None:
    wb = build_workbook(mixed_result, 0.02, when=WHEN)
    assert wb.sheetnames == ["Recon_2025-01-31"]
    ws = wb["Recon_2025-01-31"]

    assert ws.cell(1, 1).value == "PO Reconciliation Summary"
    assert ws.cell(2, 2).value == 5
    assert ws.cell(5, 1).value == "Exceptions"
    assert ws.cell(5, 2).value == 2
    assert ws.cell(6, 2).value == "$0.51"
    assert ws.cell(7, 2).value == "$0.02"

    assert [ws.cell(10, j).value for j in range(1, len(RESULT_HEADERS) + 1)] == RESULT_HEADERS
    first = [ws.cell(11, j).value for j in range(1, 9)]
    assert first == ["Exception", "B2", "Gadget", 12.99, 13.5, 0.51, "4%", "Review pricing"]
    assert ws.cell(11, 1).fill.start_color.rgb.endswith("FFC7CE")
    assert ws.freeze_panes == "A11"


def test_prefix_and_duplicate_markers() -> None:
    po = make_table(["SKU", "Price"], ["11082", "21.99"])
    erp = make_table(["SKU", "Price"], ["11082V008", "21.99"], ["11082v008", "21.99"])
    ws = build_workbook(run(po, erp), 0.02, when=WHEN)["Recon_2025-01-31"]
    assert ws.cell(11, 1).value == "Match (DUP)"
    assert ws.cell(11, 2).value == "11082 → 11082V008"


def test_currency_number_format(mixed_result) -> None:
    ws = build_workbook(mixed_result, 0.02, CurrencySettings("GBP"), when=WHEN)["Recon_2025-01-31"]
    assert ws.cell(11, 4).number_format == '"£"#,##0.00;-"£"#,##0.00'
    assert ws.cell(6, 2).value == "£0.51"


def test_derived_document_sheets(mixed_result) -> None:
    staging = extract_po_data(make_table(["PO Number", "SKU", "Qty", "Price"], ["PO/9", "A1", "1", "2"]))
    wb = build_workbook(
        mixed_result,
        0.02,
        credit_note=generate_credit_note(mixed_result),
        invoice=generate_corrected_invoice(mixed_result),
        staging=staging,
        when=WHEN,
    )
    assert wb.sheetnames == ["Recon_2025-01-31", "Credit_2025-01-31", "Reinvoice_2025-01-31", "Staging_PO-9"]
    credit = wb["Credit_2025-01-31"]
    assert credit.cell(3, 2).value == "-$78.50"
    assert credit.cell(6, 1).value == "B2"
    assert wb["Reinvoice_2025-01-31"].cell(6, 6).value == "Yes"
    assert wb["Staging_PO-9"].cell(10, 2).value == "A1"


def test_template_sheets_are_kept_and_same_day_sheet_replaced(mixed_result) -> None:
    template = Workbook()
    template.active.title = "Notes"
    template["Notes"]["A1"] = "keep me"
    old = template.create_sheet("Recon_2025-01-31")
    old["A1"] = "stale"

    wb = build_workbook(mixed_result, 0.02, template=workbook_bytes(template), when=WHEN)
    assert wb.sheetnames == ["Notes", "Recon_2025-01-31"]
    assert wb["Notes"]["A1"].value == "keep me"
    assert wb["Recon_2025-01-31"]["A1"].value == "PO Reconciliation Summary"


def test_workbook_bytes_can_be_reopened(mixed_result) -> None:
    data = workbook_bytes(build_workbook(mixed_result, 0.02, when=WHEN))
    reopened = load_workbook(io.BytesIO(data))
    assert reopened.sheetnames == ["Recon_2025-01-31"]
