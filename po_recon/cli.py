"""
Command-line runner: reconcile a PO file against an ERP export and write the
result workbook (and optionally a JSON report).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from .capture import extract_po_data
from .columns import detect_all_columns
from .documents import generate_corrected_invoice, generate_credit_note, generate_email_draft
from .engine import reconcile_located
from .errors import ReconError
from .formatting import CURRENCY_SYMBOLS, CurrencySettings
from .headers import apply_column_overrides, load_table
from .settings import DEFAULT_CURRENCY, DEFAULT_TOLERANCE
from .writer import build_workbook

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = Path("output/reconciliation.xlsx")


def _parse_overrides(items) -> dict[str, str]:
    out = {}
    for item in items or []:
        role, sep, header = item.partition("=")
        if not sep or not role.strip() or not header.strip():
            raise ReconError(f"Column override must look like role=Header, got: {item}")
        out[role.strip()] = header.strip()
    return out


def _load_side(path: Path, overrides: dict[str, str], side: str):
    located = load_table(path)
    if overrides:
        located = apply_column_overrides(located, overrides)
    if located.needs_manual_columns:
        missing = ", ".join(located.roles.missing())
        raise ReconError(
            f"{side} file: could not detect the {missing} column(s) in sheet '{located.source}'. "
            f"Pass --{side.lower()}-column role=Header. Available headers: {', '.join(located.table.headers)}"
        )
    return located


def build_report(*, po_path: Path, erp_path: Path, tolerance: float, po_overrides=None, erp_overrides=None):
    po = _load_side(po_path, po_overrides or {}, "PO")
    erp = _load_side(erp_path, erp_overrides or {}, "ERP")
    result = reconcile_located(po, erp, tolerance=tolerance)
    return po, erp, result


def _staging(po):
    # keep manual SKU/Price picks, add the capture-only roles from detection
    detected = detect_all_columns(po.table.headers)
    manual = {k: v for k, v in vars(po.roles).items() if v}
    return extract_po_data(po.table, detected.with_overrides(manual))


def report_to_dict(po, erp, result, tolerance: float) -> dict[str, Any]:
    return {
        "metadata": {
            "tolerance": tolerance,
            "po": {"sheet": po.source, "header_row": po.header_row + 1, "columns": po.roles.detected_fields()},
            "erp": {"sheet": erp.source, "header_row": erp.header_row + 1, "columns": erp.roles.detected_fields()},
        },
        **result.to_dict(),
    }


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile a purchase order against an ERP price list.")
    parser.add_argument("po", type=Path, help="PO file (.xlsx, .xls, .csv, .tsv or .pdf)")
    parser.add_argument("erp", type=Path, help="ERP export (.xlsx, .xls, .csv, .tsv or .pdf)")
    parser.add_argument("--tolerance", type=float, default=DEFAULT_TOLERANCE, help="Max price difference treated as OK")
    parser.add_argument("--currency", choices=sorted(CURRENCY_SYMBOLS), default=DEFAULT_CURRENCY)
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT, help="Output workbook path")
    parser.add_argument("--json", type=Path, default=None, help="Also write the result as JSON")
    parser.add_argument("--po-column", action="append", metavar="ROLE=HEADER", help="Manual PO column, e.g. sku='Item #'")
    parser.add_argument("--erp-column", action="append", metavar="ROLE=HEADER", help="Manual ERP column")
    parser.add_argument("--documents", action="store_true", help="Add credit note and corrected invoice sheets")
    parser.add_argument("--staging", action="store_true", help="Add a PO staging sheet")
    parser.add_argument("--email", action="store_true", help="Print an email draft")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = CurrencySettings(args.currency)
        po, erp, result = build_report(
            po_path=args.po,
            erp_path=args.erp,
            tolerance=args.tolerance,
            po_overrides=_parse_overrides(args.po_column),
            erp_overrides=_parse_overrides(args.erp_column),
        )
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    wb = build_workbook(
        result,
        args.tolerance,
        settings,
        credit_note=generate_credit_note(result) if args.documents else None,
        invoice=generate_corrected_invoice(result) if args.documents else None,
        staging=_staging(po) if args.staging else None,
    )
    args.output.parent.mkdir(parents=True, exist_ok=True)
    wb.save(args.output)
    print(f"Wrote reconciliation workbook: {args.output}")

    if args.json:
        args.json.parent.mkdir(parents=True, exist_ok=True)
        payload = report_to_dict(po, erp, result, args.tolerance)
        args.json.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        print(f"Wrote reconciliation report: {args.json}")

    if args.email:
        draft = generate_email_draft(result, args.po.name, settings)
        print(f"\nSubject: {draft.subject}\n\n{draft.body}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
