"""
PO vs ERP price reconciliation.

Every PO line with a SKU yields exactly one output line; every ERP line left
unmatched afterwards yields a "Not in PO" line. Lines are sorted so the
financially material problems come first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from .errors import ColumnResolutionError
from .models import (
    STATUS_ORDER,
    ColumnRoles,
    LocatedTable,
    ParsedTable,
    ReconciliationLine,
    ReconciliationResult,
    ReconciliationSummary,
    Status,
)
from .settings import DEFAULT_TOLERANCE
from .values import normalize_sku, parse_number, round0, round2, to_str

logger = logging.getLogger(__name__)


@dataclass
class ErpEntry:
    sku: str
    price: Optional[float]
    name: str
    qty: float
    matched: bool = False


@dataclass(frozen=True)
class Matched:
    sku: str
    entry: ErpEntry
    prefix: bool = False


@dataclass(frozen=True)
class Ambiguous:
    candidates: tuple[str, ...]


@dataclass(frozen=True)
class Unmatched:
    pass


MatchOutcome = Union[Matched, Ambiguous, Unmatched]


def _qty(row: dict, column) -> float:
    if not column:
        return 1
    return parse_number(row.get(column)) or 1


def build_erp_index(erp: ParsedTable, roles: ColumnRoles):
    """Index ERP rows by normalized SKU.

    A repeated SKU is recorded as a duplicate; the last row's price, name and
    qty win, the first row's SKU spelling is kept.
    """
    index: dict[str, ErpEntry] = {}
    duplicates: set[str] = set()
    for row in erp.rows:
        raw_sku = to_str(row.get(roles.sku))
        if not raw_sku:
            continue
        norm = normalize_sku(raw_sku)
        price = parse_number(row.get(roles.price))
        name = to_str(row.get(roles.name)) if roles.name else ""
        qty = _qty(row, roles.qty)
        entry = index.get(norm)
        if entry is None:
            index[norm] = ErpEntry(sku=raw_sku, price=price, name=name, qty=qty)
            continue
        duplicates.add(norm)
        entry.price, entry.name, entry.qty = price, name, qty
    return index, duplicates


def find_po_duplicates(po: ParsedTable, roles: ColumnRoles) -> set[str]:
    counts: dict[str, int] = {}
    for row in po.rows:
        raw_sku = to_str(row.get(roles.sku))
        if not raw_sku:
            continue
        norm = normalize_sku(raw_sku)
        counts[norm] = counts.get(norm, 0) + 1
    return {sku for sku, n in counts.items() if n > 1}


def find_prefix_matches(norm_sku: str, index: dict[str, ErpEntry]) -> list[str]:
    """ERP SKUs extending the PO core number, e.g. 1234 -> 1234V012."""
    return [k for k in index if k.startswith(norm_sku) and k != norm_sku]


def match_sku(norm_sku: str, index: dict[str, ErpEntry]) -> MatchOutcome:
    entry = index.get(norm_sku)
    if entry is not None:
        return Matched(norm_sku, entry)

    hits = find_prefix_matches(norm_sku, index)
    if len(hits) == 1:
        return Matched(hits[0], index[hits[0]], prefix=True)
    if len(hits) > 1:
        return Ambiguous(tuple(hits))
    return Unmatched()


def percent_diff(diff: float, erp_price: float) -> int:
    if erp_price == 0:
        return 100 if diff != 0 else 0
    return int(round0(diff / erp_price * 100))


def _check_roles(roles: ColumnRoles, side: str):
    missing = roles.missing()
    if missing:
        cols = " and ".join(m.upper() if m == "sku" else m.title() for m in missing)
        raise ColumnResolutionError(f"{side}: select the {cols} column before reconciling.", missing)


def reconcile(
    po: ParsedTable,
    po_roles: ColumnRoles,
    erp: ParsedTable,
    erp_roles: ColumnRoles,
    tolerance: float = DEFAULT_TOLERANCE,
) -> ReconciliationResult:
    _check_roles(po_roles, "PO")
    _check_roles(erp_roles, "ERP")
    if tolerance is None or tolerance < 0:
        raise ValueError(f"Tolerance must be a non-negative number, got {tolerance}")

    index, erp_dups = build_erp_index(erp, erp_roles)
    po_dups = find_po_duplicates(po, po_roles)

    lines: list[ReconciliationLine] = []
    matches = tolerances = exceptions = warnings = 0
    exposure = 0.0

    for row in po.rows:
        raw_sku = to_str(row.get(po_roles.sku))
        if not raw_sku:
            continue

        norm = normalize_sku(raw_sku)
        po_price = parse_number(row.get(po_roles.price))
        po_name = to_str(row.get(po_roles.name)) if po_roles.name else ""
        po_qty = _qty(row, po_roles.qty)
        dup = norm in po_dups or norm in erp_dups

        if po_price is None:
            warnings += 1
            lines.append(ReconciliationLine(
                status=Status.WARNING, sku=raw_sku, name=po_name,
                action="Non-numeric price — skipped", duplicate=dup, po_qty=po_qty,
            ))
            continue

        line_total = round2(po_price * po_qty)
        outcome = match_sku(norm, index)

        if isinstance(outcome, Ambiguous):
            warnings += 1
            listed = ", ".join(index[k].sku for k in outcome.candidates)
            lines.append(ReconciliationLine(
                status=Status.WARNING, sku=raw_sku, name=po_name,
                action=f"Multiple ERP matches: {listed}",
                po_price=po_price, duplicate=dup, po_qty=po_qty, line_total=line_total,
            ))
            continue

        if isinstance(outcome, Unmatched):
            exceptions += 1
            lines.append(ReconciliationLine(
                status=Status.NOT_IN_ERP, sku=raw_sku, name=po_name,
                action="Review — SKU not found in ERP",
                po_price=po_price, duplicate=dup, po_qty=po_qty, line_total=line_total,
            ))
            continue

        entry = outcome.entry
        entry.matched = True
        dup = dup or outcome.sku in erp_dups
        erp_sku = entry.sku if outcome.prefix else None
        name = entry.name or po_name

        if entry.price is None:
            warnings += 1
            lines.append(ReconciliationLine(
                status=Status.WARNING, sku=raw_sku, erp_sku=erp_sku, name=name,
                action="Non-numeric ERP price",
                po_price=po_price, duplicate=dup, po_qty=po_qty, erp_qty=entry.qty,
                line_total=line_total,
            ))
            continue

        diff = round2(po_price - entry.price)
        abs_diff = abs(diff)

        if abs_diff == 0:
            status, action = Status.MATCH, "OK"
            matches += 1
        elif abs_diff <= tolerance:
            status, action = Status.TOLERANCE, "OK — within tolerance"
            tolerances += 1
        else:
            status, action = Status.EXCEPTION, "Review pricing"
            exceptions += 1
            exposure = round2(exposure + abs_diff)

        if outcome.prefix and action == "OK":
            action = "OK (prefix match)"

        lines.append(ReconciliationLine(
            status=status, sku=raw_sku, erp_sku=erp_sku, name=name, action=action,
            erp_price=entry.price, po_price=po_price, diff=diff,
            pct_diff=percent_diff(diff, entry.price),
            duplicate=dup, po_qty=po_qty, erp_qty=entry.qty, line_total=line_total,
        ))

    # Not-in-PO lines are reported but not counted in `exceptions`
    for norm, entry in index.items():
        if entry.matched:
            continue
        lines.append(ReconciliationLine(
            status=Status.NOT_IN_PO, sku=entry.sku, name=entry.name,
            action="Review — SKU not in PO",
            erp_price=entry.price, duplicate=norm in erp_dups, erp_qty=entry.qty,
        ))

    lines.sort(key=lambda ln: (STATUS_ORDER[ln.status], -ln.abs_diff))

    summary = ReconciliationSummary(
        total=len(lines),
        matches=matches,
        tolerances=tolerances,
        exceptions=exceptions,
        warnings=warnings,
        exposure=round2(exposure),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    logger.info(
        f"Reconciled {summary.total} lines: {matches} match, {tolerances} tolerance, "
        f"{exceptions} exceptions, {warnings} warnings, exposure {summary.exposure:.2f}"
    )
    return ReconciliationResult(summary=summary, rows=tuple(lines))


def reconcile_located(po: LocatedTable, erp: LocatedTable, tolerance: float = DEFAULT_TOLERANCE):
    return reconcile(po.table, po.roles, erp.table, erp.roles, tolerance=tolerance)
