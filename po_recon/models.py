"""Typed stages of a reconciliation run.

RawTable (cell grid, no header) -> ParsedTable (header -> text records)
-> ReconciliationLine (numbers resolved, classified).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Optional

import pandas as pd


@dataclass(frozen=True)
class RawTable:
    name: str
    rows: list[list[str]]


@dataclass(frozen=True)
class ParsedTable:
    headers: list[str]
    rows: list[dict[str, str]]

    def __post_init__(self):
        if len(self.headers) < 2:
            raise ValueError(f"A table needs at least 2 columns, got {len(self.headers)}")

    def column(self, header: str) -> list[str]:
        return [r.get(header, "") for r in self.rows]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=self.headers)


BASE_ROLES = ("sku", "price", "name", "qty")
EXTENDED_ROLES = ("delivery_date", "po_ref", "customer", "uom", "line_total")


@dataclass(frozen=True)
class ColumnRoles:
    sku: Optional[str] = None
    price: Optional[str] = None
    name: Optional[str] = None
    qty: Optional[str] = None
    delivery_date: Optional[str] = None
    po_ref: Optional[str] = None
    customer: Optional[str] = None
    uom: Optional[str] = None
    line_total: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.sku) and bool(self.price)

    def missing(self) -> list[str]:
        return [role for role in ("sku", "price") if not getattr(self, role)]

    def detected_fields(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name)]

    def with_overrides(self, overrides=None, clear_empty=False, **kwargs) -> "ColumnRoles":
        """Return a copy where every non-empty override replaces the detected header.

        With ``clear_empty`` an empty override unsets the role instead of keeping
        the detected header.
        """
        merged = dict(overrides or {})
        merged.update(kwargs)
        unknown = set(merged) - {f.name for f in fields(self)}
        if unknown:
            raise ValueError(f"Unknown column roles: {', '.join(sorted(unknown))}")
        if clear_empty:
            return replace(self, **{k: v or None for k, v in merged.items()})
        return replace(self, **{k: v for k, v in merged.items() if v})


@dataclass(frozen=True)
class LocatedTable:
    """Header-located table plus the column roles detected for it.

    ``auto_resolved`` is False when SKU/Price could not be detected; the table is
    the best guess and the caller is expected to pick the columns by hand.
    """

    table: ParsedTable
    roles: ColumnRoles
    source: str
    header_row: int
    auto_resolved: bool

    @property
    def needs_manual_columns(self) -> bool:
        return not self.roles.is_complete


class Status(str, Enum):
    EXCEPTION = "Exception"
    NOT_IN_ERP = "Not in ERP"
    NOT_IN_PO = "Not in PO"
    WARNING = "Warning"
    TOLERANCE = "Tolerance"
    MATCH = "Match"

    def __str__(self):
        return self.value


STATUS_ORDER = {
    Status.EXCEPTION: 0,
    Status.NOT_IN_ERP: 1,
    Status.NOT_IN_PO: 2,
    Status.WARNING: 3,
    Status.TOLERANCE: 4,
    Status.MATCH: 5,
}


@dataclass(frozen=True)
class ReconciliationLine:
    status: Status
    sku: str
    name: str
    action: str
    erp_sku: Optional[str] = None
    erp_price: Optional[float] = None
    po_price: Optional[float] = None
    diff: Optional[float] = None
    pct_diff: Optional[int] = None
    duplicate: bool = False
    po_qty: Optional[float] = None
    erp_qty: Optional[float] = None
    line_total: Optional[float] = None

    @property
    def abs_diff(self) -> float:
        return abs(self.diff) if self.diff is not None else 0.0

    def to_dict(self) -> dict:
        d = asdict(self)
        d["status"] = self.status.value
        return d


@dataclass(frozen=True)
class ReconciliationSummary:
    total: int
    matches: int
    tolerances: int
    exceptions: int
    warnings: int
    exposure: float
    timestamp: str


@dataclass(frozen=True)
class ReconciliationResult:
    summary: ReconciliationSummary
    rows: tuple[ReconciliationLine, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {"summary": asdict(self.summary), "rows": [r.to_dict() for r in self.rows]}

    def to_frame(self) -> pd.DataFrame:
        cols = [f.name for f in fields(ReconciliationLine)]
        return pd.DataFrame([r.to_dict() for r in self.rows], columns=cols)
