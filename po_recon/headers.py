"""
Header location: find the row holding the real column labels.

Exports often carry cover pages, instructions and legends above the table, and
workbooks may hold a cover sheet before the data sheet. Every row with at least
two filled cells is scored (keyword hits among short cells, plus the number of
short cells); candidates are then tried best-first until one resolves both the
SKU and Price columns and has data beneath it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .columns import detect_columns
from .errors import HeaderNotFoundError
from .ingest import raw_table_from_grid, read_raw_tables
from .models import LocatedTable, ParsedTable, RawTable
from .settings import KEYWORD_WEIGHT, MIN_HEADER_CELLS, SHORT_CELL_MAX_LEN

logger = logging.getLogger(__name__)

HEADER_KEYWORDS = [
    "sku", "item", "product", "part", "material", "article", "upc", "ordered",
    "price", "cost", "amount", "rate", "each", "total",
    "qty", "quantity", "description", "name",
    "unit", "status", "notes", "rule", "due",
]


@dataclass(frozen=True)
class HeaderCandidate:
    row_index: int
    keyword_hits: int
    short_cells: int
    headers: list[str]
    positions: list[int]

    @property
    def score(self) -> int:
        return self.keyword_hits * KEYWORD_WEIGHT + self.short_cells


def looks_like_header(cell: str) -> bool:
    s = cell.strip().lower()
    if not s or len(s) > SHORT_CELL_MAX_LEN:
        return False
    return any(t in s for t in HEADER_KEYWORDS)


def score_row(row_index: int, row: list[str]):
    filled = [(i, c.strip()) for i, c in enumerate(row) if c and c.strip()]
    if len(filled) < MIN_HEADER_CELLS:
        return None

    short_cells = sum(1 for _, c in filled if len(c) <= SHORT_CELL_MAX_LEN)
    keyword_hits = sum(1 for _, c in filled if looks_like_header(c))
    return HeaderCandidate(
        row_index=row_index,
        keyword_hits=keyword_hits,
        short_cells=short_cells,
        headers=make_unique([c for _, c in filled]),
        positions=[i for i, _ in filled],
    )


def rank_candidates(raw: RawTable) -> list[HeaderCandidate]:
    candidates = [c for c in (score_row(i, row) for i, row in enumerate(raw.rows)) if c is not None]
    # sorted() is stable, so equal scores keep file order
    return sorted(candidates, key=lambda c: (-c.score, -c.short_cells))


def make_unique(labels: list[str]) -> list[str]:
    used: set[str] = set()
    out = []
    for label in labels:
        unique, n = label, 1
        # a suffixed label may already exist as a real header
        while unique in used:
            n += 1
            unique = f"{label} ({n})"
        used.add(unique)
        out.append(unique)
    return out


def build_table(raw: RawTable, candidate: HeaderCandidate) -> ParsedTable:
    rows = []
    for row in raw.rows[candidate.row_index + 1:]:
        values = [row[p] if p < len(row) else "" for p in candidate.positions]
        if not any(v.strip() for v in values):
            continue
        rows.append(dict(zip(candidate.headers, values)))
    return ParsedTable(headers=list(candidate.headers), rows=rows)


def _auto_resolve(raw: RawTable, candidates: list[HeaderCandidate], detector):
    for cand in candidates:
        roles = detector(cand.headers)
        if not roles.is_complete:
            logger.debug(f"[{raw.name}] row {cand.row_index}: score={cand.score}, SKU/Price unresolved")
            continue
        table = build_table(raw, cand)
        if not table.rows:
            logger.debug(f"[{raw.name}] row {cand.row_index}: score={cand.score}, no data rows below")
            continue
        return LocatedTable(
            table=table, roles=roles, source=raw.name, header_row=cand.row_index, auto_resolved=True
        )
    return None


def _widest(candidates: list[HeaderCandidate]) -> HeaderCandidate:
    return min(candidates, key=lambda c: (-len(c.headers), c.row_index))


def locate_header(tables, detector=detect_columns) -> LocatedTable:
    """Pick the header row (and sheet) across one or more RawTables.

    The first sheet whose candidates auto-resolve SKU and Price wins. Otherwise
    the widest candidate across all sheets is returned with
    ``auto_resolved=False`` so the caller can ask for the columns by hand.
    """
    if isinstance(tables, RawTable):
        tables = [tables]
    if not tables:
        raise HeaderNotFoundError("The workbook has no usable sheets.")

    fallbacks = []
    for raw in tables:
        candidates = rank_candidates(raw)
        if not candidates:
            logger.debug(f"[{raw.name}] no row with {MIN_HEADER_CELLS}+ filled cells")
            continue

        located = _auto_resolve(raw, candidates, detector)
        if located is not None:
            logger.info(
                f"[{raw.name}] header at row {located.header_row + 1}: "
                f"{len(located.table.headers)} columns, {len(located.table.rows)} data rows"
            )
            return located
        fallbacks.append((raw, _widest(candidates)))

    if not fallbacks:
        raise HeaderNotFoundError(
            "Could not find a header row. The file needs a row with at least two column labels."
        )

    raw, best = min(fallbacks, key=lambda f: -len(f[1].headers))
    table = build_table(raw, best)
    logger.warning(
        f"SKU/Price columns not detected; using row {best.row_index + 1} of '{raw.name}' "
        f"({len(table.headers)} columns) for manual column selection"
    )
    return LocatedTable(
        table=table,
        roles=detector(table.headers),
        source=raw.name,
        header_row=best.row_index,
        auto_resolved=False,
    )


def load_table(source, filename: str | None = None, detector=detect_columns) -> LocatedTable:
    """Ingest an uploaded file and locate its table."""
    return locate_header(read_raw_tables(source, filename), detector=detector)


def load_grid(values, name: str = "selection", detector=detect_columns) -> LocatedTable:
    """Locate the table inside an in-memory 2-D selection (no file decoding)."""
    return locate_header([raw_table_from_grid(values, name)], detector=detector)


def apply_column_overrides(located: LocatedTable, overrides, clear_empty: bool = False) -> LocatedTable:
    """Replace detected roles with a manual column selection.

    Empty selections keep the detected column unless ``clear_empty`` is set,
    in which case they unset the role.
    """
    overrides = dict(overrides or {})
    unknown = [v for v in overrides.values() if v and v not in located.table.headers]
    if unknown:
        raise ValueError(f"Columns not in the table: {', '.join(unknown)}")
    return LocatedTable(
        table=located.table,
        roles=located.roles.with_overrides(overrides, clear_empty=clear_empty),
        source=located.source,
        header_row=located.header_row,
        auto_resolved=located.auto_resolved,
    )
