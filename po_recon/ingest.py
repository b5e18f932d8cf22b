"""
Tabular ingestion: uploaded file -> one RawTable per CSV, sheet or PDF.

No header is assumed here; every cell comes back as trimmed text and the
Header Locator decides where the real table starts.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from pathlib import Path

import pandas as pd
import pdfplumber

from .errors import ParseError, UnsupportedFormatError
from .models import RawTable
from .settings import PDF_LOOKAHEAD_LINES, SUPPORTED_EXTENSIONS
from .values import to_str

logger = logging.getLogger(__name__)

PDF_DELIMITERS = (
    ("tab", re.compile(r"\t")),
    ("spaces", re.compile(r"\s{2,}")),
    ("pipe", re.compile(r"\|")),
)

PDF_REEXPORT_HINT = "Please export to Excel/CSV first."


def file_extension(filename: str) -> str:
    return Path(filename or "").suffix.lower()


def check_extension(filename: str) -> str:
    ext = file_extension(filename)
    if ext in SUPPORTED_EXTENSIONS:
        return ext
    shown = ext or "(none)"
    raise UnsupportedFormatError(f"Unsupported file type: {shown}. Please use .xlsx, .csv, or .pdf.")


def _read_bytes(source):
    if isinstance(source, (str, Path)):
        return Path(source).read_bytes()
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    # file-like, e.g. a Streamlit UploadedFile
    if hasattr(source, "seek"):
        source.seek(0)
    data = source.read()
    if isinstance(data, str):
        data = data.encode("utf-8")
    return data


def read_raw_tables(source, filename: str | None = None) -> list[RawTable]:
    """Read a path, bytes or file-like object into RawTables.

    The parser is chosen from the extension of ``filename`` (or of the path /
    the upload's ``name`` when ``filename`` is omitted).
    """
    if filename is None:
        if isinstance(source, (str, Path)):
            filename = Path(source).name
        else:
            filename = getattr(source, "name", "")
    ext = check_extension(filename)
    data = _read_bytes(source)
    stem = Path(filename).stem

    if ext in (".csv", ".tsv"):
        return [read_delimited(data, stem, delimiter="\t" if ext == ".tsv" else ",")]
    if ext in (".xlsx", ".xls"):
        return read_workbook(data)
    return [read_pdf(data, stem)]


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("File is not UTF-8, decoding as latin-1")
        return data.decode("latin-1")


def read_delimited(data, name: str, delimiter: str = ",") -> RawTable:
    text = data if isinstance(data, str) else _decode(data)
    rows: list[list[str]] = []
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    try:
        for record in reader:
            if not any(cell.strip() for cell in record):
                continue
            rows.append([cell.strip() for cell in record])
    except csv.Error as e:
        if not rows:
            raise ParseError("Could not parse CSV file. Check the file format.") from e
        logger.warning(f"CSV parse stopped at line {reader.line_num}: {e}; keeping {len(rows)} rows")

    if not rows:
        raise ParseError("CSV file is empty. It needs at least a header row and one data row.")
    return RawTable(name=name, rows=rows)


def read_workbook(data) -> list[RawTable]:
    try:
        xls = pd.ExcelFile(io.BytesIO(data))
    except Exception as e:
        raise ParseError(
            "Could not read Excel file. Check it's not open in another program or corrupted."
        ) from e

    if not xls.sheet_names:
        raise ParseError("Excel file has no sheets.")

    tables = []
    for sheet in xls.sheet_names:
        raw = pd.read_excel(xls, sheet_name=sheet, header=None, dtype=object)
        rows = [[to_str(v) for v in rec] for rec in raw.itertuples(index=False, name=None)]
        logger.debug(f"Sheet '{sheet}': {len(rows)} rows x {raw.shape[1]} cols")
        tables.append(RawTable(name=str(sheet), rows=rows))
    return tables


def raw_table_from_grid(values, name: str = "selection") -> RawTable:
    """Wrap a 2-D grid already in memory (e.g. a copied spreadsheet range)."""
    return RawTable(name=name, rows=[[to_str(v) for v in row] for row in values or []])


def extract_pdf_lines(data) -> list[str]:
    lines: list[str] = []
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page_num, page in enumerate(pdf.pages, 1):
                page_text = page.extract_text(layout=True) or ""
                page_lines = [ln.strip() for ln in page_text.split("\n")]
                page_lines = [ln for ln in page_lines if ln]
                logger.debug(f"PDF page {page_num}: {len(page_lines)} text lines")
                lines.extend(page_lines)
    except Exception as e:
        raise ParseError(f"Cannot parse this PDF. {PDF_REEXPORT_HINT}") from e
    return lines


def _split(line: str, pattern) -> list[str]:
    return [c.strip() for c in pattern.split(line)]


def _filled(cells: list[str]) -> int:
    return sum(1 for c in cells if c)


def detect_pdf_delimiter(lines: list[str]):
    """Return ``(label, pattern)`` for the first delimiter that gives a stable column count.

    The first line must split into at least two cells and one of the next
    lines must split into at least as many, allowing one missing trailing cell.
    """
    if not lines:
        return None
    for label, pattern in PDF_DELIMITERS:
        head = _filled(_split(lines[0], pattern))
        if head < 2:
            continue
        for line in lines[1:1 + PDF_LOOKAHEAD_LINES]:
            if _filled(_split(line, pattern)) >= head - 1:
                return label, pattern
    return None


def pdf_lines_to_raw_table(lines: list[str], name: str) -> RawTable:
    if len(lines) < 2:
        raise ParseError(f"Cannot parse this PDF: not enough text. {PDF_REEXPORT_HINT}")

    found = detect_pdf_delimiter(lines)
    if found is None:
        raise ParseError(f"Cannot parse this PDF. No tabular data detected. {PDF_REEXPORT_HINT}")
    label, pattern = found
    logger.info(f"PDF '{name}': using {label} as column delimiter")

    # single-cell lines are prose around the table (titles, page footers)
    rows = [cells for cells in (_split(ln, pattern) for ln in lines) if _filled(cells) >= 2]
    return RawTable(name=name, rows=rows)


def read_pdf(data, name: str) -> RawTable:
    return pdf_lines_to_raw_table(extract_pdf_lines(data), name)
