"""
Defaults shared by ingestion, header location, reconciliation and display.

All values are constants; the Streamlit sidebar and CLI flags override the
per-run ones (tolerance, currency).
"""

DEFAULT_TOLERANCE = 0.02
DEFAULT_CURRENCY = "USD"

SUPPORTED_EXTENSIONS = (".csv", ".tsv", ".xlsx", ".xls", ".pdf")

SHORT_CELL_MAX_LEN = 40
KEYWORD_WEIGHT = 3
MIN_HEADER_CELLS = 2

PDF_LOOKAHEAD_LINES = 4

LINE_TOTAL_CHECK_TOLERANCE = 0.02
QTY_OUTLIER_FACTOR = 3
QTY_OUTLIER_MIN_ROWS = 5

EMAIL_TOP_EXCEPTIONS = 3
