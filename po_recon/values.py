"""Cell-level helpers: spreadsheet cell to text, text to number, cent rounding."""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

import numpy as np
import pandas as pd

_CURRENCY_NOISE = re.compile(r"[$€£¥,\s]")
_PARENS = re.compile(r"^\((.+)\)$")

_CENT = Decimal("0.01")
_WHOLE = Decimal("1")


def to_str(x) -> str:
    if x is None:
        return ""
    if isinstance(x, (pd.Timestamp, datetime, date)):
        if pd.isna(x):
            return ""
        if isinstance(x, datetime) and (x.hour, x.minute, x.second) == (0, 0, 0):
            return x.date().isoformat()
        return x.isoformat()
    if isinstance(x, (float, np.floating)):
        if pd.isna(x):
            return ""
        if float(x).is_integer():
            return str(int(x))
        return repr(float(x))
    return str(x).strip()


def parse_number(value) -> float | None:
    """Parse a price/quantity cell. Returns None when the value is not numeric.

    Currency symbols, thousands separators and spaces are ignored and
    accounting negatives like ``(12.50)`` become ``-12.5``.
    """
    if value is None:
        return None
    if isinstance(value, (int, float, np.number)) and not isinstance(value, bool):
        num = float(value)
        return num if math.isfinite(num) else None

    s = _CURRENCY_NOISE.sub("", str(value))
    if not s:
        return None

    negative = False
    m = _PARENS.match(s)
    if m:
        s = m.group(1)
        negative = True

    try:
        num = float(s)
    except ValueError:
        return None
    if not math.isfinite(num):
        return None
    return -num if negative else num


def _quantize(x, step) -> float:
    # repr() keeps the shortest decimal form so 0.5099999999999998 rounds to 0.51
    q = Decimal(repr(float(x))).quantize(step, rounding=ROUND_HALF_UP)
    return float(q) + 0.0  # drop negative zero


def round2(x):
    if x is None:
        return None
    return _quantize(x, _CENT)


def round0(x):
    if x is None:
        return None
    return _quantize(x, _WHOLE)


def normalize_sku(sku) -> str:
    return to_str(sku).upper()
