"""Display-only currency formatting. Reconciliation arithmetic never reads this."""

from __future__ import annotations

from dataclasses import dataclass

from .settings import DEFAULT_CURRENCY
from .values import parse_number, round2

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "AUD": "A$",
    "CAD": "C$",
    "NZD": "NZ$",
    "ZAR": "R",
}

MISSING = "—"


@dataclass(frozen=True)
class CurrencySettings:
    code: str = DEFAULT_CURRENCY

    def __post_init__(self):
        if self.code not in CURRENCY_SYMBOLS:
            raise ValueError(
                f"Unsupported currency: {self.code}. Choose one of {', '.join(CURRENCY_SYMBOLS)}."
            )

    @property
    def symbol(self) -> str:
        return CURRENCY_SYMBOLS[self.code]

    @property
    def excel_number_format(self) -> str:
        return f'"{self.symbol}"#,##0.00;-"{self.symbol}"#,##0.00'


def format_currency(value, settings: CurrencySettings | None = None) -> str:
    num = parse_number(value)
    if num is None:
        return MISSING
    settings = settings or CurrencySettings()
    num = round2(num)
    sign = "-" if num < 0 else ""
    return f"{sign}{settings.symbol}{abs(num):,.2f}"


def format_percent(value) -> str:
    return "" if value is None else f"{value}%"
