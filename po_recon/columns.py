from __future__ import annotations

from .models import ColumnRoles

SKU_ALIASES = [
    "sku",
    "item number",
    "product code",
    "part number",
    "item no",
    "item #",
    "material",
    "product id",
    "article",
    "upc",
]

PRICE_ALIASES = [
    "price",
    "unit price",
    "cost",
    "amount",
    "unit cost",
    "net price",
    "each",
    "rate",
    "ext price",
]

NAME_ALIASES = [
    "product name",
    "description",
    "item description",
    "product description",
    "name",
    "item name",
    "product",
]

QTY_ALIASES = [
    "qty",
    "quantity",
    "order qty",
    "qty ordered",
    "ordered",
    "unit qty",
    "units",
]

DATE_ALIASES = [
    "delivery date",
    "required date",
    "ship date",
    "due date",
    "date required",
    "req date",
    "del date",
    "arrival date",
    "need by",
    "need date",
    "eta",
]

PO_REF_ALIASES = [
    "po number",
    "po no",
    "po ref",
    "po reference",
    "purchase order",
    "order number",
    "order no",
    "order ref",
    "customer po",
    "po#",
    "order #",
]

CUSTOMER_ALIASES = [
    "customer",
    "customer name",
    "sold to",
    "bill to",
    "buyer",
    "account",
    "account name",
    "company",
    "ship to name",
]

UOM_ALIASES = [
    "uom",
    "unit of measure",
    "unit",
    "pack size",
    "pack",
    "case size",
    "inner",
    "outer",
]

LINE_TOTAL_ALIASES = [
    "line total",
    "total",
    "ext amount",
    "extended",
    "line amount",
    "net amount",
    "value",
    "ext price",
]

BASE_ALIASES = {
    "sku": SKU_ALIASES,
    "price": PRICE_ALIASES,
    "name": NAME_ALIASES,
    "qty": QTY_ALIASES,
}

EXTENDED_ALIASES = {
    "delivery_date": DATE_ALIASES,
    "po_ref": PO_REF_ALIASES,
    "customer": CUSTOMER_ALIASES,
    "uom": UOM_ALIASES,
    "line_total": LINE_TOTAL_ALIASES,
}

# "a" or "no" would otherwise be found inside almost every alias
MIN_REVERSE_MATCH_LEN = 3


def _normalize_header(h) -> str:
    return str(h or "").strip().lower()


def match_exact(headers: list[str], aliases: list[str]):
    normalized = [_normalize_header(h) for h in headers]
    for alias in aliases:
        if alias in normalized:
            return headers[normalized.index(alias)]
    return None


def match_header_contains_alias(headers: list[str], aliases: list[str]):
    normalized = [_normalize_header(h) for h in headers]
    for alias in aliases:
        for i, h in enumerate(normalized):
            if alias in h:
                return headers[i]
    return None


def match_alias_contains_header(headers: list[str], aliases: list[str]):
    normalized = [_normalize_header(h) for h in headers]
    for alias in aliases:
        for i, h in enumerate(normalized):
            if len(h) >= MIN_REVERSE_MATCH_LEN and h in alias:
                return headers[i]
    return None


MATCH_PASSES = (match_exact, match_header_contains_alias, match_alias_contains_header)


def find_column(headers: list[str], aliases: list[str]):
    """Return the header for a role, or None.

    Passes run in order and stop at the first hit; within a pass the earliest
    alias wins, then the earliest header.
    """
    for match in MATCH_PASSES:
        hit = match(headers, aliases)
        if hit is not None:
            return hit
    return None


def detect_columns(headers: list[str]) -> ColumnRoles:
    return ColumnRoles(**{role: find_column(headers, aliases) for role, aliases in BASE_ALIASES.items()})


def detect_all_columns(headers: list[str]) -> ColumnRoles:
    """Base roles plus delivery date, PO reference, customer, UOM and line total.

    Extended roles only look at headers the base roles left unclaimed, so
    "Price" is never also taken as the line total.
    """
    roles = {role: find_column(headers, aliases) for role, aliases in BASE_ALIASES.items()}
    remaining = [h for h in headers if h not in roles.values()]
    roles.update({role: find_column(remaining, aliases) for role, aliases in EXTENDED_ALIASES.items()})
    return ColumnRoles(**roles)
