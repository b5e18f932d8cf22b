"""Column role detection: exact, contains and reverse-contains passes."""

from __future__ import annotations

from po_recon.columns import (
    PRICE_ALIASES,
    SKU_ALIASES,
    detect_all_columns,
    detect_columns,
    find_column,
    match_alias_contains_header,
    match_exact,
    match_header_contains_alias,
)


def test_exact_pass_beats_substring_pass() -> None:
    """An exact header wins even when a longer header appears earlier."""
    assert find_column(["Unit Price Total", "Price"], PRICE_ALIASES) == "Price"


def test_alias_order_breaks_ties_within_a_pass() -> None:
    assert find_column(["Product Code", "SKU"], SKU_ALIASES) == "SKU"


def test_header_contains_alias() -> None:
    headers = ["Supplier SKU", "Cost (USD)"]
    assert match_exact(headers, SKU_ALIASES) is None
    assert match_header_contains_alias(headers, SKU_ALIASES) == "Supplier SKU"
    assert find_column(headers, PRICE_ALIASES) == "Cost (USD)"


def test_alias_contains_header() -> None:
    headers = ["Part", "Each"]
    assert match_header_contains_alias(headers, SKU_ALIASES) is None
    assert match_alias_contains_header(headers, SKU_ALIASES) == "Part"


def test_reverse_pass_ignores_very_short_headers() -> None:
    assert match_alias_contains_header(["No", "Price"], SKU_ALIASES) is None
    assert detect_columns(["No", "Price"]).sku is None


def test_detect_columns_on_supplier_order_form() -> None:
    headers = [
        "Item #", "Unit Qty", "Description", "Price", "Order Rule Check",
        "Order Rule", "Total Due", "Status", "Notes",
    ]
    roles = detect_columns(headers)
    assert roles.sku == "Item #"
    assert roles.price == "Price"
    assert roles.name == "Description"
    assert roles.qty == "Unit Qty"
    assert roles.is_complete
    assert roles.line_total is None


def test_detect_columns_is_deterministic() -> None:
    headers = ["Material", "Net Price", "Item Description", "Order Qty"]
    assert detect_columns(headers) == detect_columns(list(headers))


def test_detect_all_columns_adds_capture_roles() -> None:
    headers = ["PO Number", "Customer", "SKU", "Price", "Qty", "UOM", "Delivery Date", "Line Total"]
    roles = detect_all_columns(headers)
    assert roles.po_ref == "PO Number"
    assert roles.customer == "Customer"
    assert roles.uom == "UOM"
    assert roles.delivery_date == "Delivery Date"
    assert roles.line_total == "Line Total"
    assert roles.sku == "SKU"
    assert roles.qty == "Qty"


def test_missing_roles_are_listed() -> None:
    roles = detect_columns(["Ref", "Value"])
    assert not roles.is_complete
    assert roles.missing() == ["sku", "price"]
