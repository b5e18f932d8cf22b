import streamlit as st
import pandas as pd
from datetime import datetime

from po_recon.capture import extract_po_data
from po_recon.columns import detect_all_columns
from po_recon.documents import (
    build_mailto_link,
    generate_corrected_invoice,
    generate_credit_note,
    generate_email_draft,
)
from po_recon.engine import reconcile_located
from po_recon.errors import ReconError
from po_recon.formatting import CURRENCY_SYMBOLS, CurrencySettings, format_currency
from po_recon.headers import apply_column_overrides, load_table
from po_recon.models import Status
from po_recon.settings import DEFAULT_CURRENCY, DEFAULT_TOLERANCE
from po_recon.writer import build_workbook, workbook_bytes

st.set_page_config(page_title="PO Recon", layout="wide")

UPLOAD_TYPES = ["xlsx", "xls", "csv", "tsv", "pdf"]
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
NONE_OPTION = "(none)"


@st.cache_data(show_spinner=False)
def cached_load(data: bytes, filename: str):
    return load_table(data, filename)


def load_side(upload, label):
    try:
        return cached_load(upload.getvalue(), upload.name)
    except ReconError as e:
        st.error(f"{label}: {e}")
        st.stop()


def column_picker(located, label, key):
    """Selectboxes for SKU / Price / Name / Qty, preset from detection."""
    headers = located.table.headers
    options = [NONE_OPTION] + headers
    roles = located.roles

    def pick(role, title):
        current = getattr(roles, role)
        index = options.index(current) if current in options else 0
        choice = st.selectbox(title, options, index=index, key=f"{key}_{role}")
        return None if choice == NONE_OPTION else choice

    st.write(f"{label}: sheet '{located.source}', header row {located.header_row + 1}")
    if located.needs_manual_columns:
        st.warning(f"{label}: SKU/Price columns not detected. Pick them below.")
    c1, c2, c3, c4 = st.columns(4)
    with c1:
        sku = pick("sku", "SKU column")
    with c2:
        price = pick("price", "Price column")
    with c3:
        name = pick("name", "Name column")
    with c4:
        qty = pick("qty", "Qty column")
    return {"sku": sku, "price": price, "name": name, "qty": qty}


def summary_metrics(summary, settings):
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Line items", summary.total)
    c2.metric("Perfect matches", summary.matches)
    c3.metric("Within tolerance", summary.tolerances)
    c4.metric("Exceptions", summary.exceptions)
    c5.metric("Exposure", format_currency(summary.exposure, settings))
    if summary.warnings:
        st.caption(f"{summary.warnings} warning(s): see rows marked Warning.")


def results_frame(result, settings):
    df = result.to_frame()
    df["sku"] = [f"{s} → {e}" if e else s for s, e in zip(df["sku"], df["erp_sku"])]
    df["status"] = [f"{s} (DUP)" if d else s for s, d in zip(df["status"], df["duplicate"])]
    for col in ("erp_price", "po_price", "diff"):
        df[col] = df[col].map(lambda v: format_currency(v, settings))
    df["pct_diff"] = df["pct_diff"].map(lambda v: "" if pd.isna(v) else f"{int(v)}%")
    return df[["status", "sku", "name", "erp_price", "po_price", "diff", "pct_diff", "action"]]


st.title("PO vs ERP Price Reconciliation")

with st.sidebar:
    po_file = st.file_uploader("PO file", type=UPLOAD_TYPES)
    erp_file = st.file_uploader("ERP price list", type=UPLOAD_TYPES)
    template_file = st.file_uploader("Output workbook (optional)", type=["xlsx"])

    st.subheader("Settings")
    tolerance = st.number_input("Price tolerance", min_value=0.0, value=DEFAULT_TOLERANCE, step=0.01, format="%.2f")
    currencies = list(CURRENCY_SYMBOLS)
    currency = st.selectbox("Currency", currencies, index=currencies.index(DEFAULT_CURRENCY))
    include_staging = st.checkbox("Add PO staging sheet", value=False)

if not (po_file and erp_file):
    st.info("Upload a PO file and an ERP price list to start.")
    st.stop()

settings = CurrencySettings(currency)

with st.spinner("Reading files..."):
    po_located = load_side(po_file, "PO")
    erp_located = load_side(erp_file, "ERP")

st.subheader("Columns")
po_overrides = column_picker(po_located, "PO", "po")
erp_overrides = column_picker(erp_located, "ERP", "erp")

po_located = apply_column_overrides(po_located, po_overrides, clear_empty=True)
erp_located = apply_column_overrides(erp_located, erp_overrides, clear_empty=True)

with st.expander("Detected tables"):
    c1, c2 = st.columns(2)
    with c1:
        st.dataframe(po_located.table.to_frame().head(50), use_container_width=True)
    with c2:
        st.dataframe(erp_located.table.to_frame().head(50), use_container_width=True)

if po_located.needs_manual_columns or erp_located.needs_manual_columns:
    st.error("Select the SKU and Price columns for both files.")
    st.stop()

run_btn = st.button("Run reconciliation", type="primary", use_container_width=True)

if run_btn:
    try:
        with st.spinner("Reconciling..."):
            result = reconcile_located(po_located, erp_located, tolerance=float(tolerance))
    except ReconError as e:
        st.error(str(e))
        st.stop()

    st.subheader("Summary")
    summary_metrics(result.summary, settings)

    st.subheader("Results")
    st.dataframe(results_frame(result, settings), use_container_width=True, hide_index=True)

    credit_note = generate_credit_note(result)
    invoice = generate_corrected_invoice(result)

    c1, c2 = st.columns(2)
    with c1:
        st.write(f"Credit note: {format_currency(credit_note.totals.total_credit, settings)}")
        st.dataframe(pd.DataFrame([vars(r) for r in credit_note.credit_rows]), use_container_width=True)
    with c2:
        st.write(f"Corrected invoice: {format_currency(invoice.totals.total_invoice, settings)}")
        st.dataframe(pd.DataFrame([vars(r) for r in invoice.invoice_rows]), use_container_width=True)

    staging = None
    if include_staging:
        roles = detect_all_columns(po_located.table.headers).with_overrides(po_overrides, clear_empty=True)
        staging = extract_po_data(po_located.table, roles)
        st.subheader("PO staging")
        st.dataframe(pd.DataFrame([vars(r) for r in staging.rows]), use_container_width=True)
        if staging.warnings:
            st.dataframe(pd.DataFrame([vars(w) for w in staging.warnings]), use_container_width=True)

    with st.spinner("Writing output workbook..."):
        wb = build_workbook(
            result,
            float(tolerance),
            settings,
            credit_note=credit_note,
            invoice=invoice,
            staging=staging,
            template=template_file,
        )

    st.download_button(
        "Download recon output",
        data=workbook_bytes(wb),
        file_name=f"po_recon_{datetime.now().strftime('%Y%m%d_%H%M%S')}.xlsx",
        mime=XLSX_MIME,
        use_container_width=True,
    )

    st.subheader("Email draft")
    draft = generate_email_draft(result, po_file.name, settings)
    st.text_input("Subject", value=draft.subject)
    st.text_area("Body", value=draft.body, height=320)
    st.markdown(f"[Open in mail client]({build_mailto_link(draft)})")

    flagged = sum(1 for r in result.rows if r.status == Status.NOT_IN_PO)
    if flagged:
        st.caption(f"{flagged} ERP SKU(s) not on the PO are listed but not counted as exceptions.")
