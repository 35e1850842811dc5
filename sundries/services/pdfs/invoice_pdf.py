# sundries/services/pdfs/invoice_pdf.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from reportlab.platypus import PageBreak, Paragraph, Spacer

from sundries.core.config import settings
from sundries.services.billing_math import D, money2
from sundries.services.pdfs.engine import (
    build_pdf,
    chunks,
    get_styles,
    kv_table,
    money,
    simple_table,
)


@dataclass
class SalesInvoiceLine:
    resident_name: str
    description: str
    price: Decimal


@dataclass
class SalesInvoicePayload:
    vendor_name: str
    vendor_account_ref: str
    care_home_name: str
    invoice_no: str
    issued_at: datetime
    items: List[SalesInvoiceLine] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return money2(sum((D(x.price) for x in self.items), Decimal("0")))


def _fmt_date(v: Optional[date]) -> str:
    if not v:
        return "—"
    return v.strftime("%d/%m/%Y")


def render_sales_invoice_pdf(payload: SalesInvoicePayload,
                             rows_per_page: Optional[int] = None) -> bytes:
    """
    Resident / description / price table, at most rows_per_page rows per
    page, grand total after the last chunk.
    """
    styles = get_styles()
    per_page = rows_per_page or settings.PDF_ROWS_PER_PAGE
    cur = settings.CURRENCY_SYMBOL

    rows = [[x.resident_name, x.description, money(x.price, cur)]
            for x in payload.items]
    pages = list(chunks(rows, per_page))

    story: List[Any] = []
    for i, page_rows in enumerate(pages):
        if i:
            story.append(PageBreak())
        story.append(Paragraph(settings.COMPANY_NAME, styles["Letterhead"]))
        story.append(
            kv_table([
                ["Invoice No", payload.invoice_no],
                ["Supplier", f"{payload.vendor_name} ({payload.vendor_account_ref})"],
                ["Care Home", payload.care_home_name],
                ["Issued", _fmt_date(payload.issued_at)],
                ["Page", f"{i + 1} of {len(pages)}"],
            ]))
        story.append(Spacer(1, 12))
        story.append(
            simple_table([["Resident", "Description", "Price"]] + list(page_rows),
                         col_widths=[170, 250, 70],
                         numeric_cols=(2, )))

    story.append(Spacer(1, 12))
    story.append(
        Paragraph(f"Total: {money(payload.total, cur)}", styles["H2"]))

    return build_pdf(title=f"Invoice {payload.invoice_no}", story=story)


def render_supplier_invoice_pdf(invoice: Any,
                                items: Sequence[Any],
                                rows_per_page: Optional[int] = None) -> bytes:
    styles = get_styles()
    per_page = rows_per_page or settings.PDF_ROWS_PER_PAGE
    cur = settings.CURRENCY_SYMBOL

    supplier = getattr(invoice, "supplier", None)
    care_home = getattr(invoice, "care_home", None)

    rows = [[
        x.description,
        f"{D(x.qty):g}",
        money(x.unit_price),
        money(x.vat_rate),
        money(x.line_total),
    ] for x in items]
    pages = list(chunks(rows, per_page))

    header = [
        ["Invoice No", invoice.invoice_no],
        ["Supplier", getattr(supplier, "name", None)],
        ["Care Home", getattr(care_home, "name", None)],
        ["Period",
         f"{_fmt_date(invoice.period_start)} – {_fmt_date(invoice.period_end)}"],
    ]
    if invoice.issued_at:
        header.append(["Issued", _fmt_date(invoice.issued_at)])

    story: List[Any] = []
    for i, page_rows in enumerate(pages):
        if i:
            story.append(PageBreak())
        story.append(Paragraph(settings.COMPANY_NAME, styles["Letterhead"]))
        story.append(kv_table(header + [["Page", f"{i + 1} of {len(pages)}"]]))
        story.append(Spacer(1, 12))
        story.append(
            simple_table(
                [["Description", "Qty", "Unit", "VAT%", "Line Total"]] +
                list(page_rows),
                col_widths=[220, 45, 70, 50, 80],
                numeric_cols=(1, 2, 3, 4),
            ))

    story.append(Spacer(1, 12))
    story.append(
        kv_table([
            ["Subtotal", money(invoice.subtotal, cur)],
            ["VAT", money(invoice.vat_total, cur)],
            ["Total", money(invoice.total, cur)],
        ]))

    return build_pdf(title=f"Invoice {invoice.invoice_no}", story=story)
