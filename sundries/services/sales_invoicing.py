# sundries/services/sales_invoicing.py
"""
Vendor invoices over sale items.

An invoice here is not a stored row: it is the set of sale items stamped
with the same invoice_number. Numbers are {vendor account ref}-{YYYYMMDD}
of the issue day.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from sundries.core.errors import NotFoundError, ValidationError
from sundries.models import CareHome, SaleItem, Vendor, VisitSheet, VisitSheetStatus
from sundries.services.audit_logger import log_audit
from sundries.services.billing_math import D, money2
from sundries.services.mailer import send_invoice_email
from sundries.utils.timezone import now_local
from sundries.services.pdfs.invoice_pdf import (
    SalesInvoiceLine,
    SalesInvoicePayload,
    render_sales_invoice_pdf,
)

logger = logging.getLogger(__name__)

PdfRenderer = Callable[[SalesInvoicePayload], bytes]
MailSender = Callable[..., None]


@dataclass
class SalesInvoiceResult:
    invoice_no: str
    item_count: int
    total: Decimal
    pdf: bytes


@dataclass
class SalesInvoiceSummary:
    invoice_number: str
    care_home_id: int
    vendor_id: int
    care_home_name: Optional[str]
    vendor_name: Optional[str]
    total: Decimal
    item_count: int
    issued_at: datetime
    status: str


def sales_invoice_number(account_ref: str, issued_on: date | datetime) -> str:
    """Deterministic per vendor per issue day; two runs on one day collide."""
    return f"{account_ref}-{issued_on.strftime('%Y%m%d')}"


def select_uninvoiced_items(
    db: Session,
    *,
    care_home_id: int,
    vendor_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[SaleItem]:
    """
    Uninvoiced sale items for a home + vendor. date_from/date_to are whole
    days, both inclusive.
    """
    q = (db.query(SaleItem).options(joinedload(SaleItem.carehq_resident)).filter(
        SaleItem.care_home_id == care_home_id,
        SaleItem.vendor_id == vendor_id,
        SaleItem.invoiced.is_(False),
    ))
    if date_from:
        q = q.filter(SaleItem.date >= datetime.combine(date_from, time.min))
    if date_to:
        q = q.filter(SaleItem.date < datetime.combine(date_to, time.min) +
                     timedelta(days=1))
    return q.order_by(SaleItem.date, SaleItem.id).all()


def _resident_name(item: SaleItem) -> str:
    r = item.carehq_resident
    if r is None:
        return "Resident"
    return r.full_name or r.room_number or "Resident"


def build_payload(vendor: Vendor, care_home: CareHome, invoice_no: str,
                  issued_at: datetime,
                  items: List[SaleItem]) -> SalesInvoicePayload:
    return SalesInvoicePayload(
        vendor_name=vendor.name,
        vendor_account_ref=vendor.account_ref,
        care_home_name=care_home.name,
        invoice_no=invoice_no,
        issued_at=issued_at,
        items=[
            SalesInvoiceLine(
                resident_name=_resident_name(x),
                description=x.description,
                price=D(x.price),
            ) for x in items
        ],
    )


def _load_home_and_vendor(db: Session, care_home_id: int, vendor_id: int):
    care_home = db.get(CareHome, care_home_id)
    vendor = db.get(Vendor, vendor_id)
    if not care_home or not vendor:
        raise NotFoundError("Care home or vendor not found")
    return care_home, vendor


def preview_sales_invoice(
    db: Session,
    *,
    care_home_id: int,
    vendor_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    issued_at: Optional[datetime] = None,
    renderer: PdfRenderer = render_sales_invoice_pdf,
) -> SalesInvoiceResult:
    """Render what invoicing would produce, without changing any state."""
    care_home, vendor = _load_home_and_vendor(db, care_home_id, vendor_id)
    items = select_uninvoiced_items(db,
                                    care_home_id=care_home_id,
                                    vendor_id=vendor_id,
                                    date_from=date_from,
                                    date_to=date_to)
    if not items:
        raise ValidationError("No items to invoice")

    issued_at = issued_at or now_local()
    invoice_no = sales_invoice_number(vendor.account_ref, issued_at)
    payload = build_payload(vendor, care_home, invoice_no, issued_at, items)
    return SalesInvoiceResult(invoice_no=invoice_no,
                              item_count=len(items),
                              total=payload.total,
                              pdf=renderer(payload))


def invoice_sale_items(
    db: Session,
    *,
    care_home_id: int,
    vendor_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    to_email: Optional[str] = None,
    issued_at: Optional[datetime] = None,
    user_id: Optional[int] = None,
    renderer: PdfRenderer = render_sales_invoice_pdf,
    mail_sender: MailSender = send_invoice_email,
) -> SalesInvoiceResult:
    """
    Render the PDF, email it when to_email is given, then stamp every
    selected item invoiced with one invoice number.

    The email goes out before the items are marked; a failure between the
    two leaves the items uninvoiced and a retry will bill them again.
    """
    care_home, vendor = _load_home_and_vendor(db, care_home_id, vendor_id)
    items = select_uninvoiced_items(db,
                                    care_home_id=care_home_id,
                                    vendor_id=vendor_id,
                                    date_from=date_from,
                                    date_to=date_to)
    if not items:
        raise ValidationError("No items to invoice")

    issued_at = issued_at or now_local()
    invoice_no = sales_invoice_number(vendor.account_ref, issued_at)
    payload = build_payload(vendor, care_home, invoice_no, issued_at, items)
    pdf = renderer(payload)

    if to_email:
        mail_sender(
            to=to_email,
            subject=f"Invoice {invoice_no}",
            html=f"<p>Invoice {invoice_no} attached.</p>",
            attachment_name=f"{invoice_no}.pdf",
            attachment_content=pdf,
        )

    ids = [x.id for x in items]
    try:
        (db.query(SaleItem).filter(SaleItem.id.in_(ids)).update(
            {
                SaleItem.invoiced: True,
                SaleItem.invoice_number: invoice_no
            },
            synchronize_session="fetch",
        ))
        log_audit(
            db,
            user_id=user_id,
            action="INVOICE",
            table_name="sale_items",
            record_id=invoice_no,
            new_values={
                "sale_item_ids": ids,
                "total": str(payload.total),
                "emailed_to": to_email,
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to mark sale items invoiced for %s", invoice_no)
        raise

    logger.info("Issued invoice %s: %d items, total %s", invoice_no, len(items),
                payload.total)
    return SalesInvoiceResult(invoice_no=invoice_no,
                              item_count=len(items),
                              total=payload.total,
                              pdf=pdf)


def list_sales_invoices(
    db: Session,
    *,
    care_home_id: Optional[int] = None,
    vendor_id: Optional[int] = None,
) -> List[SalesInvoiceSummary]:
    """
    Rebuild invoices from sale items grouped by invoice_number.

    Status comes from the visit sheet for the issue day when one still
    exists; otherwise "Draft".
    """
    q = (db.query(
        SaleItem.invoice_number,
        SaleItem.care_home_id,
        SaleItem.vendor_id,
        func.sum(SaleItem.price),
        func.count(SaleItem.id),
        func.max(SaleItem.date),
    ).filter(SaleItem.invoice_number.isnot(None)))
    if care_home_id:
        q = q.filter(SaleItem.care_home_id == care_home_id)
    if vendor_id:
        q = q.filter(SaleItem.vendor_id == vendor_id)
    rows = q.group_by(SaleItem.invoice_number, SaleItem.care_home_id,
                      SaleItem.vendor_id).all()

    out: List[SalesInvoiceSummary] = []
    for number, home_id, v_id, total, count, issued_at in rows:
        if isinstance(issued_at, str):
            # SQLite returns MAX(datetime) as text
            issued_at = datetime.fromisoformat(issued_at)
        home = db.get(CareHome, home_id)
        vendor = db.get(Vendor, v_id)
        sheet = (db.query(VisitSheet).filter(
            VisitSheet.care_home_id == home_id,
            VisitSheet.vendor_id == v_id,
            VisitSheet.visit_date == issued_at.date(),
        ).first())
        out.append(
            SalesInvoiceSummary(
                invoice_number=number,
                care_home_id=home_id,
                vendor_id=v_id,
                care_home_name=home.name if home else None,
                vendor_name=vendor.name if vendor else None,
                total=money2(total),
                item_count=int(count),
                issued_at=issued_at,
                status=sheet.status if sheet else VisitSheetStatus.DRAFT.value,
            ))

    out.sort(key=lambda x: x.issued_at, reverse=True)
    return out


def render_invoice_by_number(db: Session, invoice_number: str,
                             renderer: PdfRenderer = render_sales_invoice_pdf
                             ) -> bytes:
    items = (db.query(SaleItem).options(joinedload(
        SaleItem.carehq_resident)).filter(
            SaleItem.invoice_number == invoice_number).order_by(
                SaleItem.date, SaleItem.id).all())
    if not items:
        raise NotFoundError("Invoice not found")

    care_home, vendor = _load_home_and_vendor(db, items[0].care_home_id,
                                              items[0].vendor_id)
    issued_at = max(x.date for x in items)
    return renderer(build_payload(vendor, care_home, invoice_number, issued_at, items))
