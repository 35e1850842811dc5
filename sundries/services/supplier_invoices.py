from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from sundries.core.errors import NotFoundError, ValidationError
from sundries.models import (
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    Vendor,
    Visit,
    VisitItem,
    VisitStatus,
)
from sundries.services.audit_logger import log_audit
from sundries.services.billing_math import compute_totals
from sundries.utils.timezone import now_local

logger = logging.getLogger(__name__)


def slugify_supplier(name: Optional[str]) -> str:
    cleaned = re.sub(r"[^A-Z0-9]", "", (name or "").upper())[:6]
    return cleaned or "SUP"


def generate_invoice_number(db: Session, supplier_id: int,
                            period_start: datetime) -> str:
    """
    {PREFIX}-{YYYYMM}-{seq:04d}, seq = existing invoices with that prefix + 1.

    Count-then-insert: two callers for the same supplier/month that both
    count before either inserts get the same number. Nothing here detects
    that; callers must serialize generation per supplier and month.
    """
    supplier = db.get(Vendor, supplier_id)
    prefix = slugify_supplier(supplier.name) if supplier else "SUP"
    head = f"{prefix}-{period_start.strftime('%Y%m')}"

    count = (db.query(Invoice).filter(
        Invoice.supplier_id == supplier_id,
        Invoice.invoice_no.like(f"{head}%"),
    ).count())
    return f"{head}-{str(count + 1).zfill(4)}"


def _eligible_items(db: Session, *, supplier_id: int, care_home_id: int,
                    period_start: datetime,
                    period_end: datetime) -> Tuple[List[Visit], List[VisitItem]]:
    visits = (db.query(Visit).options(joinedload(Visit.items)).filter(
        Visit.supplier_id == supplier_id,
        Visit.care_home_id == care_home_id,
        Visit.visited_at >= period_start,
        Visit.visited_at <= period_end,
        Visit.status == VisitStatus.CONFIRMED.value,
    ).all())
    items = [i for v in visits for i in v.items if i.invoice_item is None]
    return visits, items


def generate_supplier_invoice(
    db: Session,
    *,
    supplier_id: int,
    care_home_id: int,
    period_start: datetime,
    period_end: datetime,
    user_id: Optional[int] = None,
) -> Invoice:
    """
    One Issued invoice over every not-yet-invoiced item of the supplier's
    Confirmed visits in [period_start, period_end]. Those visits become
    Invoiced and locked.
    """
    visits, items = _eligible_items(db,
                                    supplier_id=supplier_id,
                                    care_home_id=care_home_id,
                                    period_start=period_start,
                                    period_end=period_end)
    if not items:
        raise ValidationError("No visit items available for invoicing")

    totals = compute_totals(items)
    now = now_local()

    try:
        invoice_no = generate_invoice_number(db, supplier_id, period_start)
        inv = Invoice(
            supplier_id=supplier_id,
            care_home_id=care_home_id,
            invoice_no=invoice_no,
            period_start=period_start,
            period_end=period_end,
            issued_at=now,
            subtotal=totals["subtotal"],
            vat_total=totals["vat_total"],
            total=totals["total"],
            status=InvoiceStatus.ISSUED.value,
        )
        db.add(inv)
        db.flush()

        for it in items:
            db.add(
                InvoiceItem(
                    invoice_id=inv.id,
                    visit_item_id=it.id,
                    description=it.description,
                    qty=it.qty,
                    unit_price=it.unit_price,
                    vat_rate=it.vat_rate,
                    line_total=it.line_total,
                ))

        for v in visits:
            v.status = VisitStatus.INVOICED.value
            v.locked_at = now
            v.invoice_id = inv.id

        log_audit(
            db,
            user_id=user_id,
            action="INVOICE",
            table_name="invoices",
            record_id=invoice_no,
            new_values={
                "visit_ids": [v.id for v in visits],
                "total": str(totals["total"]),
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(inv)
    logger.info("Generated supplier invoice %s (%d items, total %s)",
                inv.invoice_no, len(items), inv.total)
    return inv


def list_supplier_invoices(
    db: Session,
    *,
    supplier_id: Optional[int] = None,
    care_home_id: Optional[int] = None,
    status: Optional[str] = None,
    issued_from: Optional[datetime] = None,
    issued_to: Optional[datetime] = None,
) -> List[Invoice]:
    q = db.query(Invoice).options(joinedload(Invoice.supplier),
                                  joinedload(Invoice.care_home))
    if supplier_id:
        q = q.filter(Invoice.supplier_id == supplier_id)
    if care_home_id:
        q = q.filter(Invoice.care_home_id == care_home_id)
    if status:
        q = q.filter(Invoice.status == status)
    if issued_from:
        q = q.filter(Invoice.issued_at >= issued_from)
    if issued_to:
        q = q.filter(Invoice.issued_at <= issued_to)
    return q.order_by(Invoice.issued_at.desc(), Invoice.id.desc()).all()


def get_supplier_invoice(db: Session, invoice_id: int) -> Invoice:
    inv = (db.query(Invoice).options(
        joinedload(Invoice.items),
        joinedload(Invoice.supplier),
        joinedload(Invoice.care_home),
    ).filter(Invoice.id == invoice_id).first())
    if not inv:
        raise NotFoundError("Invoice not found")
    return inv
