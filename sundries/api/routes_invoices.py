from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sundries.api.deps import current_context, get_db
from sundries.api.response import pdf_response
from sundries.models import InvoiceStatus
from sundries.schemas.supplier import InvoiceDetailOut, InvoiceGenerateIn, InvoiceOut
from sundries.services.access import UserContext, require_home_access
from sundries.services.pdfs.invoice_pdf import render_supplier_invoice_pdf
from sundries.services.supplier_invoices import (
    generate_supplier_invoice,
    get_supplier_invoice,
    list_supplier_invoices,
)

router = APIRouter(prefix="/invoices", tags=["Supplier Invoices"])


@router.post("/generate", response_model=InvoiceDetailOut)
def generate(
        body: InvoiceGenerateIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, body.care_home_id)
    inv = generate_supplier_invoice(db,
                                    supplier_id=body.supplier_id,
                                    care_home_id=body.care_home_id,
                                    period_start=body.period_start,
                                    period_end=body.period_end,
                                    user_id=ctx.user.id)
    return inv


@router.get("", response_model=List[InvoiceOut])
def invoices(
        supplier_id: Optional[int] = Query(None, gt=0),
        care_home_id: Optional[int] = Query(None, gt=0),
        status: Optional[InvoiceStatus] = None,
        issued_from: Optional[datetime] = Query(None, alias="from"),
        issued_to: Optional[datetime] = Query(None, alias="to"),
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    if care_home_id:
        require_home_access(ctx, care_home_id)
    rows = list_supplier_invoices(db,
                                  supplier_id=supplier_id,
                                  care_home_id=care_home_id,
                                  status=status.value if status else None,
                                  issued_from=issued_from,
                                  issued_to=issued_to)
    if not ctx.is_admin:
        rows = [r for r in rows if r.care_home_id in ctx.care_home_ids]
    return rows


@router.get("/{invoice_id}", response_model=InvoiceDetailOut)
def invoice_detail(
        invoice_id: int,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    inv = get_supplier_invoice(db, invoice_id)
    require_home_access(ctx, inv.care_home_id)
    return inv


@router.get("/{invoice_id}/pdf")
def invoice_pdf(
        invoice_id: int,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    inv = get_supplier_invoice(db, invoice_id)
    require_home_access(ctx, inv.care_home_id)
    return pdf_response(render_supplier_invoice_pdf(inv, inv.items),
                        f"{inv.invoice_no}.pdf")
