from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sundries.api.deps import current_context, get_db
from sundries.api.response import pdf_response
from sundries.core.errors import NotFoundError
from sundries.models import SaleItem
from sundries.schemas.sales import (
    BulkSalesIn,
    BulkSalesOut,
    SaleItemIn,
    SaleItemOut,
    SalesInvoiceIn,
    SalesInvoiceOut,
    SalesInvoiceSummaryOut,
)
from sundries.services.access import UserContext, require_home_access
from sundries.services.reconciliation import Selection, reconcile_visit
from sundries.services.sale_items import (
    create_sale_item,
    delete_sale_item,
    get_sale_item,
    list_sale_items,
)
from sundries.services.sales_invoicing import (
    invoice_sale_items,
    list_sales_invoices,
    preview_sales_invoice,
    render_invoice_by_number,
)

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.get("", response_model=List[SaleItemOut])
def list_sales(
        care_home_id: int = Query(..., gt=0),
        vendor_id: Optional[int] = Query(None, gt=0),
        invoiced: Optional[bool] = None,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, care_home_id)
    return list_sale_items(db,
                           care_home_id=care_home_id,
                           vendor_id=vendor_id,
                           invoiced=invoiced)


@router.post("", response_model=SaleItemOut)
def create_sale(
        body: SaleItemIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, body.care_home_id)
    return create_sale_item(db, **body.model_dump())


@router.delete("/{item_id}", response_model=SaleItemOut)
def delete_sale(
        item_id: int,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    item = get_sale_item(db, item_id)
    require_home_access(ctx, item.care_home_id)
    out = SaleItemOut.model_validate(item)
    delete_sale_item(db, item)
    return out


@router.post("/bulk", response_model=BulkSalesOut)
def bulk_reconcile(
        body: BulkSalesIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, body.care_home_id)
    result = reconcile_visit(
        db,
        care_home_id=body.care_home_id,
        vendor_id=body.vendor_id,
        day=body.date,
        selections=[
            Selection(resident_consent_id=x.resident_consent_id,
                      price_item_id=x.price_item_id) for x in body.items
        ],
        scope_resident_consent_ids=body.resident_consent_ids,
        user_id=ctx.user.id,
    )
    return BulkSalesOut(created=result.created, deleted=result.deleted)


@router.post("/invoice", response_model=SalesInvoiceOut)
def invoice_sales(
        body: SalesInvoiceIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, body.care_home_id)
    result = invoice_sale_items(
        db,
        care_home_id=body.care_home_id,
        vendor_id=body.vendor_id,
        date_from=body.date_from,
        date_to=body.date_to,
        to_email=body.to_email,
        user_id=ctx.user.id,
    )
    return SalesInvoiceOut(invoice_no=result.invoice_no,
                           item_count=result.item_count,
                           total=result.total,
                           emailed_to=body.to_email)


@router.post("/invoice/preview")
def invoice_preview(
        body: SalesInvoiceIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, body.care_home_id)
    result = preview_sales_invoice(db,
                                   care_home_id=body.care_home_id,
                                   vendor_id=body.vendor_id,
                                   date_from=body.date_from,
                                   date_to=body.date_to)
    return pdf_response(result.pdf, f"{result.invoice_no}-preview.pdf")


@router.get("/invoices", response_model=List[SalesInvoiceSummaryOut])
def grouped_invoices(
        care_home_id: Optional[int] = Query(None, gt=0),
        vendor_id: Optional[int] = Query(None, gt=0),
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    if care_home_id:
        require_home_access(ctx, care_home_id)
    rows = list_sales_invoices(db, care_home_id=care_home_id, vendor_id=vendor_id)
    if not ctx.is_admin:
        rows = [r for r in rows if r.care_home_id in ctx.care_home_ids]
    return rows


@router.get("/invoices/{invoice_number}/pdf")
def invoice_pdf(
        invoice_number: str,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    first = (db.query(SaleItem).filter(
        SaleItem.invoice_number == invoice_number).first())
    if not first:
        raise NotFoundError("Invoice not found")
    require_home_access(ctx, first.care_home_id)
    return pdf_response(render_invoice_by_number(db, invoice_number),
                        f"{invoice_number}.pdf")
