from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sundries.api.deps import current_context, get_db
from sundries.schemas.sales import VisitPrintOut, VisitSheetIn, VisitSheetOut
from sundries.services.access import UserContext, require_home_access
from sundries.services.visit_sheets import (
    build_print_payload,
    create_or_get_visit_sheet,
    get_visit_sheet,
    list_visit_sheets,
    sign_visit_sheet,
)

router = APIRouter(prefix="/visit-sheets", tags=["Visit Sheets"])


@router.get("", response_model=List[VisitSheetOut])
def list_sheets(
        care_home_id: Optional[int] = Query(None, gt=0),
        vendor_id: Optional[int] = Query(None, gt=0),
        status: Optional[str] = None,
        date_from: Optional[date] = Query(None, alias="from"),
        date_to: Optional[date] = Query(None, alias="to"),
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    if care_home_id:
        require_home_access(ctx, care_home_id)
    sheets = list_visit_sheets(db,
                               care_home_id=care_home_id,
                               vendor_id=vendor_id,
                               status=status,
                               date_from=date_from,
                               date_to=date_to)
    if not ctx.is_admin:
        sheets = [s for s in sheets if s.care_home_id in ctx.care_home_ids]
    return sheets


@router.post("", response_model=VisitSheetOut)
def create_sheet(
        body: VisitSheetIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, body.care_home_id)
    return create_or_get_visit_sheet(db,
                                     care_home_id=body.care_home_id,
                                     vendor_id=body.vendor_id,
                                     visit_date=body.visit_date,
                                     created_by=ctx.user.upn or ctx.user.oid)


@router.get("/print", response_model=VisitPrintOut)
def print_sheet(
        care_home_id: int = Query(..., gt=0),
        vendor_id: int = Query(..., gt=0),
        visit_date: date = Query(..., alias="date"),
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, care_home_id)
    return build_print_payload(db,
                               care_home_id=care_home_id,
                               vendor_id=vendor_id,
                               visit_date=visit_date)


@router.get("/{sheet_id}", response_model=VisitSheetOut)
def get_sheet(
        sheet_id: int,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    sheet = get_visit_sheet(db, sheet_id)
    require_home_access(ctx, sheet.care_home_id)
    return sheet


@router.post("/{sheet_id}/sign", response_model=VisitSheetOut)
def sign_sheet(
        sheet_id: int,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, get_visit_sheet(db, sheet_id).care_home_id)
    return sign_visit_sheet(db, sheet_id)
