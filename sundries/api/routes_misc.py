from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sundries.api.deps import current_context, get_db
from sundries.core.errors import ValidationError
from sundries.schemas.sales import (
    MiscExpenseIn,
    MiscExpenseOut,
    MiscResidentOut,
    NewspaperOrderIn,
    NewspaperOrderOut,
    NewspaperOut,
)
from sundries.services.access import UserContext, require_home_access
from sundries.services.misc_expenses import create_misc_expense, misc_expense_residents
from sundries.services.newspapers import (
    list_newspapers,
    list_orders,
    orders_for_day,
    upsert_order,
)

router = APIRouter(tags=["Misc Expenses & Newspapers"])


# ---------- Misc expenses ----------
@router.get("/misc-expenses/residents", response_model=List[MiscResidentOut])
def misc_residents(
        care_home_id: int = Query(..., gt=0),
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, care_home_id)
    return misc_expense_residents(db, care_home_id)


@router.post("/misc-expenses", response_model=MiscExpenseOut)
def new_misc_expense(
        body: MiscExpenseIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, body.care_home_id)
    return create_misc_expense(db,
                               care_home_id=body.care_home_id,
                               resident_consent_id=body.resident_consent_id,
                               expense_type=body.type,
                               day=body.date,
                               description=body.description,
                               amount=body.amount,
                               user_id=ctx.user.id)


# ---------- Newspapers ----------
@router.get("/newspapers", response_model=List[NewspaperOut])
def newspapers(
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    return list_newspapers(db)


@router.get("/newspaper-orders", response_model=List[NewspaperOrderOut])
def newspaper_orders(
        care_home_id: Optional[int] = Query(None, gt=0),
        carehq_resident_id: Optional[int] = Query(None, gt=0),
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    if care_home_id:
        require_home_access(ctx, care_home_id)
    elif not ctx.is_admin:
        raise ValidationError("care_home_id is required")
    return list_orders(db,
                       care_home_id=care_home_id,
                       carehq_resident_id=carehq_resident_id)


@router.get("/newspaper-orders/today", response_model=List[NewspaperOrderOut])
def newspaper_orders_today(
        care_home_id: Optional[int] = Query(None, gt=0),
        on_day: Optional[date] = Query(None, alias="date"),
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    if not care_home_id:
        raise ValidationError("care_home_id is required")
    require_home_access(ctx, care_home_id)
    return orders_for_day(db, care_home_id, on_day)


@router.post("/newspaper-orders", response_model=NewspaperOrderOut)
def save_newspaper_order(
        body: NewspaperOrderIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, body.care_home_id)
    return upsert_order(db, body.model_dump())
