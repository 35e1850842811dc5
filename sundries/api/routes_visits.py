from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sundries.api.deps import current_context, get_db
from sundries.core.errors import NotFoundError
from sundries.models import VisitItem, VisitStatus
from sundries.schemas.supplier import (
    ClientListOut,
    VisitIn,
    VisitItemIn,
    VisitItemOut,
    VisitItemPatch,
    VisitOut,
)
from sundries.services.access import UserContext, require_home_access
from sundries.services.visits import (
    add_visit_item,
    confirm_visit,
    create_visit,
    get_visit,
    list_visits,
    patch_visit_item,
    provider_client_list,
)

router = APIRouter(tags=["Supplier Visits"])


@router.post("/visits", response_model=VisitOut)
def new_visit(
        body: VisitIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, body.care_home_id)
    return create_visit(db,
                        care_home_id=body.care_home_id,
                        supplier_id=body.supplier_id,
                        visited_at=body.visited_at,
                        notes=body.notes,
                        created_by=ctx.user.upn)


@router.get("/visits", response_model=List[VisitOut])
def visits(
        care_home_id: Optional[int] = Query(None, gt=0),
        supplier_id: Optional[int] = Query(None, gt=0),
        status: Optional[VisitStatus] = None,
        visited_from: Optional[datetime] = Query(None, alias="from"),
        visited_to: Optional[datetime] = Query(None, alias="to"),
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    if care_home_id:
        require_home_access(ctx, care_home_id)
    rows = list_visits(db,
                       care_home_id=care_home_id,
                       supplier_id=supplier_id,
                       status=status.value if status else None,
                       visited_from=visited_from,
                       visited_to=visited_to)
    if not ctx.is_admin:
        rows = [v for v in rows if v.care_home_id in ctx.care_home_ids]
    return rows


@router.post("/visits/{visit_id}/items", response_model=VisitItemOut)
def new_visit_item(
        visit_id: int,
        body: VisitItemIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, get_visit(db, visit_id).care_home_id)
    return add_visit_item(db, visit_id, **body.model_dump())


@router.patch("/visit-items/{item_id}", response_model=VisitItemOut)
def update_visit_item(
        item_id: int,
        body: VisitItemPatch,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    item = db.get(VisitItem, item_id)
    if not item:
        raise NotFoundError("Visit item not found")
    require_home_access(ctx, item.visit.care_home_id)
    return patch_visit_item(db, item_id, body.model_dump(exclude_unset=True))


@router.post("/visits/{visit_id}/confirm", response_model=VisitOut)
def confirm(
        visit_id: int,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, get_visit(db, visit_id).care_home_id)
    return confirm_visit(db, visit_id)


@router.get("/providers/{supplier_id}/client-list", response_model=ClientListOut)
def client_list(
        supplier_id: int,
        visit_id: Optional[int] = Query(None, gt=0),
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    return provider_client_list(db, supplier_id, visit_id=visit_id)
