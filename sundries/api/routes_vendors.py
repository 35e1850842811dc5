from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sundries.api.deps import admin_context, current_context, get_db
from sundries.core.errors import NotFoundError, ValidationError
from sundries.models import PriceItem, ServiceType, Vendor
from sundries.schemas.reference import (
    PriceItemIn,
    PriceItemOut,
    PriceItemPatch,
    VendorIn,
    VendorOut,
    VendorPatch,
)
from sundries.services.access import UserContext
from sundries.services.audit_logger import log_audit
from sundries.services.billing_math import money2

router = APIRouter(tags=["Vendors"])


def _flush_vendor(db: Session) -> None:
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Account reference already exists")


# ---------- Vendors ----------
@router.get("/vendors", response_model=List[VendorOut])
def vendors(
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    return db.query(Vendor).order_by(Vendor.name).all()


@router.post("/vendors", response_model=VendorOut)
def create_vendor(
        body: VendorIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(admin_context),
):
    data = body.model_dump()
    data["service_type"] = body.service_type.value
    v = Vendor(**data)
    db.add(v)
    _flush_vendor(db)
    log_audit(db,
              user_id=ctx.user.id,
              action="CREATE",
              table_name="vendors",
              record_id=v.id,
              new_values={"account_ref": v.account_ref, "name": v.name})
    db.commit()
    db.refresh(v)
    return v


@router.patch("/vendors/{vendor_id}", response_model=VendorOut)
def update_vendor(
        vendor_id: int,
        body: VendorPatch,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(admin_context),
):
    v = db.get(Vendor, vendor_id)
    if not v:
        raise NotFoundError("Vendor not found")
    changes = body.model_dump(exclude_unset=True)
    if changes.get("service_type") is not None:
        changes["service_type"] = ServiceType(changes["service_type"]).value
    for k, val in changes.items():
        setattr(v, k, val)
    _flush_vendor(db)
    db.commit()
    db.refresh(v)
    return v


# ---------- Suppliers (vendors seen by the visit workflow) ----------
@router.get("/suppliers", response_model=List[VendorOut])
def suppliers(
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    return (db.query(Vendor).filter(Vendor.is_active.is_(True)).order_by(
        Vendor.name).all())


# ---------- Price items ----------
@router.get("/price-items", response_model=List[PriceItemOut])
def price_items(
        vendor_id: Optional[int] = Query(None, gt=0),
        active_only: bool = False,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    q = db.query(PriceItem)
    if vendor_id:
        q = q.filter(PriceItem.vendor_id == vendor_id)
    if active_only:
        q = q.filter(PriceItem.is_active.is_(True))
    return q.order_by(PriceItem.vendor_id, PriceItem.description,
                      PriceItem.valid_from).all()


@router.post("/price-items", response_model=PriceItemOut)
def create_price_item(
        body: PriceItemIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(admin_context),
):
    if not db.get(Vendor, body.vendor_id):
        raise NotFoundError("Vendor not found")
    item = PriceItem(
        vendor_id=body.vendor_id,
        description=body.description,
        price=money2(body.price),
        valid_from=body.valid_from,
        is_active=body.is_active,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@router.patch("/price-items/{item_id}", response_model=PriceItemOut)
def update_price_item(
        item_id: int,
        body: PriceItemPatch,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(admin_context),
):
    item = db.get(PriceItem, item_id)
    if not item:
        raise NotFoundError("Price item not found")
    changes = body.model_dump(exclude_unset=True)
    if changes.get("price") is not None:
        changes["price"] = money2(changes["price"])
    old = {"price": str(item.price), "is_active": item.is_active}
    for k, v in changes.items():
        setattr(item, k, v)
    log_audit(db,
              user_id=ctx.user.id,
              action="UPDATE",
              table_name="price_items",
              record_id=item.id,
              old_values=old,
              new_values={k: str(v) for k, v in changes.items()})
    db.commit()
    db.refresh(item)
    return item
