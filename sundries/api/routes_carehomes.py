from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sundries.api.deps import admin_context, current_context, get_db
from sundries.core.errors import NotFoundError
from sundries.models import CareHome, Consent, Resident, Vendor
from sundries.schemas.reference import (
    CareHomeIn,
    CareHomeOut,
    ConsentIn,
    ConsentOut,
    ConsentPatch,
    ResidentIn,
    ResidentOut,
)
from sundries.services.access import UserContext, require_home_access

router = APIRouter(tags=["Care Homes"])


# ---------- Care homes ----------
@router.get("/care-homes", response_model=List[CareHomeOut])
def care_homes(
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    q = db.query(CareHome).filter(CareHome.is_active.is_(True))
    if not ctx.is_admin:
        q = q.filter(CareHome.id.in_(ctx.care_home_ids or [-1]))
    return q.order_by(CareHome.name).all()


@router.post("/care-homes", response_model=CareHomeOut)
def create_care_home(
        body: CareHomeIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(admin_context),
):
    home = CareHome(name=body.name, region=body.region)
    db.add(home)
    db.commit()
    db.refresh(home)
    return home


# ---------- Residents ----------
@router.get("/residents", response_model=List[ResidentOut])
def residents(
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    q = db.query(Resident).filter(Resident.is_active.is_(True))
    if not ctx.is_admin:
        q = q.filter(Resident.care_home_id.in_(ctx.care_home_ids or [-1]))
    return q.order_by(Resident.last_name, Resident.first_name).all()


@router.post("/residents", response_model=ResidentOut)
def create_resident(
        body: ResidentIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, body.care_home_id)
    r = Resident(**body.model_dump())
    db.add(r)
    db.commit()
    db.refresh(r)
    return r


# ---------- Dated consents ----------
def _resident_for(db: Session, ctx: UserContext, resident_id: int) -> Resident:
    r = db.get(Resident, resident_id)
    if not r:
        raise NotFoundError("Resident not found")
    require_home_access(ctx, r.care_home_id)
    return r


@router.get("/residents/{resident_id}/consents", response_model=List[ConsentOut])
def resident_consents(
        resident_id: int,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    _resident_for(db, ctx, resident_id)
    return (db.query(Consent).filter(Consent.resident_id == resident_id).order_by(
        Consent.consent_given_at.desc()).all())


@router.post("/consents", response_model=ConsentOut)
def create_consent(
        body: ConsentIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    _resident_for(db, ctx, body.resident_id)
    if not db.get(Vendor, body.supplier_id):
        raise NotFoundError("Supplier not found")
    data = body.model_dump()
    data["service_type"] = body.service_type.value
    data["status"] = body.status.value
    c = Consent(**data, created_by=ctx.user.upn or ctx.user.oid)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


@router.patch("/consents/{consent_id}", response_model=ConsentOut)
def update_consent(
        consent_id: int,
        body: ConsentPatch,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    c = db.get(Consent, consent_id)
    if not c:
        raise NotFoundError("Consent not found")
    _resident_for(db, ctx, c.resident_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("status") is not None:
        changes["status"] = changes["status"].value
    for k, v in changes.items():
        setattr(c, k, v)
    db.commit()
    db.refresh(c)
    return c
