from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload

from sundries.api.deps import current_context, get_db
from sundries.core.errors import NotFoundError
from sundries.models import CareHome, CareHqResident, ResidentConsent
from sundries.schemas.sales import (
    BootstrapIn,
    BootstrapOut,
    CareHqResidentOut,
    ResidentConsentOut,
    ResidentConsentPatch,
    RosterSyncOut,
)
from sundries.services.access import UserContext, require_home_access
from sundries.services.carehq import (
    CareHqClient,
    bootstrap_resident_consents,
    fetch_carehq_residents,
    sync_carehq_residents,
)
from sundries.services.audit_logger import log_audit
from sundries.utils.text import natural_key

router = APIRouter(tags=["Residents"])


def get_carehq_client() -> CareHqClient:
    return CareHqClient()


# ---------- CareHQ roster ----------
@router.get("/carehq/residents", response_model=List[CareHqResidentOut])
def roster(
        care_home_id: Optional[int] = Query(None, gt=0),
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    q = db.query(CareHqResident).options(joinedload(CareHqResident.care_home))
    if care_home_id:
        require_home_access(ctx, care_home_id)
        q = q.filter(CareHqResident.care_home_id == care_home_id)
    elif not ctx.is_admin:
        q = q.filter(CareHqResident.care_home_id.in_(ctx.care_home_ids or [-1]))
    rows = q.all()
    rows.sort(key=lambda r: ((r.care_home.name if r.care_home else ""),
                             natural_key(r.room_number)))
    return rows


@router.post("/carehq/residents/sync", response_model=RosterSyncOut)
def sync_roster(
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
        client: CareHqClient = Depends(get_carehq_client),
):
    entries = fetch_carehq_residents(client)
    return sync_carehq_residents(db, entries)


# ---------- Resident consent register ----------
@router.get("/resident-consents", response_model=List[ResidentConsentOut])
def resident_consents(
        care_home_id: int = Query(..., gt=0),
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, care_home_id)
    rows = (db.query(ResidentConsent).filter(
        ResidentConsent.care_home_id == care_home_id).all())
    rows.sort(key=lambda r: (natural_key(r.room_number), r.full_name or ""))
    return rows


@router.patch("/resident-consents/{consent_id}", response_model=ResidentConsentOut)
def update_resident_consent(
        consent_id: int,
        body: ResidentConsentPatch,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    row = db.get(ResidentConsent, consent_id)
    if not row:
        raise NotFoundError("Consent record not found")
    require_home_access(ctx, row.care_home_id)

    changes = body.model_dump(exclude_unset=True)
    old = {k: getattr(row, k) for k in changes}
    for k, v in changes.items():
        setattr(row, k, v)
    log_audit(db,
              user_id=ctx.user.id,
              action="UPDATE",
              table_name="resident_consents",
              record_id=row.id,
              old_values=old,
              new_values=changes)
    db.commit()
    db.refresh(row)
    return row


@router.post("/resident-consents/bootstrap", response_model=BootstrapOut)
def bootstrap(
        body: BootstrapIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(current_context),
):
    require_home_access(ctx, body.care_home_id)
    if not db.get(CareHome, body.care_home_id):
        raise NotFoundError("Care home not found")
    return bootstrap_resident_consents(db, body.care_home_id)
