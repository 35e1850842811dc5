"""
Supplier visits: a dated visit by a supplier to a care home, with
consent-gated line items. Draft -> Confirmed -> Invoiced; an Invoiced visit
is locked.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from sundries.core.errors import NotFoundError, ValidationError
from sundries.models import (
    Consent,
    ConsentStatus,
    Resident,
    Vendor,
    Visit,
    VisitItem,
    VisitStatus,
)
from sundries.services.billing_math import D, line_total
from sundries.utils.timezone import now_local

logger = logging.getLogger(__name__)


def ensure_consent(db: Session, *, resident_id: int, supplier_id: int,
                   visited_at: datetime, service_type: str) -> Consent:
    """
    An Active consent must cover visited_at: given on or before it and
    not expired before it (no expiry means open-ended).
    """
    consent = (db.query(Consent).filter(
        Consent.resident_id == resident_id,
        Consent.supplier_id == supplier_id,
        Consent.service_type == service_type,
        Consent.status == ConsentStatus.ACTIVE.value,
        Consent.consent_given_at <= visited_at,
        or_(Consent.consent_expires_at.is_(None),
            Consent.consent_expires_at >= visited_at),
    ).first())
    if not consent:
        raise ValidationError(
            "Active consent not found for resident and supplier")
    return consent


def ensure_visit_is_editable(visit: Visit) -> None:
    if visit.status == VisitStatus.INVOICED.value:
        raise ValidationError("Visit is locked after invoicing")


def get_visit(db: Session, visit_id: int) -> Visit:
    visit = db.get(Visit, visit_id)
    if not visit:
        raise NotFoundError("Visit not found")
    return visit


def create_visit(db: Session,
                 *,
                 care_home_id: int,
                 supplier_id: int,
                 visited_at: datetime,
                 notes: Optional[str] = None,
                 created_by: Optional[str] = None) -> Visit:
    if not db.get(Vendor, supplier_id):
        raise NotFoundError("Supplier not found")

    visit = Visit(
        care_home_id=care_home_id,
        supplier_id=supplier_id,
        visited_at=visited_at,
        notes=notes,
        status=VisitStatus.DRAFT.value,
        created_by=created_by or "system",
    )
    db.add(visit)
    db.commit()
    db.refresh(visit)
    return visit


def list_visits(
    db: Session,
    *,
    care_home_id: Optional[int] = None,
    supplier_id: Optional[int] = None,
    status: Optional[str] = None,
    visited_from: Optional[datetime] = None,
    visited_to: Optional[datetime] = None,
) -> List[Visit]:
    q = db.query(Visit).options(
        joinedload(Visit.items).joinedload(VisitItem.resident),
        joinedload(Visit.supplier),
    )
    if care_home_id:
        q = q.filter(Visit.care_home_id == care_home_id)
    if supplier_id:
        q = q.filter(Visit.supplier_id == supplier_id)
    if status:
        q = q.filter(Visit.status == status)
    if visited_from:
        q = q.filter(Visit.visited_at >= visited_from)
    if visited_to:
        q = q.filter(Visit.visited_at <= visited_to)
    return q.order_by(Visit.visited_at.desc()).all()


def add_visit_item(db: Session, visit_id: int, *, resident_id: int,
                   description: str, qty: Any, unit_price: Any,
                   vat_rate: Any) -> VisitItem:
    visit = get_visit(db, visit_id)
    ensure_visit_is_editable(visit)

    if not db.get(Resident, resident_id):
        raise NotFoundError("Resident not found")
    ensure_consent(
        db,
        resident_id=resident_id,
        supplier_id=visit.supplier_id,
        visited_at=visit.visited_at,
        service_type=visit.supplier.service_type,
    )

    item = VisitItem(
        visit_id=visit.id,
        resident_id=resident_id,
        description=description,
        qty=D(qty),
        unit_price=D(unit_price),
        vat_rate=D(vat_rate),
        line_total=line_total(qty, unit_price, vat_rate),
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def patch_visit_item(db: Session, item_id: int,
                     changes: Dict[str, Any]) -> VisitItem:
    """Apply description/qty/unit_price/vat_rate changes; line_total is recomputed."""
    item = db.get(VisitItem, item_id)
    if not item:
        raise NotFoundError("Visit item not found")
    ensure_visit_is_editable(item.visit)

    if changes.get("description"):
        item.description = changes["description"]
    for key in ("qty", "unit_price", "vat_rate"):
        if changes.get(key) is not None:
            setattr(item, key, D(changes[key]))

    item.line_total = line_total(item.qty, item.unit_price, item.vat_rate)
    db.commit()
    db.refresh(item)
    return item


def confirm_visit(db: Session, visit_id: int) -> Visit:
    visit = get_visit(db, visit_id)
    ensure_visit_is_editable(visit)
    visit.status = VisitStatus.CONFIRMED.value
    db.commit()
    db.refresh(visit)
    logger.info("Visit %s confirmed", visit.id)
    return visit


def provider_client_list(db: Session, supplier_id: int,
                         visit_id: Optional[int] = None) -> Dict[str, Any]:
    """What a provider needs on the day: each visit with its residents and lines."""
    q = (db.query(Visit).options(
        joinedload(Visit.care_home),
        joinedload(Visit.items).joinedload(VisitItem.resident),
    ).filter(Visit.supplier_id == supplier_id))
    if visit_id:
        q = q.filter(Visit.id == visit_id)
    visits = q.order_by(Visit.visited_at.desc()).all()

    return {
        "supplier_id": supplier_id,
        "generated_at": now_local(),
        "visits": [{
            "visit_id": v.id,
            "care_home": {
                "id": v.care_home.id,
                "name": v.care_home.name
            } if v.care_home else None,
            "visited_at": v.visited_at,
            "items": [{
                "resident": {
                    "id": i.resident.id,
                    "full_name": i.resident.full_name
                } if i.resident else None,
                "description": i.description,
                "qty": D(i.qty),
                "unit_price": D(i.unit_price),
                "vat_rate": D(i.vat_rate),
                "line_total": D(i.line_total),
            } for i in v.items],
        } for v in visits],
    }
