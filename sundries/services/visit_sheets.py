from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sundries.core.errors import NotFoundError, ValidationError
from sundries.models import (
    CareHome,
    PriceItem,
    ResidentConsent,
    SaleItem,
    Vendor,
    VisitSheet,
    VisitSheetStatus,
)
from sundries.services.consent_categories import consent_field_for_vendor
from sundries.services.reconciliation import day_bounds, find_roster_resident_id
from sundries.utils.text import natural_key
from sundries.utils.timezone import now_local

logger = logging.getLogger(__name__)


def _find_sheet(db: Session, care_home_id: int, vendor_id: int,
                visit_date: date) -> Optional[VisitSheet]:
    return (db.query(VisitSheet).filter(
        VisitSheet.care_home_id == care_home_id,
        VisitSheet.vendor_id == vendor_id,
        VisitSheet.visit_date == visit_date,
    ).first())


def create_or_get_visit_sheet(db: Session,
                              *,
                              care_home_id: int,
                              vendor_id: int,
                              visit_date: date,
                              created_by: Optional[str] = None) -> VisitSheet:
    """At most one sheet per (care home, vendor, day); an existing one is returned."""
    if not db.get(CareHome, care_home_id) or not db.get(Vendor, vendor_id):
        raise NotFoundError("Care home or vendor not found")

    sheet = _find_sheet(db, care_home_id, vendor_id, visit_date)
    if sheet:
        return sheet

    sheet = VisitSheet(
        care_home_id=care_home_id,
        vendor_id=vendor_id,
        visit_date=visit_date,
        status=VisitSheetStatus.DRAFT.value,
        created_by=created_by,
    )
    db.add(sheet)
    try:
        db.commit()
    except IntegrityError:
        # another request created it first
        db.rollback()
        sheet = _find_sheet(db, care_home_id, vendor_id, visit_date)
        if not sheet:
            raise
        return sheet

    db.refresh(sheet)
    logger.info("Visit sheet %s created for home=%s vendor=%s day=%s", sheet.id,
                care_home_id, vendor_id, visit_date)
    return sheet


def list_visit_sheets(
    db: Session,
    *,
    care_home_id: Optional[int] = None,
    vendor_id: Optional[int] = None,
    status: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[VisitSheet]:
    q = db.query(VisitSheet)
    if care_home_id:
        q = q.filter(VisitSheet.care_home_id == care_home_id)
    if vendor_id:
        q = q.filter(VisitSheet.vendor_id == vendor_id)
    if status:
        q = q.filter(VisitSheet.status == status)
    if date_from:
        q = q.filter(VisitSheet.visit_date >= date_from)
    if date_to:
        q = q.filter(VisitSheet.visit_date <= date_to)
    return q.order_by(VisitSheet.visit_date.desc(), VisitSheet.id.desc()).all()


def get_visit_sheet(db: Session, sheet_id: int) -> VisitSheet:
    sheet = db.get(VisitSheet, sheet_id)
    if not sheet:
        raise NotFoundError("Visit sheet not found")
    return sheet


def sign_visit_sheet(db: Session,
                     sheet_id: int,
                     signed_at: Optional[datetime] = None) -> VisitSheet:
    sheet = get_visit_sheet(db, sheet_id)
    if sheet.status == VisitSheetStatus.SIGNED.value:
        raise ValidationError("Visit sheet is already signed")

    sheet.status = VisitSheetStatus.SIGNED.value
    sheet.signed_at = signed_at or now_local()
    db.commit()
    db.refresh(sheet)
    logger.info("Visit sheet %s signed", sheet.id)
    return sheet


def consenting_residents(db: Session, care_home_id: int,
                         consent_field: str) -> List[ResidentConsent]:
    """Current residents with the given consent flag set, in room order."""
    flag = getattr(ResidentConsent, consent_field)
    rows = (db.query(ResidentConsent).filter(
        ResidentConsent.care_home_id == care_home_id,
        ResidentConsent.current_resident.is_(True),
        flag.is_(True),
    ).all())
    rows.sort(key=lambda r: (natural_key(r.room_number), r.full_name or ""))
    return rows


def build_print_payload(db: Session, *, care_home_id: int, vendor_id: int,
                        visit_date: date) -> Dict[str, Any]:
    """
    Everything the printable visit sheet needs: who may be served, what can
    be sold, and what was already recorded for the day.
    """
    care_home = db.get(CareHome, care_home_id)
    vendor = db.get(Vendor, vendor_id)
    if not care_home or not vendor:
        raise NotFoundError("Care home or vendor not found")

    consent_field = consent_field_for_vendor(vendor)
    residents = consenting_residents(db, care_home_id, consent_field)

    price_items = (db.query(PriceItem).filter(
        PriceItem.vendor_id == vendor_id,
        PriceItem.is_active.is_(True),
    ).order_by(PriceItem.description, PriceItem.id).all())

    consent_by_roster: Dict[int, int] = {}
    resident_rows = []
    for r in residents:
        roster_id = find_roster_resident_id(db, r, care_home_id)
        if roster_id:
            consent_by_roster.setdefault(roster_id, r.id)
        resident_rows.append({
            "id": r.id,
            "room_number": r.room_number,
            "full_name": r.full_name,
            "account_code": r.account_code,
            "carehq_resident_id": roster_id,
        })

    start, end = day_bounds(visit_date)
    selections = []
    if consent_by_roster:
        sales = (db.query(SaleItem).filter(
            SaleItem.care_home_id == care_home_id,
            SaleItem.vendor_id == vendor_id,
            SaleItem.date >= start,
            SaleItem.date < end,
            SaleItem.carehq_resident_id.in_(list(consent_by_roster)),
        ).order_by(SaleItem.id).all())
        selections = [{
            "resident_id": consent_by_roster[s.carehq_resident_id],
            "price_item_id": s.price_item_id,
        } for s in sales if s.price_item_id]

    sheet = _find_sheet(db, care_home_id, vendor_id, visit_date)
    return {
        "visited_at": start,
        "care_home": {
            "id": care_home.id,
            "name": care_home.name
        },
        "vendor": {
            "id": vendor.id,
            "name": vendor.name,
            "account_ref": vendor.account_ref,
            "trade_contact": vendor.trade_contact,
        },
        "consent_field": consent_field,
        "status": sheet.status if sheet else VisitSheetStatus.DRAFT.value,
        "signed_at": sheet.signed_at if sheet else None,
        "residents": resident_rows,
        "price_items": [{
            "id": p.id,
            "description": p.description,
            "price": p.price,
            "valid_from": p.valid_from,
        } for p in price_items],
        "selections": selections,
    }
