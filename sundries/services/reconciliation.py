# sundries/services/reconciliation.py
"""
Bulk visit reconciliation.

A visit sheet submission names, for one (care home, vendor, day), which
resident received which price item. The day's sale items for the residents
in scope are replaced by exactly one sale item per selection, so submitting
the same sheet twice leaves the ledger unchanged and unticking a box removes
its sale item.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy.orm import Session

from sundries.core.errors import NotFoundError, ValidationError
from sundries.models import CareHqResident, PriceItem, ResidentConsent, SaleItem, Vendor
from sundries.services.audit_logger import log_audit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    resident_consent_id: int
    price_item_id: int


@dataclass
class ReconcileResult:
    created: int
    deleted: int


def day_bounds(day: date | datetime) -> Tuple[datetime, datetime]:
    """[start_of_day, start_of_next_day) for a date or datetime."""
    if isinstance(day, datetime):
        day = day.date()
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def find_roster_resident_id(db: Session, consent: ResidentConsent,
                            care_home_id: int) -> Optional[int]:
    if consent.carehq_resident_id:
        return consent.carehq_resident_id

    code = (consent.account_code or "").strip()
    if not code:
        return None

    row = (db.query(CareHqResident.id).filter(
        CareHqResident.account_code == code,
        CareHqResident.care_home_id == care_home_id,
    ).first())
    return row[0] if row else None


def resolve_roster_resident_id(db: Session, resident_consent_id: int,
                               care_home_id: int) -> int:
    """
    Map a consent record to its roster entry: direct link first, otherwise
    (account code, care home). A resident that cannot be linked cannot be
    billed.
    """
    consent = db.get(ResidentConsent, resident_consent_id)
    if not consent:
        raise NotFoundError(f"Resident consent {resident_consent_id} not found")
    if consent.care_home_id != care_home_id:
        raise ValidationError(
            f"Resident consent {resident_consent_id} belongs to another care home")

    roster_id = find_roster_resident_id(db, consent, care_home_id)
    if not roster_id:
        raise NotFoundError(
            f"Resident {consent.full_name or consent.id} is not linked to CareHQ")
    return roster_id


def resolve_price_item(db: Session, price_item_id: int,
                       vendor_id: int) -> PriceItem:
    item = db.get(PriceItem, price_item_id)
    if not item or not item.is_active or item.vendor_id != vendor_id:
        raise NotFoundError(f"Price item {price_item_id} not found")
    return item


def reconcile_visit(
    db: Session,
    *,
    care_home_id: int,
    vendor_id: int,
    day: date | datetime,
    selections: Sequence[Selection],
    scope_resident_consent_ids: Iterable[int] = (),
    user_id: Optional[int] = None,
) -> ReconcileResult:
    """
    Replace the day's sale items for the residents in scope with one sale
    item per selection.

    Scope is the residents named in `selections` plus any extra consent ids
    in `scope_resident_consent_ids` (a sheet passes all of its residents so a
    fully unticked resident is cleared too). Everything is resolved before
    the first write; delete and inserts commit together or not at all.
    """
    scope_ids: Set[int] = set(scope_resident_consent_ids or ())
    if not selections and not scope_ids:
        raise ValidationError("No items to reconcile")

    if not db.get(Vendor, vendor_id):
        raise NotFoundError("Vendor not found")

    # ---- resolve (no writes yet) ----
    roster_by_consent: Dict[int, int] = {}
    for consent_id in {s.resident_consent_id for s in selections} | scope_ids:
        roster_by_consent[consent_id] = resolve_roster_resident_id(
            db, consent_id, care_home_id)

    price_items: Dict[int, PriceItem] = {}
    for s in selections:
        if s.price_item_id not in price_items:
            price_items[s.price_item_id] = resolve_price_item(
                db, s.price_item_id, vendor_id)

    start, end = day_bounds(day)
    roster_ids = sorted(set(roster_by_consent.values()))

    existing: List[SaleItem] = (db.query(SaleItem).filter(
        SaleItem.care_home_id == care_home_id,
        SaleItem.vendor_id == vendor_id,
        SaleItem.date >= start,
        SaleItem.date < end,
        SaleItem.carehq_resident_id.in_(roster_ids),
    ).all())

    if any(x.invoiced for x in existing):
        raise ValidationError(
            "Sale items for this visit have already been invoiced")

    # ---- write ----
    try:
        for row in existing:
            db.delete(row)
        db.flush()

        for s in selections:
            item = price_items[s.price_item_id]
            db.add(
                SaleItem(
                    care_home_id=care_home_id,
                    carehq_resident_id=roster_by_consent[s.resident_consent_id],
                    vendor_id=vendor_id,
                    price_item_id=item.id,
                    description=item.description,
                    price=item.price,
                    date=start,
                    invoiced=False,
                ))

        log_audit(
            db,
            user_id=user_id,
            action="RECONCILE",
            table_name="sale_items",
            record_id=f"{care_home_id}:{vendor_id}:{start.date().isoformat()}",
            old_values={"count": len(existing)},
            new_values={
                "count": len(selections),
                "residents": roster_ids,
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Reconciled visit home=%s vendor=%s day=%s: deleted=%d created=%d",
        care_home_id, vendor_id, start.date(), len(existing), len(selections))
    return ReconcileResult(created=len(selections), deleted=len(existing))
