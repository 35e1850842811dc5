"""
Miscellaneous expenses (escorts etc.) billed straight to a resident.

They are recorded as sale items under a dedicated MISC vendor and are
invoiced on creation, each with its own invoice number.
"""
from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from sundries.core.errors import NotFoundError, ValidationError
from sundries.models import ResidentConsent, SaleItem, Vendor
from sundries.services.audit_logger import log_audit
from sundries.services.billing_math import money2
from sundries.services.reconciliation import find_roster_resident_id
from sundries.utils.text import natural_key

logger = logging.getLogger(__name__)

MISC_ACCOUNT_REF = "MISC"
MISC_TYPES = ("Escort", "Other")

_B36 = string.digits + string.ascii_lowercase


@dataclass
class MiscExpenseResult:
    invoice_no: str
    sale_item_id: int


def ensure_misc_vendor(db: Session) -> Vendor:
    vendor = db.query(Vendor).filter(Vendor.account_ref == MISC_ACCOUNT_REF).first()
    if vendor:
        return vendor
    vendor = Vendor(account_ref=MISC_ACCOUNT_REF, name="Misc Expenses", is_active=True)
    db.add(vendor)
    db.flush()
    return vendor


def misc_invoice_number(care_home_id: int, day: date | datetime,
                        suffix: Optional[str] = None) -> str:
    suffix = suffix or "".join(secrets.choice(_B36) for _ in range(4))
    return f"MISC-{care_home_id}-{day.strftime('%Y%m%d')}-{suffix}"


def misc_expense_residents(db: Session, care_home_id: int) -> List[ResidentConsent]:
    rows = (db.query(ResidentConsent).filter(
        ResidentConsent.care_home_id == care_home_id,
        ResidentConsent.current_resident.is_(True),
        ResidentConsent.other_consent.is_(True),
    ).all())
    rows.sort(key=lambda r: (natural_key(r.room_number), r.full_name or ""))
    return rows


def create_misc_expense(db: Session,
                        *,
                        care_home_id: int,
                        resident_consent_id: int,
                        expense_type: str,
                        day: datetime,
                        description: str,
                        amount: Decimal,
                        user_id: Optional[int] = None) -> MiscExpenseResult:
    if expense_type not in MISC_TYPES:
        raise ValidationError(f"type must be one of {', '.join(MISC_TYPES)}")

    consent = db.get(ResidentConsent, resident_consent_id)
    if not consent:
        raise NotFoundError("Resident consent not found")
    if consent.care_home_id != care_home_id:
        raise ValidationError("Resident consent belongs to another care home")
    roster_id = find_roster_resident_id(db, consent, care_home_id)
    if not roster_id:
        raise NotFoundError("Resident is not linked to CareHQ")

    invoice_no = misc_invoice_number(care_home_id, day)
    try:
        vendor = ensure_misc_vendor(db)
        item = SaleItem(
            care_home_id=care_home_id,
            carehq_resident_id=roster_id,
            vendor_id=vendor.id,
            price_item_id=None,
            description=f"{expense_type}: {description}",
            price=money2(amount),
            date=day,
            invoiced=True,
            invoice_number=invoice_no,
        )
        db.add(item)
        db.flush()
        log_audit(db,
                  user_id=user_id,
                  action="CREATE",
                  table_name="sale_items",
                  record_id=item.id,
                  new_values={
                      "invoice_number": invoice_no,
                      "amount": str(item.price)
                  })
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Misc expense %s recorded for consent %s", invoice_no,
                resident_consent_id)
    return MiscExpenseResult(invoice_no=invoice_no, sale_item_id=item.id)
