from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from sundries.core.errors import NotFoundError, ValidationError
from sundries.models import CareHqResident, SaleItem, Vendor
from sundries.services.billing_math import money2


def list_sale_items(db: Session,
                    *,
                    care_home_id: int,
                    vendor_id: Optional[int] = None,
                    invoiced: Optional[bool] = None) -> List[SaleItem]:
    q = (db.query(SaleItem).options(
        joinedload(SaleItem.carehq_resident),
        joinedload(SaleItem.vendor),
        joinedload(SaleItem.price_item),
    ).filter(SaleItem.care_home_id == care_home_id))
    if vendor_id:
        q = q.filter(SaleItem.vendor_id == vendor_id)
    if invoiced is not None:
        q = q.filter(SaleItem.invoiced.is_(invoiced))
    return q.order_by(SaleItem.date.desc(), SaleItem.created_at.desc()).all()


def create_sale_item(db: Session, *, care_home_id: int, carehq_resident_id: int,
                     vendor_id: int, price_item_id: Optional[int],
                     description: str, price: Decimal,
                     date: datetime) -> SaleItem:
    resident = db.get(CareHqResident, carehq_resident_id)
    if not resident or resident.care_home_id != care_home_id:
        raise NotFoundError("Resident not found")
    if not db.get(Vendor, vendor_id):
        raise NotFoundError("Vendor not found")

    item = SaleItem(
        care_home_id=care_home_id,
        carehq_resident_id=carehq_resident_id,
        vendor_id=vendor_id,
        price_item_id=price_item_id,
        description=description,
        price=money2(price),
        date=date,
        invoiced=False,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def get_sale_item(db: Session, item_id: int) -> SaleItem:
    item = db.get(SaleItem, item_id)
    if not item:
        raise NotFoundError("Sale item not found")
    return item


def delete_sale_item(db: Session, item: SaleItem) -> None:
    if item.invoiced:
        raise ValidationError("Invoiced sale items cannot be deleted")
    db.delete(item)
    db.commit()
