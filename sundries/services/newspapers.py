from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from sundries.core.errors import NotFoundError
from sundries.models import CareHqResident, Newspaper, NewspaperOrder
from sundries.models.newspaper import WEEKDAYS
from sundries.services.billing_math import money2
from sundries.utils.timezone import today_local, weekday_name


def list_newspapers(db: Session) -> List[Newspaper]:
    return (db.query(Newspaper).filter(Newspaper.is_active.is_(True)).order_by(
        Newspaper.sort, Newspaper.title).all())


def list_orders(db: Session,
                *,
                care_home_id: Optional[int] = None,
                carehq_resident_id: Optional[int] = None) -> List[NewspaperOrder]:
    q = db.query(NewspaperOrder).options(joinedload(NewspaperOrder.carehq_resident),
                                         joinedload(NewspaperOrder.newspaper))
    if care_home_id:
        q = q.filter(NewspaperOrder.care_home_id == care_home_id)
    if carehq_resident_id:
        q = q.filter(NewspaperOrder.carehq_resident_id == carehq_resident_id)
    return q.order_by(NewspaperOrder.carehq_resident_id, NewspaperOrder.item_title).all()


def orders_for_day(db: Session, care_home_id: int,
                   day: Optional[date] = None) -> List[NewspaperOrder]:
    """Orders to deliver on `day` (default: today in the configured timezone)."""
    field = weekday_name(day or today_local())
    return (db.query(NewspaperOrder).options(
        joinedload(NewspaperOrder.carehq_resident),
        joinedload(NewspaperOrder.newspaper),
    ).filter(
        NewspaperOrder.care_home_id == care_home_id,
        getattr(NewspaperOrder, field).is_(True),
    ).order_by(NewspaperOrder.item_title).all())


def upsert_order(db: Session, data: Dict[str, Any]) -> NewspaperOrder:
    """
    One order per (roster resident, newspaper). On update, weekday flags that
    are not supplied keep their current value.
    """
    if not db.get(CareHqResident, data["carehq_resident_id"]):
        raise NotFoundError("Resident not found")
    if not db.get(Newspaper, data["newspaper_id"]):
        raise NotFoundError("Newspaper not found")

    order = (db.query(NewspaperOrder).filter(
        NewspaperOrder.carehq_resident_id == data["carehq_resident_id"],
        NewspaperOrder.newspaper_id == data["newspaper_id"],
    ).first())

    if not order:
        order = NewspaperOrder(
            care_home_id=data["care_home_id"],
            carehq_resident_id=data["carehq_resident_id"],
            newspaper_id=data["newspaper_id"],
        )
        for d in WEEKDAYS:
            setattr(order, d, bool(data.get(d)))
        db.add(order)
    else:
        for d in WEEKDAYS:
            if data.get(d) is not None:
                setattr(order, d, bool(data[d]))

    order.item_title = data["item_title"]
    order.price = money2(data["price"])
    db.commit()
    db.refresh(order)
    return order
