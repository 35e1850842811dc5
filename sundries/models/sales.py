# sundries/models/sales.py
from __future__ import annotations

import enum
from datetime import datetime
from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from sundries.db.base import Base


class VisitSheetStatus(str, enum.Enum):
    DRAFT = "Draft"
    SIGNED = "Signed"


class VisitSheet(Base):
    """
    A scheduled vendor visit to a care home on one day.
    Draft -> Signed only; Signed is terminal.
    """
    __tablename__ = "visit_sheets"
    __table_args__ = (UniqueConstraint("care_home_id",
                                       "vendor_id",
                                       "visit_date",
                                       name="uq_visit_sheet_home_vendor_day"), )

    id = Column(Integer, primary_key=True, index=True)
    care_home_id = Column(Integer, ForeignKey("care_homes.id"), nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    visit_date = Column(Date, nullable=False)

    status = Column(String(16),
                    nullable=False,
                    default=VisitSheetStatus.DRAFT.value)
    signed_at = Column(DateTime, nullable=True)

    created_by = Column(String(191), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    care_home = relationship("CareHome")
    vendor = relationship("Vendor")


class SaleItem(Base):
    """
    One billable line. description/price are copied from the price item at
    creation time. Once invoiced=True the row is treated as immutable.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        Index("ix_sale_items_home_vendor_date", "care_home_id", "vendor_id",
              "date"),
        Index("ix_sale_items_invoice_number", "invoice_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    care_home_id = Column(Integer, ForeignKey("care_homes.id"), nullable=False)
    carehq_resident_id = Column(Integer,
                                ForeignKey("carehq_residents.id"),
                                nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    price_item_id = Column(Integer,
                           ForeignKey("price_items.id"),
                           nullable=True)

    description = Column(String(255), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    date = Column(DateTime, nullable=False)

    invoiced = Column(Boolean, nullable=False, default=False)
    invoice_number = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    care_home = relationship("CareHome")
    vendor = relationship("Vendor")
    price_item = relationship("PriceItem")
    carehq_resident = relationship("CareHqResident")
