# sundries/models/vendor.py
from __future__ import annotations

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
)
from sqlalchemy.orm import relationship

from sundries.db.base import Base


class Vendor(Base):
    """
    A supplier that visits care homes (hairdresser, chiropodist, shop...).

    account_ref is the human-assigned ledger code; it prefixes invoice
    numbers, so it must be unique.
    """
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(191), nullable=False)
    account_ref = Column(String(50), nullable=False, unique=True)
    def_nom_code = Column(String(50), nullable=True)

    # free text from the ledger, e.g. "Hairdresser", "Chiropodist"
    trade_contact = Column(String(191), nullable=True)

    # Hairdressing | Chiropody | ChiropodyPremium | Other
    service_type = Column(String(32), nullable=False, default="Other")

    email = Column(String(255), nullable=True)

    address1 = Column(String(191), nullable=True)
    address2 = Column(String(191), nullable=True)
    address3 = Column(String(191), nullable=True)
    address4 = Column(String(191), nullable=True)
    address5 = Column(String(191), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    price_items = relationship(
        "PriceItem",
        back_populates="vendor",
        order_by="PriceItem.description",
    )


class PriceItem(Base):
    __tablename__ = "price_items"
    __table_args__ = (Index("ix_price_items_lookup", "vendor_id",
                            "description", "valid_from"), )

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer,
                       ForeignKey("vendors.id"),
                       nullable=False,
                       index=True)
    description = Column(String(255), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    valid_from = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    vendor = relationship("Vendor", back_populates="price_items")
