# sundries/models/supplier_billing.py
from __future__ import annotations

import enum
from datetime import datetime
from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    ForeignKey,
    Index,
    Text,
)
from sqlalchemy.orm import relationship

from sundries.db.base import Base


class ServiceType(str, enum.Enum):
    HAIRDRESSING = "Hairdressing"
    CHIROPODY = "Chiropody"
    CHIROPODY_PREMIUM = "ChiropodyPremium"
    OTHER = "Other"


class ConsentStatus(str, enum.Enum):
    ACTIVE = "Active"
    PAUSED = "Paused"
    REVOKED = "Revoked"


class VisitStatus(str, enum.Enum):
    DRAFT = "Draft"
    CONFIRMED = "Confirmed"
    INVOICED = "Invoiced"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "Draft"
    ISSUED = "Issued"
    PAID = "Paid"


class Consent(Base):
    """
    Dated consent for one resident / supplier / service type.
    Valid for a visit when Active and consent_given_at <= visited_at <=
    consent_expires_at (open-ended when expires is NULL).
    """
    __tablename__ = "consents"
    __table_args__ = (Index("ix_consents_lookup", "resident_id", "supplier_id",
                            "service_type"), )

    id = Column(Integer, primary_key=True, index=True)
    resident_id = Column(Integer, ForeignKey("residents.id"), nullable=False)
    supplier_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    service_type = Column(String(32), nullable=False)
    status = Column(String(16),
                    nullable=False,
                    default=ConsentStatus.ACTIVE.value)
    consent_given_at = Column(DateTime, nullable=False)
    consent_expires_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(String(191), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    resident = relationship("Resident")
    supplier = relationship("Vendor")


class Visit(Base):
    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, index=True)
    care_home_id = Column(Integer, ForeignKey("care_homes.id"), nullable=False)
    supplier_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    visited_at = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)

    # Draft | Confirmed | Invoiced
    status = Column(String(16), nullable=False, default=VisitStatus.DRAFT.value)
    locked_at = Column(DateTime, nullable=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True)

    created_by = Column(String(191), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    care_home = relationship("CareHome")
    supplier = relationship("Vendor")
    items = relationship(
        "VisitItem",
        back_populates="visit",
        cascade="all, delete-orphan",
        order_by="VisitItem.id",
    )


class VisitItem(Base):
    __tablename__ = "visit_items"

    id = Column(Integer, primary_key=True, index=True)
    visit_id = Column(Integer,
                      ForeignKey("visits.id", ondelete="CASCADE"),
                      nullable=False,
                      index=True)
    resident_id = Column(Integer, ForeignKey("residents.id"), nullable=False)
    description = Column(String(255), nullable=False)
    qty = Column(Numeric(12, 2), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    vat_rate = Column(Numeric(5, 2), nullable=False, default=0)

    # qty * unit_price * (1 + vat_rate/100)
    line_total = Column(Numeric(12, 2), nullable=False)

    visit = relationship("Visit", back_populates="items")
    resident = relationship("Resident")
    invoice_item = relationship("InvoiceItem",
                                back_populates="visit_item",
                                uselist=False)


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    supplier_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    care_home_id = Column(Integer, ForeignKey("care_homes.id"), nullable=False)

    # {PREFIX}-{YYYYMM}-{seq:04d}; not unique-constrained, see services.supplier_invoices
    invoice_no = Column(String(64), nullable=False, index=True)

    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)
    issued_at = Column(DateTime, nullable=True)

    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    vat_total = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)

    status = Column(String(16), nullable=False, default=InvoiceStatus.DRAFT.value)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    supplier = relationship("Vendor")
    care_home = relationship("CareHome")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer,
                        ForeignKey("invoices.id", ondelete="CASCADE"),
                        nullable=False,
                        index=True)
    visit_item_id = Column(Integer,
                           ForeignKey("visit_items.id"),
                           nullable=False,
                           unique=True)
    description = Column(String(255), nullable=False)
    qty = Column(Numeric(12, 2), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    vat_rate = Column(Numeric(5, 2), nullable=False, default=0)
    line_total = Column(Numeric(12, 2), nullable=False)

    invoice = relationship("Invoice", back_populates="items")
    visit_item = relationship("VisitItem", back_populates="invoice_item")
