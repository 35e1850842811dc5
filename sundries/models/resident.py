# sundries/models/resident.py
from __future__ import annotations

from datetime import datetime
from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Text,
    Index,
)
from sqlalchemy.orm import relationship

from sundries.db.base import Base


class CareHqResident(Base):
    """
    One row per room in the external roster (CareHQ).

    Rooms without an active booking are kept with is_vacant=True rather than
    deleted, so historical sale items keep their reference.
    """
    __tablename__ = "carehq_residents"
    __table_args__ = (Index("ix_carehq_residents_account", "account_code",
                            "care_home_id"), )

    id = Column(Integer, primary_key=True, index=True)
    care_home_id = Column(Integer,
                          ForeignKey("care_homes.id"),
                          nullable=False,
                          index=True)
    carehq_location_id = Column(String(64), nullable=True)
    carehq_room_id = Column(String(64), nullable=False, unique=True)
    room_number = Column(String(50), nullable=True)
    full_name = Column(String(191), nullable=True)
    account_code = Column(String(50), nullable=True)
    service_user_id = Column(String(64), nullable=True)
    is_vacant = Column(Boolean, nullable=False, default=False)
    last_synced_at = Column(DateTime, nullable=True)

    care_home = relationship("CareHome")


class ResidentConsent(Base):
    """
    Per-resident consent sheet for a care home: one boolean per service
    category plus free-text notes.
    """
    __tablename__ = "resident_consents"

    id = Column(Integer, primary_key=True, index=True)
    care_home_id = Column(Integer,
                          ForeignKey("care_homes.id"),
                          nullable=False,
                          index=True)
    carehq_resident_id = Column(Integer,
                                ForeignKey("carehq_residents.id"),
                                nullable=True,
                                unique=True)

    room_number = Column(String(50), nullable=True)
    full_name = Column(String(191), nullable=True)
    account_code = Column(String(50), nullable=True)
    service_user_id = Column(String(64), nullable=True)

    sundry_consent_received = Column(Boolean, nullable=False, default=False)
    newspapers_consent = Column(Boolean, nullable=False, default=False)
    chiropody_consent = Column(Boolean, nullable=False, default=False)
    hairdressers_consent = Column(Boolean, nullable=False, default=False)
    shop_consent = Column(Boolean, nullable=False, default=False)
    other_consent = Column(Boolean, nullable=False, default=False)

    comments = Column(Text, nullable=True)
    newspapers_note = Column(Text, nullable=True)
    chiropody_note = Column(Text, nullable=True)
    hairdressing_note = Column(Text, nullable=True)
    shop_note = Column(Text, nullable=True)
    other_note = Column(Text, nullable=True)

    # soft-delete marker for roster turnover
    current_resident = Column(Boolean, nullable=False, default=True)

    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow)

    carehq_resident = relationship("CareHqResident")


class Resident(Base):
    """Resident record used by the supplier visit/consent workflow."""
    __tablename__ = "residents"

    id = Column(Integer, primary_key=True, index=True)
    care_home_id = Column(Integer,
                          ForeignKey("care_homes.id"),
                          nullable=False,
                          index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    dob = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    care_home = relationship("CareHome")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
