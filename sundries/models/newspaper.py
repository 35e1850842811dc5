from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Boolean,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from sundries.db.base import Base

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday",
            "saturday", "sunday")


class Newspaper(Base):
    __tablename__ = "newspapers"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(191), nullable=False)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    sort = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class NewspaperOrder(Base):
    __tablename__ = "newspaper_orders"
    __table_args__ = (UniqueConstraint("carehq_resident_id",
                                       "newspaper_id",
                                       name="uq_newspaper_order_resident"), )

    id = Column(Integer, primary_key=True, index=True)
    care_home_id = Column(Integer, ForeignKey("care_homes.id"), nullable=False)
    carehq_resident_id = Column(Integer,
                                ForeignKey("carehq_residents.id"),
                                nullable=False)
    newspaper_id = Column(Integer, ForeignKey("newspapers.id"), nullable=False)
    item_title = Column(String(191), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    monday = Column(Boolean, nullable=False, default=False)
    tuesday = Column(Boolean, nullable=False, default=False)
    wednesday = Column(Boolean, nullable=False, default=False)
    thursday = Column(Boolean, nullable=False, default=False)
    friday = Column(Boolean, nullable=False, default=False)
    saturday = Column(Boolean, nullable=False, default=False)
    sunday = Column(Boolean, nullable=False, default=False)

    carehq_resident = relationship("CareHqResident")
    newspaper = relationship("Newspaper")
