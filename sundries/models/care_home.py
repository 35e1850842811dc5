from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from sundries.db.base import Base


class CareHome(Base):
    __tablename__ = "care_homes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(191), nullable=False)
    region = Column(String(100), nullable=False, default="UK South")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    home_roles = relationship("UserHomeRole", back_populates="care_home")
