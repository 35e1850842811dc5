from datetime import datetime

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship

from sundries.db.base import Base


class AppUser(Base):
    __tablename__ = "app_users"

    id = Column(Integer, primary_key=True, index=True)
    # Entra ID object id, stable across UPN renames
    oid = Column(String(64), unique=True, nullable=False)
    upn = Column(String(191), nullable=True)
    display_name = Column(String(191), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    home_roles = relationship("UserHomeRole",
                              back_populates="user",
                              cascade="all, delete-orphan",
                              order_by="UserHomeRole.care_home_id")


class UserHomeRole(Base):
    __tablename__ = "user_home_roles"

    user_id = Column(Integer, ForeignKey("app_users.id"), primary_key=True)
    care_home_id = Column(Integer, ForeignKey("care_homes.id"), primary_key=True)
    role = Column(String(50), nullable=False, default="User")  # Admin | User

    user = relationship("AppUser", back_populates="home_roles")
    care_home = relationship("CareHome", back_populates="home_roles")
