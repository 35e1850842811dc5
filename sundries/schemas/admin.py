from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from sundries.schemas.reference import CareHomeOut


class HomeRoleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    care_home_id: int
    role: str
    care_home: Optional[CareHomeOut] = None


class AppUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    oid: str
    upn: Optional[str] = None
    display_name: Optional[str] = None
    created_at: datetime
    home_roles: List[HomeRoleOut] = []


class AppUserIn(BaseModel):
    oid: str = Field(..., min_length=1)
    upn: Optional[EmailStr] = None
    role: str = Field("User", min_length=1)
    home_ids: List[int] = []


class HomeAssignmentIn(BaseModel):
    care_home_id: int
    role: str = Field(..., min_length=1)


class HomeAssignmentsIn(BaseModel):
    assignments: List[HomeAssignmentIn] = []


class MeOut(BaseModel):
    user: AppUserOut
    roles: List[str] = []
    is_admin: bool
    care_home_ids: List[int] = []
