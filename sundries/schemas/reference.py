from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sundries.models import ConsentStatus, ServiceType


# ---------- Care homes ----------
class CareHomeIn(BaseModel):
    name: str = Field(..., min_length=2)
    region: str = "UK South"


class CareHomeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    region: Optional[str] = None
    is_active: bool


# ---------- Vendors / suppliers ----------
class VendorIn(BaseModel):
    name: str = Field(..., min_length=1)
    account_ref: str = Field(..., min_length=1, max_length=50)
    def_nom_code: Optional[str] = None
    trade_contact: Optional[str] = None
    service_type: ServiceType = ServiceType.OTHER
    email: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    address3: Optional[str] = None
    address4: Optional[str] = None
    address5: Optional[str] = None
    is_active: bool = True


class VendorPatch(BaseModel):
    name: Optional[str] = None
    account_ref: Optional[str] = Field(None, min_length=1, max_length=50)
    def_nom_code: Optional[str] = None
    trade_contact: Optional[str] = None
    service_type: Optional[ServiceType] = None
    email: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    address3: Optional[str] = None
    address4: Optional[str] = None
    address5: Optional[str] = None
    is_active: Optional[bool] = None


class VendorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    account_ref: str
    def_nom_code: Optional[str] = None
    trade_contact: Optional[str] = None
    service_type: str
    email: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    address3: Optional[str] = None
    address4: Optional[str] = None
    address5: Optional[str] = None
    is_active: bool


# ---------- Price items ----------
class PriceItemIn(BaseModel):
    vendor_id: int
    description: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    valid_from: Optional[date] = None
    is_active: bool = True


class PriceItemPatch(BaseModel):
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[Decimal] = Field(None, ge=0)
    valid_from: Optional[date] = None
    is_active: Optional[bool] = None


class PriceItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vendor_id: int
    description: str
    price: Decimal
    valid_from: Optional[date] = None
    is_active: bool


# ---------- Residents (supplier workflow) ----------
class ResidentIn(BaseModel):
    care_home_id: int
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    dob: Optional[date] = None


class ResidentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    care_home_id: int
    first_name: str
    last_name: str
    full_name: str
    dob: Optional[date] = None
    is_active: bool


# ---------- Dated consents ----------
class ConsentIn(BaseModel):
    resident_id: int
    supplier_id: int
    service_type: ServiceType
    status: ConsentStatus = ConsentStatus.ACTIVE
    consent_given_at: datetime
    consent_expires_at: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("consent_expires_at")
    @classmethod
    def _expiry_after_given(cls, v, info):
        given = info.data.get("consent_given_at")
        if v is not None and given is not None and v < given:
            raise ValueError("consent_expires_at must not be before consent_given_at")
        return v


class ConsentPatch(BaseModel):
    status: Optional[ConsentStatus] = None
    consent_given_at: Optional[datetime] = None
    consent_expires_at: Optional[datetime] = None
    notes: Optional[str] = None


class ConsentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    resident_id: int
    supplier_id: int
    service_type: str
    status: str
    consent_given_at: datetime
    consent_expires_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
