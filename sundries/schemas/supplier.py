from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from sundries.schemas.reference import CareHomeOut, ResidentOut, VendorOut


class VisitIn(BaseModel):
    care_home_id: int
    supplier_id: int
    visited_at: datetime
    notes: Optional[str] = None


class VisitItemIn(BaseModel):
    resident_id: int
    description: str = Field(..., min_length=3)
    qty: Decimal = Field(..., gt=0)
    unit_price: Decimal = Field(..., gt=0)
    vat_rate: Decimal = Field(Decimal("0"), ge=0)


class VisitItemPatch(BaseModel):
    description: Optional[str] = Field(None, min_length=3)
    qty: Optional[Decimal] = Field(None, gt=0)
    unit_price: Optional[Decimal] = Field(None, gt=0)
    vat_rate: Optional[Decimal] = Field(None, ge=0)


class VisitItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    visit_id: int
    resident_id: int
    description: str
    qty: Decimal
    unit_price: Decimal
    vat_rate: Decimal
    line_total: Decimal
    resident: Optional[ResidentOut] = None


class VisitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    care_home_id: int
    supplier_id: int
    visited_at: datetime
    notes: Optional[str] = None
    status: str
    locked_at: Optional[datetime] = None
    invoice_id: Optional[int] = None
    created_by: Optional[str] = None
    items: List[VisitItemOut] = []
    supplier: Optional[VendorOut] = None


class InvoiceGenerateIn(BaseModel):
    supplier_id: int
    care_home_id: int
    period_start: datetime = Field(..., alias="from")
    period_end: datetime = Field(..., alias="to")

    model_config = ConfigDict(populate_by_name=True)


class InvoiceItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_id: int
    visit_item_id: int
    description: str
    qty: Decimal
    unit_price: Decimal
    vat_rate: Decimal
    line_total: Decimal


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    supplier_id: int
    care_home_id: int
    invoice_no: str
    period_start: datetime
    period_end: datetime
    issued_at: Optional[datetime] = None
    subtotal: Decimal
    vat_total: Decimal
    total: Decimal
    status: str
    supplier: Optional[VendorOut] = None
    care_home: Optional[CareHomeOut] = None


class InvoiceDetailOut(InvoiceOut):
    items: List[InvoiceItemOut] = []


# ---------- Provider client list ----------
class ClientResidentOut(BaseModel):
    id: int
    full_name: str


class ClientItemOut(BaseModel):
    resident: Optional[ClientResidentOut] = None
    description: str
    qty: Decimal
    unit_price: Decimal
    vat_rate: Decimal
    line_total: Decimal


class ClientCareHomeOut(BaseModel):
    id: int
    name: str


class ClientVisitOut(BaseModel):
    visit_id: int
    care_home: Optional[ClientCareHomeOut] = None
    visited_at: datetime
    items: List[ClientItemOut] = []


class ClientListOut(BaseModel):
    supplier_id: int
    generated_at: datetime
    visits: List[ClientVisitOut] = []
