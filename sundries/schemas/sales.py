from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# ---------- Roster / resident consents ----------
class CareHqResidentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    care_home_id: int
    carehq_room_id: str
    carehq_location_id: Optional[str] = None
    room_number: Optional[str] = None
    full_name: Optional[str] = None
    account_code: Optional[str] = None
    service_user_id: Optional[str] = None
    is_vacant: bool
    last_synced_at: Optional[datetime] = None


class RosterSyncOut(BaseModel):
    synced: int
    skipped: int
    total: int
    last_synced_at: datetime


class ResidentConsentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    care_home_id: int
    carehq_resident_id: Optional[int] = None
    room_number: Optional[str] = None
    full_name: Optional[str] = None
    account_code: Optional[str] = None
    service_user_id: Optional[str] = None

    sundry_consent_received: bool
    newspapers_consent: bool
    chiropody_consent: bool
    hairdressers_consent: bool
    shop_consent: bool
    other_consent: bool

    comments: Optional[str] = None
    newspapers_note: Optional[str] = None
    chiropody_note: Optional[str] = None
    hairdressing_note: Optional[str] = None
    shop_note: Optional[str] = None
    other_note: Optional[str] = None

    current_resident: bool
    updated_at: Optional[datetime] = None


class ResidentConsentPatch(BaseModel):
    sundry_consent_received: Optional[bool] = None
    newspapers_consent: Optional[bool] = None
    chiropody_consent: Optional[bool] = None
    hairdressers_consent: Optional[bool] = None
    shop_consent: Optional[bool] = None
    other_consent: Optional[bool] = None
    comments: Optional[str] = None
    newspapers_note: Optional[str] = None
    chiropody_note: Optional[str] = None
    hairdressing_note: Optional[str] = None
    shop_note: Optional[str] = None
    other_note: Optional[str] = None
    current_resident: Optional[bool] = None


class BootstrapIn(BaseModel):
    care_home_id: int


class BootstrapOut(BaseModel):
    care_home_id: int
    active_residents: int
    total_residents: int
    deactivated: int


# ---------- Sale items ----------
class SaleItemIn(BaseModel):
    care_home_id: int
    carehq_resident_id: int
    vendor_id: int
    price_item_id: Optional[int] = None
    description: str = Field(..., min_length=1)
    price: Decimal
    date: datetime


class SaleItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    care_home_id: int
    carehq_resident_id: int
    vendor_id: int
    price_item_id: Optional[int] = None
    description: str
    price: Decimal
    date: datetime
    invoiced: bool
    invoice_number: Optional[str] = None
    created_at: datetime
    carehq_resident: Optional[CareHqResidentOut] = None


class BulkSelectionIn(BaseModel):
    resident_consent_id: int
    price_item_id: int


class BulkSalesIn(BaseModel):
    care_home_id: int
    vendor_id: int
    date: dt.date
    items: List[BulkSelectionIn] = []
    # residents shown on the sheet; unticked ones get their day cleared
    resident_consent_ids: List[int] = []


class BulkSalesOut(BaseModel):
    created: int
    deleted: int


class SalesInvoiceIn(BaseModel):
    care_home_id: int
    vendor_id: int
    date_from: Optional[date] = Field(None, alias="from")
    date_to: Optional[date] = Field(None, alias="to")
    to_email: Optional[EmailStr] = None

    model_config = ConfigDict(populate_by_name=True)


class SalesInvoiceOut(BaseModel):
    invoice_no: str
    item_count: int
    total: Decimal
    emailed_to: Optional[str] = None


class SalesInvoiceSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    invoice_number: str
    care_home_id: int
    vendor_id: int
    care_home_name: Optional[str] = None
    vendor_name: Optional[str] = None
    total: Decimal
    item_count: int
    issued_at: datetime
    status: str


# ---------- Visit sheets ----------
class VisitSheetIn(BaseModel):
    care_home_id: int
    vendor_id: int
    visit_date: date


class VisitSheetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    care_home_id: int
    vendor_id: int
    visit_date: date
    status: str
    signed_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime


class PrintResidentOut(BaseModel):
    id: int
    room_number: Optional[str] = None
    full_name: Optional[str] = None
    account_code: Optional[str] = None
    carehq_resident_id: Optional[int] = None


class PrintSelectionOut(BaseModel):
    resident_id: int
    price_item_id: int


class NamedRef(BaseModel):
    id: int
    name: str


class PrintVendorOut(NamedRef):
    account_ref: str
    trade_contact: Optional[str] = None


class PrintPriceItemOut(BaseModel):
    id: int
    description: str
    price: Decimal
    valid_from: Optional[date] = None


class VisitPrintOut(BaseModel):
    visited_at: datetime
    care_home: NamedRef
    vendor: PrintVendorOut
    consent_field: str
    status: str
    signed_at: Optional[datetime] = None
    residents: List[PrintResidentOut]
    price_items: List[PrintPriceItemOut]
    selections: List[PrintSelectionOut]


# ---------- Misc expenses ----------
class MiscResidentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    room_number: Optional[str] = None
    full_name: Optional[str] = None
    account_code: Optional[str] = None
    carehq_resident_id: Optional[int] = None


class MiscExpenseIn(BaseModel):
    care_home_id: int
    resident_consent_id: int
    type: Literal["Escort", "Other"]
    date: datetime
    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)


class MiscExpenseOut(BaseModel):
    invoice_no: str
    sale_item_id: int


# ---------- Newspapers ----------
class NewspaperOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    price: Decimal
    sort: int
    is_active: bool


class NewspaperOrderIn(BaseModel):
    care_home_id: int
    carehq_resident_id: int
    newspaper_id: int
    item_title: str = Field(..., min_length=1)
    price: Decimal
    monday: Optional[bool] = None
    tuesday: Optional[bool] = None
    wednesday: Optional[bool] = None
    thursday: Optional[bool] = None
    friday: Optional[bool] = None
    saturday: Optional[bool] = None
    sunday: Optional[bool] = None


class NewspaperOrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    care_home_id: int
    carehq_resident_id: int
    newspaper_id: int
    item_title: str
    price: Decimal
    monday: bool
    tuesday: bool
    wednesday: bool
    thursday: bool
    friday: bool
    saturday: bool
    sunday: bool
    carehq_resident: Optional[CareHqResidentOut] = None
