# sundries/models/__init__.py
from .care_home import CareHome
from .vendor import Vendor, PriceItem
from .resident import CareHqResident, ResidentConsent, Resident
from .sales import VisitSheet, VisitSheetStatus, SaleItem
from .supplier_billing import (
    Consent,
    ConsentStatus,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    ServiceType,
    Visit,
    VisitItem,
    VisitStatus,
)
from .user import AppUser, UserHomeRole
from .newspaper import Newspaper, NewspaperOrder
from .audit import AuditLog

__all__ = [
    "CareHome",
    "Vendor",
    "PriceItem",
    "CareHqResident",
    "ResidentConsent",
    "Resident",
    "VisitSheet",
    "VisitSheetStatus",
    "SaleItem",
    "Consent",
    "ConsentStatus",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "ServiceType",
    "Visit",
    "VisitItem",
    "VisitStatus",
    "AppUser",
    "UserHomeRole",
    "Newspaper",
    "NewspaperOrder",
    "AuditLog",
]
