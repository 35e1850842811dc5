# sundries/api/router.py
from fastapi import APIRouter
from sundries.api import (
    routes_system,
    routes_admin,
    routes_carehomes,
    routes_vendors,
    routes_carehq,

    # Vendor visits & sales ledger
    routes_visit_sheets,
    routes_sales,
    routes_misc,

    # Supplier visits & invoices
    routes_visits,
    routes_invoices,
)

api_router = APIRouter()

api_router.include_router(routes_system.router)
api_router.include_router(routes_admin.router)
api_router.include_router(routes_carehomes.router)
api_router.include_router(routes_vendors.router)
api_router.include_router(routes_carehq.router)

api_router.include_router(routes_visit_sheets.router)
api_router.include_router(routes_sales.router)
api_router.include_router(routes_misc.router)

api_router.include_router(routes_visits.router)
api_router.include_router(routes_invoices.router)
