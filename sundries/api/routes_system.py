from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sundries.api.deps import current_context, current_principal, get_db
from sundries.api.response import ok
from sundries.core.config import settings
from sundries.core.security import Principal
from sundries.schemas.admin import MeOut
from sundries.services.access import UserContext

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


@router.get("/")
def root():
    return ok({"service": settings.PROJECT_NAME})


@router.get("/health")
def health(db: Session = Depends(get_db)):
    """Liveness; the DB ping result is reported but never fails the check."""
    database = "ok"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Health check DB ping failed: %s", e)
        database = "unavailable"
    return ok({"status": "ok", "database": database})


@router.get("/me", response_model=MeOut)
def me(
        principal: Principal = Depends(current_principal),
        ctx: UserContext = Depends(current_context),
):
    return MeOut(user=ctx.user,
                 roles=principal.roles,
                 is_admin=ctx.is_admin,
                 care_home_ids=ctx.care_home_ids)
