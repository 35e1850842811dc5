# sundries/api/deps.py
from __future__ import annotations

from typing import Generator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from sundries.core.security import JwksCache, Principal, verify_bearer
from sundries.db.session import SessionLocal
from sundries.services.access import UserContext, get_user_context, require_admin


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_jwks_cache(request: Request) -> JwksCache:
    return request.app.state.jwks_cache


def current_principal(
    authorization: Optional[str] = Header(None),
    cache: JwksCache = Depends(get_jwks_cache),
) -> Principal:
    return verify_bearer(authorization, cache)


def current_context(
    principal: Principal = Depends(current_principal),
    db: Session = Depends(get_db),
) -> UserContext:
    return get_user_context(db, principal)


def admin_context(ctx: UserContext = Depends(current_context)) -> UserContext:
    require_admin(ctx)
    return ctx
