from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload

from sundries.api.deps import admin_context, get_db
from sundries.core.errors import NotFoundError
from sundries.models import AppUser, CareHome, UserHomeRole
from sundries.schemas.admin import AppUserIn, AppUserOut, HomeAssignmentsIn, HomeRoleOut
from sundries.schemas.reference import CareHomeOut
from sundries.services.access import UserContext, replace_home_roles, upsert_user

router = APIRouter(prefix="/admin", tags=["Admin"])


def _user_with_roles(db: Session, user_id: int) -> AppUser:
    return (db.query(AppUser).options(
        joinedload(AppUser.home_roles).joinedload(UserHomeRole.care_home)).filter(
            AppUser.id == user_id).one())


@router.get("/users", response_model=List[AppUserOut])
def users(
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(admin_context),
):
    return (db.query(AppUser).options(
        joinedload(AppUser.home_roles).joinedload(UserHomeRole.care_home)).order_by(
            AppUser.upn).all())


@router.post("/users", response_model=AppUserOut)
def create_user(
        body: AppUserIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(admin_context),
):
    """Create (or update by oid) a user and replace their home roles."""
    user = upsert_user(db, body.oid, body.upn)
    replace_home_roles(db, user, [(h, body.role) for h in body.home_ids])
    return _user_with_roles(db, user.id)


@router.patch("/users/{user_id}/homes", response_model=List[HomeRoleOut])
def update_user_homes(
        user_id: int,
        body: HomeAssignmentsIn,
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(admin_context),
):
    user = db.get(AppUser, user_id)
    if not user:
        raise NotFoundError("User not found")
    return replace_home_roles(db, user,
                              [(a.care_home_id, a.role) for a in body.assignments])


@router.get("/homes", response_model=List[CareHomeOut])
def homes(
        db: Session = Depends(get_db),
        ctx: UserContext = Depends(admin_context),
):
    return db.query(CareHome).order_by(CareHome.name).all()
