from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session, joinedload

from sundries.core.errors import AuthenticationError, AuthorizationError, NotFoundError
from sundries.core.security import Principal
from sundries.models import AppUser, CareHome, UserHomeRole

ADMIN_ROLE = "Admin"


@dataclass
class UserContext:
    user: AppUser
    roles: List[UserHomeRole] = field(default_factory=list)
    is_admin: bool = False
    care_home_ids: List[int] = field(default_factory=list)


def upsert_user(db: Session, oid: str, upn: Optional[str] = None) -> AppUser:
    """Resolve-or-create by object id; upn is refreshed only when given."""
    user = db.query(AppUser).filter(AppUser.oid == oid).first()
    if not user:
        user = AppUser(oid=oid, upn=upn, display_name=upn)
        db.add(user)
    elif upn:
        user.upn = upn
    db.flush()
    return user


def ensure_user(db: Session, principal: Principal) -> AppUser:
    if not principal.oid:
        raise AuthenticationError("Missing user object id")
    user = upsert_user(db, principal.oid, principal.username)
    db.commit()
    db.refresh(user)
    return user


def get_user_context(db: Session, principal: Principal) -> UserContext:
    user = ensure_user(db, principal)
    roles = (db.query(UserHomeRole).options(joinedload(UserHomeRole.care_home)).filter(
        UserHomeRole.user_id == user.id).order_by(UserHomeRole.care_home_id).all())
    return UserContext(
        user=user,
        roles=roles,
        is_admin=any(r.role == ADMIN_ROLE for r in roles),
        care_home_ids=[r.care_home_id for r in roles],
    )


def require_admin(ctx: UserContext) -> None:
    if not ctx.is_admin:
        raise AuthorizationError("Admin access required")


def require_home_access(ctx: UserContext, care_home_id: int) -> None:
    if ctx.is_admin:
        return
    if care_home_id not in ctx.care_home_ids:
        raise AuthorizationError("No access to this care home")


def replace_home_roles(db: Session, user: AppUser,
                       assignments: Sequence[tuple[int, str]]) -> List[UserHomeRole]:
    """
    Swap a user's (care_home_id, role) assignments for the given set in one
    transaction.
    """
    by_home = dict(assignments)  # last role wins for a repeated home
    home_ids = set(by_home)
    if home_ids:
        found = {h.id for h in db.query(CareHome).filter(CareHome.id.in_(home_ids))}
        missing = home_ids - found
        if missing:
            raise NotFoundError(f"Care home(s) not found: {sorted(missing)}")

    try:
        db.query(UserHomeRole).filter(UserHomeRole.user_id == user.id).delete(
            synchronize_session="fetch")
        for care_home_id, role in by_home.items():
            db.add(UserHomeRole(user_id=user.id, care_home_id=care_home_id, role=role))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.expire(user)
    return (db.query(UserHomeRole).filter(UserHomeRole.user_id == user.id).order_by(
        UserHomeRole.care_home_id).all())
