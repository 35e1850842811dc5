# sundries/scripts/seed_admin.py
"""Grant the Admin role on every (or the listed) care home to one user."""
from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from sundries.core.log import setup_logging
from sundries.models import AppUser, CareHome
from sundries.services.access import ADMIN_ROLE, replace_home_roles, upsert_user

logger = logging.getLogger("sundries.scripts.seed_admin")


def _parse_ids(raw: str) -> List[int]:
    return [int(v.strip()) for v in (raw or "").split(",") if v.strip()]


def seed_admin(db: Session, oid: str, upn: Optional[str] = None,
               home_ids: Sequence[int] = ()) -> tuple[AppUser, int]:
    if not oid:
        raise ValueError("ADMIN_OID must be set")

    q = db.query(CareHome)
    if home_ids:
        q = q.filter(CareHome.id.in_(list(home_ids)))
    homes = q.order_by(CareHome.id).all()
    if not homes:
        raise ValueError("No care homes found to assign admin role")

    user = upsert_user(db, oid, upn)
    roles = replace_home_roles(db, user, [(h.id, ADMIN_ROLE) for h in homes])
    return user, len(roles)


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Seed Admin home roles for a user.")
    parser.add_argument("--oid", default=os.getenv("ADMIN_OID", ""), help="Entra object id (env ADMIN_OID)")
    parser.add_argument("--upn", default=os.getenv("ADMIN_UPN") or None, help="User principal name (env ADMIN_UPN)")
    parser.add_argument(
        "--homes",
        default=os.getenv("ADMIN_HOME_IDS", ""),
        help="Comma separated care home ids; all homes when empty (env ADMIN_HOME_IDS)",
    )
    args = parser.parse_args(argv)

    setup_logging()
    from sundries.db.session import SessionLocal

    db = SessionLocal()
    try:
        user, count = seed_admin(db, args.oid, args.upn, _parse_ids(args.homes))
        logger.info("Seeded admin roles for %s on %s homes.", user.oid, count)
    finally:
        db.close()


if __name__ == "__main__":
    main()
