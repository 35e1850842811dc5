"""Shared fixtures: in-memory database, seeded reference data, API client."""

import os

# must be set before sundries.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TENANT_ID", "test-tenant")
os.environ.setdefault("API_AUDIENCE", "api://sundries-test")
os.environ.setdefault("TIMEZONE", "Europe/London")

from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sundries.api.deps import current_principal, get_db
from sundries.core.security import JwksCache, Principal
from sundries.db.init_db import init_db
from sundries.main import create_app
from sundries.models import (
    AppUser,
    CareHome,
    CareHqResident,
    PriceItem,
    ResidentConsent,
    UserHomeRole,
    Vendor,
)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


def _roster(db, home, room, name, code):
    r = CareHqResident(
        care_home_id=home.id,
        carehq_room_id=f"room-{home.id}-{room}",
        room_number=room,
        full_name=name,
        account_code=code,
        is_vacant=False,
    )
    db.add(r)
    db.flush()
    return r


def _consent(db, home, roster, **flags):
    c = ResidentConsent(
        care_home_id=home.id,
        carehq_resident_id=roster.id if roster else None,
        room_number=roster.room_number if roster else None,
        full_name=roster.full_name if roster else None,
        account_code=roster.account_code if roster else None,
        current_resident=True,
        **flags,
    )
    db.add(c)
    db.flush()
    return c


@pytest.fixture
def seed(db):
    """
    One care home with three hairdresser-consenting residents (rooms 10, 2
    and 1), a second home, and a hairdresser with two active price items.
    """
    home = CareHome(name="Oak House", region="UK South")
    other_home = CareHome(name="Elm Court", region="UK South")
    vendor = Vendor(name="Curl Up & Dye",
                    account_ref="HAIR01",
                    trade_contact="Hairdresser",
                    service_type="Hairdressing",
                    email="hair@example.com")
    db.add_all([home, other_home, vendor])
    db.flush()

    cut = PriceItem(vendor_id=vendor.id, description="Cut", price=Decimal("12.50"))
    blow = PriceItem(vendor_id=vendor.id, description="Blow dry", price=Decimal("8.00"))
    db.add_all([cut, blow])
    db.flush()

    r10 = _roster(db, home, "10", "Ada Lovelace", "AC10")
    r2 = _roster(db, home, "2", "Bob Baker", "AC02")
    r1 = _roster(db, home, "1", "Cara Clark", "AC01")

    c10 = _consent(db, home, r10, hairdressers_consent=True, other_consent=True)
    c2 = _consent(db, home, r2, hairdressers_consent=True)
    c1 = _consent(db, home, r1, hairdressers_consent=True)
    db.commit()

    return SimpleNamespace(
        home=home,
        other_home=other_home,
        vendor=vendor,
        cut=cut,
        blow=blow,
        rosters=[r10, r2, r1],
        consents=[c10, c2, c1],
    )


@pytest.fixture
def principal():
    return Principal(sub="user-sub",
                     oid="oid-user-1",
                     upn="carer@example.com",
                     roles=[])


@pytest.fixture
def grant_home(db):
    def _apply(oid: str, home, role: str = "User"):
        user = db.query(AppUser).filter(AppUser.oid == oid).first()
        if not user:
            user = AppUser(oid=oid, upn=f"{oid}@example.com")
            db.add(user)
            db.flush()
        db.add(UserHomeRole(user_id=user.id, care_home_id=home.id, role=role))
        db.commit()
        return user

    return _apply


@pytest.fixture
def jwks_cache():
    return JwksCache("https://jwks.test/keys", fetcher=lambda url: {"keys": []})


@pytest.fixture
def app(session_factory, jwks_cache):
    application = create_app(jwks_cache=jwks_cache)

    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    application.dependency_overrides[get_db] = _get_db
    return application


@pytest.fixture
def client(app, principal):
    """Authenticated as `principal`; token verification is bypassed."""
    app.dependency_overrides[current_principal] = lambda: principal
    with TestClient(app) as c:
        yield c


@pytest.fixture
def anon_client(app):
    """Real bearer verification against the fake JWKS cache."""
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
