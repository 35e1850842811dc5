"""Operator scripts: price workbook import and admin seeding."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from openpyxl import Workbook

from sundries.models import AppUser, CareHome, PriceItem, UserHomeRole
from sundries.scripts.import_prices import import_price_rows, read_rows
from sundries.scripts.seed_admin import seed_admin


def _write_workbook(path, rows):
    wb = Workbook()
    ws = wb.active
    ws.append(["vendorRef", "itemDescription", "price", "accountCode", "priceValidFrom"])
    for r in rows:
        ws.append(r)
    wb.save(path)
    return path


def _prices(db, vendor_id):
    return (db.query(PriceItem).filter(PriceItem.vendor_id == vendor_id).order_by(
        PriceItem.description, PriceItem.valid_from).all())


def test_read_rows_normalises_headers(tmp_path):
    path = _write_workbook(tmp_path / "prices.xlsx", [["HAIR01", "Perm", 30, None, datetime(2024, 4, 1)]])
    rows = read_rows(path)
    assert rows[0]["vendor_ref"] == "HAIR01"
    assert rows[0]["description"] == "Perm"
    assert rows[0]["price"] == 30
    assert rows[0]["valid_from"] == datetime(2024, 4, 1)


def test_import_creates_and_updates(db, seed):
    stats = import_price_rows(db, [
        {"vendor_ref": "HAIR01", "description": "Cut", "price": 14, "valid_from": None},
        {"vendor_ref": "HAIR01", "description": "Perm", "price": "30.00", "valid_from": None},
    ])
    db.commit()

    assert (stats.created, stats.updated, stats.skipped) == (1, 1, 0)
    by_desc = {p.description: p for p in _prices(db, seed.vendor.id)}
    assert by_desc["Cut"].price == Decimal("14.00")
    assert by_desc["Perm"].price == Decimal("30.00")


def test_import_matches_valid_from_exactly(db, seed):
    """
    Matching is on the exact (vendor, description, valid_from) triple; a new
    valid_from date adds a second row rather than updating the current one.
    """
    stats = import_price_rows(db, [
        {"vendor_ref": "HAIR01", "description": "Cut", "price": 15, "valid_from": date(2024, 4, 1)},
    ])
    db.commit()

    assert stats.created == 1
    cuts = [p for p in _prices(db, seed.vendor.id) if p.description == "Cut"]
    assert [(p.valid_from, p.price) for p in cuts] == [
        (None, Decimal("12.50")),
        (date(2024, 4, 1), Decimal("15.00")),
    ]


def test_import_vendor_fallbacks(db, seed):
    stats = import_price_rows(db, [
        {"vendor_ref": None, "account_code": "HAIR01", "description": "Colour", "price": 40},
        {"vendor_ref": None, "account_code": None, "description": "Trim", "price": 6},
        {"vendor_ref": "NOPE", "description": "Wash", "price": 5},
        {"vendor_ref": "HAIR01", "description": "", "price": 5},
        {"vendor_ref": "HAIR01", "description": "Set", "price": "n/a"},
    ])
    db.commit()

    assert stats.created == 2
    assert stats.account_code_fallback == 1
    assert stats.skipped == 3
    assert stats.missing_vendors == {"NOPE"}
    descriptions = {p.description for p in _prices(db, seed.vendor.id)}
    assert {"Colour", "Trim"} <= descriptions


def test_import_dry_run_counts_without_writing(db, seed):
    stats = import_price_rows(db, [
        {"vendor_ref": "HAIR01", "description": "Cut", "price": 99},
        {"vendor_ref": "HAIR01", "description": "Perm", "price": 30},
    ], dry_run=True)

    assert (stats.created, stats.updated) == (1, 1)
    assert len(_prices(db, seed.vendor.id)) == 2
    cut = next(p for p in _prices(db, seed.vendor.id) if p.description == "Cut")
    assert cut.price == Decimal("12.50")


def test_import_reactivates_matched_items(db, seed):
    seed.cut.is_active = False
    db.commit()
    import_price_rows(db, [{"vendor_ref": "HAIR01", "description": "Cut", "price": 12.5}])
    db.commit()
    db.refresh(seed.cut)
    assert seed.cut.is_active is True


def test_import_parses_excel_serial_dates(db, seed):
    # 45383 is 2024-04-01 in the 1900 date system
    import_price_rows(db, [{"vendor_ref": "HAIR01", "description": "Perm", "price": 30, "valid_from": 45383}])
    db.commit()
    perm = next(p for p in _prices(db, seed.vendor.id) if p.description == "Perm")
    assert perm.valid_from == date(2024, 4, 1)


# ---------------------------------------------------------------------------
# seed_admin
# ---------------------------------------------------------------------------

def test_seed_admin_on_all_homes(db, seed):
    user, count = seed_admin(db, "oid-admin", "admin@example.com")
    assert count == 2
    roles = db.query(UserHomeRole).filter(UserHomeRole.user_id == user.id).all()
    assert {r.role for r in roles} == {"Admin"}


def test_seed_admin_on_listed_homes_replaces_roles(db, seed):
    seed_admin(db, "oid-admin")
    user, count = seed_admin(db, "oid-admin", home_ids=[seed.other_home.id])
    assert count == 1
    assert [r.care_home_id for r in db.query(UserHomeRole).filter(UserHomeRole.user_id == user.id)] == [
        seed.other_home.id
    ]
    assert db.query(AppUser).count() == 1


def test_seed_admin_requires_oid_and_homes(db):
    with pytest.raises(ValueError, match="ADMIN_OID"):
        seed_admin(db, "")
    with pytest.raises(ValueError, match="No care homes"):
        seed_admin(db, "oid-admin")
    assert db.query(CareHome).count() == 0
