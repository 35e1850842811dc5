from datetime import date, datetime

import pytest

from sundries.core.errors import NotFoundError, ValidationError
from sundries.models import ResidentConsent, VisitSheet
from sundries.services.reconciliation import Selection, reconcile_visit
from sundries.services.visit_sheets import (
    build_print_payload,
    consenting_residents,
    create_or_get_visit_sheet,
    list_visit_sheets,
    sign_visit_sheet,
)

DAY = date(2024, 3, 4)


def test_create_or_get_returns_the_same_sheet(db, seed):
    first = create_or_get_visit_sheet(db,
                                      care_home_id=seed.home.id,
                                      vendor_id=seed.vendor.id,
                                      visit_date=DAY,
                                      created_by="carer@example.com")
    second = create_or_get_visit_sheet(db,
                                       care_home_id=seed.home.id,
                                       vendor_id=seed.vendor.id,
                                       visit_date=DAY)
    assert first.id == second.id
    assert first.status == "Draft"
    assert db.query(VisitSheet).count() == 1


def test_create_for_unknown_vendor_is_not_found(db, seed):
    with pytest.raises(NotFoundError):
        create_or_get_visit_sheet(db,
                                  care_home_id=seed.home.id,
                                  vendor_id=9999,
                                  visit_date=DAY)


def test_sign_is_one_way(db, seed):
    sheet = create_or_get_visit_sheet(db,
                                      care_home_id=seed.home.id,
                                      vendor_id=seed.vendor.id,
                                      visit_date=DAY)
    signed = sign_visit_sheet(db, sheet.id, signed_at=datetime(2024, 3, 4, 16))
    assert signed.status == "Signed"
    assert signed.signed_at == datetime(2024, 3, 4, 16)

    with pytest.raises(ValidationError, match="already signed"):
        sign_visit_sheet(db, sheet.id)
    assert db.get(VisitSheet, sheet.id).signed_at == datetime(2024, 3, 4, 16)


def test_list_filters_by_status(db, seed):
    sheet = create_or_get_visit_sheet(db,
                                      care_home_id=seed.home.id,
                                      vendor_id=seed.vendor.id,
                                      visit_date=DAY)
    create_or_get_visit_sheet(db,
                              care_home_id=seed.home.id,
                              vendor_id=seed.vendor.id,
                              visit_date=date(2024, 3, 11))
    sign_visit_sheet(db, sheet.id)

    assert [s.id for s in list_visit_sheets(db, status="Signed")] == [sheet.id]
    assert len(list_visit_sheets(db, care_home_id=seed.home.id)) == 2


def test_consenting_residents_in_natural_room_order(db, seed):
    former = ResidentConsent(care_home_id=seed.home.id,
                             room_number="3",
                             full_name="Moved Out",
                             hairdressers_consent=True,
                             current_resident=False)
    db.add(former)
    db.commit()

    rows = consenting_residents(db, seed.home.id, "hairdressers_consent")
    assert [r.room_number for r in rows] == ["1", "2", "10"]


def test_print_payload(db, seed):
    c10, c2, _ = seed.consents
    reconcile_visit(db,
                    care_home_id=seed.home.id,
                    vendor_id=seed.vendor.id,
                    day=DAY,
                    selections=[Selection(c10.id, seed.cut.id), Selection(c2.id, seed.blow.id)])

    payload = build_print_payload(db,
                                  care_home_id=seed.home.id,
                                  vendor_id=seed.vendor.id,
                                  visit_date=DAY)

    assert payload["consent_field"] == "hairdressers_consent"
    assert payload["status"] == "Draft"
    assert payload["visited_at"] == datetime(2024, 3, 4)
    assert [r["room_number"] for r in payload["residents"]] == ["1", "2", "10"]
    assert [p["description"] for p in payload["price_items"]] == ["Blow dry", "Cut"]
    assert sorted((s["resident_id"], s["price_item_id"]) for s in payload["selections"]) == sorted([
        (c10.id, seed.cut.id),
        (c2.id, seed.blow.id),
    ])


def test_print_payload_hides_inactive_price_items(db, seed):
    seed.blow.is_active = False
    db.commit()
    payload = build_print_payload(db,
                                  care_home_id=seed.home.id,
                                  vendor_id=seed.vendor.id,
                                  visit_date=DAY)
    assert [p["description"] for p in payload["price_items"]] == ["Cut"]
