"""Bulk visit reconciliation against the sale item ledger."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from sundries.core.errors import NotFoundError, ValidationError
from sundries.models import AuditLog, ResidentConsent, SaleItem
from sundries.services import reconciliation
from sundries.services.reconciliation import (
    Selection,
    reconcile_visit,
    resolve_roster_resident_id,
)

DAY = date(2024, 3, 4)


def _sales(db, home_id, vendor_id):
    return (db.query(SaleItem).filter(SaleItem.care_home_id == home_id,
                                      SaleItem.vendor_id == vendor_id).order_by(
                                          SaleItem.carehq_resident_id,
                                          SaleItem.description).all())


def _snapshot(rows):
    return sorted((r.carehq_resident_id, r.description, r.price) for r in rows)


def test_reconcile_creates_one_sale_item_per_selection(db, seed):
    c10, c2, _ = seed.consents
    result = reconcile_visit(db,
                             care_home_id=seed.home.id,
                             vendor_id=seed.vendor.id,
                             day=DAY,
                             selections=[
                                 Selection(c10.id, seed.cut.id),
                                 Selection(c10.id, seed.blow.id),
                                 Selection(c2.id, seed.cut.id),
                             ])
    assert (result.created, result.deleted) == (3, 0)

    rows = _sales(db, seed.home.id, seed.vendor.id)
    assert len(rows) == 3
    assert all(r.date == datetime(2024, 3, 4) for r in rows)
    assert all(not r.invoiced and r.invoice_number is None for r in rows)


def test_reconcile_twice_is_idempotent(db, seed):
    c10, c2, _ = seed.consents
    selections = [Selection(c10.id, seed.cut.id), Selection(c2.id, seed.blow.id)]
    kwargs = dict(care_home_id=seed.home.id, vendor_id=seed.vendor.id, day=DAY)

    reconcile_visit(db, selections=selections, **kwargs)
    first = _snapshot(_sales(db, seed.home.id, seed.vendor.id))

    result = reconcile_visit(db, selections=selections, **kwargs)
    second = _snapshot(_sales(db, seed.home.id, seed.vendor.id))

    assert first == second
    assert len(second) == 2
    assert (result.created, result.deleted) == (2, 2)


def test_subset_only_touches_residents_in_scope(db, seed):
    c10, c2, c1 = seed.consents
    kwargs = dict(care_home_id=seed.home.id, vendor_id=seed.vendor.id, day=DAY)
    reconcile_visit(db,
                    selections=[
                        Selection(c10.id, seed.cut.id),
                        Selection(c2.id, seed.cut.id),
                        Selection(c1.id, seed.cut.id),
                    ],
                    **kwargs)

    # resident in room 10 now only had a blow dry; others are not in scope
    reconcile_visit(db, selections=[Selection(c10.id, seed.blow.id)], **kwargs)

    rows = _sales(db, seed.home.id, seed.vendor.id)
    by_roster = {}
    for r in rows:
        by_roster.setdefault(r.carehq_resident_id, []).append(r.description)

    r10, r2, r1 = seed.rosters
    assert by_roster[r10.id] == ["Blow dry"]
    assert by_roster[r2.id] == ["Cut"]
    assert by_roster[r1.id] == ["Cut"]


def test_unticked_resident_in_scope_is_cleared(db, seed):
    c10, c2, _ = seed.consents
    kwargs = dict(care_home_id=seed.home.id, vendor_id=seed.vendor.id, day=DAY)
    reconcile_visit(db,
                    selections=[Selection(c10.id, seed.cut.id), Selection(c2.id, seed.cut.id)],
                    **kwargs)

    result = reconcile_visit(db,
                             selections=[Selection(c10.id, seed.cut.id)],
                             scope_resident_consent_ids=[c10.id, c2.id],
                             **kwargs)

    rows = _sales(db, seed.home.id, seed.vendor.id)
    assert [r.carehq_resident_id for r in rows] == [seed.rosters[0].id]
    assert result.deleted == 2


def test_other_days_are_untouched(db, seed):
    c10 = seed.consents[0]
    reconcile_visit(db,
                    care_home_id=seed.home.id,
                    vendor_id=seed.vendor.id,
                    day=date(2024, 3, 3),
                    selections=[Selection(c10.id, seed.cut.id)])
    reconcile_visit(db,
                    care_home_id=seed.home.id,
                    vendor_id=seed.vendor.id,
                    day=DAY,
                    selections=[Selection(c10.id, seed.blow.id)])
    assert len(_sales(db, seed.home.id, seed.vendor.id)) == 2


def test_description_and_price_are_copied_at_creation(db, seed):
    c10 = seed.consents[0]
    reconcile_visit(db,
                    care_home_id=seed.home.id,
                    vendor_id=seed.vendor.id,
                    day=DAY,
                    selections=[Selection(c10.id, seed.cut.id)])

    seed.cut.price = Decimal("99.00")
    seed.cut.description = "Restyle"
    db.commit()

    row = _sales(db, seed.home.id, seed.vendor.id)[0]
    assert row.description == "Cut"
    assert row.price == Decimal("12.50")


def test_invoiced_items_block_reconciliation(db, seed):
    c10 = seed.consents[0]
    kwargs = dict(care_home_id=seed.home.id, vendor_id=seed.vendor.id, day=DAY)
    reconcile_visit(db, selections=[Selection(c10.id, seed.cut.id)], **kwargs)
    for r in _sales(db, seed.home.id, seed.vendor.id):
        r.invoiced = True
        r.invoice_number = "HAIR01-20240304"
    db.commit()

    with pytest.raises(ValidationError):
        reconcile_visit(db, selections=[Selection(c10.id, seed.blow.id)], **kwargs)

    rows = _sales(db, seed.home.id, seed.vendor.id)
    assert [r.description for r in rows] == ["Cut"]


def test_empty_request_is_rejected(db, seed):
    with pytest.raises(ValidationError, match="No items"):
        reconcile_visit(db,
                        care_home_id=seed.home.id,
                        vendor_id=seed.vendor.id,
                        day=DAY,
                        selections=[])


def test_unresolvable_resident_aborts_before_any_write(db, seed):
    c10 = seed.consents[0]
    orphan = ResidentConsent(care_home_id=seed.home.id,
                             full_name="No Link",
                             current_resident=True)
    db.add(orphan)
    db.commit()

    with pytest.raises(NotFoundError, match="not linked to CareHQ"):
        reconcile_visit(db,
                        care_home_id=seed.home.id,
                        vendor_id=seed.vendor.id,
                        day=DAY,
                        selections=[Selection(c10.id, seed.cut.id),
                                    Selection(orphan.id, seed.cut.id)])

    assert _sales(db, seed.home.id, seed.vendor.id) == []
    assert db.query(AuditLog).count() == 0


def test_failure_during_write_keeps_the_day_unchanged(db, seed, monkeypatch):
    c10, c2, _ = seed.consents
    kwargs = dict(care_home_id=seed.home.id, vendor_id=seed.vendor.id, day=DAY)
    reconcile_visit(db, selections=[Selection(c10.id, seed.cut.id)], **kwargs)
    before = _snapshot(_sales(db, seed.home.id, seed.vendor.id))

    def broken_audit(*args, **kwargs):
        raise RuntimeError("audit table unavailable")

    monkeypatch.setattr(reconciliation, "log_audit", broken_audit)
    with pytest.raises(RuntimeError):
        reconcile_visit(db,
                        selections=[Selection(c10.id, seed.blow.id), Selection(c2.id, seed.blow.id)],
                        **kwargs)

    rows = _sales(db, seed.home.id, seed.vendor.id)
    assert [r.description for r in rows] == ["Cut"]
    assert _snapshot(rows) == before


def test_inactive_price_item_is_not_found(db, seed):
    seed.blow.is_active = False
    db.commit()
    with pytest.raises(NotFoundError):
        reconcile_visit(db,
                        care_home_id=seed.home.id,
                        vendor_id=seed.vendor.id,
                        day=DAY,
                        selections=[Selection(seed.consents[0].id, seed.blow.id)])


def test_reconcile_writes_one_audit_row(db, seed):
    reconcile_visit(db,
                    care_home_id=seed.home.id,
                    vendor_id=seed.vendor.id,
                    day=DAY,
                    selections=[Selection(seed.consents[0].id, seed.cut.id)],
                    user_id=7)
    log = db.query(AuditLog).one()
    assert log.action == "RECONCILE"
    assert log.user_id == 7
    assert log.new_values["count"] == 1


# ---------------------------------------------------------------------------
# consent -> roster resolution
# ---------------------------------------------------------------------------

def test_resolution_prefers_direct_link(db, seed):
    c10 = seed.consents[0]
    assert resolve_roster_resident_id(db, c10.id, seed.home.id) == seed.rosters[0].id


def test_resolution_falls_back_to_account_code(db, seed):
    unlinked = ResidentConsent(care_home_id=seed.home.id,
                               account_code="AC02",
                               current_resident=True)
    db.add(unlinked)
    db.commit()
    assert resolve_roster_resident_id(db, unlinked.id, seed.home.id) == seed.rosters[1].id


def test_account_code_fallback_stays_within_the_care_home(db, seed):
    unlinked = ResidentConsent(care_home_id=seed.other_home.id,
                               account_code="AC02",
                               current_resident=True)
    db.add(unlinked)
    db.commit()
    with pytest.raises(NotFoundError, match="not linked to CareHQ"):
        resolve_roster_resident_id(db, unlinked.id, seed.other_home.id)


def test_resolution_without_link_or_code_fails(db, seed):
    unlinked = ResidentConsent(care_home_id=seed.home.id, current_resident=True)
    db.add(unlinked)
    db.commit()
    with pytest.raises(NotFoundError, match="not linked to CareHQ"):
        resolve_roster_resident_id(db, unlinked.id, seed.home.id)


def test_consent_from_another_home_is_rejected(db, seed):
    with pytest.raises(ValidationError, match="another care home"):
        resolve_roster_resident_id(db, seed.consents[0].id, seed.other_home.id)


def test_missing_consent_is_not_found(db, seed):
    with pytest.raises(NotFoundError):
        resolve_roster_resident_id(db, 9999, seed.home.id)
