from decimal import Decimal
from types import SimpleNamespace

import pytest

from sundries.services.billing_math import compute_totals, line_total, money2
from sundries.services.consent_categories import (
    CONSENT_FIELDS,
    DEFAULT_CONSENT_FIELD,
    consent_field_for_trade,
    consent_field_for_vendor,
)


# ---------------------------------------------------------------------------
# compute_totals
# ---------------------------------------------------------------------------

def test_compute_totals_mixed_vat_rates():
    items = [
        {"qty": 2, "unitPrice": 10, "vatRate": 20},
        {"qty": 1, "unitPrice": 5, "vatRate": 0},
    ]
    totals = compute_totals(items)
    assert totals == {
        "subtotal": Decimal("25.00"),
        "vat_total": Decimal("4.00"),
        "total": Decimal("29.00"),
    }


def test_compute_totals_accepts_objects_with_snake_case():
    items = [SimpleNamespace(qty=Decimal("3"), unit_price=Decimal("1.10"), vat_rate=Decimal("20"))]
    totals = compute_totals(items)
    assert totals["subtotal"] == Decimal("3.30")
    assert totals["vat_total"] == Decimal("0.66")
    assert totals["total"] == Decimal("3.96")


def test_compute_totals_rounds_once_at_the_end():
    # three lines of 0.005 VAT each: per-line rounding would give 0.03
    items = [{"qty": 1, "unit_price": "0.05", "vat_rate": 10}] * 3
    assert compute_totals(items)["vat_total"] == Decimal("0.02")


def test_compute_totals_empty():
    assert compute_totals([])["total"] == Decimal("0.00")


def test_line_total_includes_vat():
    assert line_total(2, "10.00", 20) == Decimal("24.00")


def test_money2_rounds_half_up():
    assert money2("2.345") == Decimal("2.35")
    assert money2(None) == Decimal("0.00")


# ---------------------------------------------------------------------------
# trade contact -> consent flag
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "trade, expected",
    [
        ("Hairdresser", "hairdressers_consent"),
        ("HAIR & BEAUTY", "hairdressers_consent"),
        ("Chiropodist", "chiropody_consent"),
        ("Podiatry", "chiropody_consent"),
        ("Newspaper delivery", "newspapers_consent"),
        ("Mobile shop", "shop_consent"),
        ("Optician", DEFAULT_CONSENT_FIELD),
        ("", DEFAULT_CONSENT_FIELD),
        (None, DEFAULT_CONSENT_FIELD),
    ],
)
def test_consent_field_for_trade(trade, expected):
    assert consent_field_for_trade(trade) == expected


def test_consent_field_precedence_is_fixed():
    # both keywords present: the earlier table entry wins
    assert consent_field_for_trade("hair and chiropody") == "hairdressers_consent"


def test_every_mapping_resolves_to_a_real_flag():
    for trade in ("hair", "chiropod", "podiatr", "newspaper", "shop", "anything"):
        assert consent_field_for_trade(trade) in CONSENT_FIELDS


def test_consent_field_for_vendor_reads_trade_contact():
    assert consent_field_for_vendor(SimpleNamespace(trade_contact="Chiropodist")) == "chiropody_consent"
    assert consent_field_for_vendor(object()) == DEFAULT_CONSENT_FIELD
