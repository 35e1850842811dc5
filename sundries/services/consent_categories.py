# sundries/services/consent_categories.py
from __future__ import annotations

from typing import Any, Optional, Tuple

CONSENT_FIELDS: Tuple[str, ...] = (
    "sundry_consent_received",
    "newspapers_consent",
    "chiropody_consent",
    "hairdressers_consent",
    "shop_consent",
    "other_consent",
)

DEFAULT_CONSENT_FIELD = "sundry_consent_received"

# (keyword in vendor trade contact, consent flag); first match wins.
CONSENT_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ("hair", "hairdressers_consent"),
    ("chiropod", "chiropody_consent"),
    ("podiatr", "chiropody_consent"),
    ("newspaper", "newspapers_consent"),
    ("shop", "shop_consent"),
)


def consent_field_for_trade(trade_contact: Optional[str]) -> str:
    """Map a vendor trade/contact category to exactly one consent flag."""
    text = (trade_contact or "").strip().lower()
    for keyword, field in CONSENT_KEYWORDS:
        if keyword in text:
            return field
    return DEFAULT_CONSENT_FIELD


def consent_field_for_vendor(vendor: Any) -> str:
    return consent_field_for_trade(getattr(vendor, "trade_contact", None))
