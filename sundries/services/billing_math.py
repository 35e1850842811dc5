# sundries/services/billing_math.py
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Mapping


def D(x) -> Decimal:
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x if x is not None else 0))


def money2(x) -> Decimal:
    return D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _field(item: Any, *names: str):
    for name in names:
        if isinstance(item, Mapping) and name in item:
            return item[name]
        if hasattr(item, name):
            return getattr(item, name)
    return None


def line_total(qty, unit_price, vat_rate) -> Decimal:
    """qty * unit_price * (1 + vat_rate/100), rounded for storage."""
    net = D(qty) * D(unit_price)
    return money2(net + net * D(vat_rate) / Decimal("100"))


def compute_totals(items: Iterable[Any]) -> Dict[str, Decimal]:
    """
    subtotal = sum(qty * unit_price)
    vat_total = sum(qty * unit_price * vat_rate / 100)
    total = subtotal + vat_total

    Items may be dicts or objects, with either snake_case or camelCase keys.
    Accumulation is exact; rounding to 2dp happens once at the end.
    """
    subtotal = Decimal("0")
    vat_total = Decimal("0")
    for item in items:
        qty = D(_field(item, "qty"))
        unit_price = D(_field(item, "unit_price", "unitPrice"))
        vat_rate = D(_field(item, "vat_rate", "vatRate"))

        line = qty * unit_price
        subtotal += line
        vat_total += line * vat_rate / Decimal("100")

    return {
        "subtotal": money2(subtotal),
        "vat_total": money2(vat_total),
        "total": money2(subtotal + vat_total),
    }
