# sundries/scripts/import_prices.py
"""
Load a vendor price list workbook into price_items.

Expected columns on the first sheet (header names are normalised, see
HEADER_ALIASES): vendorRef, itemDescription, price, accountCode,
priceValidFrom.

Rows are matched on the exact (vendor, description, valid_from) triple;
a match is updated in place and re-activated, anything else is created.
No "latest valid_from" resolution happens here.
"""
from __future__ import annotations

import argparse
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from openpyxl import load_workbook
from openpyxl.utils.datetime import from_excel
from sqlalchemy.orm import Session

from sundries.core.log import setup_logging
from sundries.models import PriceItem, Vendor
from sundries.services.billing_math import money2

logger = logging.getLogger("sundries.scripts.import_prices")

DEFAULT_PATH = Path("..") / "DataImport" / "prices.xlsx"

HEADER_ALIASES = {
    "vendorref": "vendor_ref",
    "vendor_ref": "vendor_ref",
    "vendor": "vendor_ref",
    "itemdescription": "description",
    "item_description": "description",
    "description": "description",
    "price": "price",
    "accountcode": "account_code",
    "account_code": "account_code",
    "pricevalidfrom": "valid_from",
    "price_valid_from": "valid_from",
    "valid_from": "valid_from",
}

NA_SET = {"", "-", "na", "n/a", "null", "none"}


def _norm_header(h: Any) -> str:
    s = ("" if h is None else str(h)).strip().lower()
    s = s.replace("﻿", "")
    s = re.sub(r"\s+", "_", s)
    return HEADER_ALIASES.get(s, s)


def _text(v: Any) -> str:
    if v is None:
        return ""
    s = str(v).strip()
    return "" if s.lower() in NA_SET else s


def _parse_price(v: Any) -> Optional[Decimal]:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float, Decimal)):
        return Decimal(str(v))
    s = _text(v).replace(",", "").lstrip("£").strip()
    if not s:
        return None
    try:
        return Decimal(s)
    except InvalidOperation:
        return None


def _parse_date(v: Any) -> Optional[date]:
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if isinstance(v, (int, float)):
        # Excel serial day number
        return from_excel(v).date()
    s = _text(v)
    for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


@dataclass
class ImportStats:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    account_code_fallback: int = 0
    missing_vendors: Set[str] = field(default_factory=set)


def read_rows(path: Path) -> List[Dict[str, Any]]:
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0] if wb.worksheets else None
        if ws is None:
            raise ValueError("No sheets found in prices workbook")
        rows = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()

    if not rows:
        return []
    headers = [_norm_header(h) for h in rows[0]]
    out: List[Dict[str, Any]] = []
    for r in rows[1:]:
        out.append({h: (r[j] if j < len(r) else None) for j, h in enumerate(headers) if h})
    return out


def import_price_rows(db: Session, rows: List[Dict[str, Any]], *, dry_run: bool = False) -> ImportStats:
    """Upsert price items; blank vendor refs inherit the previous row's vendor."""
    stats = ImportStats()
    last_ref = ""

    for row in rows:
        vendor_ref = _text(row.get("vendor_ref"))
        account_code = _text(row.get("account_code"))
        resolved_ref = vendor_ref or account_code or last_ref
        description = _text(row.get("description"))
        price = _parse_price(row.get("price"))
        valid_from = _parse_date(row.get("valid_from"))

        if resolved_ref:
            last_ref = resolved_ref

        if not resolved_ref or not description or price is None:
            stats.skipped += 1
            continue

        vendor = db.query(Vendor).filter(Vendor.account_ref == resolved_ref).first()
        if not vendor:
            stats.missing_vendors.add(resolved_ref)
            stats.skipped += 1
            continue
        if not vendor_ref and account_code:
            stats.account_code_fallback += 1

        q = db.query(PriceItem).filter(
            PriceItem.vendor_id == vendor.id,
            PriceItem.description == description,
        )
        if valid_from is None:
            q = q.filter(PriceItem.valid_from.is_(None))
        else:
            q = q.filter(PriceItem.valid_from == valid_from)
        existing = q.first()

        if dry_run:
            if existing:
                stats.updated += 1
            else:
                stats.created += 1
            continue

        if existing:
            existing.price = money2(price)
            existing.valid_from = valid_from
            existing.is_active = True
            stats.updated += 1
        else:
            db.add(
                PriceItem(
                    vendor_id=vendor.id,
                    description=description,
                    price=money2(price),
                    valid_from=valid_from,
                    is_active=True,
                ))
            stats.created += 1
        # later rows may match an item created a few rows above
        db.flush()

    return stats


def run(path: Path, *, dry_run: bool = False) -> ImportStats:
    from sundries.db.session import SessionLocal

    rows = read_rows(path)
    db = SessionLocal()
    try:
        stats = import_price_rows(db, rows, dry_run=dry_run)
        if dry_run:
            db.rollback()
        else:
            db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    logger.info(
        "Prices import complete. created=%s, updated=%s, skipped=%s, missingVendors=%s, accountCodeFallback=%s%s",
        stats.created,
        stats.updated,
        stats.skipped,
        len(stats.missing_vendors),
        stats.account_code_fallback,
        " (dry run)" if dry_run else "",
    )
    if stats.missing_vendors:
        logger.warning("Missing vendorRef values: %s", ", ".join(sorted(stats.missing_vendors)))
    return stats


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Import vendor price items from an .xlsx workbook.")
    parser.add_argument("path", nargs="?", default=str(DEFAULT_PATH), help="Workbook path")
    parser.add_argument("--dry-run", action="store_true", help="Count creates/updates without writing")
    args = parser.parse_args(argv)

    setup_logging()
    run(Path(args.path).resolve(), dry_run=args.dry_run)


if __name__ == "__main__":
    main()
