# sundries/services/carehq.py
"""
CareHQ roster: read-only paged client, room/resident flattening, and the
two writes that follow from it (roster sync and consent bootstrap).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import requests
from carehq import APIClient
from carehq import exceptions as carehq_exceptions
from sqlalchemy.orm import Session

from sundries.core.config import settings
from sundries.core.errors import UpstreamError
from sundries.models import CareHome, CareHqResident, ResidentConsent
from sundries.utils.text import clean_name, natural_key
from sundries.utils.timezone import now_local, today_local

logger = logging.getLogger(__name__)

VACANT_NAME = "*Vacant*"


class CareHqClient:
    """Paged reads over the CareHQ SDK client, which signs each request."""

    def __init__(
        self,
        account_id: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        page_size: Optional[int] = None,
        api_client: Optional[Any] = None,
    ):
        self.account_id = account_id or settings.CAREHQ_ACCOUNT_ID
        self.api_key = api_key or settings.CAREHQ_API_KEY
        self.api_secret = api_secret or settings.CAREHQ_API_SECRET
        if not (self.account_id and self.api_key and self.api_secret):
            raise UpstreamError(
                "CAREHQ_ACCOUNT_ID, CAREHQ_API_KEY and CAREHQ_API_SECRET must be set")

        self.base_url = (base_url or settings.CAREHQ_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.CAREHQ_TIMEOUT
        self.page_size = page_size or settings.CAREHQ_PAGE_SIZE
        self.api_client = api_client or APIClient(self.account_id,
                                                  self.api_key,
                                                  self.api_secret,
                                                  api_base_url=self.base_url,
                                                  timeout=self.timeout)

    def get(self, resource: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            return self.api_client("GET", resource.strip("/"), params=dict(params or {}))
        except carehq_exceptions.APIException as e:
            logger.error("CareHQ %s failed: %s", resource, e)
            raise UpstreamError(f"CareHQ request failed for {resource}: {e}") from e
        except requests.RequestException as e:
            raise UpstreamError(f"CareHQ request failed: {e}") from e
        except ValueError as e:
            raise UpstreamError(f"CareHQ returned invalid JSON for {resource}") from e

    def fetch_all(self, resource: str,
                  params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Walk page=1.. until a page comes back empty."""
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            body = self.get(resource, {
                **(params or {}), "per_page": self.page_size,
                "page": page
            })
            page_items = (body or {}).get("items") or []
            if not page_items:
                break
            items.extend(page_items)
            page += 1
        return items


@dataclass
class RosterEntry:
    carehq_room_id: str
    carehq_location_id: Optional[str]
    care_home_name: str
    room_number: str
    full_name: Optional[str]
    account_code: Optional[str]
    service_user_id: Optional[str]

    @property
    def is_vacant(self) -> bool:
        return not self.full_name


def fetch_carehq_residents(client: Any, *, on_day: Optional[date] = None) -> List[RosterEntry]:
    """
    One entry per room. A room is occupied by the service user of its first
    non-cancelled booking starting on `on_day`; otherwise it is vacant.
    """
    on_day = on_day or today_local()

    locations = client.fetch_all("locations", {"attributes": ["_id", "name"]})
    rooms = client.fetch_all("rooms", {"attributes": ["_id", "name_no", "location"]})
    service_users = client.fetch_all(
        "service-users", {
            "attributes": ["_id", "first_name", "last_name", "account_code"],
            "filters-status": "active",
        })
    bookings = client.fetch_all(
        "bookings", {
            "attributes": ["_id", "service_user", "room"],
            "filters-cancelled": "no",
            "filters-booking_type": "service_user",
            "filters-start_date": on_day.isoformat(),
        })

    location_names = {x["_id"]: x.get("name") for x in locations}
    users_by_id = {x["_id"]: x for x in service_users}
    booking_by_room: Dict[str, Dict[str, Any]] = {}
    for b in bookings:
        room_id = b.get("room")
        if room_id and room_id not in booking_by_room:
            booking_by_room[room_id] = b

    out: List[RosterEntry] = []
    for room in rooms:
        booking = booking_by_room.get(room["_id"])
        user = users_by_id.get(booking.get("service_user")) if booking else None
        full_name = clean_name(user.get("first_name"), user.get("last_name")) if user else None
        out.append(
            RosterEntry(
                carehq_room_id=room["_id"],
                carehq_location_id=room.get("location"),
                care_home_name=location_names.get(room.get("location")) or "Unknown",
                room_number=room.get("name_no") or "",
                full_name=full_name,
                account_code=(user or {}).get("account_code"),
                service_user_id=(user or {}).get("_id"),
            ))

    out.sort(key=lambda r: (r.care_home_name, natural_key(r.room_number)))
    return out


def sync_carehq_residents(db: Session, entries: Iterable[RosterEntry],
                          synced_at: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Upsert roster rows by room id. Rooms whose location does not match a
    care home name (case-insensitive) are skipped. One commit for the batch.
    """
    entries = list(entries)
    synced_at = synced_at or now_local()
    homes = {(h.name or "").lower(): h.id for h in db.query(CareHome).all()}
    existing = {r.carehq_room_id: r for r in db.query(CareHqResident).all()}

    synced = skipped = 0
    try:
        for e in entries:
            home_id = homes.get(e.care_home_name.lower())
            if not home_id:
                skipped += 1
                continue

            row = existing.get(e.carehq_room_id)
            if not row:
                row = CareHqResident(carehq_room_id=e.carehq_room_id)
                db.add(row)
                existing[e.carehq_room_id] = row

            row.care_home_id = home_id
            row.carehq_location_id = e.carehq_location_id
            row.room_number = e.room_number
            row.full_name = e.full_name
            row.account_code = e.account_code
            row.service_user_id = e.service_user_id
            row.is_vacant = e.is_vacant
            row.last_synced_at = synced_at
            synced += 1

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("CareHQ sync: synced=%d skipped=%d total=%d", synced, skipped,
                len(entries))
    return {
        "synced": synced,
        "skipped": skipped,
        "total": len(entries),
        "last_synced_at": synced_at,
    }


def bootstrap_resident_consents(db: Session, care_home_id: int) -> Dict[str, Any]:
    """
    Make the consent register follow the roster: a consent record per
    occupied room (current_resident=True), and current_resident=False for
    records whose room is no longer occupied. Consent flags are untouched.
    """
    roster = (db.query(CareHqResident).filter(
        CareHqResident.care_home_id == care_home_id).all())
    active = [r for r in roster if not r.is_vacant and r.full_name != VACANT_NAME]
    active_ids = {r.id for r in active}

    consents = {
        c.carehq_resident_id: c
        for c in db.query(ResidentConsent).filter(
            ResidentConsent.carehq_resident_id.in_(active_ids)).all()
    } if active_ids else {}

    deactivated = 0
    try:
        for r in active:
            c = consents.get(r.id)
            if not c:
                c = ResidentConsent(carehq_resident_id=r.id, care_home_id=care_home_id)
                db.add(c)
            c.room_number = r.room_number
            c.full_name = r.full_name
            c.account_code = r.account_code
            c.service_user_id = r.service_user_id
            c.current_resident = True

        stale = db.query(ResidentConsent).filter(
            ResidentConsent.care_home_id == care_home_id,
            ResidentConsent.current_resident.is_(True),
        )
        for c in stale.all():
            if c.carehq_resident_id not in active_ids:
                c.current_resident = False
                deactivated += 1

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Consent bootstrap home=%s: active=%d deactivated=%d", care_home_id,
                len(active), deactivated)
    return {
        "care_home_id": care_home_id,
        "active_residents": len(active),
        "total_residents": len(roster),
        "deactivated": deactivated,
    }
