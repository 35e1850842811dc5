# FILE: sundries/utils/timezone.py
from __future__ import annotations

from datetime import datetime, date
from zoneinfo import ZoneInfo

from sundries.core.config import settings


def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def now_local() -> datetime:
    """
    Returns a *naive* datetime in the operator's timezone (TIMEZONE).
    DateTime columns are naive, so the tzinfo is dropped.
    """
    return datetime.now(local_tz()).replace(tzinfo=None)


def today_local() -> date:
    return now_local().date()


def weekday_name(d: date) -> str:
    """'monday' .. 'sunday'"""
    return d.strftime("%A").lower()
