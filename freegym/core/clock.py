"""Time helpers: every stored timestamp is UTC"""
from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from freegym.core.config import GYM_TIMEZONE


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive values read back from stores that drop tzinfo"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_to_utc(day: date, at: time, tz_name: str = GYM_TIMEZONE) -> datetime:
    """A wall-clock time at the gym, as a UTC instant"""
    tz = timezone.utc if tz_name.upper() == "UTC" else ZoneInfo(tz_name)
    return datetime.combine(day, at, tzinfo=tz).astimezone(timezone.utc)
