"""Time helpers — all service code asks here for "now" and "today"."""
from datetime import date, datetime, timezone
from typing import Optional

import pytz

from evalgate.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_today(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> date:
    """Calendar date of ``now`` in the given IANA zone (default LOCAL_TIMEZONE)."""
    tz = pytz.timezone(tz_name or settings.LOCAL_TIMEZONE)
    return as_utc(now or utcnow()).astimezone(tz).date()


def human_date(value: date) -> str:
    """e.g. 'Monday, March 10, 2025'."""
    return f"{value.strftime('%A, %B')} {value.day}, {value.year}"
