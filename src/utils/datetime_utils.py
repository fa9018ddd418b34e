"""
Centralized datetime and timezone utilities.

Timestamps are stored as naive UTC. Calendar days for time tracking are
ISO "YYYY-MM-DD" strings.
"""

from datetime import datetime, date, timezone
from typing import Optional, Union
import pytz


def utc_now() -> datetime:
    """Current time as naive UTC, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_ms() -> int:
    """Current epoch time in milliseconds (timer start marks)."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def today_iso(now: Optional[datetime] = None) -> str:
    """UTC calendar day of `now` as YYYY-MM-DD."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.date().isoformat()


def to_date_key(value: Union[date, datetime, str]) -> str:
    """Normalize a date, datetime or ISO string to a YYYY-MM-DD key."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).split("T")[0]


def parse_date_key(value: Union[date, datetime, str]) -> date:
    """Parse a YYYY-MM-DD key (or anything to_date_key accepts) to a date."""
    return date.fromisoformat(to_date_key(value))


def is_valid_timezone(name: str) -> bool:
    """Check that a timezone name is a known IANA zone."""
    try:
        pytz.timezone(name)
        return True
    except pytz.UnknownTimeZoneError:
        return False


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
