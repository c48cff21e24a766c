"""Datetime utilities for common operations."""

from datetime import datetime, timezone
from functools import lru_cache
from typing import Iterable, Optional
from zoneinfo import ZoneInfo


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to an aware UTC value.

    Naive values are treated as UTC; some backends (SQLite) drop tzinfo on
    the way back out.

    Args:
        dt: Datetime to normalize

    Returns:
        Aware UTC datetime, or None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@lru_cache(maxsize=16)
def get_zone(name: str) -> ZoneInfo:
    """Resolve an IANA timezone name."""
    return ZoneInfo(name)


def to_local(dt: datetime, tz_name: str) -> datetime:
    """Convert a datetime to the given IANA timezone."""
    return ensure_utc(dt).astimezone(get_zone(tz_name))


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Serialize to ISO 8601 in UTC with a trailing Z."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    Raises:
        ValueError: If the value is not a valid ISO 8601 timestamp
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def earliest(values: Iterable[datetime]) -> Optional[datetime]:
    """Return the earliest datetime or None for an empty iterable."""
    return min(values, default=None)


def format_human(dt: datetime, tz_name: str = "UTC") -> str:
    """Format for email bodies, e.g. '6/11/2025, 12:16 PM UTC'."""
    local = to_local(dt, tz_name)
    hour = local.strftime("%I").lstrip("0") or "12"
    return (
        f"{local.month}/{local.day}/{local.year}, "
        f"{hour}:{local.strftime('%M %p')} {local.tzname()}"
    )
