"""
Datetime utilities for Warm Intro Graph services.
"""
from datetime import datetime, timezone
from typing import Optional

from config.relationship_weights import SECONDS_PER_DAY


def make_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware (UTC if naive).

    Args:
        dt: A datetime object that may or may not have timezone info

    Returns:
        The same datetime with UTC timezone if it was naive,
        or the original timezone-aware datetime, or None if input was None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_timestamp(value) -> datetime:
    """Parse an ISO string or datetime into an aware datetime."""
    if isinstance(value, datetime):
        return make_aware(value)
    return make_aware(datetime.fromisoformat(value))


def to_utc_iso(dt: datetime) -> str:
    """Serialize an instant as a UTC ISO-8601 string (stable across zones)."""
    return make_aware(dt).astimezone(timezone.utc).isoformat()


def days_between(now: datetime, then: datetime) -> float:
    """
    Fractional days elapsed from `then` to `now`.

    Negative when `then` is in the future.
    """
    delta = make_aware(now) - make_aware(then)
    return delta.total_seconds() / SECONDS_PER_DAY
