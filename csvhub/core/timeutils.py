"""
Timestamp helpers.

Timestamps are stored as naive UTC datetimes so that PostgreSQL and SQLite
compare them the same way.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Convert an aware datetime to naive UTC; naive values are assumed UTC already.

    Examples:
        2024-01-15T12:00:00+02:00 → 2024-01-15 10:00:00
        2024-01-15T12:00:00 → 2024-01-15 12:00:00
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
