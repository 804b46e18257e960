"""
Time helpers shared by models and services.

All timestamps are persisted as naive UTC values, so every instant that
crosses into the storage layer goes through ``to_naive_utc`` first.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to naive UTC.

    Naive inputs are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso8601(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into naive UTC.

    A trailing ``Z`` is accepted as UTC.

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return to_naive_utc(datetime.fromisoformat(text))


def isoformat_or_none(value: Optional[datetime]) -> Optional[str]:
    """Serialize a stored naive-UTC datetime for JSON responses."""
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc).isoformat()
