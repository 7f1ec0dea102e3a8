"""Timestamp helpers shared by the metadata document and query filters."""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Render as ISO-8601 with millisecond precision and a Z suffix.

    Example:
        >>> format_timestamp(datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc))
        '2025-03-01T09:30:00.000Z'
    """
    if value is None:
        return None
    return ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 date or datetime, treating naive input as UTC.

    A bare date ("2025-03-01") means midnight UTC of that day.

    Raises:
        ValueError: If the value is not ISO-8601
    """
    value = value.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(value))


def date_segment(value: datetime) -> str:
    """Directory name for the calendar day of a UTC timestamp (YYYYMMDD)."""
    return ensure_utc(value).strftime("%Y%m%d")


def truncate_to_milliseconds(value: datetime) -> datetime:
    """Drop sub-millisecond precision so values survive a document round trip."""
    value = ensure_utc(value)
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)
