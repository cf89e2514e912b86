from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Timestamps may arrive as datetimes, bare dates or ISO8601 strings
TimestampInput = Union[date, datetime, str]


# PUBLIC_INTERFACE
def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging once for the service process.

    Safe to call repeatedly: basicConfig is a no-op when handlers already exist,
    so only the level is refreshed.
    """
    logging.basicConfig(format=LOG_FORMAT, level=level)
    logging.getLogger().setLevel(level)


# PUBLIC_INTERFACE
def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def as_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC. Naive values are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# PUBLIC_INTERFACE
def parse_timestamp(value: Optional[TimestampInput]) -> Optional[datetime]:
    """
    Normalize a stored timestamp into an aware UTC datetime.

    - datetime (including Firestore's DatetimeWithNanoseconds): converted to UTC.
    - date: promoted to midnight UTC.
    - str: parsed as ISO8601 datetime, falling back to an ISO8601 date at midnight.

    Raises:
        ValueError: for unparseable strings or unsupported types.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return as_utc(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, str):
        s = value.strip()
        try:
            return as_utc(datetime.fromisoformat(s))
        except ValueError:
            try:
                d = date.fromisoformat(s)
            except ValueError as e:
                raise ValueError(
                    "Invalid timestamp format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e
            return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)

    raise ValueError("Invalid type for timestamp; expected date, datetime, or ISO8601 string.")
