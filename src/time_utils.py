"""Timestamp helpers shared by the scheduler and the missed-dose digest.

All instants inside the core are timezone-aware UTC datetimes. Local
timezones only appear at the edges: when parsing naive input and when
rendering display keys for caregivers.
"""

from __future__ import annotations

import zoneinfo
from datetime import UTC, datetime

BUCKET_KEY_FORMAT = "%Y-%m-%d %H:%M"


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def to_utc(value: datetime, assume_tz: str = "UTC") -> datetime:
    """Normalise *value* to UTC.

    Naive datetimes are interpreted in *assume_tz* (an IANA name).
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=zoneinfo.ZoneInfo(assume_tz))
    return value.astimezone(UTC)


def parse_timestamp(text: str, assume_tz: str = "UTC") -> datetime:
    """Parse an ISO 8601 string into an aware UTC datetime."""
    return to_utc(datetime.fromisoformat(text), assume_tz)


def bucket_time(value: datetime) -> datetime:
    """Truncate an aware datetime to the minute it falls in."""
    return value.replace(second=0, microsecond=0)


def format_bucket_key(value: datetime, tz: str = "UTC") -> str:
    """Render a bucket timestamp as ``YYYY-MM-DD HH:MM`` in *tz*."""
    return value.astimezone(zoneinfo.ZoneInfo(tz)).strftime(BUCKET_KEY_FORMAT)
