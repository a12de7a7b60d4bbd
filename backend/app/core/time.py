"""
Time helpers.

Revenue events carry their timestamp as integer milliseconds since the epoch.
Use these helpers instead of `datetime.utcnow()` / `time.time()` so naive and
aware datetimes never mix and every millisecond value is computed the same way.
"""

from __future__ import annotations

from datetime import datetime, timezone

MS_PER_DAY = 86_400_000


def now_utc() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Coerce a datetime to timezone-aware UTC.

    Naive datetimes are treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    return int(ensure_utc(dt).timestamp() * 1000)


def now_ms() -> int:
    """Current time as milliseconds since the epoch."""
    return to_epoch_ms(now_utc())
