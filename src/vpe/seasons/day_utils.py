"""UTC day boundary utilities for lazy resets and decay."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

SECONDS_PER_DAY = 86_400


def ensure_utc(dt: datetime) -> datetime:
    """Reject naive datetimes and normalise aware ones to UTC."""
    if dt.tzinfo is None:
        msg = "naive datetime is not allowed; pass a UTC-aware value"
        raise ValueError(msg)
    return dt.astimezone(timezone.utc)


def utc_day(dt: datetime) -> date:
    """Calendar day (UTC) containing dt."""
    return ensure_utc(dt).date()


def next_utc_midnight(dt: datetime) -> datetime:
    """Start of the UTC day after dt. Daily caps reset here."""
    return datetime.combine(utc_day(dt) + timedelta(days=1), time.min, tzinfo=timezone.utc)


def whole_days_between(start: datetime, end: datetime) -> int:
    """floor((end - start) in days); 0 when end is not after start."""
    elapsed = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    if elapsed <= 0:
        return 0
    return int(elapsed // SECONDS_PER_DAY)


def age_in_days(created_at: datetime, now: datetime) -> float:
    """Fractional account age in days."""
    return (ensure_utc(now) - ensure_utc(created_at)).total_seconds() / SECONDS_PER_DAY
