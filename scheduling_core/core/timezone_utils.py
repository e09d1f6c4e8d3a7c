"""
Timezone helpers shared by schemas and services.

Wire format for instants is ISO-8601 UTC with millisecond precision and a
``Z`` suffix (``2025-03-15T09:00:00.000Z``), the shape clients already send
back when they pick a slot.
"""

from datetime import date, datetime, time, timezone

import pytz


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalise a datetime to an aware UTC datetime.

    Naive values are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(timezone.utc)


def to_iso_instant(dt: datetime) -> str:
    """Format an instant as ``YYYY-MM-DDTHH:MM:SS.sssZ``."""
    utc_dt = ensure_utc(dt)
    return utc_dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_dt.microsecond // 1000:03d}Z"


def parse_iso_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant (``Z`` or explicit offset) into aware UTC."""
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(raw))


def parse_local_time(value: str) -> time:
    """Parse a local ``HH:mm`` wall-clock string."""
    try:
        hours_str, minutes_str = value.strip().split(":")[:2]
        return time(int(hours_str), int(minutes_str))
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid local time {value!r}; expected HH:mm") from exc


def day_index(day: date) -> int:
    """Weekday index with Sunday as 0, matching stored weekly schedules."""
    return (day.weekday() + 1) % 7


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def format_hhmm(total_minutes: int) -> str:
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"
