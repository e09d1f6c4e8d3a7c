"""
Centralized timezone handling for the scheduling core.

Rules:
- Working hours and webinar times are entered as local wall-clock in the
  tenant's IANA zone
- All comparisons: UTC
- Local -> UTC uses the zone's offset on the target date, never today's
"""

from datetime import date, datetime, time, timezone
import logging
from typing import Union

import pytz

from ..core.exceptions import InvalidTimezoneException
from ..core.timezone_utils import ensure_utc, parse_local_time

logger = logging.getLogger(__name__)

DateInput = Union[date, str]
TimeInput = Union[time, str]


def _as_date(value: DateInput) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid date {value!r}; expected YYYY-MM-DD") from exc


def _as_time(value: TimeInput) -> time:
    return value if isinstance(value, time) else parse_local_time(value)


class TimezoneService:
    """Converts between tenant-local wall-clock and UTC instants."""

    @staticmethod
    def get_timezone(tz_str: str) -> pytz.BaseTzInfo:
        """
        Resolve an IANA zone identifier.

        Raises:
            InvalidTimezoneException: unknown or empty identifier
        """
        if not tz_str:
            raise InvalidTimezoneException(tz_str)
        try:
            return pytz.timezone(tz_str)
        except pytz.UnknownTimeZoneError:
            logger.warning("timezone_unknown", extra={"timezone": tz_str})
            raise InvalidTimezoneException(tz_str) from None

    @staticmethod
    def validate_timezone(tz_str: str) -> bool:
        try:
            TimezoneService.get_timezone(tz_str)
        except InvalidTimezoneException:
            return False
        return True

    @staticmethod
    def utc_offset_on(booking_date: DateInput, timezone_str: str):
        """
        Offset of ``timezone_str`` from UTC in force on ``booking_date``.

        Measured at local noon UTC of that date: the same instant is rendered
        as civil fields in UTC and in the zone, and the two are diffed.
        Noon keeps the reference instant away from midnight day-boundary
        ambiguity.
        """
        tz = TimezoneService.get_timezone(timezone_str)
        reference = datetime.combine(_as_date(booking_date), time(12, 0), tzinfo=timezone.utc)
        utc_fields = reference.replace(tzinfo=None)
        zone_fields = reference.astimezone(tz).replace(tzinfo=None)
        return zone_fields - utc_fields

    @staticmethod
    def local_to_utc(booking_date: DateInput, local_time: TimeInput, timezone_str: str) -> datetime:
        """
        Convert a local date + wall-clock time to a UTC instant.

        The local fields are read as if they were UTC, then shifted by the
        zone's offset on that date. Times inside a spring-forward gap or a
        fall-back overlap take the date's noon offset; there is no single
        correct mapping for them and none is attempted.

        Raises:
            InvalidTimezoneException: unknown zone
        """
        day = _as_date(booking_date)
        offset = TimezoneService.utc_offset_on(day, timezone_str)
        naive_dt = datetime.combine(day, _as_time(local_time))  # read local fields as UTC
        return (naive_dt - offset).replace(tzinfo=timezone.utc)

    @staticmethod
    def utc_to_local(utc_dt: datetime, timezone_str: str) -> datetime:
        """Convert a UTC datetime to the given zone."""
        tz = TimezoneService.get_timezone(timezone_str)
        return ensure_utc(utc_dt).astimezone(tz)

    @staticmethod
    def local_date_of(utc_dt: datetime, timezone_str: str) -> date:
        """Business-local calendar date of an instant."""
        return TimezoneService.utc_to_local(utc_dt, timezone_str).date()

    @staticmethod
    def today_in(timezone_str: str, now: datetime) -> date:
        """'Today' in the zone as of ``now``."""
        return TimezoneService.local_date_of(now, timezone_str)

    @staticmethod
    def hours_until(start_utc: datetime, now: datetime) -> float:
        """Hours from ``now`` until ``start_utc`` (negative once started)."""
        return (ensure_utc(start_utc) - ensure_utc(now)).total_seconds() / 3600

    @staticmethod
    def format_time(utc_dt: datetime, timezone_str: str) -> str:
        """e.g. "9:00 AM" in the given zone."""
        local_dt = TimezoneService.utc_to_local(utc_dt, timezone_str)
        hour = local_dt.hour % 12 or 12
        period = "AM" if local_dt.hour < 12 else "PM"
        return f"{hour}:{local_dt.minute:02d} {period}"

    @staticmethod
    def format_date(utc_dt: datetime, timezone_str: str) -> str:
        """e.g. "Monday, March 15, 2025" in the given zone."""
        local_dt = TimezoneService.utc_to_local(utc_dt, timezone_str)
        return f"{local_dt.strftime('%A, %B')} {local_dt.day}, {local_dt.year}"

    @staticmethod
    def format_range(start_utc: datetime, end_utc: datetime, timezone_str: str) -> str:
        """e.g. "9:00 AM – 9:30 AM (Australia/Sydney)"."""
        start = TimezoneService.format_time(start_utc, timezone_str)
        end = TimezoneService.format_time(end_utc, timezone_str)
        return f"{start} – {end} ({timezone_str})"
