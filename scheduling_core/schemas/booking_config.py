"""
Tenant booking configuration.

Read-only to the core. ``weeklySchedule`` is keyed by day index with
0 = Sunday, the same convention the recurrence ``daysOfWeek`` uses.
"""

import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..core.constants import (
    DEFAULT_BUFFER_MINUTES,
    DEFAULT_CANCELLATION_DEADLINE_HOURS,
    DEFAULT_LOOKAHEAD_DAYS,
    DEFAULT_SLOT_DURATION_MINUTES,
    DEFAULT_TIMEZONE,
)
from ..core.enums import LateCancellationPolicy
from ..core.exceptions import InvalidConfigException
from ..core.timezone_utils import day_index
from ._strict_base import StrictModel

DateType = datetime.date
TimeType = datetime.time


class DaySchedule(StrictModel):
    """Working hours for one weekday, local wall-clock."""

    enabled: bool = True
    start_time: TimeType
    end_time: TimeType

    @model_validator(mode="after")
    def _validate_time_order(self) -> "DaySchedule":
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class CancellationConfig(StrictModel):
    """Refund policy applied when a visitor cancels."""

    cancellation_deadline_hours: float = Field(default=DEFAULT_CANCELLATION_DEADLINE_HOURS, ge=0)
    late_cancellation_policy: LateCancellationPolicy = LateCancellationPolicy.NO_REFUND
    late_refund_percent: float = Field(default=0, ge=0, le=100)


class BookingConfig(StrictModel):
    timezone: str = DEFAULT_TIMEZONE
    weekly_schedule: Dict[int, DaySchedule] = Field(default_factory=dict)
    # Range checks for duration/buffer happen at slot generation (InvalidConfigException)
    slot_duration_minutes: int = DEFAULT_SLOT_DURATION_MINUTES
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES
    lookahead_days: int = Field(default=DEFAULT_LOOKAHEAD_DAYS, ge=0)
    blackout_dates: Tuple[DateType, ...] = ()
    cancellation_config: CancellationConfig = Field(default_factory=CancellationConfig)

    @field_validator("weekly_schedule")
    @classmethod
    def _validate_day_keys(cls, value: Dict[int, DaySchedule]) -> Dict[int, DaySchedule]:
        bad = [key for key in value if not 0 <= key <= 6]
        if bad:
            raise ValueError(f"weeklySchedule keys must be 0-6 (Sunday=0), got {bad}")
        return value

    def schedule_for(self, day: DateType) -> Optional[DaySchedule]:
        """Working hours for ``day``, or None when closed or blacked out."""
        if day in self.blackout_dates:
            return None
        schedule = self.weekly_schedule.get(day_index(day))
        if schedule is None or not schedule.enabled:
            return None
        return schedule

    def is_open_on(self, day: DateType) -> bool:
        return self.schedule_for(day) is not None

    def for_duration(self, duration_minutes: Optional[int]) -> "BookingConfig":
        """Copy with a product-specific slot duration (None keeps the tenant default)."""
        if duration_minutes is None:
            return self
        return self.model_copy(update={"slot_duration_minutes": duration_minutes})


def _weekday_hours() -> Dict[int, DaySchedule]:
    hours = {}
    for index in range(7):
        hours[index] = DaySchedule(
            enabled=1 <= index <= 5,
            start_time=TimeType(9, 0),
            end_time=TimeType(17, 0),
        )
    return hours


DEFAULT_BOOKING_CONFIG = BookingConfig(weekly_schedule=_weekday_hours())


def _camel_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {(to_camel(key) if "_" in key else key): value for key, value in data.items()}


def merge_booking_config(overrides: Optional[Mapping[str, Any]]) -> BookingConfig:
    """
    Overlay a tenant's stored (possibly partial) config on the defaults.

    The weekly schedule merges per day, so a tenant that only stored
    Saturday hours keeps the default Monday-Friday hours.

    Raises:
        InvalidConfigException: the merged config does not validate
    """
    if not overrides:
        return DEFAULT_BOOKING_CONFIG

    base = DEFAULT_BOOKING_CONFIG.model_dump(by_alias=True)
    normalized = _camel_keys(overrides)
    merged: Dict[str, Any] = {**base, **normalized}
    week = {str(key): value for key, value in base["weeklySchedule"].items()}
    for key, day in (normalized.get("weeklySchedule") or {}).items():
        current = week.get(str(key))
        if isinstance(day, Mapping):
            day = _camel_keys(day)
            if isinstance(current, dict):
                day = {**current, **day}
        week[str(key)] = day
    merged["weeklySchedule"] = week
    try:
        return BookingConfig.model_validate(merged)
    except ValidationError as exc:
        raise InvalidConfigException(
            "Invalid booking config",
            details={
                "errors": [
                    {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                    for err in exc.errors()
                ]
            },
        ) from exc
