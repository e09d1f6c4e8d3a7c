"""Pydantic schemas for the scheduling core."""

from .booking_config import (
    DEFAULT_BOOKING_CONFIG,
    BookingConfig,
    CancellationConfig,
    DaySchedule,
    merge_booking_config,
)
from .calendar_event import CalendarEvent
from .cancel_token import BookingCancelPayload, CancelTokenPayload, WebinarCancelPayload
from .recurrence import (
    AfterOccurrences,
    DailyRule,
    MonthlyRule,
    OnDate,
    RecurrenceRule,
    WeekdayRule,
    WeeklyRule,
    YearlyRule,
    parse_recurrence_rule,
)
from .slot import DisplaySlot, TimelineBlock, TimeSlot
from .webinar import WebinarSchedule, WebinarSession

__all__ = [
    "AfterOccurrences",
    "BookingCancelPayload",
    "BookingConfig",
    "CalendarEvent",
    "CancelTokenPayload",
    "CancellationConfig",
    "DEFAULT_BOOKING_CONFIG",
    "DailyRule",
    "DaySchedule",
    "DisplaySlot",
    "MonthlyRule",
    "OnDate",
    "RecurrenceRule",
    "TimeSlot",
    "TimelineBlock",
    "WebinarCancelPayload",
    "WebinarSchedule",
    "WebinarSession",
    "WeekdayRule",
    "WeeklyRule",
    "YearlyRule",
    "merge_booking_config",
    "parse_recurrence_rule",
]
