"""
Bookable slot generation for a tenant's working hours.

Slots are cut from the local working-hours window of one date, converted to
UTC per boundary, and flagged unavailable when they overlap a live event.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
import logging
from typing import Iterable, Optional, Union

from ..core.exceptions import (
    InvalidConfigException,
    InvalidTimezoneException,
    SlotNotFoundException,
    SlotUnavailableException,
)
from ..core.timezone_utils import ensure_utc, format_hhmm, minutes_of_day, parse_iso_instant
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..schemas.booking_config import BookingConfig
from ..schemas.calendar_event import CalendarEvent
from ..schemas.slot import DisplaySlot, TimelineBlock, TimeSlot
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)

InstantInput = Union[datetime, str]


def _validate_config(config: BookingConfig) -> None:
    if config.slot_duration_minutes <= 0:
        raise InvalidConfigException(
            "Slot duration must be a positive number of minutes",
            details={"slot_duration_minutes": config.slot_duration_minutes},
        )
    if config.buffer_minutes < 0:
        raise InvalidConfigException(
            "Buffer between slots cannot be negative",
            details={"buffer_minutes": config.buffer_minutes},
        )
    if not config.weekly_schedule:
        raise InvalidConfigException("Booking config has no working hours")


def _is_taken(start: datetime, end: datetime, events: Iterable[CalendarEvent]) -> bool:
    return any(event.blocks_slots and event.overlaps(start, end) for event in events)


class SlotGenerator:
    """Builds the ordered slot list for one business-local date."""

    def generate(
        self,
        target_date: date,
        config: BookingConfig,
        events: Iterable[CalendarEvent] = (),
    ) -> list[TimeSlot]:
        """
        Slots for ``target_date`` in the tenant's zone.

        Consecutive slots start ``slotDurationMinutes + bufferMinutes`` apart
        and a slot is only emitted when it ends by closing time. A slot is
        unavailable exactly when it overlaps a non-cancelled event.

        Raises:
            InvalidConfigException: non-positive duration, negative buffer or
                no working hours at all
            InvalidTimezoneException: unknown ``config.timezone``
        """
        try:
            _validate_config(config)
            TimezoneService.get_timezone(config.timezone)
        except (InvalidConfigException, InvalidTimezoneException):
            prometheus_metrics.record_slot_generation("invalid_config")
            raise

        schedule = config.schedule_for(target_date)
        if schedule is None:
            prometheus_metrics.record_slot_generation("closed")
            return []

        live_events = [event for event in events if event.blocks_slots]
        duration = config.slot_duration_minutes
        step = duration + config.buffer_minutes
        open_minute = minutes_of_day(schedule.start_time)
        close_minute = minutes_of_day(schedule.end_time)

        slots: list[TimeSlot] = []
        cursor = open_minute
        while cursor + duration <= close_minute:
            start = TimezoneService.local_to_utc(target_date, format_hhmm(cursor), config.timezone)
            end = TimezoneService.local_to_utc(
                target_date, format_hhmm(cursor + duration), config.timezone
            )
            slots.append(
                TimeSlot(start_time=start, end_time=end, available=not _is_taken(start, end, live_events))
            )
            cursor += step

        prometheus_metrics.record_slot_generation("success", len(slots))
        logger.debug(
            "slots_generated",
            extra={
                "date": target_date.isoformat(),
                "timezone": config.timezone,
                "slot_count": len(slots),
                "available_count": sum(1 for slot in slots if slot.available),
            },
        )
        return slots

    def generate_display_slots(
        self,
        target_date: date,
        config: BookingConfig,
        events: Iterable[CalendarEvent] = (),
        visitor_timezone: Optional[str] = None,
    ) -> list[DisplaySlot]:
        """
        Slots with business and visitor labels rendered from the same instant.

        ``display_visitor`` is only set when the visitor is in a different zone.
        """
        show_visitor = bool(visitor_timezone) and visitor_timezone != config.timezone
        if show_visitor:
            TimezoneService.get_timezone(visitor_timezone)

        display_slots = []
        for slot in self.generate(target_date, config, events):
            display_slots.append(
                DisplaySlot(
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    available=slot.available,
                    display_business=TimezoneService.format_range(
                        slot.start_time, slot.end_time, config.timezone
                    ),
                    display_visitor=(
                        TimezoneService.format_range(slot.start_time, slot.end_time, visitor_timezone)
                        if show_visitor
                        else None
                    ),
                )
            )
        return display_slots

    def validate_requested_slot(
        self,
        target_date: date,
        requested_start: InstantInput,
        config: BookingConfig,
        events: Iterable[CalendarEvent] = (),
    ) -> TimeSlot:
        """
        Re-check a slot a visitor picked against fresh events.

        Raises:
            SlotNotFoundException: the schedule never offers that start time
            SlotUnavailableException: offered, but taken since
        """
        start = (
            parse_iso_instant(requested_start)
            if isinstance(requested_start, str)
            else ensure_utc(requested_start)
        )
        details = {"date": target_date.isoformat(), "start_time": start.isoformat()}
        for slot in self.generate(target_date, config, events):
            if slot.start_time != start:
                continue
            if not slot.available:
                logger.info("requested_slot_taken", extra=details)
                raise SlotUnavailableException(details=details)
            return slot

        logger.info("requested_slot_not_offered", extra=details)
        raise SlotNotFoundException(details=details)

    def has_available_slots(
        self,
        target_date: date,
        config: BookingConfig,
        events: Iterable[CalendarEvent] = (),
    ) -> bool:
        return any(slot.available for slot in self.generate(target_date, config, events))

    @staticmethod
    def build_timeline(slots: Iterable[TimeSlot]) -> list[TimelineBlock]:
        """Day timeline rows: runs of consecutive unavailable slots merge into one block."""
        rows: list[TimelineBlock] = []
        booked_start: Optional[datetime] = None
        booked_end: Optional[datetime] = None

        def _flush_booked() -> None:
            nonlocal booked_start, booked_end
            if booked_start is not None and booked_end is not None:
                rows.append(
                    TimelineBlock(
                        kind="booked",
                        start_time=booked_start,
                        end_time=booked_end,
                        duration_minutes=int((booked_end - booked_start).total_seconds() // 60),
                    )
                )
            booked_start = booked_end = None

        for slot in slots:
            if not slot.available:
                if booked_start is None:
                    booked_start = slot.start_time
                booked_end = slot.end_time
                continue
            _flush_booked()
            rows.append(
                TimelineBlock(
                    kind="available",
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    duration_minutes=slot.duration_minutes,
                    slot=slot,
                )
            )
        _flush_booked()
        return rows

    @staticmethod
    def max_booking_date(today: date, config: BookingConfig) -> date:
        """Last date a visitor may book, ``lookaheadDays`` after today."""
        return today + timedelta(days=config.lookahead_days)

    @staticmethod
    def next_business_day(
        from_date: date,
        config: BookingConfig,
        today: date,
        direction: int = 1,
    ) -> Optional[date]:
        """
        Nearest open day after (``direction=1``) or before (``-1``) ``from_date``.

        Stays within today and the lookahead horizon; None when nothing opens there.
        """
        if direction not in (1, -1):
            raise ValueError("direction must be 1 or -1")
        last_day = SlotGenerator.max_booking_date(today, config)
        candidate = from_date + timedelta(days=direction)
        if direction == 1 and candidate < today:
            candidate = today
        while today <= candidate <= last_day:
            if config.is_open_on(candidate):
                return candidate
            candidate += timedelta(days=direction)
        return None
