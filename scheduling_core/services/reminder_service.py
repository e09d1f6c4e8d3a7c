"""Which booked events are due a reminder email."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import Iterable

from ..core.constants import REMINDER_DAY_BEFORE_HOURS, REMINDER_STARTING_SOON_MINUTES
from ..core.enums import EventStatus, ReminderType
from ..core.timezone_utils import ensure_utc
from ..schemas.calendar_event import CalendarEvent

logger = logging.getLogger(__name__)

_LEAD_TIMES = {
    ReminderType.DAY_BEFORE: timedelta(hours=REMINDER_DAY_BEFORE_HOURS),
    ReminderType.STARTING_SOON: timedelta(minutes=REMINDER_STARTING_SOON_MINUTES),
}

_SENT_FIELDS = {
    ReminderType.DAY_BEFORE: "reminder_24h_sent_at",
    ReminderType.STARTING_SOON: "reminder_10m_sent_at",
}


@dataclass(frozen=True)
class DueReminder:
    event: CalendarEvent
    reminder_type: ReminderType


class ReminderService:
    """
    Picks reminders for a periodic sweep.

    The day-before reminder is due from 24 hours out until the starting-soon
    window opens; the starting-soon reminder covers the last 10 minutes.
    Sent flags make repeated sweeps idempotent.
    """

    def is_due(self, event: CalendarEvent, reminder_type: ReminderType, now: datetime) -> bool:
        if event.status is not EventStatus.SCHEDULED or event.is_cancelled:
            return False
        if getattr(event, _SENT_FIELDS[reminder_type]) is not None:
            return False

        until_start = event.start_time - ensure_utc(now)
        if until_start <= timedelta(0):
            return False
        lead = _LEAD_TIMES[reminder_type]
        if reminder_type is ReminderType.DAY_BEFORE:
            return _LEAD_TIMES[ReminderType.STARTING_SOON] < until_start <= lead
        return until_start <= lead

    def due_reminders(self, events: Iterable[CalendarEvent], now: datetime) -> list[DueReminder]:
        due = [
            DueReminder(event=event, reminder_type=reminder_type)
            for event in events
            for reminder_type in ReminderType
            if self.is_due(event, reminder_type, now)
        ]
        if due:
            logger.info("reminders_due", extra={"count": len(due)})
        return due

    @staticmethod
    def mark_sent(event: CalendarEvent, reminder_type: ReminderType, now: datetime) -> CalendarEvent:
        return event.model_copy(update={_SENT_FIELDS[reminder_type]: ensure_utc(now)})
