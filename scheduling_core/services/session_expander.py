"""Webinar session expansion from a stored webinar schedule."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from itertools import islice
import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from ..core.exceptions import InvalidConfigException
from ..core.timezone_utils import ensure_utc
from ..schemas.recurrence import parse_recurrence_rule
from ..schemas.webinar import WebinarSchedule, WebinarSession
from .recurrence_engine import RecurrenceEngine
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)

ScheduleInput = Union[WebinarSchedule, Mapping[str, Any]]


def _coerce_schedule(schedule: ScheduleInput) -> WebinarSchedule:
    """
    Raises:
        InvalidRecurrenceRuleException: the embedded recurrence rule is malformed
        InvalidConfigException: any other schedule field is malformed
    """
    if isinstance(schedule, WebinarSchedule):
        return schedule
    data = dict(schedule)
    for key in ("recurrenceRule", "recurrence_rule"):
        if data.get(key) is not None:
            data[key] = parse_recurrence_rule(data[key])
    try:
        return WebinarSchedule.model_validate(data)
    except ValidationError as exc:
        raise InvalidConfigException(
            "Invalid webinar schedule",
            details={"errors": [error["msg"] for error in exc.errors()]},
        ) from exc


class SessionExpander:
    """Turns a webinar schedule into concrete sessions."""

    def __init__(self, recurrence_engine: Optional[RecurrenceEngine] = None):
        self.recurrence_engine = recurrence_engine or RecurrenceEngine()

    def session_dates(self, schedule: ScheduleInput) -> list[date]:
        """
        Local dates of every session.

        The schedule's ``sessionCount`` decides how many dates are taken from
        the raw recurrence sequence, whatever the rule's own end condition says.
        """
        parsed = _coerce_schedule(schedule)
        if parsed.recurrence_rule is None:
            return [parsed.start_date]
        occurrences = self.recurrence_engine.iter_occurrences(
            parsed.start_date, parsed.recurrence_rule
        )
        return list(islice(occurrences, parsed.session_count))

    def expand(self, schedule: ScheduleInput, timezone: str) -> list[WebinarSession]:
        """
        Sessions with local ``date`` and UTC ``start_time``/``end_time``.

        An end time at or before the start time ends on the next local day.

        Raises:
            InvalidTimezoneException: unknown ``timezone``
            InvalidConfigException: malformed schedule payload
            InvalidRecurrenceRuleException: malformed recurrence rule in the payload
        """
        parsed = _coerce_schedule(schedule)
        TimezoneService.get_timezone(timezone)
        crosses_midnight = parsed.end_time <= parsed.start_time

        sessions = []
        for session_date in self.session_dates(parsed):
            end_date = session_date + timedelta(days=1) if crosses_midnight else session_date
            sessions.append(
                WebinarSession(
                    date=session_date,
                    start_time=TimezoneService.local_to_utc(session_date, parsed.start_time, timezone),
                    end_time=TimezoneService.local_to_utc(end_date, parsed.end_time, timezone),
                )
            )

        logger.debug(
            "webinar_sessions_expanded",
            extra={
                "timezone": timezone,
                "session_count": len(sessions),
                "recurring": parsed.recurrence_rule is not None,
            },
        )
        return sessions

    def count_sessions(self, schedule: ScheduleInput) -> int:
        parsed = _coerce_schedule(schedule)
        return parsed.session_count

    def first_session_start(self, schedule: ScheduleInput, timezone: str) -> datetime:
        """UTC start of the first session; refunds for a series are judged against it."""
        parsed = _coerce_schedule(schedule)
        first_date = self.session_dates(parsed)[0]
        return TimezoneService.local_to_utc(first_date, parsed.start_time, timezone)

    def upcoming_sessions(
        self, schedule: ScheduleInput, timezone: str, now: datetime
    ) -> list[WebinarSession]:
        """Sessions that have not yet ended as of ``now``."""
        current = ensure_utc(now)
        return [session for session in self.expand(schedule, timezone) if session.end_time > current]
