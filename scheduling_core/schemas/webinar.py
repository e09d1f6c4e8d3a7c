"""Webinar schedule (source of truth) and the sessions derived from it."""

import datetime
from typing import Any, Dict, Optional

from pydantic import Field, model_validator

from ..core.constants import MAX_OCCURRENCES
from ..core.timezone_utils import to_iso_instant
from ._strict_base import StrictModel
from .recurrence import RecurrenceRule

DateType = datetime.date
TimeType = datetime.time
DateTimeType = datetime.datetime


class WebinarSchedule(StrictModel):
    start_date: DateType
    start_time: TimeType
    end_time: TimeType
    recurrence_rule: Optional[RecurrenceRule] = None
    session_count: int = Field(default=1, ge=1, le=MAX_OCCURRENCES)

    @model_validator(mode="after")
    def _validate_single_session(self) -> "WebinarSchedule":
        if self.recurrence_rule is None and self.session_count != 1:
            raise ValueError("A webinar without a recurrence rule has exactly one session")
        return self


class WebinarSession(StrictModel):
    """One concrete session: local calendar date, UTC start/end."""

    date: DateType
    start_time: DateTimeType
    end_time: DateTimeType

    def to_payload(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "startTime": to_iso_instant(self.start_time),
            "endTime": to_iso_instant(self.end_time),
        }
