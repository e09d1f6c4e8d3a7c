"""Slot shapes produced by slot generation."""

import datetime
from typing import Any, Dict, Literal, Optional

from ..core.timezone_utils import to_iso_instant
from ._strict_base import StrictModel

DateTimeType = datetime.datetime


class TimeSlot(StrictModel):
    start_time: DateTimeType
    end_time: DateTimeType
    available: bool

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    def overlaps(self, start: DateTimeType, end: DateTimeType) -> bool:
        return self.start_time < end and start < self.end_time

    def to_payload(self) -> Dict[str, Any]:
        return {
            "startTime": to_iso_instant(self.start_time),
            "endTime": to_iso_instant(self.end_time),
            "available": self.available,
        }


class DisplaySlot(TimeSlot):
    """Slot with pre-rendered business and visitor timezone labels."""

    display_business: str
    display_visitor: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["displayBusiness"] = self.display_business
        if self.display_visitor is not None:
            payload["displayVisitor"] = self.display_visitor
        return payload


class TimelineBlock(StrictModel):
    """Row of a day timeline: a bookable slot, or a merged run of booked slots."""

    kind: Literal["available", "booked"]
    start_time: DateTimeType
    end_time: DateTimeType
    duration_minutes: int
    slot: Optional[TimeSlot] = None
