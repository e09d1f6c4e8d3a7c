"""Persisted calendar event as read from the event repository."""

import datetime
from typing import Optional, Tuple

from pydantic import Field, field_validator, model_validator

from ..core.enums import CancelledBy, EventStatus
from ..core.timezone_utils import ensure_utc
from ._strict_base import RecordModel

DateType = datetime.date
DateTimeType = datetime.datetime


class CalendarEvent(RecordModel):
    """
    A booked event.

    ``date`` is the business-local calendar date; ``start_time``/``end_time``
    are UTC instants. Events are never removed: cancellation is a status
    transition that also records ``cancelled_at``.
    """

    id: str
    tenant_id: str
    title: str = ""
    date: DateType
    start_time: DateTimeType
    end_time: DateTimeType
    status: EventStatus = EventStatus.SCHEDULED
    product_id: Optional[str] = None
    attendees: Tuple[str, ...] = ()
    reminder_24h_sent_at: Optional[DateTimeType] = Field(default=None, alias="reminder24hSentAt")
    reminder_10m_sent_at: Optional[DateTimeType] = Field(default=None, alias="reminder10mSentAt")
    cancelled_at: Optional[DateTimeType] = None
    cancelled_by: Optional[CancelledBy] = None
    refund_amount_cents: Optional[int] = None
    stripe_refund_id: Optional[str] = None

    @field_validator(
        "start_time", "end_time", "reminder_24h_sent_at", "reminder_10m_sent_at", "cancelled_at"
    )
    @classmethod
    def _to_utc(cls, value: Optional[DateTimeType]) -> Optional[DateTimeType]:
        return ensure_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _validate_interval(self) -> "CalendarEvent":
        if self.end_time < self.start_time:
            raise ValueError("Event end time must not be before its start time")
        return self

    @property
    def blocks_slots(self) -> bool:
        return self.status.blocks_slot

    @property
    def is_cancelled(self) -> bool:
        return self.status is EventStatus.CANCELLED or self.cancelled_at is not None

    def overlaps(self, start: DateTimeType, end: DateTimeType) -> bool:
        """Half-open interval overlap: [start, end) vs [start_time, end_time)."""
        return start < self.end_time and self.start_time < end
