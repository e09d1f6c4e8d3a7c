"""
Core enums for the scheduling core.

String-valued so they round-trip through the stored JSON records unchanged.
"""

from enum import Enum


class EventStatus(str, Enum):
    """Lifecycle of a calendar event. Events are never deleted, only transitioned."""

    SCHEDULED = "scheduled"
    PENDING = "pending"
    PENDING_PAYMENT = "pending_payment"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def blocks_slot(self) -> bool:
        return self is not EventStatus.CANCELLED

    @property
    def is_cancellable(self) -> bool:
        return self in (EventStatus.SCHEDULED, EventStatus.PENDING)


class MonthlyMode(str, Enum):
    """Day N of the month vs. the Nth weekday of the month."""

    DAY_OF_MONTH = "dayOfMonth"
    DAY_OF_WEEK = "dayOfWeek"


class LateCancellationPolicy(str, Enum):
    """What happens to a cancellation made after the deadline."""

    NO_REFUND = "no_refund"
    PARTIAL_REFUND = "partial_refund"


class CancelledBy(str, Enum):
    VISITOR = "visitor"
    TENANT = "tenant"


class ReminderType(str, Enum):
    DAY_BEFORE = "reminder_24h"
    STARTING_SOON = "reminder_10m"


class ReservationOutcome(str, Enum):
    ACQUIRED = "acquired"
    BLOCKED = "blocked"
    BYPASSED = "bypassed"
    ERROR = "error"


class CancellationOutcome(str, Enum):
    """Result of planning a visitor cancellation from a link."""

    READY = "ready"
    INVALID_TOKEN = "invalid_token"
    ALREADY_CANCELLED = "already_cancelled"
