"""
Slot reservations that close the booking check-then-act race.

Booking a slot re-reads events, re-validates and then writes. Two requests
for the same slot can both pass validation before either write lands, so the
re-validation runs while holding a Redis ``SET NX EX`` key for
``(tenantId, date, startTime)``. Without a Redis client the service runs
best-effort: re-validate then write, with the race left open.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
import logging
import time
from typing import Callable, Iterable, Iterator, Optional, TypeVar, Union

from redis import Redis
from redis.exceptions import RedisError

from ..core.config import settings
from ..core.enums import ReservationOutcome
from ..core.exceptions import ServiceException, SlotUnavailableException
from ..core.timezone_utils import ensure_utc, parse_iso_instant, to_iso_instant
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..schemas.booking_config import BookingConfig
from ..schemas.calendar_event import CalendarEvent
from ..schemas.slot import TimeSlot
from .slot_generator import SlotGenerator

logger = logging.getLogger(__name__)

T = TypeVar("T")
InstantInput = Union[datetime, str]


def _as_instant(value: InstantInput) -> datetime:
    return parse_iso_instant(value) if isinstance(value, str) else ensure_utc(value)


class SlotReservationService:
    """Short-lived per-slot reservation keys plus the guarded booking write."""

    def __init__(
        self,
        redis_client: Optional[Redis] = None,
        *,
        ttl_seconds: Optional[int] = None,
        namespace: Optional[str] = None,
        fail_open: Optional[bool] = None,
        slot_generator: Optional[SlotGenerator] = None,
    ):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds or settings.slot_reservation_ttl_seconds
        self.namespace = namespace or settings.slot_reservation_namespace
        self.fail_open = settings.slot_reservation_fail_open if fail_open is None else fail_open
        self.slot_generator = slot_generator or SlotGenerator()

    @classmethod
    def from_url(cls, redis_url: Optional[str] = None, **kwargs) -> "SlotReservationService":
        client = Redis.from_url(
            redis_url or settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        return cls(client, **kwargs)

    @property
    def best_effort(self) -> bool:
        return self.redis is None

    def reservation_key(self, tenant_id: str, target_date: date, start: InstantInput) -> str:
        return (
            f"{self.namespace}:slot:{tenant_id}:{target_date.isoformat()}:"
            f"{to_iso_instant(_as_instant(start))}"
        )

    def acquire(self, tenant_id: str, target_date: date, start: InstantInput) -> ReservationOutcome:
        if self.redis is None:
            prometheus_metrics.record_slot_reservation("acquire", ReservationOutcome.BYPASSED.value)
            return ReservationOutcome.BYPASSED

        key = self.reservation_key(tenant_id, target_date, start)
        try:
            acquired = bool(self.redis.set(key, str(time.time()), nx=True, ex=self.ttl_seconds))
        except RedisError as exc:
            prometheus_metrics.record_slot_reservation("acquire", ReservationOutcome.ERROR.value)
            logger.warning(
                "slot_reservation_acquire_failed",
                extra={
                    "tenant_id": tenant_id,
                    "reservation_key": key,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return ReservationOutcome.ERROR

        outcome = ReservationOutcome.ACQUIRED if acquired else ReservationOutcome.BLOCKED
        prometheus_metrics.record_slot_reservation("acquire", outcome.value)
        return outcome

    def release(self, tenant_id: str, target_date: date, start: InstantInput) -> None:
        if self.redis is None:
            return
        key = self.reservation_key(tenant_id, target_date, start)
        try:
            deleted = self.redis.delete(key)
        except RedisError as exc:
            prometheus_metrics.record_slot_reservation("release", "error")
            logger.warning(
                "slot_reservation_release_failed",
                extra={
                    "tenant_id": tenant_id,
                    "reservation_key": key,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return
        prometheus_metrics.record_slot_reservation("release", "success" if deleted else "not_found")

    @contextmanager
    def reserve(
        self, tenant_id: str, target_date: date, start: InstantInput
    ) -> Iterator[ReservationOutcome]:
        """
        Hold the reservation for the duration of the block.

        Raises:
            SlotUnavailableException: another request holds the slot
            ServiceException: Redis failed and fail-open is disabled
        """
        outcome = self.acquire(tenant_id, target_date, start)
        if outcome is ReservationOutcome.BLOCKED:
            raise SlotUnavailableException(
                details={"date": target_date.isoformat(), "reason": "reserved"}
            )
        if outcome is ReservationOutcome.ERROR and not self.fail_open:
            raise ServiceException(
                "Slot reservation unavailable", code="SLOT_RESERVATION_UNAVAILABLE"
            )
        try:
            yield outcome
        except Exception:
            if outcome is ReservationOutcome.ACQUIRED:
                self.release(tenant_id, target_date, start)
            raise

    def confirm_slot(
        self,
        tenant_id: str,
        target_date: date,
        requested_start: InstantInput,
        config: BookingConfig,
        load_events: Callable[[], Iterable[CalendarEvent]],
        create_event: Callable[[TimeSlot], T],
    ) -> T:
        """
        Re-validate a requested slot against fresh events and write the booking.

        The reservation key is kept after a successful write and expires on
        its TTL, so a store with lagging reads still sees the slot as taken.
        It is released when validation or the write fails.

        Raises:
            SlotNotFoundException: the schedule never offers that start time
            SlotUnavailableException: slot reserved or booked by someone else
        """
        start = _as_instant(requested_start)
        with self.reserve(tenant_id, target_date, start) as outcome:
            events = list(load_events())
            slot = self.slot_generator.validate_requested_slot(target_date, start, config, events)
            result = create_event(slot)

        logger.info(
            "slot_confirmed",
            extra={
                "tenant_id": tenant_id,
                "date": target_date.isoformat(),
                "start_time": to_iso_instant(start),
                "reservation": outcome.value,
            },
        )
        return result
