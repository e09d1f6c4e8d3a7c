"""
Visitor cancellation from a signed link.

Planning is pure: it verifies the token, checks the event can still be
cancelled, and evaluates the refund. Issuing the refund and persisting the
cancelled event stay with the caller, who must only act on a ``READY`` plan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
import logging
from typing import Callable, Iterable, Optional

from ..core.config import settings
from ..core.enums import CancellationOutcome, CancelledBy, EventStatus
from ..core.exceptions import CancellationNotAllowedException, NotFoundException
from ..core.timezone_utils import ensure_utc, to_iso_instant
from ..schemas.booking_config import DEFAULT_BOOKING_CONFIG, BookingConfig
from ..schemas.calendar_event import CalendarEvent
from ..schemas.webinar import WebinarSchedule, WebinarSession
from .cancel_token_service import CancelTokenService
from .refund_policy_engine import RefundDecision, RefundPolicyEngine
from .session_expander import SessionExpander

logger = logging.getLogger(__name__)

EventLoader = Callable[[str, date, str], Optional[CalendarEvent]]


@dataclass(frozen=True)
class CancellationPlan:
    outcome: CancellationOutcome
    currency: str = ""
    paid_amount_cents: int = 0
    cancellation_deadline_hours: float = 0
    refund: Optional[RefundDecision] = None
    event: Optional[CalendarEvent] = None
    email: Optional[str] = None
    sessions: tuple[WebinarSession, ...] = field(default_factory=tuple)

    @property
    def is_ready(self) -> bool:
        return self.outcome is CancellationOutcome.READY

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"outcome": self.outcome.value}
        if self.event is not None:
            payload.update(
                {
                    "eventId": self.event.id,
                    "title": self.event.title,
                    "date": self.event.date.isoformat(),
                    "startTime": to_iso_instant(self.event.start_time),
                    "endTime": to_iso_instant(self.event.end_time),
                }
            )
        if self.sessions:
            payload["sessions"] = [session.to_payload() for session in self.sessions]
        if self.refund is not None:
            payload.update(
                {
                    "isPaid": self.paid_amount_cents > 0,
                    "paidAmountCents": self.paid_amount_cents,
                    "refundAmountCents": self.refund.refund_amount_cents,
                    "isFullRefund": self.refund.is_full_refund,
                    "refundReason": self.refund.reason,
                    "isBeforeDeadline": self.refund.is_before_deadline,
                    "currency": self.currency,
                    "cancellationDeadlineHours": self.cancellation_deadline_hours,
                }
            )
        return payload


class CancellationService:
    """Plans booking and webinar cancellations requested through cancel links."""

    def __init__(
        self,
        token_service: Optional[CancelTokenService] = None,
        refund_engine: Optional[RefundPolicyEngine] = None,
        session_expander: Optional[SessionExpander] = None,
        currency: Optional[str] = None,
    ):
        self.token_service = token_service or CancelTokenService()
        self.refund_engine = refund_engine or RefundPolicyEngine()
        self.session_expander = session_expander or SessionExpander()
        self.currency = currency or settings.default_currency

    def plan_booking_cancellation(
        self,
        token: Optional[str],
        tenant_id: str,
        load_event: EventLoader,
        *,
        paid_amount_cents: int,
        now: datetime,
        config: Optional[BookingConfig] = None,
    ) -> CancellationPlan:
        """
        Raises:
            NotFoundException: the token names an event that does not exist
            CancellationNotAllowedException: the event is not scheduled/pending
        """
        payload = self.token_service.decode_booking(token)
        if payload is None or payload.tenant_id != tenant_id:
            logger.info("booking_cancel_invalid_token", extra={"tenant_id": tenant_id})
            return CancellationPlan(outcome=CancellationOutcome.INVALID_TOKEN)

        event = load_event(tenant_id, payload.date, payload.event_id)
        if event is None:
            raise NotFoundException(
                "Booking not found",
                code="BOOKING_NOT_FOUND",
                details={"event_id": payload.event_id, "date": payload.date.isoformat()},
            )

        if event.is_cancelled:
            logger.info(
                "booking_cancel_already_cancelled",
                extra={"tenant_id": tenant_id, "event_id": event.id},
            )
            return CancellationPlan(outcome=CancellationOutcome.ALREADY_CANCELLED, event=event)

        if not event.status.is_cancellable:
            raise CancellationNotAllowedException(event.status.value)

        booking_config = config or DEFAULT_BOOKING_CONFIG
        refund = self.refund_engine.evaluate(
            event.start_time, now, paid_amount_cents, booking_config.cancellation_config
        )
        return CancellationPlan(
            outcome=CancellationOutcome.READY,
            currency=self.currency,
            paid_amount_cents=paid_amount_cents,
            cancellation_deadline_hours=booking_config.cancellation_config.cancellation_deadline_hours,
            refund=refund,
            event=event,
        )

    def plan_webinar_cancellation(
        self,
        token: Optional[str],
        tenant_id: str,
        product_id: str,
        schedule: Optional[WebinarSchedule],
        *,
        paid_amount_cents: int,
        now: datetime,
        config: Optional[BookingConfig] = None,
        signup_exists: bool = True,
    ) -> CancellationPlan:
        """
        Plan withdrawing a registration from a whole webinar series.

        The refund is judged against the first session's start; a webinar
        without a schedule is judged against ``now``. A missing signup means
        the registration was already withdrawn.
        """
        payload = self.token_service.decode_webinar(token)
        if payload is None or payload.tenant_id != tenant_id or payload.product_id != product_id:
            logger.info(
                "webinar_cancel_invalid_token",
                extra={"tenant_id": tenant_id, "product_id": product_id},
            )
            return CancellationPlan(outcome=CancellationOutcome.INVALID_TOKEN)

        if not signup_exists:
            return CancellationPlan(
                outcome=CancellationOutcome.ALREADY_CANCELLED, email=payload.email
            )

        booking_config = config or DEFAULT_BOOKING_CONFIG
        sessions = (
            tuple(self.session_expander.expand(schedule, booking_config.timezone))
            if schedule is not None
            else ()
        )
        first_start = sessions[0].start_time if sessions else ensure_utc(now)
        refund = self.refund_engine.evaluate(
            first_start, now, paid_amount_cents, booking_config.cancellation_config
        )
        return CancellationPlan(
            outcome=CancellationOutcome.READY,
            currency=self.currency,
            paid_amount_cents=paid_amount_cents,
            cancellation_deadline_hours=booking_config.cancellation_config.cancellation_deadline_hours,
            refund=refund,
            email=payload.email,
            sessions=sessions,
        )

    @staticmethod
    def apply_cancellation(
        event: CalendarEvent,
        refund: Optional[RefundDecision],
        now: datetime,
        cancelled_by: CancelledBy = CancelledBy.VISITOR,
        stripe_refund_id: Optional[str] = None,
    ) -> CalendarEvent:
        """Cancelled copy of ``event``; the original record is never removed."""
        return event.model_copy(
            update={
                "status": EventStatus.CANCELLED,
                "cancelled_by": cancelled_by,
                "cancelled_at": ensure_utc(now),
                "refund_amount_cents": refund.refund_amount_cents if refund else 0,
                "stripe_refund_id": stripe_refund_id,
            }
        )

    @staticmethod
    def remove_attendee(events: Iterable[CalendarEvent], email: str) -> list[CalendarEvent]:
        """Session events that listed ``email``, with that attendee removed."""
        target = email.strip().lower()
        updated = []
        for event in events:
            remaining = tuple(a for a in event.attendees if a.strip().lower() != target)
            if len(remaining) != len(event.attendees):
                updated.append(event.model_copy(update={"attendees": remaining}))
        return updated
