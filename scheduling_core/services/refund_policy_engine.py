"""Refund policy evaluation for visitor cancellations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Optional

from ..core.enums import LateCancellationPolicy
from ..core.exceptions import ValidationException
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..schemas.booking_config import CancellationConfig
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)

DEFAULT_CANCELLATION_CONFIG = CancellationConfig()


@dataclass(frozen=True)
class RefundDecision:
    is_before_deadline: bool
    refund_amount_cents: int
    is_full_refund: bool
    reason: str

    @property
    def requires_refund(self) -> bool:
        """True when a payment-provider refund must actually be issued."""
        return self.refund_amount_cents > 0

    @property
    def decision(self) -> str:
        if not self.requires_refund:
            return "none"
        return "full" if self.is_full_refund else "partial"

    def to_payload(self) -> dict[str, object]:
        return {
            "isBeforeDeadline": self.is_before_deadline,
            "refundAmountCents": int(self.refund_amount_cents),
            "isFullRefund": self.is_full_refund,
            "reason": self.reason,
        }


class RefundPolicyEngine:
    """Determines how much of a payment is refunded for a cancellation."""

    def evaluate(
        self,
        event_start: datetime,
        now: datetime,
        paid_amount_cents: int,
        config: Optional[CancellationConfig] = None,
    ) -> RefundDecision:
        """
        Refund for cancelling an event starting at ``event_start`` as of ``now``.

        Pure: identical inputs give identical decisions. Whether a refund was
        already issued is the caller's concern (check ``cancelledAt`` first).

        Raises:
            ValidationException: negative paid amount
        """
        if paid_amount_cents < 0:
            raise ValidationException(
                "Paid amount cannot be negative",
                code="INVALID_PAID_AMOUNT",
                details={"paid_amount_cents": paid_amount_cents},
            )
        policy = config or DEFAULT_CANCELLATION_CONFIG
        deadline_hours = policy.cancellation_deadline_hours
        before_deadline = self.is_before_deadline(event_start, now, deadline_hours)

        if paid_amount_cents == 0:
            result = RefundDecision(
                is_before_deadline=before_deadline,
                refund_amount_cents=0,
                is_full_refund=True,
                reason="No payment to refund",
            )
        elif before_deadline:
            result = RefundDecision(
                is_before_deadline=True,
                refund_amount_cents=paid_amount_cents,
                is_full_refund=True,
                reason=f"Cancelled at least {deadline_hours:g} hours before start: full refund",
            )
        elif policy.late_cancellation_policy is LateCancellationPolicy.PARTIAL_REFUND:
            amount = min(
                self._percent_of(paid_amount_cents, policy.late_refund_percent), paid_amount_cents
            )
            result = RefundDecision(
                is_before_deadline=False,
                refund_amount_cents=amount,
                is_full_refund=amount == paid_amount_cents,
                reason=(
                    f"Cancelled less than {deadline_hours:g} hours before start: "
                    f"{policy.late_refund_percent:g}% refund"
                ),
            )
        else:
            result = RefundDecision(
                is_before_deadline=False,
                refund_amount_cents=0,
                is_full_refund=False,
                reason=f"Cancelled less than {deadline_hours:g} hours before start: no refund",
            )

        prometheus_metrics.record_refund_decision(result.decision)
        logger.debug(
            "refund_evaluated",
            extra={
                "paid_amount_cents": paid_amount_cents,
                "refund_amount_cents": result.refund_amount_cents,
                "is_before_deadline": result.is_before_deadline,
            },
        )
        return result

    @staticmethod
    def is_before_deadline(event_start: datetime, now: datetime, deadline_hours: float) -> bool:
        """True when at least ``deadline_hours`` remain before the start."""
        return TimezoneService.hours_until(event_start, now) >= deadline_hours

    @staticmethod
    def _percent_of(amount_cents: int, percent: float) -> int:
        scaled = Decimal(amount_cents) * Decimal(str(percent)) / Decimal(100)
        return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))
