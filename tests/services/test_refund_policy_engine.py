from datetime import datetime, timedelta, timezone

import pytest

from scheduling_core.core.enums import LateCancellationPolicy
from scheduling_core.core.exceptions import ValidationException
from scheduling_core.schemas import CancellationConfig
from scheduling_core.services.refund_policy_engine import RefundDecision, RefundPolicyEngine

START = datetime(2025, 3, 20, 10, 0, tzinfo=timezone.utc)

NO_REFUND = CancellationConfig(cancellation_deadline_hours=24)
HALF_REFUND = CancellationConfig(
    cancellation_deadline_hours=24,
    late_cancellation_policy=LateCancellationPolicy.PARTIAL_REFUND,
    late_refund_percent=50,
)


@pytest.fixture
def engine() -> RefundPolicyEngine:
    return RefundPolicyEngine()


class TestDeadlineBoundary:
    @pytest.mark.parametrize("config", [NO_REFUND, HALF_REFUND])
    def test_exactly_at_deadline_is_full_refund(self, engine, config):
        decision = engine.evaluate(START, START - timedelta(hours=24), 5000, config)
        assert decision == RefundDecision(
            is_before_deadline=True,
            refund_amount_cents=5000,
            is_full_refund=True,
            reason="Cancelled at least 24 hours before start: full refund",
        )

    def test_one_minute_late_with_no_refund_policy(self, engine):
        decision = engine.evaluate(START, START - timedelta(hours=23, minutes=59), 5000, NO_REFUND)
        assert decision.is_before_deadline is False
        assert decision.refund_amount_cents == 0
        assert decision.is_full_refund is False
        assert decision.requires_refund is False

    def test_one_minute_late_with_partial_policy(self, engine):
        decision = engine.evaluate(START, START - timedelta(hours=23, minutes=59), 5000, HALF_REFUND)
        assert decision.is_before_deadline is False
        assert decision.refund_amount_cents == 2500
        assert decision.is_full_refund is False
        assert decision.reason == "Cancelled less than 24 hours before start: 50% refund"

    def test_after_start_follows_late_policy(self, engine):
        decision = engine.evaluate(START, START + timedelta(hours=1), 5000, HALF_REFUND)
        assert decision.refund_amount_cents == 2500

    def test_default_policy_is_24h_no_refund(self, engine):
        late = engine.evaluate(START, START - timedelta(hours=2), 5000)
        early = engine.evaluate(START, START - timedelta(hours=30), 5000)
        assert late.refund_amount_cents == 0
        assert early.refund_amount_cents == 5000


class TestAmounts:
    def test_partial_rounds_half_up(self, engine):
        config = HALF_REFUND.model_copy(update={"late_refund_percent": 50})
        decision = engine.evaluate(START, START, 999, config)
        assert decision.refund_amount_cents == 500

    def test_fractional_percent(self, engine):
        config = HALF_REFUND.model_copy(update={"late_refund_percent": 33.3})
        assert engine.evaluate(START, START, 1000, config).refund_amount_cents == 333

    @pytest.mark.parametrize("percent", [0, 1, 50, 99.9, 100])
    @pytest.mark.parametrize("paid", [1, 333, 1999, 10_000])
    def test_refund_never_exceeds_paid(self, engine, percent, paid):
        config = HALF_REFUND.model_copy(update={"late_refund_percent": percent})
        for hours in (48, 24, 23.99, 1, -1):
            decision = engine.evaluate(START, START - timedelta(hours=hours), paid, config)
            assert 0 <= decision.refund_amount_cents <= paid

    def test_zero_payment_short_circuits(self, engine):
        decision = engine.evaluate(START, START - timedelta(hours=1), 0, NO_REFUND)
        assert decision.refund_amount_cents == 0
        assert decision.is_full_refund is True
        assert decision.reason == "No payment to refund"
        assert decision.requires_refund is False

    def test_negative_payment_rejected(self, engine):
        with pytest.raises(ValidationException) as exc:
            engine.evaluate(START, START, -1, NO_REFUND)
        assert exc.value.to_http_exception().status_code == 400


class TestPurity:
    def test_repeat_evaluation_is_identical(self, engine):
        now = START - timedelta(hours=3)
        first = engine.evaluate(START, now, 4200, HALF_REFUND)
        second = engine.evaluate(START, now, 4200, HALF_REFUND)
        assert first == second
        assert first.to_payload() == second.to_payload()

    def test_payload_shape(self, engine):
        payload = engine.evaluate(START, START - timedelta(days=3), 4200, NO_REFUND).to_payload()
        assert payload == {
            "isBeforeDeadline": True,
            "refundAmountCents": 4200,
            "isFullRefund": True,
            "reason": "Cancelled at least 24 hours before start: full refund",
        }

    def test_is_before_deadline_helper(self):
        assert RefundPolicyEngine.is_before_deadline(START, START - timedelta(hours=24), 24) is True
        assert (
            RefundPolicyEngine.is_before_deadline(START, START - timedelta(hours=23, minutes=59), 24)
            is False
        )
