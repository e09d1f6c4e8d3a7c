"""
Prometheus metrics for the scheduling core.

Metrics live on a private registry so embedding applications can expose or
merge them without colliding with their own default registry.
"""

from threading import Lock
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

slot_generation_total = Counter(
    "scheduling_core_slot_generation_total",
    "Slot generation runs by outcome",
    ["outcome"],
    registry=REGISTRY,
)

slots_generated = Histogram(
    "scheduling_core_slots_generated",
    "Number of candidate slots produced per generation run",
    registry=REGISTRY,
    buckets=(0, 1, 4, 8, 16, 32, 64, 128),
)

slot_reservation_total = Counter(
    "scheduling_core_slot_reservation_total",
    "Slot reservation attempts by action and outcome",
    ["action", "outcome"],
    registry=REGISTRY,
)

cancel_token_verifications_total = Counter(
    "scheduling_core_cancel_token_verifications_total",
    "Cancellation token verifications by payload kind and outcome",
    ["kind", "outcome"],
    registry=REGISTRY,
)

refund_decisions_total = Counter(
    "scheduling_core_refund_decisions_total",
    "Refund decisions by type",
    ["decision"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Facade over the scheduling-core metrics."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None

    @staticmethod
    def record_slot_generation(outcome: str, slot_count: int = 0) -> None:
        slot_generation_total.labels(outcome=outcome).inc()
        if outcome == "success":
            slots_generated.observe(slot_count)
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_slot_reservation(action: str, outcome: str) -> None:
        """Record an acquire/release of a slot reservation key."""
        slot_reservation_total.labels(action=action, outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_cancel_token(kind: str, outcome: str) -> None:
        cancel_token_verifications_total.labels(kind=kind, outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_refund_decision(decision: str) -> None:
        refund_decisions_total.labels(decision=decision).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """Return metrics in Prometheus exposition format."""
        with PrometheusMetrics._cache_lock:
            if PrometheusMetrics._cache_payload is None:
                PrometheusMetrics._cache_payload = cast(bytes, generate_latest(REGISTRY))
            return PrometheusMetrics._cache_payload

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_payload = None


# Singleton instance
prometheus_metrics = PrometheusMetrics()
