"""Prometheus metrics definitions and helpers"""
import logging
import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram

from tutorhub.config import ENABLE_PROMETHEUS

logger = logging.getLogger(__name__)


class PrometheusMetrics:
    """Container for all Prometheus metrics"""

    def __init__(self, enabled: bool = ENABLE_PROMETHEUS):
        self._enabled = enabled
        if not enabled:
            logger.info("Prometheus metrics disabled")
            return

        # Gamification Metrics
        self.xp_awarded_total = Counter(
            'xp_awarded_total',
            'Total XP awarded to students',
            ['reason']
        )

        self.streak_updates_total = Counter(
            'streak_updates_total',
            'Daily streak updates by outcome',
            ['outcome']
        )

        self.level_ups_total = Counter(
            'level_ups_total',
            'Total level-ups'
        )

        self.badges_unlocked_total = Counter(
            'badges_unlocked_total',
            'Total badges unlocked',
            ['badge_id']
        )

        # Store Metrics
        self.store_operation_duration_seconds = Histogram(
            'store_operation_duration_seconds',
            'Gamification store operation latency',
            ['operation', 'status'],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
        )

        # Side effects
        self.side_effect_failures_total = Counter(
            'side_effect_failures_total',
            'Best-effort side effects that failed',
            ['operation']
        )

        logger.info("Prometheus metrics initialized")

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled"""
        return self._enabled


# Global metrics instance
metrics = PrometheusMetrics()


@contextmanager
def track_store_operation(operation: str):
    """Track gamification store operation latency"""
    if not metrics.enabled:
        yield
        return

    start_time = time.time()
    status = "error"  # Default to error

    try:
        yield
        status = "success"
    finally:
        duration = time.time() - start_time
        metrics.store_operation_duration_seconds.labels(
            operation=operation,
            status=status
        ).observe(duration)


def record_xp_awarded(reason: str, amount: int) -> None:
    """Count XP awarded for a reason"""
    if not metrics.enabled:
        return
    metrics.xp_awarded_total.labels(reason=reason).inc(amount)


def record_streak_update(outcome: str) -> None:
    """Count a streak update ('started', 'continued', 'reset', 'already_credited')"""
    if not metrics.enabled:
        return
    metrics.streak_updates_total.labels(outcome=outcome).inc()


def record_level_up() -> None:
    """Count a level-up"""
    if not metrics.enabled:
        return
    metrics.level_ups_total.inc()


def record_badge_unlocked(badge_id: str) -> None:
    """Count a badge unlock"""
    if not metrics.enabled:
        return
    metrics.badges_unlocked_total.labels(badge_id=badge_id).inc()


def record_side_effect_failure(operation: str) -> None:
    """Count a failed best-effort side effect"""
    if not metrics.enabled:
        return
    metrics.side_effect_failures_total.labels(operation=operation).inc()
