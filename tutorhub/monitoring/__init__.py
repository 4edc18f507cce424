"""Monitoring infrastructure for the gamification engine"""
from tutorhub.monitoring.sentry_config import init_sentry, capture_exception, set_student_context
from tutorhub.monitoring.prometheus_metrics import (
    metrics,
    track_store_operation,
    record_xp_awarded,
    record_streak_update,
    record_level_up,
    record_badge_unlocked,
    record_side_effect_failure,
)

__all__ = [
    "init_sentry",
    "capture_exception",
    "set_student_context",
    "metrics",
    "track_store_operation",
    "record_xp_awarded",
    "record_streak_update",
    "record_level_up",
    "record_badge_unlocked",
    "record_side_effect_failure",
]
