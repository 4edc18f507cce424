"""Sentry configuration and helpers"""
import logging
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from tutorhub.config import ENABLE_SENTRY, SENTRY_DSN, SENTRY_ENVIRONMENT, SENTRY_TRACES_SAMPLE_RATE

logger = logging.getLogger(__name__)


def init_sentry() -> bool:
    """Initialize Sentry SDK with FastAPI integration. Returns True when enabled."""
    if not ENABLE_SENTRY:
        logger.info("Sentry monitoring disabled")
        return False

    if not SENTRY_DSN:
        logger.warning("Sentry enabled but SENTRY_DSN not configured")
        return False

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR
            ),
        ],
    )

    logger.info(
        f"Sentry initialized: environment={SENTRY_ENVIRONMENT}, "
        f"sample_rate={SENTRY_TRACES_SAMPLE_RATE}"
    )
    return True


def set_student_context(student_id: str) -> None:
    """Set student context for Sentry events"""
    if not ENABLE_SENTRY:
        return
    sentry_sdk.set_user({"id": student_id})


def capture_exception(exception: Exception, **extra_context: Any) -> None:
    """Capture exception with custom context"""
    if not ENABLE_SENTRY:
        return

    # Add extra context as tags
    for key, value in extra_context.items():
        sentry_sdk.set_tag(key, str(value))

    sentry_sdk.capture_exception(exception)
