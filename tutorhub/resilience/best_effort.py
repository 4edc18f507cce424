"""Best-effort execution for non-critical side effects

Runs a side effect, logs any failure and carries on. Used wherever a
collaborator call (event subscriber, notification hook) must not change the
outcome of the operation that triggered it.

Failures are never retried.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from tutorhub.monitoring.prometheus_metrics import record_side_effect_failure

logger = logging.getLogger(__name__)


async def run_best_effort(
    effect: Union[Awaitable[Any], Callable[[], Any]],
    operation: str = "side_effect"
) -> Optional[Any]:
    """
    Execute a side effect, swallowing and logging any failure.

    Args:
        effect: Awaitable, or zero-argument callable returning a value or awaitable
        operation: Name used in logs and metrics

    Returns:
        The effect's result, or None if it failed

    Example:
        await run_best_effort(lambda: send_badge_email(student_id), operation="badge_email")
    """
    try:
        result = effect() if callable(effect) else effect
        if inspect.isawaitable(result):
            result = await result
        return result
    except Exception as e:
        logger.warning(
            f"[BEST_EFFORT] {operation} failed, ignoring: {type(e).__name__}: {e}",
            exc_info=True
        )
        record_side_effect_failure(operation)
        return None
