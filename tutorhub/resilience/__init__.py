"""Resilience patterns for side effects

Side effects that must never fail the primary operation (event delivery,
notification hooks) go through ``run_best_effort``.
"""

from tutorhub.resilience.best_effort import run_best_effort

__all__ = ["run_best_effort"]
