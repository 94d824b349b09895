"""Build executor.

Runs planned steps one after another against a shared BuildContext. The
first failing step stops the run and its exception propagates unchanged;
artifacts already produced are left in place.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence

from slimvm.builds.catalog import Step
from slimvm.errors import UNKNOWN_STEP, ConfigurationError
from slimvm.types import BuildContext

logger = logging.getLogger(__name__)

StepFunc = Callable[[BuildContext], None]


def execute(
    plan: Sequence[Step],
    context: BuildContext,
    registry: Mapping[Step, StepFunc] | None = None,
) -> list[Step]:
    """Execute planned steps in order.

    Args:
        plan: Steps to run, in order.
        context: Build context passed to each step.
        registry: Step implementations; defaults to the built-in steps.

    Returns:
        The steps that ran, in order.

    Raises:
        ConfigurationError: If a planned step has no implementation.
        Exception: Whatever the first failing step raised.
    """
    if registry is None:
        from slimvm.builds.steps import STEP_REGISTRY

        registry = STEP_REGISTRY

    missing = [step for step in plan if step not in registry]
    if missing:
        raise ConfigurationError(
            f"No implementation for step(s): {', '.join(s.value for s in missing)}",
            code=UNKNOWN_STEP,
        )

    completed: list[Step] = []
    for index, step in enumerate(plan, start=1):
        logger.debug("Step %d/%d: %s", index, len(plan), step.value)
        try:
            registry[step](context)
        except Exception:
            logger.error("Step %s failed", step.value)
            raise
        completed.append(step)

    return completed


__all__ = ["StepFunc", "execute"]
