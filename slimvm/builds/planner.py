"""Build planner.

Computes the ordered, duplicate-free step sequence for a provider and a list
of requested formats. Planning is pure: the same inputs always give the same
plan, and an unknown format fails before anything runs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from slimvm.builds.catalog import Step, steps_for_format
from slimvm.providers import base_format
from slimvm.types import OutputFormat, Provider

logger = logging.getLogger(__name__)


def plan_steps(
    provider: str | Provider,
    formats: Iterable[str | OutputFormat],
) -> list[Step]:
    """Plan the steps needed to produce the requested formats.

    The provider's base format chain seeds the plan. Each requested format's
    chain is then appended in caller order, skipping steps already planned,
    so the first chain to require a step fixes its position.

    Args:
        provider: Target provider.
        formats: Requested output formats.

    Returns:
        Ordered list of steps, each appearing once.

    Raises:
        UnsupportedProviderError: If the provider is unknown.
        UnsupportedFormatError: If any requested format is unknown.
    """
    # Resolve every chain first so a bad format fails with nothing planned
    chains = [steps_for_format(base_format(provider))]
    chains.extend(steps_for_format(fmt) for fmt in formats)

    plan: list[Step] = []
    seen: set[Step] = set()
    for chain in chains:
        for step in chain:
            if step not in seen:
                seen.add(step)
                plan.append(step)

    logger.debug("Planned steps: %s", ", ".join(s.value for s in plan))
    return plan


__all__ = ["plan_steps"]
