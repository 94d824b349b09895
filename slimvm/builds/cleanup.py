"""Post-build cleanup policy.

Removes output artifacts that were only produced as intermediates toward
another format, never touching a format the caller asked for:

- Providers other than virtualbox need raw artifacts for everything, so the
  ISO is the intermediate; it goes unless ``iso`` was requested.
- virtualbox's base format is the ISO, so kernel and initrd are the
  intermediates; they go unless ``raw`` was requested.

Any other combination removes nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from slimvm.builds.store import INITRD_NAME, ISO_NAME, KERNEL_NAME, remove_file
from slimvm.types import BuildContext, OutputFormat, Provider

logger = logging.getLogger(__name__)


def cleanup_targets(
    provider: str | Provider,
    formats: Iterable[str | OutputFormat],
) -> list[str]:
    """Decide which output files are intermediates to remove.

    Args:
        provider: Target provider.
        formats: Requested output formats.

    Returns:
        Output file names to remove (possibly empty).
    """
    provider = Provider.parse(provider)
    requested = {OutputFormat.parse(f) for f in formats}

    if provider != Provider.VIRTUALBOX and OutputFormat.ISO not in requested:
        return [ISO_NAME]
    if provider == Provider.VIRTUALBOX and OutputFormat.RAW not in requested:
        return [INITRD_NAME, KERNEL_NAME]
    return []


def apply_cleanup(context: BuildContext) -> list[str]:
    """Remove intermediate artifacts from the output directory.

    Returns:
        Names of the files actually removed.
    """
    logger.info("Cleaning up intermediate artifacts")

    removed: list[str] = []
    for name in cleanup_targets(context.provider, context.formats):
        if remove_file(context.output_dir / name):
            removed.append(name)
            logger.debug("Removed %s", context.output_dir / name)
    return removed


__all__ = ["apply_cleanup", "cleanup_targets"]
