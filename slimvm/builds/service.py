"""Build service module.

This module provides the high-level build API:
- create_context(): BuildContext from caller inputs and settings
- build(): plan, execute and report a build

A build either runs every planned step or stops at the first failure and
raises it; there is no partial-success result.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from slimvm.builds.artifacts import (
    MANIFEST_NAME,
    discover_artifacts,
    generate_manifest,
    write_manifest,
)
from slimvm.builds.catalog import Step
from slimvm.builds.executor import StepFunc, execute
from slimvm.builds.planner import plan_steps
from slimvm.config import get_settings
from slimvm.types import ArtifactInfo, BuildContext, OutputFormat, Provider

if TYPE_CHECKING:
    from slimvm.config import Settings
    from slimvm.tools.engine import ContainerEngine

logger = logging.getLogger(__name__)


@dataclass
class BuildReport:
    """Outcome of a successful build.

    Attributes:
        steps: Steps that ran, in order.
        artifacts: Final artifacts left in the output directory.
        duration: Wall-clock build time in seconds.
        manifest_path: Manifest file, if one was written.
    """

    steps: list[Step]
    artifacts: list[ArtifactInfo] = field(default_factory=list)
    duration: float = 0.0
    manifest_path: Path | None = None


def create_context(
    build_path: Path,
    provider: str | Provider,
    formats: Iterable[str | OutputFormat],
    output_dir: Path,
    docker_opts: dict[str, Any] | None = None,
    settings: Settings | None = None,
    engine: ContainerEngine | None = None,
    progress: Callable[[str], None] | None = None,
) -> BuildContext:
    """Create a BuildContext, filling ambient paths from settings.

    Raises:
        ConfigurationError: If the provider or a format is invalid, or no
            format is given.
    """
    if settings is None:
        settings = get_settings()

    kwargs: dict[str, Any] = {}
    if progress is not None:
        kwargs["progress"] = progress

    return BuildContext(
        provider=Provider.parse(provider),
        formats=list(formats),
        build_path=Path(build_path),
        output_dir=Path(output_dir),
        stage_dir=settings.stage_dir,
        syslinux_dir=settings.syslinux_dir,
        docker_opts=dict(docker_opts or {}),
        image_name=settings.image_name,
        tool_timeout=settings.tool_timeout,
        engine=engine,
        **kwargs,
    )


def build(
    context: BuildContext,
    write_manifest_file: bool = False,
    registry: Mapping[Step, StepFunc] | None = None,
) -> BuildReport:
    """Run a complete build.

    Args:
        context: Build inputs.
        write_manifest_file: Write manifest.json next to the artifacts.
        registry: Step implementations; defaults to the built-in steps.

    Returns:
        BuildReport describing the run.

    Raises:
        ConfigurationError: If planning fails; nothing has run yet.
        SlimError: The first step failure.
    """
    plan = plan_steps(context.provider, context.formats)
    logger.info(
        "Building %s for %s: %s",
        ", ".join(f.value for f in context.formats),
        context.provider.value,
        " -> ".join(s.value for s in plan),
    )

    started = time.monotonic()
    completed = execute(plan, context, registry=registry)
    duration = time.monotonic() - started

    report = BuildReport(
        steps=completed,
        artifacts=discover_artifacts(context.output_dir),
        duration=duration,
    )

    if write_manifest_file:
        manifest = generate_manifest(
            report.artifacts,
            build_inputs={
                "provider": context.provider.value,
                "formats": [f.value for f in context.formats],
                "steps": [s.value for s in completed],
            },
        )
        report.manifest_path = write_manifest(
            manifest, context.output_dir / MANIFEST_NAME
        )

    logger.info("Build succeeded in %.1fs", duration)
    return report


__all__ = ["BuildReport", "build", "create_context"]
