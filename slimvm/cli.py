"""Thin CLI wrapper for slimvm.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from slimvm import __version__
from slimvm.config import get_settings, print_settings_json
from slimvm.errors import SlimError
from slimvm.providers import PROVIDER_FORMATS, base_format
from slimvm.types import OutputFormat, Provider

app = typer.Typer(
    name="slim",
    help="slim - build bootable VM images from a Dockerfile",
    no_args_is_help=True,
)
console = Console()


def setup_logging(level: str) -> None:
    """Route log records to stderr through rich.

    Calling again only adjusts the level.
    """
    root = logging.getLogger()
    root.setLevel(level)
    if any(isinstance(h, RichHandler) for h in root.handlers):
        return

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)


def fail(error: SlimError) -> None:
    """Print an error and exit with code 1."""
    console.print(f"[red]Error ({error.code}):[/red] {escape(str(error))}")
    raise typer.Exit(code=1) from error


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"slimvm version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override the configured log level"),
    ] = None,
) -> None:
    """slim - build bootable VM images from a Dockerfile."""
    setup_logging((log_level or get_settings().log_level).upper())


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings), soft_wrap=True)
    else:
        timeout_display = (
            str(settings.tool_timeout) if settings.tool_timeout else "(none)"
        )
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Stage directory:     {settings.stage_dir}")
        console.print(f"  Syslinux bundle:     {settings.syslinux_dir}")
        console.print()
        console.print("[bold]Build:[/bold]")
        console.print(f"  Image name:          {settings.image_name}")
        console.print(f"  Tool timeout:        {timeout_display}")
        console.print(f"  Log level:           {settings.log_level}")


@app.command()
def providers(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List providers and the formats they consume."""
    if json_output:
        output = {
            p.value: [f.value for f in formats]
            for p, formats in PROVIDER_FORMATS.items()
        }
        console.print(json.dumps(output, indent=2), soft_wrap=True)
        return

    for p, formats in PROVIDER_FORMATS.items():
        console.print(
            f"  [green]{p.value}[/green]  base={formats[0].value}  "
            f"formats={', '.join(f.value for f in formats)}"
        )


@app.command()
def plan(
    provider: Annotated[
        Provider,
        typer.Option("--provider", "-p", help="Target provider"),
    ] = Provider.KVM,
    formats: Annotated[
        list[OutputFormat] | None,
        typer.Option("--format", "-f", help="Output format (can be repeated)"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show the steps a build would run, without running them."""
    from slimvm.builds.planner import plan_steps

    requested = formats or [base_format(provider)]
    try:
        steps = plan_steps(provider, requested)
    except SlimError as e:
        fail(e)

    if json_output:
        console.print(json.dumps([s.value for s in steps], indent=2), soft_wrap=True)
        return

    for index, step in enumerate(steps, start=1):
        console.print(f"  {index}. {step.value}")


def parse_build_args(values: list[str]) -> dict[str, str]:
    """Parse repeated KEY=VALUE build arguments."""
    result: dict[str, str] = {}
    for value in values:
        key, sep, arg = value.partition("=")
        if not sep or not key:
            raise typer.BadParameter(
                f"Expected KEY=VALUE, got {value!r}", param_hint="--build-arg"
            )
        result[key] = arg
    return result


@app.command("build")
def build_cmd(
    path: Annotated[
        Path,
        typer.Argument(help="Directory containing the Dockerfile"),
    ],
    provider: Annotated[
        Provider,
        typer.Option("--provider", "-p", help="Target provider"),
    ] = Provider.KVM,
    formats: Annotated[
        list[OutputFormat] | None,
        typer.Option(
            "--format",
            "-f",
            help="Output format (can be repeated); defaults to the provider's base format",
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output directory (default: current)"),
    ] = None,
    build_args: Annotated[
        list[str] | None,
        typer.Option("--build-arg", help="Docker build argument KEY=VALUE"),
    ] = None,
    no_cache: Annotated[
        bool,
        typer.Option("--no-cache", help="Do not use the Docker build cache"),
    ] = False,
    manifest: Annotated[
        bool,
        typer.Option("--manifest", help="Write manifest.json next to the artifacts"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Build VM artifacts from a Dockerfile."""
    from slimvm.builds.service import build, create_context

    docker_opts: dict[str, object] = {}
    if build_args:
        docker_opts["buildargs"] = parse_build_args(build_args)
    if no_cache:
        docker_opts["nocache"] = True

    output_dir = output or Path.cwd()
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        context = create_context(
            build_path=path,
            provider=provider,
            formats=formats or [base_format(provider)],
            output_dir=output_dir,
            docker_opts=docker_opts,
            # Keep stdout clean for JSON
            progress=sys.stderr.write if json_output else None,
        )
        report = build(context, write_manifest_file=manifest)
    except SlimError as e:
        fail(e)
    except OSError as e:
        fail(SlimError(str(e), code="os_error"))

    if json_output:
        result = {
            "steps": [s.value for s in report.steps],
            "artifacts": [asdict(a) for a in report.artifacts],
            "duration": round(report.duration, 3),
            "manifest_path": str(report.manifest_path) if report.manifest_path else None,
        }
        console.print(json.dumps(result, indent=2), soft_wrap=True)
        return

    console.print(f"[green]Success![/green] ({report.duration:.1f}s)")
    for artifact in report.artifacts:
        console.print(
            f"  {output_dir / artifact.filename}  "
            f"{artifact.size_bytes} bytes  sha256:{artifact.sha256[:16]}"
        )
    if report.manifest_path:
        console.print(f"  Manifest: {report.manifest_path}")


__all__ = ["app"]
