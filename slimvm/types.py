"""Shared type definitions for slimvm.

This module contains enums and dataclasses shared across subpackages to
avoid circular imports.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from slimvm.errors import (
    ConfigurationError,
    UnsupportedFormatError,
    UnsupportedProviderError,
)

if TYPE_CHECKING:
    from slimvm.builds.store import ArtifactStore
    from slimvm.tools.engine import ContainerEngine


class Provider(str, Enum):
    """Virtualization platform consuming the final artifacts."""

    HYPERKIT = "hyperkit"
    KVM = "kvm"
    VIRTUALBOX = "virtualbox"

    @classmethod
    def parse(cls, value: str | Provider) -> Provider:
        """Coerce a string to a Provider.

        Raises:
            UnsupportedProviderError: If the value names no provider.
        """
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedProviderError(value) from None


class OutputFormat(str, Enum):
    """Output artifact format."""

    RAW = "raw"
    ISO = "iso"
    QCOW2 = "qcow2"

    @classmethod
    def parse(cls, value: str | OutputFormat) -> OutputFormat:
        """Coerce a string to an OutputFormat.

        Raises:
            UnsupportedFormatError: If the value names no format.
        """
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedFormatError(value) from None


def unique_formats(formats: Iterable[str | OutputFormat]) -> list[OutputFormat]:
    """Parse formats, dropping repeats and keeping first occurrence order."""
    result: list[OutputFormat] = []
    for value in formats:
        fmt = OutputFormat.parse(value)
        if fmt not in result:
            result.append(fmt)
    return result


def _write_progress(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


@dataclass
class BuildContext:
    """Inputs of a single build, threaded through every step.

    Attributes:
        provider: Target virtualization platform.
        formats: Requested output formats, in caller order.
        build_path: Directory holding the Dockerfile.
        output_dir: Destination for final artifacts.
        docker_opts: Keyword arguments forwarded verbatim to the engine build.
        stage_dir: Root of the artifact store.
        syslinux_dir: Bootloader bundle copied into the ISO tree.
        image_name: Tag of the intermediate container image.
        tool_timeout: Optional timeout for external tools in seconds.
        engine: Container engine adapter; created from the environment
            on first use when not set.
        progress: Receives container build progress text.
    """

    provider: Provider
    formats: list[OutputFormat]
    build_path: Path
    output_dir: Path
    stage_dir: Path
    syslinux_dir: Path
    docker_opts: dict[str, Any] = field(default_factory=dict)
    image_name: str = "slim-vm"
    tool_timeout: int | None = None
    engine: ContainerEngine | None = None
    progress: Callable[[str], None] = _write_progress

    def __post_init__(self) -> None:
        self.provider = Provider.parse(self.provider)
        self.formats = unique_formats(self.formats)
        if not self.formats:
            raise ConfigurationError("At least one output format is required")
        self.build_path = Path(self.build_path)
        self.output_dir = Path(self.output_dir)
        self.stage_dir = Path(self.stage_dir)
        self.syslinux_dir = Path(self.syslinux_dir)

    @property
    def store(self) -> ArtifactStore:
        """Staging area layout for this build."""
        from slimvm.builds.store import ArtifactStore

        return ArtifactStore(self.stage_dir, self.image_name)

    def get_engine(self) -> ContainerEngine:
        """Return the container engine, connecting to the local daemon if needed."""
        if self.engine is None:
            from slimvm.tools.engine import DockerEngine

            self.engine = DockerEngine.from_env()
        return self.engine


@dataclass
class ArtifactInfo:
    """Information about a final build artifact."""

    filename: str
    size_bytes: int
    sha256: str
    kind: str | None = None


__all__ = [
    "ArtifactInfo",
    "BuildContext",
    "OutputFormat",
    "Provider",
    "unique_formats",
]
