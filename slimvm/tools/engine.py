"""Container engine adapter.

Wraps the Docker SDK behind the four operations the build steps need:
building an image, creating a throwaway container, exporting its
filesystem as a tar stream, and removing it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from typing import Any, Protocol

import docker
from docker.errors import DockerException

from slimvm.errors import ContainerEngineError

logger = logging.getLogger(__name__)


class ContainerEngine(Protocol):
    """Operations the build steps use from a container engine."""

    def build(
        self,
        path: Path,
        tag: str,
        options: dict[str, Any] | None = None,
        on_progress: Callable[[str], None] | None = None,
    ) -> None: ...

    def create_container(self, image: str, command: Sequence[str]) -> Any: ...

    def export(self, container: Any) -> Iterator[bytes]: ...

    def remove(self, container: Any) -> None: ...


class DockerEngine:
    """ContainerEngine backed by a docker.DockerClient."""

    def __init__(self, client: docker.DockerClient) -> None:
        self.client = client

    @classmethod
    def from_env(cls) -> DockerEngine:
        """Connect to the Docker daemon configured in the environment.

        Raises:
            ContainerEngineError: If the daemon is unreachable.
        """
        try:
            client = docker.from_env()
            client.ping()
        except DockerException as e:
            raise ContainerEngineError(
                f"Cannot connect to Docker: {e}", code="engine_unavailable"
            ) from e
        return cls(client)

    def build(
        self,
        path: Path,
        tag: str,
        options: dict[str, Any] | None = None,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        """Build an image and block until the engine reports the outcome.

        Args:
            path: Build context directory.
            tag: Image tag.
            options: Extra keyword arguments for the low-level build call;
                they override ``tag``.
            on_progress: Receives each progress line as it streams in.

        Raises:
            ContainerEngineError: If the build fails.
        """
        kwargs: dict[str, Any] = {"path": str(path), "tag": tag, "rm": True}
        kwargs.update(options or {})
        kwargs["decode"] = True

        logger.debug("Building image %s from %s", tag, path)
        try:
            for entry in self.client.api.build(**kwargs):
                if "stream" in entry and on_progress is not None:
                    on_progress(entry["stream"])
                if "error" in entry:
                    raise ContainerEngineError(
                        entry["error"].strip(), code="image_build_failed"
                    )
        except DockerException as e:
            raise ContainerEngineError(f"Image build failed: {e}") from e

    def create_container(self, image: str, command: Sequence[str]) -> Any:
        """Create a container without starting it."""
        try:
            return self.client.containers.create(image, command=list(command))
        except DockerException as e:
            raise ContainerEngineError(
                f"Failed to create container from {image}: {e}"
            ) from e

    def export(self, container: Any) -> Iterator[bytes]:
        """Stream a container's filesystem as tar chunks."""
        try:
            yield from container.export()
        except DockerException as e:
            raise ContainerEngineError(
                f"Failed to export container {container.short_id}: {e}"
            ) from e

    def remove(self, container: Any) -> None:
        """Remove a container."""
        try:
            container.remove(force=True)
        except DockerException as e:
            raise ContainerEngineError(
                f"Failed to remove container {container.short_id}: {e}"
            ) from e


__all__ = ["ContainerEngine", "DockerEngine"]
