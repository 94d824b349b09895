"""Archive adapters.

This module handles:
- Extracting a streamed tar archive (a container export) into a directory
- Packing a directory tree into a gzip-compressed newc cpio initrd
"""

from __future__ import annotations

import io
import logging
import os
import subprocess
import tarfile
import tempfile
import time
from collections.abc import Iterable, Iterator
from pathlib import Path

from slimvm.errors import TOOL_TIMEOUT, ExtractionError, ToolExecutionError

logger = logging.getLogger(__name__)


class ChunkStream(io.RawIOBase):
    """Read-only file object over an iterator of byte chunks."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks: Iterator[bytes] = iter(chunks)
        self._buffer = b""

    def readable(self) -> bool:
        return True

    def readinto(self, b: memoryview) -> int:  # type: ignore[override]
        while not self._buffer:
            try:
                self._buffer = next(self._chunks)
            except StopIteration:
                return 0
        size = min(len(b), len(self._buffer))
        b[:size] = self._buffer[:size]
        self._buffer = self._buffer[size:]
        return size


def _within(root: str, path: str) -> bool:
    return os.path.commonpath([root, path]) == root


def rootfs_filter(member: tarfile.TarInfo, dest_path: str) -> tarfile.TarInfo | None:
    """Extraction filter for container root filesystems.

    Keeps modes and symlink targets as they are (absolute symlinks are normal
    in a root filesystem) but refuses members that would be written through
    a link to outside the destination, and hardlinks to files outside it.
    Device nodes and FIFOs are skipped.
    """
    root = os.path.realpath(dest_path)
    member_path = Path(member.name)
    target = os.path.join(root, member.name)
    if member_path.is_absolute() or ".." in member_path.parts:
        raise tarfile.OutsideDestinationError(member, target)

    # A link member replaces whatever is at its own path, so only its parent
    # directory is resolved; anything else is written through its final component
    if member.issym() or member.islnk():
        resolved = os.path.join(
            os.path.realpath(os.path.dirname(target)), os.path.basename(target)
        )
    else:
        resolved = os.path.realpath(target)
    if not _within(root, resolved):
        raise tarfile.OutsideDestinationError(member, resolved)

    if member.islnk():
        if os.path.isabs(member.linkname) or not _within(
            root, os.path.realpath(os.path.join(root, member.linkname))
        ):
            raise tarfile.LinkOutsideDestinationError(member, member.linkname)

    if member.isdev():
        return None
    return member


def extract_stream(chunks: Iterable[bytes], dest_dir: Path) -> Path:
    """Extract a tar byte stream into a directory.

    The archive is read sequentially, so it is never buffered whole.

    Args:
        chunks: Tar archive bytes, in order.
        dest_dir: Destination directory.

    Returns:
        The destination directory.

    Raises:
        ExtractionError: If the stream is not a valid archive or a member
            cannot be written.
    """
    logger.debug("Extracting archive stream to %s", dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)

    stream = io.BufferedReader(ChunkStream(chunks), buffer_size=1024 * 1024)
    try:
        with tarfile.open(fileobj=stream, mode="r|") as tar:
            tar.extractall(dest_dir, filter=rootfs_filter)
    except tarfile.TarError as e:
        raise ExtractionError(f"Failed to extract archive into {dest_dir}: {e}") from e
    except OSError as e:
        raise ExtractionError(
            f"OS error extracting archive into {dest_dir}: {e}", code="os_error"
        ) from e

    return dest_dir


def _kill_all(procs: list[subprocess.Popen[bytes]]) -> None:
    for proc in procs:
        proc.kill()
    for proc in procs:
        proc.wait()


def create_initrd(
    root_dir: Path,
    output_path: Path,
    timeout: int | None = None,
) -> Path:
    """Pack a directory tree into a gzip-compressed newc cpio archive.

    Runs ``find . | cpio -o -H newc | gzip`` with ``root_dir`` as the
    working directory, so archive paths are relative to the tree root.

    Args:
        root_dir: Filesystem root to archive.
        output_path: Path of the compressed archive.
        timeout: Timeout in seconds (None = no timeout).

    Returns:
        Path to the written archive.

    Raises:
        ToolExecutionError: If any tool in the pipeline fails.
    """
    commands = [["find", "."], ["cpio", "-o", "-H", "newc"], ["gzip"]]
    logger.info("Executing: find . | cpio -o -H newc | gzip > %s", output_path)
    logger.debug("Working directory: %s", root_dir)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("wb") as out, tempfile.TemporaryFile() as errors:
        procs: list[subprocess.Popen[bytes]] = []
        try:
            stdin = None
            for index, cmd in enumerate(commands):
                last = index == len(commands) - 1
                proc = subprocess.Popen(
                    cmd,
                    cwd=root_dir,
                    stdin=stdin,
                    stdout=out if last else subprocess.PIPE,
                    stderr=errors,
                )
                # Parent drops its copy so upstream sees SIGPIPE if downstream dies
                if stdin is not None:
                    stdin.close()
                stdin = proc.stdout
                procs.append(proc)

            deadline = None if timeout is None else time.monotonic() + timeout
            for proc in reversed(procs):
                remaining = None
                if deadline is not None:
                    remaining = max(deadline - time.monotonic(), 0)
                proc.wait(timeout=remaining)
        except subprocess.TimeoutExpired as e:
            _kill_all(procs)
            raise ToolExecutionError(
                f"initrd archiving timed out after {timeout} seconds",
                exit_code=-1,
                code=TOOL_TIMEOUT,
            ) from e
        except OSError as e:
            _kill_all(procs)
            raise ToolExecutionError(f"Failed to execute initrd pipeline: {e}") from e

        for cmd, proc in zip(commands, procs):
            if proc.returncode != 0:
                errors.seek(0)
                output = errors.read().decode(errors="replace")
                raise ToolExecutionError(
                    f"{cmd[0]} failed with exit code {proc.returncode}:\n{output}".rstrip(),
                    exit_code=proc.returncode,
                    output=output,
                )

    return output_path


__all__ = ["ChunkStream", "create_initrd", "extract_stream", "rootfs_filter"]
