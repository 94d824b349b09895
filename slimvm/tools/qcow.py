"""Disk image conversion adapter (``qemu-img``)."""

from __future__ import annotations

from pathlib import Path

from slimvm.tools.process import run_tool


def convert_to_qcow2(
    work_dir: Path,
    source_name: str,
    target_name: str,
    timeout: int | None = None,
) -> Path:
    """Convert an image in ``work_dir`` to qcow2.

    Raises:
        ToolExecutionError: If qemu-img fails.
    """
    run_tool(
        ["qemu-img", "convert", "-O", "qcow2", source_name, target_name],
        cwd=work_dir,
        timeout=timeout,
    )
    return work_dir / target_name


__all__ = ["convert_to_qcow2"]
