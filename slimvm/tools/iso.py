"""ISO mastering adapter.

Drives ``mkisofs`` to produce an El Torito bootable ISO 9660 image from a
staging tree holding an isolinux bootloader.
"""

from __future__ import annotations

import logging
from pathlib import Path

from slimvm.tools.process import run_tool

logger = logging.getLogger(__name__)

BOOT_IMAGE = "isolinux/isolinux.bin"
BOOT_CATALOG = "isolinux/boot.cat"
BOOT_LOAD_SIZE = 4
VOLUME_LABEL = "slim"


def compose_mkisofs_command(source_dir: Path, output_path: Path) -> list[str]:
    """Compose the ``mkisofs`` command for a staging tree.

    Args:
        source_dir: ISO staging tree.
        output_path: Image to write.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    return [
        "mkisofs",
        "-o",
        str(output_path),
        "-b",
        BOOT_IMAGE,
        "-c",
        BOOT_CATALOG,
        "-no-emul-boot",
        "-boot-load-size",
        str(BOOT_LOAD_SIZE),
        "-boot-info-table",
        "-V",
        VOLUME_LABEL,
        "-J",
        "-R",
        str(source_dir),
    ]


def make_iso(source_dir: Path, output_path: Path, timeout: int | None = None) -> Path:
    """Master a bootable ISO image.

    Raises:
        ToolExecutionError: If mkisofs fails.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    run_tool(compose_mkisofs_command(source_dir, output_path), timeout=timeout)
    logger.debug("Wrote ISO image %s", output_path)
    return output_path


__all__ = ["compose_mkisofs_command", "make_iso"]
