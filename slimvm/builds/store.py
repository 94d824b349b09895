"""Artifact store layout.

The staging directory holds intermediate products::

    <stage>/<image>/          exported root filesystem
    <stage>/vmlinuz           kernel moved out of the export
    <stage>/initrd            gzip-compressed newc cpio ramdisk
    <stage>/slim-iso/         ISO staging tree (boot/, isolinux/)

Final artifacts land in the output directory under fixed names.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

KERNEL_NAME = "vmlinuz"
INITRD_NAME = "initrd"
ISO_NAME = "slim.iso"
QCOW2_NAME = "slim.qcow2"
ISO_STAGING_NAME = "slim-iso"

OUTPUT_NAMES = (KERNEL_NAME, INITRD_NAME, ISO_NAME, QCOW2_NAME)


@dataclass(frozen=True)
class ArtifactStore:
    """Paths of the staging area for one image."""

    root: Path
    image_name: str = "slim-vm"

    @property
    def export_dir(self) -> Path:
        return self.root / self.image_name

    @property
    def kernel(self) -> Path:
        return self.root / KERNEL_NAME

    @property
    def initrd(self) -> Path:
        return self.root / INITRD_NAME

    @property
    def iso_dir(self) -> Path:
        return self.root / ISO_STAGING_NAME

    @property
    def iso_boot_dir(self) -> Path:
        return self.iso_dir / "boot"

    @property
    def iso_isolinux_dir(self) -> Path:
        return self.iso_dir / "isolinux"


def empty_dir(path: Path) -> Path:
    """Make sure a directory exists and is empty.

    The directory itself is kept if present; only its contents are removed.

    Args:
        path: Directory to create or empty.

    Returns:
        The directory path.
    """
    if path.is_dir():
        for child in path.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
    else:
        path.mkdir(parents=True, exist_ok=True)
    return path


def remove_file(path: Path) -> bool:
    """Remove a file if it exists.

    Returns:
        True if a file was removed.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


__all__ = [
    "INITRD_NAME",
    "ISO_NAME",
    "KERNEL_NAME",
    "OUTPUT_NAMES",
    "QCOW2_NAME",
    "ArtifactStore",
    "empty_dir",
    "remove_file",
]
