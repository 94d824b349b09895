"""Build steps.

Each step takes the BuildContext as its only input, returns nothing, and
communicates with later steps through the artifact store.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from types import MappingProxyType

from slimvm.builds.catalog import Step
from slimvm.builds.cleanup import apply_cleanup
from slimvm.builds.store import (
    INITRD_NAME,
    ISO_NAME,
    KERNEL_NAME,
    QCOW2_NAME,
    empty_dir,
)
from slimvm.errors import (
    BuildRecipeNotFoundError,
    ConfigurationError,
    SlimError,
)
from slimvm.tools.archive import create_initrd, extract_stream
from slimvm.tools.iso import make_iso
from slimvm.tools.qcow import convert_to_qcow2
from slimvm.types import BuildContext

logger = logging.getLogger(__name__)

RECIPE_NAME = "Dockerfile"

# Bootloader binaries the bundle may omit, looked up in the host syslinux install
BOOTLOADER_FILES = ("isolinux.bin", "ldlinux.c32")
SYSLINUX_SEARCH_PATHS = (
    Path("/usr/lib/ISOLINUX"),
    Path("/usr/lib/syslinux/modules/bios"),
    Path("/usr/lib/syslinux/bios"),
    Path("/usr/lib/syslinux"),
    Path("/usr/share/syslinux"),
)
# Command for the export container; it is created but never started
EXPORT_COMMAND = ("sh",)


def build_image(context: BuildContext) -> None:
    """Build the container image from the Dockerfile in ``build_path``.

    Raises:
        BuildRecipeNotFoundError: If there is no Dockerfile; checked before
            the engine is contacted.
        ContainerEngineError: If the engine reports a failed build.
    """
    logger.info("Building container image %s", context.image_name)

    if not (context.build_path / RECIPE_NAME).is_file():
        raise BuildRecipeNotFoundError(context.build_path)

    context.get_engine().build(
        context.build_path,
        context.image_name,
        options=context.docker_opts,
        on_progress=context.progress,
    )


def export_filesystem(context: BuildContext) -> None:
    """Export the image's root filesystem into the artifact store."""
    logger.info("Exporting container filesystem")

    export_dir = empty_dir(context.store.export_dir)
    engine = context.get_engine()
    container = engine.create_container(context.image_name, EXPORT_COMMAND)
    try:
        extract_stream(engine.export(container), export_dir)
    finally:
        try:
            engine.remove(container)
        except Exception as e:
            logger.debug("Ignoring container removal failure: %s", e)


def assemble_raw(context: BuildContext) -> None:
    """Produce the kernel and initrd and copy them to the output directory."""
    logger.info("Creating initrd")

    store = context.store
    exported_kernel = store.export_dir / KERNEL_NAME
    if not exported_kernel.is_file():
        raise SlimError(
            f"Expected kernel at /{KERNEL_NAME} in image {context.image_name}",
            code="kernel_not_found",
        )
    exported_kernel.replace(store.kernel)

    create_initrd(store.export_dir, store.initrd, timeout=context.tool_timeout)

    context.output_dir.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(store.initrd, context.output_dir / INITRD_NAME)
    shutil.copyfile(store.kernel, context.output_dir / KERNEL_NAME)


def stage_bootloader(
    isolinux_dir: Path,
    search_paths: Sequence[Path] = SYSLINUX_SEARCH_PATHS,
) -> None:
    """Fill in bootloader binaries missing from the staged bundle.

    Raises:
        ConfigurationError: If a binary is in neither the bundle nor the
            search paths.
    """
    for name in BOOTLOADER_FILES:
        if (isolinux_dir / name).is_file():
            continue
        source = next((d / name for d in search_paths if (d / name).is_file()), None)
        if source is None:
            raise ConfigurationError(
                f"{name} not found in the bootloader bundle or the syslinux install",
                code="bootloader_not_found",
            )
        logger.debug("Using %s", source)
        shutil.copyfile(source, isolinux_dir / name)


def build_iso(context: BuildContext) -> None:
    """Master a bootable ISO from the kernel, initrd and bootloader bundle."""
    logger.info("Building ISO image")

    if not context.syslinux_dir.is_dir():
        raise ConfigurationError(
            f"Bootloader bundle not found: {context.syslinux_dir}",
            code="bootloader_not_found",
        )

    store = context.store
    empty_dir(store.iso_dir)
    with ThreadPoolExecutor(max_workers=2) as pool:
        list(pool.map(empty_dir, [store.iso_boot_dir, store.iso_isolinux_dir]))

    shutil.copytree(context.syslinux_dir, store.iso_isolinux_dir, dirs_exist_ok=True)
    stage_bootloader(store.iso_isolinux_dir)
    shutil.copyfile(store.kernel, store.iso_boot_dir / KERNEL_NAME)
    shutil.copyfile(store.initrd, store.iso_boot_dir / INITRD_NAME)

    make_iso(store.iso_dir, context.output_dir / ISO_NAME, timeout=context.tool_timeout)


def convert_qcow2(context: BuildContext) -> None:
    """Convert the ISO in the output directory to a qcow2 image."""
    logger.info("Building qcow2 image")
    convert_to_qcow2(
        context.output_dir, ISO_NAME, QCOW2_NAME, timeout=context.tool_timeout
    )


def cleanup(context: BuildContext) -> None:
    """Remove intermediate artifacts that were not requested."""
    apply_cleanup(context)


STEP_REGISTRY = MappingProxyType(
    {
        Step.BUILD_IMAGE: build_image,
        Step.EXPORT_FILESYSTEM: export_filesystem,
        Step.ASSEMBLE_RAW: assemble_raw,
        Step.BUILD_ISO: build_iso,
        Step.CONVERT_QCOW2: convert_qcow2,
        Step.CLEANUP: cleanup,
    }
)


__all__ = [
    "STEP_REGISTRY",
    "assemble_raw",
    "build_image",
    "build_iso",
    "cleanup",
    "convert_qcow2",
    "export_filesystem",
    "stage_bootloader",
]
