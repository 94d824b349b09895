"""Step catalog.

Maps each output format to the ordered chain of steps that produces it from
an empty artifact store. Order within a chain is dependency order.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType

from slimvm.types import OutputFormat


class Step(str, Enum):
    """Name of a build step."""

    BUILD_IMAGE = "build-image"
    EXPORT_FILESYSTEM = "export-filesystem"
    ASSEMBLE_RAW = "assemble-raw"
    BUILD_ISO = "build-iso"
    CONVERT_QCOW2 = "convert-qcow2"
    CLEANUP = "cleanup"


_RAW_CHAIN = (Step.BUILD_IMAGE, Step.EXPORT_FILESYSTEM, Step.ASSEMBLE_RAW)

FORMAT_STEPS = MappingProxyType(
    {
        OutputFormat.RAW: _RAW_CHAIN,
        OutputFormat.ISO: (*_RAW_CHAIN, Step.BUILD_ISO, Step.CLEANUP),
        OutputFormat.QCOW2: (
            *_RAW_CHAIN,
            Step.BUILD_ISO,
            Step.CONVERT_QCOW2,
            Step.CLEANUP,
        ),
    }
)


def steps_for_format(fmt: str | OutputFormat) -> tuple[Step, ...]:
    """Return the step chain producing a format.

    Raises:
        UnsupportedFormatError: If the format is not in the catalog.
    """
    return FORMAT_STEPS[OutputFormat.parse(fmt)]


__all__ = ["FORMAT_STEPS", "Step", "steps_for_format"]
