"""Final artifact discovery and manifest generation.

This module handles:
- Finding the final artifacts present in an output directory
- Classifying them (kernel, initrd, iso, qcow2)
- Computing checksums
- Writing a JSON manifest
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from slimvm.builds.store import (
    INITRD_NAME,
    ISO_NAME,
    KERNEL_NAME,
    OUTPUT_NAMES,
    QCOW2_NAME,
)
from slimvm.types import ArtifactInfo

logger = logging.getLogger(__name__)

ARTIFACT_KINDS = {
    KERNEL_NAME: "kernel",
    INITRD_NAME: "initrd",
    ISO_NAME: "iso",
    QCOW2_NAME: "qcow2",
}

MANIFEST_NAME = "manifest.json"

# Default chunk size for hashing
HASH_CHUNK_SIZE = 64 * 1024  # 64KB


def compute_file_hash(
    file_path: Path,
    chunk_size: int = HASH_CHUNK_SIZE,
) -> str:
    """Compute SHA-256 hash of a file.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks for streaming hash.

    Returns:
        SHA-256 hex digest.
    """
    sha256 = hashlib.sha256()
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


def discover_artifacts(output_dir: Path) -> list[ArtifactInfo]:
    """List the final artifacts present in an output directory.

    Only the fixed artifact names are considered; other files are ignored.

    Args:
        output_dir: Directory holding final artifacts.

    Returns:
        ArtifactInfo for each artifact found, in kernel/initrd/iso/qcow2 order.
    """
    artifacts: list[ArtifactInfo] = []
    for name in OUTPUT_NAMES:
        path = output_dir / name
        if not path.is_file():
            continue
        artifacts.append(
            ArtifactInfo(
                filename=name,
                size_bytes=path.stat().st_size,
                sha256=compute_file_hash(path),
                kind=ARTIFACT_KINDS[name],
            )
        )

    logger.debug("Discovered %d artifacts in %s", len(artifacts), output_dir)
    return artifacts


def generate_manifest(
    artifacts: list[ArtifactInfo],
    build_inputs: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Generate a build manifest.

    Args:
        artifacts: Final artifacts.
        build_inputs: Optional description of the build inputs.

    Returns:
        Manifest dictionary suitable for JSON serialization.
    """
    manifest: dict[str, Any] = {
        "version": "1.0",
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "artifacts": [asdict(a) for a in artifacts],
    }
    if build_inputs:
        manifest["build_inputs"] = build_inputs

    manifest["summary"] = {
        "total_artifacts": len(artifacts),
        "total_size_bytes": sum(a.size_bytes for a in artifacts),
    }
    return manifest


def write_manifest(manifest: dict[str, Any], output_path: Path) -> Path:
    """Write manifest to a JSON file.

    Returns:
        Path to written manifest file.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with output_path.open("w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, sort_keys=True)

    logger.info("Wrote manifest to %s", output_path)
    return output_path


__all__ = [
    "ARTIFACT_KINDS",
    "HASH_CHUNK_SIZE",
    "MANIFEST_NAME",
    "compute_file_hash",
    "discover_artifacts",
    "generate_manifest",
    "write_manifest",
]
