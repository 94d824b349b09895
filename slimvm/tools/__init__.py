"""External tool adapters.

Thin wrappers around the container engine, archive extraction, cpio/gzip,
mkisofs and qemu-img. Each adapter is one blocking operation with a clear
input/output artifact contract.
"""
