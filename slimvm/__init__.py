"""slimvm - build bootable VM images from a container root filesystem.

This package drives a container engine, cpio, mkisofs and qemu-img to turn
a Dockerfile into raw kernel+initrd, ISO or qcow2 artifacts.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
