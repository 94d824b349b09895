"""Shared fixtures for slimvm tests.

No test talks to Docker or runs cpio/mkisofs/qemu-img: the container engine
is replaced by FakeEngine and tool adapters are patched where steps use them.
"""

import io
import tarfile
from pathlib import Path

import pytest

from slimvm.types import BuildContext


def make_tar(files: dict[str, bytes]) -> bytes:
    """Build an uncompressed tar archive holding the given files."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


class FakeEngine:
    """In-memory ContainerEngine recording every call."""

    def __init__(
        self,
        files: dict[str, bytes] | None = None,
        build_error: Exception | None = None,
        export_data: bytes | None = None,
        remove_error: Exception | None = None,
    ) -> None:
        self.files = files if files is not None else {"vmlinuz": b"kernel-image"}
        self.build_error = build_error
        self.export_data = export_data
        self.remove_error = remove_error
        self.calls: list[tuple] = []

    def build(self, path, tag, options=None, on_progress=None):
        self.calls.append(("build", Path(path), tag, dict(options or {})))
        if self.build_error is not None:
            raise self.build_error
        if on_progress is not None:
            on_progress("Step 1/1 : FROM alpine\n")

    def create_container(self, image, command):
        self.calls.append(("create", image, tuple(command)))
        return "container-1"

    def export(self, container):
        self.calls.append(("export", container))
        data = self.export_data if self.export_data is not None else make_tar(self.files)
        # Small chunks exercise the chunk-to-file adapter
        for offset in range(0, len(data), 700):
            yield data[offset : offset + 700]

    def remove(self, container):
        self.calls.append(("remove", container))
        if self.remove_error is not None:
            raise self.remove_error

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def fake_engine() -> FakeEngine:
    """A container engine whose image holds only a kernel."""
    return FakeEngine()


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    """A build context holding a Dockerfile."""
    path = tmp_path / "recipe"
    path.mkdir()
    (path / "Dockerfile").write_text("FROM alpine\n")
    return path


@pytest.fixture
def syslinux_dir(tmp_path: Path) -> Path:
    """A complete bootloader bundle."""
    path = tmp_path / "syslinux"
    path.mkdir()
    (path / "isolinux.cfg").write_text("DEFAULT slim\n")
    (path / "isolinux.bin").write_bytes(b"\x00" * 32)
    (path / "ldlinux.c32").write_bytes(b"\x00" * 32)
    return path


@pytest.fixture
def make_context(tmp_path, build_dir, syslinux_dir, fake_engine):
    """Factory for BuildContext instances rooted in tmp_path."""

    def _make(provider="kvm", formats=("raw",), **overrides) -> BuildContext:
        values = {
            "provider": provider,
            "formats": list(formats),
            "build_path": build_dir,
            "output_dir": tmp_path / "out",
            "stage_dir": tmp_path / "stage",
            "syslinux_dir": syslinux_dir,
            "engine": fake_engine,
            "progress": lambda text: None,
        }
        values.update(overrides)
        return BuildContext(**values)

    return _make


@pytest.fixture
def fake_tools(monkeypatch) -> list[str]:
    """Replace cpio, mkisofs and qemu-img with functions writing stub files.

    Returns:
        Names of the tools invoked, in order.
    """
    calls: list[str] = []

    def fake_initrd(root_dir, output_path, timeout=None):
        calls.append("cpio")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(b"initrd-archive")
        return output_path

    def fake_iso(source_dir, output_path, timeout=None):
        calls.append("mkisofs")
        assert (source_dir / "boot" / "vmlinuz").is_file()
        assert (source_dir / "boot" / "initrd").is_file()
        assert (source_dir / "isolinux" / "isolinux.bin").is_file()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(b"iso-image")
        return output_path

    def fake_qcow(work_dir, source_name, target_name, timeout=None):
        calls.append("qemu-img")
        assert (work_dir / source_name).is_file()
        (work_dir / target_name).write_bytes(b"qcow2-image")
        return work_dir / target_name

    monkeypatch.setattr("slimvm.builds.steps.create_initrd", fake_initrd)
    monkeypatch.setattr("slimvm.builds.steps.make_iso", fake_iso)
    monkeypatch.setattr("slimvm.builds.steps.convert_to_qcow2", fake_qcow)
    return calls
