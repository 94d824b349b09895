"""Tests for builds/steps.py module.

Uses FakeEngine and patched tool adapters; nothing runs Docker or external
tools.
"""

from unittest.mock import patch

import pytest
from conftest import FakeEngine

from slimvm.builds.steps import (
    assemble_raw,
    build_image,
    build_iso,
    convert_qcow2,
    export_filesystem,
    stage_bootloader,
)
from slimvm.errors import (
    BuildRecipeNotFoundError,
    ConfigurationError,
    ContainerEngineError,
    ExtractionError,
    SlimError,
)


class TestBuildImage:
    """Tests for build_image step."""

    def test_builds_with_tag_and_options(self, make_context, fake_engine):
        """Should build the recipe with the fixed tag and forward options."""
        context = make_context(docker_opts={"nocache": True})

        build_image(context)

        assert fake_engine.calls == [
            ("build", context.build_path, "slim-vm", {"nocache": True})
        ]

    def test_streams_progress(self, make_context):
        """Build progress should reach the context's progress callback."""
        lines = []
        build_image(make_context(progress=lines.append))
        assert lines == ["Step 1/1 : FROM alpine\n"]

    def test_missing_dockerfile(self, make_context, fake_engine, tmp_path):
        """A missing Dockerfile fails before the engine is called."""
        empty = tmp_path / "empty"
        empty.mkdir()

        with pytest.raises(BuildRecipeNotFoundError) as exc_info:
            build_image(make_context(build_path=empty))

        assert exc_info.value.code == "recipe_not_found"
        assert fake_engine.calls == []

    def test_engine_failure_propagates(self, make_context):
        """Engine errors should surface as-is."""
        engine = FakeEngine(build_error=ContainerEngineError("no space left"))

        with pytest.raises(ContainerEngineError, match="no space left"):
            build_image(make_context(engine=engine))


class TestExportFilesystem:
    """Tests for export_filesystem step."""

    def test_extracts_filesystem(self, make_context, fake_engine):
        """Exported files should land in the image directory."""
        fake_engine.files = {"vmlinuz": b"kernel", "etc/hostname": b"slim\n"}
        context = make_context()

        export_filesystem(context)

        export_dir = context.stage_dir / "slim-vm"
        assert (export_dir / "vmlinuz").read_bytes() == b"kernel"
        assert (export_dir / "etc" / "hostname").read_text() == "slim\n"
        assert fake_engine.call_names() == ["create", "export", "remove"]
        assert fake_engine.calls[0] == ("create", "slim-vm", ("sh",))

    def test_empties_previous_export(self, make_context):
        """Stale files from an earlier export should be removed."""
        context = make_context()
        stale = context.stage_dir / "slim-vm" / "stale"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")

        export_filesystem(context)

        assert not stale.exists()

    def test_extraction_failure_still_removes_container(self, make_context):
        """A corrupt stream fails the step but the container is removed."""
        engine = FakeEngine(export_data=b"x" * 1024)

        with pytest.raises(ExtractionError):
            export_filesystem(make_context(engine=engine))

        assert engine.call_names()[-1] == "remove"

    def test_removal_failure_is_ignored(self, make_context):
        """Failing to remove the container does not fail the step."""
        engine = FakeEngine(remove_error=ContainerEngineError("busy"))
        context = make_context(engine=engine)

        export_filesystem(context)

        assert (context.stage_dir / "slim-vm" / "vmlinuz").exists()

    def test_unexpected_removal_error_is_ignored(self, make_context):
        """Removal errors outside the engine error type are ignored too."""
        engine = FakeEngine(remove_error=ConnectionError("daemon gone"))
        context = make_context(engine=engine)

        export_filesystem(context)

        assert engine.call_names()[-1] == "remove"
        assert (context.stage_dir / "slim-vm" / "vmlinuz").exists()

    def test_removal_error_does_not_mask_extraction_error(self, make_context):
        """The extraction failure surfaces even if removal fails as well."""
        engine = FakeEngine(
            export_data=b"x" * 1024, remove_error=ConnectionError("daemon gone")
        )

        with pytest.raises(ExtractionError):
            export_filesystem(make_context(engine=engine))


class TestAssembleRaw:
    """Tests for assemble_raw step."""

    def test_produces_kernel_and_initrd(self, make_context, fake_tools):
        """Kernel is moved out of the export; both land in the output."""
        context = make_context()
        export_dir = context.stage_dir / "slim-vm"
        export_dir.mkdir(parents=True)
        (export_dir / "vmlinuz").write_bytes(b"kernel")

        assemble_raw(context)

        assert fake_tools == ["cpio"]
        assert not (export_dir / "vmlinuz").exists()
        assert (context.stage_dir / "vmlinuz").read_bytes() == b"kernel"
        assert (context.output_dir / "vmlinuz").read_bytes() == b"kernel"
        assert (context.output_dir / "initrd").read_bytes() == b"initrd-archive"

    def test_archives_export_dir(self, make_context):
        """The initrd should be packed from the export directory."""
        context = make_context(tool_timeout=30)
        export_dir = context.stage_dir / "slim-vm"
        export_dir.mkdir(parents=True)
        (export_dir / "vmlinuz").write_bytes(b"kernel")

        def fake_initrd(root_dir, output_path, timeout=None):
            output_path.write_bytes(b"")
            return output_path

        with patch(
            "slimvm.builds.steps.create_initrd", side_effect=fake_initrd
        ) as mock_initrd:
            assemble_raw(context)

        mock_initrd.assert_called_once_with(
            export_dir, context.stage_dir / "initrd", timeout=30
        )

    def test_missing_kernel(self, make_context, fake_tools):
        """An image without /vmlinuz cannot be assembled."""
        context = make_context()
        (context.stage_dir / "slim-vm").mkdir(parents=True)

        with pytest.raises(SlimError) as exc_info:
            assemble_raw(context)

        assert exc_info.value.code == "kernel_not_found"
        assert fake_tools == []


class TestBuildIso:
    """Tests for build_iso step."""

    def _stage_raw(self, context):
        context.stage_dir.mkdir(parents=True, exist_ok=True)
        (context.stage_dir / "vmlinuz").write_bytes(b"kernel")
        (context.stage_dir / "initrd").write_bytes(b"initrd")

    def test_builds_iso(self, make_context, fake_tools):
        """Staging tree is assembled and mastered into the output dir."""
        context = make_context(formats=["iso"])
        self._stage_raw(context)

        build_iso(context)

        iso_dir = context.stage_dir / "slim-iso"
        assert fake_tools == ["mkisofs"]
        assert (iso_dir / "isolinux" / "isolinux.cfg").exists()
        assert (iso_dir / "boot" / "vmlinuz").read_bytes() == b"kernel"
        assert (context.output_dir / "slim.iso").exists()

    def test_clears_previous_staging(self, make_context, fake_tools):
        """Leftovers in the ISO staging tree should be removed."""
        context = make_context(formats=["iso"])
        self._stage_raw(context)
        leftover = context.stage_dir / "slim-iso" / "boot" / "old-kernel"
        leftover.parent.mkdir(parents=True)
        leftover.write_bytes(b"old")

        build_iso(context)

        assert not leftover.exists()

    def test_missing_bundle(self, make_context, fake_tools, tmp_path):
        """A missing bootloader bundle is a configuration error."""
        context = make_context(syslinux_dir=tmp_path / "nowhere")
        self._stage_raw(context)

        with pytest.raises(ConfigurationError) as exc_info:
            build_iso(context)

        assert exc_info.value.code == "bootloader_not_found"
        assert fake_tools == []


class TestStageBootloader:
    """Tests for stage_bootloader function."""

    def test_keeps_bundled_binaries(self, tmp_path):
        """Binaries already in the bundle are left alone."""
        isolinux = tmp_path / "isolinux"
        isolinux.mkdir()
        (isolinux / "isolinux.bin").write_bytes(b"bundled")
        (isolinux / "ldlinux.c32").write_bytes(b"bundled")

        stage_bootloader(isolinux, search_paths=[])

        assert (isolinux / "isolinux.bin").read_bytes() == b"bundled"

    def test_copies_from_search_path(self, tmp_path):
        """Missing binaries come from the first search path holding them."""
        isolinux = tmp_path / "isolinux"
        isolinux.mkdir()
        first = tmp_path / "first"
        second = tmp_path / "second"
        first.mkdir()
        second.mkdir()
        (first / "ldlinux.c32").write_bytes(b"first")
        (second / "isolinux.bin").write_bytes(b"second")
        (second / "ldlinux.c32").write_bytes(b"second")

        stage_bootloader(isolinux, search_paths=[first, second])

        assert (isolinux / "isolinux.bin").read_bytes() == b"second"
        assert (isolinux / "ldlinux.c32").read_bytes() == b"first"

    def test_missing_everywhere(self, tmp_path):
        """A binary found nowhere is a configuration error."""
        isolinux = tmp_path / "isolinux"
        isolinux.mkdir()

        with pytest.raises(ConfigurationError, match="isolinux.bin"):
            stage_bootloader(isolinux, search_paths=[tmp_path])


class TestConvertQcow2:
    """Tests for convert_qcow2 step."""

    def test_converts_in_output_dir(self, make_context):
        """qemu-img should run on the fixed names inside the output dir."""
        context = make_context(formats=["qcow2"])

        with patch("slimvm.builds.steps.convert_to_qcow2") as mock_convert:
            convert_qcow2(context)

        mock_convert.assert_called_once_with(
            context.output_dir, "slim.iso", "slim.qcow2", timeout=None
        )
