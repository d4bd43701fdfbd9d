"""Tests for builds/dtbo.py module."""

import subprocess
from unittest.mock import patch

import pytest

from android_kernelgen.builds.dtbo import (
    DTBO_IMAGE_NAME,
    compose_mkdtimg_command,
    create_dtbo_image,
    find_dtbo_files,
)
from android_kernelgen.errors import BUILD_ERROR, EXECUTION_ERROR, BuildError


class TestFindDtboFiles:
    """Tests for find_dtbo_files function."""

    def test_missing_directory(self, tmp_path):
        """A missing output tree should yield nothing."""
        assert find_dtbo_files(tmp_path / "out" / "arch" / "arm64") == []

    def test_finds_nested_sorted(self, tmp_path):
        """Overlays anywhere below the root are found in sorted order."""
        dts = tmp_path / "dts" / "samsung"
        dts.mkdir(parents=True)
        (dts / "m51-r02.dtbo").write_bytes(b"b")
        (dts / "m51-r01.dtbo").write_bytes(b"a")
        (tmp_path / "dts" / "sdmmagpie.dtb").write_bytes(b"dtb")

        found = find_dtbo_files(tmp_path)

        assert [p.name for p in found] == ["m51-r01.dtbo", "m51-r02.dtbo"]

    def test_ignores_directories(self, tmp_path):
        """A directory named *.dtbo is not an overlay."""
        (tmp_path / "weird.dtbo").mkdir()
        assert find_dtbo_files(tmp_path) == []


class TestComposeMkdtimgCommand:
    """Tests for compose_mkdtimg_command function."""

    def test_command_layout(self, tmp_path):
        """Should produce 'mkdtimg create <img> --page_size=N files...'."""
        files = [tmp_path / "a.dtbo", tmp_path / "b.dtbo"]
        cmd = compose_mkdtimg_command(
            tmp_path / "mkdtimg", tmp_path / "dtbo.img", files, page_size=2048
        )

        assert cmd == [
            str(tmp_path / "mkdtimg"),
            "create",
            str(tmp_path / "dtbo.img"),
            "--page_size=2048",
            str(files[0]),
            str(files[1]),
        ]


class TestCreateDtboImage:
    """Tests for create_dtbo_image function."""

    def test_runs_mkdtimg(self, settings, tmp_path):
        """Should run mkdtimg into the boot directory."""
        overlay = tmp_path / "m51.dtbo"
        overlay.write_bytes(b"overlay")
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr="")

        with patch(
            "android_kernelgen.builds.dtbo.subprocess.run", return_value=completed
        ) as mock_run:
            image = create_dtbo_image(settings, [overlay])

        assert image == settings.boot_dir / DTBO_IMAGE_NAME
        assert image.parent.is_dir()
        cmd = mock_run.call_args.args[0]
        assert cmd[0] == str(settings.mkdtimg_path)
        assert "--page_size=4096" in cmd
        assert cmd[-1] == str(overlay)
        assert mock_run.call_args.kwargs["cwd"] == settings.kernel_dir

    def test_empty_list_rejected(self, settings):
        """Calling without overlays is a programming error."""
        with pytest.raises(ValueError):
            create_dtbo_image(settings, [])

    def test_failure_raises(self, settings, tmp_path):
        """A non-zero mkdtimg exit should raise BuildError."""
        completed = subprocess.CompletedProcess(
            args=[], returncode=1, stdout="", stderr="bad overlay"
        )
        with (
            patch("android_kernelgen.builds.dtbo.subprocess.run", return_value=completed),
            pytest.raises(BuildError) as exc_info,
        ):
            create_dtbo_image(settings, [tmp_path / "m51.dtbo"])

        assert exc_info.value.code == BUILD_ERROR
        assert "bad overlay" in str(exc_info.value)

    def test_missing_tool(self, settings, tmp_path):
        """A missing mkdtimg binary should raise an execution error."""
        settings.kernel_dir.mkdir(parents=True)
        with pytest.raises(BuildError) as exc_info:
            create_dtbo_image(settings, [tmp_path / "m51.dtbo"])

        assert exc_info.value.code == EXECUTION_ERROR
