"""Smoke tests for the CLI.

These tests verify basic CLI functionality without requiring
network access or external tools.
"""

import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from android_kernelgen import __version__
from android_kernelgen.cli import app
from android_kernelgen.types import (
    PackageResult,
    PipelineResult,
    Stage,
    StageResult,
    StageStatus,
)

runner = CliRunner()


def _successful_result(tmp_path: Path) -> PipelineResult:
    return PipelineResult(
        stages=[StageResult(stage, StageStatus.SUCCEEDED, "ok") for stage in Stage],
        package=PackageResult(
            archive_path=tmp_path / "output" / "ButterflyKernel_m51-20240309-0705.zip",
            log_path=tmp_path / "output" / "build.log",
        ),
    )


def _failed_result() -> PipelineResult:
    return PipelineResult(
        stages=[
            StageResult(Stage.PROVISION, StageStatus.SUCCEEDED, "ok"),
            StageResult(Stage.SYNC, StageStatus.FAILED, "git pull failed", "git_error"),
        ]
    )


class TestCLIHelp:
    """Test CLI help and version commands."""

    def test_help_returns_zero(self) -> None:
        """CLI --help should return exit code 0."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Android Kernel Generator" in result.stdout

    def test_version_flag(self) -> None:
        """CLI --version should print version and exit 0."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_short_version_flag(self) -> None:
        """CLI -V should print version and exit 0."""
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_no_args_shows_help(self) -> None:
        """CLI with no args should show help."""
        result = runner.invoke(app, [])
        assert "Usage:" in result.stdout

    def test_build_help(self) -> None:
        """build --help should list its options."""
        result = runner.invoke(app, ["build", "--help"])
        assert result.exit_code == 0
        assert "--clean" in result.stdout
        assert "--jobs" in result.stdout


class TestCLIConfig:
    """Test CLI config command."""

    def test_config_command(self) -> None:
        """CLI config should show configuration sections."""
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        for section in ("Paths:", "Kernel:", "Toolchains:", "Packaging:", "Operational:"):
            assert section in result.stdout
        assert "Work directory" in result.stdout
        assert "ButterflyKernel_m51" in result.stdout

    def test_config_json(self) -> None:
        """CLI config --json should output valid JSON."""
        result = runner.invoke(app, ["config", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["kernel_branch"] == "m51"
        assert data["kernel_defconfig"] == "m51_defconfig"

    def test_config_with_profile(self, tmp_path: Path) -> None:
        """A device profile should change the effective settings."""
        profile = tmp_path / "a52.yaml"
        profile.write_text("kernel_branch: a52\nzip_prefix: ButterflyKernel_a52\n")

        result = runner.invoke(app, ["config", "--json", "--profile", str(profile)])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["kernel_branch"] == "a52"
        assert data["zip_prefix"] == "ButterflyKernel_a52"

    def test_invalid_profile_value(self, tmp_path: Path) -> None:
        """An invalid profile value exits with code 2."""
        profile = tmp_path / "bad.yaml"
        profile.write_text("jobs: 0\n")

        result = runner.invoke(app, ["config", "--profile", str(profile)])

        assert result.exit_code == 2

    def test_non_mapping_profile(self, tmp_path: Path) -> None:
        """A profile that is not a mapping exits with code 2."""
        profile = tmp_path / "list.yaml"
        profile.write_text("- a\n")

        result = runner.invoke(app, ["config", "--profile", str(profile)])

        assert result.exit_code == 2

    def test_config_env_override(self, monkeypatch) -> None:
        """Environment variables should be reflected in config output."""
        monkeypatch.setenv("KGEN_ZIP_PREFIX", "EnvKernel")
        result = runner.invoke(app, ["config", "--json"])
        assert json.loads(result.stdout)["zip_prefix"] == "EnvKernel"


class TestCLIToolchains:
    """Test CLI toolchains command."""

    def test_toolchains_json(self, tmp_path: Path, monkeypatch) -> None:
        """Should report presence of each toolchain."""
        monkeypatch.setenv("KGEN_WORK_DIR", str(tmp_path))
        (tmp_path / "toolchains" / "clang").mkdir(parents=True)

        result = runner.invoke(app, ["toolchains", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [t["name"] for t in data] == ["clang", "gcc-aarch64", "gcc-arm"]
        assert [t["present"] for t in data] == [True, False, False]
        assert data[0]["pinned"] is False

    def test_toolchains_text(self, tmp_path: Path, monkeypatch) -> None:
        """Text output should mark missing toolchains."""
        monkeypatch.setenv("KGEN_WORK_DIR", str(tmp_path))

        result = runner.invoke(app, ["toolchains"])

        assert result.exit_code == 0
        assert "gcc-aarch64" in result.stdout
        assert "missing" in result.stdout


class TestCLIBuild:
    """Test CLI build command with the pipeline mocked."""

    def test_build_success(self, tmp_path: Path) -> None:
        """A successful pipeline should exit 0 and print the output dir."""
        with patch(
            "android_kernelgen.pipeline.run_pipeline",
            return_value=_successful_result(tmp_path),
        ) as mock_run:
            result = runner.invoke(app, ["build", "--work-dir", str(tmp_path)])

        assert result.exit_code == 0
        assert "Kernel Build: ButterflyKernel_m51" in result.stdout
        assert "Build Completed Successfully!" in result.stdout
        assert f"Output files in: {tmp_path / 'output'}/" in result.stdout
        settings = mock_run.call_args.args[0]
        assert settings.work_dir == tmp_path
        assert mock_run.call_args.kwargs["clean"] is False

    def test_build_clean_and_jobs(self, tmp_path: Path) -> None:
        """-c and -j should reach the pipeline."""
        with patch(
            "android_kernelgen.pipeline.run_pipeline",
            return_value=_successful_result(tmp_path),
        ) as mock_run:
            result = runner.invoke(
                app, ["build", "-c", "-j", "3", "-w", str(tmp_path)]
            )

        assert result.exit_code == 0
        assert mock_run.call_args.kwargs["clean"] is True
        assert mock_run.call_args.args[0].jobs == 3

    def test_build_failure_exits_nonzero(self, tmp_path: Path) -> None:
        """A failed stage should exit 1 and name the stage."""
        with patch(
            "android_kernelgen.pipeline.run_pipeline",
            return_value=_failed_result(),
        ):
            result = runner.invoke(app, ["build", "-w", str(tmp_path)])

        assert result.exit_code == 1
        assert "Build failed at stage: sync" in result.output
        assert "Build Completed Successfully!" not in result.output

    def test_build_rejects_zero_jobs(self, tmp_path: Path) -> None:
        """-j 0 is a usage error."""
        with patch("android_kernelgen.pipeline.run_pipeline") as mock_run:
            result = runner.invoke(app, ["build", "-j", "0", "-w", str(tmp_path)])

        assert result.exit_code != 0
        mock_run.assert_not_called()
