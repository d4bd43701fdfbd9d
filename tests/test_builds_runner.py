"""Tests for builds/runner.py module.

Tests environment and make command composition, and execution using small
Python subprocesses in place of make.
"""

import os
import sys
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from android_kernelgen.builds.runner import (
    MAKE_VARIABLES,
    build_environment,
    compose_make_command,
    default_jobs,
    run_make,
)
from android_kernelgen.errors import (
    BUILD_ERROR,
    BUILD_TIMEOUT,
    EXECUTION_ERROR,
    BuildError,
)


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class TestBuildEnvironment:
    """Tests for build_environment function."""

    def test_sets_arch_and_identity(self, settings):
        """Should export ARCH/SUBARCH and the build identity."""
        env = build_environment(settings, base_env={"HOME": "/home/u"})

        assert env["ARCH"] == "arm64"
        assert env["SUBARCH"] == "arm64"
        assert env["KBUILD_BUILD_USER"] == "mehedihjoy0"
        assert env["KBUILD_BUILD_HOST"] == "local-build"
        assert env["HOME"] == "/home/u"

    def test_prepends_toolchains_to_path(self, settings):
        """Toolchain bin dirs come first, in clang/gcc-aarch64/gcc-arm order."""
        env = build_environment(settings, base_env={"PATH": "/usr/bin:/bin"})

        parts = env["PATH"].split(os.pathsep)
        tc = settings.toolchain_dir
        assert parts[:3] == [
            str(tc / "clang" / "bin"),
            str(tc / "gcc-aarch64" / "bin"),
            str(tc / "gcc-arm" / "bin"),
        ]
        assert env["PATH"].endswith("/usr/bin:/bin")

    def test_without_existing_path(self, settings):
        """An empty base PATH yields only toolchain dirs."""
        env = build_environment(settings, base_env={})
        assert len(env["PATH"].split(os.pathsep)) == 3

    def test_does_not_mutate_base(self, settings):
        """The base mapping should be left untouched."""
        base = {"PATH": "/bin"}
        build_environment(settings, base_env=base)
        assert base == {"PATH": "/bin"}


class TestComposeMakeCommand:
    """Tests for compose_make_command function."""

    def test_defconfig_command(self):
        """Configure step passes the defconfig as target without -j."""
        cmd = compose_make_command("m51_defconfig")

        assert cmd[:2] == ["make", "O=out"]
        assert cmd[-1] == "m51_defconfig"
        assert not any(arg.startswith("-j") for arg in cmd)
        for var in MAKE_VARIABLES:
            assert var in cmd

    def test_compile_command(self):
        """Compile step uses the default target with a job count."""
        cmd = compose_make_command(jobs=8)

        assert cmd[-1] == "-j8"
        assert "CC=clang" in cmd
        assert "LLVM=1" in cmd
        assert "CROSS_COMPILE=aarch64-linux-android-" in cmd
        assert "CROSS_COMPILE_COMPAT=arm-linux-androideabi-" in cmd

    def test_default_jobs_positive(self):
        """default_jobs should never be below one."""
        assert default_jobs() >= 1


class TestRunMake:
    """Tests for run_make function."""

    def test_tees_output_to_log_and_echo(self, tmp_path: Path):
        """Every output line should reach both the log and the echo sink."""
        log_path = tmp_path / "build.log"
        lines: list[str] = []

        exit_code = run_make(
            _python("import sys; print('CC init/main.o'); print('warn', file=sys.stderr)"),
            cwd=tmp_path,
            env=os.environ,
            log_path=log_path,
            echo=lines.append,
        )

        assert exit_code == 0
        log = log_path.read_text()
        assert "CC init/main.o" in log
        assert "warn" in log
        assert "".join(lines) == log

    def test_log_is_truncated(self, tmp_path: Path):
        """A previous log should be overwritten."""
        log_path = tmp_path / "build.log"
        log_path.write_text("old build output\n")

        run_make(
            _python("print('new')"),
            cwd=tmp_path,
            env=os.environ,
            log_path=log_path,
            echo=lambda line: None,
        )

        assert log_path.read_text() == "new\n"

    def test_passes_environment(self, tmp_path: Path):
        """The given environment should reach the process."""
        lines: list[str] = []
        env = dict(os.environ, KBUILD_BUILD_USER="tester")

        run_make(
            _python("import os; print(os.environ['KBUILD_BUILD_USER'])"),
            cwd=tmp_path,
            env=env,
            echo=lines.append,
        )

        assert lines == ["tester\n"]

    def test_nonzero_exit_raises(self, tmp_path: Path):
        """A failing command should raise BuildError and keep the log."""
        log_path = tmp_path / "build.log"

        with pytest.raises(BuildError) as exc_info:
            run_make(
                _python("print('error: undefined reference'); raise SystemExit(2)"),
                cwd=tmp_path,
                env=os.environ,
                log_path=log_path,
                echo=lambda line: None,
            )

        err = exc_info.value
        assert err.code == BUILD_ERROR
        assert err.exit_code == 2
        assert err.log_path == log_path
        assert str(log_path) in str(err)
        assert "undefined reference" in log_path.read_text()

    def test_missing_executable(self, tmp_path: Path):
        """An unknown executable should raise an execution error."""
        with pytest.raises(BuildError) as exc_info:
            run_make(
                ["definitely-not-a-real-make-binary"],
                cwd=tmp_path,
                env=os.environ,
                echo=lambda line: None,
            )

        assert exc_info.value.code == EXECUTION_ERROR

    def test_timeout_kills_process(self, tmp_path: Path):
        """A build exceeding the timeout should be killed."""
        with pytest.raises(BuildError) as exc_info:
            run_make(
                _python("import time; time.sleep(30)"),
                cwd=tmp_path,
                env=os.environ,
                echo=lambda line: None,
                timeout=1,
            )

        assert exc_info.value.code == BUILD_TIMEOUT
        assert "timed out after 1 seconds" in str(exc_info.value)

    def test_timeout_kills_child_processes(self, tmp_path: Path):
        """Grandchildren holding the output pipe must not outlive the timeout."""
        started = time.monotonic()

        with pytest.raises(BuildError) as exc_info:
            run_make(
                ["sh", "-c", "sleep 30 & wait"],
                cwd=tmp_path,
                env=os.environ,
                echo=lambda line: None,
                timeout=1,
            )

        assert exc_info.value.code == BUILD_TIMEOUT
        assert time.monotonic() - started < 10

    def test_unwritable_log(self, tmp_path: Path):
        """A log path that cannot be opened is an execution error."""
        log_path = tmp_path / "build.log"
        log_path.mkdir()

        with pytest.raises(BuildError) as exc_info:
            run_make(
                _python("print('never runs')"),
                cwd=tmp_path,
                env=os.environ,
                log_path=log_path,
                echo=lambda line: None,
            )

        assert exc_info.value.code == EXECUTION_ERROR
        assert str(log_path) in str(exc_info.value)

    def test_late_timer_does_not_fail_success(self, tmp_path: Path):
        """A timer firing after a clean exit must not turn it into a timeout."""

        class LateTimer:
            def __init__(self, interval, function):
                self.function = function

            def start(self):
                pass

            def cancel(self):
                self.function()

        with patch("android_kernelgen.builds.runner.threading.Timer", LateTimer):
            exit_code = run_make(
                _python("print('done')"),
                cwd=tmp_path,
                env=os.environ,
                echo=lambda line: None,
                timeout=60,
            )

        assert exit_code == 0
