"""Build runner for executing kernel make commands.

This module handles:
- The fixed cross-compilation environment (ARCH, build identity, PATH)
- Composing `make` commands for the LLVM/Clang arm64 build
- Executing make with output streamed to the console and a log file
- Enforcing an optional build timeout
"""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
import sys
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from android_kernelgen.errors import (
    BUILD_ERROR,
    BUILD_TIMEOUT,
    EXECUTION_ERROR,
    BuildError,
)
from android_kernelgen.toolchains.service import toolchain_bin_dirs

if TYPE_CHECKING:
    from android_kernelgen.config import Settings

logger = logging.getLogger(__name__)

ARCH = "arm64"
SUBARCH = "arm64"

# Output directory passed as O= (relative to the kernel tree)
OUT_DIR_NAME = "out"

# Toolchain selection passed to every make invocation
MAKE_VARIABLES: tuple[str, ...] = (
    f"ARCH={ARCH}",
    "CC=clang",
    "HOSTCC=clang",
    "LLVM=1",
    "CLANG_TRIPLE=aarch64-linux-gnu-",
    "CROSS_COMPILE=aarch64-linux-android-",
    "CROSS_COMPILE_COMPAT=arm-linux-androideabi-",
)


def build_environment(
    settings: Settings,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Compose the environment for kernel make invocations.

    Args:
        settings: Effective settings.
        base_env: Environment to extend (defaults to ``os.environ``).

    Returns:
        New environment dictionary.
    """
    env = dict(os.environ if base_env is None else base_env)
    env["ARCH"] = ARCH
    env["SUBARCH"] = SUBARCH
    env["KBUILD_BUILD_USER"] = settings.build_user
    env["KBUILD_BUILD_HOST"] = settings.build_host

    path_parts = [str(p) for p in toolchain_bin_dirs(settings)]
    if env.get("PATH"):
        path_parts.append(env["PATH"])
    env["PATH"] = os.pathsep.join(path_parts)
    return env


def default_jobs() -> int:
    """Return the job count used when none is configured."""
    return os.cpu_count() or 1


def compose_make_command(*targets: str, jobs: int | None = None) -> list[str]:
    """Compose a kernel `make` command.

    Args:
        *targets: Make targets (e.g. a defconfig name); none means the
            default target.
        jobs: Optional parallel job count.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = ["make", f"O={OUT_DIR_NAME}", *MAKE_VARIABLES]
    if jobs is not None:
        cmd.append(f"-j{jobs}")
    cmd.extend(targets)
    return cmd


def _echo_stdout(line: str) -> None:
    sys.stdout.write(line)
    sys.stdout.flush()


def _kill_process_group(proc: subprocess.Popen[str]) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def run_make(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str],
    log_path: Path | None = None,
    echo: Callable[[str], None] | None = None,
    timeout: int | None = None,
) -> int:
    """Run make, streaming combined stdout/stderr.

    Every output line goes to ``echo`` and, when given, to ``log_path``
    (truncated first), like ``make ... 2>&1 | tee build.log``.

    Args:
        cmd: Command to execute.
        cwd: Kernel source directory.
        env: Process environment.
        log_path: Optional log file.
        echo: Line sink for console output (default: stdout).
        timeout: Optional timeout in seconds.

    Returns:
        The process exit code (always 0).

    Raises:
        BuildError: If make cannot be started, exits non-zero or times out.
    """
    if echo is None:
        echo = _echo_stdout

    cmd_str = shlex.join(cmd)
    logger.info("Executing: %s", cmd_str)
    logger.debug("Working directory: %s", cwd)

    try:
        log_file = log_path.open("w", encoding="utf-8") if log_path else None
    except OSError as e:
        raise BuildError(
            f"Failed to open build log {log_path}: {e}",
            log_path=log_path,
            code=EXECUTION_ERROR,
        ) from e
    timed_out = threading.Event()

    try:
        try:
            # Own process group so a timeout can kill make's children too
            proc = subprocess.Popen(
                cmd,
                cwd=cwd,
                env=dict(env),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                bufsize=1,
                start_new_session=True,
            )
        except OSError as e:
            raise BuildError(
                f"Failed to execute {cmd_str}: {e}",
                log_path=log_path,
                code=EXECUTION_ERROR,
            ) from e

        def _kill() -> None:
            timed_out.set()
            _kill_process_group(proc)

        timer = threading.Timer(timeout, _kill) if timeout else None
        if timer is not None:
            timer.start()

        try:
            for line in proc.stdout or ():
                if log_file is not None:
                    log_file.write(line)
                echo(line)
            exit_code = proc.wait()
        except OSError as e:
            _kill_process_group(proc)
            proc.wait()
            raise BuildError(
                f"Failed to write build log {log_path}: {e}",
                log_path=log_path,
                code=EXECUTION_ERROR,
            ) from e
        except BaseException:
            # A separate session never sees the terminal's SIGINT
            _kill_process_group(proc)
            proc.wait()
            raise
        finally:
            if timer is not None:
                timer.cancel()
    finally:
        if log_file is not None:
            log_file.close()

    if exit_code != 0 and timed_out.is_set():
        raise BuildError(
            f"{cmd[0]} timed out after {timeout} seconds",
            exit_code=exit_code,
            log_path=log_path,
            code=BUILD_TIMEOUT,
        )

    if exit_code != 0:
        message = f"{cmd_str} failed with exit code {exit_code}"
        if log_path is not None:
            message += f". See log: {log_path}"
        raise BuildError(
            message,
            exit_code=exit_code,
            log_path=log_path,
            code=BUILD_ERROR,
        )

    return exit_code


__all__ = [
    "ARCH",
    "MAKE_VARIABLES",
    "OUT_DIR_NAME",
    "SUBARCH",
    "build_environment",
    "compose_make_command",
    "default_jobs",
    "run_make",
]
