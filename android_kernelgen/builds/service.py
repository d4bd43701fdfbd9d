"""Kernel build service.

This module provides the high-level build API:
- clean_output(): remove the previous output tree
- configure_kernel(): merge fragments into the defconfig and apply it
- compile_kernel(): full build, teed to build.log
- build_overlay_image(): optional DTBO image, gated on the output tree
"""

from __future__ import annotations

import logging
import shlex
import shutil
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from android_kernelgen.builds.defconfig import merge_config_fragments
from android_kernelgen.builds.dtbo import create_dtbo_image, find_dtbo_files
from android_kernelgen.builds.runner import (
    ARCH,
    build_environment,
    compose_make_command,
    default_jobs,
    run_make,
)
from android_kernelgen.errors import EXECUTION_ERROR, BuildError
from android_kernelgen.types import BuildResult

if TYPE_CHECKING:
    from android_kernelgen.config import Settings

logger = logging.getLogger(__name__)

Echo = Callable[[str], None]


def configs_dir(kernel_dir: Path) -> Path:
    """Return the arch defconfig directory of a kernel tree."""
    return kernel_dir / "arch" / ARCH / "configs"


def clean_output(kernel_dir: Path) -> bool:
    """Remove the build output directory.

    Args:
        kernel_dir: Kernel source directory.

    Returns:
        True if a directory was removed.

    Raises:
        BuildError: If the directory cannot be removed.
    """
    out_dir = kernel_dir / "out"
    if not out_dir.exists():
        return False
    logger.info("Removing %s", out_dir)
    try:
        shutil.rmtree(out_dir)
    except OSError as e:
        raise BuildError(
            f"Failed to remove {out_dir}: {e}",
            code=EXECUTION_ERROR,
        ) from e
    return True


def configure_kernel(
    settings: Settings,
    clean: bool = False,
    echo: Echo | None = None,
) -> Path:
    """Write the merged defconfig and run ``make <defconfig>``.

    Args:
        settings: Effective settings.
        clean: Remove the previous output tree first.
        echo: Optional line sink for make output (default: stdout).

    Returns:
        Path to the merged defconfig.

    Raises:
        BuildError: If a fragment is missing or make fails.
    """
    kernel_dir = settings.kernel_dir

    if clean:
        clean_output(kernel_dir)

    cfg_dir = configs_dir(kernel_dir)
    defconfig = merge_config_fragments(
        [cfg_dir / name for name in settings.config_fragments],
        cfg_dir / settings.kernel_defconfig,
    )

    run_make(
        compose_make_command(settings.kernel_defconfig),
        cwd=kernel_dir,
        env=build_environment(settings),
        echo=echo,
    )
    return defconfig


def compile_kernel(
    settings: Settings,
    jobs: int | None = None,
    echo: Echo | None = None,
) -> BuildResult:
    """Run the full kernel build.

    Output is streamed to the console and written to ``build.log`` in the
    kernel directory.

    Args:
        settings: Effective settings.
        jobs: Job count (defaults to settings.jobs, then the CPU count).
        echo: Optional line sink for make output (default: stdout).

    Returns:
        BuildResult with timing and log details.

    Raises:
        BuildError: If make fails or times out.
    """
    effective_jobs = jobs or settings.jobs or default_jobs()
    cmd = compose_make_command(jobs=effective_jobs)
    log_path = settings.build_log_path

    started_at = datetime.now(timezone.utc)
    exit_code = run_make(
        cmd,
        cwd=settings.kernel_dir,
        env=build_environment(settings),
        log_path=log_path,
        timeout=settings.build_timeout,
        echo=echo,
    )
    finished_at = datetime.now(timezone.utc)

    duration = (finished_at - started_at).total_seconds()
    logger.info("Kernel build finished in %.1fs", duration)

    return BuildResult(
        exit_code=exit_code,
        log_path=log_path,
        started_at=started_at,
        finished_at=finished_at,
        command=shlex.join(cmd),
        jobs=effective_jobs,
    )


def build_overlay_image(
    settings: Settings,
    on_step: Callable[[str], None] | None = None,
) -> Path | None:
    """Create the DTBO image if the build produced overlay blobs.

    Args:
        settings: Effective settings.
        on_step: Optional progress callback, called only when an image
            is about to be created.

    Returns:
        Path to the image, or None when no ``*.dtbo`` file exists.

    Raises:
        BuildError: If mkdtimg fails.
    """
    dtbo_files = find_dtbo_files(settings.kernel_out_dir / "arch" / ARCH)
    if not dtbo_files:
        logger.info("No DTBO files found; skipping DTBO image")
        return None
    if on_step is not None:
        on_step("Creating DTBO image...")
    return create_dtbo_image(settings, dtbo_files)


__all__ = [
    "build_overlay_image",
    "clean_output",
    "compile_kernel",
    "configs_dir",
    "configure_kernel",
]
