"""DTBO image creation.

After a compile the output tree may contain device-tree overlay blobs
(``*.dtbo``) depending on the kernel source. When any exist they are bundled
with ``mkdtimg`` into ``out/arch/arm64/boot/dtbo.img``; when none exist the
step is skipped.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from android_kernelgen.errors import BUILD_ERROR, EXECUTION_ERROR, BuildError

if TYPE_CHECKING:
    from android_kernelgen.config import Settings

logger = logging.getLogger(__name__)

DTBO_IMAGE_NAME = "dtbo.img"


def find_dtbo_files(search_root: Path) -> list[Path]:
    """Find overlay blobs in the build output tree.

    Args:
        search_root: Directory to scan recursively (``out/arch/arm64``).

    Returns:
        Sorted list of ``*.dtbo`` regular files; empty if the directory
        does not exist.
    """
    if not search_root.is_dir():
        return []
    return sorted(p for p in search_root.rglob("*.dtbo") if p.is_file())


def compose_mkdtimg_command(
    mkdtimg: Path,
    image_path: Path,
    dtbo_files: list[Path],
    page_size: int = 4096,
) -> list[str]:
    """Compose the ``mkdtimg create`` command.

    Args:
        mkdtimg: Path to the mkdtimg executable.
        image_path: Output image path.
        dtbo_files: Overlay blobs to bundle, in order.
        page_size: Image page size.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    return [
        str(mkdtimg),
        "create",
        str(image_path),
        f"--page_size={page_size}",
        *(str(p) for p in dtbo_files),
    ]


def create_dtbo_image(settings: Settings, dtbo_files: list[Path]) -> Path:
    """Bundle overlay blobs into a single DTBO image.

    Args:
        settings: Effective settings.
        dtbo_files: Overlay blobs found by find_dtbo_files (non-empty).

    Returns:
        Path to the created image.

    Raises:
        ValueError: If ``dtbo_files`` is empty.
        BuildError: If mkdtimg cannot be started or fails.
    """
    if not dtbo_files:
        raise ValueError("dtbo_files must not be empty")

    image_path = settings.boot_dir / DTBO_IMAGE_NAME
    try:
        image_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BuildError(
            f"Failed to create {image_path.parent}: {e}",
            code=EXECUTION_ERROR,
        ) from e
    cmd = compose_mkdtimg_command(
        settings.mkdtimg_path,
        image_path,
        dtbo_files,
        page_size=settings.dtbo_page_size,
    )
    cmd_str = shlex.join(cmd)
    logger.info("Creating DTBO image from %d overlay(s)", len(dtbo_files))
    logger.debug("Executing: %s", cmd_str)

    try:
        result = subprocess.run(
            cmd,
            cwd=settings.kernel_dir,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise BuildError(
            f"Failed to run {settings.mkdtimg_path}: {e}",
            code=EXECUTION_ERROR,
        ) from e

    if result.returncode != 0:
        raise BuildError(
            f"mkdtimg failed with exit code {result.returncode}: "
            f"{result.stderr.strip()}",
            exit_code=result.returncode,
            code=BUILD_ERROR,
        )

    logger.info("Created %s", image_path)
    return image_path


__all__ = [
    "DTBO_IMAGE_NAME",
    "compose_mkdtimg_command",
    "create_dtbo_image",
    "find_dtbo_files",
]
