"""Flashing template (AnyKernel3) management.

This module handles:
- Cloning the template once into ``<work>/AnyKernel3``
- Stripping version-control metadata and incidental files after clone
- Copying kernel image, DTB and DTBO into the template
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from android_kernelgen.builds.dtbo import DTBO_IMAGE_NAME
from android_kernelgen.errors import MissingArtifactError, PackagingError
from android_kernelgen.sources.git import clone_default_branch

if TYPE_CHECKING:
    from android_kernelgen.config import Settings

logger = logging.getLogger(__name__)

# Kernel images in order of preference
KERNEL_IMAGE_CANDIDATES = ("Image.gz", "Image")

# Name of the DTB inside the template
DTB_TARGET_NAME = "dtb"


@dataclass
class TemplateResult:
    """State of the flashing template after ensure_template()."""

    path: Path
    cloned: bool
    stripped: list[str] = field(default_factory=list)


def strip_template(template_dir: Path, names: list[str]) -> list[str]:
    """Remove top-level entries from a freshly cloned template.

    Args:
        template_dir: Template directory.
        names: Entry names to remove (files or directories).

    Returns:
        Names that existed and were removed.

    Raises:
        PackagingError: If an entry cannot be removed.
    """
    removed: list[str] = []
    for name in names:
        target = template_dir / name
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            elif target.exists() or target.is_symlink():
                target.unlink()
            else:
                continue
        except OSError as e:
            raise PackagingError(f"Failed to remove {target}: {e}") from e
        removed.append(name)
    logger.debug("Stripped %s from %s", removed, template_dir)
    return removed


def ensure_template(settings: Settings) -> TemplateResult:
    """Clone the flashing template if it is not present yet.

    The template is cloned and stripped exactly once; an existing
    directory is reused untouched.

    Args:
        settings: Effective settings.

    Returns:
        TemplateResult.

    Raises:
        AcquisitionError: If the clone fails.
    """
    template_dir = settings.template_dir
    if template_dir.is_dir():
        logger.info("Using existing template at %s", template_dir)
        return TemplateResult(path=template_dir, cloned=False)

    clone_default_branch(settings.template_repo_url, template_dir)
    stripped = strip_template(template_dir, settings.template_strip)
    return TemplateResult(path=template_dir, cloned=True, stripped=stripped)


def select_kernel_image(boot_dir: Path) -> Path:
    """Pick the kernel image to package.

    Args:
        boot_dir: ``out/arch/arm64/boot``.

    Returns:
        ``Image.gz`` if present, otherwise ``Image``.

    Raises:
        MissingArtifactError: If neither image exists.
    """
    for name in KERNEL_IMAGE_CANDIDATES:
        candidate = boot_dir / name
        if candidate.is_file():
            return candidate
    raise MissingArtifactError(f"No kernel image found in {boot_dir}")


def _copy(src: Path, dest: Path) -> Path:
    try:
        shutil.copyfile(src, dest)
    except OSError as e:
        raise PackagingError(f"Failed to copy {src} to {dest}: {e}") from e
    logger.info("Copied %s -> %s", src.name, dest)
    return dest


def populate_template(settings: Settings) -> list[Path]:
    """Copy build outputs into the template.

    The kernel image is required and always lands under the configured
    fixed name. The DTB and DTBO image are copied only if they exist.

    Args:
        settings: Effective settings.

    Returns:
        Paths written inside the template.

    Raises:
        MissingArtifactError: If no kernel image exists.
        PackagingError: If a copy fails.
    """
    boot_dir = settings.boot_dir
    template_dir = settings.template_dir

    image = select_kernel_image(boot_dir)
    written = [_copy(image, template_dir / settings.kernel_image_name)]

    dtb = boot_dir / settings.dtb_path
    if dtb.is_file():
        written.append(_copy(dtb, template_dir / DTB_TARGET_NAME))
    else:
        logger.debug("No DTB at %s", dtb)

    dtbo = boot_dir / DTBO_IMAGE_NAME
    if dtbo.is_file():
        written.append(_copy(dtbo, template_dir / DTBO_IMAGE_NAME))

    return written


__all__ = [
    "DTB_TARGET_NAME",
    "KERNEL_IMAGE_CANDIDATES",
    "TemplateResult",
    "ensure_template",
    "populate_template",
    "select_kernel_image",
    "strip_template",
]
