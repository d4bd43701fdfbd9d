"""Kernel source synchronization.

Keeps ``<work>/kernel`` as a shallow checkout of the configured branch:
clone when absent, ``git pull`` when present.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from android_kernelgen.sources.git import pull, shallow_clone
from android_kernelgen.types import SyncAction, SyncResult

if TYPE_CHECKING:
    from android_kernelgen.config import Settings

logger = logging.getLogger(__name__)


def sync_kernel_source(settings: Settings) -> SyncResult:
    """Ensure the kernel source checkout exists and is up to date.

    Args:
        settings: Effective settings.

    Returns:
        SyncResult describing whether the tree was cloned or updated.

    Raises:
        AcquisitionError: If the clone or pull fails.
    """
    kernel_dir = settings.kernel_dir
    branch = settings.kernel_branch

    if not kernel_dir.is_dir():
        shallow_clone(settings.kernel_repo_url, branch, kernel_dir)
        return SyncResult(path=kernel_dir, action=SyncAction.CLONED, branch=branch)

    output = pull(kernel_dir, branch)
    if output.strip():
        logger.info("%s", output.strip().splitlines()[-1])
    return SyncResult(path=kernel_dir, action=SyncAction.UPDATED, branch=branch)


__all__ = ["sync_kernel_source"]
