"""Packaging service.

Turns a finished build into ``<work>/output/<prefix>-<timestamp>.zip`` plus
a copy of ``build.log``. Intermediate build state is left in place.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from android_kernelgen.packaging.archive import (
    archive_name,
    create_archive,
    publish_outputs,
)
from android_kernelgen.types import PackageResult

if TYPE_CHECKING:
    from android_kernelgen.config import Settings

logger = logging.getLogger(__name__)


def create_flashable_zip(
    settings: Settings,
    now: datetime | None = None,
) -> PackageResult:
    """Archive the populated template and publish it.

    The template must already be populated (see populate_template). The
    archive is written inside the template directory, then moved out.

    Args:
        settings: Effective settings.
        now: Timestamp for the archive name (defaults to now).

    Returns:
        PackageResult with the final archive and log paths.

    Raises:
        MissingArtifactError: If the build log is missing.
        PackagingError: If the archive cannot be written or moved.
    """
    name = archive_name(settings.zip_prefix, now)
    archive_path, members = create_archive(
        settings.template_dir, settings.template_dir / name
    )
    result = publish_outputs(archive_path, settings.build_log_path, settings.output_dir)
    result.included = members
    return result


__all__ = ["create_flashable_zip"]
