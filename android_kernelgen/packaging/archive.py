"""Flashable zip creation and publication.

This module handles:
- Timestamped archive naming
- Zipping the template directory (never including other zips)
- Moving the archive and a copy of the build log to the output directory
"""

from __future__ import annotations

import logging
import shutil
import zipfile
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from android_kernelgen.errors import MissingArtifactError, PackagingError
from android_kernelgen.types import PackageResult

logger = logging.getLogger(__name__)

# Minute granularity, local time
TIMESTAMP_FORMAT = "%Y%m%d-%H%M"

ZIP_COMPRESSLEVEL = 9


def archive_name(prefix: str, now: datetime | None = None) -> str:
    """Build the flashable zip file name.

    Args:
        prefix: Name prefix (e.g. ``ButterflyKernel_m51``).
        now: Timestamp to embed (defaults to the current local time).

    Returns:
        ``<prefix>-YYYYmmdd-HHMM.zip``.
    """
    if now is None:
        now = datetime.now()
    return f"{prefix}-{now.strftime(TIMESTAMP_FORMAT)}.zip"


def iter_archive_members(source_dir: Path) -> Iterator[Path]:
    """Yield files to include in the archive, sorted.

    Top-level entries starting with ``.`` are skipped (they are not matched
    by a ``./*`` glob); nested dotfiles are kept. Any ``*.zip`` file is
    excluded at every depth.

    Args:
        source_dir: Directory to archive.

    Yields:
        Paths of regular files to add.
    """
    for top in sorted(source_dir.iterdir()):
        if top.name.startswith("."):
            continue
        candidates = [top] if not top.is_dir() else sorted(top.rglob("*"))
        for path in candidates:
            if not path.is_file():
                continue
            if path.name.lower().endswith(".zip"):
                continue
            yield path


def create_archive(source_dir: Path, archive_path: Path) -> tuple[Path, list[str]]:
    """Zip a directory's contents.

    Entries are stored relative to ``source_dir``. The archive itself is
    never included, even when it is written inside ``source_dir``.

    Args:
        source_dir: Directory to archive.
        archive_path: Zip file to create (overwritten if it exists).

    Returns:
        Tuple of (archive path, archived member names).

    Raises:
        PackagingError: If the archive cannot be written.
    """
    logger.info("Creating %s from %s", archive_path.name, source_dir)
    members: list[str] = []

    try:
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        members_to_add = list(iter_archive_members(source_dir))
        with zipfile.ZipFile(
            archive_path,
            "w",
            zipfile.ZIP_DEFLATED,
            compresslevel=ZIP_COMPRESSLEVEL,
        ) as zf:
            for path in members_to_add:
                arcname = path.relative_to(source_dir).as_posix()
                zf.write(path, arcname)
                members.append(arcname)
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        archive_path.unlink(missing_ok=True)
        raise PackagingError(f"Failed to create {archive_path}: {e}") from e

    logger.info("Archived %d file(s) into %s", len(members), archive_path.name)
    return archive_path, members


def publish_outputs(
    archive_path: Path,
    build_log: Path,
    output_dir: Path,
) -> PackageResult:
    """Move the archive and copy the build log into the output directory.

    Args:
        archive_path: Created archive.
        build_log: Kernel build log.
        output_dir: Output directory (created if absent).

    Returns:
        PackageResult with final locations.

    Raises:
        MissingArtifactError: If the build log does not exist.
        PackagingError: If moving or copying fails.
    """
    if not build_log.is_file():
        raise MissingArtifactError(f"Build log not found: {build_log}")

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        final_archive = output_dir / archive_path.name
        shutil.move(str(archive_path), str(final_archive))
        final_log = output_dir / build_log.name
        shutil.copyfile(build_log, final_log)
    except OSError as e:
        raise PackagingError(f"Failed to publish outputs to {output_dir}: {e}") from e

    logger.info("Flashable zip created: %s", final_archive)
    return PackageResult(archive_path=final_archive, log_path=final_log)


__all__ = [
    "TIMESTAMP_FORMAT",
    "ZIP_COMPRESSLEVEL",
    "archive_name",
    "create_archive",
    "iter_archive_members",
    "publish_outputs",
]
