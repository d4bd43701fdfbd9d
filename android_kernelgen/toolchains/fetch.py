"""Toolchain archive fetch module.

This module handles:
- Streaming download of prebuilt toolchain archives
- Safe extraction of gzip'd tarballs
- Atomic placement of the extracted tree into the toolchain directory

No checksum is verified: the upstream prebuilt archives do not publish one
and a toolchain directory's presence is the cache key.
"""

from __future__ import annotations

import logging
import shutil
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path

import httpx

from android_kernelgen.errors import (
    ACQUISITION_ERROR,
    EXTRACTION_ERROR,
    HTTP_ERROR,
    NETWORK_ERROR,
    TIMEOUT_ERROR,
    AcquisitionError,
)

logger = logging.getLogger(__name__)

# Timeout for downloads (seconds)
DOWNLOAD_TIMEOUT = 3600

# Chunk size for downloads (bytes)
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB


@dataclass
class DownloadResult:
    """Result of an archive download."""

    archive_path: Path
    size_bytes: int


def download_file(
    client: httpx.Client,
    url: str,
    dest_path: Path,
    timeout: float = DOWNLOAD_TIMEOUT,
    chunk_size: int = DOWNLOAD_CHUNK_SIZE,
) -> DownloadResult:
    """Download a file, following redirects.

    Args:
        client: HTTPX client instance.
        url: URL to download from.
        dest_path: Destination path for the downloaded file.
        timeout: Download timeout in seconds.
        chunk_size: Size of chunks to download.

    Returns:
        DownloadResult with path and size.

    Raises:
        AcquisitionError: If the download fails.
    """
    logger.info("Downloading %s to %s", url, dest_path)

    try:
        with client.stream(
            "GET", url, timeout=timeout, follow_redirects=True
        ) as response:
            response.raise_for_status()

            total_bytes = 0
            dest_path.parent.mkdir(parents=True, exist_ok=True)

            with dest_path.open("wb") as f:
                for chunk in response.iter_bytes(chunk_size):
                    f.write(chunk)
                    total_bytes += len(chunk)

    except httpx.HTTPStatusError as e:
        raise AcquisitionError(
            f"HTTP error downloading {url}: {e.response.status_code} {e.response.reason_phrase}",
            code=HTTP_ERROR,
        ) from e
    except httpx.TimeoutException as e:
        raise AcquisitionError(
            f"Timeout downloading {url}",
            code=TIMEOUT_ERROR,
        ) from e
    except httpx.RequestError as e:
        raise AcquisitionError(
            f"Network error downloading {url}: {e}",
            code=NETWORK_ERROR,
        ) from e
    except OSError as e:
        raise AcquisitionError(
            f"Failed to write {dest_path}: {e}",
            code=ACQUISITION_ERROR,
        ) from e

    logger.info("Downloaded %s (%d bytes)", dest_path.name, total_bytes)
    return DownloadResult(archive_path=dest_path, size_bytes=total_bytes)


def extract_archive(archive_path: Path, dest_dir: Path) -> Path:
    """Extract a ``.tar.gz`` archive into a directory.

    Args:
        archive_path: Path to the archive file.
        dest_dir: Destination directory (created if needed).

    Returns:
        The destination directory.

    Raises:
        AcquisitionError: If the archive is unreadable, empty, or contains
            paths escaping the destination.
    """
    logger.info("Extracting %s to %s", archive_path.name, dest_dir)

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        with tarfile.open(archive_path, "r:gz") as tar:
            members = tar.getmembers()
            if not members:
                raise AcquisitionError(
                    f"Archive {archive_path} is empty",
                    code=EXTRACTION_ERROR,
                )

            for member in members:
                # Security: prevent path traversal
                member_path = Path(member.name)
                if member_path.is_absolute() or ".." in member_path.parts:
                    raise AcquisitionError(
                        f"Refusing to extract {member.name}: path traversal detected",
                        code=EXTRACTION_ERROR,
                    )

            tar.extractall(dest_dir, filter="data")

    except tarfile.TarError as e:
        raise AcquisitionError(
            f"Failed to extract {archive_path}: {e}",
            code=EXTRACTION_ERROR,
        ) from e
    except OSError as e:
        raise AcquisitionError(
            f"OS error extracting {archive_path}: {e}",
            code=EXTRACTION_ERROR,
        ) from e

    return dest_dir


def fetch_archive_toolchain(
    client: httpx.Client,
    url: str,
    dest_dir: Path,
    timeout: float = DOWNLOAD_TIMEOUT,
) -> Path:
    """Download and extract a toolchain archive into ``dest_dir``.

    The archive is downloaded and extracted inside a temporary sibling
    directory that is renamed to ``dest_dir`` only once extraction
    succeeded, so a failed run never leaves a partial toolchain behind.

    Args:
        client: HTTPX client instance.
        url: Archive URL.
        dest_dir: Final toolchain directory (must not exist).
        timeout: Download timeout in seconds.

    Returns:
        The toolchain directory.

    Raises:
        AcquisitionError: If download or extraction fails.
    """
    try:
        dest_dir.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(
            tempfile.mkdtemp(prefix=f".{dest_dir.name}-", dir=dest_dir.parent)
        )
    except OSError as e:
        raise AcquisitionError(
            f"Failed to create staging directory in {dest_dir.parent}: {e}",
            code=ACQUISITION_ERROR,
        ) from e

    try:
        archive_path = staging / f"{dest_dir.name}.tar.gz"
        download_file(client, url, archive_path, timeout=timeout)

        extracted = staging / "tree"
        extract_archive(archive_path, extracted)
        archive_path.unlink(missing_ok=True)

        try:
            extracted.rename(dest_dir)
        except OSError as e:
            raise AcquisitionError(
                f"Failed to move toolchain into {dest_dir}: {e}",
                code=EXTRACTION_ERROR,
            ) from e
    finally:
        shutil.rmtree(staging, ignore_errors=True)

    logger.info("Installed toolchain at %s", dest_dir)
    return dest_dir


__all__ = [
    "DOWNLOAD_CHUNK_SIZE",
    "DOWNLOAD_TIMEOUT",
    "DownloadResult",
    "download_file",
    "extract_archive",
    "fetch_archive_toolchain",
]
