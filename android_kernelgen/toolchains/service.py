"""Toolchain provisioning service.

This module provides the high-level toolchain API:
- ensure_toolchains(): make sure clang, gcc-aarch64 and gcc-arm exist
- toolchain_status(): report presence and pin state without network I/O
- toolchain_bin_dirs(): binary directories to prepend to PATH

Toolchains are cached forever by directory presence. No locking is
performed, so concurrent runs against one work directory are unsafe.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from android_kernelgen.errors import GIT_ERROR, AcquisitionError
from android_kernelgen.sources.git import shallow_clone
from android_kernelgen.toolchains.fetch import fetch_archive_toolchain
from android_kernelgen.toolchains.pins import pin_matches, read_pin, write_pin
from android_kernelgen.types import ToolchainResult

if TYPE_CHECKING:
    from android_kernelgen.config import Settings

logger = logging.getLogger(__name__)

CLANG = "clang"
GCC_AARCH64 = "gcc-aarch64"
GCC_ARM = "gcc-arm"


class SourceKind(str, Enum):
    """How a toolchain is acquired."""

    ARCHIVE = "archive"
    GIT = "git"


@dataclass
class ToolchainSpec:
    """Where a toolchain comes from and where it lives."""

    name: str
    kind: SourceKind
    url: str
    branch: str | None = None


@dataclass
class ToolchainStatus:
    """Local state of one toolchain."""

    name: str
    path: Path
    present: bool
    pinned: bool
    pin_matches: bool


def toolchain_specs(settings: Settings) -> list[ToolchainSpec]:
    """Return the toolchains to provision, in PATH order.

    Args:
        settings: Effective settings.

    Returns:
        List of ToolchainSpec.
    """
    return [
        ToolchainSpec(CLANG, SourceKind.ARCHIVE, settings.clang_url),
        ToolchainSpec(
            GCC_AARCH64, SourceKind.GIT, settings.gcc_aarch64_url, settings.gcc_branch
        ),
        ToolchainSpec(
            GCC_ARM, SourceKind.GIT, settings.gcc_arm_url, settings.gcc_branch
        ),
    ]


def toolchain_bin_dirs(settings: Settings) -> list[Path]:
    """Return the ``bin`` directories of all toolchains, in PATH order."""
    return [settings.toolchain_dir / s.name / "bin" for s in toolchain_specs(settings)]


def _acquire(spec: ToolchainSpec, dest: Path, client: httpx.Client, timeout: int) -> None:
    if spec.kind is SourceKind.ARCHIVE:
        fetch_archive_toolchain(client, spec.url, dest, timeout=timeout)
        return
    if spec.branch is None:
        raise AcquisitionError(
            f"Toolchain {spec.name} is a git source without a branch",
            code=GIT_ERROR,
        )
    shallow_clone(spec.url, spec.branch, dest)


def ensure_toolchain(
    spec: ToolchainSpec,
    settings: Settings,
    client: httpx.Client,
    on_step: Callable[[str], None] | None = None,
) -> ToolchainResult:
    """Ensure a single toolchain directory exists.

    Args:
        spec: Toolchain to provision.
        settings: Effective settings.
        client: HTTPX client for archive downloads.
        on_step: Optional progress callback.

    Returns:
        ToolchainResult; ``acquired`` is False when the directory was reused.

    Raises:
        AcquisitionError: If the toolchain cannot be fetched.
    """
    dest = settings.toolchain_dir / spec.name

    if dest.is_dir():
        if not settings.verify_toolchain_pins or pin_matches(
            dest, spec.url, spec.branch
        ):
            logger.info("Toolchain %s already exists at %s", spec.name, dest)
            return ToolchainResult(name=spec.name, path=dest, acquired=False)

        logger.warning(
            "Toolchain %s at %s does not match the configured source; re-acquiring",
            spec.name,
            dest,
        )
        try:
            shutil.rmtree(dest)
        except OSError as e:
            raise AcquisitionError(
                f"Failed to remove stale toolchain {dest}: {e}"
            ) from e

    if on_step is not None:
        verb = "Downloading" if spec.kind is SourceKind.ARCHIVE else "Cloning"
        on_step(f"{verb} {spec.name}...")

    _acquire(spec, dest, client, settings.download_timeout)

    if settings.verify_toolchain_pins:
        try:
            write_pin(dest, spec.url, spec.branch)
        except OSError as e:
            raise AcquisitionError(f"Failed to record pin for {dest}: {e}") from e

    return ToolchainResult(name=spec.name, path=dest, acquired=True)


def ensure_toolchains(
    settings: Settings,
    client: httpx.Client | None = None,
    on_step: Callable[[str], None] | None = None,
) -> list[ToolchainResult]:
    """Ensure all toolchains exist, acquiring missing ones.

    Args:
        settings: Effective settings.
        client: Optional HTTPX client (one is created if not provided).
        on_step: Optional progress callback.

    Returns:
        One ToolchainResult per toolchain, in PATH order.

    Raises:
        AcquisitionError: On the first toolchain that cannot be fetched.
    """
    try:
        settings.toolchain_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise AcquisitionError(
            f"Failed to create {settings.toolchain_dir}: {e}"
        ) from e

    owns_client = client is None
    if client is None:
        client = httpx.Client()

    try:
        return [
            ensure_toolchain(spec, settings, client, on_step=on_step)
            for spec in toolchain_specs(settings)
        ]
    finally:
        if owns_client:
            client.close()


def toolchain_status(settings: Settings) -> list[ToolchainStatus]:
    """Report the local state of all toolchains.

    Args:
        settings: Effective settings.

    Returns:
        One ToolchainStatus per toolchain.
    """
    statuses: list[ToolchainStatus] = []
    for spec in toolchain_specs(settings):
        path = settings.toolchain_dir / spec.name
        present = path.is_dir()
        statuses.append(
            ToolchainStatus(
                name=spec.name,
                path=path,
                present=present,
                pinned=present and read_pin(path) is not None,
                pin_matches=present and pin_matches(path, spec.url, spec.branch),
            )
        )
    return statuses


__all__ = [
    "CLANG",
    "GCC_AARCH64",
    "GCC_ARM",
    "SourceKind",
    "ToolchainSpec",
    "ToolchainStatus",
    "ensure_toolchain",
    "ensure_toolchains",
    "toolchain_bin_dirs",
    "toolchain_specs",
    "toolchain_status",
]
