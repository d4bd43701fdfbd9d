"""Shared type definitions for android_kernelgen.

This module contains enums and dataclasses shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class Stage(str, Enum):
    """Pipeline stages, in execution order."""

    PROVISION = "provision"
    SYNC = "sync"
    CONFIGURE = "configure"
    COMPILE = "compile"
    OVERLAY_IMAGE = "overlay-image"
    ASSEMBLE_TEMPLATE = "assemble-template"
    ARCHIVE = "archive"


class StageStatus(str, Enum):
    """Outcome of a single pipeline stage."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


class SyncAction(str, Enum):
    """What the source synchronizer did to a checkout."""

    CLONED = "cloned"
    UPDATED = "updated"


@dataclass
class ToolchainResult:
    """Result of ensuring one toolchain."""

    name: str
    path: Path
    acquired: bool


@dataclass
class SyncResult:
    """Result of synchronizing the kernel source."""

    path: Path
    action: SyncAction
    branch: str


@dataclass
class BuildResult:
    """Result of a kernel compile.

    Attributes:
        exit_code: Process exit code.
        log_path: Path to the build log file.
        started_at: Build start time.
        finished_at: Build finish time.
        command: The command that was executed.
        jobs: make job count.
    """

    exit_code: int
    log_path: Path
    started_at: datetime
    finished_at: datetime
    command: str
    jobs: int


@dataclass
class PackageResult:
    """Final outputs placed in the output directory."""

    archive_path: Path
    log_path: Path
    included: list[str] = field(default_factory=list)


@dataclass
class StageResult:
    """Outcome of one pipeline stage."""

    stage: Stage
    status: StageStatus
    message: str
    code: str | None = None


@dataclass
class PipelineResult:
    """Outcome of a full pipeline run."""

    stages: list[StageResult] = field(default_factory=list)
    package: PackageResult | None = None

    @property
    def success(self) -> bool:
        """True if at least one stage ran and none failed."""
        return bool(self.stages) and all(
            s.status is not StageStatus.FAILED for s in self.stages
        )

    @property
    def failed_stage(self) -> StageResult | None:
        """Return the first failed stage, or None."""
        for s in self.stages:
            if s.status is StageStatus.FAILED:
                return s
        return None


__all__ = [
    "BuildResult",
    "PackageResult",
    "PipelineResult",
    "Stage",
    "StageResult",
    "StageStatus",
    "SyncAction",
    "SyncResult",
    "ToolchainResult",
]
