"""Build pipeline.

Runs the stages in a fixed order:

    PROVISION -> SYNC -> CONFIGURE -> COMPILE -> [OVERLAY_IMAGE]
    -> ASSEMBLE_TEMPLATE -> ARCHIVE

Each stage produces a StageResult. The first failing stage ends the run:
later stages are not executed and nothing is cleaned up or rolled back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

import httpx

from android_kernelgen.builds.runner import default_jobs
from android_kernelgen.builds.service import (
    build_overlay_image,
    compile_kernel,
    configure_kernel,
)
from android_kernelgen.console import Reporter
from android_kernelgen.errors import KernelGenError
from android_kernelgen.packaging.archive import archive_name
from android_kernelgen.packaging.service import create_flashable_zip
from android_kernelgen.packaging.template import ensure_template, populate_template
from android_kernelgen.sources.service import sync_kernel_source
from android_kernelgen.toolchains.service import ensure_toolchains
from android_kernelgen.types import (
    PipelineResult,
    Stage,
    StageResult,
    StageStatus,
    SyncAction,
)

if TYPE_CHECKING:
    from android_kernelgen.config import Settings

logger = logging.getLogger(__name__)

# A stage action returns its status and a one-line summary
StageAction = Callable[[], tuple[StageStatus, str]]


def run_pipeline(
    settings: Settings,
    clean: bool = False,
    jobs: int | None = None,
    client: httpx.Client | None = None,
    reporter: Reporter | None = None,
    now: datetime | None = None,
) -> PipelineResult:
    """Run the full build pipeline.

    Args:
        settings: Effective settings.
        clean: Remove the previous output tree before configuring.
        jobs: make job count override.
        client: Optional HTTPX client for toolchain downloads.
        reporter: Progress label printer.
        now: Timestamp for the archive name (defaults to now).

    Returns:
        PipelineResult; ``success`` is False if any stage failed.
    """
    if reporter is None:
        reporter = Reporter()

    result = PipelineResult()
    effective_jobs = jobs or settings.jobs or default_jobs()

    def provision() -> tuple[StageStatus, str]:
        reporter.header("Setting up Toolchains")
        toolchains = ensure_toolchains(settings, client=client, on_step=reporter.step)
        for tc in toolchains:
            verb = "installed" if tc.acquired else "already exists"
            reporter.success(f"{tc.name} {verb}")
        acquired = sum(1 for tc in toolchains if tc.acquired)
        return StageStatus.SUCCEEDED, f"{acquired} toolchain(s) acquired"

    def sync() -> tuple[StageStatus, str]:
        reporter.header("Setting up Kernel Source")
        if settings.kernel_dir.is_dir():
            reporter.step("Updating kernel source...")
        else:
            reporter.step("Cloning kernel source...")
        synced = sync_kernel_source(settings)
        label = "cloned" if synced.action is SyncAction.CLONED else "updated"
        reporter.success(f"Kernel source {label}")
        return StageStatus.SUCCEEDED, f"Kernel source {label} ({synced.branch})"

    def configure() -> tuple[StageStatus, str]:
        reporter.header("Building Kernel")
        if clean:
            reporter.step("Cleaning previous build...")
        reporter.step(f"Configuring with {settings.kernel_defconfig}...")
        defconfig = configure_kernel(settings, clean=clean)
        return StageStatus.SUCCEEDED, f"Configured with {defconfig.name}"

    def compile_() -> tuple[StageStatus, str]:
        reporter.step(f"Compiling with {effective_jobs} threads...")
        build = compile_kernel(settings, jobs=effective_jobs)
        reporter.success("Kernel build completed")
        duration = (build.finished_at - build.started_at).total_seconds()
        return StageStatus.SUCCEEDED, f"Compiled in {duration:.1f}s"

    def overlay_image() -> tuple[StageStatus, str]:
        image = build_overlay_image(settings, on_step=reporter.step)
        if image is None:
            return StageStatus.SKIPPED, "No DTBO files found"
        reporter.success("DTBO image created")
        return StageStatus.SUCCEEDED, f"Created {image.name}"

    def assemble() -> tuple[StageStatus, str]:
        reporter.header("Creating Flashable Zip")
        if not settings.template_dir.is_dir():
            reporter.step("Cloning AnyKernel3...")
        ensure_template(settings)
        written = populate_template(settings)
        return StageStatus.SUCCEEDED, ", ".join(p.name for p in written)

    def archive() -> tuple[StageStatus, str]:
        stamp = now or datetime.now()
        reporter.step(f"Creating {archive_name(settings.zip_prefix, stamp)}...")
        package = create_flashable_zip(settings, now=stamp)
        result.package = package
        reporter.success(f"Flashable zip created: {package.archive_path}")
        return StageStatus.SUCCEEDED, package.archive_path.name

    stages: list[tuple[Stage, StageAction]] = [
        (Stage.PROVISION, provision),
        (Stage.SYNC, sync),
        (Stage.CONFIGURE, configure),
        (Stage.COMPILE, compile_),
        (Stage.OVERLAY_IMAGE, overlay_image),
        (Stage.ASSEMBLE_TEMPLATE, assemble),
        (Stage.ARCHIVE, archive),
    ]

    for stage, action in stages:
        logger.debug("Entering stage %s", stage.value)
        try:
            status, message = action()
        except KernelGenError as e:
            reporter.error(str(e))
            result.stages.append(
                StageResult(stage, StageStatus.FAILED, str(e), code=e.code)
            )
            logger.debug("Stage %s failed with code %s", stage.value, e.code)
            return result
        result.stages.append(StageResult(stage, status, message))

    return result


__all__ = ["run_pipeline"]
