"""Thin CLI wrapper for android_kernelgen.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from android_kernelgen import __version__
from android_kernelgen.config import Settings, get_settings, print_settings_json

app = typer.Typer(
    name="kernelgen",
    help="Android Kernel Generator - build and package flashable kernel zips",
    no_args_is_help=True,
)
console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)

ProfileOption = Annotated[
    Path | None,
    typer.Option(
        "--profile",
        "-p",
        help="YAML device profile overriding environment settings",
        exists=True,
        dir_okay=False,
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"android-kernelgen version {__version__}")
        raise typer.Exit()


def _load_settings(profile: Path | None, **overrides: object) -> Settings:
    from pydantic import ValidationError

    try:
        return get_settings(profile, **overrides)
    except ValidationError as e:
        err_console.print("[red]Invalid configuration:[/red]")
        err_console.print(str(e), markup=False)
        raise typer.Exit(code=2) from None
    except (OSError, ValueError) as e:
        err_console.print(f"[red]Failed to load profile: {e}[/red]")
        raise typer.Exit(code=2) from None


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Android Kernel Generator - build and package flashable kernel zips."""


@app.command()
def build(
    clean: Annotated[
        bool,
        typer.Option("--clean", "-c", help="Remove the previous output tree first"),
    ] = False,
    jobs: Annotated[
        int | None,
        typer.Option("--jobs", "-j", min=1, help="make job count (default: CPUs)"),
    ] = None,
    work_dir: Annotated[
        Path | None,
        typer.Option("--work-dir", "-w", help="Working root directory"),
    ] = None,
    profile: ProfileOption = None,
) -> None:
    """Provision toolchains, sync the kernel, build it and package a zip."""
    from android_kernelgen.console import Reporter, setup_logging
    from android_kernelgen.pipeline import run_pipeline

    settings = _load_settings(profile, jobs=jobs, work_dir=work_dir)
    setup_logging(settings.log_level)
    reporter = Reporter(console=console, err_console=err_console)

    reporter.header(f"Kernel Build: {settings.zip_prefix}")
    reporter.info(f"Start time: {datetime.now().ctime()}")
    reporter.info()

    try:
        result = run_pipeline(settings, clean=clean, reporter=reporter)
    except KeyboardInterrupt:
        reporter.error("Interrupted")
        raise typer.Exit(code=130) from None

    if not result.success:
        failed = result.failed_stage
        stage = failed.stage.value if failed else "unknown"
        reporter.error(f"Build failed at stage: {stage}")
        raise typer.Exit(code=1)

    reporter.info()
    reporter.header("Build Completed Successfully!")
    reporter.info(f"Output files in: {settings.output_dir}/")
    reporter.info(f"End time: {datetime.now().ctime()}")


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
    profile: ProfileOption = None,
) -> None:
    """Show effective configuration."""
    settings = _load_settings(profile)
    if json_output:
        console.print(print_settings_json(settings), markup=False)
        return

    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  Work directory:      {settings.work_dir}")
    console.print(f"  Toolchains:          {settings.toolchain_dir}")
    console.print(f"  Kernel source:       {settings.kernel_dir}")
    console.print(f"  Template:            {settings.template_dir}")
    console.print(f"  Output:              {settings.output_dir}")
    console.print(f"  mkdtimg:             {settings.mkdtimg_path}")
    console.print()
    console.print("[bold]Kernel:[/bold]")
    console.print(f"  Repository:          {settings.kernel_repo_url}")
    console.print(f"  Branch:              {settings.kernel_branch}")
    console.print(f"  Defconfig:           {settings.kernel_defconfig}")
    console.print(f"  Fragments:           {', '.join(settings.config_fragments)}")
    console.print(f"  Build user/host:     {settings.build_user}@{settings.build_host}")
    console.print()
    console.print("[bold]Toolchains:[/bold]")
    console.print(f"  Clang:               {settings.clang_url}")
    console.print(f"  GCC AArch64:         {settings.gcc_aarch64_url}")
    console.print(f"  GCC ARM:             {settings.gcc_arm_url}")
    console.print(f"  GCC branch:          {settings.gcc_branch}")
    console.print(f"  Verify pins:         {settings.verify_toolchain_pins}")
    console.print()
    console.print("[bold]Packaging:[/bold]")
    console.print(f"  Template repository: {settings.template_repo_url}")
    console.print(f"  Zip prefix:          {settings.zip_prefix}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Jobs:                {settings.jobs or '(CPU count)'}")
    console.print(f"  Log level:           {settings.log_level}")
    console.print(f"  Download timeout:    {settings.download_timeout}")
    console.print(f"  Build timeout:       {settings.build_timeout or '(none)'}")


@app.command()
def toolchains(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
    profile: ProfileOption = None,
) -> None:
    """Show which toolchains are present locally."""
    from android_kernelgen.toolchains.service import toolchain_status

    settings = _load_settings(profile)
    statuses = toolchain_status(settings)

    if json_output:
        output = [
            {
                "name": s.name,
                "path": str(s.path),
                "present": s.present,
                "pinned": s.pinned,
                "pin_matches": s.pin_matches,
            }
            for s in statuses
        ]
        console.print(json.dumps(output, indent=2), markup=False)
        return

    for s in statuses:
        state = "[green]present[/green]" if s.present else "[yellow]missing[/yellow]"
        console.print(f"  {s.name:<12} {state}  {s.path}")
        if s.pinned and not s.pin_matches:
            console.print("               [red]pin does not match configuration[/red]")


if __name__ == "__main__":
    app()
