"""Shared fixtures for android_kernelgen tests."""

from pathlib import Path

import pytest

from android_kernelgen.config import Settings

BASE_FRAGMENT = """CONFIG_LOCALVERSION="-base"
CONFIG_HZ_300=y
# CONFIG_DEBUG_INFO is not set
"""

DEVICE_FRAGMENT = """CONFIG_LOCALVERSION="-m51"
CONFIG_SAMSUNG_M51=y
"""


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host KGEN_* variables out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("KGEN_"):
            monkeypatch.delenv(key)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temporary work directory."""
    return Settings(
        work_dir=tmp_path / "build",
        mkdtimg_path=tmp_path / "mkdtimg",
        jobs=4,
    )


def make_kernel_tree(kernel_dir: Path) -> Path:
    """Create a minimal kernel tree with the default config fragments."""
    configs = kernel_dir / "arch" / "arm64" / "configs"
    configs.mkdir(parents=True, exist_ok=True)
    (configs / "sdmmagpie_defconfig").write_text(BASE_FRAGMENT)
    (configs / "m51.config").write_text(DEVICE_FRAGMENT)
    return kernel_dir


def make_template(template_dir: Path) -> Path:
    """Create a freshly cloned AnyKernel3 layout."""
    (template_dir / ".git").mkdir(parents=True)
    (template_dir / ".git" / "HEAD").write_text("ref: refs/heads/master\n")
    (template_dir / "LICENSE").write_text("license\n")
    (template_dir / "README.md").write_text("readme\n")
    (template_dir / "anykernel.sh").write_text("#!/sbin/sh\n")
    tools = template_dir / "tools"
    tools.mkdir()
    (tools / "ak3-core.sh").write_text("# core\n")
    return template_dir
