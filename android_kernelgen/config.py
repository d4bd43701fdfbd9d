"""Configuration settings for android_kernelgen.

Uses pydantic-settings for config parsing from environment variables
and defaults. A YAML device profile can override the environment.
Configuration precedence: CLI flags > profile > env vars > defaults.
"""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_work_dir() -> Path:
    """Return the default working root (``./build``)."""
    return Path.cwd() / "build"


def _default_mkdtimg_path() -> Path:
    """Return the default location of the mkdtimg tool."""
    return Path.cwd() / "mkdtimg"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the KGEN_ prefix.
    Defaults reproduce the Galaxy M51 (sdmmagpie) build.
    """

    model_config = SettingsConfigDict(
        env_prefix="KGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    work_dir: Path = Field(
        default_factory=_default_work_dir,
        description="Working root holding toolchains, kernel, template and output",
    )
    mkdtimg_path: Path = Field(
        default_factory=_default_mkdtimg_path,
        description="Path to the mkdtimg executable",
    )

    # Kernel source
    kernel_repo_url: str = Field(
        default="https://github.com/mehedihjoy0/android_kernel_samsung_sm7150",
        description="Kernel source repository",
    )
    kernel_branch: str = Field(default="m51", description="Kernel branch to build")
    kernel_defconfig: str = Field(
        default="m51_defconfig",
        description="Name of the merged defconfig written under arch/arm64/configs",
    )
    config_fragments: list[str] = Field(
        default_factory=lambda: ["sdmmagpie_defconfig", "m51.config"],
        description="Config fragments merged in order (later keys win)",
    )

    # Toolchains
    clang_url: str = Field(
        default=(
            "https://android.googlesource.com/platform/prebuilts/clang/host/"
            "linux-x86/+archive/4c6fbc28d3b078a5308894fc175f962bb26a5718/"
            "clang-r383902b1.tar.gz"
        ),
        description="Clang prebuilt archive URL",
    )
    gcc_aarch64_url: str = Field(
        default=(
            "https://android.googlesource.com/platform/prebuilts/gcc/linux-x86/"
            "aarch64/aarch64-linux-android-4.9"
        ),
        description="GCC AArch64 prebuilt repository",
    )
    gcc_arm_url: str = Field(
        default=(
            "https://android.googlesource.com/platform/prebuilts/gcc/linux-x86/"
            "arm/arm-linux-androideabi-4.9"
        ),
        description="GCC ARM prebuilt repository",
    )
    gcc_branch: str = Field(
        default="master-kernel-build-2021",
        description="Branch used for both GCC repositories",
    )
    verify_toolchain_pins: bool = Field(
        default=False,
        description="Re-acquire toolchains whose recorded source differs from config",
    )

    # Build identity
    build_user: str = Field(default="mehedihjoy0", description="KBUILD_BUILD_USER")
    build_host: str = Field(default="local-build", description="KBUILD_BUILD_HOST")

    # Packaging
    template_repo_url: str = Field(
        default="https://github.com/mehedihjoy0/AnyKernel3.git",
        description="Flashing template (AnyKernel3) repository",
    )
    template_strip: list[str] = Field(
        default_factory=lambda: [".git", "LICENSE", "README.md"],
        description="Entries removed from the template right after clone",
    )
    zip_prefix: str = Field(
        default="ButterflyKernel_m51", description="Flashable zip name prefix"
    )
    kernel_image_name: str = Field(
        default="Image.gz",
        description="File name of the kernel image inside the template",
    )
    dtb_path: str = Field(
        default="dts/qcom/sdmmagpie.dtb",
        description="Device tree blob path relative to arch/arm64/boot",
    )
    dtbo_page_size: int = Field(default=4096, ge=512, description="mkdtimg page size")

    # Operational
    jobs: int | None = Field(
        default=None,
        ge=1,
        description="make job count (uses CPU count if not set)",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Timeouts (in seconds)
    download_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for toolchain downloads",
    )
    build_timeout: int | None = Field(
        default=None,
        ge=60,
        description="Timeout for the kernel compile (no timeout if not set)",
    )

    @property
    def toolchain_dir(self) -> Path:
        return self.work_dir / "toolchains"

    @property
    def kernel_dir(self) -> Path:
        return self.work_dir / "kernel"

    @property
    def template_dir(self) -> Path:
        return self.work_dir / "AnyKernel3"

    @property
    def output_dir(self) -> Path:
        return self.work_dir / "output"

    @property
    def kernel_out_dir(self) -> Path:
        return self.kernel_dir / "out"

    @property
    def boot_dir(self) -> Path:
        return self.kernel_out_dir / "arch" / "arm64" / "boot"

    @property
    def build_log_path(self) -> Path:
        return self.kernel_dir / "build.log"


def load_profile(path: Path) -> dict[str, Any]:
    """Load a YAML device profile.

    Args:
        path: Path to the YAML file.

    Returns:
        Mapping of setting names to values.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the YAML content is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def get_settings(
    profile: Path | None = None,
    **overrides: Any,
) -> Settings:
    """Build the effective settings.

    Args:
        profile: Optional YAML device profile.
        **overrides: Explicit values (e.g. from CLI flags); ``None`` values
            are ignored.

    Returns:
        Settings instance.
    """
    values: dict[str, Any] = {}
    if profile is not None:
        values.update(load_profile(profile))
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**values)


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "load_profile", "print_settings_json"]
