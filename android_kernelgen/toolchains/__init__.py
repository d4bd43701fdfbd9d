"""Toolchain provisioning module.

This module handles:
- Downloading and extracting the Clang prebuilt archive
- Cloning the GCC prebuilt repositories
- Optional pin stamps for detecting stale toolchains
"""

from android_kernelgen.toolchains.service import (
    ensure_toolchains,
    toolchain_bin_dirs,
    toolchain_status,
)

__all__ = ["ensure_toolchains", "toolchain_bin_dirs", "toolchain_status"]
