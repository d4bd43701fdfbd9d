"""Kernel build module.

This module handles:
- Defconfig assembly from config fragments
- Cross-compilation environment and make invocation
- Optional DTBO image creation
"""

from android_kernelgen.builds.service import (
    build_overlay_image,
    compile_kernel,
    configure_kernel,
)

__all__ = ["build_overlay_image", "compile_kernel", "configure_kernel"]
