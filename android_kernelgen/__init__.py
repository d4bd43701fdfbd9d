"""Android Kernel Generator - reproducible kernel build orchestration.

This package provides orchestration around prebuilt toolchains, the kernel
build system and an AnyKernel3 flashing template for producing flashable
kernel zips.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
