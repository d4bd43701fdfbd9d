"""Source checkout module.

This module handles:
- git clone/pull wrappers
- Kernel source synchronization
"""

from android_kernelgen.sources.service import sync_kernel_source

__all__ = ["sync_kernel_source"]
