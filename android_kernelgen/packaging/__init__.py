"""Flashable zip packaging module.

This module handles:
- Flashing template clone and population
- Timestamped zip creation
- Publishing the zip and build log to the output directory
"""

from android_kernelgen.packaging.service import create_flashable_zip
from android_kernelgen.packaging.template import ensure_template, populate_template

__all__ = ["create_flashable_zip", "ensure_template", "populate_template"]
