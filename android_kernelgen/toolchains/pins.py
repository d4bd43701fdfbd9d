"""Toolchain pin stamps.

A toolchain directory's presence is its cache key. When pin checking is
enabled, each acquired toolchain also gets a stamp file recording a hash of
the source it was fetched from, so a configuration change (new URL or
branch) can be detected and the stale directory replaced.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Stamp file written inside each toolchain directory
PIN_FILENAME = ".kernelgen-pin.json"

# Schema version for pin format; bump when the key format changes
PIN_SCHEMA_VERSION = "1"


def compute_pin_key(url: str, branch: str | None = None) -> str:
    """Compute a pin key for a toolchain source.

    The key is a SHA-256 hash of the canonical JSON of the source.

    Args:
        url: Archive or repository URL.
        branch: Branch for git sources (None for archives).

    Returns:
        Pin key as hex string (sha256:...).
    """
    canonical_json = json.dumps(
        {"schema_version": PIN_SCHEMA_VERSION, "url": url, "branch": branch},
        sort_keys=True,
        separators=(",", ":"),
    )
    return "sha256:" + hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


def read_pin(toolchain_dir: Path) -> str | None:
    """Read the recorded pin key of a toolchain directory.

    Args:
        toolchain_dir: Toolchain directory.

    Returns:
        The recorded key, or None if no readable stamp exists.
    """
    stamp = toolchain_dir / PIN_FILENAME
    if not stamp.is_file():
        return None
    try:
        data = json.loads(stamp.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable pin stamp %s: %s", stamp, e)
        return None
    key = data.get("key") if isinstance(data, dict) else None
    return key if isinstance(key, str) else None


def write_pin(toolchain_dir: Path, url: str, branch: str | None = None) -> str:
    """Record the source of a toolchain directory.

    Args:
        toolchain_dir: Toolchain directory.
        url: Archive or repository URL.
        branch: Branch for git sources.

    Returns:
        The written pin key.
    """
    key = compute_pin_key(url, branch)
    stamp = toolchain_dir / PIN_FILENAME
    stamp.write_text(
        json.dumps({"key": key, "url": url, "branch": branch}, indent=2) + "\n",
        encoding="utf-8",
    )
    logger.debug("Wrote pin %s to %s", key[:23], stamp)
    return key


def pin_matches(toolchain_dir: Path, url: str, branch: str | None = None) -> bool:
    """Check whether a toolchain directory was fetched from the given source.

    Args:
        toolchain_dir: Toolchain directory.
        url: Configured URL.
        branch: Configured branch.

    Returns:
        True if the stamp exists and matches.
    """
    return read_pin(toolchain_dir) == compute_pin_key(url, branch)


__all__ = [
    "PIN_FILENAME",
    "PIN_SCHEMA_VERSION",
    "compute_pin_key",
    "pin_matches",
    "read_pin",
    "write_pin",
]
