"""Defconfig assembly from config fragments.

This module handles:
- Concatenating fragments into a working defconfig (base first)
- Reading the effective value of each option (last definition wins)
- Reporting options that a later fragment overrides

The merged file is plain concatenation: Kconfig reads it top to bottom, so
a key defined in a later fragment replaces the earlier one. Duplicates are
reported, never rejected.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path

from android_kernelgen.errors import CONFIG_ERROR, BuildError

logger = logging.getLogger(__name__)

# CONFIG_FOO=y / CONFIG_FOO="str" / CONFIG_FOO=0x10
_SET_RE = re.compile(r"^(CONFIG_[A-Za-z0-9_]+)=(.*)$")
# "# CONFIG_FOO is not set"
_UNSET_RE = re.compile(r"^#\s*(CONFIG_[A-Za-z0-9_]+) is not set\s*$")

# Value recorded for "# CONFIG_FOO is not set"
NOT_SET = "n"


def parse_config_fragment(text: str) -> dict[str, str]:
    """Parse Kconfig fragment text into an option mapping.

    Args:
        text: Fragment contents.

    Returns:
        Mapping of option name to raw value; ``NOT_SET`` for disabled
        options. Later lines override earlier ones.
    """
    options: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        if m := _UNSET_RE.match(line):
            options[m.group(1)] = NOT_SET
        elif m := _SET_RE.match(line):
            options[m.group(1)] = m.group(2)
    return options


def effective_config(path: Path) -> dict[str, str]:
    """Return the effective options of a defconfig file."""
    return parse_config_fragment(path.read_text(encoding="utf-8", errors="replace"))


def duplicate_keys(fragments: list[Path]) -> dict[str, tuple[str, str]]:
    """Find options whose value a later fragment changes.

    Args:
        fragments: Fragments in merge order.

    Returns:
        Mapping of option name to (overridden value, winning value).
    """
    seen: dict[str, str] = {}
    overridden: dict[str, tuple[str, str]] = {}
    for fragment in fragments:
        for key, value in effective_config(fragment).items():
            if key in seen and seen[key] != value:
                first = overridden[key][0] if key in overridden else seen[key]
                overridden[key] = (first, value)
            seen[key] = value
    return overridden


def merge_config_fragments(fragments: list[Path], output: Path) -> Path:
    """Concatenate config fragments into a defconfig.

    Fragments are written byte for byte in the given order. A newline is
    inserted between fragments only when one does not already end with one.
    The output is replaced atomically.

    Args:
        fragments: Fragment paths, base first.
        output: Defconfig path to (over)write.

    Returns:
        The output path.

    Raises:
        BuildError: If a fragment is missing or the output cannot be written.
    """
    missing = [str(f) for f in fragments if not f.is_file()]
    if missing:
        raise BuildError(
            f"Config fragment(s) not found: {', '.join(missing)}",
            code=CONFIG_ERROR,
        )

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".defconfig-", dir=output.parent)
    except OSError as e:
        raise BuildError(
            f"Failed to write {output}: {e}",
            code=CONFIG_ERROR,
        ) from e
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "wb") as out:
            for fragment in fragments:
                data = fragment.read_bytes()
                out.write(data)
                if data and not data.endswith(b"\n"):
                    out.write(b"\n")
        tmp_path.replace(output)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise BuildError(
            f"Failed to write {output}: {e}",
            code=CONFIG_ERROR,
        ) from e

    for key, (old, new) in duplicate_keys(fragments).items():
        logger.info("%s overridden: %s -> %s", key, old, new)

    logger.info(
        "Merged %s into %s",
        ", ".join(f.name for f in fragments),
        output.name,
    )
    return output


__all__ = [
    "NOT_SET",
    "duplicate_keys",
    "effective_config",
    "merge_config_fragments",
    "parse_config_fragment",
]
