"""Thin wrappers around the git command line.

This module handles:
- Shallow clones of a single branch
- Pulling a branch from a remote into an existing checkout

git output is captured and logged; failures raise AcquisitionError.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path

from android_kernelgen.errors import GIT_ERROR, AcquisitionError

logger = logging.getLogger(__name__)

# Default depth for shallow clones
CLONE_DEPTH = 1


def _run_git(args: list[str], cwd: Path | None = None) -> str:
    """Run a git command.

    Args:
        args: Arguments after ``git``.
        cwd: Working directory.

    Returns:
        Captured stdout.

    Raises:
        AcquisitionError: If git cannot be started or exits non-zero.
    """
    cmd = ["git", *args]
    cmd_str = shlex.join(cmd)
    logger.debug("Running %s (cwd=%s)", cmd_str, cwd)

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise AcquisitionError(
            f"Failed to run {cmd_str}: {e}",
            code=GIT_ERROR,
        ) from e

    if result.returncode != 0:
        raise AcquisitionError(
            f"{cmd_str} failed with exit code {result.returncode}: "
            f"{result.stderr.strip()}",
            code=GIT_ERROR,
        )

    if result.stderr:
        # git writes progress to stderr even on success
        logger.debug("%s", result.stderr.strip())
    return result.stdout


def _ensure_parent(dest: Path) -> None:
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise AcquisitionError(
            f"Failed to create {dest.parent}: {e}",
            code=GIT_ERROR,
        ) from e


def shallow_clone(
    url: str,
    branch: str,
    dest: Path,
    depth: int = CLONE_DEPTH,
) -> Path:
    """Clone a single branch with truncated history.

    Args:
        url: Repository URL.
        branch: Branch to check out.
        dest: Destination directory (must not exist).
        depth: History depth.

    Returns:
        The destination path.

    Raises:
        AcquisitionError: If the clone fails.
    """
    logger.info("Cloning %s (branch %s) into %s", url, branch, dest)
    _ensure_parent(dest)
    _run_git(["clone", f"--depth={depth}", url, "-b", branch, str(dest)])
    return dest


def clone_default_branch(url: str, dest: Path, depth: int = CLONE_DEPTH) -> Path:
    """Clone the remote's default branch with truncated history.

    Args:
        url: Repository URL.
        dest: Destination directory (must not exist).
        depth: History depth.

    Returns:
        The destination path.

    Raises:
        AcquisitionError: If the clone fails.
    """
    logger.info("Cloning %s into %s", url, dest)
    _ensure_parent(dest)
    _run_git(["clone", f"--depth={depth}", url, str(dest)])
    return dest


def pull(repo_dir: Path, branch: str, remote: str = "origin") -> str:
    """Pull a branch into an existing checkout.

    Local modifications are not inspected; a diverged or dirty tree makes
    git either merge or fail, and a failure is reported as-is.

    Args:
        repo_dir: Existing checkout.
        branch: Branch to pull.
        remote: Remote name.

    Returns:
        git's stdout (e.g. "Already up to date.").

    Raises:
        AcquisitionError: If the pull fails.
    """
    logger.info("Pulling %s/%s into %s", remote, branch, repo_dir)
    return _run_git(["pull", remote, branch], cwd=repo_dir)


__all__ = ["CLONE_DEPTH", "clone_default_branch", "pull", "shallow_clone"]
