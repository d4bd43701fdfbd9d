"""Console output and logging setup.

Progress is shown as staged labels (header, step, success) on stdout and
error labels on stderr, using rich. Module loggers go through a
RichHandler on stderr.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

HEADER_RULE = "=" * 41


class Reporter:
    """Prints staged progress labels."""

    def __init__(
        self,
        console: Console | None = None,
        err_console: Console | None = None,
    ) -> None:
        """Initialize Reporter.

        Args:
            console: Console for progress labels (default: stdout).
            err_console: Console for error labels (default: stderr).
        """
        self.console = console or Console(highlight=False, soft_wrap=True)
        self.err_console = err_console or Console(
            stderr=True, highlight=False, soft_wrap=True
        )

    def header(self, text: str) -> None:
        """Print a section header framed by rules."""
        self.console.print(HEADER_RULE, markup=False)
        self.console.print(text, style="bold", markup=False)
        self.console.print(HEADER_RULE, markup=False)

    def step(self, text: str) -> None:
        """Print a step that is about to run."""
        self.console.print(f"➡️  {text}", markup=False)

    def success(self, text: str) -> None:
        """Print a completed step."""
        self.console.print(f"✅ {text}", style="green", markup=False)

    def error(self, text: str) -> None:
        """Print a failure on the error console."""
        self.err_console.print(f"❌ {text}", style="red", markup=False)

    def info(self, text: str = "") -> None:
        """Print plain text (a blank line by default)."""
        self.console.print(text, markup=False)


def setup_logging(level: str = "INFO") -> None:
    """Route module loggers to a RichHandler on stderr.

    Args:
        level: Logging level name.
    """
    root = logging.getLogger("android_kernelgen")
    root.setLevel(level)
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)


__all__ = ["HEADER_RULE", "Reporter", "setup_logging"]
