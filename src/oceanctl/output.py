"""Output formatting system with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (resource tables, JSON). This is what
  downstream tools pipe and parse.
* **stderr** -- all diagnostics (status, warnings, errors, HTTP traces).
* **TTY detection** -- Rich tables when stdout is an interactive terminal,
  tab-separated text when piped to another process.
* **Colour control** -- respects ``NO_COLOR`` and ``TERM=dumb``.

The module exposes two layers:

1. :class:`OutputManager` -- holds the format, the Rich consoles and the
   verbose/trace switches. The runner creates one per invocation from the
   resolved ``output``/``verbose``/``trace`` settings and installs it via
   :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`error`,
   :func:`debug`, ...) that delegate to the installed instance.

Writes to stdout are serialised by a lock so that concurrently running batch
jobs never interleave their rows.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from oceanctl.exceptions import InvalidUsageError


class OutputFormat(str, Enum):
    """Enumeration of supported output formats.

    ``AUTO`` resolves to ``RICH`` when stdout is an interactive TTY and colour
    is not disabled, or to ``PLAIN`` otherwise. The user-facing ``text``
    setting maps to ``AUTO``; ``json`` maps to ``JSON``.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"

    @classmethod
    def from_setting(cls, value: str) -> OutputFormat:
        """Map the ``--output`` setting (``text`` or ``json``) to a format."""
        normalized = (value or "text").strip().lower()
        if normalized == "text":
            return cls.AUTO
        if normalized == "json":
            return cls.JSON
        raise InvalidUsageError(f"unknown output format {value!r} (expected text or json)")


class OutputManager:
    """Central manager for all CLI output with stdout/stderr discipline.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        verbose: Enable debug-level messages on stderr.
        trace: Enable HTTP trace lines on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        verbose: bool = False,
        trace: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._verbose = verbose
        self._trace = trace
        self._lock = threading.Lock()

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
        )

    @property
    def format(self) -> OutputFormat:
        """The resolved output format."""
        return self._format

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        return self._stderr

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Print raw text to stdout."""
        with self._lock:
            print(text, file=sys.stdout, flush=True)

    def print_json(self, data: Any) -> None:
        """Print *data* as indented JSON to stdout."""
        self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        show_header: bool = True,
    ) -> None:
        """Print tabular data to stdout.

        Rich mode draws a borderless :class:`~rich.table.Table`; plain mode
        writes tab-separated values, one row per line. JSON output is
        rendered from the items themselves (:func:`oceanctl.display.render`).

        Args:
            headers: Column header strings.
            rows: List of rows, where each row is a list of cell strings.
            show_header: Emit the header row.
        """
        if self._format == OutputFormat.PLAIN:
            lines = ["\t".join(row) for row in rows]
            if show_header:
                lines.insert(0, "\t".join(headers))
            if lines:
                self.print_data("\n".join(lines))
            return

        table = Table(show_header=show_header, header_style="bold cyan", box=None)
        for h in headers:
            table.add_column(h)
        for row in rows:
            table.add_row(*row)
        with self._lock:
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Print an informational message to stderr."""
        self._err(message)

    def success(self, message: str) -> None:
        """Print a green success message to stderr."""
        self._err(message, "[green]{}[/green]")

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr."""
        self._err(f"Warning: {message}", "[yellow]{}[/yellow]")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr. Never suppressed."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(
                f"[bold red]Error:[/bold red] {escape(message)}",
                markup=True,
                highlight=False,
                soft_wrap=True,
            )

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown when ``--verbose`` is active."""
        if self._verbose:
            self._err(f"[debug] {message}", "[dim]{}[/dim]")

    def trace(self, message: str) -> None:
        """Print an HTTP trace line to stderr. Only shown when ``--trace`` is active."""
        if self._trace:
            self._err(message, "[dim]{}[/dim]")

    def _err(self, message: str, style: str = "{}") -> None:
        if self._no_color:
            print(message, file=sys.stderr, flush=True)
        else:
            self._stderr.print(
                style.format(escape(message)), markup=True, highlight=False, soft_wrap=True
            )


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _is_tty() -> bool:
    """Check if stdout is a TTY."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


def configure_logging(output: OutputManager) -> None:
    """Route the :mod:`logging` module to stderr through Rich.

    Library loggers (``oceanctl.*``, ``httpx``) emit at DEBUG in verbose mode
    and at WARNING otherwise.
    """
    level = logging.DEBUG if output.is_verbose else logging.WARNING
    handler = RichHandler(console=output.stderr_console, show_path=False, show_time=False)
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)


# ------------------------------------------------------------------ #
# Global output instance (set by the command runner)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager` instance.

    If none has been installed via :func:`set_output`, a default
    ``OutputManager`` with ``AUTO`` format is created lazily.
    """
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None``.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def print_data(text: str) -> None:
    """Print raw data to stdout via the global OutputManager."""
    get_output().print_data(text)


def info(message: str) -> None:
    """Print info message to stderr via the global OutputManager."""
    get_output().info(message)


def error(message: str) -> None:
    """Print error to stderr via the global OutputManager."""
    get_output().error(message)


def success(message: str) -> None:
    """Print success message to stderr via the global OutputManager."""
    get_output().success(message)


def warning(message: str) -> None:
    """Print warning to stderr via the global OutputManager."""
    get_output().warning(message)


def debug(message: str) -> None:
    """Print debug message to stderr via the global OutputManager."""
    get_output().debug(message)
