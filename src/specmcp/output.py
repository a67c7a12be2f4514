"""Output formatting with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (tool tables, JSON reports, generated
  descriptors printed with ``--stdout``). This is what downstream tools pipe
  and parse.
* **stderr** -- all diagnostics (status, warnings, errors, suggestions and
  library log records). Never contaminates the data stream.
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped to another process.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

The module exposes three layers:

1. :class:`OutputManager` -- a stateful object holding format preferences,
   Rich consoles, and quiet/verbose flags. Created once in
   :func:`~specmcp.app.main_callback` and installed via :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`error`,
   :func:`debug`, etc.) that delegate to the global ``OutputManager``.
3. :class:`OutputLogHandler` -- forwards ``logging`` records emitted by the
   pipeline modules to the same stderr channel, so ``--quiet`` and
   ``--verbose`` apply to them too. Installed by :func:`configure_logging`.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """Enumeration of supported output formats.

    ``AUTO`` resolves to ``RICH`` when stdout is an interactive TTY and colour
    is not disabled, or to ``PLAIN`` otherwise. Callers can force a specific
    format via the ``--json`` or ``--plain`` CLI flags.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Central manager for all CLI output with stdout/stderr discipline.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential informational messages on stderr.
        verbose: Enable debug-level messages on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

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
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Print raw text to stdout."""
        print(text, file=sys.stdout, flush=True)

    def print_json(self, data: Any) -> None:
        """Print a JSON document to stdout.

        Highlighted in Rich mode, raw everywhere else so it stays parseable.
        """
        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.RICH:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))
        else:
            self.print_data(text)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print tabular data to stdout in the active format.

        * **Rich mode** -- styled :class:`~rich.table.Table` with column
          headers.
        * **JSON mode** -- array of objects keyed by header names.
        * **Plain mode** -- tab-separated values, one row per line.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))

        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))

        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for h in headers:
                table.add_column(h)
            for row in rows:
                table.add_row(*(escape(cell) for cell in row))
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Print an informational message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message, None)

    def success(self, message: str) -> None:
        """Print a green success message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message, "green")

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr. NOT suppressed by ``--quiet``."""
        self._emit(message, "yellow", prefix="Warning:")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr. Never suppressed."""
        self._emit(message, "bold red", prefix="Error:")

    def suggest(self, message: str) -> None:
        """Print a dimmed next-step suggestion to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(f"→ {message}", "dim")

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown when ``--verbose`` is active."""
        if self._verbose:
            self._emit(f"[debug] {message}", "dim")

    def _emit(self, message: str, style: Optional[str], prefix: str = "") -> None:
        if self._no_color:
            text = f"{prefix} {message}" if prefix else message
            print(text, file=sys.stderr, flush=True)
            return
        body = escape(message)
        if prefix and style:
            self._stderr.print(f"[{style}]{prefix}[/{style}] {body}")
        elif style:
            self._stderr.print(f"[{style}]{body}[/{style}]")
        else:
            self._stderr.print(body)


# ------------------------------------------------------------------ #
# Logging bridge
# ------------------------------------------------------------------ #


class OutputLogHandler(logging.Handler):
    """Route ``logging`` records to the global :class:`OutputManager`.

    ``ERROR`` and above become :func:`error`, ``WARNING`` becomes
    :func:`warning`, ``INFO`` becomes :func:`info` and anything lower becomes
    :func:`debug`.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except (TypeError, ValueError):
            self.handleError(record)
            return
        output = get_output()
        if record.levelno >= logging.ERROR:
            output.error(message)
        elif record.levelno >= logging.WARNING:
            output.warning(message)
        elif record.levelno >= logging.INFO:
            output.info(message)
        else:
            output.debug(message)


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Attach an :class:`OutputLogHandler` to the ``specmcp`` logger.

    The level is ``DEBUG`` with ``--verbose``, ``ERROR`` with ``--quiet``
    and ``WARNING`` otherwise. Calling it again replaces the previous
    handler instead of stacking a second one.
    """
    logger = logging.getLogger("specmcp")
    for handler in list(logger.handlers):
        if isinstance(handler, OutputLogHandler):
            logger.removeHandler(handler)
    logger.addHandler(OutputLogHandler())
    if verbose:
        logger.setLevel(logging.DEBUG)
    elif quiet:
        logger.setLevel(logging.ERROR)
    else:
        logger.setLevel(logging.WARNING)
    logger.propagate = False


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
    return os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
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
    get_output().print_data(text)


def print_json(data: Any) -> None:
    get_output().print_json(data)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
