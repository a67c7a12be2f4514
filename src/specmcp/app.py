"""Typer application and CLI entry point for specmcp.

This module wires together the top-level Typer application and registers the
built-in commands (``generate``, ``batch``, ``validate`` and the ``inspect``
group).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~specmcp.exceptions.SpecmcpError` escaping a command exits with the
error's ``exit_code``; any other exception is written to a crash log under the
data directory.

See Also:
    :mod:`specmcp.config`: Configuration resolution.
    :mod:`specmcp.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from specmcp import __version__
from specmcp.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="specmcp",
    help="Generate MCP tool servers from OpenAPI 3.x and Swagger 2.0 documents.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from specmcp.commands.generate import batch_command, generate_command  # noqa: E402
from specmcp.commands.inspect import inspect_app  # noqa: E402
from specmcp.commands.validate import validate_command  # noqa: E402

app.command("generate")(generate_command)
app.command("batch")(batch_command)
app.command("validate")(validate_command)
app.add_typer(inspect_app, name="inspect", help="Preview tools, schemas, and auth.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"specmcp {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~specmcp.output.OutputManager` from CLI
    flags and routes the pipeline's log records through it.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output and DEBUG logging.
    """
    from specmcp.output import OutputFormat, OutputManager, configure_logging, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    configure_logging(verbose=verbose, quiet=quiet)
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from specmcp.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``specmcp`` console script.

    Unhandled :class:`~specmcp.exceptions.SpecmcpError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce a
    crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from specmcp.exceptions import SpecmcpError
        from specmcp.output import error

        if isinstance(exc, SpecmcpError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
