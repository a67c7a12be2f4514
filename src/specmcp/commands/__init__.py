"""Built-in CLI sub-commands for specmcp.

This package groups the Typer command modules that form the CLI's
top-level command tree:

* :mod:`~specmcp.commands.generate` -- ``generate`` a server from one
  document, or ``batch`` several documents into one server.
* :mod:`~specmcp.commands.validate` -- check a document and report errors,
  warnings, and suggestions.
* :mod:`~specmcp.commands.inspect` -- preview tools, schemas, auth, and API
  info without writing anything.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``inspect``) or plain callback functions
registered directly on the root app.
"""
