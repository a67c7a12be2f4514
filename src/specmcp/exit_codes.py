"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specmcp.exceptions.SpecmcpError` subclass.
CI scripts and shell wrappers can inspect the exit code to tell a broken
spec apart from a failed render without parsing stderr.

Example::

    $ specmcp validate -i broken.yaml
    $ echo $?
    8   # EXIT_VALIDATION_FAILURE -- the document has structural errors
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required options."""

EXIT_SPEC_PARSE_ERROR = 7
"""The OpenAPI/Swagger document could not be loaded or has no usable paths."""

EXIT_VALIDATION_FAILURE = 8
"""The document failed structural validation."""

EXIT_SYNTHESIS_ERROR = 9
"""A tool descriptor could not be synthesised for an endpoint."""
