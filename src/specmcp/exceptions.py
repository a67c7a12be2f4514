"""Exception hierarchy for specmcp.

All exceptions inherit from :class:`SpecmcpError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specmcp.exit_codes`.
The top-level error handler in :func:`specmcp.app.main` catches
``SpecmcpError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Propagation inside the pipeline:

* :class:`SpecParseError` stops the document it was raised for, never the
  whole batch.
* :class:`SynthesisError` stops the endpoint it was raised for; the
  synthesizer catches it and drops that tool.
* :class:`ValidationError` is only raised when a caller asks for strict
  validation -- the report itself is always returned.
* Dangling ``$ref`` pointers are not exceptions at all; the resolver
  returns ``None``.

Subclass hierarchy::

    SpecmcpError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- SpecParseError      (exit 7)
    +-- ValidationError     (exit 8)
    +-- SynthesisError      (exit 9)
    +-- GenerationError     (exit 1)
    +-- RenderError         (exit 1)
    +-- ConfigError         (exit 1)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from specmcp.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SPEC_PARSE_ERROR,
    EXIT_SYNTHESIS_ERROR,
    EXIT_VALIDATION_FAILURE,
)

if TYPE_CHECKING:
    from specmcp.models import ValidationResult


class SpecmcpError(Exception):
    """Base exception for all specmcp errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`specmcp.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecmcpError):
    """Raised for invalid CLI arguments or missing required options."""

    exit_code = EXIT_INVALID_USAGE


class SpecParseError(SpecmcpError):
    """Raised when a document cannot be loaded or has no usable ``paths``."""

    exit_code = EXIT_SPEC_PARSE_ERROR


ParseError = SpecParseError


class ValidationError(SpecmcpError):
    """Raised when a caller opts into strict validation and the report has errors.

    Args:
        message: Summary line.
        result: The full :class:`~specmcp.models.ValidationResult`.
    """

    exit_code = EXIT_VALIDATION_FAILURE

    def __init__(self, message: str, result: ValidationResult):
        super().__init__(message)
        self.result = result

    @property
    def errors(self) -> list[str]:
        return list(self.result.errors)


class SynthesisError(SpecmcpError):
    """Raised when a single tool descriptor cannot be built.

    Args:
        message: Human-readable description naming the endpoint.
        method: HTTP method of the failing endpoint.
        path: Path template of the failing endpoint.
    """

    exit_code = EXIT_SYNTHESIS_ERROR

    def __init__(self, message: str, method: str = "", path: str = ""):
        super().__init__(message)
        self.method = method
        self.path = path


class GenerationError(SpecmcpError):
    """Wraps an unexpected exception raised while generating tools.

    The original exception is available as ``__cause__`` (set via
    ``raise GenerationError(...) from exc``).
    """

    exit_code = EXIT_GENERIC_FAILURE


class RenderError(SpecmcpError):
    """Raised when templates cannot be loaded or output cannot be written."""

    exit_code = EXIT_GENERIC_FAILURE


class ConfigError(SpecmcpError):
    """Raised for configuration problems (invalid JSON/YAML, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
