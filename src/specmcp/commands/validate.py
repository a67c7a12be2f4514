"""Validate command -- check a document before generating from it.

Runs the structural validator on the raw document and, when the document
has a ``paths`` object, the semantic checks on its normalized form. Errors,
warnings and suggestions are printed to stderr; ``--json`` prints the full
report to stdout instead. Exits with
:data:`~specmcp.exit_codes.EXIT_VALIDATION_FAILURE` when errors were found.
"""

from __future__ import annotations

from typing import Any

import typer

from specmcp.output import OutputFormat, error, get_output, print_json, success, suggest, warning


def validate_command(
    source: str = typer.Argument(..., help="URL, file path, or '-' for stdin."),
) -> None:
    """Validate an OpenAPI or Swagger document.

    Example::

        specmcp validate petstore.yaml
        specmcp --json validate petstore.yaml | jq .errors
    """
    from specmcp.exceptions import SpecmcpError
    from specmcp.exit_codes import EXIT_VALIDATION_FAILURE
    from specmcp.parser import load_spec

    try:
        document = load_spec(source)
    except SpecmcpError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    report = full_report(document)

    if get_output().format == OutputFormat.JSON:
        print_json(report.model_dump(by_alias=True))
    else:
        for message in report.errors:
            error(message)
        for message in report.warnings:
            warning(message)
        for message in report.suggestions:
            suggest(message)
        if report.is_valid:
            success(f"{source} is valid")

    if not report.is_valid:
        raise typer.Exit(code=EXIT_VALIDATION_FAILURE)


def full_report(document: dict[str, Any]):  # noqa: ANN201
    """Structural report merged with the checks on the normalized document.

    Messages are deduplicated, keeping the first occurrence.
    """
    from specmcp.models import ValidationResult
    from specmcp.parser import normalize, validate, validate_parsed_spec

    report = validate(document)
    if not isinstance(document.get("paths"), dict):
        return report

    semantic = validate_parsed_spec(normalize(document))
    return ValidationResult.from_messages(
        _unique(report.errors + semantic.errors),
        _unique(report.warnings + semantic.warnings),
        _unique(report.suggestions + semantic.suggestions),
    )


def _unique(messages: list[str]) -> list[str]:
    return list(dict.fromkeys(messages))
