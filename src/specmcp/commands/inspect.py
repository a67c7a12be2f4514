"""Inspect commands -- preview what would be generated from a document.

Provides the ``specmcp inspect`` sub-command group with read-only commands:

* ``tools`` -- one row per generated tool.
* ``tool`` -- the full descriptor of a single tool as JSON.
* ``schemas`` -- the named schemas the resolver sees.
* ``auth`` -- the security schemes and the credential variables they map to.
* ``info`` -- API metadata, base URL and counts.

Nothing is written to disk.
"""

from __future__ import annotations

from typing import Optional

import typer

from specmcp.output import error, get_output, info, print_json

inspect_app = typer.Typer(no_args_is_help=True)

_SOURCE_HELP = "URL, file path, or '-' for stdin."


def _load(source: str, base_url: Optional[str] = None, enhance: bool = False):  # noqa: ANN202
    """Load *source* and return ``(ParsedApiSpec, GenerationResult)``.

    Raises:
        typer.Exit: With the error's exit code when the document cannot be
            loaded or processed.
    """
    from specmcp.exceptions import SpecmcpError
    from specmcp.parser import load_spec, normalize
    from specmcp.pipeline import generate_tools

    try:
        document = load_spec(source)
        spec = normalize(document)
        result = generate_tools(document, base_url=base_url, enhance=enhance, source=source)
    except SpecmcpError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    return spec, result


@inspect_app.command("tools")
def inspect_tools(
    source: str = typer.Argument(..., help=_SOURCE_HELP),
    enhance: bool = typer.Option(False, "--enhance", help="Preview enhanced descriptions."),
) -> None:
    """List the tools that would be generated.

    Example::

        specmcp inspect tools petstore.yaml
        specmcp --json inspect tools petstore.yaml
    """
    _, result = _load(source, enhance=enhance)

    headers = ["Name", "Method", "Path", "Parameters", "Required", "Auth"]
    rows: list[list[str]] = []
    for tool in result.tools:
        rows.append([
            tool.name,
            tool.method,
            tool.path,
            str(len(tool.input_schema.properties)),
            ", ".join(tool.input_schema.required) or "-",
            tool.authentication.type if tool.authentication else "-",
        ])

    get_output().print_table(
        headers, rows, title=f"{result.info.title} -- Tools ({len(rows)})"
    )


@inspect_app.command("tool")
def inspect_tool(
    source: str = typer.Argument(..., help=_SOURCE_HELP),
    name: str = typer.Argument(..., help="Tool name, e.g. get_pet_by_id."),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Override the base URL."),
    enhance: bool = typer.Option(False, "--enhance", help="Preview enhanced descriptions."),
) -> None:
    """Print one tool descriptor as JSON.

    Example::

        specmcp inspect tool petstore.yaml get_pet_by_id
    """
    from specmcp.exit_codes import EXIT_INVALID_USAGE

    _, result = _load(source, base_url=base_url, enhance=enhance)
    for tool in result.tools:
        if tool.name == name:
            print_json(tool.to_dict())
            return

    error(f"No tool named '{name}'. Run: specmcp inspect tools {source}")
    raise typer.Exit(code=EXIT_INVALID_USAGE)


@inspect_app.command("schemas")
def inspect_schemas(
    source: str = typer.Argument(..., help=_SOURCE_HELP),
) -> None:
    """List the named schemas, with their type and up to five properties.

    Example::

        specmcp inspect schemas petstore.yaml
    """
    spec, _ = _load(source)

    if not spec.schemas:
        info("No schemas defined in this document.")
        return

    headers = ["Schema", "Type", "Properties"]
    rows: list[list[str]] = []
    for name, schema in sorted(spec.schemas.items()):
        if schema.has_composition:
            kind = "composed"
        else:
            kind = schema.primary_type or ("object" if schema.properties else "-")
        prop_names = list(schema.properties or {})
        props = ", ".join(prop_names[:5])
        if len(prop_names) > 5:
            props += "..."
        rows.append([name, kind, props or "-"])

    get_output().print_table(headers, rows, title=f"Schemas ({len(rows)})")


@inspect_app.command("auth")
def inspect_auth(
    source: str = typer.Argument(..., help=_SOURCE_HELP),
) -> None:
    """Show security schemes and the variables generated servers read.

    Example::

        specmcp inspect auth petstore.yaml
    """
    spec, result = _load(source)

    if not spec.security_schemes:
        info("No security schemes defined.")
        return

    used = {
        tool.authentication.env_variable
        for tool in result.tools
        if tool.authentication is not None
    }

    headers = ["Name", "Type", "Scheme", "Location", "Variable"]
    rows: list[list[str]] = []
    for name, scheme in spec.security_schemes.items():
        rows.append([
            name,
            scheme.type,
            scheme.scheme or "-",
            scheme.location or "-",
            _variable_for(name, scheme.type, scheme.scheme, used),
        ])

    get_output().print_table(headers, rows, title="Security Schemes")


@inspect_app.command("info")
def inspect_info(
    source: str = typer.Argument(..., help=_SOURCE_HELP),
) -> None:
    """Show API metadata, base URL, and counts.

    Example::

        specmcp inspect info petstore.yaml
    """
    spec, result = _load(source)

    data: dict = {
        "title": result.info.title,
        "version": result.info.version,
        "specVersion": spec.spec_version,
        "description": result.info.description or "-",
        "baseUrl": result.base_url or "-",
        "servers": [s.url for s in result.servers],
        "endpoints": len(spec.endpoints),
        "tools": len(result.tools),
        "schemas": len(spec.schemas),
        "securitySchemes": list(spec.security_schemes),
        "valid": result.validation.is_valid,
    }
    print_json(data)


def _variable_for(
    name: str,
    scheme_type: str,
    http_scheme: Optional[str],
    used: set[str],
) -> str:
    """Environment variable a generated server reads for scheme *name*."""
    from specmcp.generator.naming import env_variable_name

    kind = (http_scheme or "").lower() if scheme_type == "http" else scheme_type
    suffix = {
        "apiKey": "API_KEY",
        "bearer": "TOKEN",
        "basic": "CREDENTIALS",
        "oauth2": "ACCESS_TOKEN",
    }.get(kind)
    if suffix is None:
        return "-"
    variable = env_variable_name(name, suffix)
    return variable if variable in used else f"{variable} (unused)"
