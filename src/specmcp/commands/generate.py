"""Generate commands -- turn one or several documents into an MCP server.

Provides ``specmcp generate`` for a single document and ``specmcp batch``
for a batch file listing several documents that are merged into one
server. Both resolve the effective
:class:`~specmcp.models.GeneratorConfig` through
:func:`~specmcp.config.resolve_config`, run the pipeline, and hand the
result to :func:`~specmcp.render.render_server`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from specmcp.output import debug, error, info, print_json, success, suggest, warning

DEFAULT_OUTPUT_DIR = "mcp-server"


def generate_command(
    source: str = typer.Argument(..., help="URL, file path, or '-' for stdin."),
    output: str = typer.Option(
        DEFAULT_OUTPUT_DIR, "--output", "-o", help="Directory to write the server into."
    ),
    server_name: Optional[str] = typer.Option(
        None, "--server-name", help="Name the MCP server announces."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Override the base URL from the document."
    ),
    enhance: bool = typer.Option(
        False, "--enhance", help="Rewrite summaries and fill in missing descriptions."
    ),
    template_dir: Optional[str] = typer.Option(
        None, "--template-dir", help="Directory with override templates."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Fail when the document has validation errors."
    ),
    merge_path_params: bool = typer.Option(
        False, "--merge-path-params", help="Apply path-level parameters to each operation."
    ),
    to_stdout: bool = typer.Option(
        False, "--stdout", help="Print tools.json to stdout instead of writing files."
    ),
) -> None:
    """Generate an MCP server from an OpenAPI or Swagger document.

    Example::

        specmcp generate petstore.yaml -o ./petstore-mcp
        specmcp generate https://api.example.com/openapi.json --enhance
    """
    from specmcp.config import resolve_config
    from specmcp.exceptions import SpecmcpError
    from specmcp.pipeline import generate_from_source
    from specmcp.render import build_context, build_manifest, render_server

    try:
        config = resolve_config(
            cli_server_name=server_name,
            cli_base_url=base_url,
            cli_enhance=True if enhance else None,
            cli_template_dir=template_dir,
            cli_strict=True if strict else None,
            cli_merge_path_parameters=True if merge_path_params else None,
        )
        debug(f"Loading {source}")
        result = generate_from_source(
            source,
            base_url=config.base_url,
            enhance=config.enhance_descriptions,
            merge_path_parameters=config.merge_path_parameters,
            strict=config.strict,
        )

        if not result.validation.is_valid:
            suggest(f"Run: specmcp validate {source}")
        if not result.tools:
            warning("No tools were generated")

        if to_stdout:
            print_json(build_manifest(build_context(result, server_name=config.server_name)))
            return

        written = render_server(
            result,
            output,
            server_name=config.server_name,
            template_dir=config.template_dir,
        )
    except SpecmcpError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    for path in written:
        debug(f"Wrote {path}")
    success(f"Generated {len(result.tools)} tool(s) in {output}")
    suggest(f"Run: python {Path(output) / 'server.py'}")


def batch_command(
    batch_file: str = typer.Argument(..., help="JSON or YAML file listing the documents."),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Directory to write the server into (overrides the batch file)."
    ),
    server_name: Optional[str] = typer.Option(
        None, "--server-name", help="Name the MCP server announces."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Base URL applied to every document."
    ),
    enhance: bool = typer.Option(
        False, "--enhance", help="Rewrite summaries and fill in missing descriptions."
    ),
    template_dir: Optional[str] = typer.Option(
        None, "--template-dir", help="Directory with override templates."
    ),
    max_workers: Optional[int] = typer.Option(
        None, "--max-workers", min=1, help="Documents processed concurrently."
    ),
    merge_strategy: Optional[str] = typer.Option(
        None, "--merge-strategy", help="How tool lists are merged: namespace or combine."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Skip documents that have validation errors."
    ),
    merge_path_params: bool = typer.Option(
        False, "--merge-path-params", help="Apply path-level parameters to each operation."
    ),
    to_stdout: bool = typer.Option(
        False, "--stdout", help="Print tools.json to stdout instead of writing files."
    ),
) -> None:
    """Generate one MCP server from several documents.

    Example batch file::

        specs:
          - input: ./petstore.yaml
            name: pets
          - https://api.example.com/openapi.json
        output: ./server
    """
    from specmcp.config import load_batch_config, merge_strategy_names, resolve_config
    from specmcp.exceptions import GenerationError, InvalidUsageError, SpecmcpError
    from specmcp.pipeline import generate_batch
    from specmcp.render import build_context, build_manifest, render_server

    try:
        if merge_strategy is not None and merge_strategy not in merge_strategy_names():
            raise InvalidUsageError(
                f"Unknown merge strategy '{merge_strategy}'. "
                f"Choose from: {', '.join(merge_strategy_names())}"
            )
        batch = load_batch_config(batch_file)
        if merge_strategy is None and "merge_strategy" in batch.model_fields_set:
            merge_strategy = batch.merge_strategy.value
        config = resolve_config(
            cli_server_name=server_name or batch.server_name,
            cli_base_url=base_url,
            cli_enhance=True if enhance else None,
            cli_template_dir=template_dir,
            cli_max_workers=max_workers,
            cli_merge_strategy=merge_strategy,
            cli_strict=True if strict else None,
            cli_merge_path_parameters=True if merge_path_params else None,
        )
        target = output or batch.output
        if target is None and not to_stdout:
            raise InvalidUsageError(
                "No output directory: pass --output or set 'output' in the batch file"
            )

        info(f"Processing {len(batch.specs)} document(s) with {config.max_workers} worker(s)")
        result = generate_batch(
            batch.specs,
            max_workers=config.max_workers,
            merge_strategy=config.merge_strategy,
            base_url=config.base_url,
            enhance=config.enhance_descriptions,
            merge_path_parameters=config.merge_path_parameters,
            strict=config.strict,
        )
        if not result.results:
            raise GenerationError("No document in the batch could be processed")
        for failure in result.failures:
            warning(f"Skipped {failure.source}")

        if to_stdout:
            print_json(build_manifest(build_context(result, server_name=config.server_name)))
            return

        render_server(
            result,
            target,
            server_name=config.server_name,
            template_dir=config.template_dir,
        )
    except SpecmcpError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success(
        f"Generated {len(result.tools)} tool(s) from {len(result.results)} document(s) in {target}"
    )
