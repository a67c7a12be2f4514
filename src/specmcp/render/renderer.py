"""Render generated tools into a runnable MCP server directory.

:func:`render_server` takes the output of
:func:`~specmcp.pipeline.generate_tools` (or a merged
:class:`~specmcp.models.BatchResult`) and writes:

* ``tools.json`` -- the tool descriptors, camelCase, with unset optional
  fields omitted. The generated server reads it at startup.
* ``server.py`` -- a stdio MCP server that turns each tool call into one HTTP
  request with ``httpx``.
* ``README.md`` -- the tool table and the environment variables the server
  reads credentials from.

Templates are looked up in the user's ``template_dir`` first, then in the
bundled ``render/templates/`` directory, so a single template can be
overridden without copying the others.

Rendering is deterministic: the same input produces byte-identical files.
Nothing time- or host-dependent is written.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, select_autoescape

from specmcp import __version__
from specmcp.config import atomic_write, write_json
from specmcp.exceptions import RenderError
from specmcp.models import ApiInfo, BatchResult, GenerationResult, McpToolSpec

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Path to the bundled Jinja2 templates (``render/templates/``)."""

TOOLS_FILENAME = "tools.json"

_OUTPUTS: tuple[tuple[str, str], ...] = (
    ("server.py.j2", "server.py"),
    ("README.md.j2", "README.md"),
)


def render_server(
    result: Union[GenerationResult, BatchResult],
    output_dir: Union[str, Path],
    *,
    server_name: Optional[str] = None,
    template_dir: Optional[Union[str, Path]] = None,
) -> list[Path]:
    """Write ``tools.json``, ``server.py`` and ``README.md`` into *output_dir*.

    Args:
        result: A single-document result or a merged batch.
        output_dir: Target directory, created if missing. Existing files
            with the same names are replaced atomically.
        server_name: Name the MCP server announces. Defaults to the API title
            slugified with an ``-mcp`` suffix (``petstore-mcp``).
        template_dir: Directory with override templates.

    Returns:
        The written file paths, ``tools.json`` first.

    Raises:
        RenderError: If *template_dir* does not exist, a template fails to
            render, or a file cannot be written.
    """
    output_path = Path(output_dir)
    context = build_context(result, server_name=server_name)
    env = _create_jinja_env(template_dir)

    written: list[Path] = []
    try:
        tools_path = output_path / TOOLS_FILENAME
        write_json(tools_path, build_manifest(context))
        written.append(tools_path)

        for template_name, filename in _OUTPUTS:
            target = output_path / filename
            _render_template(env, template_name, target, context)
            written.append(target)
    except OSError as exc:
        raise RenderError(f"Cannot write to {output_path}: {exc}") from exc

    logger.info("Rendered %d tool(s) into %s", context["tool_count"], output_path)
    return written


def build_manifest(context: dict[str, Any]) -> dict[str, Any]:
    """The ``tools.json`` payload for a rendering context."""
    return {
        "server": {
            "name": context["server_name"],
            "title": context["title"],
            "version": context["version"],
            "baseUrl": context["base_url"],
        },
        "tools": [tool.to_dict() for tool in context["tools"]],
    }


def build_context(
    result: Union[GenerationResult, BatchResult],
    *,
    server_name: Optional[str] = None,
) -> dict[str, Any]:
    """Assemble the template variables for *result*.

    For a batch, the API metadata comes from the first document that
    produced tools and each tool keeps its own ``baseUrl``.

    Returns:
        A dict with keys ``"server_name"``, ``"title"``, ``"version"``,
        ``"description"``, ``"base_url"``, ``"base_url_env"``, ``"tools"``,
        ``"tool_count"``, ``"env_variables"``, ``"env_usage"`` and
        ``"generator_version"``.
    """
    if isinstance(result, BatchResult):
        info = result.results[0].info if result.results else ApiInfo(title="API", version="0.0.0")
        base_url = result.results[0].base_url if len(result.results) == 1 else ""
        tools = result.tools
    else:
        info = result.info
        base_url = result.base_url
        tools = result.tools

    name = server_name or f"{_slugify(info.title)}-mcp"
    env_usage = _env_usage(tools)

    return {
        "server_name": name,
        "title": info.title,
        "version": info.version,
        "description": info.description or f"MCP server for the {info.title}",
        "base_url": base_url,
        "base_url_env": f"{_slugify(name).upper().replace('-', '_')}_BASE_URL",
        "tools": tools,
        "tool_count": len(tools),
        "env_variables": list(env_usage),
        "env_usage": env_usage,
        "generator_version": __version__,
    }


def _env_usage(tools: list[McpToolSpec]) -> dict[str, list[str]]:
    """Map each credential environment variable to the tools reading it."""
    usage: dict[str, list[str]] = {}
    for tool in tools:
        if tool.authentication is not None:
            usage.setdefault(tool.authentication.env_variable, []).append(tool.name)
    return dict(sorted(usage.items()))


def _create_jinja_env(template_dir: Optional[Union[str, Path]] = None) -> Environment:
    """Create the Jinja2 environment, user templates shadowing bundled ones.

    Autoescape is disabled for ``.py.j2`` and ``.md.j2`` files, which produce
    Python and Markdown rather than HTML.
    """
    search_path = [str(TEMPLATE_DIR)]
    if template_dir is not None:
        user_dir = Path(template_dir)
        if not user_dir.is_dir():
            raise RenderError(f"Template directory not found: {user_dir}")
        search_path.insert(0, str(user_dir))

    return Environment(
        loader=FileSystemLoader(search_path),
        autoescape=select_autoescape(disabled_extensions=("py.j2", "md.j2")),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def _render_template(env: Environment, template_name: str, target: Path, context: dict[str, Any]) -> None:
    try:
        rendered = env.get_template(template_name).render(**context)
    except TemplateError as exc:
        raise RenderError(f"Failed to render {template_name}: {exc}") from exc
    atomic_write(target, rendered)


def _slugify(text: str) -> str:
    """Convert text to a lowercase hyphen-separated slug.

    Example::

        >>> _slugify("Swagger Petstore")
        'swagger-petstore'
    """
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "api"
