"""Code generation: tool descriptors to a runnable MCP server directory.

See :func:`~specmcp.render.renderer.render_server`.
"""

from specmcp.render.renderer import TEMPLATE_DIR, build_context, build_manifest, render_server

__all__ = ["TEMPLATE_DIR", "build_context", "build_manifest", "render_server"]
