"""Tool generator -- turn a parsed specification into MCP tool descriptors.

This sub-package is responsible for the second half of the specmcp pipeline:
taking a :class:`~specmcp.models.ParsedApiSpec` (produced by the parser) and
producing one :class:`~specmcp.models.McpToolSpec` per operation.

Typical usage::

    from specmcp.generator import synthesize_tools

    tools = synthesize_tools(parsed_spec, base_url="https://api.example.com")
    for tool in tools:
        print(tool.name, list(tool.input_schema.properties))

Sub-modules:

* :mod:`~specmcp.generator.naming` -- Tool names, fallback descriptions,
  credential environment variables and Python identifiers.
* :mod:`~specmcp.generator.flattener` -- Flatten nested request-body
  schemas into flat parameters with reconstruction metadata.
* :mod:`~specmcp.generator.synthesizer` -- Assemble the descriptors,
  including authentication and response/error policy.
"""

from specmcp.generator.flattener import FlattenResult, convert_schema, extract_schema_properties
from specmcp.generator.naming import tool_name
from specmcp.generator.synthesizer import (
    is_authentication_endpoint,
    synthesize_tool,
    synthesize_tools,
)

__all__ = [
    "FlattenResult",
    "convert_schema",
    "extract_schema_properties",
    "tool_name",
    "is_authentication_endpoint",
    "synthesize_tool",
    "synthesize_tools",
]
