"""specmcp -- Turn OpenAPI 3.x / Swagger 2.0 documents into MCP tool servers.

This package converts a REST API description into a normalized set of tool
descriptors -- one per operation, with flat input schemas, authentication
requirements and response/error policies -- and renders them into a
ready-to-run MCP server.

Typical workflow::

    specmcp validate petstore.yaml              # check the document
    specmcp inspect tools petstore.yaml         # preview the tools
    specmcp generate petstore.yaml -o ./server  # write tools.json + server.py
    specmcp batch apis.yaml -o ./server         # merge several documents

Modules:
    app: Typer application and CLI entry point.
    pipeline: Library entry points (generate_tools, generate_batch).
    models: Pydantic models shared across the entire package.
    config: Configuration loading and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
