"""Structural validation of API description documents and generated tools.

Validation never raises on a bad document: every check appends a message to
one of three lists and the caller gets a
:class:`~specmcp.models.ValidationResult` back, valid or not.

* **errors** -- the document is structurally broken (missing ``info.version``,
  a path parameter that is not required, ...). ``is_valid`` is ``False``.
* **warnings** -- likely mistakes that still produce usable tools.
* **suggestions** -- purely cosmetic advice (missing ``operationId`` or tags).

Three entry points cover the three stages of the pipeline:

* :func:`validate` -- the raw decoded document.
* :func:`validate_parsed_spec` -- a normalized
  :class:`~specmcp.models.ParsedApiSpec`.
* :func:`validate_tool` -- a single synthesized
  :class:`~specmcp.models.McpToolSpec`.

:func:`require_valid` turns an invalid report into a
:class:`~specmcp.exceptions.ValidationError` for callers running in strict
mode.
"""

from __future__ import annotations

from typing import Any

from specmcp.exceptions import ValidationError
from specmcp.models import HTTPMethod, McpToolSpec, ParsedApiSpec, ValidationResult

_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)
_BODY_METHODS = frozenset({"post", "put", "patch"})


def validate(document: dict[str, Any]) -> ValidationResult:
    """Check a decoded OpenAPI 3.x or Swagger 2.0 document.

    Args:
        document: The decoded document.

    Returns:
        The validation report. ``is_valid`` is ``True`` exactly when no
        errors were found.

    Example::

        report = validate({"openapi": "3.0.0", "info": {"title": "X"}, "paths": {}})
        report.errors
        # ['Missing required field: info.version', 'No paths defined in specification']
    """
    errors: list[str] = []
    warnings: list[str] = []
    suggestions: list[str] = []
    is_swagger2 = "swagger" in document

    info = document.get("info")
    if not isinstance(info, dict):
        errors.append("Missing required field: info")
    else:
        if not info.get("title"):
            errors.append("Missing required field: info.title")
        if not info.get("version"):
            errors.append("Missing required field: info.version")

    paths = document.get("paths")
    if not isinstance(paths, dict) or not paths:
        errors.append("No paths defined in specification")
    else:
        _check_paths(paths, is_swagger2, errors, warnings, suggestions)

    if "openapi" not in document and not is_swagger2:
        errors.append("Missing OpenAPI or Swagger version field")

    if is_swagger2:
        if not document.get("host"):
            warnings.append("No servers defined - consider adding server URLs")
    elif "openapi" in document and not document.get("servers"):
        warnings.append("No servers defined - consider adding server URLs")

    components = document.get("components")
    schemes = None
    if isinstance(components, dict):
        schemes = components.get("securitySchemes")
    if schemes is None:
        schemes = document.get("securityDefinitions")
    if isinstance(schemes, dict):
        _check_security_schemes(schemes, errors, warnings)

    return ValidationResult.from_messages(errors, warnings, suggestions)


def _check_paths(
    paths: dict[str, Any],
    is_swagger2: bool,
    errors: list[str],
    warnings: list[str],
    suggestions: list[str],
) -> None:
    for path, path_item in paths.items():
        path = str(path)
        if not path.startswith("/"):
            errors.append(f"Path must start with '/': {path}")
        if not isinstance(path_item, dict):
            errors.append(f"Path item for {path} must be an object")
            continue
        for method, operation in path_item.items():
            if str(method).lower() not in _HTTP_METHODS:
                continue
            _check_operation(path, str(method), operation, is_swagger2, errors, warnings, suggestions)


def _check_operation(
    path: str,
    method: str,
    operation: Any,
    is_swagger2: bool,
    errors: list[str],
    warnings: list[str],
    suggestions: list[str],
) -> None:
    key = f"{method.upper()} {path}"
    if not isinstance(operation, dict):
        errors.append(f"Operation {key} must be an object")
        return

    if not operation.get("responses"):
        errors.append(f"Missing responses for {key}")

    if not operation.get("operationId"):
        suggestions.append(f"Consider adding operationId for {key}")

    if not operation.get("summary") and not operation.get("description"):
        warnings.append(f"Missing summary and description for {key}")

    parameters = operation.get("parameters")
    if isinstance(parameters, list):
        _check_parameters(parameters, key, errors)
    else:
        parameters = []

    if method.lower() in _BODY_METHODS:
        if is_swagger2:
            has_body = any(
                isinstance(p, dict) and p.get("in") in ("body", "formData") for p in parameters
            )
        else:
            has_body = bool(operation.get("requestBody"))
        if not has_body:
            warnings.append(f"{key} might need a request body")

    if not operation.get("tags"):
        suggestions.append(f"Consider adding tags for {key} for better organization")


def _check_parameters(parameters: list[Any], key: str, errors: list[str]) -> None:
    seen: set[tuple[str, Any]] = set()

    for param in parameters:
        if not isinstance(param, dict):
            errors.append(f"Parameter must be an object in {key}")
            continue
        if "$ref" in param:
            # Shared parameter definitions are checked where they are declared.
            continue

        name = param.get("name")
        if not name:
            errors.append(f"Parameter missing name in {key}")
            continue
        location = param.get("in")

        if not location:
            errors.append(f"Parameter '{name}' missing 'in' field in {key}")

        if "schema" not in param and "type" not in param and "content" not in param:
            errors.append(f"Parameter '{name}' missing schema/type in {key}")

        ident = (str(name), location)
        if ident in seen:
            errors.append(f"Duplicate parameter '{name}' in '{location}' for {key}")
        seen.add(ident)

        if location == "path" and not param.get("required"):
            errors.append(f"Path parameter '{name}' must be required in {key}")


def _check_security_schemes(
    schemes: dict[str, Any], errors: list[str], warnings: list[str]
) -> None:
    for name, scheme in schemes.items():
        if not isinstance(scheme, dict) or not scheme.get("type"):
            errors.append(f"Security scheme '{name}' missing type")
            continue

        scheme_type = scheme["type"]
        if scheme_type == "apiKey":
            if not scheme.get("name") or not scheme.get("in"):
                errors.append(f"API key security scheme '{name}' missing name or in field")
        elif scheme_type == "http":
            if not scheme.get("scheme"):
                errors.append(f"HTTP security scheme '{name}' missing scheme field")
        elif scheme_type == "oauth2":
            if not scheme.get("flows") and not scheme.get("flow"):
                errors.append(f"OAuth2 security scheme '{name}' missing flows")
        elif scheme_type == "openIdConnect":
            if not scheme.get("openIdConnectUrl"):
                errors.append(
                    f"OpenID Connect security scheme '{name}' missing openIdConnectUrl"
                )
        elif scheme_type != "basic":
            warnings.append(f"Unknown security scheme type '{scheme_type}' for '{name}'")


def validate_parsed_spec(spec: ParsedApiSpec) -> ValidationResult:
    """Check a normalized specification.

    Catches documents that were structurally acceptable to the normalizer but
    produced nothing usable, e.g. every operation was skipped.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not spec.endpoints:
        errors.append("No endpoints defined in specification")
    for endpoint in spec.endpoints:
        if not endpoint.responses:
            errors.append(f"Missing responses for {endpoint.key}")

    for requirement in spec.global_security or []:
        for scheme_name in requirement:
            if scheme_name not in spec.security_schemes:
                warnings.append(f"Security requirement references undefined scheme '{scheme_name}'")

    return ValidationResult.from_messages(errors, warnings, [])


def validate_tool(tool: McpToolSpec) -> ValidationResult:
    """Sanity-check one synthesized tool descriptor before rendering."""
    errors: list[str] = []
    warnings: list[str] = []

    if not tool.name:
        errors.append("MCP tool missing name")
    label = tool.name or f"{tool.method} {tool.path}"

    if not tool.description:
        warnings.append(f"MCP tool {label} missing description")
    if not tool.method:
        errors.append(f"MCP tool {label} missing HTTP method")
    if not tool.path:
        errors.append(f"MCP tool {label} missing path")

    if not tool.input_schema.properties:
        warnings.append(f"MCP tool {label} inputSchema has no properties")
    for name in tool.input_schema.required:
        if name not in tool.input_schema.properties:
            errors.append(f"MCP tool {label} requires undeclared property '{name}'")

    return ValidationResult.from_messages(errors, warnings, [])


def require_valid(result: ValidationResult, *, subject: str = "Document") -> ValidationResult:
    """Return *result* unchanged, or raise if it carries errors.

    Raises:
        ValidationError: When ``result.is_valid`` is ``False``.
    """
    if not result.is_valid:
        raise ValidationError(
            f"{subject} failed validation with {len(result.errors)} error(s)", result
        )
    return result
