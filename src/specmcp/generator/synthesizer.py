"""Synthesize one MCP tool descriptor per API operation.

This is the last stage of the core pipeline. For each
:class:`~specmcp.models.ApiEndpoint` of a
:class:`~specmcp.models.ParsedApiSpec` it assembles a
:class:`~specmcp.models.McpToolSpec`:

* **name** and fallback **description** from :mod:`specmcp.generator.naming`.
* **inputSchema** -- path parameters (always required), query parameters,
  header parameters whose name does not contain ``signature`` (those are
  computed at call time, never supplied by the caller), and the flattened
  JSON request body (see :mod:`specmcp.generator.flattener`). Cookie and
  ``formData`` parameters are not exposed.
* **authentication** -- derived from the first security scheme that applies
  to the operation.
* fixed **responseHandling** and **errorHandling** policies.

Operations that obtain credentials (login and token endpoints) are skipped:
the generated server handles authentication itself.

A failure while building one tool is raised as
:class:`~specmcp.exceptions.SynthesisError`; :func:`synthesize_tools` logs it
and drops that tool, so one odd operation never costs the rest of the
document.
"""

from __future__ import annotations

import logging
from typing import Optional

from specmcp.exceptions import SynthesisError
from specmcp.generator.flattener import convert_schema, extract_schema_properties
from specmcp.generator.naming import env_variable_name, fallback_description, tool_name
from specmcp.models import (
    ApiEndpoint,
    ApiKeyAuth,
    AuthenticationSpec,
    BasicAuth,
    BearerAuth,
    FlatProperty,
    InputSchema,
    McpToolSpec,
    OAuth2Auth,
    ParameterLocation,
    ParsedApiSpec,
    Schema,
    SecurityRequirement,
)
from specmcp.parser.normalizer import get_base_url

logger = logging.getLogger(__name__)

_AUTH_PATH_PATTERNS = (
    "/auth/login",
    "/auth/token",
    "/token",
    "/login",
    "/oauth/token",
    "/auth/oauth/token",
    "/v2/auth/login",
)
_AUTH_OPERATION_KEYWORDS = ("token", "auth", "login", "authenticate")
_AUTH_DESCRIPTION_KEYWORDS = ("access token", "authentication", "login", "auth")

_JSON_MEDIA_TYPE = "application/json"
_API_KEY_LOCATIONS = frozenset({"header", "query", "cookie"})


def is_authentication_endpoint(endpoint: ApiEndpoint) -> bool:
    """Whether *endpoint* looks like a login or token-issuing operation.

    Matches, case-insensitively, on any of: the path containing a well-known
    auth route, the operationId containing ``token``/``auth``/``login``/
    ``authenticate``, or the description (else the summary) mentioning
    ``access token``/``authentication``/``login``/``auth``.
    """
    path = endpoint.path.lower()
    if any(pattern in path for pattern in _AUTH_PATH_PATTERNS):
        return True
    if endpoint.operation_id:
        operation_id = endpoint.operation_id.lower()
        if any(keyword in operation_id for keyword in _AUTH_OPERATION_KEYWORDS):
            return True
    text = (endpoint.description or endpoint.summary or "").lower()
    return any(keyword in text for keyword in _AUTH_DESCRIPTION_KEYWORDS)


def synthesize_tools(
    spec: ParsedApiSpec, *, base_url: Optional[str] = None
) -> list[McpToolSpec]:
    """Build tool descriptors for every non-authentication endpoint.

    Args:
        spec: The normalized specification.
        base_url: Overrides the base URL derived from the document.

    Returns:
        Tools in endpoint order. Endpoints whose tool could not be built are
        logged and left out.
    """
    resolved_base = base_url if base_url is not None else get_base_url(spec)
    tools: list[McpToolSpec] = []

    for endpoint in spec.endpoints:
        if is_authentication_endpoint(endpoint):
            logger.info("Skipping authentication endpoint %s", endpoint.key)
            continue
        try:
            tools.append(synthesize_tool(endpoint, spec, base_url=resolved_base))
        except SynthesisError as exc:
            logger.warning("Dropping tool for %s: %s", endpoint.key, exc)

    return tools


def synthesize_tool(
    endpoint: ApiEndpoint,
    spec: ParsedApiSpec,
    *,
    base_url: Optional[str] = None,
) -> McpToolSpec:
    """Build the descriptor for a single endpoint.

    Args:
        endpoint: The operation to describe.
        spec: The specification it belongs to (for schemas and security).
        base_url: Base URL to embed; derived from *spec* when ``None``.
            Omitted from the descriptor when empty.

    Returns:
        The :class:`~specmcp.models.McpToolSpec`.

    Raises:
        SynthesisError: If any part of the descriptor cannot be built.
    """
    if base_url is None:
        base_url = get_base_url(spec)
    try:
        return McpToolSpec(
            name=tool_name(endpoint),
            description=endpoint.description or endpoint.summary or fallback_description(endpoint),
            input_schema=build_input_schema(endpoint, spec.schemas),
            method=endpoint.method.value.upper(),
            path=endpoint.path,
            base_url=base_url or None,
            authentication=build_authentication(endpoint, spec),
        )
    except (ValueError, TypeError, KeyError, AttributeError, RecursionError) as exc:
        raise SynthesisError(
            f"Cannot build tool for {endpoint.key}: {exc}",
            method=endpoint.method.value.upper(),
            path=endpoint.path,
        ) from exc


def build_input_schema(endpoint: ApiEndpoint, registry: dict[str, Schema]) -> InputSchema:
    """Assemble the flat input schema for *endpoint*.

    Properties are added in a fixed order -- path, query, header, then body --
    and a later property replaces an earlier one with the same name.
    """
    properties: dict[str, FlatProperty] = {}
    required: list[str] = []

    def add(name: str, prop: FlatProperty, flag: str, is_required: bool) -> None:
        properties[name] = prop.model_copy(update={flag: True})
        if is_required and name not in required:
            required.append(name)

    for param in _parameters(endpoint, ParameterLocation.PATH):
        prop = convert_schema(param.schema_, registry, description=param.description)
        add(param.name, prop, "is_path_param", True)

    for param in _parameters(endpoint, ParameterLocation.QUERY):
        prop = convert_schema(param.schema_, registry, description=param.description)
        add(param.name, prop, "is_query_param", param.required)

    for param in _parameters(endpoint, ParameterLocation.HEADER):
        if "signature" in param.name.lower():
            logger.debug("Not exposing signature header '%s' of %s", param.name, endpoint.key)
            continue
        prop = convert_schema(param.schema_, registry, description=param.description)
        add(param.name, prop, "is_header_param", param.required)

    body = endpoint.request_body
    if body is not None:
        media = body.content.get(_JSON_MEDIA_TYPE)
        if media is not None and media.schema_ is not None:
            flat = extract_schema_properties(media.schema_, registry)
            body_required = set(flat.required) if body.required else set()
            for name, prop in flat.properties.items():
                add(name, prop, "is_body_param", name in body_required)

    for param in _parameters(endpoint, ParameterLocation.BODY):
        if param.schema_ is None:
            continue
        flat = extract_schema_properties(param.schema_, registry)
        body_required = set(flat.required) if param.required else set()
        for name, prop in flat.properties.items():
            add(name, prop, "is_body_param", name in body_required)

    return InputSchema(properties=properties, required=required)


def _parameters(endpoint: ApiEndpoint, location: ParameterLocation):
    return (p for p in endpoint.parameters if p.location == location)


def build_authentication(
    endpoint: ApiEndpoint, spec: ParsedApiSpec
) -> Optional[AuthenticationSpec]:
    """Map the security requirement that applies to *endpoint*.

    The endpoint's own ``security`` wins when declared -- an explicit empty
    list means the operation is public. Otherwise the document's global
    requirements apply. Only the first scheme of the first requirement is
    used.
    """
    requirements = endpoint.security if endpoint.security is not None else spec.global_security
    if not requirements:
        return None
    return _auth_for_requirement(requirements[0], spec)


def _auth_for_requirement(
    requirement: SecurityRequirement, spec: ParsedApiSpec
) -> Optional[AuthenticationSpec]:
    if not requirement:
        return None
    scheme_name = next(iter(requirement))
    scheme = spec.security_schemes.get(scheme_name)
    if scheme is None:
        logger.warning("Security requirement names undefined scheme '%s'", scheme_name)
        return None

    scheme_kind = (scheme.scheme or "").lower()
    if scheme.type == "apiKey":
        location = scheme.location if scheme.location in _API_KEY_LOCATIONS else "header"
        return ApiKeyAuth(
            location=location,
            name=scheme.param_name or "apikey",
            env_variable=env_variable_name(scheme_name, "API_KEY"),
        )
    if scheme.type == "http" and scheme_kind == "bearer":
        return BearerAuth(env_variable=env_variable_name(scheme_name, "TOKEN"))
    if (scheme.type == "http" and scheme_kind == "basic") or scheme.type == "basic":
        return BasicAuth(env_variable=env_variable_name(scheme_name, "CREDENTIALS"))
    if scheme.type == "oauth2":
        return OAuth2Auth(env_variable=env_variable_name(scheme_name, "ACCESS_TOKEN"))

    logger.debug("No credential mapping for scheme '%s' of type %s", scheme_name, scheme.type)
    return None
