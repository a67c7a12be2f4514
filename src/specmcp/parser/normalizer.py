"""Normalize OpenAPI 3.x and Swagger 2.0 documents into one internal model.

This module walks a decoded document and builds a
:class:`~specmcp.models.ParsedApiSpec`: one
:class:`~specmcp.models.ApiEndpoint` per path + HTTP method, the schema
registry used for ``$ref`` resolution, the security schemes, and the
document-wide security requirements.

The two dialects differ in where things live:

* schema registry: ``components.schemas`` vs ``definitions``
* security schemes: ``components.securitySchemes`` vs ``securityDefinitions``
* request body: ``requestBody`` vs an ``in: body`` parameter
* parameter type facets: under ``schema`` vs inline on the parameter
* base URL: ``servers[0].url`` vs ``schemes``/``host``/``basePath``

Unlike the validator, the normalizer is forgiving. The only fatal problem is a
missing or non-mapping ``paths`` object; a malformed operation, parameter or
registry entry is skipped with a logged warning so one bad corner of a large
document does not take the rest of it down.

The single public entry point is :func:`normalize`; :func:`detect_spec_version`
and :func:`get_base_url` are exported for callers that only need those.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from specmcp.exceptions import SpecParseError
from specmcp.models import (
    ApiEndpoint,
    ApiInfo,
    HTTPMethod,
    MediaTypeObject,
    Parameter,
    ParameterLocation,
    ParsedApiSpec,
    RequestBody,
    Schema,
    SecurityScheme,
    ServerInfo,
)

logger = logging.getLogger(__name__)

_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)

UNTITLED_API = "Untitled API"

# Swagger 2.0 parameter keys that describe the value's type.
_INLINE_SCHEMA_KEYS = (
    "type",
    "format",
    "items",
    "enum",
    "default",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "multipleOf",
    "minLength",
    "maxLength",
    "pattern",
    "minItems",
    "maxItems",
    "uniqueItems",
)


def normalize(
    document: dict[str, Any], *, merge_path_parameters: bool = False
) -> ParsedApiSpec:
    """Build a :class:`~specmcp.models.ParsedApiSpec` from a decoded document.

    Args:
        document: The decoded document as returned by
            :func:`~specmcp.parser.loader.load_spec`.
        merge_path_parameters: Also apply path-item level ``parameters`` to
            every operation under that path. Operation-level parameters win
            when both declare the same ``name`` and ``in``.

    Returns:
        The normalized specification. Endpoints keep document order.

    Raises:
        SpecParseError: If ``paths`` is missing or is not a mapping.

    Example::

        raw = load_spec("petstore.yaml")
        spec = normalize(raw)
        for endpoint in spec.endpoints:
            print(endpoint.key)
    """
    paths = document.get("paths")
    if not isinstance(paths, dict):
        raise SpecParseError(
            "Document has no 'paths' mapping; is this an OpenAPI or Swagger document?"
        )

    spec_version = detect_spec_version(document)
    is_swagger2 = spec_version.startswith("2")

    host = document.get("host") if is_swagger2 else None
    base_path = document.get("basePath") if is_swagger2 else None
    schemes = document.get("schemes") if is_swagger2 else None

    return ParsedApiSpec(
        info=_extract_info(document),
        servers=_extract_servers(document),
        endpoints=_extract_endpoints(document, paths, merge_path_parameters),
        schemas=_extract_registry(document),
        security_schemes=_extract_security_schemes(document),
        global_security=_extract_security(document.get("security")),
        spec_version=spec_version,
        host=host if isinstance(host, str) else None,
        base_path=base_path if isinstance(base_path, str) else None,
        schemes=[s for s in schemes if isinstance(s, str)] if isinstance(schemes, list) else [],
    )


def detect_spec_version(document: dict[str, Any]) -> str:
    """Return the declared ``openapi`` or ``swagger`` version string.

    Documents that declare neither are classified by shape: Swagger 2.0
    markers (``definitions``, ``host``, ``basePath``, ``securityDefinitions``)
    yield ``"2.0"``, anything else ``"3.0.0"``.
    """
    if "openapi" in document:
        return str(document["openapi"])
    if "swagger" in document:
        return str(document["swagger"])
    if any(key in document for key in ("definitions", "host", "basePath", "securityDefinitions")):
        logger.debug("No version field; classifying document as Swagger 2.0 by shape")
        return "2.0"
    logger.debug("No version field; classifying document as OpenAPI 3.x by shape")
    return "3.0.0"


def get_base_url(spec: ParsedApiSpec) -> str:
    """Derive the API's base URL.

    The first ``servers`` entry wins. Otherwise a Swagger 2.0 document's
    ``schemes``/``host``/``basePath`` are combined, preferring ``https`` when
    it is listed and defaulting to ``http``. Returns ``""`` when the document
    gives no hint at all.

    Example::

        # swagger: "2.0", host: api.example.com, basePath: /v1, schemes: [http, https]
        get_base_url(spec)  # "https://api.example.com/v1"
    """
    if spec.servers:
        return spec.servers[0].url
    if spec.host:
        if "https" in spec.schemes:
            scheme = "https"
        elif spec.schemes:
            scheme = spec.schemes[0]
        else:
            scheme = "http"
        return f"{scheme}://{spec.host}{spec.base_path or ''}"
    return ""


def _extract_info(document: dict[str, Any]) -> ApiInfo:
    info = document.get("info")
    if not isinstance(info, dict):
        info = {}
    description = info.get("description")
    return ApiInfo(
        title=str(info.get("title") or UNTITLED_API),
        version=str(info.get("version") or "0.0.0"),
        description=description if isinstance(description, str) else None,
    )


def _extract_servers(document: dict[str, Any]) -> list[ServerInfo]:
    servers = document.get("servers")
    if not isinstance(servers, list):
        return []
    result: list[ServerInfo] = []
    for server in servers:
        if not isinstance(server, dict) or not isinstance(server.get("url"), str):
            logger.warning("Skipping server entry without a URL: %r", server)
            continue
        result.append(ServerInfo(url=server["url"], description=_as_text(server.get("description"))))
    return result


def _extract_registry(document: dict[str, Any]) -> dict[str, Schema]:
    """Build the schema registry from ``components.schemas`` or ``definitions``.

    Entries that do not validate as a schema are skipped with a warning;
    references to them will later resolve to ``None``.
    """
    components = document.get("components")
    raw: Any = None
    if isinstance(components, dict) and isinstance(components.get("schemas"), dict):
        raw = components["schemas"]
    elif isinstance(document.get("definitions"), dict):
        raw = document["definitions"]
    if not raw:
        return {}

    registry: dict[str, Schema] = {}
    for name, body in raw.items():
        if not isinstance(body, dict):
            logger.warning("Skipping malformed schema '%s': not an object", name)
            continue
        try:
            registry[str(name)] = Schema.model_validate(body)
        except PydanticValidationError as exc:
            logger.warning("Skipping malformed schema '%s': %s", name, exc.errors()[0]["msg"])
    return registry


def _extract_endpoints(
    document: dict[str, Any],
    paths: dict[str, Any],
    merge_path_parameters: bool,
) -> list[ApiEndpoint]:
    """Emit one endpoint per path + recognised HTTP method, in document order."""
    endpoints: list[ApiEndpoint] = []

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            logger.warning("Skipping path '%s': path item is not an object", path)
            continue

        path_params = path_item.get("parameters") if merge_path_parameters else None

        for method, operation in path_item.items():
            if method not in _HTTP_METHODS:
                continue
            if not isinstance(operation, dict):
                logger.warning("Skipping %s %s: operation is not an object", method.upper(), path)
                continue
            try:
                endpoints.append(
                    _extract_endpoint(document, str(path), method, operation, path_params)
                )
            except (ValueError, TypeError, AttributeError) as exc:
                logger.warning("Skipping %s %s: %s", method.upper(), path, exc)

    return endpoints


def _extract_endpoint(
    document: dict[str, Any],
    path: str,
    method: str,
    operation: dict[str, Any],
    path_params: Any,
) -> ApiEndpoint:
    raw_params = _as_list(operation.get("parameters"))
    if path_params:
        raw_params = _merge_parameters(_as_list(path_params), raw_params)

    tags = operation.get("tags")
    responses = operation.get("responses")
    operation_id = operation.get("operationId")

    return ApiEndpoint(
        path=path,
        method=HTTPMethod(method),
        operation_id=str(operation_id) if operation_id is not None else None,
        summary=_as_text(operation.get("summary")),
        description=_as_text(operation.get("description")),
        tags=[str(t) for t in tags] if isinstance(tags, list) else [],
        parameters=_extract_parameters(document, raw_params, path, method),
        request_body=_extract_request_body(document, operation.get("requestBody")),
        responses=responses if isinstance(responses, dict) else {},
        security=_extract_security(operation.get("security")),
    )


def _merge_parameters(
    path_params: list[Any],
    op_params: list[Any],
) -> list[Any]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters replace path-level parameters with the same
    ``name`` and ``in``.
    """
    overridden = {
        (p.get("name"), p.get("in")) for p in op_params if isinstance(p, dict)
    }
    merged = [
        p
        for p in path_params
        if not isinstance(p, dict) or (p.get("name"), p.get("in")) not in overridden
    ]
    merged.extend(op_params)
    return merged


def _extract_parameters(
    document: dict[str, Any],
    raw_params: list[Any],
    path: str,
    method: str,
) -> list[Parameter]:
    """Convert raw parameter objects into :class:`~specmcp.models.Parameter` models.

    ``$ref`` parameters are looked up under ``components.parameters`` or the
    top-level ``parameters`` map. Parameters without a name or with an
    unrecognised location are skipped with a warning.
    """
    label = f"{method.upper()} {path}"
    parameters: list[Parameter] = []

    for raw in raw_params:
        if isinstance(raw, dict) and "$ref" in raw:
            target = _lookup_pointer(document, raw["$ref"])
            if target is None:
                logger.warning("Skipping unresolvable parameter %s in %s", raw["$ref"], label)
                continue
            raw = target
        if not isinstance(raw, dict):
            logger.warning("Skipping malformed parameter in %s: %r", label, raw)
            continue

        name = raw.get("name")
        if not name:
            logger.warning("Skipping parameter without a name in %s", label)
            continue
        try:
            location = ParameterLocation(raw.get("in"))
        except ValueError:
            logger.warning(
                "Skipping parameter '%s' in %s: unknown location %r", name, label, raw.get("in")
            )
            continue

        parameters.append(
            Parameter(
                name=str(name),
                location=location,
                required=bool(raw.get("required", False)),
                description=_as_text(raw.get("description")),
                schema=_parameter_schema(raw, location, f"'{name}' in {label}"),
            )
        )

    return parameters


def _parameter_schema(
    raw: dict[str, Any], location: ParameterLocation, label: str
) -> Optional[Schema]:
    """Find the schema describing a parameter's value.

    OpenAPI 3.x puts it under ``schema`` (or the first entry of ``content``);
    Swagger 2.0 non-body parameters carry ``type``/``format``/``enum`` and the
    other facets inline, which are folded into a schema here.
    """
    body: Any = None
    if isinstance(raw.get("schema"), dict):
        body = raw["schema"]
    elif isinstance(raw.get("content"), dict):
        for media in raw["content"].values():
            if isinstance(media, dict) and isinstance(media.get("schema"), dict):
                body = media["schema"]
                break
    elif location != ParameterLocation.BODY and "type" in raw:
        body = {key: raw[key] for key in _INLINE_SCHEMA_KEYS if key in raw}

    if body is None:
        return None
    try:
        return Schema.model_validate(body)
    except PydanticValidationError as exc:
        logger.warning("Ignoring malformed schema of parameter %s: %s", label, exc.errors()[0]["msg"])
        return None


def _extract_request_body(document: dict[str, Any], body: Any) -> Optional[RequestBody]:
    if body is None:
        return None
    if isinstance(body, dict) and "$ref" in body:
        body = _lookup_pointer(document, body["$ref"])
    if not isinstance(body, dict):
        logger.warning("Ignoring malformed requestBody: %r", body)
        return None

    content: dict[str, MediaTypeObject] = {}
    raw_content = body.get("content")
    if isinstance(raw_content, dict):
        for media_type, media in raw_content.items():
            schema = media.get("schema") if isinstance(media, dict) else None
            content[str(media_type)] = MediaTypeObject(
                schema=Schema.model_validate(schema) if isinstance(schema, dict) else None
            )

    return RequestBody(
        description=_as_text(body.get("description")),
        content=content,
        required=bool(body.get("required", False)),
    )


def _extract_security_schemes(document: dict[str, Any]) -> dict[str, SecurityScheme]:
    """Read ``components.securitySchemes`` (3.x) or ``securityDefinitions`` (2.0).

    Swagger 2.0 ``oauth2`` schemes declare a single ``flow``; it is reshaped
    into the 3.x ``flows`` mapping so both dialects look the same downstream.
    """
    components = document.get("components")
    raw: Any = None
    if isinstance(components, dict) and isinstance(components.get("securitySchemes"), dict):
        raw = components["securitySchemes"]
    elif isinstance(document.get("securityDefinitions"), dict):
        raw = document["securityDefinitions"]
    if not raw:
        return {}

    schemes: dict[str, SecurityScheme] = {}
    for name, data in raw.items():
        if not isinstance(data, dict):
            logger.warning("Skipping malformed security scheme '%s'", name)
            continue

        flows = data.get("flows")
        if not isinstance(flows, dict) and isinstance(data.get("flow"), str):
            flows = {
                data["flow"]: {
                    key: data[key]
                    for key in ("authorizationUrl", "tokenUrl", "scopes")
                    if key in data
                }
            }

        schemes[str(name)] = SecurityScheme(
            name=str(name),
            type=str(data.get("type", "")),
            description=_as_text(data.get("description")),
            param_name=_as_text(data.get("name")),
            location=_as_text(data.get("in")),
            scheme=_as_text(data.get("scheme")),
            bearer_format=_as_text(data.get("bearerFormat")),
            flows=flows if isinstance(flows, dict) else None,
            openid_connect_url=_as_text(data.get("openIdConnectUrl")),
        )

    return schemes


def _extract_security(raw: Any) -> Optional[list[dict[str, list[str]]]]:
    """Keep ``None`` (nothing declared) distinct from ``[]`` (explicitly public)."""
    if not isinstance(raw, list):
        return None
    requirements: list[dict[str, list[str]]] = []
    for requirement in raw:
        if not isinstance(requirement, dict):
            continue
        requirements.append(
            {
                str(scheme): [str(s) for s in scopes] if isinstance(scopes, list) else []
                for scheme, scopes in requirement.items()
            }
        )
    return requirements


def _lookup_pointer(document: dict[str, Any], ref: Any) -> Any:
    """Follow an internal JSON Pointer through *document*; ``None`` if it leads nowhere."""
    if not isinstance(ref, str) or not ref.startswith("#/"):
        return None
    current: Any = document
    for segment in ref[2:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")
        if not isinstance(current, dict) or segment not in current:
            return None
        current = current[segment]
    return current


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None
