"""Derive tool names, fallback descriptions and identifiers from endpoints.

Every generated tool needs a stable, human-readable name. The rules are:

* **operationId present** -- convert it to snake_case via :func:`snake_case`
  (``getPetById`` becomes ``get_pet_by_id``).
* **no operationId** -- ``{method}_{literal path segments}``: template
  segments (``{id}``) are dropped, the remaining segments have every
  non-alphanumeric character stripped and are joined with ``_``
  (``GET /users/{id}/posts`` becomes ``get_users_posts``). A path with no
  literal segment yields ``{method}_root``.

The module also builds the environment variable names credentials are read
from (:func:`env_variable_name`), the namespaces used when several documents
are merged (:func:`namespace_slug`) and Python-safe identifiers for rendered
server code (:func:`python_identifier`).
"""

from __future__ import annotations

import keyword
import re

from specmcp.models import ApiEndpoint

# Matches any character that is not alphanumeric or underscore.
_INVALID_IDENT_RE = re.compile(r"[^a-zA-Z0-9_]")
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")

_ACTION_VERBS: dict[str, str] = {
    "get": "Retrieve",
    "post": "Create",
    "put": "Update",
    "patch": "Modify",
    "delete": "Delete",
}


def snake_case(name: str) -> str:
    """Convert a camelCase, PascalCase or punctuated name to snake_case.

    Example::

        >>> snake_case("getPetById")
        'get_pet_by_id'
        >>> snake_case("listHTTPRoutes")
        'list_http_routes'
        >>> snake_case("pets.list-all")
        'pets_list_all'
    """
    # "petId" -> "pet_Id", "XMLParser" -> "XML_Parser"
    result = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    result = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", result)
    result = result.lower()
    result = _INVALID_IDENT_RE.sub("_", result)
    return re.sub(r"_+", "_", result).strip("_")


def literal_segments(path: str) -> list[str]:
    """Path segments that are not ``{template}`` variables, punctuation stripped."""
    segments: list[str] = []
    for part in path.split("/"):
        if not part or part.startswith("{"):
            continue
        cleaned = _NON_ALNUM_RE.sub("", part)
        if cleaned:
            segments.append(cleaned)
    return segments


def tool_name(endpoint: ApiEndpoint) -> str:
    """Name the tool generated for *endpoint*.

    Example::

        >>> tool_name(ApiEndpoint(path="/pets/{petId}", method="get", operation_id="getPetById"))
        'get_pet_by_id'
        >>> tool_name(ApiEndpoint(path="/users/{id}/posts", method="get"))
        'get_users_posts'
        >>> tool_name(ApiEndpoint(path="/", method="post"))
        'post_root'
    """
    if endpoint.operation_id:
        converted = snake_case(endpoint.operation_id)
        if converted:
            return converted
    method = endpoint.method.value
    segments = literal_segments(endpoint.path)
    if not segments:
        return f"{method}_root"
    return f"{method}_{'_'.join(segments)}"


def fallback_description(endpoint: ApiEndpoint) -> str:
    """Describe an endpoint that has neither description nor summary.

    The verb comes from the method (``Retrieve``, ``Create``, ``Update``,
    ``Modify``, ``Delete``, otherwise ``Process``) and the object is the last
    literal path segment, or ``resource``.
    """
    verb = _ACTION_VERBS.get(endpoint.method.value, "Process")
    segments = [p for p in endpoint.path.split("/") if p and not p.startswith("{")]
    return f"{verb} {segments[-1] if segments else 'resource'}"


def env_variable_name(scheme_name: str, suffix: str) -> str:
    """Environment variable holding the credential for a security scheme.

    Example::

        >>> env_variable_name("petstore_auth", "ACCESS_TOKEN")
        'PETSTORE_AUTH_ACCESS_TOKEN'
        >>> env_variable_name("api-key", "API_KEY")
        'API_KEY_API_KEY'
    """
    prefix = _NON_ALNUM_RE.sub("_", scheme_name.upper())
    return f"{prefix}_{suffix}"


def namespace_slug(label: str) -> str:
    """Namespace prefix for tools merged from several documents.

    Derived from an explicit batch name, the API title, or the source path;
    falls back to ``"api"``.
    """
    return snake_case(label) or "api"


def python_identifier(name: str) -> str:
    """Turn a tool or property name into a valid Python identifier.

    Builds on :func:`snake_case` and additionally prefixes a leading digit
    with ``_`` and appends ``_`` to Python keywords (PEP 8 convention).

    Example::

        >>> python_identifier("X-Request-ID")
        'x_request_id'
        >>> python_identifier("class")
        'class_'
        >>> python_identifier("2fa")
        '_2fa'
    """
    result = snake_case(name) or "param"
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result):
        result = f"{result}_"
    return result
