"""Rule-based cleanup of endpoint summaries, descriptions and parameter docs.

The enhancer is an optional, purely cosmetic pass between normalization and
synthesis. It never changes what a tool does, only how it reads:

* whitespace is collapsed and the first letter capitalised;
* descriptions get terminal punctuation;
* terse phrasing is expanded (``Find pet by ID`` becomes
  ``Retrieve pet using identifier``);
* a missing endpoint description is generated from the method and the
  resource named by the path;
* a missing parameter description is generated from well-known names
  (``limit``, ``offset``, ``id``...) or the parameter's type.

**Enhancement rule:** existing text is rewritten, never replaced by generated
text. Generated text only fills gaps.

:func:`enhance_spec` returns a new :class:`~specmcp.models.ParsedApiSpec`;
its input is left untouched.
"""

from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, Field

from specmcp.models import ApiEndpoint, Parameter, ParsedApiSpec

_ACTION_VERBS: dict[str, str] = {
    "get": "Retrieve",
    "post": "Create",
    "put": "Update",
    "patch": "Modify",
    "delete": "Remove",
    "head": "Check",
    "options": "Query options for",
}

# (pattern, replacement) pairs applied in order, before capitalisation.
_PHRASE_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^find (.+) by (.+)$", re.IGNORECASE), r"retrieve \1 using \2"),
    (re.compile(r"^get (.+) by (.+)$", re.IGNORECASE), r"retrieve \1 using \2"),
    (re.compile(r"^create new (.+)$", re.IGNORECASE), r"create a new \1"),
    (re.compile(r"^update (.+) by (.+)$", re.IGNORECASE), r"update \1 using \2"),
    (re.compile(r"^delete (.+) by (.+)$", re.IGNORECASE), r"remove \1 using \2"),
]

_WORD_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bGets\b"), "Retrieves"),
    (re.compile(r"\bGet\b"), "Retrieve"),
    (re.compile(r"\bDeletes\b"), "Removes"),
    (re.compile(r"\bDelete\b"), "Remove"),
    (re.compile(r"\bIDs\b"), "identifiers"),
    (re.compile(r"\bID\b"), "identifier"),
]

_COMMON_PARAMETERS: dict[str, str] = {
    "id": "Unique identifier for the resource",
    "limit": "Maximum number of results to return",
    "offset": "Number of results to skip for pagination",
    "page": "Page number for pagination",
    "sort": "Field to sort results by",
    "order": "Sort order (asc or desc)",
    "filter": "Filter criteria for results",
    "search": "Search query string",
    "status": "Status filter for results",
    "type": "Type filter for results",
    "format": "Response format preference",
    "version": "API version to use",
}

_TYPE_PHRASES: dict[str, str] = {
    "string": "String value for {name}",
    "integer": "Numeric value for {name}",
    "number": "Numeric value for {name}",
    "boolean": "Boolean flag for {name}",
    "array": "Array of values for {name}",
}


class EnhancementSummary(BaseModel):
    """What an enhancement pass changed, for reporting."""

    total_endpoints: int = 0
    enhanced_endpoints: int = 0
    improvements: list[str] = Field(default_factory=list)

    @property
    def rate(self) -> float:
        if not self.total_endpoints:
            return 0.0
        return self.enhanced_endpoints / self.total_endpoints


def enhance_spec(spec: ParsedApiSpec) -> ParsedApiSpec:
    """Return a copy of *spec* with every endpoint's text enhanced.

    Args:
        spec: The normalized specification. Not modified.

    Returns:
        A new :class:`~specmcp.models.ParsedApiSpec` sharing everything
        except the rewritten endpoints.
    """
    return spec.model_copy(
        update={"endpoints": [enhance_endpoint(e) for e in spec.endpoints]}
    )


def enhance_endpoint(endpoint: ApiEndpoint) -> ApiEndpoint:
    """Enhance one endpoint's summary, description and parameter docs."""
    summary = enhance_text(endpoint.summary, "summary") if endpoint.summary else endpoint.summary
    if endpoint.description:
        description: Optional[str] = enhance_text(endpoint.description, "description")
    else:
        description = generate_description(endpoint)

    parameters = [
        param
        if param.description
        else param.model_copy(
            update={"description": describe_parameter(param)}
        )
        for param in endpoint.parameters
    ]
    return endpoint.model_copy(
        update={"summary": summary, "description": description, "parameters": parameters}
    )


def enhance_text(text: str, kind: str) -> str:
    """Apply the rewrite rules to a summary (*kind* ``"summary"``) or description.

    Example::

        >>> enhance_text("  find pet by ID ", "description")
        'Retrieve pet using identifier.'
    """
    enhanced = " ".join(text.split())
    if not enhanced:
        return enhanced

    for pattern, replacement in _PHRASE_RULES:
        enhanced = pattern.sub(replacement, enhanced)
    for pattern, replacement in _WORD_RULES:
        enhanced = pattern.sub(replacement, enhanced)

    enhanced = enhanced[0].upper() + enhanced[1:]
    if kind == "description" and not enhanced.endswith((".", "!", "?")):
        enhanced += "."
    return enhanced


def generate_description(endpoint: ApiEndpoint) -> str:
    """Write a description for an endpoint that has none.

    Example::

        >>> generate_description(ApiEndpoint(path="/pets/{petId}", method="get"))
        'Retrieve detailed information about a specific pet using its identifier.'
    """
    method = endpoint.method.value
    resource = _resource_name(endpoint.path)
    action = _ACTION_VERBS.get(method, "Process")

    if method == "get":
        if "{" in endpoint.path and "}" in endpoint.path:
            text = f"{action} detailed information about a specific {resource} using its identifier"
        else:
            text = f"{action} a list of {resource}s with optional filtering and pagination"
    elif method == "post":
        text = f"{action} a new {resource} with the provided data"
    elif method == "put":
        text = f"{action} an existing {resource} with new data, replacing all fields"
    elif method == "patch":
        text = f"{action} specific fields of an existing {resource}"
    elif method == "delete":
        text = f"{action} a specific {resource} from the system"
    else:
        text = f"{action} {resource} using {method.upper()} method"

    locations: list[str] = []
    for param in endpoint.parameters:
        if param.location.value not in locations:
            locations.append(param.location.value)
    if locations:
        text += f". Accepts {', '.join(locations)} parameters"
    return text + "."


def describe_parameter(param: Parameter) -> str:
    """Describe a parameter from its name, falling back to its type."""
    lower = param.name.lower()
    for key, text in _COMMON_PARAMETERS.items():
        if key in lower:
            return text
    kind = param.schema_.primary_type if param.schema_ is not None else None
    return _TYPE_PHRASES.get(kind or "", "Value for {name}").format(name=param.name)


def summarize_changes(original: ParsedApiSpec, enhanced: ParsedApiSpec) -> EnhancementSummary:
    """Compare two specs endpoint by endpoint and report what was rewritten."""
    summary = EnhancementSummary(total_endpoints=len(original.endpoints))
    for before, after in zip(original.endpoints, enhanced.endpoints):
        changed = False
        if before.summary != after.summary:
            summary.improvements.append(f"Enhanced summary for {before.key}")
            changed = True
        if before.description != after.description:
            summary.improvements.append(f"Enhanced description for {before.key}")
            changed = True
        if changed:
            summary.enhanced_endpoints += 1
    return summary


def _resource_name(path: str) -> str:
    """Last literal path segment, singularised by dropping a trailing ``s``."""
    segments = [s for s in path.split("/") if s and not s.startswith("{")]
    if not segments:
        return "resource"
    last = segments[-1]
    if last.endswith("s") and len(last) > 1:
        return last[:-1]
    return last
