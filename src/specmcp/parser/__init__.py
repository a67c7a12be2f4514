"""Document parser -- load, normalize, validate, and resolve schema references.

This sub-package is responsible for the first half of the specmcp pipeline:
turning a raw OpenAPI 3.x or Swagger 2.0 document (JSON or YAML, local file,
remote URL or stdin) into a :class:`~specmcp.models.ParsedApiSpec` that the
generator can consume.

Typical usage::

    from specmcp.parser import load_spec, normalize, validate

    raw = load_spec("https://petstore.swagger.io/v2/swagger.json")
    report = validate(raw)
    spec = normalize(raw)

Sub-modules:

* :mod:`~specmcp.parser.loader` -- I/O layer (URL, file, stdin) plus format
  detection.
* :mod:`~specmcp.parser.normalizer` -- Builds the version-agnostic model.
* :mod:`~specmcp.parser.validator` -- Structural checks producing a
  :class:`~specmcp.models.ValidationResult`.
* :mod:`~specmcp.parser.resolver` -- One-hop ``$ref`` lookup and
  ``allOf``/``anyOf``/``oneOf`` collapsing against the schema registry.
"""

from specmcp.parser.loader import load_spec, parse_document
from specmcp.parser.normalizer import detect_spec_version, get_base_url, normalize
from specmcp.parser.resolver import ref_name, resolve_composition, resolve_reference
from specmcp.parser.validator import (
    require_valid,
    validate,
    validate_parsed_spec,
    validate_tool,
)

__all__ = [
    "load_spec",
    "parse_document",
    "normalize",
    "detect_spec_version",
    "get_base_url",
    "ref_name",
    "resolve_reference",
    "resolve_composition",
    "validate",
    "validate_parsed_spec",
    "validate_tool",
    "require_valid",
]
