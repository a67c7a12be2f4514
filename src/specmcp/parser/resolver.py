"""Resolve ``$ref`` pointers and composition operators against a schema registry.

OpenAPI documents use ``$ref`` pointers (e.g.
``{"$ref": "#/components/schemas/Pet"}``) to avoid repetition, and
``allOf``/``anyOf``/``oneOf`` to build schemas out of other schemas. This
module handles both, one level at a time, against the registry built by
:func:`~specmcp.parser.normalizer.normalize`.

Only registry references are understood: ``#/components/schemas/<Name>``
(OpenAPI 3.x) and ``#/definitions/<Name>`` (Swagger 2.0). Anything else --
external files, URLs, pointers into ``paths`` -- resolves to ``None``.
Resolution never raises; a dangling pointer is the caller's problem to
degrade gracefully.

Recursion into nested properties is deliberately left to the flattener,
which owns the cycle guard (see :mod:`specmcp.generator.flattener`).

The public functions are :func:`ref_name`, :func:`resolve_reference`,
:func:`resolve_schema` and :func:`resolve_composition`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from specmcp.models import Schema

logger = logging.getLogger(__name__)

_REGISTRY_PREFIXES = ("#/components/schemas/", "#/definitions/")
_COMPOSITION_FIELDS = ("all_of", "one_of", "any_of")


def ref_name(ref: str) -> Optional[str]:
    """Return the registry key a reference points at, or ``None``.

    Handles RFC 6901 JSON Pointer escaping (``~1`` for ``/``, ``~0`` for
    ``~``).

    Example::

        ref_name("#/components/schemas/Pet")   # "Pet"
        ref_name("#/definitions/a~1b")         # "a/b"
        ref_name("other.yaml#/Pet")            # None
    """
    for prefix in _REGISTRY_PREFIXES:
        if ref.startswith(prefix):
            name = ref[len(prefix):]
            if not name:
                return None
            return name.replace("~1", "/").replace("~0", "~")
    return None


def resolve_reference(ref: str, registry: dict[str, Schema]) -> Optional[Schema]:
    """Look up the schema a ``$ref`` string names.

    Args:
        ref: The ``$ref`` value (e.g. ``"#/definitions/Pet"``).
        registry: Named schemas from ``components.schemas`` or
            ``definitions``.

    Returns:
        The registered :class:`~specmcp.models.Schema`, or ``None`` when the
        reference is external, malformed, or names nothing in the registry.
    """
    name = ref_name(ref)
    if name is None:
        logger.debug("Unsupported $ref form: %s", ref)
        return None
    schema = registry.get(name)
    if schema is None:
        logger.debug("Dangling $ref: %s", ref)
    return schema


def resolve_schema(schema: Schema, registry: dict[str, Schema]) -> Optional[Schema]:
    """Follow *schema*'s own ``$ref`` (one hop) if it has one.

    Returns *schema* unchanged when it is not a reference, and ``None`` when
    the reference dangles.
    """
    if schema.ref is None:
        return schema
    return resolve_reference(schema.ref, registry)


def resolve_composition(schema: Schema, registry: dict[str, Schema]) -> Schema:
    """Collapse ``allOf``, ``anyOf`` and ``oneOf`` into a single object schema.

    The result starts from *schema*'s own properties. Then every ``allOf``
    member, followed by every ``anyOf`` member, is merged in listed order:
    their properties are added with later members overriding earlier ones on
    a key conflict, ``required`` lists are unioned preserving first
    appearance, and an unset ``type`` is taken from the first member that
    declares one. Finally the first ``oneOf`` variant is overlaid on the
    result. Members that are ``$ref`` pointers are resolved first; dangling
    members are skipped.

    Composition keys are removed from the result. Nested properties are not
    composed -- that happens when the flattener reaches them.

    Args:
        schema: The schema to compose. Its own ``$ref`` must already have
            been followed (see :func:`resolve_schema`).
        registry: Named schemas for resolving member references.

    Returns:
        A new :class:`~specmcp.models.Schema`, or *schema* itself when it
        has no composition keywords.
    """
    if not schema.has_composition:
        return schema

    properties: dict[str, Schema] = dict(schema.properties or {})
    required: list[str] = list(schema.required or [])
    schema_type = schema.type

    for member in _members(schema.all_of, registry) + _members(schema.any_of, registry):
        if member.properties:
            properties.update(member.properties)
        _extend_unique(required, member.required)
        if schema_type is None and member.type is not None:
            schema_type = member.type

    update: dict[str, Any] = {}
    variants = _members(schema.one_of[:1] if schema.one_of else None, registry)
    if variants:
        variant = variants[0]
        logger.debug(
            "oneOf with %d variant(s): using the first", len(schema.one_of or [])
        )
        for field_name in variant.model_fields_set:
            if field_name in _COMPOSITION_FIELDS or field_name in ("properties", "required", "ref"):
                continue
            update[field_name] = getattr(variant, field_name)
        if variant.properties:
            properties.update(variant.properties)
        _extend_unique(required, variant.required)
        if "type" in update:
            schema_type = update.pop("type")

    update.update(
        properties=properties or None,
        required=required or None,
        type=schema_type,
        all_of=None,
        one_of=None,
        any_of=None,
    )
    return schema.model_copy(update=update)


def _members(
    members: Optional[list[Schema]], registry: dict[str, Schema]
) -> list[Schema]:
    """Resolve each composition member's ``$ref``, dropping the dangling ones."""
    resolved: list[Schema] = []
    for member in members or []:
        target = resolve_schema(member, registry)
        if target is None:
            logger.debug("Skipping unresolvable composition member %s", member.ref)
            continue
        resolved.append(target)
    return resolved


def _extend_unique(target: list[str], names: Optional[list[str]]) -> None:
    for name in names or []:
        if name not in target:
            target.append(name)
