"""Flatten nested request-body schemas into flat, invocable parameter sets.

Tools accept a flat mapping of named values, but request bodies are usually
nested JSON objects. This module walks a body schema and turns every leaf
into a :data:`~specmcp.models.FlatProperty` whose name encodes its position
(``owner_address_city``) and whose reconstruction metadata
(``originalPath="owner.address.city"``, ``parentObject="owner"``) lets a
code generator rebuild the nested payload at call time.

**Rules:**

* ``$ref`` pointers are followed and ``allOf``/``anyOf``/``oneOf`` collapsed
  (see :mod:`specmcp.parser.resolver`) at every level.
* An *object-like* schema -- ``type: object``, or no type but declared
  properties -- with at least one property is flattened; its children are
  named ``{parent}_{child}``. There is no depth limit.
* A flattened leaf is required only when it and each of its ancestors were
  required by their immediate parent.
* A ``$ref`` that names nothing in the registry becomes an opaque ``string``
  property rather than an error.
* Cycles are cut: the registry names on the active path are threaded through
  the recursion, and re-entering one of them yields an opaque ``object``
  property at that position. A ``$ref`` composition member joins the path
  only for the properties it contributes.
* Array ``items`` are converted with the same resolution and cycle guard,
  but never flattened.

The public functions are :func:`extract_schema_properties` (bodies) and
:func:`convert_schema` (single parameters).
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple, Optional

from specmcp.models import (
    ArrayProperty,
    BooleanProperty,
    FlatProperty,
    IntegerProperty,
    NumberProperty,
    ObjectProperty,
    Schema,
    StringProperty,
)
from specmcp.parser.resolver import ref_name, resolve_composition, resolve_reference

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Parameter value"

# Marks a reference that re-enters a schema already on the active path.
_CYCLE = object()


class FlattenResult(NamedTuple):
    """Flat properties in declaration order plus the names that are required."""

    properties: dict[str, FlatProperty]
    required: list[str]


def extract_schema_properties(
    schema: Schema, registry: dict[str, Schema]
) -> FlattenResult:
    """Flatten the properties of a request-body schema.

    Args:
        schema: The body schema, possibly a ``$ref`` or a composition.
        registry: Named schemas used to resolve references.

    Returns:
        A :class:`FlattenResult`. Direct, non-object properties keep their
        own names and carry no reconstruction metadata; properties produced
        by flattening are marked ``is_flattened``.

    Example::

        # Pet { name: string (required), owner: { name: string (required) } }
        # with owner required:
        result = extract_schema_properties(pet_schema, registry)
        list(result.properties)  # ["name", "owner_name"]
        result.required          # ["name", "owner_name"]
    """
    properties: dict[str, FlatProperty] = {}
    required: list[str] = []

    target, visited, origins = _follow(schema, registry, frozenset())
    if target is None:
        return FlattenResult(properties, required)
    if not isinstance(target, Schema):
        # The root itself closes a cycle; nothing to flatten.
        return FlattenResult(properties, required)

    root_required = target.required or []
    for name, child in (target.properties or {}).items():
        _emit(
            name,
            child,
            registry,
            _child_path(visited, origins, name),
            path=(name,),
            required=name in root_required,
            properties=properties,
            required_names=required,
        )
    return FlattenResult(properties, required)


def convert_schema(
    schema: Optional[Schema],
    registry: dict[str, Schema],
    *,
    description: Optional[str] = None,
) -> FlatProperty:
    """Convert one parameter schema into a flat property without flattening it.

    Used for path, query and header parameters, whose values are never
    split apart. A missing schema yields a plain ``string`` property.

    Args:
        schema: The parameter's schema, or ``None``.
        registry: Named schemas used to resolve references.
        description: The parameter's own description, used when the schema
            has none.
    """
    if schema is None:
        return StringProperty(description=description or DEFAULT_DESCRIPTION)
    return _convert(schema, registry, frozenset(), description=description)


def _follow(
    schema: Schema, registry: dict[str, Schema], visited: frozenset[str]
) -> tuple[Any, frozenset[str], dict[str, str]]:
    """Resolve *schema*'s own ``$ref`` and its composition members.

    Returns ``(resolved schema, visited names, origins)``. The first element
    is ``None`` for a dangling reference and ``_CYCLE`` when a reference
    re-enters a name already on the active path. *origins* maps each
    property contributed by a ``$ref`` member to that member's name; only
    those properties descend with the member on their path.
    """
    if schema.ref is not None:
        name = ref_name(schema.ref)
        if name is not None and name in visited:
            return _CYCLE, visited, {}
        target = resolve_reference(schema.ref, registry)
        if target is None:
            return None, visited, {}
        visited = visited | {name}
        schema = target

    origins = _member_origins(schema, registry)
    if _composition_refs(schema) & visited:
        return _CYCLE, visited, {}
    return resolve_composition(schema, registry), visited, origins


def _composition_members(schema: Schema) -> list[Schema]:
    return list(schema.all_of or []) + list(schema.any_of or []) + list(schema.one_of or [])[:1]


def _composition_refs(schema: Schema) -> frozenset[str]:
    names = {ref_name(m.ref) for m in _composition_members(schema) if m.ref is not None}
    names.discard(None)
    return frozenset(names)  # type: ignore[arg-type]


def _member_origins(schema: Schema, registry: dict[str, Schema]) -> dict[str, str]:
    """Map property names to the ``$ref`` member that supplies them, last one winning."""
    origins: dict[str, str] = {}
    for member in _composition_members(schema):
        if member.ref is None:
            for prop_name in member.properties or {}:
                origins.pop(prop_name, None)
            continue
        name = ref_name(member.ref)
        target = registry.get(name) if name is not None else None
        if target is None:
            continue
        for prop_name in target.properties or {}:
            origins[prop_name] = name
    return origins


def _child_path(visited: frozenset[str], origins: dict[str, str], prop_name: str) -> frozenset[str]:
    origin = origins.get(prop_name)
    return visited if origin is None else visited | {origin}


def _emit(
    key: str,
    schema: Schema,
    registry: dict[str, Schema],
    visited: frozenset[str],
    *,
    path: tuple[str, ...],
    required: bool,
    properties: dict[str, FlatProperty],
    required_names: list[str],
) -> None:
    """Add the property at *path* (flattening it when object-like) to *properties*."""
    target, guard, origins = _follow(schema, registry, visited)

    if isinstance(target, Schema) and target.is_object_like and target.properties:
        child_required = target.required or []
        for child_name, child in target.properties.items():
            _emit(
                f"{key}_{child_name}",
                child,
                registry,
                _child_path(guard, origins, child_name),
                path=path + (child_name,),
                required=required and child_name in child_required,
                properties=properties,
                required_names=required_names,
            )
        return

    if target is None:
        logger.warning("Dangling reference %s at '%s'; treating as string", schema.ref, ".".join(path))
        prop: FlatProperty = StringProperty(description=schema.description or DEFAULT_DESCRIPTION)
    elif target is _CYCLE:
        logger.debug("Cycle at '%s'; emitting an opaque object", ".".join(path))
        prop = ObjectProperty(description=schema.description or DEFAULT_DESCRIPTION)
    else:
        prop = _to_property(target, registry, guard, description=schema.description)

    if len(path) > 1:
        prop = prop.model_copy(
            update={
                "original_path": ".".join(path),
                "parent_object": path[0],
                "is_flattened": True,
            }
        )
    properties[key] = prop
    if required:
        required_names.append(key)


def _convert(
    schema: Schema,
    registry: dict[str, Schema],
    visited: frozenset[str],
    *,
    description: Optional[str] = None,
) -> FlatProperty:
    target, guard, _ = _follow(schema, registry, visited)
    fallback = schema.description or description or DEFAULT_DESCRIPTION
    if target is None:
        logger.warning("Dangling reference %s; treating as string", schema.ref)
        return StringProperty(description=fallback)
    if target is _CYCLE:
        return ObjectProperty(description=fallback)
    return _to_property(target, registry, guard, description=schema.description or description)


def _to_property(
    schema: Schema,
    registry: dict[str, Schema],
    visited: frozenset[str],
    *,
    description: Optional[str] = None,
) -> FlatProperty:
    """Build the kind-specific flat property for an already-resolved schema."""
    common: dict[str, Any] = {
        "description": schema.description or description or DEFAULT_DESCRIPTION,
        "default": schema.default,
        "nullable": True if schema.allows_null else None,
    }
    kind = schema.primary_type
    if kind is None and schema.is_object_like:
        kind = "object"

    if kind == "integer" or kind == "number":
        cls = IntegerProperty if kind == "integer" else NumberProperty
        return cls(
            **common,
            format=schema.format,
            enum=schema.enum,
            minimum=schema.minimum,
            maximum=schema.maximum,
            exclusive_minimum=schema.exclusive_minimum,
            exclusive_maximum=schema.exclusive_maximum,
            multiple_of=schema.multiple_of,
        )
    if kind == "boolean":
        return BooleanProperty(**common)
    if kind == "array":
        items = _convert(schema.items, registry, visited) if schema.items is not None else None
        return ArrayProperty(
            **common,
            items=items,
            min_items=schema.min_items,
            max_items=schema.max_items,
            unique_items=schema.unique_items,
        )
    if kind == "object":
        return ObjectProperty(**common)
    return StringProperty(
        **common,
        format=schema.format,
        enum=schema.enum,
        min_length=schema.min_length,
        max_length=schema.max_length,
        pattern=schema.pattern,
    )
