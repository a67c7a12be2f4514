"""Tests for specmcp.parser.resolver."""

from __future__ import annotations

from specmcp.models import ParsedApiSpec, Schema
from specmcp.parser.resolver import (
    ref_name,
    resolve_composition,
    resolve_reference,
    resolve_schema,
)


def _schema(data: dict) -> Schema:
    return Schema.model_validate(data)


# ---------------------------------------------------------------------------
# ref_name / resolve_reference
# ---------------------------------------------------------------------------


class TestRefName:
    """Registry pointer parsing."""

    def test_components_pointer(self) -> None:
        assert ref_name("#/components/schemas/Pet") == "Pet"

    def test_definitions_pointer(self) -> None:
        assert ref_name("#/definitions/Pet") == "Pet"

    def test_json_pointer_unescaping(self) -> None:
        assert ref_name("#/definitions/a~1b~0c") == "a/b~c"

    def test_unsupported_forms(self) -> None:
        assert ref_name("other.yaml#/Pet") is None
        assert ref_name("#/paths/~1pets") is None
        assert ref_name("#/components/schemas/") is None


class TestResolveReference:
    """Lookup never raises; dangling pointers resolve to None."""

    def test_resolves_registered_name(self, petstore_spec: ParsedApiSpec) -> None:
        schema = resolve_reference("#/components/schemas/Owner", petstore_spec.schemas)
        assert schema is petstore_spec.schemas["Owner"]

    def test_dangling_reference_is_none(self, petstore_spec: ParsedApiSpec) -> None:
        assert resolve_reference("#/components/schemas/Missing", petstore_spec.schemas) is None

    def test_external_reference_is_none(self, petstore_spec: ParsedApiSpec) -> None:
        assert resolve_reference("https://example.com/pet.json", petstore_spec.schemas) is None

    def test_resolve_schema_passes_plain_schema_through(self) -> None:
        plain = _schema({"type": "string"})
        assert resolve_schema(plain, {}) is plain

    def test_resolve_schema_follows_one_hop(self, petstore_spec: ParsedApiSpec) -> None:
        pointer = _schema({"$ref": "#/components/schemas/Address"})
        assert resolve_schema(pointer, petstore_spec.schemas) is petstore_spec.schemas["Address"]


# ---------------------------------------------------------------------------
# resolve_composition
# ---------------------------------------------------------------------------


class TestResolveComposition:
    """allOf/anyOf merging and the oneOf first-variant policy."""

    def test_identity_without_composition(self) -> None:
        plain = _schema({"type": "object", "properties": {"a": {"type": "string"}}})
        assert resolve_composition(plain, {}) is plain

    def test_all_of_merges_properties_and_required(self, composition_spec: ParsedApiSpec) -> None:
        item = resolve_composition(composition_spec.schemas["Item"], composition_spec.schemas)

        assert not item.has_composition
        assert item.type == "object"
        assert list(item.properties or {}) == ["id", "createdAt", "name", "price"]
        assert item.required == ["id", "name", "price"]

    def test_later_members_override_earlier(self, composition_spec: ParsedApiSpec) -> None:
        item = resolve_composition(composition_spec.schemas["Item"], composition_spec.schemas)
        assert item.properties is not None
        assert item.properties["id"].type == "integer"

    def test_required_union_deduplicates(self) -> None:
        schema = _schema({
            "required": ["a"],
            "properties": {"a": {"type": "string"}},
            "allOf": [
                {"required": ["a", "b"], "properties": {"b": {"type": "string"}}},
                {"required": ["b", "c"], "properties": {"c": {"type": "string"}}},
            ],
        })
        merged = resolve_composition(schema, {})
        assert merged.required == ["a", "b", "c"]

    def test_any_of_merged_after_all_of(self) -> None:
        schema = _schema({
            "allOf": [{"properties": {"x": {"type": "string"}}}],
            "anyOf": [{"properties": {"x": {"type": "boolean"}, "y": {"type": "string"}}}],
        })
        merged = resolve_composition(schema, {})
        assert merged.properties is not None
        assert merged.properties["x"].type == "boolean"
        assert list(merged.properties) == ["x", "y"]

    def test_one_of_uses_first_variant(self, composition_spec: ParsedApiSpec) -> None:
        choice = resolve_composition(composition_spec.schemas["Choice"], composition_spec.schemas)
        assert list(choice.properties or {}) == ["number"]
        assert choice.required == ["number"]
        assert choice.type == "object"

    def test_dangling_member_skipped(self) -> None:
        schema = _schema({
            "allOf": [
                {"$ref": "#/components/schemas/Nowhere"},
                {"properties": {"kept": {"type": "string"}}},
            ]
        })
        merged = resolve_composition(schema, {})
        assert list(merged.properties or {}) == ["kept"]

    def test_input_not_mutated(self, composition_spec: ParsedApiSpec) -> None:
        item = composition_spec.schemas["Item"]
        resolve_composition(item, composition_spec.schemas)
        assert item.all_of is not None
        assert len(item.all_of) == 3
