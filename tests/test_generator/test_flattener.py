"""Tests for specmcp.generator.flattener."""

from __future__ import annotations

import logging

import pytest

from specmcp.generator.flattener import (
    DEFAULT_DESCRIPTION,
    convert_schema,
    extract_schema_properties,
)
from specmcp.models import (
    ArrayProperty,
    BooleanProperty,
    IntegerProperty,
    NumberProperty,
    ObjectProperty,
    ParsedApiSpec,
    Schema,
    StringProperty,
)


def _schema(data: dict) -> Schema:
    return Schema.model_validate(data)


def _ref(name: str) -> Schema:
    return _schema({"$ref": f"#/components/schemas/{name}"})


# ---------------------------------------------------------------------------
# extract_schema_properties
# ---------------------------------------------------------------------------


class TestFlatSchemas:
    """A schema without nested objects flattens to its direct properties."""

    def test_flat_schema_equals_direct_properties(self) -> None:
        schema = _schema({
            "type": "object",
            "required": ["a"],
            "properties": {
                "a": {"type": "string"},
                "b": {"type": "integer"},
                "c": {"type": "array", "items": {"type": "string"}},
            },
        })
        result = extract_schema_properties(schema, {})

        assert list(result.properties) == ["a", "b", "c"]
        assert result.required == ["a"]
        for prop in result.properties.values():
            assert prop.original_path is None
            assert prop.parent_object is None
            assert prop.is_flattened is None

    def test_empty_object_property_kept_opaque(self) -> None:
        schema = _schema({"type": "object", "properties": {"meta": {"type": "object"}}})
        result = extract_schema_properties(schema, {})
        assert isinstance(result.properties["meta"], ObjectProperty)

    def test_dangling_root_yields_nothing(self) -> None:
        result = extract_schema_properties(_ref("Missing"), {})
        assert result.properties == {}
        assert result.required == []


class TestNestedFlattening:
    """Nested objects become parent_child properties with reconstruction metadata."""

    def test_pet_owner_flattening(self, petstore_spec: ParsedApiSpec) -> None:
        result = extract_schema_properties(_ref("Pet"), petstore_spec.schemas)

        assert list(result.properties) == [
            "id",
            "name",
            "tag",
            "owner_name",
            "owner_email",
            "owner_address_city",
            "owner_address_zip",
            "photoUrls",
        ]
        owner_name = result.properties["owner_name"]
        assert isinstance(owner_name, StringProperty)
        assert owner_name.original_path == "owner.name"
        assert owner_name.parent_object == "owner"
        assert owner_name.is_flattened is True
        assert owner_name.description == "Owner's full name"

    def test_deep_original_path(self, petstore_spec: ParsedApiSpec) -> None:
        result = extract_schema_properties(_ref("Pet"), petstore_spec.schemas)
        city = result.properties["owner_address_city"]
        assert city.original_path == "owner.address.city"
        assert city.parent_object == "owner"

    def test_original_path_starts_with_parent_object(self, petstore_spec: ParsedApiSpec) -> None:
        result = extract_schema_properties(_ref("Pet"), petstore_spec.schemas)
        for prop in result.properties.values():
            if prop.original_path is not None:
                assert prop.original_path.split(".")[0] == prop.parent_object

    def test_required_only_through_required_ancestors(self, petstore_spec: ParsedApiSpec) -> None:
        result = extract_schema_properties(_ref("Pet"), petstore_spec.schemas)
        # Pet requires name and owner; Owner requires name; Address requires nothing.
        assert result.required == ["name", "owner_name"]

    def test_property_kinds_and_facets(self, petstore_spec: ParsedApiSpec) -> None:
        props = extract_schema_properties(_ref("Pet"), petstore_spec.schemas).properties

        assert isinstance(props["id"], IntegerProperty)
        assert props["id"].format == "int64"
        assert isinstance(props["tag"], StringProperty)
        assert props["tag"].nullable is True
        assert props["name"].nullable is None
        photos = props["photoUrls"]
        assert isinstance(photos, ArrayProperty)
        assert isinstance(photos.items, StringProperty)
        assert photos.items.format == "uri"

    def test_defaults_description(self, petstore_spec: ParsedApiSpec) -> None:
        props = extract_schema_properties(_ref("Pet"), petstore_spec.schemas).properties
        assert props["owner_email"].description == DEFAULT_DESCRIPTION


class TestCompositionFlattening:
    """Composition and references inside bodies."""

    def test_all_of_body(self, composition_spec: ParsedApiSpec) -> None:
        result = extract_schema_properties(_ref("Item"), composition_spec.schemas)
        assert list(result.properties) == ["id", "createdAt", "name", "price"]
        assert result.required == ["id", "name", "price"]
        assert isinstance(result.properties["id"], IntegerProperty)

    def test_type_list_with_null(self, composition_spec: ParsedApiSpec) -> None:
        price = extract_schema_properties(_ref("Item"), composition_spec.schemas).properties["price"]
        assert isinstance(price, NumberProperty)
        assert price.nullable is True

    def test_one_of_body_uses_first_variant(self, composition_spec: ParsedApiSpec) -> None:
        result = extract_schema_properties(_ref("Choice"), composition_spec.schemas)
        assert list(result.properties) == ["number"]
        assert result.required == ["number"]


class TestCyclesAndDanglingRefs:
    """Self-referencing schemas terminate; dangling refs degrade to strings."""

    def test_self_reference_becomes_opaque_object(self, composition_spec: ParsedApiSpec) -> None:
        result = extract_schema_properties(_ref("Node"), composition_spec.schemas)

        assert list(result.properties) == ["value", "next", "children"]
        assert isinstance(result.properties["next"], ObjectProperty)
        children = result.properties["children"]
        assert isinstance(children, ArrayProperty)
        assert isinstance(children.items, ObjectProperty)

    def test_mutual_recursion_terminates(self) -> None:
        registry = {
            "A": _schema({"type": "object", "properties": {"b": {"$ref": "#/components/schemas/B"}, "x": {"type": "string"}}}),
            "B": _schema({"type": "object", "properties": {"a": {"$ref": "#/components/schemas/A"}, "y": {"type": "string"}}}),
        }
        result = extract_schema_properties(_ref("A"), registry)
        assert list(result.properties) == ["b_a", "b_y", "x"]
        assert isinstance(result.properties["b_a"], ObjectProperty)
        assert result.properties["b_a"].original_path == "b.a"

    def test_cycle_through_all_of_terminates(self) -> None:
        registry = {
            "Tree": _schema({
                "allOf": [{"$ref": "#/components/schemas/Leaf"}],
                "properties": {"child": {"$ref": "#/components/schemas/Tree"}},
            }),
            "Leaf": _schema({"type": "object", "properties": {"label": {"type": "string"}}}),
        }
        result = extract_schema_properties(_ref("Tree"), registry)
        assert isinstance(result.properties["child"], ObjectProperty)
        assert isinstance(result.properties["label"], StringProperty)

    def test_shared_base_is_not_a_cycle(self) -> None:
        registry = {
            "Entity": _schema({"type": "object", "properties": {"id": {"type": "string"}}}),
            "User": _schema({
                "allOf": [
                    {"$ref": "#/components/schemas/Entity"},
                    {"type": "object", "properties": {"email": {"type": "string"}}},
                ],
            }),
            "Order": _schema({
                "allOf": [
                    {"$ref": "#/components/schemas/Entity"},
                    {"type": "object", "properties": {"createdBy": {"$ref": "#/components/schemas/User"}}},
                ],
            }),
        }
        result = extract_schema_properties(_ref("Order"), registry)

        assert list(result.properties) == ["id", "createdBy_id", "createdBy_email"]
        assert result.properties["createdBy_email"].original_path == "createdBy.email"
        assert result.properties["createdBy_email"].parent_object == "createdBy"

    def test_extending_and_referencing_same_base(self) -> None:
        registry = {
            "Entity": _schema({"type": "object", "properties": {"id": {"type": "string"}}}),
            "Pet": _schema({
                "allOf": [{"$ref": "#/components/schemas/Entity"}],
                "properties": {"parent": {"$ref": "#/components/schemas/Entity"}},
            }),
        }
        result = extract_schema_properties(_ref("Pet"), registry)

        assert list(result.properties) == ["parent_id", "id"]
        assert isinstance(result.properties["parent_id"], StringProperty)
        assert result.properties["parent_id"].is_flattened

    def test_member_pointing_back_on_path_is_a_cycle(self) -> None:
        registry = {
            "Node": _schema({
                "type": "object",
                "properties": {
                    "label": {"type": "string"},
                    "wrapped": {"allOf": [{"$ref": "#/components/schemas/Node"}]},
                },
            }),
        }
        result = extract_schema_properties(_ref("Node"), registry)

        assert list(result.properties) == ["label", "wrapped"]
        assert isinstance(result.properties["wrapped"], ObjectProperty)

    def test_recursive_member_of_inline_body_terminates(self) -> None:
        registry = {
            "Wrapper": _schema({
                "type": "object",
                "properties": {
                    "inner": {"allOf": [{"$ref": "#/components/schemas/Wrapper"}]},
                    "tag": {"type": "string"},
                },
            }),
        }
        body = _schema({"allOf": [{"$ref": "#/components/schemas/Wrapper"}]})
        result = extract_schema_properties(body, registry)

        assert list(result.properties) == ["inner", "tag"]
        assert isinstance(result.properties["inner"], ObjectProperty)

    def test_dangling_reference_becomes_string(
        self, composition_spec: ParsedApiSpec, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="specmcp"):
            result = extract_schema_properties(_ref("Broken"), composition_spec.schemas)

        assert list(result.properties) == ["ghost", "name"]
        assert isinstance(result.properties["ghost"], StringProperty)
        assert "Dangling reference" in caplog.text


# ---------------------------------------------------------------------------
# convert_schema
# ---------------------------------------------------------------------------


class TestConvertSchema:
    """Single-parameter conversion without flattening."""

    def test_missing_schema_is_string(self) -> None:
        prop = convert_schema(None, {}, description="A header")
        assert isinstance(prop, StringProperty)
        assert prop.description == "A header"

    def test_parameter_description_used_when_schema_has_none(self) -> None:
        prop = convert_schema(_schema({"type": "integer", "minimum": 1}), {}, description="Page size")
        assert isinstance(prop, IntegerProperty)
        assert prop.description == "Page size"
        assert prop.minimum == 1

    def test_object_parameter_not_flattened(self, petstore_spec: ParsedApiSpec) -> None:
        prop = convert_schema(_ref("Owner"), petstore_spec.schemas)
        assert isinstance(prop, ObjectProperty)

    def test_boolean_and_enum(self) -> None:
        assert isinstance(convert_schema(_schema({"type": "boolean"}), {}), BooleanProperty)
        status = convert_schema(_schema({"type": "string", "enum": ["a", "b"]}), {})
        assert isinstance(status, StringProperty)
        assert status.enum == ["a", "b"]

    def test_unknown_type_is_string(self) -> None:
        assert isinstance(convert_schema(_schema({"type": "file"}), {}), StringProperty)

    def test_dangling_parameter_ref_is_string(self) -> None:
        assert isinstance(convert_schema(_ref("Missing"), {}), StringProperty)
