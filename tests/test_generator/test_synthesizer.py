"""Tests for specmcp.generator.synthesizer."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import patch

import pytest

from specmcp.exceptions import SynthesisError
from specmcp.models import (
    ApiEndpoint,
    ApiKeyAuth,
    BasicAuth,
    BearerAuth,
    HTTPMethod,
    IntegerProperty,
    OAuth2Auth,
    ParsedApiSpec,
)
from specmcp.generator.synthesizer import (
    build_authentication,
    is_authentication_endpoint,
    synthesize_tool,
    synthesize_tools,
)
from specmcp.parser.normalizer import normalize


def _by_name(tools: list, name: str):
    return next(tool for tool in tools if tool.name == name)


def _spec_with_scheme(scheme: dict[str, Any], **operation: Any) -> ParsedApiSpec:
    return normalize({
        "openapi": "3.0.0",
        "info": {"title": "T", "version": "1"},
        "paths": {"/things": {"get": {
            "operationId": "listThings",
            "responses": {"200": {"description": "ok"}},
            **operation,
        }}},
        "components": {"securitySchemes": {"s": scheme}},
        "security": [{"s": []}],
    })


# ---------------------------------------------------------------------------
# synthesize_tools
# ---------------------------------------------------------------------------


class TestSynthesizeTools:
    """Whole-document synthesis."""

    def test_petstore_tool_names(self, petstore_spec: ParsedApiSpec) -> None:
        tools = synthesize_tools(petstore_spec)
        assert [t.name for t in tools] == ["list_pets", "create_pet", "get_pet_by_id", "delete_pet"]

    def test_get_pet_by_id_descriptor(self, petstore_spec: ParsedApiSpec) -> None:
        tool = _by_name(synthesize_tools(petstore_spec), "get_pet_by_id")

        assert tool.description == "Returns a single pet"
        assert tool.method == "GET"
        assert tool.path == "/pets/{petId}"
        assert tool.base_url == "https://petstore.example.com/v1"

        pet_id = tool.input_schema.properties["petId"]
        assert isinstance(pet_id, IntegerProperty)
        assert pet_id.format == "int64"
        assert pet_id.is_path_param is True
        assert pet_id.description == "The id of the pet to retrieve"
        assert "petId" in tool.input_schema.required

        assert isinstance(tool.authentication, ApiKeyAuth)
        assert tool.authentication.location == "header"
        assert tool.authentication.name == "X-API-Key"
        assert tool.authentication.env_variable == "API_KEY_API_KEY"

    def test_signature_header_not_exposed(self, petstore_spec: ParsedApiSpec) -> None:
        tool = _by_name(synthesize_tools(petstore_spec), "get_pet_by_id")
        assert list(tool.input_schema.properties) == ["petId", "X-Trace-Id"]
        assert tool.input_schema.properties["X-Trace-Id"].is_header_param is True

    def test_query_parameters(self, petstore_spec: ParsedApiSpec) -> None:
        tool = _by_name(synthesize_tools(petstore_spec), "list_pets")
        limit = tool.input_schema.properties["limit"]
        assert limit.is_query_param is True
        assert limit.maximum == 100
        assert tool.input_schema.required == []

    def test_flattened_body(self, petstore_spec: ParsedApiSpec) -> None:
        tool = _by_name(synthesize_tools(petstore_spec), "create_pet")
        schema = tool.input_schema

        assert list(schema.properties) == [
            "id",
            "name",
            "tag",
            "owner_name",
            "owner_email",
            "owner_address_city",
            "owner_address_zip",
            "photoUrls",
        ]
        assert schema.required == ["name", "owner_name"]
        assert all(prop.is_body_param for prop in schema.properties.values())
        assert schema.properties["owner_name"].original_path == "owner.name"

    def test_explicit_empty_security_means_public(self, petstore_spec: ParsedApiSpec) -> None:
        tool = _by_name(synthesize_tools(petstore_spec), "delete_pet")
        assert tool.authentication is None

    def test_login_endpoint_skipped(
        self, petstore_spec: ParsedApiSpec, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="specmcp"):
            tools = synthesize_tools(petstore_spec)
        assert all(t.path != "/auth/login" for t in tools)
        assert "Skipping authentication endpoint POST /auth/login" in caplog.text

    def test_base_url_override(self, petstore_spec: ParsedApiSpec) -> None:
        tools = synthesize_tools(petstore_spec, base_url="http://localhost:8080")
        assert {t.base_url for t in tools} == {"http://localhost:8080"}

    def test_empty_base_url_omitted(self, petstore_spec: ParsedApiSpec) -> None:
        tool = synthesize_tools(petstore_spec, base_url="")[0]
        assert tool.base_url is None
        assert "baseUrl" not in tool.to_dict()

    def test_to_dict_is_camel_case(self, petstore_spec: ParsedApiSpec) -> None:
        data = _by_name(synthesize_tools(petstore_spec), "get_pet_by_id").to_dict()
        assert data["inputSchema"]["type"] == "object"
        assert data["inputSchema"]["properties"]["petId"]["isPathParam"] is True
        assert data["authentication"]["envVariable"] == "API_KEY_API_KEY"
        assert data["responseHandling"] == {"successCodes": [200, 201, 204], "responseType": "json"}
        assert data["errorHandling"]["retryCount"] == 3
        assert data["errorHandling"]["timeoutMs"] == 30000

    def test_synthesis_error_drops_only_that_tool(
        self, petstore_spec: ParsedApiSpec, caplog: pytest.LogCaptureFixture
    ) -> None:
        real = synthesize_tool

        def flaky(endpoint, spec, **kwargs):
            if endpoint.operation_id == "listPets":
                raise SynthesisError("boom", method="GET", path="/pets")
            return real(endpoint, spec, **kwargs)

        with patch("specmcp.generator.synthesizer.synthesize_tool", side_effect=flaky):
            with caplog.at_level(logging.WARNING, logger="specmcp"):
                tools = synthesize_tools(petstore_spec)

        assert [t.name for t in tools] == ["create_pet", "get_pet_by_id", "delete_pet"]
        assert "Dropping tool for GET /pets" in caplog.text


class TestSwaggerSynthesis:
    """Swagger 2.0 documents."""

    def test_tool_names(self, swagger_spec: ParsedApiSpec) -> None:
        assert [t.name for t in synthesize_tools(swagger_spec)] == [
            "add_pet",
            "find_pets_by_status",
            "get_pet_by_id",
            "update_pet_with_form",
        ]

    def test_body_parameter_flattened(self, swagger_spec: ParsedApiSpec) -> None:
        tool = _by_name(synthesize_tools(swagger_spec), "add_pet")
        assert list(tool.input_schema.properties) == ["id", "name", "category_id", "category_name", "status"]
        assert tool.input_schema.required == ["name"]
        assert tool.base_url == "https://petstore.swagger.io/v2"

    def test_oauth2_authentication(self, swagger_spec: ParsedApiSpec) -> None:
        tool = _by_name(synthesize_tools(swagger_spec), "add_pet")
        assert isinstance(tool.authentication, OAuth2Auth)
        assert tool.authentication.env_variable == "PETSTORE_AUTH_ACCESS_TOKEN"

    def test_api_key_authentication(self, swagger_spec: ParsedApiSpec) -> None:
        tool = _by_name(synthesize_tools(swagger_spec), "get_pet_by_id")
        assert isinstance(tool.authentication, ApiKeyAuth)
        assert tool.authentication.name == "api_key"

    def test_form_data_not_exposed(self, swagger_spec: ParsedApiSpec) -> None:
        tool = _by_name(synthesize_tools(swagger_spec), "update_pet_with_form")
        assert list(tool.input_schema.properties) == ["petId"]
        assert tool.input_schema.required == ["petId"]


class TestCompositionSynthesis:
    """Bodies built from composed and recursive schemas."""

    def test_all_of_body_required(self, composition_spec: ParsedApiSpec) -> None:
        tool = _by_name(synthesize_tools(composition_spec), "create_item")
        assert tool.input_schema.required == ["id", "name", "price"]
        assert tool.input_schema.properties["price"].nullable is True

    def test_optional_body_contributes_no_required(self, composition_spec: ParsedApiSpec) -> None:
        tool = _by_name(synthesize_tools(composition_spec), "create_node")
        assert tool.input_schema.required == []
        assert tool.authentication is None


# ---------------------------------------------------------------------------
# Authentication endpoints and mapping
# ---------------------------------------------------------------------------


class TestIsAuthenticationEndpoint:
    """Login and token endpoint detection."""

    @pytest.mark.parametrize(
        ("path", "operation_id", "summary"),
        [
            ("/auth/login", None, None),
            ("/oauth/token", None, None),
            ("/sessions", "createAccessToken", None),
            ("/sessions", None, "Obtain an access token"),
            ("/v1/LOGIN", None, None),
        ],
    )
    def test_detected(self, path: str, operation_id: str | None, summary: str | None) -> None:
        endpoint = ApiEndpoint(
            path=path, method=HTTPMethod.POST, operation_id=operation_id, summary=summary
        )
        assert is_authentication_endpoint(endpoint)

    def test_regular_endpoint(self) -> None:
        endpoint = ApiEndpoint(
            path="/pets", method=HTTPMethod.GET, operation_id="listPets", summary="List all pets"
        )
        assert not is_authentication_endpoint(endpoint)

    def test_description_checked_before_summary(self) -> None:
        endpoint = ApiEndpoint(
            path="/pets",
            method=HTTPMethod.GET,
            summary="login",
            description="List all pets",
        )
        assert not is_authentication_endpoint(endpoint)


class TestBuildAuthentication:
    """Mapping security schemes onto credential descriptors."""

    def test_bearer(self) -> None:
        spec = _spec_with_scheme({"type": "http", "scheme": "bearer"})
        auth = build_authentication(spec.endpoints[0], spec)
        assert isinstance(auth, BearerAuth)
        assert auth.env_variable == "S_TOKEN"

    def test_basic(self) -> None:
        spec = _spec_with_scheme({"type": "http", "scheme": "Basic"})
        auth = build_authentication(spec.endpoints[0], spec)
        assert isinstance(auth, BasicAuth)
        assert auth.env_variable == "S_CREDENTIALS"

    def test_api_key_in_query(self) -> None:
        spec = _spec_with_scheme({"type": "apiKey", "in": "query", "name": "key"})
        auth = build_authentication(spec.endpoints[0], spec)
        assert isinstance(auth, ApiKeyAuth)
        assert auth.location == "query"
        assert auth.name == "key"

    def test_unmapped_scheme_type(self) -> None:
        spec = _spec_with_scheme({"type": "openIdConnect", "openIdConnectUrl": "https://id.example.com"})
        assert build_authentication(spec.endpoints[0], spec) is None

    def test_operation_security_overrides_global(self) -> None:
        spec = _spec_with_scheme({"type": "http", "scheme": "bearer"}, security=[])
        assert build_authentication(spec.endpoints[0], spec) is None

    def test_undefined_scheme(self, caplog: pytest.LogCaptureFixture) -> None:
        spec = _spec_with_scheme({"type": "http", "scheme": "bearer"}, security=[{"ghost": []}])
        with caplog.at_level(logging.WARNING, logger="specmcp"):
            assert build_authentication(spec.endpoints[0], spec) is None
        assert "undefined scheme 'ghost'" in caplog.text
