"""Canonical Pydantic models shared across all specmcp modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- loaded from ``specmcp.json`` or a batch file:
    :class:`MergeStrategy`, :class:`GeneratorConfig`, :class:`SpecSource`
    and :class:`BatchConfig`.

**Normalizer output models** -- the version-agnostic view of one OpenAPI 3.x
or Swagger 2.0 document:
    :class:`HTTPMethod`, :class:`ParameterLocation`, :class:`Schema`,
    :class:`Parameter`, :class:`RequestBody`, :class:`SecurityScheme`,
    :class:`ApiEndpoint`, :class:`ApiInfo`, :class:`ServerInfo` and
    :class:`ParsedApiSpec`.

**Tool descriptor models** -- what the synthesizer hands to the renderer:
    the :data:`FlatProperty` variant, :class:`InputSchema`, the
    :data:`AuthenticationSpec` variant, :class:`ResponseHandlingSpec`,
    :class:`ErrorHandlingSpec`, :class:`McpToolSpec`,
    :class:`ValidationResult`, :class:`GenerationResult` and
    :class:`BatchResult`.

Normalizer output is frozen: once a document has been normalized nothing
downstream may change it. Descriptor models serialise with camelCase aliases
(``inputSchema``, ``isPathParam``, ``originalPath``) because that is the
shape code generators consume.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# --- Configuration ---


class MergeStrategy(str, enum.Enum):
    """How tool lists from several documents are combined in a batch run.

    ``NAMESPACE`` prefixes every tool name with the document's slug so two
    documents can expose ``list_users`` side by side. ``COMBINE`` concatenates
    the lists unchanged; colliding names are reported but kept.
    """

    NAMESPACE = "namespace"
    COMBINE = "combine"


class GeneratorConfig(BaseModel):
    """Effective generator settings after precedence resolution.

    See :func:`~specmcp.config.resolve_config` for how CLI flags, environment
    variables and ``./specmcp.json`` are layered on top of these defaults.
    """

    server_name: Optional[str] = Field(
        default=None, description="Name of the generated server (defaults to info.title)"
    )
    base_url: Optional[str] = Field(
        default=None, description="Override the base URL derived from the document"
    )
    enhance_descriptions: bool = Field(
        default=False, description="Run the rule-based description enhancer"
    )
    template_dir: Optional[str] = Field(
        default=None, description="Directory with custom Jinja2 templates"
    )
    merge_path_parameters: bool = Field(
        default=False, description="Merge path-level parameters into each operation"
    )
    strict: bool = Field(
        default=False, description="Abort when the validation report has errors"
    )
    max_workers: int = Field(default=4, ge=1, description="Batch worker pool size")
    merge_strategy: MergeStrategy = MergeStrategy.NAMESPACE


class SpecSource(BaseModel):
    """One entry of a batch file: where a document lives and what to call it."""

    input: str = Field(description="URL, file path, or '-' for stdin")
    name: Optional[str] = Field(
        default=None, description="Namespace used when merging tool names"
    )
    enabled: bool = True


class BatchConfig(BaseModel):
    """A batch file listing several documents to merge into one server.

    Accepts the ``specs`` key, and ``specifications`` for files written for
    older releases.
    """

    model_config = ConfigDict(populate_by_name=True)

    specs: list[SpecSource] = Field(default_factory=list, alias="specifications")
    output: Optional[str] = None
    server_name: Optional[str] = Field(default=None, alias="serverName")
    merge_strategy: MergeStrategy = Field(
        default=MergeStrategy.NAMESPACE, alias="mergeStrategy"
    )

    @model_validator(mode="before")
    @classmethod
    def _accept_specs_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and "specs" in data and "specifications" not in data:
            data = dict(data)
            data["specifications"] = data.pop("specs")
        if isinstance(data, dict) and isinstance(data.get("specifications"), list):
            data = dict(data)
            data["specifications"] = [
                {"input": item} if isinstance(item, str) else item
                for item in data["specifications"]
            ]
        return data


# --- Normalizer output ---


class HTTPMethod(str, enum.Enum):
    """The seven HTTP methods recognised under an OpenAPI path item."""

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"


class ParameterLocation(str, enum.Enum):
    """Locations where a parameter can appear, per the ``in`` field.

    ``body`` and ``formData`` only occur in Swagger 2.0 documents.
    """

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"
    BODY = "body"
    FORM_DATA = "formData"


class Schema(BaseModel):
    """A JSON Schema node as it appears in an OpenAPI document.

    Schemas form a directed, possibly cyclic graph through ``$ref`` and the
    composition lists. Keys this model does not name (``xml``,
    ``discriminator``, vendor extensions) are preserved as extras.
    """

    model_config = ConfigDict(
        extra="allow",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    ref: Optional[str] = Field(default=None, alias="$ref")
    type: Optional[Union[str, list[str]]] = None
    format: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    properties: Optional[dict[str, Schema]] = None
    items: Optional[Schema] = None
    required: Optional[list[str]] = None
    enum: Optional[list[Any]] = None
    all_of: Optional[list[Schema]] = None
    one_of: Optional[list[Schema]] = None
    any_of: Optional[list[Schema]] = None
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    exclusive_minimum: Optional[Union[bool, int, float]] = None
    exclusive_maximum: Optional[Union[bool, int, float]] = None
    multiple_of: Optional[Union[int, float]] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    unique_items: Optional[bool] = None
    default: Any = None
    example: Any = None
    nullable: Optional[bool] = None
    read_only: Optional[bool] = None
    write_only: Optional[bool] = None
    deprecated: Optional[bool] = None
    additional_properties: Optional[Union[bool, Schema]] = None

    @model_validator(mode="before")
    @classmethod
    def _coerce_loose_shapes(cls, data: Any) -> Any:
        """Drop shapes real-world documents get wrong instead of rejecting the node."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "required" in data and not isinstance(data["required"], list):
            # Swagger 2.0 authors often write ``required: true`` on a property.
            data.pop("required")
        props = data.get("properties")
        if props is not None:
            if isinstance(props, dict):
                data["properties"] = {
                    str(k): v for k, v in props.items() if isinstance(v, dict)
                }
            else:
                data.pop("properties")
        items = data.get("items")
        if isinstance(items, list):
            # Tuple-style items: keep the first shape.
            data["items"] = items[0] if items and isinstance(items[0], dict) else None
        for key in ("allOf", "oneOf", "anyOf"):
            members = data.get(key)
            if members is not None:
                if isinstance(members, list):
                    data[key] = [m for m in members if isinstance(m, dict)]
                else:
                    data.pop(key)
        if "enum" in data and not isinstance(data["enum"], list):
            data.pop("enum")
        return data

    @property
    def primary_type(self) -> Optional[str]:
        """The declared type, taking the first non-null entry of a 3.1 type list."""
        if isinstance(self.type, list):
            non_null = [t for t in self.type if t != "null"]
            return non_null[0] if non_null else None
        return self.type

    @property
    def allows_null(self) -> bool:
        """Whether the schema admits ``null`` (3.0 ``nullable`` or 3.1 type list)."""
        if self.nullable:
            return True
        return isinstance(self.type, list) and "null" in self.type

    @property
    def has_composition(self) -> bool:
        return bool(self.all_of or self.one_of or self.any_of)

    @property
    def is_object_like(self) -> bool:
        """``type: object``, or no type at all but declared properties."""
        ptype = self.primary_type
        return ptype == "object" or (ptype is None and bool(self.properties))

    def to_dict(self) -> dict[str, Any]:
        """Serialise back to OpenAPI's camelCase shape, dropping unset keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Parameter(BaseModel):
    """A single operation parameter.

    Swagger 2.0 non-body parameters declare ``type``/``format``/``enum``
    inline; the normalizer folds those into :attr:`schema_` so every
    parameter looks the same downstream.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    location: ParameterLocation = Field(alias="in")
    required: bool = False
    description: Optional[str] = None
    schema_: Optional[Schema] = Field(default=None, alias="schema")


class MediaTypeObject(BaseModel):
    """One entry of a request body's ``content`` map."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_: Optional[Schema] = Field(default=None, alias="schema")


class RequestBody(BaseModel):
    """An OpenAPI 3.x *Request Body Object*."""

    model_config = ConfigDict(frozen=True)

    description: Optional[str] = None
    content: dict[str, MediaTypeObject] = Field(default_factory=dict)
    required: bool = False


class SecurityScheme(BaseModel):
    """A security scheme from ``components.securitySchemes`` or ``securityDefinitions``.

    The ``type`` field discriminates between ``apiKey``, ``http``, ``oauth2``
    and ``openIdConnect`` (plus Swagger 2.0's ``basic``). Only the fields
    relevant to the active type are populated.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    description: Optional[str] = None
    # apiKey
    param_name: Optional[str] = None
    location: Optional[str] = None  # header, query, cookie
    # http
    scheme: Optional[str] = None  # bearer, basic
    bearer_format: Optional[str] = None
    # oauth2
    flows: Optional[dict[str, Any]] = None
    # openIdConnect
    openid_connect_url: Optional[str] = None


SecurityRequirement = dict[str, list[str]]


class ApiEndpoint(BaseModel):
    """One (HTTP method, path) operation extracted from the document.

    ``security`` is ``None`` when the operation declares nothing (inherit the
    document's global requirements) and ``[]`` when it explicitly opts out.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    method: HTTPMethod
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    parameters: list[Parameter] = Field(default_factory=list)
    request_body: Optional[RequestBody] = None
    responses: dict[str, Any] = Field(default_factory=dict)
    security: Optional[list[SecurityRequirement]] = None

    @property
    def key(self) -> str:
        """``"GET /pets/{id}"`` -- the label used in logs and reports."""
        return f"{self.method.value.upper()} {self.path}"


class ApiInfo(BaseModel):
    """API metadata from the document's *Info Object*."""

    model_config = ConfigDict(frozen=True)

    title: str
    version: str
    description: Optional[str] = None


class ServerInfo(BaseModel):
    """A server entry from the OpenAPI 3.x ``servers`` array."""

    model_config = ConfigDict(frozen=True)

    url: str
    description: Optional[str] = None


class ParsedApiSpec(BaseModel):
    """Version-agnostic representation of one OpenAPI 3.x or Swagger 2.0 document.

    Produced by :func:`~specmcp.parser.normalize` and consumed by the
    synthesizer. ``schemas`` is the schema registry every ``$ref`` is
    resolved against; ``host``/``base_path``/``schemes`` are only set for
    Swagger 2.0 documents and feed :func:`~specmcp.parser.get_base_url`.
    """

    model_config = ConfigDict(frozen=True)

    info: ApiInfo
    servers: list[ServerInfo] = Field(default_factory=list)
    endpoints: list[ApiEndpoint] = Field(default_factory=list)
    schemas: dict[str, Schema] = Field(default_factory=dict)
    security_schemes: dict[str, SecurityScheme] = Field(default_factory=dict)
    global_security: Optional[list[SecurityRequirement]] = None
    spec_version: str = Field(
        description="Declared 'openapi' or 'swagger' version string (e.g. '3.0.3', '2.0')"
    )
    host: Optional[str] = None
    base_path: Optional[str] = None
    schemes: list[str] = Field(default_factory=list)

    @property
    def is_swagger2(self) -> bool:
        return self.spec_version.startswith("2")


# --- Tool descriptors ---


class _DescriptorModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class _PropertyBase(_DescriptorModel):
    """Fields shared by every kind of flat input property.

    On a top-level input property exactly one of the four ``is_*_param``
    flags is ``True``; the others stay unset. ``original_path`` and
    ``parent_object`` are only present on properties produced by
    flattening a nested object.
    """

    description: str = "Parameter value"
    default: Any = None
    nullable: Optional[bool] = None
    is_path_param: Optional[bool] = None
    is_query_param: Optional[bool] = None
    is_header_param: Optional[bool] = None
    is_body_param: Optional[bool] = None
    is_flattened: Optional[bool] = None
    original_path: Optional[str] = None
    parent_object: Optional[str] = None

    @property
    def location(self) -> Optional[str]:
        """Which location flag is set: ``path``, ``query``, ``header`` or ``body``."""
        for loc in ("path", "query", "header", "body"):
            if getattr(self, f"is_{loc}_param"):
                return loc
        return None


class StringProperty(_PropertyBase):
    type: Literal["string"] = "string"
    format: Optional[str] = None
    enum: Optional[list[Any]] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None


class IntegerProperty(_PropertyBase):
    type: Literal["integer"] = "integer"
    format: Optional[str] = None
    enum: Optional[list[Any]] = None
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    exclusive_minimum: Optional[Union[bool, int, float]] = None
    exclusive_maximum: Optional[Union[bool, int, float]] = None
    multiple_of: Optional[Union[int, float]] = None


class NumberProperty(_PropertyBase):
    type: Literal["number"] = "number"
    format: Optional[str] = None
    enum: Optional[list[Any]] = None
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    exclusive_minimum: Optional[Union[bool, int, float]] = None
    exclusive_maximum: Optional[Union[bool, int, float]] = None
    multiple_of: Optional[Union[int, float]] = None


class BooleanProperty(_PropertyBase):
    type: Literal["boolean"] = "boolean"


class ArrayProperty(_PropertyBase):
    type: Literal["array"] = "array"
    items: Optional[FlatProperty] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    unique_items: Optional[bool] = None


class ObjectProperty(_PropertyBase):
    """An opaque JSON object: empty objects, free-form maps, and cycle cut points."""

    type: Literal["object"] = "object"


FlatProperty = Annotated[
    Union[
        StringProperty,
        IntegerProperty,
        NumberProperty,
        BooleanProperty,
        ArrayProperty,
        ObjectProperty,
    ],
    Field(discriminator="type"),
]

ArrayProperty.model_rebuild()


class InputSchema(_DescriptorModel):
    """The flat parameter set a tool accepts."""

    type: Literal["object"] = "object"
    properties: dict[str, FlatProperty] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class ApiKeyAuth(_DescriptorModel):
    type: Literal["apiKey"] = "apiKey"
    location: Literal["header", "query", "cookie"] = "header"
    name: str = "apikey"
    env_variable: str


class BearerAuth(_DescriptorModel):
    type: Literal["bearer"] = "bearer"
    env_variable: str


class BasicAuth(_DescriptorModel):
    type: Literal["basic"] = "basic"
    env_variable: str


class OAuth2Auth(_DescriptorModel):
    type: Literal["oauth2"] = "oauth2"
    env_variable: str


AuthenticationSpec = Annotated[
    Union[ApiKeyAuth, BearerAuth, BasicAuth, OAuth2Auth],
    Field(discriminator="type"),
]


class ResponseHandlingSpec(_DescriptorModel):
    success_codes: list[int] = Field(default_factory=lambda: [200, 201, 204])
    response_type: Literal["json", "text", "binary"] = "json"


def _default_error_codes() -> dict[int, str]:
    return {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        500: "Internal Server Error",
    }


class ErrorHandlingSpec(_DescriptorModel):
    retry_count: int = 3
    timeout_ms: int = 30000
    error_codes: dict[int, str] = Field(default_factory=_default_error_codes)


class McpToolSpec(_DescriptorModel):
    """The normalized, invocable unit produced for one endpoint.

    Carries exactly what a code generator needs to emit a tool: no schema
    registries or other resolver state leak into it.
    """

    name: str
    description: str
    input_schema: InputSchema = Field(default_factory=InputSchema)
    method: str
    path: str
    base_url: Optional[str] = None
    authentication: Optional[AuthenticationSpec] = None
    response_handling: ResponseHandlingSpec = Field(default_factory=ResponseHandlingSpec)
    error_handling: ErrorHandlingSpec = Field(default_factory=ErrorHandlingSpec)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready camelCase dict with unset optional fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ValidationResult(BaseModel):
    """Structural validation report.

    ``errors`` block generation, ``warnings`` do not, ``suggestions`` are
    purely informational. Always returned, even when ``is_valid`` is
    ``False``, so callers can choose to proceed.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    is_valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    @classmethod
    def from_messages(
        cls,
        errors: list[str],
        warnings: list[str],
        suggestions: list[str],
    ) -> ValidationResult:
        return cls(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            suggestions=suggestions,
        )


class GenerationResult(BaseModel):
    """Everything the renderer receives for one document."""

    source: Optional[str] = None
    info: ApiInfo
    servers: list[ServerInfo] = Field(default_factory=list)
    base_url: str = ""
    tools: list[McpToolSpec] = Field(default_factory=list)
    validation: ValidationResult = Field(default_factory=ValidationResult)


class DocumentFailure(BaseModel):
    """A batch entry that could not be turned into tools."""

    source: str
    error: str


class BatchResult(BaseModel):
    """Merged output of a batch run, in caller-supplied document order."""

    results: list[GenerationResult] = Field(default_factory=list)
    tools: list[McpToolSpec] = Field(default_factory=list)
    failures: list[DocumentFailure] = Field(default_factory=list)
    duplicate_names: list[str] = Field(default_factory=list)
