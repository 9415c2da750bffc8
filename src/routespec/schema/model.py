"""OpenAPI 3 document models.

Only attributes that were explicitly set are serialized (``exclude_unset``),
so a schema without a default has no ``default`` key while a schema whose
default is ``None`` serializes ``"default": null``.
"""

from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field


class OpenAPIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class Discriminator(OpenAPIModel):
    property_name: str = Field(alias="propertyName")
    mapping: dict[str, str] = {}


class SchemaModel(OpenAPIModel):
    """A schema object: scalar, array, object, reference or oneOf."""

    ref: str | None = Field(default=None, alias="$ref")
    type: str | None = None
    format: str | None = None
    description: str | None = None
    nullable: bool | None = None
    default: Any = None
    enum: list[Any] | None = None
    minimum: int | float | None = None
    maximum: int | float | None = None
    min_length: int | None = Field(default=None, alias="minLength")
    max_length: int | None = Field(default=None, alias="maxLength")
    pattern: str | None = None
    items: "SchemaModel | None" = None
    unique_items: bool | None = Field(default=None, alias="uniqueItems")
    properties: "dict[str, SchemaModel] | None" = None
    required: list[str] | None = None
    additional_properties: "SchemaModel | None" = Field(default=None, alias="additionalProperties")
    all_of: "list[SchemaModel] | None" = Field(default=None, alias="allOf")
    one_of: "list[SchemaModel] | None" = Field(default=None, alias="oneOf")
    discriminator: Discriminator | None = None

    def decorated(self, **attributes: Any) -> "SchemaModel":
        """Return a copy with ``attributes`` set; the original is left untouched."""
        copy = self.model_copy()
        for key, value in attributes.items():
            setattr(copy, key, value)
        return copy


class ParameterModel(OpenAPIModel):
    name: str
    in_: str = Field(alias="in")
    required: bool
    description: str | None = None
    deprecated: bool | None = None
    allow_empty_value: bool | None = Field(default=None, alias="allowEmptyValue")
    style: str | None = None
    explode: bool | None = None
    schema_: SchemaModel = Field(alias="schema")
    default: Any = None


class MediaType(OpenAPIModel):
    schema_: SchemaModel = Field(alias="schema")


class RequestBody(OpenAPIModel):
    description: str | None = None
    required: bool = True
    content: dict[str, MediaType]


class ResponseModel(OpenAPIModel):
    description: str
    content: dict[str, MediaType] | None = None


class Operation(OpenAPIModel):
    tags: list[str] | None = None
    summary: str | None = None
    description: str | None = None
    operation_id: str | None = Field(default=None, alias="operationId")
    deprecated: bool | None = None
    parameters: list[ParameterModel] | None = None
    request_body: RequestBody | None = Field(default=None, alias="requestBody")
    responses: dict[str, ResponseModel]


class PathItem(OpenAPIModel):
    get: Operation | None = None
    put: Operation | None = None
    post: Operation | None = None
    delete: Operation | None = None
    options: Operation | None = None
    head: Operation | None = None
    patch: Operation | None = None


class Info(OpenAPIModel):
    title: str
    version: str
    description: str | None = None


class Server(OpenAPIModel):
    url: str
    description: str | None = None


class Tag(OpenAPIModel):
    """An operation group. Also accepted wherever routes take tags."""

    name: str
    description: str | None = None


class Components(OpenAPIModel):
    schemas: dict[str, SchemaModel] = {}


class OpenAPIDocument(OpenAPIModel):
    openapi: str
    info: Info
    servers: list[Server] | None = None
    paths: dict[str, PathItem]
    components: Components
    tags: list[Tag] | None = None

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(by_alias=True, exclude_unset=True, indent=indent)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)


SchemaModel.model_rebuild()
