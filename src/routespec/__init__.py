"""OpenAPI documents and request binding from typed Python shapes."""

from routespec.annotations import (
    Clamp,
    HeaderParam,
    Length,
    LowerCase,
    Max,
    MaxLength,
    Min,
    MinLength,
    PathParam,
    Pattern,
    QueryParam,
    Trim,
    UpperCase,
    WireName,
    paths,
    polymorphic,
    request,
    response,
    schema_name,
    wire_name,
)
from routespec.binding.binder import Binder, build_binder
from routespec.binding.body import decode_body, encode_body
from routespec.config import OpenAPISettings, get_settings
from routespec.errors import (
    BindingError,
    ConfigurationError,
    RequiredFieldMissing,
    RoutespecError,
    ValidationFailure,
)
from routespec.routing import HttpResponse, OpenAPI, Router
from routespec.schema.builder import SchemaBuilder
from routespec.schema.model import OpenAPIDocument, Tag

__version__ = "0.1.0"

__all__ = [
    "Binder",
    "BindingError",
    "Clamp",
    "ConfigurationError",
    "HeaderParam",
    "HttpResponse",
    "Length",
    "LowerCase",
    "Max",
    "MaxLength",
    "Min",
    "MinLength",
    "OpenAPI",
    "OpenAPIDocument",
    "OpenAPISettings",
    "PathParam",
    "Pattern",
    "QueryParam",
    "RequiredFieldMissing",
    "Router",
    "RoutespecError",
    "SchemaBuilder",
    "Tag",
    "Trim",
    "UpperCase",
    "ValidationFailure",
    "WireName",
    "build_binder",
    "decode_body",
    "encode_body",
    "get_settings",
    "paths",
    "polymorphic",
    "request",
    "response",
    "schema_name",
    "wire_name",
]
