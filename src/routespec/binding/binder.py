"""Request binding: raw query/header/path values -> parameter shape instance."""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Mapping, Sequence

from routespec.annotations import ParamLocation
from routespec.binding.parsers import Parser, RawValues, build_parser
from routespec.errors import RequiredFieldMissing, UnannotatedParameterError, UnsupportedTypeError
from routespec.shapes import FieldDeclaration, ShapeDeclaration, declare_shape
from routespec.types import TypeKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundField:
    field: FieldDeclaration
    parser: Parser
    location: ParamLocation
    key: str


class Binder:
    """Builds instances of one shape from request data.

    Binders are immutable and keep no per-request state, so one binder is
    shared by every request of its route.
    """

    def __init__(self, shape: ShapeDeclaration, fields: tuple[BoundField, ...]):
        self.shape = shape
        self.fields = fields

    def bind(
        self,
        query: Mapping[str, str | Sequence[str]] | None = None,
        headers: Mapping[str, str | Sequence[str]] | None = None,
        path: Mapping[str, str] | None = None,
    ) -> Any:
        sources: dict[ParamLocation, RawValues] = {
            ParamLocation.QUERY: _multi(query),
            ParamLocation.HEADER: _headers(headers),
            ParamLocation.PATH: _multi(path),
        }
        return self._bind(lambda bound: sources[bound.location])

    def bind_values(self, raw: RawValues) -> Any:
        """Bind from a single pre-selected mapping (nested objects)."""
        return self._bind(lambda bound: raw)

    def _bind(self, source_for: Callable[[BoundField], RawValues]) -> Any:
        values: dict[str, Any] = {}
        for bound in self.fields:
            field = bound.field
            value = bound.parser.build(bound.key, source_for(bound))
            if value is not None:
                values[field.init_name] = value
            elif field.has_default:
                # leave unset so the class default applies
                continue
            elif field.nullable:
                values[field.init_name] = None
            else:
                raise RequiredFieldMissing(field.wire_name)
        return self.shape.construct(values)


@lru_cache(maxsize=None)
def build_binder(cls: type) -> Binder:
    """Build (once) the binder of a parameter shape.

    Every field must carry a PathParam, QueryParam or HeaderParam annotation.
    """
    shape = declare_shape(cls)
    fields = []
    for field in shape.fields:
        if field.parameter is None:
            raise UnannotatedParameterError(cls, field.name)
        fields.append(_bound(field, field.location, field.parameter.allow_empty))
    logger.debug("Built binder for %s", cls.__qualname__)
    return Binder(shape, tuple(fields))


@lru_cache(maxsize=None)
def build_nested_binder(cls: type, location: ParamLocation, allow_empty: bool) -> Binder:
    """Binder for a record nested in a parameter; its fields use the parent's location."""
    shape = declare_shape(cls)
    for field in shape.fields:
        if field.type.kind in (TypeKind.RECORD, TypeKind.POLYMORPHIC):
            raise UnsupportedTypeError(
                f"Field {field.name!r} of {cls.__qualname__} nests a record inside a deepObject parameter"
            )
    fields = tuple(_bound(field, location, allow_empty) for field in shape.fields)
    return Binder(shape, fields)


def _bound(field: FieldDeclaration, location: ParamLocation, allow_empty: bool) -> BoundField:
    key = field.wire_name.lower() if location is ParamLocation.HEADER else field.wire_name
    return BoundField(field, build_parser(field, location, allow_empty), location, key)


def _headers(values: Mapping[str, str | Sequence[str]] | None) -> dict[str, list[str]]:
    # header names are case-insensitive; repeated names keep every value
    merged: dict[str, list[str]] = {}
    for name, items in _multi(values).items():
        merged.setdefault(name.lower(), []).extend(items)
    return merged


def _multi(values: Mapping[str, str | Sequence[str]] | None) -> dict[str, list[str]]:
    if not values:
        return {}
    return {k: [v] if isinstance(v, str) else list(v) for k, v in values.items()}
