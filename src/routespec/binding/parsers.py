"""Value parsers: raw request strings -> typed field values.

A parser returns ``None`` when the request carries no value for the field;
malformed or constraint-violating input raises ``ValidationFailure``.
"""

import math
import re
from abc import ABC, abstractmethod
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Mapping, Sequence
from uuid import UUID

from routespec.annotations import Constraint, ParamLocation
from routespec.constraints import apply_constraints
from routespec.errors import UnsupportedTypeError, ValidationFailure
from routespec.shapes import FieldDeclaration
from routespec.types import SCALAR_KINDS, TypeInfo, TypeKind

RawValues = Mapping[str, Sequence[str]]

_INTEGER = re.compile(r"[+-]?[0-9]+")
_NUMBER = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?")

# (style, explode) per location for scalars and arrays
STYLES: dict[ParamLocation, tuple[str, bool]] = {
    ParamLocation.QUERY: ("form", True),
    ParamLocation.HEADER: ("simple", False),
    ParamLocation.PATH: ("simple", False),
}


def _parse_int(raw: str) -> int:
    if not _INTEGER.fullmatch(raw):
        raise ValueError(raw)
    return int(raw)


def _parse_float(raw: str) -> float:
    if not _NUMBER.fullmatch(raw):
        raise ValueError(raw)
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(raw)
    return value


def _parse_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError(raw)


def _enum_converter(enum_cls: type[Enum]) -> Callable[[str], Enum]:
    def convert(raw: str) -> Enum:
        for member in enum_cls:
            if str(member.value) == raw:
                return member
        try:
            return enum_cls[raw]
        except KeyError:
            raise ValueError(raw) from None

    return convert


CONVERTERS: dict[TypeKind, Callable[[str], Any]] = {
    TypeKind.STRING: str,
    TypeKind.INTEGER: _parse_int,
    TypeKind.NUMBER: _parse_float,
    TypeKind.BOOLEAN: _parse_bool,
    TypeKind.UUID: UUID,
    TypeKind.DATE: date.fromisoformat,
    TypeKind.DATETIME: datetime.fromisoformat,
}


def converter_for(type_info: TypeInfo) -> Callable[[str], Any]:
    if type_info.kind is TypeKind.ENUM:
        return _enum_converter(type_info.target)
    return CONVERTERS[type_info.kind]


class Parser(ABC):
    """Builds one field value out of the raw values of its location."""

    style: str
    explode: bool

    @abstractmethod
    def build(self, name: str, raw: RawValues) -> Any | None:
        """Return the typed value for ``name`` or None when absent."""


class ScalarParser(Parser):
    def __init__(
        self,
        type_info: TypeInfo,
        constraints: tuple[Constraint, ...],
        allow_empty: bool,
        style: str,
        explode: bool,
    ):
        self.convert = converter_for(type_info)
        self.is_text = type_info.kind is TypeKind.STRING
        self.constraints = constraints
        self.allow_empty = allow_empty
        self.style = style
        self.explode = explode

    def build(self, name: str, raw: RawValues) -> Any | None:
        values = raw.get(name)
        if not values:
            return None
        return self.parse_one(name, values[0])

    def parse_one(self, name: str, text: str) -> Any | None:
        if text == "" and not self.is_text:
            if self.allow_empty:
                return None
            raise ValidationFailure(name, f"{name} must not be empty")
        try:
            value = self.convert(text)
        except (ValueError, TypeError):
            raise ValidationFailure(name, f"Invalid value for {name}: {text!r}") from None
        return apply_constraints(self.constraints, value, name)


class ListParser(Parser):
    def __init__(self, container: type, item: ScalarParser, style: str, explode: bool):
        self.container = container
        self.item = item
        self.style = style
        self.explode = explode

    def build(self, name: str, raw: RawValues) -> Any | None:
        values = raw.get(name)
        if not values:
            return None
        if not self.explode:
            values = [part.strip() for value in values for part in value.split(",")]
        items = [self.item.parse_one(name, value) for value in values]
        return self.container(item for item in items if item is not None)


class ObjectParser(Parser):
    """deepObject style: ``filter[status]=open&filter[limit]=5``."""

    style = "deepObject"
    explode = True

    def __init__(self, binder: Any):
        self.binder = binder

    def build(self, name: str, raw: RawValues) -> Any | None:
        prefix = f"{name}["
        nested = {
            key[len(prefix):-1]: values
            for key, values in raw.items()
            if key.startswith(prefix) and key.endswith("]")
        }
        if not nested:
            return None
        return self.binder.bind_values(nested)


def build_parser(field: FieldDeclaration, location: ParamLocation, allow_empty: bool) -> Parser:
    """Select the parser for a field bound from ``location``."""
    type_info = field.type
    style, explode = STYLES[location]

    if type_info.kind in SCALAR_KINDS:
        return ScalarParser(type_info, field.constraints, allow_empty, style, explode)

    if type_info.kind is TypeKind.ARRAY and type_info.item.kind in SCALAR_KINDS:
        item_constraints = (*field.constraints, *type_info.item.constraints)
        item = ScalarParser(type_info.item, item_constraints, allow_empty, style, explode)
        return ListParser(type_info.target, item, style, explode)

    if type_info.kind is TypeKind.RECORD and location is ParamLocation.QUERY:
        from routespec.binding.binder import build_nested_binder

        return ObjectParser(build_nested_binder(type_info.target, location, allow_empty))

    raise UnsupportedTypeError(
        f"Field {field.name!r} of type {type_info.label} cannot be bound from the {location.value}"
    )
