"""Annotations that describe how shapes map to requests and schemas.

Field annotations are attached through ``typing.Annotated``::

    @dataclass
    class ListParams:
        entity_id: Annotated[UUID, PathParam("Entity ID")]
        limit: Annotated[int | None, QueryParam("Page size"), Min(1), Max(100)] = 10

Shape annotations are class decorators (``request``, ``response``,
``polymorphic``, ``wire_name``, ``schema_name``, ``paths``).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, TypeVar

T = TypeVar("T", bound=type)


class ParamLocation(str, Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"


class ConstraintKind(str, Enum):
    MIN = "min"
    MAX = "max"
    CLAMP = "clamp"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    LENGTH = "length"
    PATTERN = "pattern"
    TRIM = "trim"
    LOWERCASE = "lowercase"
    UPPERCASE = "uppercase"


# --- parameter locations ----------------------------------------------------


@dataclass(frozen=True)
class ParameterAnnotation:
    """Marks a field as an HTTP parameter bound from ``location``."""

    description: str = ""
    deprecated: bool = False
    allow_empty: bool = False

    location: ClassVar[ParamLocation]


@dataclass(frozen=True)
class PathParam(ParameterAnnotation):
    location: ClassVar[ParamLocation] = ParamLocation.PATH


@dataclass(frozen=True)
class QueryParam(ParameterAnnotation):
    location: ClassVar[ParamLocation] = ParamLocation.QUERY


@dataclass(frozen=True)
class HeaderParam(ParameterAnnotation):
    location: ClassVar[ParamLocation] = ParamLocation.HEADER


@dataclass(frozen=True)
class WireName:
    """Exposes a field to clients under ``name`` instead of its attribute name."""

    name: str


# --- constraints ------------------------------------------------------------


@dataclass(frozen=True)
class Constraint:
    kind: ClassVar[ConstraintKind]


@dataclass(frozen=True)
class Min(Constraint):
    value: int | float
    message: str | None = None

    kind: ClassVar[ConstraintKind] = ConstraintKind.MIN


@dataclass(frozen=True)
class Max(Constraint):
    value: int | float
    message: str | None = None

    kind: ClassVar[ConstraintKind] = ConstraintKind.MAX


@dataclass(frozen=True)
class Clamp(Constraint):
    """Rewrites out-of-range numbers to the nearest bound instead of rejecting."""

    minimum: int | float
    maximum: int | float

    kind: ClassVar[ConstraintKind] = ConstraintKind.CLAMP


@dataclass(frozen=True)
class MinLength(Constraint):
    value: int
    message: str | None = None

    kind: ClassVar[ConstraintKind] = ConstraintKind.MIN_LENGTH


@dataclass(frozen=True)
class MaxLength(Constraint):
    value: int
    message: str | None = None

    kind: ClassVar[ConstraintKind] = ConstraintKind.MAX_LENGTH


@dataclass(frozen=True)
class Length(Constraint):
    min_length: int
    max_length: int
    message: str | None = None

    kind: ClassVar[ConstraintKind] = ConstraintKind.LENGTH


@dataclass(frozen=True)
class Pattern(Constraint):
    regex: str
    message: str | None = None

    kind: ClassVar[ConstraintKind] = ConstraintKind.PATTERN


@dataclass(frozen=True)
class Trim(Constraint):
    kind: ClassVar[ConstraintKind] = ConstraintKind.TRIM


@dataclass(frozen=True)
class LowerCase(Constraint):
    kind: ClassVar[ConstraintKind] = ConstraintKind.LOWERCASE


@dataclass(frozen=True)
class UpperCase(Constraint):
    kind: ClassVar[ConstraintKind] = ConstraintKind.UPPERCASE


# --- shape decorators -------------------------------------------------------

REQUEST_ATTR = "__routespec_request__"
RESPONSE_ATTR = "__routespec_response__"
POLYMORPHIC_ATTR = "__routespec_polymorphic__"
WIRE_NAME_ATTR = "__routespec_wire_name__"
SCHEMA_NAME_ATTR = "__routespec_schema_name__"
PATHS_ATTR = "__routespec_paths__"


@dataclass(frozen=True)
class RequestInfo:
    description: str | None = None
    required: bool = True


@dataclass(frozen=True)
class ResponseInfo:
    description: str = "OK"
    status_code: int = 200


@dataclass(frozen=True)
class PolymorphicInfo:
    discriminator: str = "type"


def _marker(attr: str, value: Any) -> Callable[[T], T]:
    def decorator(cls: T) -> T:
        setattr(cls, attr, value)
        return cls

    return decorator


def request(description: str | None = None, *, required: bool = True) -> Callable[[T], T]:
    """Mark a class as a request body."""
    return _marker(REQUEST_ATTR, RequestInfo(description=description, required=required))


def response(description: str = "OK", *, status_code: int = 200) -> Callable[[T], T]:
    """Mark a class as a response body."""
    return _marker(RESPONSE_ATTR, ResponseInfo(description=description, status_code=status_code))


def polymorphic(discriminator: str = "type") -> Callable[[T], T]:
    """Mark a base class as a discriminated union of its direct subclasses.

    Subclasses are looked up when the hierarchy is first declared, so every
    variant must be defined by then.
    """
    return _marker(POLYMORPHIC_ATTR, PolymorphicInfo(discriminator=discriminator))


def wire_name(name: str) -> Callable[[T], T]:
    """Set the discriminator value of a polymorphic variant."""
    return _marker(WIRE_NAME_ATTR, name)


def schema_name(name: str) -> Callable[[T], T]:
    """Register the class under ``name`` in ``components.schemas``."""
    return _marker(SCHEMA_NAME_ATTR, name)


def paths(*templates: str) -> Callable[[T], T]:
    """Declare the path aliases a parameter shape is served under."""
    return _marker(PATHS_ATTR, tuple(templates))


def own_marker(cls: type, attr: str) -> Any:
    """Return a decorator value set on ``cls`` itself, ignoring base classes."""
    return vars(cls).get(attr)
