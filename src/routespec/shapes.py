"""Shape declarations derived once from dataclasses and pydantic models.

A declaration captures everything both engines need about a class: field
order, wire names, resolved types, annotations and effective defaults. It is
built from the class definition alone; instances are never created to
discover defaults.
"""

import dataclasses
import logging
from dataclasses import dataclass
from functools import cached_property, lru_cache
from typing import Any, get_type_hints

import annotated_types
from pydantic import BaseModel, ValidationError

from routespec.annotations import (
    POLYMORPHIC_ATTR,
    SCHEMA_NAME_ATTR,
    WIRE_NAME_ATTR,
    Constraint,
    Max,
    MaxLength,
    Min,
    MinLength,
    ParameterAnnotation,
    ParamLocation,
    Pattern,
    PolymorphicInfo,
    WireName,
    own_marker,
)
from routespec.constraints import check_constraints
from routespec.errors import (
    ConfigurationError,
    InvalidConstraintError,
    UnsupportedTypeError,
    ValidationFailure,
)
from routespec.types import TypeInfo, TypeKind, is_polymorphic, is_record, resolve_type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldDeclaration:
    """One field of a shape."""

    name: str
    wire_name: str
    type: TypeInfo
    has_default: bool = False
    default: Any = None
    constraints: tuple[Constraint, ...] = ()
    parameter: ParameterAnnotation | None = None
    init_name: str = ""

    @property
    def nullable(self) -> bool:
        return self.type.nullable

    @property
    def required(self) -> bool:
        return not self.nullable and not self.has_default

    @property
    def location(self) -> ParamLocation | None:
        return self.parameter.location if self.parameter else None


@dataclass(frozen=True)
class ShapeDeclaration:
    shape: type
    fields: tuple[FieldDeclaration, ...]

    def construct(self, values: dict[str, Any]) -> Any:
        """Create an instance from init-name keyed values.

        Fields missing from ``values`` fall back to the class defaults. A
        pydantic model rejecting the values is a client error.
        """
        try:
            return self.shape(**values)
        except ValidationError as exc:
            error = exc.errors()[0]
            field = self._wire_name(error["loc"][0]) if error["loc"] else None
            raise ValidationFailure(field, f"Invalid value for {field}: {error['msg']}") from None

    def _wire_name(self, key: Any) -> str:
        for f in self.fields:
            if key in (f.name, f.init_name):
                return f.wire_name
        return str(key)

    def field(self, name: str) -> FieldDeclaration:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)


@dataclass(frozen=True)
class PolymorphicDeclaration:
    """A discriminated union: discriminator value -> variant class."""

    base: type
    discriminator: str
    variants: tuple[tuple[str, type], ...]

    @cached_property
    def mapping(self) -> dict[str, type]:
        return dict(self.variants)

    def wire_name_of(self, variant: type) -> str:
        for name, cls in self.variants:
            if cls is variant:
                return name
        raise KeyError(variant)


@lru_cache(maxsize=None)
def declare_shape(cls: type) -> ShapeDeclaration:
    """Build (once) the declaration of a dataclass or pydantic model."""
    if not is_record(cls):
        raise UnsupportedTypeError(f"{cls!r} is not a dataclass or pydantic model")

    if issubclass(cls, BaseModel):
        fields = tuple(_pydantic_fields(cls))
    else:
        fields = tuple(_dataclass_fields(cls))

    seen: set[str] = set()
    for f in fields:
        if f.wire_name in seen:
            raise ConfigurationError(
                code="DUPLICATE_FIELD",
                message=f"{cls.__qualname__} exposes {f.wire_name!r} more than once",
            )
        seen.add(f.wire_name)

    logger.debug("Declared shape %s with fields %s", cls.__qualname__, [f.name for f in fields])
    return ShapeDeclaration(shape=cls, fields=fields)


@lru_cache(maxsize=None)
def declare_polymorphic(base: type) -> PolymorphicDeclaration:
    """Build (once) the variant table of a ``@polymorphic`` base class."""
    info: PolymorphicInfo | None = own_marker(base, POLYMORPHIC_ATTR)
    if info is None:
        raise UnsupportedTypeError(f"{base.__qualname__} is not marked @polymorphic")

    candidates = base.__subclasses__()
    if not candidates:
        raise UnsupportedTypeError(f"Polymorphic type {base.__qualname__} has no variants")

    variants: dict[str, type] = {}
    for cls in candidates:
        if not is_record(cls):
            raise UnsupportedTypeError(f"Variant {cls!r} of {base.__qualname__} is not a dataclass or pydantic model")
        name = wire_name_of(cls)
        if name in variants:
            raise ConfigurationError(
                code="DISCRIMINATOR_CONFLICT",
                message=f"Variants {variants[name].__qualname__} and {cls.__qualname__} share the wire name {name!r}",
            )
        if any(f.wire_name == info.discriminator for f in declare_shape(cls).fields):
            raise ConfigurationError(
                code="DISCRIMINATOR_CONFLICT",
                message=f"Variant {cls.__qualname__} has a field named like the discriminator {info.discriminator!r}",
            )
        variants[name] = cls

    return PolymorphicDeclaration(base=base, discriminator=info.discriminator, variants=tuple(variants.items()))


def polymorphic_parent(cls: type) -> PolymorphicDeclaration | None:
    """Return the declaration of the polymorphic hierarchy ``cls`` is a variant of."""
    for base in cls.__mro__[1:]:
        if is_polymorphic(base):
            declaration = declare_polymorphic(base)
            if cls in declaration.mapping.values():
                return declaration
    return None


def wire_name_of(cls: type) -> str:
    return own_marker(cls, WIRE_NAME_ATTR) or cls.__name__


def schema_name_of(cls: type) -> str:
    return own_marker(cls, SCHEMA_NAME_ATTR) or cls.__name__


def _dataclass_fields(cls: type):
    hints = _type_hints(cls)
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        if f.default is not dataclasses.MISSING:
            has_default, default = True, f.default
        elif f.default_factory is not dataclasses.MISSING:
            has_default, default = True, f.default_factory()
        else:
            has_default, default = False, None
        yield _declare_field(cls, f.name, resolve_type(hints[f.name]), has_default, default, f.name)


def _pydantic_fields(cls: type[BaseModel]):
    for name, info in cls.model_fields.items():
        owner = f"{cls.__qualname__}.{name}"
        collection = resolve_type(info.annotation).kind in (TypeKind.ARRAY, TypeKind.MAP)
        metadata = tuple(_native_constraint(owner, m, collection) for m in info.metadata)
        type_info = resolve_type(info.annotation, metadata)
        if info.is_required():
            has_default, default = False, None
        elif info.default_factory is not None:
            has_default, default = True, info.default_factory()
        else:
            has_default, default = True, info.default
        init_name = info.alias or name
        yield _declare_field(cls, name, type_info, has_default, default, init_name, alias=info.alias)


def _native_constraint(owner: str, item: Any, collection: bool) -> Any:
    """Translate pydantic ``Field`` constraints into routespec constraints."""
    if not isinstance(item, annotated_types.BaseMetadata):
        return item
    if isinstance(item, annotated_types.Ge):
        return Min(item.ge)
    if isinstance(item, annotated_types.Le):
        return Max(item.le)
    if isinstance(item, (annotated_types.MinLen, annotated_types.MaxLen)) and collection:
        raise InvalidConstraintError(f"{owner}: collection length constraints are not supported")
    if isinstance(item, annotated_types.MinLen):
        return MinLength(item.min_length)
    if isinstance(item, annotated_types.MaxLen):
        return MaxLength(item.max_length)
    if isinstance(item, (annotated_types.Gt, annotated_types.Lt, annotated_types.MultipleOf)):
        raise InvalidConstraintError(f"{owner}: unsupported constraint {item!r}, use Min or Max")

    # pydantic keeps pattern, max_digits, ... in one untyped metadata object
    options = {k: v for k, v in getattr(item, "__dict__", {}).items() if v is not None}
    if options.keys() & {"max_digits", "decimal_places"}:
        raise InvalidConstraintError(f"{owner}: unsupported constraint {item!r}")
    if "pattern" in options:
        pattern = options["pattern"]
        return Pattern(getattr(pattern, "pattern", pattern))
    return item


def _declare_field(
    cls: type,
    name: str,
    type_info: TypeInfo,
    has_default: bool,
    default: Any,
    init_name: str,
    alias: str | None = None,
) -> FieldDeclaration:
    parameters = [m for m in type_info.metadata if isinstance(m, ParameterAnnotation)]
    if len(parameters) > 1:
        raise ConfigurationError(
            code="CONFLICTING_LOCATIONS",
            message=f"Field {name!r} of {cls.__qualname__} has more than one location annotation",
        )
    renames = [m.name for m in type_info.metadata if isinstance(m, WireName)]
    constraints = type_info.constraints
    check_constraints(f"{cls.__qualname__}.{name}", type_info, constraints)

    return FieldDeclaration(
        name=name,
        wire_name=renames[-1] if renames else alias or name,
        type=type_info,
        has_default=has_default,
        default=default,
        constraints=constraints,
        parameter=parameters[0] if parameters else None,
        init_name=init_name,
    )


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return get_type_hints(cls, include_extras=True)
    except NameError as exc:
        raise UnsupportedTypeError(f"Cannot resolve type hints of {cls.__qualname__}: {exc}") from exc
