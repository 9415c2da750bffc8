"""Resolution of Python type hints into a closed set of type kinds.

Both the schema builder and the request binders dispatch on ``TypeKind``
instead of inspecting type hints again at request time.
"""

import collections.abc
import dataclasses
import types
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Union, get_args, get_origin
from uuid import UUID

from pydantic import BaseModel

from routespec.annotations import POLYMORPHIC_ATTR, Constraint, own_marker
from routespec.errors import UnsupportedTypeError

NoneType = type(None)


class TypeKind(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    UUID = "uuid"
    DATE = "date"
    DATETIME = "date-time"
    ENUM = "enum"
    ARRAY = "array"
    MAP = "map"
    RECORD = "record"
    POLYMORPHIC = "polymorphic"
    ANY = "any"


SCALAR_KINDS = frozenset(
    {
        TypeKind.STRING,
        TypeKind.INTEGER,
        TypeKind.NUMBER,
        TypeKind.BOOLEAN,
        TypeKind.UUID,
        TypeKind.DATE,
        TypeKind.DATETIME,
        TypeKind.ENUM,
    }
)

_SCALARS: dict[Any, TypeKind] = {
    str: TypeKind.STRING,
    int: TypeKind.INTEGER,
    float: TypeKind.NUMBER,
    bool: TypeKind.BOOLEAN,
    UUID: TypeKind.UUID,
    date: TypeKind.DATE,
    datetime: TypeKind.DATETIME,
}

_SEQUENCES = {list, tuple, set, frozenset, collections.abc.Sequence, collections.abc.Set}
_MAPPINGS = {dict, collections.abc.Mapping}


@dataclass(frozen=True)
class TypeInfo:
    """A resolved type hint.

    ``target`` is the class for scalar, enum, record and polymorphic kinds and
    the container class (``list``, ``set``, ``tuple``, ``dict``) for arrays
    and maps. ``item`` is the element type of arrays and the value type of
    maps.
    """

    kind: TypeKind
    target: Any
    nullable: bool = False
    item: "TypeInfo | None" = None
    metadata: tuple = ()

    @property
    def constraints(self) -> tuple[Constraint, ...]:
        return tuple(m for m in self.metadata if isinstance(m, Constraint))

    @property
    def label(self) -> str:
        if self.kind in (TypeKind.ARRAY, TypeKind.MAP) and self.item is not None:
            return f"{self.kind.value}<{self.item.label}>"
        return getattr(self.target, "__qualname__", str(self.target))


def is_record(tp: Any) -> bool:
    return isinstance(tp, type) and (dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel))


def is_polymorphic(tp: Any) -> bool:
    return isinstance(tp, type) and own_marker(tp, POLYMORPHIC_ATTR) is not None


def resolve_type(hint: Any, metadata: tuple = ()) -> TypeInfo:
    """Resolve a type hint, collecting ``Annotated`` metadata and nullability."""
    hint, extra = _strip_annotated(hint)
    metadata = (*metadata, *extra)
    nullable = False

    if _is_union(hint):
        args = get_args(hint)
        members = [a for a in args if a is not NoneType]
        nullable = len(members) != len(args)
        if len(members) != 1:
            raise UnsupportedTypeError(f"Union types are not supported: {hint!r}")
        hint, extra = _strip_annotated(members[0])
        metadata = (*metadata, *extra)

    return _resolve(hint, nullable, metadata)


def _resolve(hint: Any, nullable: bool, metadata: tuple) -> TypeInfo:
    if hint is Any:
        return TypeInfo(TypeKind.ANY, Any, nullable, metadata=metadata)

    if hint in _SCALARS:
        return TypeInfo(_SCALARS[hint], hint, nullable, metadata=metadata)

    if isinstance(hint, type) and issubclass(hint, Enum):
        return TypeInfo(TypeKind.ENUM, hint, nullable, metadata=metadata)

    if is_polymorphic(hint):
        return TypeInfo(TypeKind.POLYMORPHIC, hint, nullable, metadata=metadata)

    if is_record(hint):
        return TypeInfo(TypeKind.RECORD, hint, nullable, metadata=metadata)

    origin = get_origin(hint) or hint
    args = get_args(hint)

    if origin in _SEQUENCES:
        if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
            raise UnsupportedTypeError(f"Only homogeneous tuples (tuple[T, ...]) are supported: {hint!r}")
        item = resolve_type(args[0]) if args else TypeInfo(TypeKind.ANY, Any)
        container = {collections.abc.Sequence: list, collections.abc.Set: set}.get(origin, origin)
        return TypeInfo(TypeKind.ARRAY, container, nullable, item=item, metadata=metadata)

    if origin in _MAPPINGS:
        if args and args[0] is not str:
            raise UnsupportedTypeError(f"Mapping keys must be str: {hint!r}")
        item = resolve_type(args[1]) if args else TypeInfo(TypeKind.ANY, Any)
        return TypeInfo(TypeKind.MAP, dict, nullable, item=item, metadata=metadata)

    raise UnsupportedTypeError(f"Cannot model type {hint!r}")


def _strip_annotated(hint: Any) -> tuple[Any, tuple]:
    metadata: tuple = ()
    while get_origin(hint) is Annotated:
        metadata = (*metadata, *hint.__metadata__)
        hint = hint.__origin__
    return hint, metadata


def _is_union(hint: Any) -> bool:
    origin = get_origin(hint)
    return origin is Union or origin is types.UnionType
