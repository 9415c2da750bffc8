"""JSON request/response bodies.

``decode_body`` turns JSON into typed shape instances with the same
requiredness, default and constraint rules as parameter binding, and
resolves polymorphic payloads through their discriminator.
``to_jsonable``/``encode_body`` go the other way.
"""

import json
import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable
from uuid import UUID

from routespec.annotations import Constraint
from routespec.constraints import apply_constraints
from routespec.errors import RequiredFieldMissing, ValidationFailure
from routespec.shapes import ShapeDeclaration, declare_polymorphic, declare_shape, polymorphic_parent
from routespec.types import TypeInfo, TypeKind, is_record, resolve_type


def decode_body(raw: bytes | str | None, body_type: Any, required: bool = True) -> Any:
    """Decode a JSON body into an instance of ``body_type``."""
    if raw is None or len(raw) == 0:
        if required:
            raise ValidationFailure(None, "Request body is required")
        return None
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise ValidationFailure(None, f"Malformed JSON body: {exc}") from exc
    return read_value(resolve_type(body_type), data, "")


def read_value(type_info: TypeInfo, data: Any, path: str, constraints: tuple[Constraint, ...] = ()) -> Any:
    if data is None:
        if type_info.nullable:
            return None
        raise ValidationFailure(path or None, f"{path or 'body'} must not be null")
    value = _READERS[type_info.kind](type_info, data, path, constraints)
    if type_info.kind in (TypeKind.STRING, TypeKind.INTEGER, TypeKind.NUMBER):
        value = apply_constraints((*constraints, *type_info.constraints), value, path)
    return value


def read_record(shape: ShapeDeclaration, data: Any, path: str) -> Any:
    if not isinstance(data, dict):
        raise _mismatch(path, "an object", data)
    values: dict[str, Any] = {}
    for field in shape.fields:
        label = f"{path}.{field.wire_name}" if path else field.wire_name
        if field.wire_name in data:
            values[field.init_name] = read_value(field.type, data[field.wire_name], label)
        elif field.has_default:
            continue
        elif field.nullable:
            values[field.init_name] = None
        else:
            raise RequiredFieldMissing(label)
    return shape.construct(values)


def _mismatch(path: str, expected: str, data: Any) -> ValidationFailure:
    return ValidationFailure(path or None, f"{path or 'body'} must be {expected}, got {type(data).__name__}")


def _read_string(type_info, data, path, constraints):
    if not isinstance(data, str):
        raise _mismatch(path, "a string", data)
    return data


def _read_integer(type_info, data, path, constraints):
    if isinstance(data, bool) or not isinstance(data, int):
        raise _mismatch(path, "an integer", data)
    return data


def _read_number(type_info, data, path, constraints):
    if isinstance(data, bool) or not isinstance(data, (int, float)):
        raise _mismatch(path, "a number", data)
    if isinstance(data, float) and not math.isfinite(data):
        raise _mismatch(path, "a finite number", data)
    return float(data)


def _read_boolean(type_info, data, path, constraints):
    if not isinstance(data, bool):
        raise _mismatch(path, "a boolean", data)
    return data


def _read_text_as(convert: Callable[[str], Any], expected: str):
    def read(type_info, data, path, constraints):
        if not isinstance(data, str):
            raise _mismatch(path, expected, data)
        try:
            return convert(data)
        except ValueError:
            raise ValidationFailure(path or None, f"{path or 'body'} must be {expected}") from None

    return read


def _read_enum(type_info, data, path, constraints):
    enum_cls = type_info.target
    for member in enum_cls:
        if member.value == data:
            return member
    if isinstance(data, str) and data in enum_cls.__members__:
        return enum_cls[data]
    allowed = [m.value for m in enum_cls]
    raise ValidationFailure(path or None, f"{path or 'body'} must be one of {allowed}")


def _read_array(type_info, data, path, constraints):
    if not isinstance(data, list):
        raise _mismatch(path, "an array", data)
    item_constraints = (*constraints, *type_info.constraints)
    items = [read_value(type_info.item, item, f"{path}[{i}]", item_constraints) for i, item in enumerate(data)]
    return type_info.target(items)


def _read_map(type_info, data, path, constraints):
    if not isinstance(data, dict):
        raise _mismatch(path, "an object", data)
    return {key: read_value(type_info.item, value, f"{path}.{key}" if path else key) for key, value in data.items()}


def _read_record(type_info, data, path, constraints):
    return read_record(declare_shape(type_info.target), data, path)


def _read_polymorphic(type_info, data, path, constraints):
    if not isinstance(data, dict):
        raise _mismatch(path, "an object", data)
    declaration = declare_polymorphic(type_info.target)
    key = declaration.discriminator
    label = f"{path}.{key}" if path else key
    tag = data.get(key)
    if tag is None:
        raise ValidationFailure(label, f"{label} is required to select a variant")
    variant = declaration.mapping.get(tag) if isinstance(tag, str) else None
    if variant is None:
        raise ValidationFailure(label, f"Unknown {key} {tag!r}, expected one of {list(declaration.mapping)}")
    return read_record(declare_shape(variant), data, path)


_READERS: dict[TypeKind, Callable[[TypeInfo, Any, str, tuple], Any]] = {
    TypeKind.STRING: _read_string,
    TypeKind.INTEGER: _read_integer,
    TypeKind.NUMBER: _read_number,
    TypeKind.BOOLEAN: _read_boolean,
    TypeKind.UUID: _read_text_as(UUID, "a UUID"),
    TypeKind.DATE: _read_text_as(date.fromisoformat, "an ISO 8601 date"),
    TypeKind.DATETIME: _read_text_as(datetime.fromisoformat, "an ISO 8601 date-time"),
    TypeKind.ENUM: _read_enum,
    TypeKind.ARRAY: _read_array,
    TypeKind.MAP: _read_map,
    TypeKind.RECORD: _read_record,
    TypeKind.POLYMORPHIC: _read_polymorphic,
    TypeKind.ANY: lambda type_info, data, path, constraints: data,
}


def to_jsonable(value: Any) -> Any:
    """Convert a value to plain JSON types, using wire names for records."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return to_jsonable(value.value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    if is_record(type(value)):
        return _record_to_jsonable(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _record_to_jsonable(value: Any) -> dict[str, Any]:
    cls = type(value)
    out: dict[str, Any] = {}
    parent = polymorphic_parent(cls)
    if parent is not None:
        out[parent.discriminator] = parent.wire_name_of(cls)
    for field in declare_shape(cls).fields:
        out[field.wire_name] = to_jsonable(getattr(value, field.name))
    return out


def encode_body(value: Any) -> bytes:
    return json.dumps(to_jsonable(value)).encode("utf-8")
