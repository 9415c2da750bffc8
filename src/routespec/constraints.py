"""Constraint annotation registry.

Each ``ConstraintKind`` maps to one rule: the type kinds it may be attached
to, how it shows up in a schema, and what it does to a bound value.
Transforms run before validations. On array fields, constraints apply to
every item.
"""

import re
from dataclasses import dataclass
from enum import IntEnum
from functools import lru_cache
from typing import Any, Callable

from routespec.annotations import (
    Clamp,
    Constraint,
    ConstraintKind,
    Length,
    Max,
    MaxLength,
    Min,
    MinLength,
    Pattern,
)
from routespec.errors import InvalidConstraintError, ValidationFailure
from routespec.types import TypeInfo, TypeKind


class Phase(IntEnum):
    TRANSFORM = 0
    VALIDATE = 1


@dataclass(frozen=True)
class ConstraintRule:
    phase: Phase
    targets: frozenset[TypeKind]
    apply_value: Callable[[Any, Any, str], Any]
    apply_schema: Callable[[Any, dict[str, Any]], None] | None = None


NUMERIC = frozenset({TypeKind.INTEGER, TypeKind.NUMBER})
TEXT = frozenset({TypeKind.STRING})


def _min(c: Min, value: Any, field: str) -> Any:
    if value < c.value:
        raise ValidationFailure(field, c.message or f"{field} must be at least {c.value}")
    return value


def _max(c: Max, value: Any, field: str) -> Any:
    if value > c.value:
        raise ValidationFailure(field, c.message or f"{field} must be at most {c.value}")
    return value


def _clamp(c: Clamp, value: Any, field: str) -> Any:
    return min(max(value, c.minimum), c.maximum)


def _min_length(c: MinLength, value: str, field: str) -> str:
    if len(value) < c.value:
        raise ValidationFailure(field, c.message or f"{field} must be at least {c.value} characters long")
    return value


def _max_length(c: MaxLength, value: str, field: str) -> str:
    if len(value) > c.value:
        raise ValidationFailure(field, c.message or f"{field} must be at most {c.value} characters long")
    return value


def _length(c: Length, value: str, field: str) -> str:
    if not c.min_length <= len(value) <= c.max_length:
        raise ValidationFailure(
            field,
            c.message or f"{field} must be between {c.min_length} and {c.max_length} characters long",
        )
    return value


def _pattern(c: Pattern, value: str, field: str) -> str:
    if _compile(c.regex).search(value) is None:
        raise ValidationFailure(field, c.message or f"{field} must match pattern {c.regex}")
    return value


def _set(**attributes: Callable[[Any], Any]) -> Callable[[Any, dict[str, Any]], None]:
    def apply(c: Any, schema: dict[str, Any]) -> None:
        for key, getter in attributes.items():
            schema[key] = getter(c)

    return apply


RULES: dict[ConstraintKind, ConstraintRule] = {
    ConstraintKind.MIN: ConstraintRule(
        Phase.VALIDATE, NUMERIC, _min, _set(minimum=lambda c: c.value)
    ),
    ConstraintKind.MAX: ConstraintRule(
        Phase.VALIDATE, NUMERIC, _max, _set(maximum=lambda c: c.value)
    ),
    ConstraintKind.CLAMP: ConstraintRule(
        Phase.VALIDATE, NUMERIC, _clamp, _set(minimum=lambda c: c.minimum, maximum=lambda c: c.maximum)
    ),
    ConstraintKind.MIN_LENGTH: ConstraintRule(
        Phase.VALIDATE, TEXT, _min_length, _set(min_length=lambda c: c.value)
    ),
    ConstraintKind.MAX_LENGTH: ConstraintRule(
        Phase.VALIDATE, TEXT, _max_length, _set(max_length=lambda c: c.value)
    ),
    ConstraintKind.LENGTH: ConstraintRule(
        Phase.VALIDATE, TEXT, _length, _set(min_length=lambda c: c.min_length, max_length=lambda c: c.max_length)
    ),
    ConstraintKind.PATTERN: ConstraintRule(
        Phase.VALIDATE, TEXT, _pattern, _set(pattern=lambda c: c.regex)
    ),
    ConstraintKind.TRIM: ConstraintRule(Phase.TRANSFORM, TEXT, lambda c, value, field: value.strip()),
    ConstraintKind.LOWERCASE: ConstraintRule(Phase.TRANSFORM, TEXT, lambda c, value, field: value.lower()),
    ConstraintKind.UPPERCASE: ConstraintRule(Phase.TRANSFORM, TEXT, lambda c, value, field: value.upper()),
}


def check_constraints(owner: str, type_info: TypeInfo, constraints: tuple[Constraint, ...]) -> None:
    """Reject constraints attached to a type they cannot apply to."""
    target = type_info.item if type_info.kind is TypeKind.ARRAY and type_info.item else type_info
    for c in constraints:
        rule = RULES[c.kind]
        if target.kind not in rule.targets:
            raise InvalidConstraintError(
                f"{type(c).__name__} cannot be applied to {owner} of type {type_info.label}"
            )
        if isinstance(c, Pattern):
            try:
                _compile(c.regex)
            except re.error as exc:
                raise InvalidConstraintError(f"Invalid pattern on {owner}: {exc}") from exc
    if target is not type_info:
        check_constraints(owner, target, target.constraints)


def schema_attributes(constraints: tuple[Constraint, ...]) -> dict[str, Any]:
    """Schema attributes (by SchemaModel field name) implied by ``constraints``."""
    attributes: dict[str, Any] = {}
    for c in constraints:
        rule = RULES[c.kind]
        if rule.apply_schema is not None:
            rule.apply_schema(c, attributes)
    return attributes


def apply_constraints(constraints: tuple[Constraint, ...], value: Any, field: str) -> Any:
    """Run transforms, then validations, over a parsed value."""
    for c in sorted(constraints, key=lambda c: RULES[c.kind].phase):
        value = RULES[c.kind].apply_value(c, value, field)
    return value


@lru_cache(maxsize=256)
def _compile(regex: str) -> re.Pattern:
    return re.compile(regex)
