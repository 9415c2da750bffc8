"""Schema synthesis: type hints -> SchemaModel.

Records, enums and polymorphic bases are named schemas: their bodies go to
``components.schemas`` once and every use site gets a ``$ref``.
"""

import logging
import threading
from typing import Any, Callable

from routespec.binding.body import to_jsonable
from routespec.constraints import schema_attributes
from routespec.errors import RegistrationClosedError, SchemaRegistrationConflict, UnsupportedTypeError
from routespec.schema.model import Discriminator, SchemaModel
from routespec.shapes import (
    FieldDeclaration,
    declare_polymorphic,
    declare_shape,
    polymorphic_parent,
    schema_name_of,
)
from routespec.types import TypeInfo, TypeKind, resolve_type

logger = logging.getLogger(__name__)

REF_PREFIX = "#/components/schemas/"

SCALAR_FORMATS: dict[TypeKind, tuple[str, str | None]] = {
    TypeKind.STRING: ("string", None),
    TypeKind.INTEGER: ("integer", "int64"),
    TypeKind.NUMBER: ("number", "double"),
    TypeKind.BOOLEAN: ("boolean", None),
    TypeKind.UUID: ("string", "uuid"),
    TypeKind.DATE: ("string", "date"),
    TypeKind.DATETIME: ("string", "date-time"),
}


def default_value(field: FieldDeclaration) -> Any:
    """The field default as a JSON value."""
    try:
        return to_jsonable(field.default)
    except TypeError as exc:
        raise UnsupportedTypeError(f"Default of field {field.name!r} cannot be documented: {exc}") from exc


class SchemaRegistry:
    """Named schemas of one document build.

    Writes happen while routes are registered; ``freeze`` ends that phase.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._owners: dict[str, type] = {}
        self._schemas: dict[str, SchemaModel | None] = {}
        self._frozen = False

    def reserve(self, name: str, owner: type) -> bool:
        """Claim ``name`` for ``owner``.

        Returns True when the caller must now build and ``complete`` the
        schema, False when ``owner`` already holds the name.
        """
        with self._lock:
            if self._frozen:
                raise RegistrationClosedError(f"schema {name!r}")
            existing = self._owners.get(name)
            if existing is None:
                self._owners[name] = owner
                self._schemas[name] = None
                return True
            if existing is not owner:
                raise SchemaRegistrationConflict(name, existing, owner)
            return False

    def complete(self, name: str, schema: SchemaModel) -> None:
        with self._lock:
            self._schemas[name] = schema
        logger.debug("Registered schema %s", name)

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def schemas(self) -> dict[str, SchemaModel]:
        return {name: schema for name, schema in self._schemas.items() if schema is not None}

    def __contains__(self, name: str) -> bool:
        return name in self._owners

    def __getitem__(self, name: str) -> SchemaModel:
        schema = self._schemas[name]
        if schema is None:
            raise KeyError(name)
        return schema


class SchemaBuilder:
    def __init__(self, registry: SchemaRegistry | None = None):
        self.registry = registry or SchemaRegistry()
        self._refs: dict[type, SchemaModel] = {}

    def build(self, hint: Any) -> SchemaModel:
        return self.build_type(resolve_type(hint))

    def build_type(self, type_info: TypeInfo) -> SchemaModel:
        schema = self._BUILDERS[type_info.kind](self, type_info)
        attributes: dict[str, Any] = {}
        if type_info.kind is not TypeKind.ARRAY:
            attributes.update(schema_attributes(type_info.constraints))
        if type_info.nullable:
            attributes["nullable"] = True
        return self._decorate(schema, attributes)

    def build_property(self, field: FieldDeclaration) -> SchemaModel:
        """Schema of a field, carrying its default when it has one."""
        schema = self.build_type(field.type)
        if field.has_default:
            schema = self._decorate(schema, {"default": default_value(field)})
        return schema

    def _decorate(self, schema: SchemaModel, attributes: dict[str, Any]) -> SchemaModel:
        if not attributes:
            return schema
        if schema.ref is not None:
            return SchemaModel(all_of=[schema], **attributes)
        return schema.decorated(**attributes)

    def _named(self, cls: type, body: Callable[[], SchemaModel]) -> SchemaModel:
        ref = self._refs.get(cls)
        if ref is not None:
            return ref
        name = schema_name_of(cls)
        owned = self.registry.reserve(name, cls)
        # cached before the body is built so self-references resolve to it
        ref = SchemaModel(ref=REF_PREFIX + name)
        self._refs[cls] = ref
        if owned:
            self.registry.complete(name, body())
        return ref

    def _scalar(self, type_info: TypeInfo) -> SchemaModel:
        type_name, fmt = SCALAR_FORMATS[type_info.kind]
        if fmt is None:
            return SchemaModel(type=type_name)
        return SchemaModel(type=type_name, format=fmt)

    def _enum(self, type_info: TypeInfo) -> SchemaModel:
        enum_cls = type_info.target

        def body() -> SchemaModel:
            values = [to_jsonable(member.value) for member in enum_cls]
            if all(isinstance(v, int) and not isinstance(v, bool) for v in values):
                type_name = "integer"
            elif all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
                type_name = "number"
            else:
                type_name = "string"
            return SchemaModel(type=type_name, enum=values)

        return self._named(enum_cls, body)

    def _array(self, type_info: TypeInfo) -> SchemaModel:
        items = self.build_type(type_info.item)
        items = self._decorate(items, schema_attributes(type_info.constraints))
        if type_info.target in (set, frozenset):
            return SchemaModel(type="array", items=items, unique_items=True)
        return SchemaModel(type="array", items=items)

    def _map(self, type_info: TypeInfo) -> SchemaModel:
        return SchemaModel(type="object", additional_properties=self.build_type(type_info.item))

    def _record(self, type_info: TypeInfo) -> SchemaModel:
        return self._record_ref(type_info.target)

    def _record_ref(self, cls: type) -> SchemaModel:
        return self._named(cls, lambda: self._record_body(cls))

    def _record_body(self, cls: type) -> SchemaModel:
        properties: dict[str, SchemaModel] = {}
        required: list[str] = []

        parent = polymorphic_parent(cls)
        if parent is not None:
            properties[parent.discriminator] = SchemaModel(type="string", enum=[parent.wire_name_of(cls)])
            required.append(parent.discriminator)

        for field in declare_shape(cls).fields:
            properties[field.wire_name] = self.build_property(field)
            if field.required:
                required.append(field.wire_name)

        if required:
            return SchemaModel(type="object", properties=properties, required=required)
        return SchemaModel(type="object", properties=properties)

    def _polymorphic(self, type_info: TypeInfo) -> SchemaModel:
        base = type_info.target
        declaration = declare_polymorphic(base)

        def body() -> SchemaModel:
            refs = [self._record_ref(variant) for _, variant in declaration.variants]
            mapping = {name: ref.ref for (name, _), ref in zip(declaration.variants, refs)}
            return SchemaModel(
                one_of=refs,
                discriminator=Discriminator(property_name=declaration.discriminator, mapping=mapping),
            )

        return self._named(base, body)

    def _any(self, type_info: TypeInfo) -> SchemaModel:
        return SchemaModel()

    _BUILDERS: dict[TypeKind, Callable[["SchemaBuilder", TypeInfo], SchemaModel]] = {
        **dict.fromkeys(SCALAR_FORMATS, _scalar),
        TypeKind.ENUM: _enum,
        TypeKind.ARRAY: _array,
        TypeKind.MAP: _map,
        TypeKind.RECORD: _record,
        TypeKind.POLYMORPHIC: _polymorphic,
        TypeKind.ANY: _any,
    }
