"""Parameter objects for a parameter shape.

Built from the same binder that serves requests, so style/explode and
requiredness in the document are those the binder actually applies.
"""

from routespec.annotations import ParamLocation
from routespec.binding.binder import Binder, BoundField
from routespec.schema.builder import SchemaBuilder, default_value
from routespec.schema.model import ParameterModel


def build_parameters(binder: Binder, builder: SchemaBuilder) -> list[ParameterModel]:
    """Return one ParameterModel per field of the binder's shape, in order."""
    return [_parameter(bound, builder) for bound in binder.fields]


def _parameter(bound: BoundField, builder: SchemaBuilder) -> ParameterModel:
    field = bound.field
    annotation = field.parameter
    options = {}
    if annotation.description:
        options["description"] = annotation.description
    if annotation.deprecated:
        options["deprecated"] = True
    if annotation.allow_empty and bound.location is not ParamLocation.PATH:
        options["allow_empty_value"] = True
    if field.has_default:
        options["default"] = default_value(field)

    return ParameterModel(
        name=bound.key,
        in_=bound.location.value,
        required=field.required,
        style=bound.parser.style,
        explode=bound.parser.explode,
        schema_=builder.build_property(field),
        **options,
    )
