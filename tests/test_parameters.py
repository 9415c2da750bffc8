from dataclasses import dataclass, field
from typing import Annotated
from uuid import UUID

from routespec.annotations import HeaderParam, Length, Max, PathParam, QueryParam, WireName
from routespec.binding.binder import build_binder
from routespec.schema.builder import SchemaBuilder
from routespec.schema.parameters import build_parameters


@dataclass
class ListParams:
    id: Annotated[UUID, PathParam("Entity ID")]
    limit: Annotated[int | None, QueryParam("Page size"), Max(100)] = 10
    sort: Annotated[str | None, QueryParam(), Length(3, 4)] = "asc"


@dataclass
class MiscParams:
    trace: Annotated[str, HeaderParam(), WireName("X-Trace-Id")]
    ids: Annotated[list[int], HeaderParam("Comma separated ids")]
    old: Annotated[str | None, QueryParam(deprecated=True)] = None
    count: Annotated[int | None, QueryParam(allow_empty=True)] = None
    tags: Annotated[list[str], QueryParam()] = field(default_factory=list)


def parameters_of(cls):
    return {p.name: p.to_dict() for p in build_parameters(build_binder(cls), SchemaBuilder())}


class TestListParameters:
    def test_one_parameter_per_field_in_order(self):
        params = build_parameters(build_binder(ListParams), SchemaBuilder())
        assert [p.name for p in params] == ["id", "limit", "sort"]

    def test_path_parameter(self):
        assert parameters_of(ListParams)["id"] == {
            "name": "id",
            "in": "path",
            "required": True,
            "description": "Entity ID",
            "style": "simple",
            "explode": False,
            "schema": {"type": "string", "format": "uuid"},
        }

    def test_query_parameter_with_default(self):
        assert parameters_of(ListParams)["limit"] == {
            "name": "limit",
            "in": "query",
            "required": False,
            "description": "Page size",
            "style": "form",
            "explode": True,
            "schema": {
                "type": "integer",
                "format": "int64",
                "maximum": 100,
                "nullable": True,
                "default": 10,
            },
            "default": 10,
        }

    def test_length_constraint(self):
        schema = parameters_of(ListParams)["sort"]["schema"]
        assert schema["minLength"] == 3
        assert schema["maxLength"] == 4
        assert schema["default"] == "asc"


class TestMiscParameters:
    def test_header_name_lowercased(self):
        params = parameters_of(MiscParams)
        assert "x-trace-id" in params
        assert params["x-trace-id"]["in"] == "header"
        assert params["x-trace-id"]["required"] is True

    def test_header_array(self):
        ids = parameters_of(MiscParams)["ids"]
        assert ids["style"] == "simple"
        assert ids["explode"] is False
        assert ids["schema"] == {"type": "array", "items": {"type": "integer", "format": "int64"}}

    def test_deprecated(self):
        assert parameters_of(MiscParams)["old"]["deprecated"] is True

    def test_allow_empty_value(self):
        count = parameters_of(MiscParams)["count"]
        assert count["allowEmptyValue"] is True
        assert count["default"] is None

    def test_list_default(self):
        tags = parameters_of(MiscParams)["tags"]
        assert tags["required"] is False
        assert tags["default"] == []
