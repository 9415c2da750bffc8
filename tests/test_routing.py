import logging
from dataclasses import dataclass
from typing import Annotated

import pytest
from pydantic import BaseModel, field_validator

from routespec.annotations import HeaderParam, Max, PathParam, QueryParam, WireName, paths, request, response
from routespec.config import OpenAPISettings
from routespec.errors import (
    ConfigurationError,
    DuplicateRouteError,
    PathParameterMismatch,
    RegistrationClosedError,
)
from routespec.routing import OpenAPI, _compile, _join


@dataclass
class PetPath:
    pet_id: Annotated[int, PathParam("Pet ID"), WireName("petId")]


@dataclass
class ListPets:
    limit: Annotated[int | None, QueryParam(), Max(100)] = 10
    trace: Annotated[str | None, HeaderParam(), WireName("X-Trace")] = None


@paths("/pets/{id}", "/animals/{id}", "/v1/pets/{id}")
@dataclass
class AliasParams:
    id: Annotated[int, PathParam()]


@dataclass
class FilePath:
    name: Annotated[str, PathParam()]


@dataclass
class Pet:
    id: int
    name: str


@request("New pet")
@dataclass
class NewPet:
    name: str


@response("Created", status_code=201)
@dataclass
class Created:
    id: int


class Window(BaseModel):
    days: Annotated[int, QueryParam()] = 7

    @field_validator("days")
    @classmethod
    def whole_weeks(cls, value: int) -> int:
        if value % 7:
            raise ValueError("days must be whole weeks")
        return value


@pytest.fixture
def api():
    app = OpenAPI(OpenAPISettings(title="Pets", version="2.0.0"))

    @app.get("/pets", params=ListPets, response=list[Pet], summary="List pets", tags=["pets"])
    def list_pets(params):
        return [Pet(id=i, name=f"pet{i}") for i in range(min(params.limit, 2))] if params.trace is None else []

    @app.get("/pets/{petId}", params=PetPath, response=Pet, operation_id="getPet")
    def get_pet(params):
        return Pet(id=params.pet_id, name="Rex")

    @app.post("/pets", body=NewPet, response=Created, operation_id="createPet")
    def create_pet(params, body):
        return Created(id=len(body.name))

    @app.delete("/pets/{petId}", params=PetPath)
    def delete_pet(params):
        return None

    @app.get("/files/{name}", params=FilePath)
    def get_file(params):
        return {"name": params.name}

    @app.get("/boom")
    def boom(params):
        raise RuntimeError("kaput")

    return app


class TestPathTemplates:
    def test_compile(self):
        pattern, names = _compile("/users/{userId}/posts/{postId}")
        assert names == ("userId", "postId")
        assert pattern.match("/users/1/posts/abc").groups() == ("1", "abc")
        assert pattern.match("/users/1/posts") is None

    def test_literal_segments_escaped(self):
        pattern, _ = _compile("/v1.0/items")
        assert pattern.match("/v1x0/items") is None

    def test_join(self):
        assert _join("/admin/", "/users") == "/admin/users"
        assert _join("", "pets") == "/pets"
        assert _join("/api", "/") == "/api"


class TestDispatch:
    def test_query_binding(self, api):
        response = api.dispatch("GET", "/pets", "limit=1")
        assert response.status_code == 200
        assert response.json() == [{"id": 0, "name": "pet0"}]
        assert response.headers["Content-Type"] == "application/json"

    def test_header_binding(self, api):
        assert api.dispatch("GET", "/pets", headers={"x-trace": "t"}).json() == []

    def test_path_binding(self, api):
        assert api.dispatch("GET", "/pets/7").json() == {"id": 7, "name": "Rex"}

    def test_path_values_unquoted(self, api):
        assert api.dispatch("GET", "/files/a%20b").json() == {"name": "a b"}

    def test_validation_error(self, api):
        response = api.dispatch("GET", "/pets", "limit=500")
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_FAILED"
        assert error["details"] == {"field": "limit"}

    def test_malformed_path_value(self, api):
        response = api.dispatch("GET", "/pets/abc")
        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"field": "petId"}

    def test_body_and_response_status(self, api):
        response = api.dispatch("POST", "/pets", body=b'{"name": "Tom"}')
        assert response.status_code == 201
        assert response.json() == {"id": 3}

    def test_missing_body(self, api):
        response = api.dispatch("POST", "/pets")
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Request body is required"

    def test_no_content(self, api):
        response = api.dispatch("DELETE", "/pets/1")
        assert response.status_code == 204
        assert response.body == b""

    def test_model_rejection_is_a_client_error(self):
        app = OpenAPI()

        @app.get("/report", params=Window)
        def report(params):
            return {"days": params.days}

        assert app.dispatch("GET", "/report", "days=14").json() == {"days": 14}
        response = app.dispatch("GET", "/report", "days=3")
        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"field": "days"}

    def test_not_found(self, api):
        response = api.dispatch("GET", "/nope")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_method_not_allowed(self, api):
        response = api.dispatch("PUT", "/pets/1")
        assert response.status_code == 405
        assert response.json()["error"]["details"] == {"allowed": ["GET", "DELETE"]}

    def test_unexpected_error_logged(self, api, caplog):
        with caplog.at_level(logging.ERROR, logger="routespec.routing"):
            response = api.dispatch("GET", "/boom")
        assert response.status_code == 500
        assert response.json() == {"error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}}
        assert "Unhandled error on GET /boom" in caplog.text


class TestServedDocuments:
    def test_openapi_json(self, api):
        response = api.dispatch("GET", "/openapi.json")
        assert response.status_code == 200
        document = response.json()
        assert document["info"] == {"title": "Pets", "version": "2.0.0"}
        assert set(document["paths"]) == {"/pets", "/pets/{petId}", "/files/{name}", "/boom"}

    def test_swagger_ui(self, api):
        response = api.dispatch("GET", "/swagger-ui")
        assert response.status_code == 200
        assert response.headers["Content-Type"].startswith("text/html")
        assert 'url: "/openapi.json"' in response.text
        assert "swagger-ui-dist@5.30.3" in response.text

    def test_serving_disabled(self):
        api = OpenAPI(OpenAPISettings(serve_openapi_json=False, serve_docs=False))
        assert api.dispatch("GET", "/openapi.json").status_code == 404
        assert api.dispatch("GET", "/swagger-ui").status_code == 404


class TestDocument:
    def test_operations(self, api):
        document = api.document().to_dict()
        get_pet = document["paths"]["/pets/{petId}"]["get"]
        assert get_pet["operationId"] == "getPet"
        assert get_pet["parameters"][0]["name"] == "petId"
        assert get_pet["responses"]["200"]["content"]["application/json"]["schema"] == {
            "$ref": "#/components/schemas/Pet"
        }
        create = document["paths"]["/pets"]["post"]
        assert create["requestBody"]["description"] == "New pet"
        assert list(create["responses"]) == ["201"]
        assert document["tags"] == [{"name": "pets"}]

    def test_list_response(self, api):
        list_pets = api.document().to_dict()["paths"]["/pets"]["get"]
        assert list_pets["responses"]["200"]["content"]["application/json"]["schema"] == {
            "type": "array",
            "items": {"$ref": "#/components/schemas/Pet"},
        }

    def test_document_cached(self, api):
        assert api.document() is api.document()

    def test_registration_closed(self, api):
        api.document()
        with pytest.raises(RegistrationClosedError):
            api.get("/late")(lambda params: None)


class TestRegistration:
    def test_path_aliases_share_parameters(self):
        api = OpenAPI(OpenAPISettings())

        @api.get(params=AliasParams, operation_id="getAnimal")
        def get_animal(params):
            return {"id": params.id}

        document = api.document()
        operations = [document.paths[p].get for p in ("/pets/{id}", "/animals/{id}", "/v1/pets/{id}")]
        assert [op.operation_id for op in operations] == ["getAnimal", "getAnimal_2", "getAnimal_3"]
        first = operations[0].parameters[0]
        assert all(op.parameters[0] is first for op in operations)
        assert all(op.parameters[0].schema_ is first.schema_ for op in operations)
        assert api.dispatch("GET", "/animals/4").json() == {"id": 4}

    def test_explicit_path_list(self):
        api = OpenAPI(OpenAPISettings())
        api.add_route("get", ["/a/{id}", "/b/{id}"], lambda params: None, params=AliasParams)
        assert set(api.document().paths) == {"/a/{id}", "/b/{id}"}

    def test_missing_path(self):
        api = OpenAPI(OpenAPISettings())
        with pytest.raises(ConfigurationError) as exc_info:
            api.get(params=ListPets)(lambda params: None)
        assert exc_info.value.code == "MISSING_PATH"

    def test_template_variable_without_field(self):
        api = OpenAPI(OpenAPISettings())
        with pytest.raises(PathParameterMismatch) as exc_info:
            api.get("/pets/{petId}/toys/{toyId}", params=PetPath)(lambda params: None)
        assert exc_info.value.details["missing"] == ["toyId"]

    def test_path_field_without_variable(self):
        api = OpenAPI(OpenAPISettings())
        with pytest.raises(PathParameterMismatch) as exc_info:
            api.get("/pets", params=PetPath)(lambda params: None)
        assert exc_info.value.details["unused"] == ["petId"]

    def test_duplicate_route(self):
        api = OpenAPI(OpenAPISettings())
        api.get("/pets", params=ListPets)(lambda params: [])
        with pytest.raises(DuplicateRouteError):
            api.get("/pets", params=ListPets)(lambda params: [])

    def test_group_prefix_and_tags(self):
        api = OpenAPI(OpenAPISettings(tags={"admin": "Administration"}))
        admin = api.group("/admin", tags=["admin"])
        users = admin.group("/users", tags=["users"])

        @users.get("/{petId}", params=PetPath, summary="Get user")
        def get_user(params):
            return {"id": params.pet_id}

        document = api.document().to_dict()
        assert document["paths"]["/admin/users/{petId}"]["get"]["tags"] == ["admin", "users"]
        assert document["tags"] == [{"name": "admin", "description": "Administration"}, {"name": "users"}]
        assert api.dispatch("GET", "/admin/users/3").json() == {"id": 3}

    def test_decorator_returns_handler(self):
        api = OpenAPI(OpenAPISettings())

        def handler(params):
            return None

        assert api.get("/x")(handler) is handler
