"""Route registration and a thin in-process dispatcher.

Registering a route synthesizes its schemas and builds its binder once;
``dispatch`` only runs binders, body decoding and the handler.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from functools import partialmethod
from typing import Any, Callable, Mapping, Sequence
from urllib.parse import parse_qs, unquote

from routespec.annotations import PATHS_ATTR, ParamLocation, own_marker
from routespec.binding.binder import Binder, build_binder
from routespec.binding.body import decode_body, encode_body
from routespec.config import OpenAPISettings, get_settings
from routespec.docs import render_swagger_ui
from routespec.document import DocumentAssembler, TagLike, request_info, response_info
from routespec.errors import (
    ConfigurationError,
    MethodNotAllowed,
    PathParameterMismatch,
    RegistrationClosedError,
    RouteNotFound,
    RoutespecError,
)
from routespec.schema.model import OpenAPIDocument
from routespec.schema.parameters import build_parameters

logger = logging.getLogger(__name__)

_PATH_VARIABLE = re.compile(r"\{([^{}/]+)\}")


@dataclass(frozen=True)
class Route:
    method: str
    template: str
    pattern: re.Pattern
    variables: tuple[str, ...]
    handler: Callable[..., Any]
    binder: Binder | None
    body_type: Any
    body_required: bool
    status_code: int


@dataclass
class HttpResponse:
    status_code: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.body)


def _join(prefix: str, path: str) -> str:
    parts = [part.strip("/") for part in (prefix, path) if part.strip("/")]
    return "/" + "/".join(parts)


def _compile(template: str) -> tuple[re.Pattern, tuple[str, ...]]:
    pattern = ""
    position = 0
    names = []
    for match in _PATH_VARIABLE.finditer(template):
        pattern += re.escape(template[position:match.start()]) + "([^/]+)"
        names.append(match.group(1))
        position = match.end()
    pattern += re.escape(template[position:])
    return re.compile(f"^{pattern}$"), tuple(names)


class Router:
    """Registers routes under a path prefix and a set of tags."""

    def __init__(self, api: "OpenAPI", prefix: str = "", tags: Sequence[TagLike] = ()):
        self._api = api
        self._prefix = prefix
        self._tags = tuple(tags)

    def group(self, prefix: str = "", tags: Sequence[TagLike] = ()) -> "Router":
        return Router(self._api, _join(self._prefix, prefix), (*self._tags, *tags))

    def route(self, method: str, path: str | Sequence[str] | None = None, **options: Any):
        """Decorator form of ``add_route``."""

        def decorator(handler: Callable[..., Any]) -> Callable[..., Any]:
            self.add_route(method, path, handler, **options)
            return handler

        return decorator

    get = partialmethod(route, "get")
    post = partialmethod(route, "post")
    put = partialmethod(route, "put")
    patch = partialmethod(route, "patch")
    delete = partialmethod(route, "delete")

    def add_route(
        self,
        method: str,
        path: str | Sequence[str] | None,
        handler: Callable[..., Any],
        *,
        params: type | None = None,
        body: Any = None,
        response: Any = None,
        summary: str | None = None,
        description: str | None = None,
        tags: Sequence[TagLike] = (),
        operation_id: str | None = None,
        deprecated: bool = False,
    ) -> None:
        """Register ``handler`` for ``method`` on one or more paths.

        Without ``path`` the aliases declared with ``@paths`` on the params
        shape are used. The handler is called as ``handler(params)``, or
        ``handler(params, body)`` when a body type is given.
        """
        templates = [_join(self._prefix, p) for p in self._templates(path, params)]
        self._api._register(
            method.lower(),
            templates,
            handler,
            params=params,
            body=body,
            response=response,
            summary=summary,
            description=description,
            tags=(*self._tags, *tags),
            operation_id=operation_id,
            deprecated=deprecated,
        )

    def _templates(self, path: str | Sequence[str] | None, params: type | None) -> list[str]:
        if path is None:
            declared = own_marker(params, PATHS_ATTR) if params is not None else None
            if not declared:
                raise ConfigurationError(
                    code="MISSING_PATH",
                    message="A route needs a path or a params shape decorated with @paths",
                )
            return list(declared)
        if isinstance(path, str):
            return [path]
        return list(path)


class OpenAPI(Router):
    """Entry point: collects routes, serves requests and the document."""

    def __init__(self, settings: OpenAPISettings | None = None):
        super().__init__(self)
        self.settings = settings or get_settings()
        self.assembler = DocumentAssembler(self.settings)
        self.routes: list[Route] = []
        self._document: OpenAPIDocument | None = None

    def _register(
        self,
        method: str,
        templates: list[str],
        handler: Callable[..., Any],
        *,
        params: type | None,
        body: Any,
        response: Any,
        summary: str | None,
        description: str | None,
        tags: Sequence[TagLike],
        operation_id: str | None,
        deprecated: bool,
    ) -> None:
        if self._document is not None:
            raise RegistrationClosedError(f"route {method.upper()} {templates}")

        binder = build_binder(params) if params is not None else None
        compiled = [(template, *_compile(template)) for template in templates]
        for template, _, variables in compiled:
            _check_path_parameters(template, variables, binder)

        parameters = build_parameters(binder, self.assembler.builder) if binder else []
        operation = self.assembler.operation(
            parameters=parameters,
            body_type=body,
            response_type=response,
            summary=summary,
            description=description,
            tags=tags,
            operation_id=operation_id,
            deprecated=deprecated,
        )
        self.assembler.add_operation(templates, method, operation)

        body_required = request_info(body).required if body is not None else False
        status_code = response_info(response).status_code
        for template, pattern, variables in compiled:
            self.routes.append(
                Route(method, template, pattern, variables, handler, binder, body, body_required, status_code)
            )
        logger.info("Registered %s %s", method.upper(), ", ".join(templates))

    def document(self) -> OpenAPIDocument:
        """Finalize (once) and return the OpenAPI document."""
        if self._document is None:
            self._document = self.assembler.finalize()
        return self._document

    def dispatch(
        self,
        method: str,
        path: str,
        query_string: str = "",
        headers: Mapping[str, str | Sequence[str]] | None = None,
        body: bytes | str | None = b"",
    ) -> HttpResponse:
        """Handle one request; errors become JSON error responses."""
        try:
            return self._dispatch(method.lower(), path, query_string, headers or {}, body)
        except RoutespecError as exc:
            return _json_response(exc.status_code, exc.to_dict())
        except Exception:
            logger.exception("Unhandled error on %s %s", method.upper(), path)
            return _json_response(500, {"error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}})

    def _dispatch(
        self,
        method: str,
        path: str,
        query_string: str,
        headers: Mapping[str, str | Sequence[str]],
        body: bytes | str | None,
    ) -> HttpResponse:
        if method == "get" and self.settings.serve_openapi_json and path == self.settings.openapi_path:
            return HttpResponse(200, self.document().to_json().encode("utf-8"), {"Content-Type": "application/json"})
        if method == "get" and self.settings.serve_docs and path == self.settings.docs_path:
            page = render_swagger_ui(self.settings.openapi_path, self.settings.title, self.settings.swagger_ui_version)
            return HttpResponse(200, page.encode("utf-8"), {"Content-Type": "text/html; charset=utf-8"})

        route, match = self._match(method, path)
        path_params = {name: unquote(value) for name, value in zip(route.variables, match.groups())}
        query = parse_qs(query_string, keep_blank_values=True)
        params = route.binder.bind(query, headers, path_params) if route.binder else None

        if route.body_type is not None:
            payload = decode_body(body, route.body_type, route.body_required)
            result = route.handler(params, payload)
        else:
            result = route.handler(params)

        if result is None:
            return HttpResponse(204 if route.status_code == 200 else route.status_code)
        return HttpResponse(route.status_code, encode_body(result), {"Content-Type": "application/json"})

    def _match(self, method: str, path: str) -> tuple[Route, re.Match]:
        allowed = []
        for route in self.routes:
            match = route.pattern.match(path)
            if match is None:
                continue
            if route.method == method:
                return route, match
            allowed.append(route.method.upper())
        if allowed:
            raise MethodNotAllowed(method.upper(), path, allowed)
        raise RouteNotFound(path)


def _check_path_parameters(template: str, variables: tuple[str, ...], binder: Binder | None) -> None:
    declared = [
        bound.key for bound in (binder.fields if binder else ()) if bound.location is ParamLocation.PATH
    ]
    missing = [v for v in variables if v not in declared]
    unused = [d for d in declared if d not in variables]
    if missing or unused:
        raise PathParameterMismatch(template, missing, unused)


def _json_response(status_code: int, payload: dict[str, Any]) -> HttpResponse:
    return HttpResponse(status_code, json.dumps(payload).encode("utf-8"), {"Content-Type": "application/json"})
