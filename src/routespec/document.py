"""Document assembly: operations, tags and named schemas -> OpenAPIDocument."""

import logging
from enum import Enum
from typing import Any, Sequence, Union

from routespec.annotations import REQUEST_ATTR, RESPONSE_ATTR, RequestInfo, ResponseInfo, own_marker
from routespec.config import OpenAPISettings
from routespec.errors import DuplicateRouteError, RegistrationClosedError
from routespec.schema.builder import SchemaBuilder
from routespec.schema.model import (
    Components,
    Info,
    MediaType,
    OpenAPIDocument,
    Operation,
    ParameterModel,
    PathItem,
    RequestBody,
    ResponseModel,
    Server,
    Tag,
)

logger = logging.getLogger(__name__)

JSON = "application/json"

TagLike = Union[Tag, str, Enum]


def request_info(body_type: Any) -> RequestInfo:
    info = own_marker(body_type, REQUEST_ATTR) if isinstance(body_type, type) else None
    return info or RequestInfo()


def response_info(response_type: Any) -> ResponseInfo:
    info = own_marker(response_type, RESPONSE_ATTR) if isinstance(response_type, type) else None
    return info or ResponseInfo()


class DocumentAssembler:
    """Collects the pieces of one document until ``finalize`` freezes it."""

    def __init__(self, settings: OpenAPISettings, builder: SchemaBuilder | None = None):
        self.settings = settings
        self.builder = builder or SchemaBuilder()
        self._paths: dict[str, dict[str, Operation]] = {}
        self._tags: dict[str, Tag] = {}
        self._document: OpenAPIDocument | None = None

    def add_tag(self, tag: TagLike) -> str:
        """Register a tag once by name and return the name."""
        incoming = self._to_tag(tag)
        existing = self._tags.get(incoming.name)
        if existing is None:
            self._tags[incoming.name] = incoming
        elif existing.description is None and incoming.description is not None:
            existing.description = incoming.description
        return incoming.name

    def _to_tag(self, tag: TagLike) -> Tag:
        if isinstance(tag, Tag):
            return tag.model_copy()
        if isinstance(tag, Enum):
            description = tag.value if isinstance(tag.value, str) else None
            return Tag(name=tag.name, description=description or self.settings.tags.get(tag.name))
        if tag in self.settings.tags:
            return Tag(name=tag, description=self.settings.tags[tag])
        return Tag(name=tag)

    def operation(
        self,
        *,
        parameters: list[ParameterModel],
        body_type: Any = None,
        response_type: Any = None,
        summary: str | None = None,
        description: str | None = None,
        tags: Sequence[TagLike] = (),
        operation_id: str | None = None,
        deprecated: bool = False,
    ) -> Operation:
        """Build an operation, synthesizing body and response schemas."""
        options: dict[str, Any] = {}
        names = list(dict.fromkeys(self.add_tag(t) for t in tags))
        if names:
            options["tags"] = names
        if summary:
            options["summary"] = summary
        if description:
            options["description"] = description
        if operation_id:
            options["operation_id"] = operation_id
        if deprecated:
            options["deprecated"] = True
        if parameters:
            options["parameters"] = parameters
        if body_type is not None:
            options["request_body"] = self._request_body(body_type)
        return Operation(responses=self._responses(response_type), **options)

    def _request_body(self, body_type: Any) -> RequestBody:
        info = request_info(body_type)
        content = {JSON: MediaType(schema_=self.builder.build(body_type))}
        if info.description:
            return RequestBody(description=info.description, required=info.required, content=content)
        return RequestBody(required=info.required, content=content)

    def _responses(self, response_type: Any) -> dict[str, ResponseModel]:
        info = response_info(response_type)
        if response_type is None:
            return {str(info.status_code): ResponseModel(description=info.description)}
        content = {JSON: MediaType(schema_=self.builder.build(response_type))}
        return {str(info.status_code): ResponseModel(description=info.description, content=content)}

    def add_operation(self, paths: Sequence[str], method: str, operation: Operation) -> list[Operation]:
        """Attach ``operation`` under every alias path.

        Aliases get shallow copies, so parameters, request body and response
        objects stay shared.
        """
        if self._document is not None:
            raise RegistrationClosedError(f"operation {method.upper()} {list(paths)}")
        method = method.lower()
        for path in paths:
            if method in self._paths.get(path, {}):
                raise DuplicateRouteError(method, path)

        added = []
        for index, path in enumerate(paths):
            op = operation if index == 0 else operation.model_copy()
            if index > 0 and operation.operation_id:
                op.operation_id = f"{operation.operation_id}_{index + 1}"
            self._paths.setdefault(path, {})[method] = op
            added.append(op)
        return added

    def finalize(self) -> OpenAPIDocument:
        """Freeze the schema registry and return the document (built once)."""
        if self._document is not None:
            return self._document
        self.builder.registry.freeze()

        options: dict[str, Any] = {}
        if self.settings.servers:
            options["servers"] = [Server(url=url) for url in self.settings.servers]
        if self._tags:
            options["tags"] = list(self._tags.values())
        info = {"title": self.settings.title, "version": self.settings.version}
        if self.settings.description:
            info["description"] = self.settings.description

        self._document = OpenAPIDocument(
            openapi=self.settings.openapi_version,
            info=Info(**info),
            paths={path: PathItem(**operations) for path, operations in self._paths.items()},
            components=Components(schemas=self.builder.registry.schemas),
            **options,
        )
        logger.info(
            "Finalized OpenAPI document: %d paths, %d schemas",
            len(self._paths),
            len(self.builder.registry.schemas),
        )
        return self._document
