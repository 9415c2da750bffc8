"""
routespec configuration.

Document metadata and serving options. Every setting can be given in code or
through ``ROUTESPEC_*`` environment variables (pydantic-settings).
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OpenAPISettings(BaseSettings):
    """Settings of one OpenAPI document and the endpoints that serve it."""

    model_config = SettingsConfigDict(env_prefix="ROUTESPEC_")

    title: str = Field(default="API", description="info.title of the document")
    version: str = Field(default="1.0.0", description="info.version of the document")
    description: str | None = Field(default=None, description="info.description of the document")
    openapi_version: str = "3.0.3"

    serve_openapi_json: bool = True
    openapi_path: str = "/openapi.json"
    serve_docs: bool = True
    docs_path: str = "/swagger-ui"
    swagger_ui_version: str = "5.30.3"

    servers: list[str] = Field(default_factory=list, description="Base server URLs")
    tags: dict[str, str] = Field(default_factory=dict, description="Tag name -> description")


@lru_cache
def get_settings() -> OpenAPISettings:
    """Get cached settings instance."""
    return OpenAPISettings()
