"""CLI entry point for routespec."""

import importlib
import logging
import sys
from pathlib import Path

import click

from routespec.errors import RoutespecError
from routespec.routing import OpenAPI

FORMATS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


def load_app(app_ref: str) -> OpenAPI:
    """Import ``module:attr``; the attribute is an OpenAPI instance or a factory returning one."""
    module_name, _, attr = app_ref.partition(":")
    if not module_name or not attr:
        raise click.BadParameter(f"expected 'module:attribute', got {app_ref!r}", param_hint="APP_REF")

    module = importlib.import_module(module_name)
    try:
        app = getattr(module, attr)
    except AttributeError:
        raise click.BadParameter(f"module {module_name!r} has no attribute {attr!r}", param_hint="APP_REF") from None

    if not isinstance(app, OpenAPI) and callable(app):
        app = app()
    if not isinstance(app, OpenAPI):
        raise click.BadParameter(f"{app_ref} is not an OpenAPI application", param_hint="APP_REF")
    return app


def detect_format(file_path: Path) -> str:
    """Pick the output format from the file suffix: 'json' or 'yaml'."""
    return FORMATS.get(file_path.suffix.lower(), "json")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """routespec: export and inspect OpenAPI documents of routespec applications."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("app_ref")
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the document.")
@click.option("--format", "fmt", default="auto", type=click.Choice(["auto", "json", "yaml"]), help="Document format.")
@click.option("--app-dir", default=".", type=click.Path(exists=True, file_okay=False), help="Directory added to the import path.")
def export(app_ref: str, output: Path, fmt: str, app_dir: str):
    """Write the OpenAPI document of APP_REF (module:attribute) to a file."""
    sys.path.insert(0, app_dir)
    app = load_app(app_ref)
    if fmt == "auto":
        fmt = detect_format(output)

    try:
        document = app.document()
    except RoutespecError as exc:
        raise click.ClickException(exc.message) from exc

    text = document.to_yaml() if fmt == "yaml" else document.to_json(indent=2)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    click.echo(f"OpenAPI document saved to {output} ({fmt})")


@main.command()
@click.argument("app_ref")
@click.option("--app-dir", default=".", type=click.Path(exists=True, file_okay=False), help="Directory added to the import path.")
def inspect(app_ref: str, app_dir: str):
    """List the operations and schemas of APP_REF."""
    sys.path.insert(0, app_dir)
    app = load_app(app_ref)
    try:
        document = app.document()
    except RoutespecError as exc:
        raise click.ClickException(exc.message) from exc

    for path, item in document.paths.items():
        for method, operation in item.to_dict().items():
            summary = operation.get("summary", "")
            click.echo(f"{method.upper():7} {path}  {summary}".rstrip())
    click.echo(f"{len(document.components.schemas)} schemas")
