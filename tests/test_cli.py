import json
from pathlib import Path

import yaml
from click.testing import CliRunner

from routespec.cli import detect_format, load_app, main
from routespec.errors import UnsupportedTypeError
from routespec.routing import OpenAPI

APP_DIR = str(Path(__file__).parent)


class TestDetectFormat:
    def test_yaml_suffixes(self):
        assert detect_format(Path("doc.yaml")) == "yaml"
        assert detect_format(Path("doc.YML")) == "yaml"

    def test_json_and_unknown(self):
        assert detect_format(Path("doc.json")) == "json"
        assert detect_format(Path("doc.txt")) == "json"


class TestLoadApp:
    def test_instance(self, monkeypatch):
        monkeypatch.syspath_prepend(APP_DIR)
        assert isinstance(load_app("sample_app:api"), OpenAPI)

    def test_factory(self, monkeypatch):
        monkeypatch.syspath_prepend(APP_DIR)
        app = load_app("sample_app:create_app")
        assert isinstance(app, OpenAPI)
        assert app.settings.title == "Library"


class TestCliExport:
    def test_export_json(self, tmp_path):
        output = tmp_path / "openapi.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "export", "sample_app:create_app",
            "-o", str(output),
            "--app-dir", APP_DIR,
        ])

        assert result.exit_code == 0, result.output
        document = json.loads(output.read_text(encoding="utf-8"))
        assert document["info"] == {"title": "Library", "version": "1.2.0"}
        assert "/books/{book_id}" in document["paths"]
        assert "Book" in document["components"]["schemas"]

    def test_export_yaml_by_suffix(self, tmp_path):
        output = tmp_path / "out" / "openapi.yaml"
        runner = CliRunner()
        result = runner.invoke(main, [
            "export", "sample_app:create_app",
            "-o", str(output),
            "--app-dir", APP_DIR,
        ])

        assert result.exit_code == 0, result.output
        document = yaml.safe_load(output.read_text(encoding="utf-8"))
        assert document["openapi"] == "3.0.3"
        assert "(yaml)" in result.output

    def test_explicit_format(self, tmp_path):
        output = tmp_path / "document.txt"
        runner = CliRunner()
        result = runner.invoke(main, [
            "export", "sample_app:create_app",
            "-o", str(output),
            "--format", "yaml",
            "--app-dir", APP_DIR,
        ])

        assert result.exit_code == 0, result.output
        assert yaml.safe_load(output.read_text(encoding="utf-8"))["info"]["title"] == "Library"

    def test_bad_reference(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "export", "sample_app",
            "-o", str(tmp_path / "x.json"),
            "--app-dir", APP_DIR,
        ])
        assert result.exit_code == 2
        assert "module:attribute" in result.output

    def test_not_an_app(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "export", "sample_app:not_an_app",
            "-o", str(tmp_path / "x.json"),
            "--app-dir", APP_DIR,
        ])
        assert result.exit_code == 2


class TestCliInspect:
    def test_lists_operations(self):
        runner = CliRunner()
        result = runner.invoke(main, ["inspect", "sample_app:create_app", "--app-dir", APP_DIR])

        assert result.exit_code == 0, result.output
        assert "GET     /books  Search books" in result.output
        assert "GET     /books/{book_id}  Get a book" in result.output
        assert "1 schemas" in result.output

    def test_verbose_flag(self):
        runner = CliRunner()
        result = runner.invoke(main, ["-v", "inspect", "sample_app:create_app", "--app-dir", APP_DIR])
        assert result.exit_code == 0, result.output

    def test_configuration_error_reported(self, monkeypatch):
        def broken(self):
            raise UnsupportedTypeError("Default of field 'total' cannot be documented")

        monkeypatch.setattr(OpenAPI, "document", broken)
        runner = CliRunner()
        result = runner.invoke(main, ["inspect", "sample_app:create_app", "--app-dir", APP_DIR])

        assert result.exit_code == 1
        assert "Error: Default of field 'total' cannot be documented" in result.output
        assert "Traceback" not in result.output
