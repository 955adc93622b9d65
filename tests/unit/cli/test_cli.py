"""Tests for the command-line interface."""

from pathlib import Path

import pytest
from doubles import TURTLE_DOC
from typer.testing import CliRunner

from rdfproxy.cli import app
from rdfproxy.cli.convert_cmd import lookup_format
from rdfproxy.config import settings
from rdfproxy.formats.registry import FormatRegistry

runner = CliRunner()


@pytest.fixture(autouse=True)
def no_external_tools(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run with the native backend only."""
    monkeypatch.setattr(settings, "external_tools", "")


@pytest.fixture
def turtle_file(tmp_path: Path) -> Path:
    path = tmp_path / "ontology.ttl"
    path.write_bytes(TURTLE_DOC)
    return path


class TestConvertCommand:
    """Tests for rdfproxy convert."""

    def test_convert_to_stdout(self, turtle_file: Path) -> None:
        """The converted document is written to stdout."""
        result = runner.invoke(app, ["convert", str(turtle_file), "--to", "n-triples"])
        assert result.exit_code == 0, result.output
        assert "<https://example.org/Thing>" in result.stdout

    def test_convert_to_file(self, turtle_file: Path, tmp_path: Path) -> None:
        """--output writes the result to a file."""
        output = tmp_path / "ontology.jsonld"
        result = runner.invoke(
            app, ["convert", str(turtle_file), "--to", "application/ld+json", "-o", str(output)]
        )
        assert result.exit_code == 0, result.output
        assert b"https://example.org/Thing" in output.read_bytes()

    def test_explicit_source_format(self, tmp_path: Path) -> None:
        """--from overrides identification."""
        path = tmp_path / "data.txt"
        path.write_bytes(TURTLE_DOC)
        result = runner.invoke(app, ["convert", str(path), "--from", "ttl", "--to", "nt"])
        assert result.exit_code == 0, result.output

    def test_unknown_target(self, turtle_file: Path) -> None:
        """Unknown target formats exit with status 2."""
        result = runner.invoke(app, ["convert", str(turtle_file), "--to", "pdf"])
        assert result.exit_code == 2
        assert "unknown target format" in result.output

    def test_unidentifiable_input(self, tmp_path: Path) -> None:
        """Inputs without any format signal exit with status 2."""
        path = tmp_path / "data"
        path.write_bytes(b"opaque")
        result = runner.invoke(app, ["convert", str(path), "--to", "turtle"])
        assert result.exit_code == 2
        assert "--from" in result.output

    def test_no_conversion_path(self, turtle_file: Path) -> None:
        """Conversions nothing installed can perform exit with status 1."""
        result = runner.invoke(app, ["convert", str(turtle_file), "--to", "html"])
        assert result.exit_code == 1
        assert "No conversion path" in result.output


class TestFormatsCommand:
    """Tests for rdfproxy formats."""

    def test_lists_formats(self) -> None:
        """Every format is listed with the backends in use."""
        result = runner.invoke(app, ["formats"])
        assert result.exit_code == 0, result.output
        assert "turtle" in result.output
        assert "rdflib (native)" in result.output


class TestLookupFormat:
    """Tests for lookup_format."""

    def test_lookup(self, registry: FormatRegistry) -> None:
        """Formats are found by id, media type or extension."""
        assert lookup_format(registry, "rdf-xml").id == "rdf-xml"
        assert lookup_format(registry, "text/turtle").id == "turtle"
        assert lookup_format(registry, ".nq").id == "n-quads"
        assert lookup_format(registry, "pdf") is None
