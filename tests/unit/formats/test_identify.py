"""Tests for serialization format identification."""

import pytest

from rdfproxy.formats.identify import identify, sniff
from rdfproxy.formats.registry import FormatRegistry

TURTLE = b"""@prefix ex: <https://example.org/> .
ex:a ex:b ex:c .
"""

RDF_XML = b"""<?xml version="1.0" encoding="utf-8"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">
</rdf:RDF>
"""

OWL_XML = b"""<?xml version="1.0"?>
<Ontology xmlns="http://www.w3.org/2002/07/owl#" ontologyIRI="https://example.org/o">
</Ontology>
"""


class TestSniff:
    """Tests for content sniffing rules."""

    @pytest.mark.parametrize(
        ("sample", "expected"),
        [
            (TURTLE, "turtle"),
            (b"PREFIX ex: <https://example.org/>\nex:a ex:b ex:c .", "turtle"),
            (RDF_XML, "rdf-xml"),
            (OWL_XML, "owl-xml"),
            (b'{"@context": {}, "@id": "x"}', "json-ld"),
            (b'[{"@id": "x"}]', "json-ld"),
            (b"<!DOCTYPE html>\n<html><body></body></html>", "html"),
            (b"<https://e.org/s> <https://e.org/p> <https://e.org/o> .\n", "n-triples"),
            (b'<https://e.org/s> <https://e.org/p> "v"@en .\n', "n-triples"),
            (
                b"<https://e.org/s> <https://e.org/p> <https://e.org/o> <https://e.org/g> .\n",
                "n-quads",
            ),
            (b"@prefix ex: <https://e.org/> .\nex:g {\n ex:a ex:b ex:c .\n}\n", "trig"),
            (b"@prefix ex: <https://e.org/> .\n{ ?x ex:p ?y } => { ?y ex:q ?x } .\n", "n3"),
            (b"Prefix(:=<https://e.org/>)\nOntology(<https://e.org/o>)\n", "owl-functional"),
            (b"Prefix: : <https://e.org/>\nClass: Thing\n", "manchester"),
        ],
    )
    def test_sniff_rules(self, registry: FormatRegistry, sample: bytes, expected: str) -> None:
        """Each content signature maps to its format."""
        fmt = sniff(sample, registry)
        assert fmt is not None
        assert fmt.id == expected

    def test_leading_comments_and_bom(self, registry: FormatRegistry) -> None:
        """A BOM and leading comments are skipped."""
        sample = "\ufeff# generated\n\n".encode() + TURTLE
        assert sniff(sample, registry).id == "turtle"

    def test_xml_comment_before_root(self, registry: FormatRegistry) -> None:
        """Leading XML comments are skipped."""
        sample = b"<!-- dump -->\n<rdf:RDF xmlns:rdf='x'></rdf:RDF>"
        assert sniff(sample, registry).id == "rdf-xml"

    def test_empty_and_unknown(self, registry: FormatRegistry) -> None:
        """Empty or unrecognizable content yields None."""
        assert sniff(b"", registry) is None
        assert sniff(b"   \n", registry) is None
        assert sniff(b"just some prose", registry) is None


class TestIdentify:
    """Tests for the identification signal order."""

    def test_declared_media_type_wins(self, registry: FormatRegistry) -> None:
        """A declared alias overrides content that sniffs as Turtle."""
        fmt = identify(TURTLE, declared_media_type="application/rdf+xml", registry=registry)
        assert fmt.id == "rdf-xml"

    def test_declared_media_type_with_parameters(self, registry: FormatRegistry) -> None:
        """Parameters on the declared type are ignored."""
        fmt = identify(
            b"", declared_media_type="text/turtle; charset=utf-8", registry=registry
        )
        assert fmt.id == "turtle"

    def test_generic_declared_type_falls_back_to_sniffing(
        self, registry: FormatRegistry
    ) -> None:
        """text/plain carries no signal, so content decides."""
        fmt = identify(TURTLE, declared_media_type="text/plain", registry=registry)
        assert fmt.id == "turtle"

    def test_sniffing_beats_extension(self, registry: FormatRegistry) -> None:
        """Content signals take precedence over the file name."""
        fmt = identify(RDF_XML, file_name="https://example.org/onto.ttl", registry=registry)
        assert fmt.id == "rdf-xml"

    def test_extension_fallback(self, registry: FormatRegistry) -> None:
        """The extension decides when content is inconclusive."""
        fmt = identify(b"opaque", file_name="https://example.org/onto.nt", registry=registry)
        assert fmt.id == "n-triples"

    def test_nothing_matches(self, registry: FormatRegistry) -> None:
        """No signal yields None rather than a guess."""
        assert identify(b"opaque", file_name="https://example.org/x", registry=registry) is None

    def test_sniff_window_is_bounded(self, registry: FormatRegistry) -> None:
        """Content beyond the sniff window is not inspected."""
        sample = b" " * 64 + TURTLE
        assert identify(sample, registry=registry, sniff_bytes=32) is None
        assert identify(sample, registry=registry, sniff_bytes=4096).id == "turtle"
