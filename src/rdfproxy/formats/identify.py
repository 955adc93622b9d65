"""Serialization format identification.

Signals are consulted in a fixed order:

1. the declared media type, when it is an exact alias of a known format;
2. content sniffing over a bounded prefix of the document;
3. the file extension of the document name or URL.

``identify`` returns None when nothing matches; callers decide whether an
unknown format is fatal.
"""

from __future__ import annotations

import re

from rdfproxy.formats.registry import Format, FormatRegistry

DEFAULT_SNIFF_BYTES = 4096

_BOM = "\ufeff"

# Turtle-family directives at the start of a line
_TURTLE_DIRECTIVE = re.compile(r"^[ \t]*(@prefix|@base)\b|^[ \t]*(PREFIX|BASE)[ \t]", re.M | re.I)
_N3_MARKER = re.compile(r"=>|<=|@forAll\b|@forSome\b|@keywords\b")
_TRIG_GRAPH = re.compile(
    r"^[ \t]*(GRAPH[ \t]+)?(<[^>\s]*>|[A-Za-z][\w.-]*:[\w.-]*|_:[\w.-]+|\[\])[ \t]*\{",
    re.M | re.I,
)
_OWL_FUNCTIONAL = re.compile(r"^[ \t]*(Prefix|Ontology|Import)\(", re.M)
_MANCHESTER = re.compile(r"^[ \t]*(Prefix|Ontology|Class|ObjectProperty|DataProperty):", re.M)

_IRI = r"<[^>\s]*>"
_BNODE = r"_:[\w.-]+"
_LITERAL = r'"(?:[^"\\]|\\.)*"(?:@[A-Za-z][\w-]*|\^\^<[^>\s]*>)?'
_STATEMENT = re.compile(
    rf"^({_IRI}|{_BNODE})\s+{_IRI}\s+({_IRI}|{_BNODE}|{_LITERAL})"
    rf"(\s+({_IRI}|{_BNODE}))?\s*\.\s*$"
)


def _skip_preamble(text: str) -> str:
    """Drop a BOM, leading whitespace and leading comments."""
    text = text.lstrip(_BOM)
    while True:
        text = text.lstrip()
        if text.startswith("#"):
            _, _, text = text.partition("\n")
        elif text.startswith("<!--"):
            _, _, text = text.partition("-->")
        else:
            return text


def _first_line(text: str) -> str:
    return text.split("\n", 1)[0].strip()


def sniff(sample: bytes, registry: FormatRegistry) -> Format | None:
    """Guess the format from the document content.

    Only the bytes handed in are inspected; callers bound the sample.
    """
    text = _skip_preamble(sample.decode("utf-8", errors="replace"))
    if not text:
        return None

    lowered = text.lower()

    if text[0] in "{[":
        return registry.get("json-ld")

    if lowered.startswith(("<!doctype html", "<html")):
        return registry.get("html")

    if lowered.startswith(("<?xml", "<rdf:rdf", "<ontology", "<!doctype")):
        if "<!doctype html" in lowered or "<html" in lowered:
            return registry.get("html")
        if "<ontology" in lowered and "<rdf:rdf" not in lowered:
            return registry.get("owl-xml")
        return registry.get("rdf-xml")

    if _OWL_FUNCTIONAL.search(text):
        return registry.get("owl-functional")
    if _MANCHESTER.search(text):
        return registry.get("manchester")

    if _TURTLE_DIRECTIVE.search(text):
        if _TRIG_GRAPH.search(text):
            return registry.get("trig")
        if _N3_MARKER.search(text):
            return registry.get("n3")
        return registry.get("turtle")

    match = _STATEMENT.match(_first_line(text))
    if match:
        return registry.get("n-quads" if match.group(3) else "n-triples")

    if _TRIG_GRAPH.search(text):
        return registry.get("trig")

    return None


def identify(
    sample: bytes,
    file_name: str | None = None,
    declared_media_type: str | None = None,
    *,
    registry: FormatRegistry,
    sniff_bytes: int = DEFAULT_SNIFF_BYTES,
) -> Format | None:
    """Resolve the most likely format of a document.

    Args:
        sample: Document bytes; only the first ``sniff_bytes`` are read
        file_name: File name, path or URL of the document
        declared_media_type: Media type declared by the source (Content-Type)
        registry: Format catalogue to resolve against
        sniff_bytes: Size of the content sniffing window

    Returns:
        The identified Format, or None when no signal matches
    """
    fmt = registry.by_media_type(declared_media_type)
    if fmt is not None:
        return fmt

    fmt = sniff(sample[:sniff_bytes], registry)
    if fmt is not None:
        return fmt

    return registry.by_extension(file_name)
