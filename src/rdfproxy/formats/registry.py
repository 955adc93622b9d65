"""Catalogue of known RDF serialization formats.

The registry is built once at startup and is read-only afterwards. It maps
media types (canonical and aliases) and file extensions to Formats and
parses HTTP Accept headers into a target Format.

Example:
    from rdfproxy.formats.registry import default_registry

    registry = default_registry()
    turtle = registry["turtle"]
    registry.by_media_type("application/x-turtle")  # -> turtle
    registry.from_accept("text/html,*/*;q=0.8", default="turtle")  # -> html
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator
from urllib.parse import unquote, urlsplit

from rdfproxy.errors import UnsupportedMediaTypeError


class Capability(str, Enum):
    """What the installed backends can do with a format."""

    NATIVE_READABLE = "native-readable"
    NATIVE_WRITABLE = "native-writable"
    HTML_TARGET_ONLY = "html-target-only"
    REQUIRES_EXTERNAL_TOOL = "requires-external-tool"


# Media types that say nothing about the serialization
NO_SIGNAL_MEDIA_TYPES = frozenset({"text/plain", "application/octet-stream", "*/*"})


def normalize_media_type(value: str) -> str:
    """Strip parameters and lower-case the media type essence."""
    return value.split(";", 1)[0].strip().lower()


def extension_of(name: str) -> str | None:
    """Return the lower-cased extension of a file name, path or URL."""
    if "://" in name:
        name = urlsplit(name).path
    base = posixpath.basename(unquote(name))
    if "." not in base.strip("."):
        return None
    return base.rsplit(".", 1)[1].lower() or None


@dataclass(frozen=True)
class Format:
    """A serialization format. Equality and hashing use the id only."""

    id: str
    canonical_media_type: str = field(compare=False)
    aliases: frozenset[str] = field(default=frozenset(), compare=False)
    extensions: tuple[str, ...] = field(default=(), compare=False)
    capabilities: frozenset[Capability] = field(default=frozenset(), compare=False)
    label: str = field(default="", compare=False)
    rdflib_name: str | None = field(default=None, compare=False)
    quads: bool = field(default=False, compare=False)

    @property
    def media_types(self) -> frozenset[str]:
        """Canonical media type plus aliases."""
        return self.aliases | {self.canonical_media_type}

    @property
    def primary_extension(self) -> str:
        return self.extensions[0] if self.extensions else self.id

    @property
    def native_readable(self) -> bool:
        return Capability.NATIVE_READABLE in self.capabilities

    @property
    def native_writable(self) -> bool:
        return Capability.NATIVE_WRITABLE in self.capabilities

    @property
    def html_target_only(self) -> bool:
        return Capability.HTML_TARGET_ONLY in self.capabilities

    @property
    def requires_external_tool(self) -> bool:
        return Capability.REQUIRES_EXTERNAL_TOOL in self.capabilities

    def __str__(self) -> str:
        return self.id


_NATIVE = frozenset({Capability.NATIVE_READABLE, Capability.NATIVE_WRITABLE})
_EXTERNAL = frozenset({Capability.REQUIRES_EXTERNAL_TOOL})

TURTLE = Format(
    id="turtle",
    canonical_media_type="text/turtle",
    aliases=frozenset({"application/x-turtle"}),
    extensions=("ttl",),
    capabilities=_NATIVE,
    label="Turtle",
    rdflib_name="turtle",
)
N_TRIPLES = Format(
    id="n-triples",
    canonical_media_type="application/n-triples",
    extensions=("nt",),
    capabilities=_NATIVE,
    label="N-Triples",
    rdflib_name="nt",
)
RDF_XML = Format(
    id="rdf-xml",
    canonical_media_type="application/rdf+xml",
    aliases=frozenset({"application/xml", "text/xml"}),
    extensions=("rdf", "rdfs", "owl", "xml"),
    capabilities=_NATIVE,
    label="RDF/XML",
    rdflib_name="xml",
)
JSON_LD = Format(
    id="json-ld",
    canonical_media_type="application/ld+json",
    aliases=frozenset({"application/json-ld", "text/json-ld"}),
    extensions=("jsonld", "json"),
    capabilities=_NATIVE,
    label="JSON-LD",
    rdflib_name="json-ld",
    quads=True,
)
TRIG = Format(
    id="trig",
    canonical_media_type="application/trig",
    aliases=frozenset({"text/trig", "application/x-trig"}),
    extensions=("trig",),
    capabilities=_NATIVE,
    label="TriG",
    rdflib_name="trig",
    quads=True,
)
N_QUADS = Format(
    id="n-quads",
    canonical_media_type="application/n-quads",
    aliases=frozenset({"text/n-quads", "text/x-nquads"}),
    extensions=("nq",),
    capabilities=_NATIVE,
    label="N-Quads",
    rdflib_name="nquads",
    quads=True,
)
N3 = Format(
    id="n3",
    canonical_media_type="text/n3",
    aliases=frozenset({"text/rdf+n3"}),
    extensions=("n3",),
    capabilities=_NATIVE,
    label="Notation3",
    rdflib_name="n3",
)
OWL_XML = Format(
    id="owl-xml",
    canonical_media_type="application/owl+xml",
    extensions=("owx",),
    capabilities=_EXTERNAL,
    label="OWL/XML",
)
OWL_FUNCTIONAL = Format(
    id="owl-functional",
    canonical_media_type="text/owl-functional",
    aliases=frozenset({"application/owl+functional"}),
    extensions=("ofn",),
    capabilities=_EXTERNAL,
    label="OWL Functional Syntax",
)
MANCHESTER = Format(
    id="manchester",
    canonical_media_type="text/owl-manchester",
    extensions=("omn",),
    capabilities=_EXTERNAL,
    label="OWL Manchester Syntax",
)
HTML = Format(
    id="html",
    canonical_media_type="text/html",
    aliases=frozenset({"application/xhtml+xml"}),
    extensions=("html", "htm", "xhtml"),
    capabilities=frozenset({Capability.HTML_TARGET_ONLY, Capability.REQUIRES_EXTERNAL_TOOL}),
    label="HTML documentation",
)

DEFAULT_FORMATS: tuple[Format, ...] = (
    TURTLE,
    N_TRIPLES,
    RDF_XML,
    JSON_LD,
    TRIG,
    N_QUADS,
    N3,
    OWL_XML,
    OWL_FUNCTIONAL,
    MANCHESTER,
    HTML,
)


class FormatRegistry:
    """Lookup tables over a fixed set of formats."""

    def __init__(self, formats: Iterable[Format]) -> None:
        self._formats: dict[str, Format] = {}
        self._by_media_type: dict[str, Format] = {}
        self._by_extension: dict[str, Format] = {}

        for fmt in formats:
            if fmt.id in self._formats:
                raise ValueError(f"Duplicate format id: {fmt.id}")
            self._formats[fmt.id] = fmt
            for media_type in sorted(fmt.media_types):
                key = normalize_media_type(media_type)
                if key in NO_SIGNAL_MEDIA_TYPES:
                    raise ValueError(f"{fmt.id}: '{media_type}' cannot identify a format")
                existing = self._by_media_type.setdefault(key, fmt)
                if existing is not fmt:
                    raise ValueError(
                        f"Media type '{media_type}' claimed by both {existing.id} and {fmt.id}"
                    )
            # First registration wins for shared extensions
            for ext in fmt.extensions:
                self._by_extension.setdefault(ext.lower(), fmt)

    def __iter__(self) -> Iterator[Format]:
        return iter(self._formats.values())

    def __len__(self) -> int:
        return len(self._formats)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Format):
            return item.id in self._formats
        return item in self._formats

    def __getitem__(self, format_id: str) -> Format:
        return self._formats[format_id]

    def get(self, format_id: str) -> Format | None:
        return self._formats.get(format_id)

    def by_media_type(self, media_type: str | None) -> Format | None:
        """Exact alias match on the media type essence."""
        if not media_type:
            return None
        key = normalize_media_type(media_type)
        if key in NO_SIGNAL_MEDIA_TYPES:
            return None
        return self._by_media_type.get(key)

    def by_extension(self, name: str | None) -> Format | None:
        """Look up a format by the extension of a file name, path or URL."""
        if not name:
            return None
        ext = extension_of(name)
        if ext is None:
            return None
        return self._by_extension.get(ext)

    def from_accept(self, accept: str | None, default: str) -> Format:
        """Map an Accept header to the best matching format.

        Entries are ranked by their q value, keeping header order between
        equal values. ``*/*`` and a missing header select ``default``.

        Raises:
            UnsupportedMediaTypeError: If no entry maps to a known format
        """
        if accept is None or not accept.strip():
            return self[default]

        ranked: list[tuple[float, int, str]] = []
        for position, part in enumerate(accept.split(",")):
            media_type, _, params = part.partition(";")
            media_type = media_type.strip().lower()
            if not media_type:
                continue
            quality = _quality(params)
            if quality is None or quality <= 0:
                continue
            ranked.append((-quality, position, media_type))

        for _, _, media_type in sorted(ranked):
            if media_type == "*/*":
                return self[default]
            fmt = self.by_media_type(media_type)
            if fmt is not None:
                return fmt

        raise UnsupportedMediaTypeError(accept.strip())


def _quality(params: str) -> float | None:
    """Parse the q parameter of an Accept entry, None when malformed."""
    for param in params.split(";"):
        name, _, value = param.partition("=")
        if name.strip().lower() == "q":
            try:
                return float(value.strip())
            except ValueError:
                return None
    return 1.0


def default_registry() -> FormatRegistry:
    """Registry holding the built-in format catalogue."""
    return FormatRegistry(DEFAULT_FORMATS)
