"""Format registry and identification."""

from rdfproxy.formats.identify import DEFAULT_SNIFF_BYTES, identify, sniff
from rdfproxy.formats.registry import (
    DEFAULT_FORMATS,
    Capability,
    Format,
    FormatRegistry,
    default_registry,
    normalize_media_type,
)

__all__ = [
    "Capability",
    "Format",
    "FormatRegistry",
    "DEFAULT_FORMATS",
    "DEFAULT_SNIFF_BYTES",
    "default_registry",
    "identify",
    "normalize_media_type",
    "sniff",
]
