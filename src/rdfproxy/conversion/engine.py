"""Conversion engine: registry, backends and resolved paths in one place.

The engine is built once at startup and is read-only afterwards.
"""

from __future__ import annotations

import logging
from typing import Sequence

from rdfproxy.config import Settings
from rdfproxy.conversion.backends.base import BackendKind, ConverterBackend
from rdfproxy.conversion.backends.external import load_external_backends
from rdfproxy.conversion.backends.native import NativeBackend
from rdfproxy.conversion.graph import ConversionEdge, ConversionGraph, ConversionPath
from rdfproxy.conversion.pipeline import execute_path
from rdfproxy.formats.registry import Format, FormatRegistry, default_registry

logger = logging.getLogger(__name__)


class ConversionEngine:
    """Resolves and executes conversions between registry formats."""

    def __init__(self, registry: FormatRegistry, backends: Sequence[ConverterBackend]) -> None:
        self.registry = registry
        self.backends = list(backends)
        self.graph = ConversionGraph.build(registry, self.backends)
        self.unreachable = self.graph.validate()

    def resolve(self, source: Format, target: Format) -> ConversionPath:
        return self.graph.resolve(source, target)

    def canonical_path(self, fmt: Format) -> ConversionPath | None:
        """Single-hop path re-serializing a format through a native backend.

        Returns None when no native backend reads and writes the format.
        """
        for backend in self.backends:
            if backend.kind is BackendKind.NATIVE and backend.can_convert(fmt, fmt):
                edge = ConversionEdge(fmt, fmt, backend, backend.cost, index=-1)
                return ConversionPath(fmt, fmt, (edge,))
        return None

    async def convert(self, payload: bytes, source: Format, target: Format) -> bytes:
        """Resolve a path and run it."""
        path = self.resolve(source, target)
        logger.info("Converting via %s", path.describe())
        return await execute_path(path, payload)


def create_engine(
    settings: Settings,
    registry: FormatRegistry | None = None,
    extra_backends: Sequence[ConverterBackend] = (),
) -> ConversionEngine:
    """Build the engine from configuration.

    The native backend registers first, then the configured external tools
    in their configured order, then ``extra_backends``.

    Raises:
        SpawnError: If external tools are required but missing
    """
    registry = registry or default_registry()
    backends: list[ConverterBackend] = [NativeBackend()]
    backends.extend(
        load_external_backends(
            settings.external_tool_names,
            timeout=settings.tool_timeout,
            stderr_limit=settings.stderr_excerpt_bytes,
            require=settings.require_external_tools,
        )
    )
    backends.extend(extra_backends)
    return ConversionEngine(registry, backends)
