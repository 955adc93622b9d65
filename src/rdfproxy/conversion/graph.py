"""Conversion graph and path resolution.

Nodes are formats, edges are conversions offered by installed backends.
Edges are created once at startup and weighted by backend kind (native 1,
external 10). ``resolve`` runs a Dijkstra search; equal-cost paths are
ordered by the registration indices of their edges, so the result is
deterministic for a given backend configuration.

HTML-like formats are terminal: no edge leaves them, and only backends
flagged ``html_target_only`` may produce them.
"""

from __future__ import annotations

import heapq
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence

from rdfproxy.conversion.backends.base import ConverterBackend
from rdfproxy.errors import NoPathError
from rdfproxy.formats.registry import Format, FormatRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionEdge:
    """One conversion offered by a backend."""

    source: Format
    target: Format
    backend: ConverterBackend = field(compare=False)
    cost: int
    index: int

    def __str__(self) -> str:
        return f"{self.source.id} -[{self.backend.name}]-> {self.target.id}"


@dataclass(frozen=True)
class ConversionPath:
    """Chain of edges from source to target. Empty for an identity conversion."""

    source: Format
    target: Format
    edges: tuple[ConversionEdge, ...] = ()

    def __post_init__(self) -> None:
        if not self.edges:
            if self.source != self.target:
                raise ValueError("An empty path must convert a format into itself")
            return
        if self.edges[0].source != self.source or self.edges[-1].target != self.target:
            raise ValueError("Path endpoints do not match its edges")
        for current, following in zip(self.edges, self.edges[1:]):
            if current.target != following.source:
                raise ValueError(f"Broken path between {current} and {following}")

    def __len__(self) -> int:
        return len(self.edges)

    def __iter__(self) -> Iterator[ConversionEdge]:
        return iter(self.edges)

    @property
    def is_identity(self) -> bool:
        return not self.edges

    @property
    def cost(self) -> int:
        return sum(edge.cost for edge in self.edges)

    def describe(self) -> str:
        if not self.edges:
            return f"{self.source.id} (identity)"
        parts = [self.source.id]
        for edge in self.edges:
            parts.append(f"-[{edge.backend.name}]-> {edge.target.id}")
        return " ".join(parts)


class ConversionGraph:
    """Static directed graph of available conversions."""

    def __init__(self, registry: FormatRegistry, edges: Sequence[ConversionEdge]) -> None:
        self.registry = registry
        self._edges = tuple(edges)
        self._outbound: dict[str, list[ConversionEdge]] = defaultdict(list)
        self._inbound: dict[str, list[ConversionEdge]] = defaultdict(list)
        for edge in self._edges:
            self._outbound[edge.source.id].append(edge)
            self._inbound[edge.target.id].append(edge)
        self._paths: dict[tuple[str, str], ConversionPath | NoPathError] = {}

    @classmethod
    def build(
        cls, registry: FormatRegistry, backends: Iterable[ConverterBackend]
    ) -> ConversionGraph:
        """Create the edge set from backends, in registration order."""
        edges: list[ConversionEdge] = []
        for backend in backends:
            for source, target in backend.supported_pairs(registry):
                if source.html_target_only:
                    continue
                if target.html_target_only and not backend.html_target_only:
                    continue
                edges.append(
                    ConversionEdge(
                        source=source,
                        target=target,
                        backend=backend,
                        cost=backend.cost,
                        index=len(edges),
                    )
                )
        logger.info("Conversion graph built with %d edges", len(edges))
        return cls(registry, edges)

    @property
    def edges(self) -> tuple[ConversionEdge, ...]:
        return self._edges

    @property
    def backends(self) -> list[ConverterBackend]:
        """Backends contributing at least one edge, in registration order."""
        seen: dict[int, ConverterBackend] = {}
        for edge in self._edges:
            seen.setdefault(id(edge.backend), edge.backend)
        return list(seen.values())

    def edges_from(self, fmt: Format) -> list[ConversionEdge]:
        return list(self._outbound.get(fmt.id, ()))

    def edges_into(self, fmt: Format) -> list[ConversionEdge]:
        return list(self._inbound.get(fmt.id, ()))

    def resolve(self, source: Format, target: Format) -> ConversionPath:
        """Find the cheapest conversion path.

        Raises:
            NoPathError: If no chain of edges reaches the target
        """
        key = (source.id, target.id)
        cached = self._paths.get(key)
        if cached is None:
            try:
                cached = self._search(source, target)
            except NoPathError as e:
                cached = e
            self._paths[key] = cached

        if isinstance(cached, NoPathError):
            raise NoPathError(cached.source_id, cached.target_id, cached.reason)
        return cached

    def _search(self, source: Format, target: Format) -> ConversionPath:
        for fmt in (source, target):
            if fmt not in self.registry:
                raise NoPathError(source.id, target.id, f"unknown format '{fmt.id}'")

        if source == target:
            return ConversionPath(source, target)

        # (cost, edge indices, node id); indices break ties by registration order
        queue: list[tuple[int, tuple[int, ...], str]] = [(0, (), source.id)]
        visited: set[str] = set()

        while queue:
            cost, indices, node = heapq.heappop(queue)
            if node == target.id:
                return ConversionPath(source, target, tuple(self._edges[i] for i in indices))
            if node in visited:
                continue
            visited.add(node)
            if self.registry[node].html_target_only:
                continue
            for edge in self._outbound.get(node, ()):
                # Never revisit a node: rejects cycles in the edge set
                if edge.target.id in visited:
                    continue
                heapq.heappush(queue, (cost + edge.cost, indices + (edge.index,), edge.target.id))

        reason = None if self._inbound.get(target.id) else "no installed backend produces it"
        raise NoPathError(source.id, target.id, reason)

    def reachable_from(self, source: Format) -> list[Format]:
        """Formats reachable from ``source``, excluding itself, in registry order."""
        seen = {source.id}
        stack = [source.id]
        while stack:
            node = stack.pop()
            if self.registry[node].html_target_only:
                continue
            for edge in self._outbound.get(node, ()):
                if edge.target.id not in seen:
                    seen.add(edge.target.id)
                    stack.append(edge.target.id)
        return [fmt for fmt in self.registry if fmt.id in seen and fmt != source]

    def validate(self) -> list[Format]:
        """Report formats no installed backend can produce.

        Resolution to any of them fails with NoPathError.
        """
        unreachable = [fmt for fmt in self.registry if not self._inbound.get(fmt.id)]
        for fmt in unreachable:
            logger.warning(
                "No installed backend produces %s (%s); conversions to it will fail",
                fmt.id,
                fmt.canonical_media_type,
            )
        return unreachable
