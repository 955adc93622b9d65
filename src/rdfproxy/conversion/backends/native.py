"""In-process conversion with rdflib.

Documents are parsed into a Dataset with a union default graph so that
named graphs survive a quad-to-quad conversion. Triple formats are written
from a flattened Graph that keeps the namespace bindings of the source.
"""

from __future__ import annotations

import asyncio

from rdflib import Dataset, Graph

from rdfproxy.conversion.backends.base import BackendKind, ConverterBackend
from rdfproxy.errors import ConversionError
from rdfproxy.formats.registry import Format


def parse_dataset(payload: bytes, source: Format) -> Dataset:
    """Parse a payload into a Dataset."""
    dataset = Dataset(default_union=True)
    # Unnamed triples land in the default graph
    dataset.default_graph.parse(data=payload, format=source.rdflib_name)
    return dataset


def flatten(dataset: Dataset) -> Graph:
    """Merge all graphs of a dataset into one Graph."""
    graph = Graph()
    for prefix, namespace in dataset.namespaces():
        graph.bind(prefix, namespace, override=False)
    for triple in dataset.triples((None, None, None)):
        graph.add(triple)
    return graph


class NativeBackend(ConverterBackend):
    """rdflib parser and serializer."""

    name = "rdflib"
    kind = BackendKind.NATIVE

    def can_convert(self, source: Format, target: Format) -> bool:
        return (
            source.native_readable
            and target.native_writable
            and source.rdflib_name is not None
            and target.rdflib_name is not None
        )

    async def _convert(self, payload: bytes, source: Format, target: Format) -> bytes:
        return await asyncio.to_thread(self.convert_sync, payload, source, target)

    def convert_sync(self, payload: bytes, source: Format, target: Format) -> bytes:
        """Blocking conversion, also used by the offline CLI."""
        try:
            dataset = parse_dataset(payload, source)
        except Exception as e:
            raise ConversionError(
                f"failed to parse {source.label or source.id}: {e}", self.name
            ) from e

        try:
            if target.quads:
                return dataset.serialize(format=target.rdflib_name, encoding="utf-8")
            return flatten(dataset).serialize(format=target.rdflib_name, encoding="utf-8")
        except Exception as e:
            raise ConversionError(
                f"failed to serialize {target.label or target.id}: {e}", self.name
            ) from e
