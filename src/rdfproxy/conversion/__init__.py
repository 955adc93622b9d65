"""Conversion dispatch: path resolution, backends and process execution."""

from rdfproxy.conversion.engine import ConversionEngine, create_engine
from rdfproxy.conversion.graph import ConversionEdge, ConversionGraph, ConversionPath
from rdfproxy.conversion.pipeline import execute_path
from rdfproxy.conversion.process import is_tool_available, run_external

__all__ = [
    "ConversionEdge",
    "ConversionEngine",
    "ConversionGraph",
    "ConversionPath",
    "create_engine",
    "execute_path",
    "is_tool_available",
    "run_external",
]
