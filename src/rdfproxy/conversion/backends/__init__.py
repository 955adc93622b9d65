"""Converter backends.

- NativeBackend: in-process conversion with rdflib
- ExternalBackend: command-line converters run as child processes
"""

from rdfproxy.conversion.backends.base import BackendKind, ConverterBackend
from rdfproxy.conversion.backends.external import (
    BUILTIN_TOOLS,
    CommandSpec,
    ExternalBackend,
    ToolDefinition,
    load_external_backends,
)
from rdfproxy.conversion.backends.native import NativeBackend

__all__ = [
    "BackendKind",
    "ConverterBackend",
    "NativeBackend",
    "ExternalBackend",
    "CommandSpec",
    "ToolDefinition",
    "BUILTIN_TOOLS",
    "load_external_backends",
]
