"""CLI command for converting a local file.

Uses the same registry, conversion graph and backends as the server, without
the cache.

Usage:
    rdfproxy convert ontology.ttl --to rdf-xml
    rdfproxy convert ontology.owl --to html --output ontology.html
    rdfproxy convert data.txt --from turtle --to application/ld+json
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import typer

from rdfproxy.config import settings
from rdfproxy.conversion.engine import create_engine
from rdfproxy.errors import RdfProxyError
from rdfproxy.formats.identify import identify
from rdfproxy.formats.registry import Format, FormatRegistry, default_registry


def lookup_format(registry: FormatRegistry, value: str) -> Format | None:
    """Find a format by id, media type or file extension."""
    return (
        registry.get(value)
        or registry.by_media_type(value)
        or registry.by_extension(f"document.{value.lstrip('.')}")
    )


def convert(
    input_path: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Document to convert",
    ),
    target: str = typer.Option(
        ...,
        "--to",
        "-t",
        help="Target format (id, media type or extension)",
    ),
    source: str | None = typer.Option(
        None,
        "--from",
        "-f",
        help="Source format; identified from content and extension when omitted",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file (default: stdout)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show the conversion path",
    ),
) -> None:
    """Convert a document between RDF serializations."""
    registry = default_registry()

    target_format = lookup_format(registry, target)
    if target_format is None:
        typer.echo(f"Error: unknown target format '{target}'", err=True)
        raise typer.Exit(code=2)

    payload = input_path.read_bytes()
    if source is not None:
        source_format = lookup_format(registry, source)
        if source_format is None:
            typer.echo(f"Error: unknown source format '{source}'", err=True)
            raise typer.Exit(code=2)
    else:
        source_format = identify(
            payload,
            file_name=input_path.name,
            registry=registry,
            sniff_bytes=settings.sniff_bytes,
        )
        if source_format is None:
            typer.echo(
                f"Error: cannot identify the format of {input_path}; use --from", err=True
            )
            raise typer.Exit(code=2)

    try:
        engine = create_engine(settings, registry)
        path = engine.resolve(source_format, target_format)
        if verbose:
            typer.echo(f"Conversion path: {path.describe()}", err=True)
        result = asyncio.run(engine.convert(payload, source_format, target_format))
    except RdfProxyError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    if output is None:
        sys.stdout.buffer.write(result)
        sys.stdout.buffer.flush()
    else:
        output.write_bytes(result)
        if verbose:
            typer.echo(f"Wrote {len(result)} bytes to {output}", err=True)
