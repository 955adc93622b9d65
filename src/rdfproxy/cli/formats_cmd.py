"""CLI command listing formats and available conversions.

Usage:
    rdfproxy formats
"""

from __future__ import annotations

import typer

from rdfproxy.config import settings
from rdfproxy.conversion.engine import create_engine

app = typer.Typer(help="List known formats and available conversions")


@app.callback(invoke_without_command=True)
def formats() -> None:
    """Show the format catalogue and what each format converts to."""
    from rich.console import Console
    from rich.table import Table

    console = Console()
    engine = create_engine(settings)

    table = Table(title="Formats")
    table.add_column("Id", style="cyan")
    table.add_column("Media type")
    table.add_column("Extensions")
    table.add_column("Capabilities")
    table.add_column("Converts to")

    for fmt in engine.registry:
        targets = engine.graph.reachable_from(fmt)
        table.add_row(
            fmt.id,
            fmt.canonical_media_type,
            ", ".join(fmt.extensions),
            ", ".join(sorted(c.value for c in fmt.capabilities)),
            ", ".join(t.id for t in targets) or "-",
        )
    console.print(table)

    backends = ", ".join(f"{b.name} ({b.kind.value})" for b in engine.backends)
    console.print(f"Backends: {backends}")
    if engine.unreachable:
        missing = ", ".join(f.id for f in engine.unreachable)
        console.print(f"[yellow]No installed backend produces: {missing}[/yellow]")
