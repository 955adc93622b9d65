"""CLI commands for rdfproxy.

Provides command-line interface using Typer:
- rdfproxy serve: Run the API server
- rdfproxy convert: Convert a local document
- rdfproxy formats: List formats and available conversions

Usage:
    rdfproxy --help
    rdfproxy serve --port 3000
    rdfproxy convert ontology.ttl --to json-ld
    rdfproxy formats
"""

import typer

from rdfproxy.cli.convert_cmd import convert
from rdfproxy.cli.formats_cmd import app as formats_app
from rdfproxy.cli.serve import app as serve_app

# Main CLI application
app = typer.Typer(
    name="rdfproxy",
    help="rdfproxy: caching RDF fetch-and-convert proxy",
    no_args_is_help=True,
)

# Add subcommands
app.add_typer(serve_app, name="serve")
app.add_typer(formats_app, name="formats")
# A plain command, so options may follow the input path
app.command(name="convert", help="Convert a local RDF document")(convert)


@app.callback()
def callback() -> None:
    """rdfproxy: caching RDF fetch-and-convert proxy."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
