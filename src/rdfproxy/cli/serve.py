"""CLI command for running the API server.

Usage:
    rdfproxy serve
    rdfproxy serve --port 8080 --host 0.0.0.0
    rdfproxy serve --reload --log-level debug
"""

from __future__ import annotations

import typer

from rdfproxy.config import settings

app = typer.Typer(help="Run the rdfproxy API server")


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(
        settings.host,
        "--host",
        "-h",
        help="Host to bind to",
    ),
    port: int = typer.Option(
        settings.port,
        "--port",
        "-p",
        help="Port to listen on",
    ),
    reload: bool = typer.Option(
        False,
        "--reload",
        "-r",
        help="Enable auto-reload for development",
    ),
    log_level: str = typer.Option(
        "info",
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
    access_log: bool = typer.Option(
        True,
        "--access-log/--no-access-log",
        help="Enable/disable access logging",
    ),
) -> None:
    """Run the rdfproxy API server.

    Starts the uvicorn server with the FastAPI application.
    """
    import uvicorn

    typer.echo("Starting rdfproxy server...")
    typer.echo(f"  Host: {host}")
    typer.echo(f"  Port: {port}")
    typer.echo(f"  Log level: {log_level}")
    typer.echo(f"  Cache: {settings.cache_backend}")
    if reload:
        typer.echo("  Reload: enabled")
    typer.echo()
    typer.echo(f"Try: http://{host}:{port}/?uri=https://www.w3.org/2002/07/owl")
    typer.echo()

    uvicorn.run(
        app="rdfproxy.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
        access_log=access_log,
    )
