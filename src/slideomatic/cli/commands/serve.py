"""Implementation of the `slideomatic serve` command."""

from __future__ import annotations

from pathlib import Path

import typer
import uvicorn
from rich.console import Console

from slideomatic.cli.session import resolve_config
from slideomatic.server.app import create_app

console = Console()


def serve_command(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(8787, "--port", help="Port to listen on."),
    data_dir: Path | None = typer.Option(
        None, "--data-dir", help="Blob storage directory (defaults to the configured one)."
    ),
) -> None:
    """Run the asset and share server."""
    settings = resolve_config(ctx).server
    app = create_app(settings, data_dir=data_dir)
    console.print(
        f"[bold green]Serving assets from {app.state.assets.root.parent} "
        f"on http://{host}:{port}[/]"
    )
    uvicorn.run(app, host=host, port=port, log_config=None)
