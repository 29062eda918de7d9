"""Main Typer application definition."""

from __future__ import annotations

import typer
from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from slideomatic.cli.commands.images import (
    images_command,
    ingest_command,
    remove_image_command,
    swap_images_command,
)
from slideomatic.cli.commands.init import init_command
from slideomatic.cli.commands.serve import serve_command
from slideomatic.cli.commands.share import share_command
from slideomatic.cli.commands.slides import (
    add_command,
    move_command,
    remove_command,
    slides_table,
)
from slideomatic.cli.commands.validate import validate_command
from slideomatic.cli.errors import render_cli_error
from slideomatic.cli.session import has_local_deck
from slideomatic.core.config import load_global_config, resolve_api_base_url
from slideomatic.core.persistence import DECK_FILE, LEGACY_DECK_FILE, load_deck
from slideomatic.core.scanner import scan
from slideomatic.utils.logger import configure_logging

console = Console()
app = typer.Typer(
    help="Build slide decks and manage their image assets.",
    invoke_without_command=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Emit logs in a JSON-friendly format."
    ),
) -> None:
    """Configure the runtime environment for all commands."""
    load_dotenv()
    configure_logging(verbose=verbose, json_output=json_output)
    ctx.obj = ctx.obj or {}
    ctx.obj["config"] = load_global_config()
    if ctx.resilient_parsing or ctx.invoked_subcommand is not None:
        return
    if not has_local_deck():
        console.print(ctx.get_help())
        raise typer.Exit()

    _render_deck_summary(ctx)
    console.print("[dim]Use [bold]slideomatic --help[/] for help.[/]")
    raise typer.Exit()


app.command("init")(init_command)
app.command("add")(add_command)
app.command("remove")(remove_command)
app.command("move")(move_command)
app.command("images")(images_command)
app.command("ingest")(ingest_command)
app.command("remove-image")(remove_image_command)
app.command("swap-images")(swap_images_command)
app.command("share")(share_command)
app.command("validate")(validate_command)
app.command("serve")(serve_command)


def _render_deck_summary(ctx: typer.Context) -> None:
    deck = load_deck()
    deck_path = DECK_FILE.resolve() if DECK_FILE.exists() else LEGACY_DECK_FILE.resolve()
    images = scan(deck)
    remote = sum(1 for entry in images if entry.image.is_remote)
    inline = sum(1 for entry in images if entry.image.is_inline)

    details = Table.grid(padding=(0, 1))
    details.add_column(style="bold cyan")
    details.add_column()
    details.add_row("Name", deck.meta.name)
    details.add_row("Path", str(deck_path))
    details.add_row("Images", f"{remote} remote, {inline} inline, {len(images)} total")
    details.add_row("Asset server", resolve_api_base_url(ctx.obj["config"]))
    console.print(Panel(details, title="Current deck", border_style="cyan", box=box.ROUNDED))
    console.print(slides_table(deck))


def run() -> None:
    """CLI entrypoint used by console scripts."""
    try:
        app()
    except typer.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt as exc:
        render_cli_error(exc, console=console)
        raise SystemExit(130) from None
    except Exception as exc:
        render_cli_error(exc, console=console)
        raise SystemExit(1) from None
