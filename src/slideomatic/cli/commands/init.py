"""Implementation of the `slideomatic init` command."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from slideomatic.core.deck import SlideType
from slideomatic.core.persistence import DECK_FILE, new_deck, save_deck
from slideomatic.core.templates import slide_template

console = Console()


def init_command(
    folder: str | None = typer.Argument(
        None,
        help="Optional deck folder (creates ./<folder>/deck.json when provided).",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing deck file.",
    ),
) -> None:
    """Initialize a new deck in the current directory."""
    deck_path = (Path(folder) / DECK_FILE) if folder else DECK_FILE

    if deck_path.exists() and not force:
        console.print(f"[bold red]{deck_path} already exists. Use --force to overwrite.[/]")
        raise typer.Exit(code=1)

    deck = new_deck()
    deck.add_slide(slide_template(SlideType.TITLE))
    save_deck(deck, deck_path)

    console.print(
        f"[bold green]Initialized deck '{deck.meta.name}' at {deck_path.resolve()}[/]"
    )
