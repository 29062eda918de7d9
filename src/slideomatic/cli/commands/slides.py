"""Slide add/remove/move command implementations."""

from __future__ import annotations

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from slideomatic.cli.session import asset_session, load_local_deck, resolve_config
from slideomatic.core.deck import Deck, SlideType
from slideomatic.core.persistence import save_deck
from slideomatic.core.scanner import collect_image_paths
from slideomatic.core.templates import slide_template

console = Console()


def add_command(
    slide_type: SlideType = typer.Argument(..., help="Slide layout to add."),
    position: int | None = typer.Option(
        None, "--position", "-p", help="1-based position (defaults to the end)."
    ),
) -> None:
    """Append a blank slide built from a layout template."""
    try:
        slide = slide_template(slide_type)
    except ValueError as exc:
        console.print(f"[bold red]{exc}[/]")
        raise typer.Exit(code=1) from exc

    deck = load_local_deck()
    index = deck.add_slide(slide, position=None if position is None else position - 1)
    save_deck(deck)
    console.print(
        Panel.fit(
            f"[bold green]Added {slide_type.value} slide[/]\nPosition: [bold]{index + 1}[/]",
            title="slideomatic",
            border_style="green",
        )
    )
    console.print(slides_table(deck))


def remove_command(
    ctx: typer.Context,
    slide_number: int = typer.Argument(..., help="1-based position of the slide to remove."),
) -> None:
    """Remove a slide and release the images it referenced."""
    deck = load_local_deck()
    if not 1 <= slide_number <= len(deck.slides):
        console.print(f"[bold red]Slide {slide_number} does not exist.[/]")
        raise typer.Exit(code=1)

    with asset_session(resolve_config(ctx), deck) as manager:
        removed = manager.remove_slide(slide_number - 1)

    console.print(
        Panel.fit(
            f"[bold green]Removed slide[/]\n"
            f"Type: [bold]{removed.type.value}[/]\n"
            f"Previous position: [bold]{slide_number}[/]",
            title="slideomatic",
            border_style="green",
        )
    )
    console.print(slides_table(deck))


def move_command(
    slide_number: int = typer.Argument(..., help="1-based position of the slide to move."),
    new_pos: int = typer.Argument(..., help="New 1-based position for the slide."),
) -> None:
    """Move a slide to a new position."""
    deck = load_local_deck()
    if not 1 <= slide_number <= len(deck.slides):
        console.print(f"[bold red]Slide {slide_number} does not exist.[/]")
        raise typer.Exit(code=1)
    if slide_number == new_pos:
        console.print(f"[yellow]Slide {slide_number} is already at position {new_pos}.[/]")
        return
    try:
        current_pos, new_pos = deck.move_slide(slide_number - 1, new_pos)
    except ValueError as exc:
        console.print(f"[bold red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    save_deck(deck)

    console.print(
        Panel.fit(
            f"[bold green]Moved slide[/]\nFrom: [bold]{current_pos}[/]\nTo: [bold]{new_pos}[/]",
            title="slideomatic",
            border_style="green",
        )
    )
    console.print(slides_table(deck))


def slides_table(deck: Deck) -> Table:
    table = Table(title="Slides", box=box.ROUNDED, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Images", justify="right")
    if not deck.slides:
        table.add_row("-", "[dim](no slides left)[/]", "-", "-")
        return table
    for position, slide in enumerate(deck.slides, start=1):
        table.add_row(
            str(position),
            slide.type.value,
            slide.title_text or "-",
            str(len(collect_image_paths(slide))),
        )
    return table
