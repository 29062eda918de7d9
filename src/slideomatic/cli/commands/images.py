"""Image listing, ingest and removal commands."""

from __future__ import annotations

import mimetypes
from pathlib import Path

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from slideomatic.cli.session import asset_session, load_local_deck, resolve_config
from slideomatic.core.deck import Deck
from slideomatic.core.images import format_bytes
from slideomatic.core.scanner import ImageLocation, collect_image_paths, locate_image, scan

console = Console()


def images_command(
    slide_number: int | None = typer.Option(
        None, "--slide", "-s", help="Only list images of this 1-based slide."
    ),
) -> None:
    """List every image reference in the deck in scan order."""
    deck = load_local_deck()
    table = Table(title="Images", box=box.ROUNDED, header_style="bold")
    table.add_column("Slide", justify="right")
    table.add_column("#", justify="right")
    table.add_column("Path")
    table.add_column("Storage")
    table.add_column("Asset")
    table.add_column("Size", justify="right")

    counters: dict[int, int] = {}
    for entry in scan(deck):
        slide_index = entry.location.slide_index
        image_index = counters.get(slide_index, 0)
        counters[slide_index] = image_index + 1
        if slide_number is not None and slide_index != slide_number - 1:
            continue
        image = entry.image
        if image.is_placeholder:
            storage = "[dim]empty[/]"
        elif image.is_remote:
            storage = "remote"
        elif image.is_inline:
            storage = "[yellow]inline[/]"
        else:
            storage = "url"
        table.add_row(
            str(slide_index + 1),
            str(image_index + 1),
            str(entry.location),
            storage,
            image.asset_id or "-",
            format_bytes(image.compressed_size) or "-",
        )
    if not table.rows:
        table.add_row("-", "-", "[dim](no images)[/]", "-", "-", "-")
    console.print(table)


def ingest_command(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Image file to add."),
    slide_number: int = typer.Option(..., "--slide", "-s", help="1-based slide position."),
    image_number: int = typer.Option(
        1, "--image", "-i", help="1-based image slot on the slide."
    ),
    alt: str | None = typer.Option(None, "--alt", help="Alt text for the image."),
) -> None:
    """Compress an image, upload it and place it in a slide slot."""
    data = path.read_bytes()
    mime_type, _ = mimetypes.guess_type(str(path))
    deck = load_local_deck()
    location = _resolve_slot(deck, slide_number - 1, image_number - 1)

    with asset_session(resolve_config(ctx), deck) as manager:
        result = manager.place_image(location, data, mime_type or "", path.name)
        if alt is not None:
            manager.update_alt(location, alt)

    reference = result.reference
    lines = [
        "[bold green]Image added[/]",
        f"Slot: [bold]{location}[/]",
        f"Size: [bold]{format_bytes(reference.compressed_size)}[/] "
        f"({reference.compressed_format})",
        f"Storage: [bold]{reference.storage.value if reference.storage else '-'}[/]",
    ]
    if reference.asset_id:
        lines.append(f"Asset: [bold]{reference.asset_id}[/]")
    console.print(Panel.fit("\n".join(lines), title="slideomatic", border_style="green"))
    if result.warning:
        console.print(f"[yellow]{result.warning}[/]")


def remove_image_command(
    ctx: typer.Context,
    slide_number: int = typer.Option(..., "--slide", "-s", help="1-based slide position."),
    image_number: int = typer.Option(..., "--image", "-i", help="1-based image slot."),
) -> None:
    """Clear an image slot; its remote asset is deleted once nothing uses it."""
    deck = load_local_deck()
    try:
        location = locate_image(deck, slide_number - 1, image_number - 1)
    except IndexError as exc:
        console.print(f"[bold red]{exc}[/]")
        raise typer.Exit(code=1) from exc

    with asset_session(resolve_config(ctx), deck) as manager:
        removed = manager.remove_image(slide_number - 1, image_number - 1)

    console.print(
        Panel.fit(
            f"[bold green]Removed image[/]\n"
            f"Slot: [bold]{location}[/]\n"
            f"Asset: [bold]{removed.asset_id or '-'}[/]",
            title="slideomatic",
            border_style="green",
        )
    )


def swap_images_command(
    ctx: typer.Context,
    slide_number: int = typer.Option(..., "--slide", "-s", help="1-based slide position."),
    first: int = typer.Argument(..., help="1-based image slot."),
    second: int = typer.Argument(..., help="1-based image slot to swap with."),
) -> None:
    """Swap two images on the same slide."""
    deck = load_local_deck()
    try:
        with asset_session(resolve_config(ctx), deck) as manager:
            manager.reorder_images(slide_number - 1, first - 1, second - 1)
    except IndexError as exc:
        console.print(f"[bold red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    console.print(f"[bold green]Swapped images {first} and {second} on slide {slide_number}.[/]")


def _resolve_slot(deck: Deck, slide_index: int, image_index: int) -> ImageLocation:
    try:
        slide = deck.slide_at(slide_index)
    except IndexError as exc:
        console.print(f"[bold red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    paths = collect_image_paths(slide)
    if image_index < len(paths):
        return ImageLocation(slide_index=slide_index, path=paths[image_index][0])
    if image_index == 0 and slide.image is None:
        return ImageLocation(slide_index=slide_index, path=("image",))
    console.print(
        f"[bold red]Slide {slide_index + 1} has no image slot {image_index + 1} "
        f"({len(paths)} slot(s)).[/]"
    )
    raise typer.Exit(code=1)
