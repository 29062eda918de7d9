"""Implementation of the `slideomatic share` command."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.panel import Panel

from slideomatic.cli.session import load_local_deck, open_store, resolve_config
from slideomatic.core.images import format_bytes
from slideomatic.core.scanner import scan

console = Console()


def share_command(
    ctx: typer.Context,
    title: str | None = typer.Option(None, "--title", help="Title shown on the shared deck."),
) -> None:
    """Publish the deck and print a share link."""
    deck = load_local_deck()
    inline_count = sum(1 for entry in scan(deck, strict=True) if entry.image.is_inline)
    payload = {
        "slides": [slide.to_payload() for slide in deck.slides],
        "theme": deck.model_extra.get("theme") if deck.model_extra else None,
        "meta": {"title": title or deck.meta.name},
    }

    with open_store(resolve_config(ctx)) as store:
        with console.status("Publishing deck..."):
            result = store.publish_share(payload)

    lines = [
        "[bold green]Deck shared[/]",
        f"ID: [bold]{result.id}[/]",
        f"Size: [bold]{format_bytes(result.bytes)}[/]",
    ]
    if inline_count:
        lines.append(f"Uploaded {inline_count} inline image(s) with the share.")
    if result.share_url:
        lines.append(f"Link: [bold cyan]{result.share_url}[/]")
    console.print(Panel.fit("\n".join(lines), title="slideomatic", border_style="green"))
