"""Implementation of the `slideomatic validate` command."""

from __future__ import annotations

import json
from pathlib import Path

import typer
import yaml
from rich.console import Console

from slideomatic.core.persistence import DECK_FILE
from slideomatic.core.validation import validate_slides

console = Console()


def validate_command(
    path: Path = typer.Argument(DECK_FILE, help="Deck or slide-array file to check."),
) -> None:
    """Check slide structure and image references without modifying the file."""
    if not path.exists():
        console.print(f"[bold red]{path} not found.[/]")
        raise typer.Exit(code=1)

    raw_text = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw_text) if path.suffix.lower() == ".json" else yaml.safe_load(raw_text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        console.print(f"[bold red]{path} could not be parsed: {exc}[/]")
        raise typer.Exit(code=1) from exc

    slides = payload.get("slides") if isinstance(payload, dict) else payload
    try:
        validated = validate_slides(slides)
    except ValueError as exc:
        console.print(f"[bold red]Invalid deck: {exc}[/]")
        raise typer.Exit(code=1) from exc
    console.print(f"[bold green]{path} is valid ({len(validated)} slide(s)).[/]")
