"""Local deck file helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
import uuid

import yaml

from slideomatic.core.deck import Deck, DeckMeta
from slideomatic.core.scanner import scan

DECK_FILE = Path("deck.json")
LEGACY_DECK_FILE = Path("deck.yaml")


def generate_deck_id() -> str:
    """Return a fresh deck identifier."""
    return f"deck-{uuid.uuid4()}"


def load_deck(path: Path = DECK_FILE) -> Deck:
    """Load a deck from disk.

    Accepts the versioned payload or a bare slide array, and reads a legacy
    YAML file next to `path` when the JSON file does not exist yet.
    """
    source_path = _resolve_deck_path(path)
    raw_data = _load_payload(source_path)
    if isinstance(raw_data, list):
        raw_data = {"slides": raw_data}
    if not isinstance(raw_data, dict):
        raise ValueError(f"{source_path} does not contain a deck object.")

    deck = Deck.model_validate(raw_data)
    scan(deck, strict=True)
    if not deck.meta.deck_id:
        deck.meta.deck_id = generate_deck_id()
    _migrate_deck(path=path, source_path=source_path, deck=deck)
    return deck


def save_deck(deck: Deck, path: Path = DECK_FILE) -> None:
    """Write the deck to disk with refreshed metadata."""
    deck.touch()
    if deck.source is None:
        deck.source = f"local:{deck.meta.deck_id}" if deck.meta.deck_id else str(path)
    serialized = deck.to_payload()
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".json":
        path.write_text(json.dumps(serialized, indent=2) + "\n", encoding="utf-8")
    else:
        path.write_text(yaml.safe_dump(serialized, sort_keys=False), encoding="utf-8")
    legacy_path = _legacy_deck_path(path)
    if path.suffix.lower() == ".json" and legacy_path.exists():
        legacy_path.unlink()


def new_deck(name: str | None = None) -> Deck:
    deck = Deck(meta=DeckMeta(deck_id=generate_deck_id()))
    if name:
        deck.meta.name = name
    return deck


def _resolve_deck_path(path: Path) -> Path:
    if path.exists():
        return path
    legacy_path = _legacy_deck_path(path)
    if legacy_path.exists():
        return legacy_path
    return path


def _legacy_deck_path(path: Path) -> Path:
    return path.with_name(LEGACY_DECK_FILE.name)


def _load_payload(path: Path) -> Any:
    raw_text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(raw_text)
    return yaml.safe_load(raw_text)


def _migrate_deck(*, path: Path, source_path: Path, deck: Deck) -> None:
    if source_path == path or path.suffix.lower() != ".json":
        return
    save_deck(deck, path)
    if source_path.exists():
        source_path.unlink()

