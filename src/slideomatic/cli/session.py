"""Wiring between the CLI, the local deck file and the asset server."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import typer
from rich.console import Console

from slideomatic.core.collector import GarbageCollector
from slideomatic.core.compression import CompressionNegotiator
from slideomatic.core.config import GlobalConfig, load_global_config, resolve_api_base_url
from slideomatic.core.deck import Deck
from slideomatic.core.persistence import DECK_FILE, LEGACY_DECK_FILE, load_deck, save_deck
from slideomatic.core.storage import AssetManager
from slideomatic.stores.http import HttpAssetStore

console = Console()


def resolve_config(ctx: typer.Context | None) -> GlobalConfig:
    if ctx is not None and ctx.obj and isinstance(ctx.obj.get("config"), GlobalConfig):
        return ctx.obj["config"]
    return load_global_config()


def has_local_deck() -> bool:
    return DECK_FILE.exists() or LEGACY_DECK_FILE.exists()


def load_local_deck() -> Deck:
    """Load ./deck.json or exit with a hint to run `init`."""
    if not has_local_deck():
        console.print(f"[bold red]{DECK_FILE} not found. Run `slideomatic init` first.[/]")
        raise typer.Exit(code=1)
    return load_deck()


def open_store(config: GlobalConfig) -> HttpAssetStore:
    return HttpAssetStore(resolve_api_base_url(config))


@contextmanager
def asset_session(config: GlobalConfig, deck: Deck) -> Iterator[AssetManager]:
    """Yield an AssetManager over `deck`; save and collect garbage on success.

    Scheduled deletions are flushed only after the deck has been written, so
    an asset is never deleted while the file on disk still references it.
    """
    store = open_store(config)
    collector = GarbageCollector(
        store,
        lambda: deck,
        settle_window=config.images.settle_window_seconds,
    )
    manager = AssetManager(
        store=store,
        negotiator=CompressionNegotiator.from_settings(config.images),
        collector=collector,
        deck_provider=lambda: deck,
    )
    try:
        yield manager
        save_deck(deck)
        report = collector.drain()
    except BaseException:
        collector.cancel()
        raise
    finally:
        store.close()

    if report.deleted:
        console.print(f"[dim]Deleted {len(report.deleted)} unused asset(s).[/]")
    if report.failed:
        console.print(
            f"[yellow]Could not delete {len(report.failed)} asset(s); "
            "they stay on the asset server unused.[/]"
        )
