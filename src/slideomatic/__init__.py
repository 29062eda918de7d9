"""Slideomatic: slide decks with compressed, garbage-collected image assets."""

__version__ = "0.1.0"

from slideomatic.core.collector import GarbageCollector
from slideomatic.core.compression import CompressionNegotiator
from slideomatic.core.deck import Deck, Slide
from slideomatic.core.images import ImageReference, StorageMode
from slideomatic.core.persistence import load_deck, save_deck
from slideomatic.core.storage import AssetManager
from slideomatic.stores.http import HttpAssetStore

__all__ = [
    "AssetManager",
    "CompressionNegotiator",
    "Deck",
    "GarbageCollector",
    "HttpAssetStore",
    "ImageReference",
    "Slide",
    "StorageMode",
    "load_deck",
    "save_deck",
]
