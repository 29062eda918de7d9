"""Core primitives for slideomatic."""

from slideomatic.core.collector import FlushReport, GarbageCollector
from slideomatic.core.compression import CompressionNegotiator, CompressionResult
from slideomatic.core.config import GLOBAL_CONFIG_PATH, GlobalConfig, ImageSettings, ServerSettings
from slideomatic.core.deck import Deck, DeckMeta, Slide, SlideColumn, SlideItem, SlideType
from slideomatic.core.images import ImageReference, StorageMode
from slideomatic.core.interfaces import AssetStore, ShareResult, UploadResult
from slideomatic.core.scanner import ImageLocation, ScannedImage, scan
from slideomatic.core.storage import AssetManager, IngestResult

__all__ = [
    "GLOBAL_CONFIG_PATH",
    "AssetManager",
    "AssetStore",
    "CompressionNegotiator",
    "CompressionResult",
    "Deck",
    "DeckMeta",
    "FlushReport",
    "GarbageCollector",
    "GlobalConfig",
    "ImageLocation",
    "ImageReference",
    "ImageSettings",
    "IngestResult",
    "ScannedImage",
    "ServerSettings",
    "ShareResult",
    "Slide",
    "SlideColumn",
    "SlideItem",
    "SlideType",
    "StorageMode",
    "UploadResult",
    "scan",
]
