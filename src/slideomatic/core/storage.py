"""Ingest, place and discard deck images across inline and remote storage."""

from __future__ import annotations

from collections.abc import Callable
import logging
from pathlib import PurePath
import threading
import time

from pydantic import BaseModel

from slideomatic.core.collector import GarbageCollector
from slideomatic.core.compression import CompressionNegotiator
from slideomatic.core.deck import Deck, Slide
from slideomatic.core.errors import AssetStoreError
from slideomatic.core.images import (
    ImageReference,
    StorageMode,
    encode_data_uri,
    format_bytes,
)
from slideomatic.core.interfaces import AssetStore
from slideomatic.core.scanner import (
    ImageLocation,
    collect_image_paths,
    get_image,
    is_asset_live,
    locate_image,
    set_image,
)

logger = logging.getLogger(__name__)


class IngestResult(BaseModel):
    """A new reference plus the non-fatal notes gathered while creating it."""

    reference: ImageReference
    hit_soft_limit: bool = False
    warning: str | None = None
    applied: bool = True

    @property
    def used_inline_fallback(self) -> bool:
        return self.reference.storage is StorageMode.INLINE


class AssetManager:
    """Storage indirection for one editing session.

    `deck_provider` returns the live deck; the same provider backs the
    garbage collector, so every liveness check sees current state.
    """

    def __init__(
        self,
        *,
        store: AssetStore,
        negotiator: CompressionNegotiator,
        collector: GarbageCollector,
        deck_provider: Callable[[], Deck],
    ) -> None:
        self._store = store
        self._negotiator = negotiator
        self._collector = collector
        self._deck_provider = deck_provider
        self._slot_lock = threading.Lock()
        self._slot_generations: dict[ImageLocation, int] = {}

    def ingest(self, data: bytes, mime_type: str, filename: str) -> IngestResult:
        """Compress an image and store it remotely, falling back to inline."""
        compressed = self._negotiator.negotiate(data, mime_type)
        size_label = format_bytes(compressed.size)
        base_fields = {
            "alt": _default_alt(filename),
            "originalFilename": filename,
            "compressedSize": compressed.size,
            "compressedFormat": compressed.mime_type,
            "uploadedAt": _now_ms(),
        }
        try:
            uploaded = self._store.upload(compressed.data, compressed.mime_type, filename)
        except AssetStoreError as exc:
            logger.warning("Asset upload failed, falling back to inline data: %s", exc)
            reference = ImageReference.model_validate(
                {
                    **base_fields,
                    "src": encode_data_uri(compressed.data, compressed.mime_type),
                    "storage": StorageMode.INLINE.value,
                }
            )
            return IngestResult(
                reference=reference,
                hit_soft_limit=compressed.hit_soft_limit,
                warning=(
                    f"Image stored locally only ({size_label}); remote storage is "
                    "unavailable so it cannot be shared until re-uploaded."
                ),
            )

        reference = ImageReference.model_validate(
            {
                **base_fields,
                "src": uploaded.url,
                "storage": StorageMode.REMOTE.value,
                "assetId": uploaded.asset_id,
            }
        )
        warning = (
            f"Image added ({size_label}) but landed above the soft target."
            if compressed.hit_soft_limit
            else None
        )
        return IngestResult(
            reference=reference, hit_soft_limit=compressed.hit_soft_limit, warning=warning
        )

    def discard(self, asset_id: str | None) -> None:
        """Hand a remote asset to the collector; never deletes synchronously."""
        if asset_id:
            self._collector.schedule(asset_id)

    def discard_reference(
        self,
        image: ImageReference | None,
        excluding: tuple[ImageLocation, ...] = (),
    ) -> bool:
        """Schedule a removed reference's asset when nothing else uses it."""
        if image is None or not image.is_remote or not image.asset_id:
            return False
        if is_asset_live(image.asset_id, self._deck_provider(), excluding=excluding):
            return False
        self.discard(image.asset_id)
        return True

    def place_image(
        self,
        location: ImageLocation,
        data: bytes,
        mime_type: str,
        filename: str,
    ) -> IngestResult:
        """Ingest an image into a slot.

        If the slot is assigned again while this upload is in flight, the
        newer assignment wins and this result is discarded once it lands.
        """
        generation = self._claim_slot(location)
        try:
            result = self.ingest(data, mime_type, filename)
        except BaseException:
            self._release_slot(location, generation)
            raise
        with self._slot_lock:
            current = self._slot_generations.get(location) == generation
            if current:
                del self._slot_generations[location]
        if not current:
            logger.info("Upload for %s was superseded; discarding its result", location)
            self.discard(result.reference.asset_id)
            return result.model_copy(update={"applied": False})
        self.replace_image(location, result.reference)
        return result

    def replace_image(self, location: ImageLocation, image: ImageReference) -> None:
        """Store a new reference in a slot, reclaiming the old remote asset if unused."""
        deck = self._deck_provider()
        previous = get_image(deck, location)
        merged = _carry_descriptions(previous, image)
        set_image(deck, location, merged)
        if previous is not None and previous.asset_id != merged.asset_id:
            self.discard_reference(previous)

    def update_alt(self, location: ImageLocation, alt: str) -> None:
        deck = self._deck_provider()
        current = get_image(deck, location)
        if current is None:
            raise KeyError(f"No image exists at {location}.")
        set_image(deck, location, current.model_copy(update={"alt": alt}))

    def remove_image(self, slide_index: int, image_index: int) -> ImageReference:
        """Clear the N-th image slot of a slide."""
        deck = self._deck_provider()
        location = locate_image(deck, slide_index, image_index)
        removed = get_image(deck, location)
        if removed is None:
            raise KeyError(f"No image exists at {location}.")
        set_image(deck, location, None)
        self.discard_reference(removed)
        return removed

    def remove_item(self, slide_index: int, field_name: str, item_index: int) -> None:
        """Drop an element of a `media`/`items`/`pillars`/`gallery` array."""
        deck = self._deck_provider()
        slide = deck.slide_at(slide_index)
        entries = getattr(slide, field_name, None)
        if not isinstance(entries, list) or not 0 <= item_index < len(entries):
            raise IndexError(f"Slide {slide_index} has no {field_name}[{item_index}].")
        removed = entries[item_index]
        setattr(slide, field_name, [entry for i, entry in enumerate(entries) if i != item_index])
        if removed is not None:
            self.discard_reference(removed.image)

    def remove_slide(self, slide_index: int) -> Slide:
        deck = self._deck_provider()
        removed = deck.remove_slide(slide_index)
        self.discard_slide_assets(removed)
        return removed

    def discard_slide_assets(self, slide: Slide) -> list[str]:
        """Schedule every remote asset of a detached slide that the deck no longer uses."""
        scheduled: list[str] = []
        for _, image in collect_image_paths(slide):
            if self.discard_reference(image) and image.asset_id:
                scheduled.append(image.asset_id)
        return scheduled

    def reorder_images(self, slide_index: int, from_index: int, to_index: int) -> None:
        """Swap two images of a slide by their scan index."""
        if from_index == to_index:
            return
        deck = self._deck_provider()
        source = locate_image(deck, slide_index, from_index)
        target = locate_image(deck, slide_index, to_index)
        source_image = get_image(deck, source)
        target_image = get_image(deck, target)
        set_image(deck, source, target_image)
        set_image(deck, target, source_image)

    def _claim_slot(self, location: ImageLocation) -> int:
        with self._slot_lock:
            generation = self._slot_generations.get(location, 0) + 1
            self._slot_generations[location] = generation
            return generation

    def _release_slot(self, location: ImageLocation, generation: int) -> None:
        # A failed assignment must not supersede an earlier upload still in flight.
        with self._slot_lock:
            if self._slot_generations.get(location) != generation:
                return
            if generation > 1:
                self._slot_generations[location] = generation - 1
            else:
                del self._slot_generations[location]


def _carry_descriptions(
    previous: ImageReference | None, image: ImageReference
) -> ImageReference:
    # Search/label text belongs to the slot, not the bytes.
    if previous is None:
        return image
    updates = {
        name: getattr(previous, name)
        for name in ("label", "search")
        if getattr(image, name) is None and getattr(previous, name) is not None
    }
    if previous.alt and (image.alt is None or image.alt == _default_alt(image.original_filename)):
        updates["alt"] = previous.alt
    return image.model_copy(update=updates) if updates else image


def _default_alt(filename: str | None) -> str | None:
    if not filename:
        return None
    return PurePath(filename).stem or filename


def _now_ms() -> int:
    return int(time.time() * 1000)
