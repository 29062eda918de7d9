"""Reachability scan over every image reference in a deck."""

from __future__ import annotations

from collections.abc import Collection, Iterator
from dataclasses import dataclass
from typing import Any

from slideomatic.core.deck import Deck, Slide
from slideomatic.core.errors import MalformedReferenceError
from slideomatic.core.images import ImageReference, StorageMode, is_data_uri

PathKey = str | int
_ARRAY_FIELDS_BEFORE_COLUMNS = ("media", "items")
_COLUMN_FIELDS = ("left", "right")
_ARRAY_FIELDS_AFTER_COLUMNS = ("pillars", "gallery")


@dataclass(frozen=True)
class ImageLocation:
    """Stable address of an image slot: slide index plus field path."""

    slide_index: int
    path: tuple[PathKey, ...]

    def __str__(self) -> str:
        parts = [f"[{key}]" if isinstance(key, int) else f".{key}" for key in self.path]
        return f"slides[{self.slide_index}]{''.join(parts)}"


@dataclass(frozen=True)
class ScannedImage:
    location: ImageLocation
    image: ImageReference


def collect_image_paths(slide: Slide) -> list[tuple[tuple[PathKey, ...], ImageReference]]:
    """List `(path, image)` pairs of a slide in the fixed scan order."""
    return list(_iter_slide_images(slide))


def _iter_slide_images(slide: Slide) -> Iterator[tuple[tuple[PathKey, ...], ImageReference]]:
    if slide.image is not None:
        yield ("image",), slide.image
    for field_name in _ARRAY_FIELDS_BEFORE_COLUMNS:
        yield from _iter_array_images(slide, field_name)
    for field_name in _COLUMN_FIELDS:
        column = getattr(slide, field_name)
        if column is not None and column.image is not None:
            yield (field_name, "image"), column.image
    for field_name in _ARRAY_FIELDS_AFTER_COLUMNS:
        yield from _iter_array_images(slide, field_name)


def _iter_array_images(
    slide: Slide, field_name: str
) -> Iterator[tuple[tuple[PathKey, ...], ImageReference]]:
    entries = getattr(slide, field_name) or []
    for index, entry in enumerate(entries):
        if entry is not None and entry.image is not None:
            yield (field_name, index, "image"), entry.image


def scan(deck: Deck, *, strict: bool = False) -> list[ScannedImage]:
    """Walk every slide depth-first and return each image reference with its location.

    With ``strict=True`` a reference whose fields contradict its storage mode
    raises :class:`MalformedReferenceError` instead of being returned.
    """
    found: list[ScannedImage] = []
    for slide_index, slide in enumerate(list(deck.slides)):
        for path, image in _iter_slide_images(slide):
            location = ImageLocation(slide_index=slide_index, path=path)
            if strict:
                check_reference(image, location)
            found.append(ScannedImage(location=location, image=image))
    return found


def check_reference(image: ImageReference, location: ImageLocation | None = None) -> None:
    """Raise when a reference is missing required fields for its storage mode."""
    where = f" at {location}" if location is not None else ""
    if image.storage is StorageMode.REMOTE:
        if not image.asset_id:
            raise MalformedReferenceError(
                f"Image{where} is marked remote but has no assetId. "
                "Re-upload the image or remove it.",
                location=location,
            )
        if not image.src:
            raise MalformedReferenceError(
                f"Image{where} is marked remote but has no src URL.",
                location=location,
            )
    elif image.storage is StorageMode.INLINE and not is_data_uri(image.src):
        raise MalformedReferenceError(
            f"Image{where} is marked inline but its src is not a data URI.",
            location=location,
        )


def is_asset_live(
    asset_id: str,
    deck: Deck,
    excluding: Collection[ImageLocation] = (),
) -> bool:
    """Return True when a remote reference outside `excluding` still uses the asset."""
    excluded = set(excluding)
    for entry in scan(deck):
        if entry.location in excluded:
            continue
        if entry.image.is_remote and entry.image.asset_id == asset_id:
            return True
    return False


def live_asset_ids(deck: Deck) -> set[str]:
    return {
        entry.image.asset_id
        for entry in scan(deck)
        if entry.image.is_remote and entry.image.asset_id
    }


def locate_image(deck: Deck, slide_index: int, image_index: int) -> ImageLocation:
    """Resolve "the N-th image of a slide" to its location."""
    paths = collect_image_paths(deck.slide_at(slide_index))
    if image_index < 0 or image_index >= len(paths):
        raise IndexError(
            f"Image index {image_index} is out of range for slide {slide_index} "
            f"({len(paths)} image(s))."
        )
    return ImageLocation(slide_index=slide_index, path=paths[image_index][0])


def get_image(deck: Deck, location: ImageLocation) -> ImageReference | None:
    container, key = _resolve_container(deck, location)
    if container is None:
        return None
    return getattr(container, key, None)


def set_image(deck: Deck, location: ImageLocation, image: ImageReference | None) -> None:
    """Swap the reference stored at a location in one assignment."""
    container, key = _resolve_container(deck, location)
    if container is None:
        raise KeyError(f"No image slot exists at {location}.")
    setattr(container, key, image)


def _resolve_container(deck: Deck, location: ImageLocation) -> tuple[Any, str]:
    current: Any = deck.slide_at(location.slide_index)
    for key in location.path[:-1]:
        if current is None:
            return None, ""
        if isinstance(key, int):
            if not isinstance(current, list) or key >= len(current):
                return None, ""
            current = current[key]
        else:
            current = getattr(current, key, None)
    final_key = location.path[-1]
    if not isinstance(final_key, str):
        raise KeyError(f"Image path must end in a field name: {location}")
    return current, final_key
