"""Swap inline image payloads for short tokens while a slide is hand-edited."""

from __future__ import annotations

import logging

from slideomatic.core.deck import Slide
from slideomatic.core.images import ImageReference, format_bytes, is_data_uri
from slideomatic.core.scanner import PathKey, collect_image_paths

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "{{BASE64_IMAGE:"


def create_token(image: ImageReference) -> str:
    filename = image.original_filename or "image"
    size = format_bytes(image.compressed_size) if image.compressed_size else "unknown size"
    return f"{TOKEN_PREFIX} {filename}, {size}}}}}"


def is_token(value: object) -> bool:
    return isinstance(value, str) and value.startswith(TOKEN_PREFIX)


def prepare_for_editing(slide: Slide) -> Slide:
    """Return a deep copy whose inline image sources are replaced by tokens."""
    clone = slide.model_copy(deep=True)
    for path, image in collect_image_paths(clone):
        if is_data_uri(image.src) and image.src.startswith("data:image"):
            _assign(clone, path, image.model_copy(update={"src": create_token(image)}))
    return clone


def restore_from_tokens(edited: Slide, original: Slide) -> Slide:
    """Put back the data URIs that `prepare_for_editing` replaced.

    Tokens are matched to the original slide by path. A token with no inline
    original to restore from becomes an empty source.
    """
    restored = edited.model_copy(deep=True)
    originals = dict(collect_image_paths(original))
    for path, image in collect_image_paths(restored):
        if not is_token(image.src):
            continue
        source = originals.get(path)
        if source is not None and source.src.startswith("data:image"):
            _assign(restored, path, image.model_copy(update={"src": source.src}))
        else:
            logger.warning("Image token at %s has no original data to restore", path)
            _assign(restored, path, image.model_copy(update={"src": ""}))
    return restored


def _assign(slide: Slide, path: tuple[PathKey, ...], image: ImageReference) -> None:
    current: object = slide
    for key in path[:-1]:
        current = current[key] if isinstance(key, int) else getattr(current, key)
    setattr(current, str(path[-1]), image)
