"""Structural validation of raw slide payloads."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from slideomatic.core.deck import Slide, SlideType
from slideomatic.core.scanner import ImageLocation, check_reference, collect_image_paths


def validate_slides(data: Any) -> list[Slide]:
    """Parse and check a slide array, returning typed slides.

    Unknown slide types fall back to ``standard``. Layouts missing required
    content and references that contradict their storage mode raise.
    """
    if not isinstance(data, list):
        raise ValueError("Slides data must be an array.")

    slides: list[Slide] = []
    for index, raw in enumerate(data):
        if not isinstance(raw, dict):
            raise ValueError(f"Slide {index} is not an object.")
        try:
            slide = Slide.model_validate(raw)
        except ValidationError as exc:
            raise ValueError(f"Slide {index} is invalid: {exc.errors()[0]['msg']}") from exc
        _check_layout(slide, index, raw)
        for path, image in collect_image_paths(slide):
            check_reference(image, ImageLocation(slide_index=index, path=path))
        slides.append(slide)
    return slides


def _check_layout(slide: Slide, index: int, raw: dict[str, Any]) -> None:
    label = raw.get("badge") or raw.get("headline")
    if slide.type is SlideType.SPLIT and (slide.left is None or slide.right is None):
        raise ValueError(f"Slide {index} ({label or 'Split slide'}) is missing left/right content.")
    if slide.type is SlideType.PILLARS and not slide.pillars:
        raise ValueError(
            f"Slide {index} ({label or 'Pillars slide'}) requires a non-empty pillars array."
        )
    if slide.type is SlideType.GALLERY and not slide.items:
        raise ValueError(
            f"Slide {index} ({label or 'Gallery slide'}) requires a non-empty items array."
        )
    if slide.type is SlideType.IMAGE and (slide.image is None or not slide.image.src):
        raise ValueError(f"Slide {index} ({label or 'Image slide'}) requires an image.src value.")
