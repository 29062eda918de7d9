"""Blank slide templates for each slide type."""

from __future__ import annotations

import copy
from typing import Any

from slideomatic.core.deck import Slide, SlideType

_TEMPLATES: dict[SlideType, dict[str, Any]] = {
    SlideType.TITLE: {
        "type": "title",
        "eyebrow": "New Section",
        "title": "Title Goes Here",
        "subtitle": "Optional subtitle copy",
        "media": [],
        "font": "grotesk",
    },
    SlideType.STANDARD: {
        "type": "standard",
        "badge": "Slide",
        "headline": "Headline Goes Here",
        "body": ["First talking point", "Second talking point"],
        "font": "sans",
    },
    SlideType.QUOTE: {
        "type": "quote",
        "quote": '"Add your quote here."',
        "attribution": "Attribution Name",
        "font": "sans",
    },
    SlideType.SPLIT: {
        "type": "split",
        "left": {"headline": "Left Column", "body": ["Left column bullet"]},
        "right": {"headline": "Right Column", "body": ["Right column bullet"]},
        "font": "sans",
    },
    SlideType.GRID: {
        "type": "grid",
        "headline": "Grid Headline",
        "body": ["Introduce the items in this grid."],
        "items": [
            {"image": {"src": "", "alt": "Image description"}, "label": "Item label"},
            {"image": {"src": "", "alt": "Image description"}, "label": "Item label"},
        ],
        "font": "sans",
    },
    SlideType.PILLARS: {
        "type": "pillars",
        "headline": "Pillars Headline",
        "body": ["Introduce the pillars."],
        "pillars": [
            {"title": "Pillar One", "copy": ["Supporting detail for pillar one"]},
            {"title": "Pillar Two", "copy": ["Supporting detail for pillar two"]},
        ],
        "font": "sans",
    },
    SlideType.GALLERY: {
        "type": "gallery",
        "headline": "Gallery Headline",
        "body": "Describe the collection showcased here.",
        "items": [
            {
                "image": {"src": "", "alt": "Image description"},
                "label": "Item label",
                "copy": "Optional supporting copy.",
            },
            {
                "image": {"src": "", "alt": "Image description"},
                "label": "Item label",
                "copy": "Optional supporting copy.",
            },
        ],
        "font": "sans",
    },
    SlideType.IMAGE: {
        "type": "image",
        "badge": "Slide",
        "headline": "Image Slide Headline",
        "image": {"src": "", "alt": "Describe the image"},
        "caption": "Optional caption text.",
        "font": "sans",
    },
    SlideType.TYPEFACE: {
        "type": "typeface",
        "headline": "Typeface Showcase",
        "fonts": [
            {
                "name": "Display",
                "font": '"Space Grotesk", sans-serif',
                "sample": "The quick brown fox jumps over the lazy dog.",
            },
            {
                "name": "Body",
                "font": '"Inter", sans-serif',
                "sample": "Use this space to demonstrate body copy.",
            },
        ],
        "body": ["Describe how these typefaces support the system."],
        "font": "sans",
    },
}


def slide_template(slide_type: SlideType | str) -> Slide:
    """Return a fresh slide for a type; image slots start as empty placeholders."""
    resolved = SlideType(slide_type)
    template = _TEMPLATES.get(resolved)
    if template is None:
        raise ValueError(f"No template is available for '{resolved.value}' slides.")
    return Slide.model_validate(copy.deepcopy(template))
