"""In-memory slide deck model and slide operations."""

from __future__ import annotations

from enum import Enum
import logging
import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from slideomatic.core.images import ImageReference

logger = logging.getLogger(__name__)

DECK_SCHEMA_VERSION = 1
DEFAULT_DECK_NAME = "Untitled Deck"


class SlideType(str, Enum):
    """Supported slide layouts."""

    TITLE = "title"
    STANDARD = "standard"
    SPLIT = "split"
    GRID = "grid"
    PILLARS = "pillars"
    GALLERY = "gallery"
    IMAGE = "image"
    GRAPH = "graph"
    TYPEFACE = "typeface"
    QUOTE = "quote"


class SlideItem(BaseModel):
    """Element of a `media`, `items`, `pillars` or `gallery` array."""

    model_config = ConfigDict(extra="allow")

    image: ImageReference | None = None


class SlideColumn(BaseModel):
    """The `left` or `right` half of a split slide."""

    model_config = ConfigDict(extra="allow")

    image: ImageReference | None = None


class Slide(BaseModel):
    """A single slide. Layout-specific copy fields are kept as extras."""

    model_config = ConfigDict(extra="allow")

    type: SlideType = SlideType.STANDARD
    image: ImageReference | None = None
    media: list[SlideItem] | None = None
    items: list[SlideItem] | None = None
    left: SlideColumn | None = None
    right: SlideColumn | None = None
    pillars: list[SlideItem] | None = None
    gallery: list[SlideItem] | None = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> str:
        if isinstance(value, SlideType):
            return value.value
        normalized = value.strip() if isinstance(value, str) else ""
        if not normalized:
            return SlideType.STANDARD.value
        if normalized not in SlideType._value2member_map_:
            logger.warning(
                'Slide has unsupported type "%s". Falling back to "standard".', normalized
            )
            return SlideType.STANDARD.value
        return normalized

    @property
    def title_text(self) -> str:
        extra = self.model_extra or {}
        for key in ("title", "headline", "badge"):
            value = extra.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return ""

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class DeckMeta(BaseModel):
    """Descriptive metadata stored next to the slides."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = DEFAULT_DECK_NAME
    updated_at: int | None = Field(default=None, alias="updatedAt")
    deck_id: str | None = Field(default=None, alias="deckId")


class Deck(BaseModel):
    """An ordered sequence of slides; order is playback order."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    version: int = Field(default=DECK_SCHEMA_VERSION, ge=1)
    updated_at: int | None = Field(default=None, alias="updatedAt")
    source: str | None = None
    slides: list[Slide] = Field(default_factory=list)
    meta: DeckMeta = Field(default_factory=DeckMeta)

    def slide_at(self, index: int) -> Slide:
        """Return the slide at a 0-based index."""
        if index < 0 or index >= len(self.slides):
            raise IndexError(f"Slide index {index} is out of range (deck has {len(self.slides)}).")
        return self.slides[index]

    def add_slide(self, slide: Slide, *, position: int | None = None) -> int:
        """Insert a slide at a 0-based position (append by default)."""
        if position is None or position >= len(self.slides):
            self.slides.append(slide)
            return len(self.slides) - 1
        resolved = max(position, 0)
        self.slides.insert(resolved, slide)
        return resolved

    def remove_slide(self, index: int) -> Slide:
        """Remove a slide, keeping the remaining order intact."""
        target = self.slide_at(index)
        self.slides = [slide for position, slide in enumerate(self.slides) if position != index]
        return target

    def move_slide(self, index: int, new_pos: int) -> tuple[int, int]:
        """Move a slide to a new 1-based position."""
        if new_pos < 1 or new_pos > len(self.slides):
            raise ValueError(f"new position must be between 1 and {len(self.slides)}.")
        ordered = list(self.slides)
        moving = ordered.pop(index)
        ordered.insert(new_pos - 1, moving)
        self.slides = ordered
        return index + 1, new_pos

    def derive_name(self) -> str:
        """Name the deck after its first titled slide."""
        for slide in self.slides:
            if slide.title_text:
                return slide.title_text
        return DEFAULT_DECK_NAME

    def touch(self) -> None:
        """Refresh update timestamps and the derived name."""
        now_ms = int(time.time() * 1000)
        self.updated_at = now_ms
        self.meta.updated_at = now_ms
        self.meta.name = self.derive_name()

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
