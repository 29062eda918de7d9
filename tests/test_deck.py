from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from slideomatic.core.deck import Deck, Slide, SlideType
from slideomatic.core.errors import MalformedReferenceError
from slideomatic.core.persistence import load_deck, new_deck, save_deck
from slideomatic.core.scanner import (
    ImageLocation,
    collect_image_paths,
    is_asset_live,
    live_asset_ids,
    locate_image,
    scan,
)
from slideomatic.core.templates import slide_template
from slideomatic.core.validation import validate_slides


def _image(asset_id: str) -> dict[str, str]:
    return {"src": f"https://assets.example/{asset_id}", "storage": "remote", "assetId": asset_id}


def _seed_deck() -> Deck:
    return Deck.model_validate(
        {
            "slides": [
                {"type": "title", "title": "Quarterly Review", "media": [{"image": _image("m1")}]},
                {
                    "type": "split",
                    "left": {"image": _image("left")},
                    "right": {"headline": "Numbers", "image": _image("right")},
                },
                {
                    "type": "image",
                    "image": _image("hero"),
                    "items": [{"image": _image("i1")}, {"label": "no image"}],
                    "pillars": [{"image": _image("p1")}],
                    "gallery": [{"image": _image("g1")}],
                },
            ]
        }
    )


def test_scan_visits_fields_in_fixed_order() -> None:
    entries = scan(_seed_deck())

    assert [str(entry.location) for entry in entries] == [
        "slides[0].media[0].image",
        "slides[1].left.image",
        "slides[1].right.image",
        "slides[2].image",
        "slides[2].items[0].image",
        "slides[2].pillars[0].image",
        "slides[2].gallery[0].image",
    ]


def test_liveness_queries() -> None:
    deck = _seed_deck()
    hero = ImageLocation(slide_index=2, path=("image",))

    assert live_asset_ids(deck) == {"m1", "left", "right", "hero", "i1", "p1", "g1"}
    assert is_asset_live("hero", deck) is True
    assert is_asset_live("hero", deck, excluding=[hero]) is False
    assert is_asset_live("unknown", deck) is False


def test_locate_image_by_scan_index() -> None:
    deck = _seed_deck()

    assert locate_image(deck, 2, 1) == ImageLocation(slide_index=2, path=("items", 0, "image"))
    with pytest.raises(IndexError):
        locate_image(deck, 0, 3)


def test_strict_scan_rejects_remote_reference_without_asset_id() -> None:
    deck = Deck.model_validate(
        {"slides": [{"type": "image", "image": {"src": "https://x/y.png", "storage": "remote"}}]}
    )

    assert len(scan(deck)) == 1
    with pytest.raises(MalformedReferenceError) as exc_info:
        scan(deck, strict=True)
    assert "slides[0].image" in str(exc_info.value)


def test_unknown_slide_type_falls_back_to_standard() -> None:
    slide = Slide.model_validate({"type": "hologram", "headline": "Future"})

    assert slide.type is SlideType.STANDARD
    assert slide.title_text == "Future"


def test_templates_start_with_placeholder_slots() -> None:
    gallery = slide_template("gallery")
    image = slide_template(SlideType.IMAGE)

    assert [path for path, _ in collect_image_paths(gallery)] == [
        ("items", 0, "image"),
        ("items", 1, "image"),
    ]
    assert image.image is not None and image.image.is_placeholder
    assert slide_template("gallery") is not gallery
    with pytest.raises(ValueError):
        slide_template("graph")


def test_move_and_remove_slides() -> None:
    deck = _seed_deck()

    assert deck.move_slide(2, 1) == (3, 1)
    assert deck.slides[0].type is SlideType.IMAGE
    removed = deck.remove_slide(1)
    assert removed.type is SlideType.TITLE
    assert len(deck.slides) == 2
    with pytest.raises(ValueError):
        deck.move_slide(0, 5)


def test_validate_slides_checks_layouts_and_references() -> None:
    assert len(validate_slides([{"type": "split", "left": {}, "right": {}}])) == 1

    with pytest.raises(ValueError, match="missing left/right"):
        validate_slides([{"type": "split", "left": {}}])
    with pytest.raises(ValueError, match="non-empty pillars"):
        validate_slides([{"type": "pillars", "pillars": []}])
    with pytest.raises(ValueError, match="image.src"):
        validate_slides([{"type": "image", "image": {"src": ""}}])
    with pytest.raises(ValueError, match="marked inline"):
        validate_slides(
            [{"type": "image", "image": {"src": "https://x/y.png", "storage": "inline"}}]
        )
    with pytest.raises(ValueError, match="must be an array"):
        validate_slides({"slides": []})


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    deck_path = tmp_path / "deck.json"
    deck = new_deck()
    deck.add_slide(slide_template("title"))
    deck.slides[0].image = None
    deck.add_slide(Slide.model_validate({"type": "image", "image": _image("hero")}))

    save_deck(deck, deck_path)
    payload = json.loads(deck_path.read_text(encoding="utf-8"))
    loaded = load_deck(deck_path)

    assert payload["version"] == 1
    assert payload["meta"]["name"] == "Title Goes Here"
    assert payload["meta"]["deckId"].startswith("deck-")
    assert payload["source"] == f"local:{payload['meta']['deckId']}"
    assert payload["slides"][1]["image"]["assetId"] == "hero"
    assert loaded.meta.deck_id == payload["meta"]["deckId"]
    assert live_asset_ids(loaded) == {"hero"}


def test_load_accepts_bare_slide_array(tmp_path: Path) -> None:
    deck_path = tmp_path / "deck.json"
    deck_path.write_text(json.dumps([{"type": "standard", "headline": "Hi"}]), encoding="utf-8")

    deck = load_deck(deck_path)

    assert len(deck.slides) == 1
    assert deck.meta.deck_id is not None


def test_load_migrates_legacy_yaml_deck(tmp_path: Path) -> None:
    legacy_path = tmp_path / "deck.yaml"
    legacy_path.write_text(
        yaml.safe_dump({"slides": [{"type": "image", "image": _image("hero")}]}),
        encoding="utf-8",
    )
    deck_path = tmp_path / "deck.json"

    deck = load_deck(deck_path)

    assert deck_path.exists()
    assert not legacy_path.exists()
    assert deck.slides[0].image is not None
    assert deck.slides[0].image.asset_id == "hero"


def test_load_rejects_malformed_reference(tmp_path: Path) -> None:
    deck_path = tmp_path / "deck.json"
    deck_path.write_text(
        json.dumps({"slides": [{"type": "image", "image": {"src": "", "storage": "remote"}}]}),
        encoding="utf-8",
    )

    with pytest.raises(MalformedReferenceError):
        load_deck(deck_path)
