from __future__ import annotations

import pytest

from slideomatic.core.deck import Slide, SlideItem
from slideomatic.core.errors import UnsupportedImageError
from slideomatic.core.images import (
    ImageReference,
    StorageMode,
    decode_data_uri,
    encode_data_uri,
    format_bytes,
)
from slideomatic.core.tokens import create_token, is_token, prepare_for_editing, restore_from_tokens


def test_legacy_storage_tag_is_read_as_remote() -> None:
    reference = ImageReference.model_validate(
        {"src": "https://x/asset?id=logo", "storage": "netlify-asset", "assetId": " logo "}
    )

    assert reference.storage is StorageMode.REMOTE
    assert reference.asset_id == "logo"
    assert reference.is_remote is True


def test_unknown_fields_survive_a_round_trip() -> None:
    payload = {
        "src": "data:image/png;base64,AAAA",
        "storage": "inline",
        "alt": "Chart",
        "focalPoint": {"x": 0.3, "y": 0.7},
        "originalFilename": "chart.png",
    }

    reference = ImageReference.model_validate(payload)

    assert reference.to_payload() == payload


def test_storage_is_inferred_for_untagged_references() -> None:
    inline = ImageReference(src="data:image/gif;base64,R0lGOD")
    external = ImageReference(src="https://example.com/photo.jpg")
    placeholder = ImageReference()

    assert inline.is_inline is True
    assert external.is_inline is False
    assert external.is_remote is False
    assert placeholder.is_placeholder is True


def test_data_uri_helpers() -> None:
    data_uri = encode_data_uri(b"\x89PNG\r\n", "image/png")

    assert data_uri == "data:image/png;base64,iVBORw0K"
    assert decode_data_uri(data_uri) == (b"\x89PNG\r\n", "image/png")
    assert decode_data_uri(data_uri, "image/webp")[1] == "image/webp"
    assert decode_data_uri(data_uri, "text/plain")[1] == "image/png"
    with pytest.raises(UnsupportedImageError):
        decode_data_uri("https://example.com/image.png")


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (512, "512 B"),
        (400 * 1024, "400 KB"),
        (int(1.5 * 1024 * 1024), "1.5 MB"),
        (3 * 1024**3, "3.0 GB"),
    ],
)
def test_format_bytes(size: int, expected: str) -> None:
    assert format_bytes(size) == expected


def test_tokens_replace_and_restore_inline_sources() -> None:
    inline_src = "data:image/png;base64," + "A" * 4000
    slide = Slide.model_validate(
        {
            "type": "gallery",
            "headline": "Team",
            "items": [
                {
                    "image": {
                        "src": inline_src,
                        "storage": "inline",
                        "originalFilename": "team.png",
                        "compressedSize": 3000,
                    }
                },
                {"image": {"src": "https://assets.example/a.png", "storage": "remote", "assetId": "a"}},
            ],
        }
    )

    editable = prepare_for_editing(slide)
    token = editable.items[0].image.src
    editable.items[0].image.alt = "The team"
    restored = restore_from_tokens(editable, slide)

    assert token == "{{BASE64_IMAGE: team.png, 3 KB}}"
    assert is_token(token) is True
    assert slide.items[0].image.src == inline_src
    assert editable.items[1].image.src == "https://assets.example/a.png"
    assert restored.items[0].image.src == inline_src
    assert restored.items[0].image.alt == "The team"


def test_orphan_token_restores_to_empty_source() -> None:
    original = Slide(type="image")
    edited = Slide(
        type="image",
        image=ImageReference(src=create_token(ImageReference(original_filename="x.png"))),
    )

    restored = restore_from_tokens(edited, original)

    assert restored.image is not None
    assert restored.image.src == ""


def test_slide_items_accept_missing_images() -> None:
    item = SlideItem.model_validate({"label": "No image yet"})

    assert item.image is None
    assert item.model_extra == {"label": "No image yet"}
