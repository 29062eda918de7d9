from __future__ import annotations

from collections.abc import Callable
import io

from PIL import Image
import pytest

from slideomatic.core.collector import GarbageCollector
from slideomatic.core.compression import CompressionNegotiator
from slideomatic.core.config import ImageSettings
from slideomatic.core.deck import Deck, Slide, SlideItem
from slideomatic.core.errors import UnsupportedImageError, UploadUnavailableError
from slideomatic.core.images import ImageReference, StorageMode, decode_data_uri
from slideomatic.core.interfaces import AssetStore, UploadResult
from slideomatic.core.scanner import ImageLocation, get_image
from slideomatic.core.storage import AssetManager


class _FakeStore(AssetStore):
    def __init__(self, *, fail_uploads: bool = False) -> None:
        self.fail_uploads = fail_uploads
        self.uploads: list[tuple[str, int]] = []
        self.delete_calls: list[list[str]] = []
        self.on_upload: Callable[[], None] | None = None

    def upload(self, data: bytes, mime_type: str, filename: str) -> UploadResult:
        if self.fail_uploads:
            raise UploadUnavailableError("Asset upload failed: connection refused")
        if self.on_upload is not None:
            hook, self.on_upload = self.on_upload, None
            hook()
        asset_id = f"asset-{len(self.uploads) + 1}"
        self.uploads.append((asset_id, len(data)))
        return UploadResult(
            asset_id=asset_id,
            url=f"https://assets.example/assets?id={asset_id}",
            bytes=len(data),
            mime_type=mime_type,
        )

    def fetch(self, asset_id: str) -> tuple[bytes, str]:
        raise AssertionError("fetch is not expected here")

    def delete_many(self, asset_ids: list[str]) -> int:
        self.delete_calls.append(list(asset_ids))
        return len(asset_ids)


class _ManualTimer:
    def start(self) -> None:
        pass

    def cancel(self) -> None:
        pass


def _png_bytes(color: tuple[int, int, int] = (200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (64, 48), color).save(buffer, format="PNG")
    return buffer.getvalue()


def _remote(asset_id: str, **extra) -> ImageReference:
    return ImageReference.model_validate(
        {
            "src": f"https://assets.example/assets?id={asset_id}",
            "storage": "remote",
            "assetId": asset_id,
            **extra,
        }
    )


def _seed_manager(deck: Deck, store: _FakeStore) -> tuple[AssetManager, GarbageCollector]:
    collector = GarbageCollector(
        store,
        lambda: deck,
        settle_window=10.0,
        clock=lambda: 0.0,
        timer_factory=lambda delay, callback: _ManualTimer(),
    )
    manager = AssetManager(
        store=store,
        negotiator=CompressionNegotiator.from_settings(ImageSettings()),
        collector=collector,
        deck_provider=lambda: deck,
    )
    return manager, collector


def test_ingest_uploads_and_returns_remote_reference() -> None:
    store = _FakeStore()
    manager, _ = _seed_manager(Deck(), store)

    result = manager.ingest(_png_bytes(), "image/png", "hero shot.png")

    reference = result.reference
    assert reference.storage is StorageMode.REMOTE
    assert reference.asset_id == "asset-1"
    assert reference.src.endswith("id=asset-1")
    assert reference.alt == "hero shot"
    assert reference.original_filename == "hero shot.png"
    assert reference.compressed_format == "image/png"
    assert reference.compressed_size == store.uploads[0][1]
    assert reference.compressed_size <= ImageSettings().max_bytes
    assert result.warning is None
    assert result.used_inline_fallback is False


def test_ingest_falls_back_to_inline_when_upload_is_unavailable(caplog) -> None:
    store = _FakeStore(fail_uploads=True)
    manager, _ = _seed_manager(Deck(), store)
    data = _png_bytes()

    with caplog.at_level("WARNING"):
        result = manager.ingest(data, "image/png", "chart.png")

    reference = result.reference
    assert reference.storage is StorageMode.INLINE
    assert reference.asset_id is None
    assert decode_data_uri(reference.src) == (data, "image/png")
    assert result.used_inline_fallback is True
    assert "stored locally only" in (result.warning or "")
    assert "falling back to inline" in caplog.text


def test_replacing_an_image_schedules_the_old_asset() -> None:
    deck = Deck(slides=[Slide(type="image", image=_remote("old-logo", label="Logo"))])
    store = _FakeStore()
    manager, collector = _seed_manager(deck, store)
    location = ImageLocation(slide_index=0, path=("image",))

    result = manager.place_image(location, _png_bytes(), "image/png", "new-logo.png")

    current = get_image(deck, location)
    assert result.applied is True
    assert current is not None
    assert current.asset_id == "asset-1"
    assert current.label == "Logo"
    assert list(collector.pending()) == ["old-logo"]


def test_shared_asset_is_not_scheduled_while_still_referenced() -> None:
    deck = Deck(
        slides=[
            Slide(type="image", image=_remote("logo-abc123")),
            Slide(type="image", image=_remote("logo-abc123")),
        ]
    )
    store = _FakeStore()
    manager, collector = _seed_manager(deck, store)

    manager.remove_image(0, 0)
    assert collector.pending() == {}

    manager.remove_image(1, 0)
    assert list(collector.pending()) == ["logo-abc123"]


def test_superseded_upload_is_discarded_when_it_lands() -> None:
    deck = Deck(slides=[Slide(type="image", image=ImageReference(src=""))])
    store = _FakeStore()
    manager, collector = _seed_manager(deck, store)
    location = ImageLocation(slide_index=0, path=("image",))
    second_results = []

    def _user_picks_another_image() -> None:
        second_results.append(
            manager.place_image(location, _png_bytes((0, 0, 255)), "image/png", "second.png")
        )

    store.on_upload = _user_picks_another_image
    first = manager.place_image(location, _png_bytes(), "image/png", "first.png")

    current = get_image(deck, location)
    assert second_results[0].applied is True
    assert current is not None
    assert current.original_filename == "second.png"
    assert first.applied is False
    assert first.reference.asset_id == "asset-2"
    assert list(collector.pending()) == ["asset-2"]


def test_failed_reassignment_does_not_supersede_upload_in_flight() -> None:
    deck = Deck(slides=[Slide(type="image", image=ImageReference(src=""))])
    store = _FakeStore()
    manager, collector = _seed_manager(deck, store)
    location = ImageLocation(slide_index=0, path=("image",))

    def _user_picks_a_broken_file() -> None:
        with pytest.raises(UnsupportedImageError):
            manager.place_image(location, b"not an image", "text/plain", "notes.txt")

    store.on_upload = _user_picks_a_broken_file
    first = manager.place_image(location, _png_bytes(), "image/png", "first.png")

    current = get_image(deck, location)
    assert first.applied is True
    assert current is not None
    assert current.asset_id == "asset-1"
    assert collector.pending() == {}


def test_remove_slide_schedules_each_unreferenced_asset() -> None:
    deck = Deck(
        slides=[
            Slide(
                type="gallery",
                items=[SlideItem(image=_remote("a")), SlideItem(image=_remote("b"))],
            ),
            Slide(type="image", image=_remote("b")),
        ]
    )
    store = _FakeStore()
    manager, collector = _seed_manager(deck, store)

    manager.remove_slide(0)

    assert len(deck.slides) == 1
    assert list(collector.pending()) == ["a"]


def test_remove_item_drops_entry_and_schedules_its_asset() -> None:
    deck = Deck(
        slides=[
            Slide(
                type="grid",
                items=[SlideItem(image=_remote("a")), SlideItem(image=_remote("b"))],
            )
        ]
    )
    manager, collector = _seed_manager(deck, _FakeStore())

    manager.remove_item(0, "items", 0)

    assert [item.image.asset_id for item in deck.slides[0].items] == ["b"]
    assert list(collector.pending()) == ["a"]
    with pytest.raises(IndexError):
        manager.remove_item(0, "items", 5)


def test_reorder_images_swaps_slots() -> None:
    deck = Deck(
        slides=[
            Slide(
                type="grid",
                items=[SlideItem(image=_remote("a")), SlideItem(image=_remote("b"))],
            )
        ]
    )
    manager, collector = _seed_manager(deck, _FakeStore())

    manager.reorder_images(0, 0, 1)

    assert [item.image.asset_id for item in deck.slides[0].items] == ["b", "a"]
    assert collector.pending() == {}


def test_inline_images_are_never_scheduled() -> None:
    deck = Deck(
        slides=[
            Slide(
                type="image",
                image=ImageReference(src="data:image/png;base64,AAAA", storage="inline"),
            )
        ]
    )
    manager, collector = _seed_manager(deck, _FakeStore())

    removed = manager.remove_image(0, 0)

    assert removed.is_inline is True
    assert deck.slides[0].image is None
    assert collector.pending() == {}
