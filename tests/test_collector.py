from __future__ import annotations

from collections.abc import Callable

from slideomatic.core.collector import GarbageCollector
from slideomatic.core.deck import Deck, Slide
from slideomatic.core.errors import DeleteFailedError
from slideomatic.core.images import ImageReference
from slideomatic.core.interfaces import AssetStore, UploadResult


class _FakeStore(AssetStore):
    def __init__(self, *, fail_deletes: bool = False) -> None:
        self.fail_deletes = fail_deletes
        self.delete_calls: list[list[str]] = []

    def upload(self, data: bytes, mime_type: str, filename: str) -> UploadResult:
        raise AssertionError("upload is not expected here")

    def fetch(self, asset_id: str) -> tuple[bytes, str]:
        raise AssertionError("fetch is not expected here")

    def delete_many(self, asset_ids: list[str]) -> int:
        self.delete_calls.append(list(asset_ids))
        if self.fail_deletes:
            raise DeleteFailedError("Failed to delete assets", status_code=500)
        return len(asset_ids)


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class _FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True


def _remote(asset_id: str) -> ImageReference:
    return ImageReference.model_validate(
        {"src": f"https://assets.example/{asset_id}", "storage": "remote", "assetId": asset_id}
    )


def _seed_collector(
    deck: Deck, store: _FakeStore
) -> tuple[GarbageCollector, _Clock, list[_FakeTimer]]:
    clock = _Clock()
    timers: list[_FakeTimer] = []

    def _timer_factory(delay: float, callback: Callable[[], None]) -> _FakeTimer:
        timer = _FakeTimer(delay, callback)
        timers.append(timer)
        return timer

    collector = GarbageCollector(
        store,
        lambda: deck,
        settle_window=10.0,
        clock=clock,
        timer_factory=_timer_factory,
    )
    return collector, clock, timers


def test_discarded_asset_is_deleted_exactly_once_after_settle_window() -> None:
    deck = Deck(slides=[Slide(type="image")])
    store = _FakeStore()
    collector, clock, timers = _seed_collector(deck, store)

    collector.schedule("logo-abc123")
    clock.now = 5.0
    early = collector.flush()
    clock.now = 11.0
    timers[-1].callback()
    clock.now = 30.0
    late = collector.flush()

    assert early.deleted == ()
    assert early.waiting == 1
    assert store.delete_calls == [["logo-abc123"]]
    assert late.deleted == ()
    assert collector.pending() == {}


def test_reference_restored_within_window_reprieves_the_asset() -> None:
    slide = Slide(type="image")
    deck = Deck(slides=[slide])
    store = _FakeStore()
    collector, clock, _ = _seed_collector(deck, store)

    collector.schedule("logo-abc123")
    clock.now = 4.0
    slide.image = _remote("logo-abc123")
    clock.now = 11.0
    report = collector.flush()

    assert report.reprieved == ("logo-abc123",)
    assert report.deleted == ()
    assert store.delete_calls == []
    assert collector.pending() == {}


def test_scheduling_twice_refreshes_timestamp_and_keeps_one_entry() -> None:
    deck = Deck()
    store = _FakeStore()
    collector, clock, timers = _seed_collector(deck, store)

    collector.schedule("logo-abc123")
    clock.now = 8.0
    collector.schedule("logo-abc123")
    clock.now = 12.0
    report = collector.flush()

    assert collector.pending() == {"logo-abc123": 8.0}
    assert report.deleted == ()
    assert len(timers) == 1

    clock.now = 18.0
    report = collector.flush()

    assert report.deleted == ("logo-abc123",)
    assert store.delete_calls == [["logo-abc123"]]


def test_failed_delete_is_logged_and_not_retried(caplog) -> None:
    deck = Deck()
    store = _FakeStore(fail_deletes=True)
    collector, clock, _ = _seed_collector(deck, store)

    collector.schedule("photo-1")
    collector.schedule("photo-2")
    clock.now = 10.0
    with caplog.at_level("WARNING"):
        report = collector.flush()
    clock.now = 60.0
    collector.flush()

    assert report.failed == ("photo-1", "photo-2")
    assert store.delete_calls == [["photo-1", "photo-2"]]
    assert collector.pending() == {}
    assert "Failed to delete assets" in caplog.text


def test_single_timer_is_rearmed_for_remaining_entries() -> None:
    deck = Deck()
    store = _FakeStore()
    collector, clock, timers = _seed_collector(deck, store)

    collector.schedule("a")
    clock.now = 6.0
    collector.schedule("b")
    assert len(timers) == 1
    assert timers[0].delay == 10.0

    clock.now = 10.0
    timers[0].callback()

    assert store.delete_calls == [["a"]]
    assert len(timers) == 2
    assert timers[1].delay == 6.0
    assert timers[1].started is True


def test_drain_flushes_everything_and_cancels_timer() -> None:
    deck = Deck(slides=[Slide(type="image", image=_remote("kept"))])
    store = _FakeStore()
    collector, _, timers = _seed_collector(deck, store)

    collector.schedule("kept")
    collector.schedule("gone")
    report = collector.drain()

    assert timers[0].cancelled is True
    assert report.deleted == ("gone",)
    assert report.reprieved == ("kept",)
    assert store.delete_calls == [["gone"]]


def test_stale_timer_callback_leaves_the_armed_timer_in_place() -> None:
    deck = Deck()
    store = _FakeStore()
    collector, clock, timers = _seed_collector(deck, store)

    collector.schedule("a")
    collector.cancel()
    collector.schedule("b")
    clock.now = 20.0
    timers[0].callback()
    collector.schedule("c")

    live = [timer for timer in timers if timer.started and not timer.cancelled]
    assert len(live) == 1
    assert live[0] is timers[1]
    assert store.delete_calls == []

    collector.cancel()
    assert timers[1].cancelled is True
