"""Debounced garbage collection of remote assets."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
import logging
import threading
import time
from typing import Protocol

from slideomatic.core.deck import Deck
from slideomatic.core.errors import AssetStoreError
from slideomatic.core.interfaces import AssetStore
from slideomatic.core.scanner import live_asset_ids

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_WINDOW_SECONDS = 10.0


class TimerHandle(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def _thread_timer(delay: float, callback: Callable[[], None]) -> TimerHandle:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer


@dataclass(frozen=True)
class FlushReport:
    deleted: tuple[str, ...] = ()
    reprieved: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()
    waiting: int = 0


@dataclass
class _PendingState:
    marked_at: dict[str, float] = field(default_factory=dict)
    timer: TimerHandle | None = None
    armed: int = 0


class GarbageCollector:
    """Pending-deletion map plus a single flush timer.

    `schedule` marks an asset; `flush` deletes the candidates that have waited
    a full settle window and are not referenced anywhere in the deck returned
    by `deck_provider` at flush time. Failed deletes are logged and dropped.
    """

    def __init__(
        self,
        store: AssetStore,
        deck_provider: Callable[[], Deck],
        *,
        settle_window: float = DEFAULT_SETTLE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: TimerFactory = _thread_timer,
    ) -> None:
        self._store = store
        self._deck_provider = deck_provider
        self.settle_window = settle_window
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._state = _PendingState()

    def schedule(self, asset_id: str) -> None:
        """Mark an asset as a deletion candidate, refreshing its timestamp."""
        if not asset_id:
            return
        with self._lock:
            self._state.marked_at[asset_id] = self._clock()
            logger.debug("Scheduled asset %s for deletion", asset_id)
            self._arm_locked(self.settle_window)

    def pending(self) -> dict[str, float]:
        with self._lock:
            return dict(self._state.marked_at)

    def flush(self, *, force: bool = False) -> FlushReport:
        """Delete settled candidates that a fresh scan shows are unused."""
        with self._lock:
            now = self._clock()
            ready = [
                asset_id
                for asset_id, marked_at in self._state.marked_at.items()
                if force or now - marked_at >= self.settle_window
            ]
            for asset_id in ready:
                del self._state.marked_at[asset_id]

        deleted: list[str] = []
        reprieved: list[str] = []
        failed: list[str] = []
        if ready:
            live = live_asset_ids(self._deck_provider())
            reprieved = [asset_id for asset_id in ready if asset_id in live]
            dead = [asset_id for asset_id in ready if asset_id not in live]
            for asset_id in reprieved:
                logger.debug("Asset %s is referenced again; keeping it", asset_id)
            if dead:
                try:
                    count = self._store.delete_many(dead)
                except AssetStoreError as exc:
                    logger.warning("Failed to delete assets %s: %s", dead, exc)
                    failed = dead
                else:
                    deleted = dead
                    if count < len(dead):
                        logger.debug(
                            "Store deleted %d of %d assets; the rest were already gone",
                            count,
                            len(dead),
                        )

        with self._lock:
            waiting = len(self._state.marked_at)
            if waiting and self._state.timer is None:
                oldest = min(self._state.marked_at.values())
                remaining = self.settle_window - (self._clock() - oldest)
                self._arm_locked(max(remaining, 0.0))

        return FlushReport(
            deleted=tuple(deleted),
            reprieved=tuple(reprieved),
            failed=tuple(failed),
            waiting=waiting,
        )

    def drain(self) -> FlushReport:
        """Cancel the timer and flush every candidate immediately."""
        self.cancel()
        return self.flush(force=True)

    def cancel(self) -> None:
        with self._lock:
            if self._state.timer is not None:
                self._state.timer.cancel()
                self._state.timer = None

    def _arm_locked(self, delay: float) -> None:
        if self._state.timer is not None:
            return
        self._state.armed += 1
        timer = self._timer_factory(delay, partial(self._on_timer, self._state.armed))
        self._state.timer = timer
        timer.start()

    def _on_timer(self, armed: int) -> None:
        # A timer that already started cannot be cancelled; ignore it once replaced.
        with self._lock:
            if self._state.timer is None or self._state.armed != armed:
                return
            self._state.timer = None
        try:
            self.flush()
        except Exception:
            logger.exception("Scheduled asset cleanup failed")
