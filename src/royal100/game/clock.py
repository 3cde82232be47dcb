"""Per-side countdown clocks driven by a periodic ticker."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

from royal100.core.enums import Color
from royal100.engine.protocol import ClockTimes
from royal100.game.interfaces import IClock

_LOGGER = logging.getLogger(__name__)

UPDATE_INTERVAL_MS = 250

TickCallback = Callable[[int], None]  # elapsed milliseconds


class Ticker(Protocol):
    """Something that calls back periodically until stopped."""

    def start(self, interval_ms: int, callback: TickCallback) -> None: ...

    def stop(self) -> None: ...


class ThreadTicker:
    """Ticker backed by a daemon thread."""

    __slots__ = ("_stop_event", "_thread")

    def __init__(self) -> None:
        self._stop_event: threading.Event | None = None
        self._thread: threading.Thread | None = None

    def start(self, interval_ms: int, callback: TickCallback) -> None:
        self.stop()
        stop_event = threading.Event()

        def run() -> None:
            while not stop_event.wait(interval_ms / 1000):
                callback(interval_ms)

        self._stop_event = stop_event
        self._thread = threading.Thread(target=run, name="royal100-clock", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        self._stop_event = None
        self._thread = None


class Clock(IClock):
    """Countdown for one side.

    Time only moves through :meth:`tick`, which the ticker calls while the
    clock is active.  Reaching zero floors the clock, stops it and fires
    :attr:`on_expired` exactly once.
    """

    __slots__ = (
        "_remaining_ms",
        "_total_ms",
        "_active",
        "_expired",
        "_lock",
        "_ticker",
        "_interval_ms",
        "on_expired",
    )

    def __init__(
        self,
        ticker: Ticker | None = None,
        *,
        interval_ms: int = UPDATE_INTERVAL_MS,
    ) -> None:
        self._remaining_ms = 0
        self._total_ms = 0
        self._active = False
        self._expired = False
        self._lock = threading.RLock()
        self._ticker: Ticker = ticker if ticker is not None else ThreadTicker()
        self._interval_ms = interval_ms
        self.on_expired: list[Callable[[], None]] = []

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def remaining_ms(self) -> int:
        return self._remaining_ms

    @property
    def total_ms(self) -> int:
        return self._total_ms

    @property
    def remaining_pct(self) -> float:
        if self._total_ms <= 0:
            return 0.0
        return min(100.0, self._remaining_ms * 100 / self._total_ms)

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def remaining_text(self) -> str:
        """``hh:mm:ss`` rendering of the remaining time."""
        secs = round(self._remaining_ms / 1000)
        hours, secs = divmod(secs, 3600)
        mins, secs = divmod(secs, 60)
        return f"{hours:02d}:{mins:02d}:{secs:02d}"

    # ── IClock implementation ────────────────────────────────────────────

    def set(self, ms: int, total_ms: int | None = None) -> None:
        with self._lock:
            self._total_ms = max(0, ms if total_ms is None else total_ms)
            if ms <= 0:
                self._remaining_ms = 0
                self._halt()
            else:
                self._remaining_ms = ms
                self._expired = False

    def add(self, ms: int) -> None:
        with self._lock:
            self._remaining_ms += ms
            self._total_ms += ms
            if self._remaining_ms > 0:
                self._expired = False

    def resume(self) -> None:
        with self._lock:
            if self._active or self._remaining_ms <= 0:
                return
            self._active = True
            self._ticker.start(self._interval_ms, self.tick)

    def stop(self) -> None:
        with self._lock:
            self._halt()

    def tick(self, elapsed_ms: int) -> None:
        with self._lock:
            if not self._active:
                return
            self._remaining_ms -= elapsed_ms
            if self._remaining_ms > 0:
                return
            self._remaining_ms = 0
            self._halt()
            if self._expired:
                return
            self._expired = True
        _LOGGER.info("Clock expired")
        for handler in list(self.on_expired):
            handler()

    def _halt(self) -> None:
        if self._active:
            self._active = False
            self._ticker.stop()


class Clocks:
    """White and black clocks plus whether the game uses them at all."""

    __slots__ = ("white", "black", "used")

    def __init__(self, white: Clock, black: Clock, used: bool = False) -> None:
        self.white = white
        self.black = black
        self.used = used

    @classmethod
    def create(cls, ticker_factory: Callable[[], Ticker] = ThreadTicker) -> Clocks:
        return cls(Clock(ticker_factory()), Clock(ticker_factory()))

    def __getitem__(self, color: Color) -> Clock:
        return self.white if color == Color.WHITE else self.black

    def stop_all(self) -> None:
        self.white.stop()
        self.black.stop()

    def times(self) -> ClockTimes:
        return ClockTimes(self.white.remaining_ms, self.black.remaining_ms)
