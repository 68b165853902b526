"""
Frame clock for the playback engine.

Everything time-driven in the engine (the crossfade volume ramp, progress
polling, media signal polling) runs as one-shot frame callbacks that re-arm
themselves while they still have work to do. Stopping a loop means cancelling
its handle; nothing is ever scheduled from a background thread.

Usage:
    clock = FrameClock()
    handle = clock.request_frame(lambda now: print(now))
    clock.dispatch()        # runs the callback with the frame timestamp (ms)
"""

import time
import logging
from typing import Callable, Dict, Optional

from config import FRAME_INTERVAL_MS

logger = logging.getLogger("CrossfadeDeck.Clock")

FrameCallback = Callable[[float], None]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class FrameClock:
    """
    requestAnimationFrame-style scheduler.

    Callbacks registered before a frame starts run once in that frame.
    Callbacks registered while a frame is being dispatched run in the next one.
    """

    def __init__(self, time_source: Optional[Callable[[], float]] = None,
                 interval_ms: int = FRAME_INTERVAL_MS):
        """
        Args:
            time_source: Returns monotonic milliseconds (defaults to time.monotonic)
            interval_ms: Target spacing between frames for run()
        """
        self._time_source = time_source or _monotonic_ms
        self.interval_ms = interval_ms
        self._pending: Dict[int, FrameCallback] = {}
        self._batch: Dict[int, FrameCallback] = {}
        self._next_handle = 1
        self._running = False

    def now(self) -> float:
        """Current monotonic time in milliseconds."""
        return self._time_source()

    def request_frame(self, callback: FrameCallback) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._pending[handle] = callback
        self._on_request()
        return handle

    def cancel_frame(self, handle: Optional[int]) -> None:
        if handle is None:
            return
        self._pending.pop(handle, None)
        self._batch.pop(handle, None)

    def has_pending(self) -> bool:
        return bool(self._pending)

    def dispatch(self) -> int:
        """
        Run one frame.

        Returns:
            Number of callbacks that ran
        """
        now = self.now()
        self._batch, self._pending = self._pending, {}
        ran = 0
        while self._batch:
            handle = next(iter(self._batch))
            callback = self._batch.pop(handle)
            try:
                callback(now)
            except Exception as e:
                logger.exception(f"Frame callback failed: {e}")
            ran += 1
        return ran

    def run(self, stop_when: Optional[Callable[[], bool]] = None) -> None:
        """
        Drive frames until stop_when() returns True or stop() is called.
        Used by the headless runner; the desktop app uses TkFrameClock instead.
        """
        self._running = True
        interval = self.interval_ms / 1000.0
        logger.debug("Frame loop started")
        while self._running:
            start = time.monotonic()
            self.dispatch()
            if stop_when is not None and stop_when():
                break
            elapsed = time.monotonic() - start
            if elapsed < interval:
                time.sleep(interval - elapsed)
        self._running = False
        logger.debug("Frame loop exiting")

    def stop(self) -> None:
        self._running = False

    def _on_request(self) -> None:
        """Hook for clocks that need to wake an external event loop."""


class TkFrameClock(FrameClock):
    """Frame clock driven by a Tk widget's after() timer."""

    def __init__(self, widget, interval_ms: int = FRAME_INTERVAL_MS):
        super().__init__(interval_ms=interval_ms)
        self.widget = widget
        self._after_id = None

    def _on_request(self) -> None:
        if self._after_id is None:
            self._after_id = self.widget.after(self.interval_ms, self._tick)

    def _tick(self) -> None:
        self._after_id = None
        self.dispatch()
        if self.has_pending():
            self._on_request()

    def stop(self) -> None:
        super().stop()
        if self._after_id is not None:
            self.widget.after_cancel(self._after_id)
            self._after_id = None
