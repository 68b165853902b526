"""
Progress Reporter for Crossfade Deck.

While playing, polls the active channel once per frame and publishes the
fill ratio plus elapsed / duration labels. It also watches for the
auto-advance window near the end of the track and fires once per track.
"""

import math
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from config import CROSSFADE_MS, AUTO_ADVANCE_MAX_LEAD_S
from utils.formatting import format_time
from .channels import ChannelPair
from .clock import FrameClock
from .models import PlayerState

logger = logging.getLogger("CrossfadeDeck.Progress")


@dataclass(frozen=True)
class ProgressUpdate:
    ratio: float
    elapsed: float
    duration: Optional[float]
    elapsed_label: str
    duration_label: str


def progress_ratio(position: float, duration: Optional[float]) -> float:
    """clamp(position / duration, 0, 1); 0 while the duration is unknown."""
    if not duration or not math.isfinite(duration) or duration <= 0:
        return 0.0
    return max(0.0, min(1.0, position / duration))


class ProgressReporter:
    """
    Frame-driven position poller.

    Event System:
    - 'progress':     (ProgressUpdate,)
    - 'auto_advance': () - once per track, inside the end-of-track window
    """

    def __init__(self, pair: ChannelPair, state: PlayerState, clock: FrameClock,
                 crossfade_ms: int = CROSSFADE_MS):
        self.pair = pair
        self.state = state
        self.clock = clock
        self.crossfade_ms = crossfade_ms

        self._frame_handle: Optional[int] = None
        self._armed = True
        self._last_log = 0.0

        self._callbacks: Dict[str, List[Callable]] = {
            'progress': [],
            'auto_advance': [],
        }

    def on(self, event: str, callback: Callable) -> None:
        if event in self._callbacks:
            self._callbacks[event].append(callback)
        else:
            logger.warning(f"Unknown event: {event}. Available: {list(self._callbacks.keys())}")

    def _emit(self, event: str, *args) -> None:
        for callback in self._callbacks.get(event, []):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Error in callback for {event}: {e}")

    # =========================================================================
    # POLLING LOOP
    # =========================================================================

    @property
    def running(self) -> bool:
        return self._frame_handle is not None

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def auto_advance_lead(self) -> float:
        """Seconds before the end at which auto-advance fires."""
        return min(self.crossfade_ms / 1000.0, AUTO_ADVANCE_MAX_LEAD_S)

    def start(self) -> None:
        if self._frame_handle is None:
            logger.debug("Progress polling started")
            self._frame_handle = self.clock.request_frame(self._tick)

    def stop(self) -> None:
        if self._frame_handle is not None:
            self.clock.cancel_frame(self._frame_handle)
            self._frame_handle = None
            logger.debug("Progress polling stopped")

    def rearm(self) -> None:
        """A new track became active: watch its end window."""
        self._armed = True

    def disarm(self) -> None:
        self._armed = False

    def sample(self) -> ProgressUpdate:
        channel = self.pair.active
        position = channel.position
        duration = channel.duration
        return ProgressUpdate(
            ratio=progress_ratio(position, duration),
            elapsed=position,
            duration=duration,
            elapsed_label=format_time(position),
            duration_label=format_time(duration),
        )

    def _tick(self, now: float) -> None:
        self._frame_handle = None
        if not self.state.is_playing:
            return

        update = self.sample()
        if not self.state.is_seeking:
            self._emit('progress', update)

        if now - self._last_log > 2000:
            logger.debug(f"[PROGRESS] {update.elapsed:.2f}s / {update.duration_label}")
            self._last_log = now

        self._check_auto_advance(update)

        # An auto-advance handler may have stopped playback
        if self.state.is_playing and self._frame_handle is None:
            self._frame_handle = self.clock.request_frame(self._tick)

    def _check_auto_advance(self, update: ProgressUpdate) -> None:
        if not self._armed or not update.duration or not math.isfinite(update.duration):
            return
        remaining = update.duration - update.elapsed
        if remaining <= self.auto_advance_lead:
            self._armed = False
            logger.info(f"[AUTO] {remaining:.2f}s left (lead {self.auto_advance_lead:.2f}s), advancing")
            self._emit('auto_advance')
