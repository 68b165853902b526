"""
Crossfade Scheduler for Crossfade Deck.

Moves playback from the active channel to the standby channel:

    IDLE -> PRELOADING -> FADING -> SWAPPED -> IDLE

PRELOADING: standby volume forced to 0, target track loaded, wait for 'ready'
FADING:     linear ramp, standby = k, active = (1 - k) * start_volume
SWAPPED:    old active paused and reset to volume 1, roles exchanged

When the standby channel cannot start (playback refused, or never ready
within the timeout) the transition falls back to a hard switch: the target is
loaded straight into the active channel with no fade.
"""

import logging
from enum import Enum, auto
from typing import Callable, Dict, List, Optional

from config import CROSSFADE_MS, READY_TIMEOUT_MS
from .channels import Channel, ChannelPair
from .clock import FrameClock
from .errors import PlaybackBlocked, FadeAbort, LoadFailure
from .models import PlayerState, TrackCatalog, TransitionRequest

logger = logging.getLogger("CrossfadeDeck.Crossfade")


class FadePhase(Enum):
    IDLE = auto()
    PRELOADING = auto()
    FADING = auto()
    SWAPPED = auto()


def fade_progress(elapsed_ms: float, duration_ms: float) -> float:
    """Linear fade position k in [0, 1]."""
    if duration_ms <= 0:
        return 1.0
    return max(0.0, min(1.0, elapsed_ms / duration_ms))


class CrossfadeScheduler:
    """
    Runs one transition at a time between the two channels of a ChannelPair.

    Event System:
    - 'phase_change': (FadePhase, TransitionRequest)
    - 'complete':     (TransitionRequest, hard) - hard is True for a hard switch
    - 'load_failed':  (TransitionRequest, LoadFailure) - transition abandoned
    - 'fade_aborted': (FadeAbort,) - followed by a hard switch
    """

    def __init__(self, pair: ChannelPair, clock: FrameClock, state: PlayerState,
                 catalog: TrackCatalog, crossfade_ms: int = CROSSFADE_MS,
                 ready_timeout_ms: int = READY_TIMEOUT_MS):
        self.pair = pair
        self.clock = clock
        self.state = state
        self.catalog = catalog
        self.crossfade_ms = crossfade_ms
        self.ready_timeout_ms = ready_timeout_ms

        self.phase = FadePhase.IDLE
        self.request: Optional[TransitionRequest] = None
        self._audible = True
        self._frame_handle: Optional[int] = None
        self._preload_started = 0.0
        self._fade_started = 0.0
        self._start_volume = 1.0

        self._callbacks: Dict[str, List[Callable]] = {
            'phase_change': [],
            'complete': [],
            'load_failed': [],
            'fade_aborted': [],
        }

        pair.on('ready', self._on_channel_ready)
        pair.on('error', self._on_channel_error)

    # =========================================================================
    # EVENT SYSTEM
    # =========================================================================

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

    def _set_phase(self, phase: FadePhase, request: Optional[TransitionRequest]) -> None:
        self.phase = phase
        logger.debug(f"[FADE] phase -> {phase.name}")
        self._emit('phase_change', phase, request)

    # =========================================================================
    # TRANSITION CONTROL
    # =========================================================================

    @property
    def busy(self) -> bool:
        return self.phase != FadePhase.IDLE

    def begin(self, request: TransitionRequest, audible: bool = True) -> bool:
        """
        Start a transition to request.target_index.

        Args:
            request: What to transition to
            audible: Start the standby channel's output once ready. False while
                     the player is paused: volumes still ramp, nothing sounds.

        Returns:
            False if another transition is still in flight
        """
        if self.state.transition_in_flight:
            logger.warning(f"Transition to {request.target_index} refused: another is in flight")
            return False

        self.state.transition_in_flight = True
        self.request = request
        self._audible = audible

        track = self.catalog[request.target_index]
        logger.info(f"[FADE] {request.trigger.name} {request.direction.value} -> "
                    f"[{request.target_index}] '{track.title}' (audible={audible})")

        standby = self.pair.standby
        self.pair.set_volume(standby, 0.0)
        self._set_phase(FadePhase.PRELOADING, request)
        self._preload_started = self.clock.now()
        self.pair.load_track(standby, track)

        # The handle may have reported synchronously
        if self.phase == FadePhase.PRELOADING and self.ready_timeout_ms > 0:
            self._frame_handle = self.clock.request_frame(self._watchdog)
        return True

    def settle(self) -> None:
        """
        Finish an in-flight transition right now.
        FADING jumps to the end of the ramp and swaps; PRELOADING hard-switches.
        """
        if self.phase == FadePhase.FADING:
            logger.info("[FADE] Settling: completing fade immediately")
            self._cancel_frame()
            self._apply(1.0)
            self._swap()
        elif self.phase == FadePhase.PRELOADING:
            logger.info("[FADE] Settling: standby not ready, hard switch")
            self.hard_switch()

    def hard_switch(self) -> None:
        """Cut straight to the requested track on the active channel."""
        request = self.request
        if request is None:
            return
        self._cancel_frame()

        standby, active = self.pair.standby, self.pair.active
        self.pair.pause(standby)
        self.pair.unload(standby)
        self.pair.pause(active)
        self.pair.set_volume(active, 1.0)
        self.pair.load_track(active, self.catalog[request.target_index])

        self.state.current_index = request.target_index
        self.state.transition_in_flight = False
        self.request = None
        logger.info(f"[HARD] Switched to track {request.target_index} without fade")
        self._set_phase(FadePhase.IDLE, request)
        self._emit('complete', request, True)

    def cancel(self) -> None:
        """Drop an in-flight transition without touching the active channel (shutdown)."""
        self._cancel_frame()
        if self.request is not None:
            self.pair.unload(self.pair.standby)
        self.request = None
        self.phase = FadePhase.IDLE
        self.state.transition_in_flight = False

    # =========================================================================
    # PHASES
    # =========================================================================

    def _watchdog(self, now: float) -> None:
        self._frame_handle = None
        if self.phase != FadePhase.PRELOADING:
            return
        waited = now - self._preload_started
        if waited >= self.ready_timeout_ms:
            self._abort(FadeAbort(self.request, f"standby not ready after {waited:.0f}ms"))
            return
        self._frame_handle = self.clock.request_frame(self._watchdog)

    def _on_channel_ready(self, channel: Channel) -> None:
        if self.phase != FadePhase.PRELOADING or channel is not self.pair.standby:
            return
        self._cancel_frame()

        if self._audible:
            try:
                self.pair.play(channel)
            except PlaybackBlocked as e:
                self._abort(FadeAbort(self.request, e))
                return

        self._fade_started = self.clock.now()
        self._start_volume = self.pair.active.volume
        self._set_phase(FadePhase.FADING, self.request)
        self._frame_handle = self.clock.request_frame(self._step)

    def _on_channel_error(self, channel: Channel, error: LoadFailure) -> None:
        if self.phase != FadePhase.PRELOADING or channel is not self.pair.standby:
            return
        request = self.request
        logger.warning(f"[FADE] Target {request.target_index} failed to load: {error}")
        self._cancel_frame()
        self.pair.unload(channel)
        self.state.transition_in_flight = False
        self.request = None
        self._set_phase(FadePhase.IDLE, request)
        self._emit('load_failed', request, error)

    def _step(self, now: float) -> None:
        self._frame_handle = None
        if self.phase != FadePhase.FADING:
            return
        k = fade_progress(now - self._fade_started, self.crossfade_ms)
        self._apply(k)
        if k < 1.0:
            self._frame_handle = self.clock.request_frame(self._step)
        else:
            self._swap()

    def _apply(self, k: float) -> None:
        self.pair.set_volume(self.pair.standby, k)
        self.pair.set_volume(self.pair.active, (1.0 - k) * self._start_volume)

    def _swap(self) -> None:
        request = self.request
        old_active = self.pair.active
        self.pair.pause(old_active)
        self.pair.set_volume(old_active, 1.0)
        self.pair.swap_roles()

        self.state.current_index = request.target_index
        self.state.transition_in_flight = False
        self.request = None
        logger.info(f"[FADE] Swapped: channel {self.pair.active.name} now active on track {request.target_index}")
        self._set_phase(FadePhase.SWAPPED, request)
        self._emit('complete', request, False)
        if self.phase == FadePhase.SWAPPED:
            self._set_phase(FadePhase.IDLE, request)

    def _abort(self, abort: FadeAbort) -> None:
        logger.warning(f"[FADE] {abort}")
        self._emit('fade_aborted', abort)
        self.hard_switch()

    def _cancel_frame(self) -> None:
        self.clock.cancel_frame(self._frame_handle)
        self._frame_handle = None
