"""
State Manager for Crossfade Deck.

Acts as the controller layer between the UI and the playback engine.
Owns the PlayerState, validates every request and forwards it to the
selector / crossfade scheduler, and emits events.

This follows an event-driven architecture:
- UI registers callbacks for events it cares about
- StateManager emits events when state changes
- UI updates in response to events

Transitions come from three places: the user (skip), the progress reporter
(auto-advance near the end of a track) and the active channel itself (natural
end, load failure). All of them go through request_transition(), which
refuses to start a second transition while one is in flight.
"""

import random
import logging
from dataclasses import asdict
from typing import Callable, Dict, List, Optional

from config import CROSSFADE_MS, READY_TIMEOUT_MS
from .channels import Channel, ChannelPair
from .clock import FrameClock
from .crossfade import CrossfadeScheduler, FadePhase
from .errors import PlaybackBlocked, LoadFailure, FadeAbort
from .media import MediaLoader
from .models import (
    Direction, Trigger, PlaybackState, PlayerState,
    TrackCatalog, TransitionRequest, NowPlaying,
)
from .progress import ProgressReporter, ProgressUpdate
from .selector import TrackSelector

logger = logging.getLogger("CrossfadeDeck.StateManager")


class StateManager:
    """
    Central state manager for the player.

    Usage:
        manager = StateManager(catalog, loader, clock)
        manager.on('now_playing', my_callback)
        manager.unlock()
        manager.toggle_play()
        manager.skip(Direction.NEXT)

    Available Events:
    - 'now_playing':         (NowPlaying,) on track change, play/pause and every progress tick
    - 'state_change':        (PlaybackState,)
    - 'track_changed':       (index, TrackDescriptor)
    - 'progress':            (ProgressUpdate,)
    - 'transition_phase':    (FadePhase, TransitionRequest)
    - 'transition_rejected': (Direction, Trigger) - another transition was in flight
    - 'playback_blocked':    (PlaybackBlocked,)
    - 'load_failed':         (index, LoadFailure)
    - 'shuffle_changed':     (enabled,)
    """

    def __init__(self, catalog: TrackCatalog, loader: MediaLoader, clock: FrameClock,
                 crossfade_ms: int = CROSSFADE_MS, ready_timeout_ms: int = READY_TIMEOUT_MS,
                 rng: Optional[random.Random] = None):
        """
        Args:
            catalog: Tracks to play, in order
            loader: Media loader for both channels
            clock: Frame clock driving fades and progress polling
            crossfade_ms: Length of the volume crossfade
            ready_timeout_ms: How long a transition waits for the target to load
                              before cutting over without a fade (0 = forever)
            rng: Random source for shuffle
        """
        self.catalog = catalog
        self.loader = loader
        self.clock = clock

        self.state = PlayerState()
        self.playback = PlaybackState.STOPPED

        self.pair = ChannelPair(loader)
        self.selector = TrackSelector(len(catalog), rng)
        self.scheduler = CrossfadeScheduler(
            self.pair, clock, self.state, catalog,
            crossfade_ms=crossfade_ms, ready_timeout_ms=ready_timeout_ms
        )
        self.progress = ProgressReporter(self.pair, self.state, clock, crossfade_ms=crossfade_ms)

        # Consecutive load failures; reset whenever any track becomes ready
        self._failures = 0

        # Callbacks for UI updates (event-driven architecture)
        self._callbacks: Dict[str, List[Callable]] = {
            'now_playing': [],
            'state_change': [],
            'track_changed': [],
            'progress': [],
            'transition_phase': [],
            'transition_rejected': [],
            'playback_blocked': [],
            'load_failed': [],
            'shuffle_changed': [],
        }

        self.pair.on('ready', self._on_channel_ready)
        self.pair.on('metadata', self._on_channel_metadata)
        self.pair.on('ended', self._on_channel_ended)
        self.pair.on('error', self._on_channel_error)
        self.scheduler.on('phase_change', self._on_phase_change)
        self.scheduler.on('complete', self._on_transition_complete)
        self.scheduler.on('load_failed', self._on_target_failed)
        self.scheduler.on('fade_aborted', self._on_fade_aborted)
        self.progress.on('progress', self._on_progress)
        self.progress.on('auto_advance', self._on_auto_advance)

        first = catalog[self.state.current_index]
        self.pair.load_track(self.pair.active, first)

        logger.info(f"StateManager initialized: {len(catalog)} tracks, crossfade {crossfade_ms}ms")

    # =========================================================================
    # EVENT SYSTEM
    # =========================================================================

    def on(self, event: str, callback: Callable) -> None:
        """
        Register a callback for an event.

        Args:
            event: Event name (see class docstring for available events)
            callback: Function to call when event occurs
        """
        if event in self._callbacks:
            self._callbacks[event].append(callback)
        else:
            logger.warning(f"Unknown event: {event}. Available: {list(self._callbacks.keys())}")

    def off(self, event: str, callback: Callable) -> None:
        """
        Unregister a callback for an event.

        Args:
            event: Event name
            callback: Function to remove
        """
        if event in self._callbacks and callback in self._callbacks[event]:
            self._callbacks[event].remove(callback)

    def _emit(self, event: str, *args) -> None:
        """Emit an event to all registered callbacks."""
        for callback in list(self._callbacks.get(event, [])):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Error in callback for {event}: {e}")

    def _emit_now_playing(self) -> None:
        self._emit('now_playing', self.now_playing())

    def _set_playback(self, playback: PlaybackState) -> None:
        self.playback = playback
        self.state.is_playing = playback == PlaybackState.PLAYING
        self._emit('state_change', playback)
        self._emit_now_playing()

    # =========================================================================
    # PLAYBACK CONTROL
    # =========================================================================

    def unlock(self) -> None:
        """First user gesture: let the audio output start."""
        self.loader.unlock()

    def play(self) -> bool:
        """
        Start or resume the active channel.

        Returns:
            False if the audio output refused to start (state is unchanged)
        """
        if self.state.is_playing:
            return True
        self.scheduler.settle()

        logger.info(f"UI: Toggle play -> PLAY (was {self.playback.name.lower()})")
        try:
            self.pair.play(self.pair.active)
        except PlaybackBlocked as e:
            logger.warning(f"Playback blocked: {e}")
            self._emit('playback_blocked', e)
            return False

        self._set_playback(PlaybackState.PLAYING)
        self.progress.start()
        return True

    def pause(self) -> None:
        if not self.state.is_playing:
            return
        self.scheduler.settle()

        logger.info("UI: PAUSE")
        self.pair.pause(self.pair.active)
        self.progress.stop()
        self._set_playback(PlaybackState.PAUSED)

    def toggle_play(self) -> bool:
        """
        Play if paused/stopped, pause if playing.
        A transition in flight is finished first, so the toggle always acts
        on the track that ends up active.

        Returns:
            False only when starting playback was blocked
        """
        if self.state.is_playing:
            self.pause()
            return True
        return self.play()

    def stop(self) -> None:
        """Pause and rewind the active track."""
        logger.info("UI: STOP")
        self.scheduler.settle()
        self.pair.pause(self.pair.active)
        self.pair.active.position = 0.0
        self.progress.stop()
        self._set_playback(PlaybackState.STOPPED)

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def skip(self, direction: Direction) -> Optional[TransitionRequest]:
        logger.info(f"UI: Skip {direction.value}")
        return self.request_transition(direction, Trigger.MANUAL)

    def request_transition(self, direction: Direction, trigger: Trigger) -> Optional[TransitionRequest]:
        """
        Move to another track with a crossfade.

        Returns:
            The accepted TransitionRequest, or None if a transition is already
            in flight
        """
        return self._transition(direction, trigger)

    def _transition(self, direction: Direction, trigger: Trigger,
                    origin: Optional[int] = None) -> Optional[TransitionRequest]:
        if self.state.transition_in_flight:
            logger.info(f"Transition {direction.value} ({trigger.name}) rejected: one already in flight")
            self._emit('transition_rejected', direction, trigger)
            return None

        target = self.selector.resolve_next(self.state, direction, origin)
        request = TransitionRequest(direction=direction, target_index=target, trigger=trigger)

        # One advance per track: the natural 'ended' must not fire a second one
        self.progress.disarm()
        if not self.scheduler.begin(request, audible=self.state.is_playing):
            return None
        return request

    def _on_phase_change(self, phase: FadePhase, request: TransitionRequest) -> None:
        self._emit('transition_phase', phase, request)

    def _on_transition_complete(self, request: TransitionRequest, hard: bool) -> None:
        self.progress.rearm()
        if hard and self.state.is_playing:
            try:
                self.pair.play(self.pair.active)
            except PlaybackBlocked as e:
                logger.warning(f"Playback blocked after hard switch: {e}")
                self.progress.stop()
                self._emit('playback_blocked', e)
                self._set_playback(PlaybackState.PAUSED)

        track = self.catalog[request.target_index]
        logger.info(f"Now playing [{request.target_index}] '{track.title}'")
        self._emit('track_changed', request.target_index, track)
        self._emit_now_playing()

    def _on_fade_aborted(self, abort: FadeAbort) -> None:
        logger.info(f"Falling back to hard switch for track {abort.request.target_index}")

    def _on_auto_advance(self) -> None:
        self.request_transition(Direction.NEXT, Trigger.AUTO_ADVANCE)

    # =========================================================================
    # CHANNEL SIGNALS
    # =========================================================================

    def _on_channel_ready(self, channel: Channel) -> None:
        self._failures = 0
        if channel is self.pair.active:
            self._emit_now_playing()

    def _on_channel_metadata(self, channel: Channel, duration: float) -> None:
        if channel is self.pair.active:
            logger.debug(f"Channel {channel.name}: duration {duration:.2f}s")
            self._emit_now_playing()

    def _on_channel_ended(self, channel: Channel) -> None:
        if channel is not self.pair.active or self.state.transition_in_flight:
            return
        if not self.progress.armed:
            return
        logger.info("Track ended before auto-advance fired")
        self.request_transition(Direction.NEXT, Trigger.AUTO_ADVANCE)

    def _on_channel_error(self, channel: Channel, error: LoadFailure) -> None:
        # Standby failures belong to the scheduler (see _on_target_failed)
        if channel is not self.pair.active:
            return
        index = self.state.current_index
        logger.warning(f"Active track [{index}] failed to load: {error}")
        self._emit('load_failed', index, error)
        if self._count_failure():
            self._transition(Direction.NEXT, Trigger.AUTO_ADVANCE)

    def _on_target_failed(self, request: TransitionRequest, error: LoadFailure) -> None:
        self._emit('load_failed', request.target_index, error)
        if self._count_failure():
            # Keep going the same way, past the track that failed
            self._transition(request.direction, request.trigger, origin=request.target_index)
        else:
            self.progress.rearm()

    def _count_failure(self) -> bool:
        """Returns False once every track in the catalog has failed in a row."""
        self._failures += 1
        if self._failures >= len(self.catalog):
            logger.error(f"{self._failures} consecutive load failures, giving up")
            self._failures = 0
            if self.state.is_playing:
                self.pair.pause(self.pair.active)
                self.progress.stop()
                self._set_playback(PlaybackState.PAUSED)
            return False
        return True

    # =========================================================================
    # SHUFFLE
    # =========================================================================

    def set_shuffle(self, enabled: bool) -> None:
        enabled = bool(enabled)
        if enabled == self.state.shuffle_enabled:
            return
        self.state.shuffle_enabled = enabled
        logger.info(f"UI: Shuffle {'ON' if enabled else 'OFF'}")
        self._emit('shuffle_changed', enabled)

    def toggle_shuffle(self) -> bool:
        self.set_shuffle(not self.state.shuffle_enabled)
        return self.state.shuffle_enabled

    # =========================================================================
    # SEEKING
    # =========================================================================

    def begin_seek(self) -> None:
        """User started dragging the seek control: hold progress updates."""
        self.state.is_seeking = True

    def seek_to(self, ratio: float) -> None:
        """
        Jump to a fraction of the active track.
        A transition in flight keeps running; the seek moves the track
        that is active right now.

        Args:
            ratio: 0.0 (start) to 1.0 (end); clamped
        """
        if ratio != ratio:
            ratio = 0.0
        ratio = max(0.0, min(1.0, float(ratio)))

        duration = self.pair.active.duration
        if duration:
            self.pair.active.position = ratio * duration
            logger.info(f"UI: Seek to {ratio * duration:.3f}s ({ratio:.1%})")
        else:
            logger.debug("Seek ignored: duration not known yet")

        self.state.is_seeking = False
        update = self.progress.sample()
        self._emit('progress', update)
        self._emit_now_playing()

    def _on_progress(self, update: ProgressUpdate) -> None:
        self._emit('progress', update)
        self._emit_now_playing()

    # =========================================================================
    # QUERIES
    # =========================================================================

    def now_playing(self) -> NowPlaying:
        update = self.progress.sample()
        index = self.state.current_index
        track = self.catalog[index]
        return NowPlaying(
            track_index=index,
            title=track.title,
            cover_ref=track.cover_ref,
            is_playing=self.state.is_playing,
            progress_ratio=update.ratio,
            elapsed_label=update.elapsed_label,
            duration_label=update.duration_label,
        )

    def get_state(self) -> dict:
        """Snapshot of the player state."""
        snapshot = asdict(self.state)
        snapshot['playback'] = self.playback.name.lower()
        snapshot['track_count'] = len(self.catalog)
        snapshot['phase'] = self.scheduler.phase.name.lower()
        return snapshot

    def cleanup(self) -> None:
        """Stop polling and release both channels."""
        self.progress.stop()
        self.scheduler.cancel()
        self.pair.release()
        logger.info("StateManager cleaned up")
