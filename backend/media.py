"""
Media resources for Crossfade Deck.

A MediaLoader turns a track's audio reference into a MediaHandle: one
exclusively-owned playable resource. Handles load asynchronously and report
back through events:

- 'ready':    enough media is available to start playback
- 'metadata': (duration_seconds,) once the length is known
- 'ended':    playback reached the natural end of the resource
- 'error':    (LoadFailure,) the resource could not be fetched/decoded

The pygame implementation decodes with ffmpeg into a numpy array in a
background thread, but polls for completion on the frame clock so every
event is delivered on the event-loop thread.

This module has NO UI dependencies and can be tested independently.
"""

import os
import time
import logging
import threading
import subprocess
from typing import Callable, Dict, List, Optional

import numpy as np
import pygame

from config import (
    SAMPLE_RATE, CHANNELS, MIXER_BUFFER_SIZE, CHANNEL_SLOTS,
    DECODE_TIMEOUT_S, PROBE_TIMEOUT_S,
)
from .errors import PlaybackBlocked, LoadFailure

logger = logging.getLogger("CrossfadeDeck.Media")

# Suppress console window on Windows for subprocess calls
_SUBPROCESS_FLAGS = {}
if os.name == 'nt':
    _SUBPROCESS_FLAGS['creationflags'] = subprocess.CREATE_NO_WINDOW


class MediaHandle:
    """
    One loaded playable resource.

    Subclasses implement the actual output; this base class owns the event
    plumbing so that release() reliably silences a replaced handle.
    """

    EVENTS = ('ready', 'metadata', 'ended', 'error')

    def __init__(self, ref: str):
        self.ref = ref
        self.volume = 1.0
        self.released = False
        self._callbacks: Dict[str, List[Callable]] = {event: [] for event in self.EVENTS}

    def on(self, event: str, callback: Callable) -> None:
        if event not in self._callbacks:
            raise ValueError(f"Unknown media event: {event}")
        self._callbacks[event].append(callback)

    def _emit(self, event: str, *args) -> None:
        if self.released:
            return
        for callback in list(self._callbacks[event]):
            callback(*args)

    # --- playback API ---------------------------------------------------------

    @property
    def duration(self) -> Optional[float]:
        raise NotImplementedError

    @property
    def position(self) -> float:
        raise NotImplementedError

    @position.setter
    def position(self, seconds: float) -> None:
        raise NotImplementedError

    @property
    def is_ready(self) -> bool:
        raise NotImplementedError

    @property
    def is_playing(self) -> bool:
        raise NotImplementedError

    def play(self) -> None:
        """Start or resume output. Raises PlaybackBlocked if output is refused."""
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def set_volume(self, volume: float) -> None:
        raise NotImplementedError

    def release(self) -> None:
        """Stop output and detach every listener."""
        self.released = True
        for listeners in self._callbacks.values():
            listeners.clear()


class MediaLoader:
    """Creates MediaHandles and owns the one-time output unlock."""

    def unlock(self) -> None:
        """Gesture unlock hook. Must be idempotent."""
        raise NotImplementedError

    def load(self, ref: str, slot: int) -> MediaHandle:
        """
        Start loading a resource for the output slot.

        Args:
            ref: Audio resource locator (file path)
            slot: Output slot the handle will play on (one per channel)
        """
        raise NotImplementedError


# =============================================================================
# PYGAME IMPLEMENTATION
# =============================================================================

def probe_duration(ffmpeg_path: str, path: str) -> float:
    """
    Get audio duration using ffprobe. Fast, no memory spike.

    Returns:
        Duration in seconds, or 0.0 on failure
    """
    ffprobe_path = ffmpeg_path.replace("ffmpeg", "ffprobe")
    cmd = [
        ffprobe_path,
        '-v', 'quiet',
        '-show_entries', 'format=duration',
        '-of', 'default=noprint_wrappers=1:nokey=1',
        path
    ]
    try:
        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=PROBE_TIMEOUT_S,
            **_SUBPROCESS_FLAGS
        )
    except FileNotFoundError:
        logger.warning("ffprobe not found, will use decoded length")
        return 0.0
    except subprocess.TimeoutExpired:
        logger.warning(f"ffprobe timed out on {os.path.basename(path)}")
        return 0.0

    if proc.returncode == 0 and proc.stdout.strip():
        try:
            return float(proc.stdout.strip())
        except ValueError:
            return 0.0
    return 0.0


def decode_samples(ffmpeg_path: str, path: str) -> np.ndarray:
    """
    Decode a file to signed 16-bit PCM in the mixer's format.

    Returns:
        int16 array of shape (frames, CHANNELS)

    Raises:
        LoadFailure: file missing, ffmpeg missing, or nothing decodable
    """
    if not os.path.isfile(path):
        raise LoadFailure(path, "file not found")

    cmd = [
        ffmpeg_path, '-i', path,
        '-f', 's16le', '-ar', str(SAMPLE_RATE), '-ac', str(CHANNELS),
        '-v', 'quiet', '-'
    ]
    try:
        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=DECODE_TIMEOUT_S,
            **_SUBPROCESS_FLAGS
        )
    except FileNotFoundError:
        raise LoadFailure(path, f"ffmpeg not found at {ffmpeg_path}")
    except subprocess.TimeoutExpired:
        raise LoadFailure(path, "decode timed out")

    if proc.returncode != 0:
        raise LoadFailure(path, "ffmpeg failed to decode audio")

    frames = len(proc.stdout) // (2 * CHANNELS)
    if frames == 0:
        raise LoadFailure(path, "decoded audio is empty")

    samples = np.frombuffer(proc.stdout[:frames * 2 * CHANNELS], dtype=np.int16)
    return samples.reshape(frames, CHANNELS)


class PygameMediaHandle(MediaHandle):
    """
    A decoded track bound to one pygame mixer channel.

    Position is tracked from the wall clock (offset + time since start), the
    same way a looping Sound's cycle position is derived, because
    pygame.mixer.Channel has no position query.
    """

    def __init__(self, ref: str, slot: int, clock, ffmpeg_path: str = "ffmpeg"):
        super().__init__(ref)
        self.slot = slot
        self.clock = clock
        self.ffmpeg_path = ffmpeg_path

        self._lock = threading.Lock()
        self._samples: Optional[np.ndarray] = None
        self._duration: Optional[float] = None
        self._error: Optional[LoadFailure] = None
        self._decoded = False
        self._announced = False

        self._offset = 0.0
        self._started_at = 0.0
        self._playing = False
        self._play_pending = False
        self._ended = False
        self._watch_handle = None

        self._thread = threading.Thread(target=self._decode, daemon=True)
        self._thread.start()
        self._watch()

    # --- background decode ------------------------------------------------------

    def _decode(self):
        name = os.path.basename(self.ref)
        start_time = time.time()
        try:
            samples = decode_samples(self.ffmpeg_path, self.ref)
            duration = probe_duration(self.ffmpeg_path, self.ref)
            if duration <= 0:
                duration = len(samples) / SAMPLE_RATE
            with self._lock:
                self._samples = samples
                self._duration = duration
                self._decoded = True
            elapsed = (time.time() - start_time) * 1000
            logger.info(f"Decoded {name}: {duration:.2f}s in {elapsed:.0f}ms")
        except LoadFailure as e:
            with self._lock:
                self._error = e
                self._decoded = True
            logger.warning(f"Load failed for {name}: {e.reason}")

    # --- frame polling ----------------------------------------------------------

    def _watch(self):
        if self._watch_handle is None and not self.released:
            self._watch_handle = self.clock.request_frame(self._poll)

    def _poll(self, now):
        self._watch_handle = None
        if self.released:
            return

        if not self._announced:
            with self._lock:
                decoded, error, duration = self._decoded, self._error, self._duration
            if not decoded:
                self._watch()
                return
            self._announced = True
            if error is not None:
                self._emit('error', error)
                return
            self._emit('metadata', duration)
            self._emit('ready')
            if self._play_pending and not self.released:
                self._play_pending = False
                self._start()

        if self._playing:
            channel = pygame.mixer.Channel(self.slot)
            if self.position >= self._duration or not channel.get_busy():
                logger.debug(f"Slot {self.slot}: {os.path.basename(self.ref)} ended")
                self._offset = self._duration
                self._playing = False
                self._ended = True
                self._emit('ended')
                return
            self._watch()

    # --- playback -----------------------------------------------------------------

    @property
    def duration(self) -> Optional[float]:
        return self._duration if self._announced else None

    @property
    def position(self) -> float:
        if self._playing:
            pos = self._offset + (time.monotonic() - self._started_at)
            return min(pos, self._duration or pos)
        return self._offset

    @position.setter
    def position(self, seconds: float) -> None:
        limit = self._duration if self._duration else 0.0
        self._offset = max(0.0, min(float(seconds), limit))
        self._ended = False
        if self._playing:
            self._start()

    @property
    def is_ready(self) -> bool:
        return self._announced and self._error is None

    @property
    def is_playing(self) -> bool:
        return self._playing or self._play_pending

    def play(self) -> None:
        if not pygame.mixer.get_init():
            raise PlaybackBlocked("Audio output is locked (mixer not initialized)")
        if self._ended:
            self._offset = 0.0
            self._ended = False
        if not self.is_ready:
            # Like a media element: play() before buffering starts once ready
            self._play_pending = True
            self._watch()
            return
        if not self._playing:
            self._start()

    def _start(self):
        # play() from an exact offset instead of unpause(): keeps the wall-clock
        # position honest after pause/seek
        start_frame = int(self._offset * SAMPLE_RATE)
        chunk = np.ascontiguousarray(self._samples[start_frame:])
        if len(chunk) == 0:
            self._playing = False
            self._ended = True
            self._emit('ended')
            return
        try:
            sound = pygame.sndarray.make_sound(chunk)
            channel = pygame.mixer.Channel(self.slot)
            channel.set_volume(self.volume)
            channel.play(sound)
        except pygame.error as e:
            self._playing = False
            raise PlaybackBlocked(f"Mixer refused playback: {e}")
        self._started_at = time.monotonic()
        self._playing = True
        logger.debug(f"[PLAY] Slot {self.slot} from {self._offset:.3f}s")
        self._watch()

    def pause(self) -> None:
        self._play_pending = False
        if not self._playing:
            return
        self._offset = self.position
        self._playing = False
        if pygame.mixer.get_init():
            pygame.mixer.Channel(self.slot).stop()
        logger.debug(f"[PAUSE] Slot {self.slot} at {self._offset:.3f}s")

    def set_volume(self, volume: float) -> None:
        self.volume = volume
        if self._playing and pygame.mixer.get_init():
            pygame.mixer.Channel(self.slot).set_volume(volume)

    def release(self) -> None:
        if self._playing and pygame.mixer.get_init():
            pygame.mixer.Channel(self.slot).stop()
        self._playing = False
        self._play_pending = False
        self.clock.cancel_frame(self._watch_handle)
        self._watch_handle = None
        with self._lock:
            self._samples = None
        super().release()


class PygameMediaLoader(MediaLoader):
    """
    Loads tracks for playback on pygame.mixer channels.

    Usage:
        loader = PygameMediaLoader(clock, ffmpeg_path="ffmpeg")
        loader.unlock()                 # on the first user gesture
        handle = loader.load("song1.mp3", slot=0)
    """

    def __init__(self, clock, ffmpeg_path: str = "ffmpeg"):
        self.clock = clock
        self.ffmpeg_path = ffmpeg_path
        self.unlocked = False

    def unlock(self) -> None:
        if self.unlocked:
            return
        try:
            pygame.mixer.init(
                frequency=SAMPLE_RATE,
                size=-16,
                channels=CHANNELS,
                buffer=MIXER_BUFFER_SIZE
            )
            if pygame.mixer.get_num_channels() <= max(CHANNEL_SLOTS):
                pygame.mixer.set_num_channels(max(CHANNEL_SLOTS) + 1)
        except pygame.error as e:
            # Leave locked: play() will report PlaybackBlocked and a later
            # gesture can try again
            logger.error(f"Audio output unavailable: {e}")
            return
        self.unlocked = True
        logger.info("Audio output unlocked (mixer initialized)")

    def load(self, ref: str, slot: int) -> PygameMediaHandle:
        logger.info(f"Loading {os.path.basename(ref)} on slot {slot}")
        return PygameMediaHandle(ref, slot, self.clock, ffmpeg_path=self.ffmpeg_path)

    def shutdown(self) -> None:
        if self.unlocked:
            pygame.mixer.quit()
            self.unlocked = False
