"""
Shared fixtures: a scriptable media loader and a manually driven frame clock.

Nothing here touches pygame's mixer or ffmpeg; handles only change state when
a test tells them to (make_ready / fail / finish).
"""

import os
import random

import pytest

os.environ.setdefault('PYGAME_HIDE_SUPPORT_PROMPT', "1")

from backend.clock import FrameClock
from backend.errors import PlaybackBlocked, LoadFailure
from backend.media import MediaHandle, MediaLoader
from backend.models import TrackCatalog, TrackDescriptor
from backend.state_manager import StateManager


class FakeHandle(MediaHandle):
    def __init__(self, ref, slot, duration=10.0, fail=False):
        super().__init__(ref)
        self.slot = slot
        self._duration = duration
        self._fail = fail
        self.announced = False
        self.ready = False
        self.playing = False
        self.reject_play = False
        self.play_calls = 0
        self.volume_history = []
        self._position = 0.0

    # --- test controls ---------------------------------------------------

    def make_ready(self):
        """Announce the load result (error for refs marked as failing)."""
        self.announced = True
        if self._fail:
            self._emit('error', LoadFailure(self.ref, "undecodable"))
            return
        self.ready = True
        self._emit('metadata', self._duration)
        self._emit('ready')

    def finish(self):
        self._position = self._duration
        self.playing = False
        self._emit('ended')

    # --- MediaHandle -------------------------------------------------------

    @property
    def duration(self):
        return self._duration if self.ready else None

    @property
    def position(self):
        return self._position

    @position.setter
    def position(self, seconds):
        self._position = max(0.0, min(float(seconds), self._duration))

    @property
    def is_ready(self):
        return self.ready

    @property
    def is_playing(self):
        return self.playing

    def play(self):
        self.play_calls += 1
        if self.reject_play:
            raise PlaybackBlocked(f"{self.ref} refused to start")
        self.playing = True

    def pause(self):
        self.playing = False

    def set_volume(self, volume):
        self.volume = volume
        self.volume_history.append(volume)

    def release(self):
        self.playing = False
        super().release()


class FakeMediaLoader(MediaLoader):
    def __init__(self, durations=None, fail_refs=(), reject_play=False):
        self.durations = dict(durations or {})
        self.fail_refs = set(fail_refs)
        self.reject_play = reject_play
        self.handles = []
        self.unlock_calls = 0
        self.unlocked = False

    def unlock(self):
        self.unlock_calls += 1
        self.unlocked = True

    def load(self, ref, slot):
        handle = FakeHandle(ref, slot, duration=self.durations.get(ref, 10.0),
                            fail=ref in self.fail_refs)
        handle.reject_play = self.reject_play
        self.handles.append(handle)
        return handle

    @property
    def last(self):
        return self.handles[-1]

    def pending(self):
        return [h for h in self.handles if not h.announced and not h.released]

    def ready_all(self):
        """Announce every outstanding load, including loads those announcements trigger."""
        while self.pending():
            for handle in self.pending():
                handle.make_ready()


class ManualTime:
    """Drives a FrameClock in fixed steps of simulated milliseconds."""

    def __init__(self):
        self.now = 0.0
        self.clock = FrameClock(time_source=lambda: self.now)

    def step(self, ms=16.0):
        self.now += ms
        return self.clock.dispatch()

    def run_for(self, ms, frame_ms=16.0):
        elapsed = 0.0
        while elapsed < ms:
            self.step(frame_ms)
            elapsed += frame_ms


@pytest.fixture
def catalog():
    return TrackCatalog([
        TrackDescriptor("Neon Skyline", "song1.mp3", "image1.jpg"),
        TrackDescriptor("Midnight Drive", "song2.mp3", "image2.jpg"),
        TrackDescriptor("City Lights", "song3.mp3", "image3.jpg"),
    ])


@pytest.fixture
def loader():
    return FakeMediaLoader()


@pytest.fixture
def ticker():
    return ManualTime()


@pytest.fixture
def make_manager(catalog, loader, ticker):
    """Factory: a StateManager with its first track already loaded."""
    def _make(tracks=None, **kwargs):
        kwargs.setdefault('crossfade_ms', 1500)
        kwargs.setdefault('ready_timeout_ms', 8000)
        kwargs.setdefault('rng', random.Random(1234))
        manager = StateManager(tracks or catalog, loader, ticker.clock, **kwargs)
        loader.ready_all()
        return manager
    return _make


@pytest.fixture
def manager(make_manager):
    return make_manager()


class Recorder:
    """Collects events from an emitter."""

    def __init__(self, emitter, *events):
        self.calls = {event: [] for event in events}
        for event in events:
            emitter.on(event, self._collector(event))

    def _collector(self, event):
        return lambda *args: self.calls[event].append(args)

    def __getitem__(self, event):
        return self.calls[event]


@pytest.fixture
def record():
    return Recorder
