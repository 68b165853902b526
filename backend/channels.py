"""
Channel Pair for Crossfade Deck.

Two independent playback channels live for the whole session. One is ACTIVE
(audible), the other STANDBY (preloading / fading in). Their roles are the
only thing swapped during a transition; the media loaded on a channel is
replaced whenever a new track is assigned to it.
"""

import os
import logging
from enum import Enum, auto
from typing import Callable, Dict, List, Optional

from config import CHANNEL_SLOTS
from .errors import PlaybackBlocked
from .media import MediaHandle, MediaLoader
from .models import TrackDescriptor

logger = logging.getLogger("CrossfadeDeck.Channels")


class ChannelRole(Enum):
    ACTIVE = auto()
    STANDBY = auto()


def clamp_volume(volume: float) -> float:
    """Clamp to [0, 1]; NaN counts as full volume."""
    if volume != volume:
        return 1.0
    return max(0.0, min(1.0, float(volume)))


class Channel:
    """
    One output channel.

    Attributes:
        name: "A" or "B" (for logs)
        slot: Mixer slot the channel's media plays on
        role: ChannelRole.ACTIVE or ChannelRole.STANDBY
        volume: Current volume in [0, 1]
        handle: Whatever media is currently loaded (None before the first load)
    """

    def __init__(self, name: str, slot: int, role: ChannelRole):
        self.name = name
        self.slot = slot
        self.role = role
        self.volume = 1.0
        self.handle: Optional[MediaHandle] = None

    @property
    def position(self) -> float:
        return self.handle.position if self.handle else 0.0

    @position.setter
    def position(self, seconds: float) -> None:
        if self.handle:
            self.handle.position = seconds

    @property
    def duration(self) -> Optional[float]:
        return self.handle.duration if self.handle else None

    @property
    def is_ready(self) -> bool:
        return bool(self.handle and self.handle.is_ready)

    @property
    def is_playing(self) -> bool:
        return bool(self.handle and self.handle.is_playing)

    def __repr__(self):
        loaded = os.path.basename(self.handle.ref) if self.handle else None
        return f"Channel({self.name}, {self.role.name}, vol={self.volume:.2f}, loaded={loaded})"


class ChannelPair:
    """
    Owns the two channels and relays their media signals.

    Event System:
    - Register callbacks with: pair.on('event_name', callback_function)

    Available Events:
    - 'ready':    (channel,)
    - 'metadata': (channel, duration)
    - 'ended':    (channel,)
    - 'error':    (channel, LoadFailure)
    """

    def __init__(self, loader: MediaLoader):
        self.loader = loader
        self.active = Channel("A", CHANNEL_SLOTS[0], ChannelRole.ACTIVE)
        self.standby = Channel("B", CHANNEL_SLOTS[1], ChannelRole.STANDBY)

        self._callbacks: Dict[str, List[Callable]] = {
            'ready': [],
            'metadata': [],
            'ended': [],
            'error': [],
        }

    # =========================================================================
    # EVENT SYSTEM
    # =========================================================================

    def on(self, event: str, callback: Callable) -> None:
        if event in self._callbacks:
            self._callbacks[event].append(callback)
        else:
            logger.warning(f"Unknown event: {event}. Available: {list(self._callbacks.keys())}")

    def _emit(self, event: str, *args) -> None:
        for callback in list(self._callbacks.get(event, [])):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Error in callback for {event}: {e}")

    # =========================================================================
    # CHANNEL OPERATIONS
    # =========================================================================

    def load_track(self, channel: Channel, track: TrackDescriptor) -> None:
        """
        Replace whatever the channel holds with the track's audio.
        Loading is asynchronous: wait for the 'ready' event before relying on it.
        Playback position starts at zero; the channel's volume carries over.
        """
        self.unload(channel)
        logger.info(f"Channel {channel.name} ({channel.role.name}): loading '{track.title}'")
        handle = self.loader.load(track.audio_ref, channel.slot)
        handle.set_volume(channel.volume)
        handle.on('ready', lambda: self._emit('ready', channel))
        handle.on('metadata', lambda duration: self._emit('metadata', channel, duration))
        handle.on('ended', lambda: self._emit('ended', channel))
        handle.on('error', lambda error: self._emit('error', channel, error))
        channel.handle = handle

    def unload(self, channel: Channel) -> None:
        if channel.handle is not None:
            channel.handle.release()
            channel.handle = None

    def play(self, channel: Channel) -> None:
        """Raises PlaybackBlocked if the output refuses to start."""
        if channel.handle is None:
            raise PlaybackBlocked(f"Channel {channel.name} has nothing loaded")
        channel.handle.play()

    def pause(self, channel: Channel) -> None:
        if channel.handle is not None:
            channel.handle.pause()

    def set_volume(self, channel: Channel, volume: float) -> None:
        channel.volume = clamp_volume(volume)
        if channel.handle is not None:
            channel.handle.set_volume(channel.volume)

    def swap_roles(self) -> None:
        self.active, self.standby = self.standby, self.active
        self.active.role = ChannelRole.ACTIVE
        self.standby.role = ChannelRole.STANDBY
        logger.debug(f"Roles swapped: active={self.active.name} standby={self.standby.name}")

    def release(self) -> None:
        """Release both media handles (shutdown)."""
        self.unload(self.active)
        self.unload(self.standby)
