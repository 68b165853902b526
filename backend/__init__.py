"""
Backend module for Crossfade Deck.

Contains the playback engine: media loading, the channel pair, track
selection, crossfade scheduling, progress reporting and state management.
These modules are UI-agnostic and can be used independently for testing.
"""

from .errors import PlayerError, PlaybackBlocked, LoadFailure, FadeAbort
from .models import (
    Direction, Trigger, PlaybackState, PlayerState,
    TrackDescriptor, TrackCatalog, TransitionRequest, NowPlaying,
)
from .clock import FrameClock, TkFrameClock
from .media import MediaHandle, MediaLoader, PygameMediaLoader
from .channels import Channel, ChannelPair, ChannelRole
from .selector import TrackSelector
from .crossfade import CrossfadeScheduler, FadePhase
from .progress import ProgressReporter, ProgressUpdate
from .state_manager import StateManager

__all__ = [
    'PlayerError',
    'PlaybackBlocked',
    'LoadFailure',
    'FadeAbort',
    'Direction',
    'Trigger',
    'PlaybackState',
    'PlayerState',
    'TrackDescriptor',
    'TrackCatalog',
    'TransitionRequest',
    'NowPlaying',
    'FrameClock',
    'TkFrameClock',
    'MediaHandle',
    'MediaLoader',
    'PygameMediaLoader',
    'Channel',
    'ChannelPair',
    'ChannelRole',
    'TrackSelector',
    'CrossfadeScheduler',
    'FadePhase',
    'ProgressReporter',
    'ProgressUpdate',
    'StateManager',
]
