"""
Data model for Crossfade Deck.

- TrackDescriptor / TrackCatalog: the immutable, ordered list of tracks
- PlayerState: the single mutable "now playing" record
- TransitionRequest: one request to move to another track
- NowPlaying: the snapshot pushed to observers (UI, monitor)
"""

import os
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, Iterator, List, Optional, Sequence

from config import SUPPORTED_FORMATS, COVER_FORMATS


class Direction(Enum):
    """Which way a transition moves through the catalog."""
    NEXT = "next"
    PREVIOUS = "previous"


class Trigger(Enum):
    """What caused a transition."""
    MANUAL = auto()
    AUTO_ADVANCE = auto()


class PlaybackState(Enum):
    """Playback state enumeration."""
    STOPPED = auto()
    PLAYING = auto()
    PAUSED = auto()


@dataclass(frozen=True)
class TrackDescriptor:
    title: str
    audio_ref: str
    cover_ref: Optional[str] = None


class TrackCatalog:
    """
    Immutable ordered list of tracks, shared read-only by every component.

    Usage:
        catalog = TrackCatalog.from_dicts(DEFAULT_TRACKS)
        catalog[0].title  # "Neon Skyline"
    """

    def __init__(self, tracks: Iterable[TrackDescriptor]):
        self._tracks = tuple(tracks)
        if not self._tracks:
            raise ValueError("A catalog needs at least one track")

    @classmethod
    def from_dicts(cls, items: Sequence[dict], base_dir: Optional[str] = None) -> "TrackCatalog":
        """
        Build a catalog from static configuration entries.

        Args:
            items: Dicts with 'title', 'src' and optional 'cover' keys
            base_dir: Relative 'src'/'cover' paths are resolved against this
        """
        def _resolve(ref):
            if ref and base_dir and not os.path.isabs(ref):
                return os.path.join(base_dir, ref)
            return ref

        return cls(
            TrackDescriptor(
                title=item["title"],
                audio_ref=_resolve(item["src"]),
                cover_ref=_resolve(item.get("cover")),
            )
            for item in items
        )

    @classmethod
    def from_directory(cls, path: str) -> "TrackCatalog":
        """
        Scan a folder for audio files (sorted by name).
        A cover image with the same stem is attached when present.
        """
        tracks: List[TrackDescriptor] = []
        names = sorted(os.listdir(path))
        for name in names:
            stem, ext = os.path.splitext(name)
            if ext.lower() not in SUPPORTED_FORMATS:
                continue
            cover = None
            for candidate in names:
                c_stem, c_ext = os.path.splitext(candidate)
                if c_stem == stem and c_ext.lower() in COVER_FORMATS:
                    cover = os.path.join(path, candidate)
                    break
            tracks.append(TrackDescriptor(title=stem, audio_ref=os.path.join(path, name), cover_ref=cover))
        return cls(tracks)

    def __len__(self) -> int:
        return len(self._tracks)

    def __getitem__(self, index: int) -> TrackDescriptor:
        return self._tracks[index]

    def __iter__(self) -> Iterator[TrackDescriptor]:
        return iter(self._tracks)

    def __repr__(self):
        return f"TrackCatalog({len(self._tracks)} tracks)"


@dataclass
class PlayerState:
    """
    Process-wide playback record.

    Mutated only by the StateManager and by the CrossfadeScheduler when a
    transition completes. transition_in_flight stays True from the moment the
    standby channel starts preloading until the role swap is done.
    """
    current_index: int = 0
    is_playing: bool = False
    shuffle_enabled: bool = False
    is_seeking: bool = False
    transition_in_flight: bool = False


@dataclass(frozen=True)
class TransitionRequest:
    direction: Direction
    target_index: int
    trigger: Trigger


@dataclass(frozen=True)
class NowPlaying:
    track_index: int
    title: str
    cover_ref: Optional[str]
    is_playing: bool
    progress_ratio: float
    elapsed_label: str
    duration_label: str

    def to_dict(self):
        """Serialize for the monitor API."""
        return {
            'track_index': self.track_index,
            'title': self.title,
            'cover_ref': self.cover_ref,
            'is_playing': self.is_playing,
            'progress_ratio': self.progress_ratio,
            'elapsed_label': self.elapsed_label,
            'duration_label': self.duration_label,
        }
