"""
Formatting utilities for Crossfade Deck.
"""

import math
from typing import Optional


def format_time(seconds: Optional[float]) -> str:
    """
    Format seconds as a time string.

    Args:
        seconds: Time in seconds (None, NaN or infinity show as zero)

    Returns:
        Formatted string like "1:23"
    """
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        seconds = 0

    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


def format_track_counter(index: int, count: int) -> str:
    """1-based "i / N" label for the current track."""
    return f"{index + 1} / {count}"
