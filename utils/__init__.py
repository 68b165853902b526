"""
Utility functions for Crossfade Deck.
"""

from .formatting import format_time, format_track_counter

__all__ = ['format_time', 'format_track_counter']
