"""
Frontend module for Crossfade Deck.

Contains the UI components built with CustomTkinter.
"""

from .app import CrossfadeDeckApp

__all__ = ['CrossfadeDeckApp']
