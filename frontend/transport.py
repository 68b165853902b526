"""
Transport Controls Widget for Crossfade Deck.

Contains previous / play-pause / next buttons and the shuffle toggle.
"""

import logging
import tkinter as tk
from typing import Callable, Optional

import customtkinter as ctk

from config import (
    COLOR_BTN_PRIMARY, COLOR_BTN_TEXT, COLOR_BTN_ACTIVE,
    COLOR_BG_MEDIUM, COLOR_TEXT, COLOR_TEXT_DIM,
)

logger = logging.getLogger("CrossfadeDeck.Transport")

BTN_HEIGHT = 44


class TransportControls(ctk.CTkFrame):
    """
    Transport control panel: prev, play/pause, next, shuffle.
    """

    def __init__(
        self,
        parent: tk.Widget,
        on_prev: Optional[Callable] = None,
        on_toggle_play: Optional[Callable] = None,
        on_next: Optional[Callable] = None,
        on_shuffle: Optional[Callable] = None,
        **kwargs
    ):
        super().__init__(parent, fg_color="transparent", **kwargs)

        self.on_prev = on_prev
        self.on_toggle_play = on_toggle_play
        self.on_next = on_next
        self.on_shuffle = on_shuffle

        self._is_playing = False
        self._shuffle = False

        self._create_widgets()
        logger.debug("TransportControls initialized")

    def _create_widgets(self):
        """Create the transport control widgets."""
        self.btn_shuffle = ctk.CTkButton(
            self,
            text="🔀",
            width=44,
            height=BTN_HEIGHT,
            font=("Segoe UI", 16),
            fg_color=COLOR_BG_MEDIUM,
            text_color=COLOR_TEXT_DIM,
            command=lambda: self._fire(self.on_shuffle)
        )
        self.btn_shuffle.pack(side="left", padx=(0, 12))

        self.btn_prev = ctk.CTkButton(
            self,
            text="⏮",
            width=56,
            height=BTN_HEIGHT,
            font=("Segoe UI", 18),
            fg_color=COLOR_BG_MEDIUM,
            text_color=COLOR_TEXT,
            command=lambda: self._fire(self.on_prev)
        )
        self.btn_prev.pack(side="left", padx=4)

        self.btn_play = ctk.CTkButton(
            self,
            text="▶",
            width=72,
            height=BTN_HEIGHT + 12,
            corner_radius=28,
            font=("Segoe UI", 22, "bold"),
            fg_color=COLOR_BTN_PRIMARY,
            text_color=COLOR_BTN_TEXT,
            command=lambda: self._fire(self.on_toggle_play)
        )
        self.btn_play.pack(side="left", padx=8)

        self.btn_next = ctk.CTkButton(
            self,
            text="⏭",
            width=56,
            height=BTN_HEIGHT,
            font=("Segoe UI", 18),
            fg_color=COLOR_BG_MEDIUM,
            text_color=COLOR_TEXT,
            command=lambda: self._fire(self.on_next)
        )
        self.btn_next.pack(side="left", padx=4)

    def _fire(self, callback: Optional[Callable]):
        if callback:
            callback()

    def set_playing(self, is_playing: bool):
        """Update the play button state."""
        self._is_playing = is_playing
        self.btn_play.configure(text="⏸" if is_playing else "▶")

    def set_shuffle(self, enabled: bool):
        """Highlight the shuffle button while shuffle is on."""
        self._shuffle = enabled
        if enabled:
            self.btn_shuffle.configure(fg_color=COLOR_BTN_ACTIVE, text_color=COLOR_BTN_TEXT)
        else:
            self.btn_shuffle.configure(fg_color=COLOR_BG_MEDIUM, text_color=COLOR_TEXT_DIM)

    def reset(self):
        """Reset to initial state."""
        self.set_playing(False)
