"""
Main Application Window for Crossfade Deck.

Layout:
- Cover art
- Title and track counter ("2 / 3")
- Seek slider with elapsed / duration labels
- Transport (shuffle, prev, play/pause, next)
- Status bar

The window's Tk timer drives the engine's frame clock, so every engine
event already arrives on the Tk thread and can touch widgets directly.
"""

import logging
from typing import Optional

import customtkinter as ctk

from config import (
    WINDOW_TITLE, WINDOW_WIDTH, WINDOW_HEIGHT,
    WINDOW_MIN_WIDTH, WINDOW_MIN_HEIGHT, COVER_SIZE,
    COLOR_BG_DARK, COLOR_BG_MEDIUM, COLOR_ACCENT,
    COLOR_TEXT, COLOR_TEXT_DIM, APPEARANCE_MODE,
    CROSSFADE_MS, MONITOR_PORT,
)
from backend import (
    StateManager, PlaybackState, Direction, TrackCatalog,
    TkFrameClock, PygameMediaLoader,
)
from backend.web_server import NowPlayingWebServer, SharedNowPlaying
from utils.formatting import format_track_counter
from .artwork import load_cover
from .transport import TransportControls

logger = logging.getLogger("CrossfadeDeck.App")


class CrossfadeDeckApp(ctk.CTk):
    def __init__(self, catalog: TrackCatalog, ffmpeg_path: str = "ffmpeg",
                 crossfade_ms: int = CROSSFADE_MS, shuffle: bool = False,
                 monitor: bool = False, monitor_port: int = MONITOR_PORT):
        super().__init__()

        self.title(WINDOW_TITLE)
        self.geometry(f"{WINDOW_WIDTH}x{WINDOW_HEIGHT}")
        self.minsize(WINDOW_MIN_WIDTH, WINDOW_MIN_HEIGHT)
        self.configure(fg_color=COLOR_BG_DARK)

        ctk.set_appearance_mode(APPEARANCE_MODE)
        ctk.set_default_color_theme("blue")

        self.catalog = catalog
        self._unlocked = False
        self._cover_index: Optional[int] = None
        self._cover_image = None

        # Engine: the window's after() timer is the frame clock
        self.clock = TkFrameClock(self)
        self.loader = PygameMediaLoader(self.clock, ffmpeg_path=ffmpeg_path)
        self.app_state = StateManager(catalog, self.loader, self.clock, crossfade_ms=crossfade_ms)
        self.app_state.set_shuffle(shuffle)

        # Now-playing monitor
        self._shared_now_playing = SharedNowPlaying()
        self._web_server = NowPlayingWebServer(self._shared_now_playing, port=monitor_port) if monitor else None

        self._create_widgets()
        self._wire_callbacks()
        self._bind_shortcuts()

        self.protocol("WM_DELETE_WINDOW", self._on_close)

        self._render(self.app_state.now_playing())
        self.transport.set_shuffle(self.app_state.state.shuffle_enabled)
        logger.info("CrossfadeDeckApp initialized")

    def _create_widgets(self):
        container = ctk.CTkFrame(self, fg_color="transparent")
        container.pack(fill="both", expand=True, padx=20, pady=20)

        # --- Cover ---
        self.cover_label = ctk.CTkLabel(container, text="", width=COVER_SIZE, height=COVER_SIZE,
                                        fg_color=COLOR_BG_MEDIUM, corner_radius=12)
        self.cover_label.pack(pady=(0, 16))

        # --- Title / counter ---
        self.title_label = ctk.CTkLabel(
            container, text="", font=("Segoe UI", 20, "bold"), text_color=COLOR_TEXT
        )
        self.title_label.pack()

        self.counter_label = ctk.CTkLabel(
            container, text="", font=("Segoe UI", 12), text_color=COLOR_TEXT_DIM
        )
        self.counter_label.pack(pady=(0, 10))

        # --- Seek bar ---
        self.seek_slider = ctk.CTkSlider(
            container, from_=0, to=1, number_of_steps=1000,
            progress_color=COLOR_ACCENT, button_color=COLOR_ACCENT,
            button_hover_color=COLOR_ACCENT
        )
        self.seek_slider.set(0)
        self.seek_slider.pack(fill="x")
        self.seek_slider.bind("<Button-1>", self._on_seek_press, add="+")
        self.seek_slider.bind("<ButtonRelease-1>", self._on_seek_release, add="+")

        times = ctk.CTkFrame(container, fg_color="transparent")
        times.pack(fill="x", pady=(2, 12))
        self.elapsed_label = ctk.CTkLabel(times, text="0:00", font=("Consolas", 11), text_color=COLOR_TEXT_DIM)
        self.elapsed_label.pack(side="left")
        self.duration_label = ctk.CTkLabel(times, text="0:00", font=("Consolas", 11), text_color=COLOR_TEXT_DIM)
        self.duration_label.pack(side="right")

        # --- Transport ---
        self.transport = TransportControls(
            container,
            on_prev=self._gesture(lambda: self.app_state.skip(Direction.PREVIOUS)),
            on_toggle_play=self._gesture(self._on_toggle_play),
            on_next=self._gesture(lambda: self.app_state.skip(Direction.NEXT)),
            on_shuffle=self._gesture(self._on_toggle_shuffle),
        )
        self.transport.pack(pady=(0, 12))

        # --- Status bar ---
        self.status_label = ctk.CTkLabel(
            self, text="Press play to start", font=("Segoe UI", 11),
            text_color=COLOR_TEXT_DIM, anchor="w"
        )
        self.status_label.pack(side="bottom", fill="x", padx=12, pady=(0, 6))

    def _wire_callbacks(self):
        """Engine events arrive on the Tk thread (TkFrameClock), no queue needed."""
        self.app_state.on('now_playing', self._render)
        self.app_state.on('state_change', self._on_state_change)
        self.app_state.on('playback_blocked', self._on_playback_blocked)
        self.app_state.on('load_failed', self._on_load_failed)
        self.app_state.on('shuffle_changed', self.transport.set_shuffle)
        if self._web_server:
            self._shared_now_playing.attach(self.app_state)

    def _bind_shortcuts(self):
        def _safe(fn):
            """Keyboard shortcuts count as a user gesture too."""
            def wrapper(e):
                self._unlock_once()
                fn()
            return wrapper

        self.bind("<space>", _safe(self._on_toggle_play))
        self.bind("<Left>", _safe(lambda: self.app_state.skip(Direction.PREVIOUS)))
        self.bind("<Right>", _safe(lambda: self.app_state.skip(Direction.NEXT)))

    # =========================================================================
    # UI -> State
    # =========================================================================

    def _unlock_once(self):
        if not self._unlocked:
            self.app_state.unlock()
            self._unlocked = self.loader.unlocked

    def _gesture(self, fn):
        def wrapper():
            self._unlock_once()
            fn()
        return wrapper

    def _on_toggle_play(self):
        self.app_state.toggle_play()

    def _on_toggle_shuffle(self):
        enabled = self.app_state.toggle_shuffle()
        self.status_label.configure(text=f"Shuffle {'on' if enabled else 'off'}")

    def _on_seek_press(self, event=None):
        self.app_state.begin_seek()

    def _on_seek_release(self, event=None):
        self.app_state.seek_to(self.seek_slider.get())

    # =========================================================================
    # State -> UI
    # =========================================================================

    def _render(self, now_playing):
        if self._cover_index != now_playing.track_index:
            self._cover_index = now_playing.track_index
            cover = load_cover(now_playing.cover_ref, COVER_SIZE, now_playing.title,
                               background=COLOR_BG_MEDIUM, accent=COLOR_ACCENT)
            self._cover_image = ctk.CTkImage(light_image=cover, dark_image=cover,
                                             size=(COVER_SIZE, COVER_SIZE))
            self.cover_label.configure(image=self._cover_image)
            self.title_label.configure(text=now_playing.title)
            self.counter_label.configure(
                text=format_track_counter(now_playing.track_index, len(self.catalog))
            )

        if not self.app_state.state.is_seeking:
            self.seek_slider.set(now_playing.progress_ratio)
        self.elapsed_label.configure(text=now_playing.elapsed_label)
        self.duration_label.configure(text=now_playing.duration_label)
        self.transport.set_playing(now_playing.is_playing)

    def _on_state_change(self, state):
        if state == PlaybackState.PLAYING:
            self.status_label.configure(text="Playing")
        elif state == PlaybackState.PAUSED:
            self.status_label.configure(text="Paused")
        else:
            self.status_label.configure(text="Stopped")

    def _on_playback_blocked(self, error):
        self.status_label.configure(text="Audio output unavailable")

    def _on_load_failed(self, index, error):
        self.status_label.configure(text=f"Skipped '{self.catalog[index].title}' (could not load)")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def _on_close(self):
        """Handle application shutdown."""
        logger.info("Application closing")

        if self._web_server and self._web_server.running:
            self._web_server.stop()

        self.app_state.stop()
        self.app_state.cleanup()
        self.loader.shutdown()
        self.clock.stop()

        self.destroy()

    def run(self):
        logger.info("Starting application")
        if self._web_server:
            url = self._web_server.start()
            self.status_label.configure(text=f"Monitor: {url}")
        self.mainloop()
