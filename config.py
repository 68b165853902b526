"""
Configuration constants for Crossfade Deck.

All tunable parameters in one place for easy adjustment and debugging.
Modify these values to fine-tune transitions, timing, and UI appearance.
"""

import sys
import os
from themes import THEMES, DEFAULT_THEME

# =============================================================================
# PATHS
# =============================================================================

# HELPER: Detect if we are running as a compiled exe or a script
def get_base_path():
    if getattr(sys, 'frozen', False):
        # We are running as an exe - use the folder the exe is sitting in
        return os.path.dirname(sys.executable)
    else:
        # We are running as a script - use the script's folder
        return os.path.dirname(os.path.abspath(__file__))

# ROOT DIR
BASE_DIR = get_base_path()

# Log files are written here by main.setup_logging()
LOG_DIR = os.path.join(BASE_DIR, "logs")

# The default catalog's audio and cover files live here
MEDIA_DIR = os.path.join(BASE_DIR, "media")

# =============================================================================
# CROSSFADE SETTINGS
# =============================================================================

# Length of the volume interpolation between the two channels (milliseconds)
# TUNABLE: Longer is smoother, shorter gets to the next track sooner
CROSSFADE_MS = 1500

# The auto-advance window opens this many seconds before the end of a track,
# or earlier by the crossfade length if that is shorter:
#   lead = min(CROSSFADE_MS / 1000, AUTO_ADVANCE_MAX_LEAD_S)
AUTO_ADVANCE_MAX_LEAD_S = 2.0

# How long a transition waits for the standby channel to report "ready"
# before giving up and hard-switching (milliseconds). 0 = wait forever.
READY_TIMEOUT_MS = 8000

# =============================================================================
# FRAME CLOCK SETTINGS
# =============================================================================

# Interval between frames for the fade and progress loops
# 16ms ~= 60 FPS
FRAME_INTERVAL_MS = 16

# =============================================================================
# AUDIO ENGINE SETTINGS
# =============================================================================

# Sample rate for decoded audio (Hz)
SAMPLE_RATE = 44100

# Number of audio channels (2 = stereo)
CHANNELS = 2

# Pygame mixer buffer size (lower = less latency, but more CPU)
MIXER_BUFFER_SIZE = 1024

# Mixer slots used by the two playback channels
CHANNEL_SLOTS = (0, 1)

# Give ffmpeg/ffprobe this long before treating a file as undecodable (seconds)
DECODE_TIMEOUT_S = 120
PROBE_TIMEOUT_S = 10

# =============================================================================
# CATALOG
# =============================================================================

# Static catalog used when no --tracks directory is given
DEFAULT_TRACKS = [
    {"title": "Neon Skyline",   "src": "song1.mp3", "cover": "image1.jpg"},
    {"title": "Midnight Drive", "src": "song2.mp3", "cover": "image2.jpg"},
    {"title": "City Lights",    "src": "song3.mp3", "cover": "image3.jpg"},
]

# Supported audio formats
SUPPORTED_FORMATS = ('.mp3', '.wav', '.ogg', '.flac', '.m4a', '.aac')

# Cover images are matched to audio files by stem
COVER_FORMATS = ('.jpg', '.jpeg', '.png')

# =============================================================================
# NOW-PLAYING MONITOR
# =============================================================================

MONITOR_PORT = 8080

# =============================================================================
# UI SETTINGS - WINDOW
# =============================================================================

WINDOW_TITLE = "Crossfade Deck"
WINDOW_WIDTH = 420
WINDOW_HEIGHT = 620
WINDOW_MIN_WIDTH = 360
WINDOW_MIN_HEIGHT = 560

COVER_SIZE = 320

# =============================================================================
# UI SETTINGS - COLORS (DYNAMIC LOADING)
# =============================================================================

# Global variables to hold current theme colors
COLOR_BG_DARK = ""
COLOR_BG_MEDIUM = ""
COLOR_ACCENT = ""
COLOR_BTN_PRIMARY = ""
COLOR_BTN_TEXT = ""
COLOR_BTN_ACTIVE = ""
COLOR_TEXT = ""
COLOR_TEXT_DIM = ""
APPEARANCE_MODE = "dark"

def load_theme(theme_name=None):
    """Updates the global color variables from the named palette."""
    global COLOR_BG_DARK, COLOR_BG_MEDIUM, COLOR_ACCENT, COLOR_BTN_PRIMARY, \
           COLOR_BTN_TEXT, COLOR_BTN_ACTIVE, COLOR_TEXT, COLOR_TEXT_DIM, \
           APPEARANCE_MODE

    if not theme_name or theme_name not in THEMES:
        theme_name = DEFAULT_THEME

    _palette = THEMES[theme_name]

    COLOR_BG_DARK = _palette["bg_primary"]
    COLOR_BG_MEDIUM = _palette["bg_secondary"]
    COLOR_ACCENT = _palette["accent"]
    COLOR_BTN_PRIMARY = _palette["fg_primary"]
    COLOR_BTN_TEXT = _palette.get("btn_text", "#ffffff")
    COLOR_BTN_ACTIVE = _palette.get("btn_active", _palette["accent"])
    COLOR_TEXT = _palette["text_main"]
    COLOR_TEXT_DIM = _palette["text_dim"]

    # Simple brightness heuristic picks the CTk appearance mode
    bg_brightness = int(COLOR_BG_DARK[1:3], 16) + int(COLOR_BG_DARK[3:5], 16) + int(COLOR_BG_DARK[5:7], 16)
    APPEARANCE_MODE = "light" if bg_brightness > 382 else "dark"
    return theme_name


# Load the default theme immediately when config is imported
load_theme()
