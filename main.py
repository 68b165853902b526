#!/usr/bin/env python3
"""
Crossfade Deck - Continuous Player with Crossfaded Transitions

Plays an ordered list of tracks back to back, fading each one into the next
on two alternating output channels.

Usage:
    python main.py [--tracks DIR] [--crossfade-ms MS] [--shuffle]
                   [--headless] [--monitor] [--ffmpeg PATH] [--theme NAME] [--debug]
"""

import os
import sys

# Must be done BEFORE importing pygame (which happens in backend imports)
os.environ['PYGAME_HIDE_SUPPORT_PROMPT'] = "1"

import logging
import argparse
import shutil
from datetime import datetime

import config
from config import (
    get_base_path, LOG_DIR, MEDIA_DIR, DEFAULT_TRACKS,
    CROSSFADE_MS, MONITOR_PORT,
)
from themes import THEMES, DEFAULT_THEME

# =============================================================================
# UTILS
# =============================================================================

def setup_logging(debug: bool = False) -> logging.Logger:
    os.makedirs(LOG_DIR, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(LOG_DIR, f"crossfade_deck_{timestamp}.log")

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout), logging.FileHandler(log_file)]
    )
    return logging.getLogger("CrossfadeDeck")

def find_ffmpeg() -> str:
    """
    Robustly find FFmpeg.
    PRIORITY 1: Check sys._MEIPASS (PyInstaller bundles --add-binary files here).
    PRIORITY 2: Check the local folder (next to the .exe or script).
    PRIORITY 3: Check global system PATH.
    """
    binary_name = "ffmpeg.exe" if os.name == 'nt' else "ffmpeg"

    candidates = []
    if getattr(sys, '_MEIPASS', None):
        candidates.append(os.path.join(sys._MEIPASS, binary_name))
    candidates.append(os.path.join(get_base_path(), binary_name))

    for binary in candidates:
        if os.path.isfile(binary):
            if os.name != 'nt':
                try:
                    os.chmod(binary, 0o755)
                except OSError:
                    pass
            return binary

    if shutil.which("ffmpeg"):
        return "ffmpeg"

    # Fallback: every track will report a load failure
    return "ffmpeg"

def build_catalog(tracks_dir=None):
    from backend.models import TrackCatalog
    if tracks_dir:
        return TrackCatalog.from_directory(tracks_dir)
    return TrackCatalog.from_dicts(DEFAULT_TRACKS, base_dir=MEDIA_DIR)

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Crossfade Deck")
    parser.add_argument("--tracks", default=None, help="Folder of audio files to play (default: bundled catalog)")
    parser.add_argument("--crossfade-ms", type=int, default=CROSSFADE_MS)
    parser.add_argument("--shuffle", action="store_true")
    parser.add_argument("--headless", action="store_true", help="Play without a window (Ctrl+C to stop)")
    parser.add_argument("--monitor", action="store_true", help="Serve the now-playing monitor on the local network")
    parser.add_argument("--port", type=int, default=MONITOR_PORT)
    parser.add_argument("--ffmpeg", default=None)
    parser.add_argument("--theme", default=DEFAULT_THEME, choices=sorted(THEMES))
    parser.add_argument("--debug", action="store_true")
    return parser.parse_args(argv)


# =============================================================================
# HEADLESS
# =============================================================================

def run_headless(catalog, ffmpeg_path, args, logger):
    from backend import StateManager, FrameClock, PygameMediaLoader
    from backend.web_server import NowPlayingWebServer, SharedNowPlaying

    clock = FrameClock()
    loader = PygameMediaLoader(clock, ffmpeg_path=ffmpeg_path)
    manager = StateManager(catalog, loader, clock, crossfade_ms=args.crossfade_ms)
    manager.set_shuffle(args.shuffle)
    manager.on('track_changed', lambda index, track: logger.info(f"> {index + 1}/{len(catalog)} {track.title}"))

    server = None
    if args.monitor:
        shared = SharedNowPlaying()
        shared.attach(manager)
        server = NowPlayingWebServer(shared, port=args.port)
        server.start()

    # No user gesture without a window: unlock right away
    manager.unlock()
    if not manager.play():
        logger.error("Audio output unavailable, exiting")
    else:
        try:
            clock.run()
        except KeyboardInterrupt:
            logger.info("Interrupted")

    if server:
        server.stop()
    manager.stop()
    manager.cleanup()
    loader.shutdown()


# =============================================================================
# MAIN
# =============================================================================

def main(argv=None):
    # 1. SETUP & LOGGING (Must happen first!)
    args = parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.info("Crossfade Deck Starting")

    ffmpeg_path = args.ffmpeg or find_ffmpeg()
    logger.info(f"Using ffmpeg: {ffmpeg_path}")

    try:
        catalog = build_catalog(args.tracks)
    except (OSError, ValueError) as e:
        logger.error(f"No playable tracks: {e}")
        return 1
    logger.info(f"Catalog: {catalog}")

    if args.headless:
        run_headless(catalog, ffmpeg_path, args, logger)
        return 0

    config.load_theme(args.theme)

    # Late import so the widgets pick up the loaded theme colors
    from frontend.app import CrossfadeDeckApp

    try:
        app = CrossfadeDeckApp(
            catalog,
            ffmpeg_path=ffmpeg_path,
            crossfade_ms=args.crossfade_ms,
            shuffle=args.shuffle,
            monitor=args.monitor,
            monitor_port=args.port,
        )
        app.run()
    except Exception as e:
        logger.exception(f"Critical Error: {e}")
        return 1

    logger.info("Crossfade Deck Exiting")
    return 0

if __name__ == "__main__":
    sys.exit(main())
