"""
Web Server for Crossfade Deck - Local Network Now-Playing Monitor.

Serves a read-only view of what the player is doing over the local network:
track title, track number, play/pause state and progress. It never controls
playback.

Usage:
    The server is started from main.py with --monitor.
    It binds to 0.0.0.0 on the configured port (default 8080).

    Devices on the same network can open:
        http://<your-local-ip>:<port>
"""

import socket
import logging
import threading
from typing import Optional, Dict, Any

from flask import Flask, jsonify, Response

from config import MONITOR_PORT

logger = logging.getLogger("CrossfadeDeck.WebServer")


def get_local_ip():
    """Get the machine's local network IP address."""
    try:
        # Connect to a public DNS to determine local IP
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.settimeout(0.5)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "127.0.0.1"


# =========================================================================
# SHARED STATE (updated by the engine thread, read by the web server)
# =========================================================================

class SharedNowPlaying:
    """Thread-safe snapshot of the now-playing stream."""

    def __init__(self, track_count: int = 0):
        self._lock = threading.Lock()
        self._state: Dict[str, Any] = {
            "track_index": 0,
            "track_count": track_count,
            "title": "",
            "is_playing": False,
            "progress_ratio": 0.0,
            "elapsed_label": "0:00",
            "duration_label": "0:00",
            "shuffle": False,
        }

    def update(self, **kwargs):
        with self._lock:
            self._state.update(kwargs)

    def get_state(self) -> dict:
        with self._lock:
            return dict(self._state)

    def update_from_now_playing(self, now_playing):
        """'now_playing' event handler. cover_ref is a local path and is not published."""
        data = now_playing.to_dict()
        data.pop('cover_ref', None)
        self.update(**data)

    def attach(self, manager):
        """Subscribe to a StateManager's observable stream."""
        self.update(track_count=len(manager.catalog), shuffle=manager.state.shuffle_enabled)
        manager.on('now_playing', self.update_from_now_playing)
        manager.on('shuffle_changed', lambda enabled: self.update(shuffle=enabled))
        self.update_from_now_playing(manager.now_playing())


# =========================================================================
# HTML PAGE (embedded)
# =========================================================================

MONITOR_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Crossfade Deck</title>
<style>
  * { margin: 0; padding: 0; box-sizing: border-box; }
  :root { --bg: #0b0b1a; --surface: #16162e; --text: #f0f0ff; --dim: #8a8ab0; --accent: #ff2e88; }
  body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
    background: var(--bg); color: var(--text);
    min-height: 100vh; display: flex; align-items: center; justify-content: center;
  }
  .card { background: var(--surface); border-radius: 14px; padding: 24px; width: 92%; max-width: 420px; }
  .counter { font-size: 12px; color: var(--dim); text-transform: uppercase; letter-spacing: 1px; }
  .title { font-size: 24px; font-weight: 800; margin: 6px 0 16px; }
  .bar { height: 6px; background: #2a2a48; border-radius: 3px; overflow: hidden; }
  .fill { height: 100%; width: 0; background: var(--accent); }
  .times { display: flex; justify-content: space-between; font-size: 12px; color: var(--dim); margin-top: 6px;
           font-variant-numeric: tabular-nums; }
  .status { margin-top: 14px; font-size: 13px; color: var(--dim); }
  .status.playing { color: var(--accent); }
  .offline { opacity: 0.4; }
</style>
</head>
<body>
<div class="card" id="card">
  <div class="counter" id="counter">- / -</div>
  <div class="title" id="title">Waiting...</div>
  <div class="bar"><div class="fill" id="fill"></div></div>
  <div class="times"><span id="elapsed">0:00</span><span id="duration">0:00</span></div>
  <div class="status" id="status">Paused</div>
</div>
<script>
async function poll() {
  const card = document.getElementById('card');
  try {
    const r = await fetch('/api/state');
    const s = await r.json();
    card.classList.remove('offline');
    document.getElementById('counter').textContent = (s.track_index + 1) + ' / ' + s.track_count;
    document.getElementById('title').textContent = s.title;
    document.getElementById('fill').style.width = (s.progress_ratio * 100) + '%';
    document.getElementById('elapsed').textContent = s.elapsed_label;
    document.getElementById('duration').textContent = s.duration_label;
    const status = document.getElementById('status');
    status.textContent = (s.is_playing ? 'Playing' : 'Paused') + (s.shuffle ? ' \\u00b7 Shuffle' : '');
    status.className = 'status' + (s.is_playing ? ' playing' : '');
  } catch (e) {
    card.classList.add('offline');
  }
}
poll();
setInterval(poll, 500);
</script>
</body>
</html>"""


# =========================================================================
# FLASK APP
# =========================================================================

def create_flask_app(shared_state: SharedNowPlaying):
    """Create and configure the Flask app."""
    app = Flask(__name__)
    app.logger.setLevel(logging.WARNING)  # Suppress request logs

    # Suppress werkzeug logs
    wlog = logging.getLogger('werkzeug')
    wlog.setLevel(logging.ERROR)

    @app.route('/')
    def index():
        return Response(MONITOR_HTML, mimetype='text/html')

    @app.route('/api/state')
    def api_state():
        return jsonify(shared_state.get_state())

    return app


# =========================================================================
# SERVER MANAGER
# =========================================================================

class NowPlayingWebServer:
    """
    Manages the Flask web server lifecycle.

    Usage:
        shared = SharedNowPlaying()
        shared.attach(manager)
        server = NowPlayingWebServer(shared)
        server.start()        # Non-blocking, runs in thread
        ...
        server.stop()
    """

    def __init__(self, shared_state: SharedNowPlaying, port: int = MONITOR_PORT):
        self.shared_state = shared_state
        self.port = port
        self._thread: Optional[threading.Thread] = None
        self._server = None
        self.running = False
        self.url = ""

    def start(self) -> str:
        """Start the web server. Returns the URL."""
        if self.running:
            return self.url

        ip = get_local_ip()
        self.url = f"http://{ip}:{self.port}"

        app = create_flask_app(self.shared_state)

        # Use werkzeug's make_server for clean shutdown
        from werkzeug.serving import make_server
        self._server = make_server('0.0.0.0', self.port, app, threaded=True)

        def _run():
            logger.info(f"Web server starting on {self.url}")
            try:
                self._server.serve_forever()
            except Exception as e:
                logger.error(f"Web server error: {e}")
            finally:
                self.running = False
                logger.info("Web server stopped")

        self._thread = threading.Thread(target=_run, daemon=True)
        self._thread.start()
        self.running = True

        logger.info(f"Now-playing monitor available at: {self.url}")
        return self.url

    def stop(self):
        """Stop the web server."""
        if self._server:
            self._server.shutdown()
            self._server = None
        self.running = False
        logger.info("Web server shutdown requested")
