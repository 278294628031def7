"""
Web Server for FadeDeck - Local Network Remote Control.

Exposes the sequencer to other devices on the local network:
- GET  /            a small mobile-friendly page (now playing + track buttons)
- GET  /api/state   JSON snapshot of the playback state
- POST /api/play    {"track": "<name>"} plays that track,
                    {"track": null} or {} plays the next one

The server is a RemoteInlet: each valid POST is delivered as a single
optional track name, exactly like an in-process remote command.

Usage:
    shared = SharedPlaybackState()
    shared.attach(sequencer)
    server = RemoteCommandServer(shared, port=8080)
    sequencer.bind_remote(server)
    server.start()        # Non-blocking, runs in thread
    ...
    server.stop()
"""

import socket
import logging
import threading
from typing import Optional, Dict, Any

from flask import Flask, jsonify, request, Response
from werkzeug.serving import make_server

import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
from config import REMOTE_HOST, REMOTE_PORT

from .remote import RemoteInlet

logger = logging.getLogger("FadeDeck.WebServer")


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
# SHARED STATE (updated from sequencer events, read by web server)
# =========================================================================

class SharedPlaybackState:
    """Thread-safe shared state between the sequencer and the web server."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sequencer = None
        self._state: Dict[str, Any] = {
            "state": "idle",
            "current": None,      # {id, name, duration, original_volume}
            "position": 0.0,
            "volume": 0.0,
            "is_fading": False,
            "tracks": [],
            "config": {},
        }

    def update(self, **kwargs):
        with self._lock:
            self._state.update(kwargs)

    def get_state(self) -> dict:
        """Current state; position is refreshed live when a sequencer is attached."""
        if self._sequencer is not None:
            self.refresh()
        with self._lock:
            return dict(self._state)

    def attach(self, sequencer) -> None:
        """Mirror a sequencer: refresh on every event it emits."""
        self._sequencer = sequencer
        for event in ('state_change', 'track_started', 'track_settled',
                      'track_retired', 'library_populated'):
            sequencer.on(event, self._on_sequencer_event)
        self.refresh()

    def refresh(self) -> None:
        if self._sequencer is not None:
            self.update(**self._sequencer.snapshot())

    def _on_sequencer_event(self, *args) -> None:
        self.refresh()


# =========================================================================
# HTML PAGE (embedded - mobile-first)
# =========================================================================

REMOTE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0, user-scalable=no">
<title>FadeDeck Remote</title>
<style>
  * { margin: 0; padding: 0; box-sizing: border-box; }
  body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
    background: #0d1117; color: #e6edf3; padding: 12px;
  }
  h1 { font-size: 14px; color: #7d8590; margin-bottom: 8px; }
  .now { background: #161b22; border-radius: 12px; padding: 16px; margin-bottom: 12px; }
  .now .name { font-size: 22px; font-weight: 700; }
  .now .meta { font-family: 'SF Mono', 'Consolas', monospace; color: #7d8590; margin-top: 4px; }
  button {
    display: block; width: 100%; padding: 14px; margin-bottom: 8px;
    border: 1px solid #30363d; border-radius: 10px;
    background: #1c2333; color: #e6edf3; font-size: 16px; text-align: left;
  }
  button.current { border-color: #3fb950; background: #0d2818; }
  button.next { text-align: center; font-weight: 700; }
</style>
</head>
<body>
<h1>FADEDECK REMOTE</h1>
<div class="now">
  <div class="name" id="name">--</div>
  <div class="meta" id="meta">idle</div>
</div>
<button class="next" onclick="play(null)">Next track</button>
<div id="tracks"></div>
<script>
function fmt(s) {
  const m = Math.floor(s / 60);
  return m + ':' + (s % 60).toFixed(1).padStart(4, '0');
}
async function play(name) {
  await fetch('/api/play', {
    method: 'POST',
    headers: {'Content-Type': 'application/json'},
    body: JSON.stringify({track: name})
  });
  poll();
}
async function poll() {
  try {
    const s = await (await fetch('/api/state')).json();
    const cur = s.current ? s.current.name : null;
    document.getElementById('name').textContent = cur || '--';
    document.getElementById('meta').textContent = s.state +
      (s.current ? ' ' + fmt(s.position) + ' / ' + fmt(s.current.duration) : '') +
      (s.is_fading ? ' (fading)' : '');
    const list = document.getElementById('tracks');
    list.innerHTML = '';
    for (const t of s.tracks) {
      const b = document.createElement('button');
      b.textContent = t;
      if (t === cur) b.className = 'current';
      b.onclick = () => play(t);
      list.appendChild(b);
    }
  } catch (e) {
    document.getElementById('meta').textContent = 'connection lost';
  }
}
setInterval(poll, 1000);
poll();
</script>
</body>
</html>"""


# =========================================================================
# FLASK APP
# =========================================================================

def parse_play_request(payload):
    """
    Validate a /api/play body.

    Returns:
        (ok, track_name_or_error): track name (or None for "next") when ok,
        otherwise an error message
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return False, "body must be a JSON object"
    track = payload.get("track")
    if track is not None and not isinstance(track, str):
        return False, "'track' must be a string or null"
    return True, track


def create_flask_app(inlet: RemoteInlet, shared_state: SharedPlaybackState):
    """Create and configure the Flask app."""
    app = Flask(__name__)
    app.logger.setLevel(logging.WARNING)  # Suppress request logs

    # Suppress werkzeug logs
    wlog = logging.getLogger('werkzeug')
    wlog.setLevel(logging.ERROR)

    @app.route('/')
    def index():
        return Response(REMOTE_HTML, mimetype='text/html')

    @app.route('/api/state')
    def api_state():
        return jsonify(shared_state.get_state())

    @app.route('/api/play', methods=['POST'])
    def api_play():
        payload = request.get_json(silent=True)
        if payload is None and request.get_data():
            logger.warning("Rejected remote play: body is not valid JSON")
            return jsonify({"error": "body is not valid JSON"}), 400

        ok, result = parse_play_request(payload)
        if not ok:
            logger.warning(f"Rejected remote play: {result}")
            return jsonify({"error": result}), 400

        inlet.deliver(result)
        return jsonify({"accepted": True, "track": result}), 202

    return app


# =========================================================================
# SERVER MANAGER
# =========================================================================

class RemoteCommandServer(RemoteInlet):
    """
    HTTP transport in front of a RemoteInlet.

    Manages the Flask web server lifecycle. Commands arrive on werkzeug
    request threads; the bound sequencer serializes them with its own lock.
    """

    def __init__(self, shared_state: SharedPlaybackState, host: str = REMOTE_HOST,
                 port: int = REMOTE_PORT, name: str = "http"):
        super().__init__(name)
        self.shared_state = shared_state
        self.host = host
        self.port = port
        self.app = create_flask_app(self, shared_state)
        self._thread: Optional[threading.Thread] = None
        self._server = None
        self.running = False
        self.url = ""

    def start(self) -> str:
        """Start the web server. Returns the URL."""
        if self.running:
            return self.url

        # Use werkzeug's make_server for clean shutdown
        self._server = make_server(self.host, self.port, self.app, threaded=True)
        self.port = self._server.server_port
        self.url = f"http://{get_local_ip()}:{self.port}"

        def _run():
            logger.info(f"Web server starting on {self.url}")
            try:
                self._server.serve_forever()
            except OSError as e:
                logger.error(f"Web server error: {e}")
            finally:
                self.running = False
                logger.info("Web server stopped")

        self._thread = threading.Thread(target=_run, daemon=True)
        self._thread.start()
        self.running = True

        logger.info(f"Remote control available at: {self.url}")
        return self.url

    def stop(self):
        """Stop the web server."""
        if self._server:
            self._server.shutdown()
            self._server = None
        self.running = False
        logger.info("Web server shutdown requested")

    def close(self) -> None:
        self.stop()
        super().close()

    def get_url(self) -> str:
        return self.url if self.running else ""
