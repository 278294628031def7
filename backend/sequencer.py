"""
Playback Sequencer for FadeDeck.

Acts as the controller layer between callers (CLI, HTTP remote, host code)
and the audio resources. Owns the library, the current track, the fade
coordinator and the auto-advance watchdog, and emits events when state
changes.

This follows an event-driven architecture:
- Listeners register callbacks for events they care about
- The Sequencer emits events when state changes
- Listeners update in response to events

Every public operation is total: failures (empty library, unknown track,
nothing to resume) are logged and leave state untouched. Nothing raises to
the caller.
"""

import os
import sys
import math
import logging
import threading
from enum import Enum, auto
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

# Add parent directory to path for config import
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from config import DEFAULT_AUTO_PLAY_NEXT_TRACK, DEFAULT_CROSSFADE_SECONDS
from utils.formatting import format_duration
from .errors import (
    SequencerError, LibraryNotPopulated, TrackNotFound, NoCurrentTrack, InvalidResource,
)
from .events import Connection
from .fades import FadeCoordinator
from .library import Library, Track, as_entries
from .remote import RemoteInlet
from .scheduler import Scheduler
from .selector import resolve
from .watchdog import Watchdog

logger = logging.getLogger("FadeDeck.Sequencer")


class PlaybackState(Enum):
    """Playback state enumeration."""
    IDLE = auto()
    PLAYING = auto()
    PAUSED = auto()


class Configuration:
    """
    Sequencing options supplied when the library is populated.

    Attributes:
        auto_play_next_track: Advance to the next track near the end of the current one
        cross_fade_seconds: Length of every fade, 0 for hard cuts
    """

    # Accepted spellings when built from a mapping (remote peers send camelCase)
    _KEY_ALIASES = {
        'autoPlayNextTrack': 'auto_play_next_track',
        'crossFadeSeconds': 'cross_fade_seconds',
    }

    def __init__(self, auto_play_next_track: bool = DEFAULT_AUTO_PLAY_NEXT_TRACK,
                 cross_fade_seconds: float = DEFAULT_CROSSFADE_SECONDS):
        self.auto_play_next_track = bool(auto_play_next_track)
        self.cross_fade_seconds = max(0.0, float(cross_fade_seconds))

    def to_dict(self):
        return {
            'auto_play_next_track': self.auto_play_next_track,
            'cross_fade_seconds': self.cross_fade_seconds,
        }

    def updated(self, overrides: Dict[str, Any]) -> "Configuration":
        """
        Copy with the given fields replaced.

        Unknown keys are ignored. Values of the wrong type (a string fade
        length, a non-bool auto-play flag, a negative or non-finite fade)
        are skipped with a warning and the current value is kept.
        """
        values = self.to_dict()
        for key, value in overrides.items():
            key = self._KEY_ALIASES.get(key, key)
            if key not in values or value is None:
                continue
            if not self._valid_value(key, value):
                logger.warning(f"Ignoring invalid {key}: {value!r}")
                continue
            values[key] = value
        return Configuration(**values)

    @staticmethod
    def _valid_value(key: str, value) -> bool:
        if key == 'auto_play_next_track':
            return isinstance(value, bool)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        return math.isfinite(value) and value >= 0

    @classmethod
    def from_dict(cls, data):
        return cls().updated(data)

    def __eq__(self, other):
        return isinstance(other, Configuration) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"Configuration(auto_play_next_track={self.auto_play_next_track}, "
                f"cross_fade_seconds={self.cross_fade_seconds})")


class Sequencer:
    """
    Single source of truth for playback.

    Responsibilities:
    - Owns the Library and the current track id
    - Resolves play requests through the track selector
    - Drives crossfades through the FadeCoordinator
    - Arms the auto-advance Watchdog
    - Accepts play commands from bound RemoteInlets
    - Emits callbacks for listeners

    Event System:
    - Register callbacks with: sequencer.on('event_name', callback_function)

    Available Events:
    - 'state_change': (state: PlaybackState)
    - 'track_started': (track: Track)
    - 'track_settled': (track: Track)     fade-in finished
    - 'track_retired': (track: Track)     fade-out finished, track stopped
    - 'library_populated': (count: int)
    """

    def __init__(self, scheduler: Scheduler, config: Optional[Configuration] = None):
        """
        Initialize the sequencer.

        Args:
            scheduler: Scheduler that runs fades and the watchdog
            config: Initial configuration (defaults from config.py if None)
        """
        self.scheduler = scheduler

        # One lock for all playback state; timer callbacks take it too
        self.lock = threading.RLock()

        self.library = Library()
        self._config = config or Configuration()

        # Playback state
        self._current_id: Optional[int] = None
        self._state = PlaybackState.IDLE

        self.fades = FadeCoordinator(
            scheduler, lock=self.lock,
            on_retired=self._on_track_retired,
            on_settled=self._on_track_settled,
        )
        self._watchdog: Optional[Watchdog] = None
        self._remote_connections: List[Connection] = []

        # Callbacks for listeners (event-driven architecture)
        self._callbacks: Dict[str, List[Callable]] = {
            'state_change': [],        # (PlaybackState)
            'track_started': [],       # (Track)
            'track_settled': [],       # (Track)
            'track_retired': [],       # (Track)
            'library_populated': [],   # (count)
        }

        logger.info("Sequencer initialized")

    # =========================================================================
    # EVENT SYSTEM
    # =========================================================================

    def on(self, event: str, callback: Callable) -> None:
        """
        Register a callback for an event.

        Args:
            event: Event name (see class docstring for available events)
            callback: Function to call when event occurs
        """
        if event in self._callbacks:
            self._callbacks[event].append(callback)
        else:
            logger.warning(f"Unknown event: {event}. Available: {list(self._callbacks.keys())}")

    def off(self, event: str, callback: Callable) -> None:
        if event in self._callbacks and callback in self._callbacks[event]:
            self._callbacks[event].remove(callback)

    def _emit(self, event: str, *args) -> None:
        """Emit an event to all registered callbacks."""
        for callback in list(self._callbacks.get(event, [])):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Error in callback for {event}: {e}")

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def current_track_id(self) -> Optional[int]:
        return self._current_id

    @property
    def current_track(self) -> Optional[Track]:
        with self.lock:
            if self._current_id is None:
                return None
            return self.library.get(self._current_id)

    @property
    def is_fading(self) -> bool:
        return self.fades.active

    @property
    def configuration(self) -> Configuration:
        return Configuration(**self._config.to_dict())

    def snapshot(self) -> dict:
        """Plain-dict view of the playback state (for the HTTP state endpoint and CLI)."""
        with self.lock:
            track = self.current_track
            return {
                'state': self._state.name.lower(),
                'current': track.to_dict() if track else None,
                'position': track.handle.position_seconds if track else 0.0,
                'volume': track.handle.volume if track else 0.0,
                'is_fading': self.fades.active,
                'tracks': self.library.names,
                'config': self._config.to_dict(),
            }

    def _set_state(self, state: PlaybackState) -> None:
        if state == self._state:
            return
        self._state = state
        self._emit('state_change', state)

    # =========================================================================
    # LIBRARY
    # =========================================================================

    def populate(self, resources: Iterable, config=None) -> int:
        """
        Replace the library. Stops playback first.

        Args:
            resources: Ordered AudioResources; anything else is skipped
            config: Configuration or mapping of fields to override. If omitted,
                    the previous configuration stays in effect.

        Returns:
            Number of tracks registered (0 and nothing changed if `resources`
            is not a collection)
        """
        with self.lock:
            try:
                entries = as_entries(resources)
            except InvalidResource as e:
                logger.warning(f"Populate ignored: {e}")
                return 0

            if isinstance(config, Configuration):
                new_config = Configuration(**config.to_dict())
            elif isinstance(config, dict):
                new_config = self._config.updated(config)
            else:
                if config is not None:
                    logger.warning(f"Ignoring configuration of type {type(config).__name__}")
                new_config = self._config

            self._teardown_locked()
            count = self.library.populate(entries)
            self._config = new_config

            logger.info(f"Populated {count} track(s), {self._config}")
            self._emit('library_populated', count)
            return count

    def get_track(self, track_name: Optional[str] = None) -> Tuple[Optional[int], Optional[Track]]:
        """
        Return the id and track play() would pick for this request.

        Args:
            track_name: Track name, or None for the next track in the queue

        Returns:
            (track_id, track), or (None, None)
        """
        with self.lock:
            return resolve(track_name, self._current_id, self.library)

    def _teardown_locked(self) -> None:
        """Hard stop: no fades, every track silenced and its volume restored."""
        self._disarm_watchdog()
        self.fades.cancel_all(stop_tracks=True)

        current = self.library.get(self._current_id) if self._current_id is not None else None
        if current is not None:
            current.handle.stop()

        for track in self.library:
            track.handle.volume = track.original_volume

        self._current_id = None
        self._set_state(PlaybackState.IDLE)

    # =========================================================================
    # REMOTE
    # =========================================================================

    def bind_remote(self, inlet) -> bool:
        """
        Accept play commands from a remote inlet.

        Returns:
            True if the inlet was bound
        """
        try:
            self._check_inlet(inlet)
        except InvalidResource as e:
            logger.warning(f"Bind rejected: {e}")
            return False

        with self.lock:
            self._remote_connections.append(inlet.connect(self._on_remote_command))
        logger.info(f"Remote inlet '{inlet.name}' bound")
        return True

    @staticmethod
    def _check_inlet(inlet) -> None:
        if not isinstance(inlet, RemoteInlet):
            raise InvalidResource(f"supplied object is not a RemoteInlet: {inlet!r}")

    def _on_remote_command(self, message) -> None:
        if message is not None and not isinstance(message, str):
            logger.warning(f"Rejected malformed remote command: {message!r}")
            return
        logger.info(f"REMOTE: play {message!r}")
        self.play(message)

    # =========================================================================
    # PLAYBACK CONTROLS
    # =========================================================================

    def play(self, track_name: Optional[str] = None) -> bool:
        """
        Play the named track, or the next one in the queue.

        The current track (if any) is faded out while the new one fades in.

        Returns:
            True if a track was started
        """
        with self.lock:
            try:
                self._play_locked(track_name)
                return True
            except SequencerError as e:
                logger.warning(f"Play failed: {e}")
                return False

    def _play_locked(self, track_name: Optional[str]) -> None:
        if len(self.library) == 0:
            raise LibraryNotPopulated("library is empty. Did you forget to populate it?")

        track_id, track = resolve(track_name, self._current_id, self.library)
        if track is None:
            if track_name is None:
                raise TrackNotFound("no next track in queue")
            raise TrackNotFound(f"no track named '{track_name}'")

        if self._current_id is not None:
            self._stop_locked()
        else:
            # Idle, but a previous track may still be fading out
            self.fades.cancel_fade_out(stop_track=True)

        fade = self._config.cross_fade_seconds
        self._current_id = track_id
        self.fades.fade_in(track, track.original_volume, fade)
        self._set_state(PlaybackState.PLAYING)

        logger.info(f"[PLAY] #{track_id} '{track.name}' "
                    f"({format_duration(track.handle.duration_seconds)}, fade {fade:.2f}s)")
        self._emit('track_started', track)

        self._disarm_watchdog()
        if self._config.auto_play_next_track:
            self._arm_watchdog(track)

    def pause(self) -> None:
        """Pause the current track. Fades keep running."""
        with self.lock:
            track = self.current_track
            if track is None:
                return
            track.handle.pause()
            logger.info(f"[PAUSE] '{track.name}'")
            self._set_state(PlaybackState.PAUSED)

    def resume(self) -> bool:
        """Resume the current track."""
        with self.lock:
            try:
                track = self._require_current()
            except NoCurrentTrack as e:
                logger.warning(f"Resume failed: {e}")
                return False
            track.handle.resume()
            logger.info(f"[PLAY] RESUMED '{track.name}'")
            self._set_state(PlaybackState.PLAYING)
            return True

    def stop(self) -> None:
        """Fade out the current track. Safe to call when idle."""
        with self.lock:
            self._stop_locked()

    def _stop_locked(self) -> None:
        if self._current_id is None:
            return

        self._disarm_watchdog()
        current = self.library.get(self._current_id)
        fade = self._config.cross_fade_seconds

        # A track already leaving is finished off, not resurrected
        self.fades.cancel_fade_out(stop_track=True)

        if self.fades.fading_in is not None:
            self.fades.redirect_fade_in(fade)
        elif current is not None:
            self.fades.fade_out(current, fade)

        logger.info(f"[STOP] '{current.name if current else self._current_id}' (fade {fade:.2f}s)")
        self._current_id = None
        self._set_state(PlaybackState.IDLE)

    def skip(self) -> bool:
        """Advance to the next track in the queue."""
        with self.lock:
            try:
                self._require_current()
            except NoCurrentTrack as e:
                logger.warning(f"Skip failed: {e}")
                return False
            return self.play()

    def shutdown(self) -> None:
        """Hard stop and detach from every remote inlet."""
        with self.lock:
            self._teardown_locked()
            for conn in self._remote_connections:
                conn.disconnect()
            self._remote_connections = []
        logger.info("Sequencer shut down")

    def _require_current(self) -> Track:
        track = self.current_track
        if track is None:
            raise NoCurrentTrack("no track is playing")
        return track

    # =========================================================================
    # AUTO-ADVANCE
    # =========================================================================

    def _arm_watchdog(self, track: Track) -> None:
        self._watchdog = Watchdog(
            self.scheduler, track,
            threshold=self._config.cross_fade_seconds,
            on_trigger=self._on_watchdog,
        )
        self._watchdog.arm()

    def _disarm_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.disarm()
            self._watchdog = None

    def _on_watchdog(self, watchdog: Watchdog) -> None:
        with self.lock:
            # Ignore a trigger from a watchdog that was replaced meanwhile,
            # even one armed for the same track
            if self._watchdog is not watchdog:
                return
            track = watchdog.track
            if self._current_id != track.id:
                return
            logger.info(f"Auto-advancing from '{track.name}'")
            self.play()

    # =========================================================================
    # FADE CALLBACKS
    # =========================================================================

    def _on_track_retired(self, track: Track) -> None:
        self._emit('track_retired', track)

    def _on_track_settled(self, track: Track) -> None:
        self._emit('track_settled', track)
