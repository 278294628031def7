"""
Audio Engine for FadeDeck.

Implements the AudioResource capability on top of pygame.mixer:

- Each file is loaded into a pygame.mixer.Sound (decoded into RAM once).
- Playing a track claims a mixer Channel; volume is applied per Sound, so a
  fade on the outgoing track never touches the incoming one.
- pygame has no playback cursor for a Sound, so position is tracked with
  timestamps (start time, accumulated pause time).
- Natural end of playback is detected by polling channel busy state on the
  scheduler, which fires the resource's `finished` signal.

This module has no UI dependencies.
"""

import os
import sys
import time
import logging
import threading
from typing import Iterable, List, Optional

# Must be done BEFORE importing pygame
os.environ.setdefault('PYGAME_HIDE_SUPPORT_PROMPT', "1")

import pygame

# Add parent directory to path for config import
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from config import (
    SAMPLE_RATE, CHANNELS, MIXER_BUFFER_SIZE, MIXER_NUM_CHANNELS,
    MONITOR_INTERVAL, SUPPORTED_FORMATS,
)
from .audio import AudioResource, clamp_volume
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger("FadeDeck.AudioEngine")


class PygameTrack(AudioResource):
    """
    A file loaded into a pygame Sound.

    Attributes:
        path: Source file path
        sound: The pygame.mixer.Sound holding the decoded audio
    """

    def __init__(self, path: str, sound=None, name: Optional[str] = None):
        super().__init__()
        self.path = path
        self.sound = sound if sound is not None else pygame.mixer.Sound(path)
        self._name = name or os.path.splitext(os.path.basename(path))[0]
        self._length = float(self.sound.get_length())
        self.channel = None

        # Position tracking
        self._started_at: Optional[float] = None
        self._paused_at: Optional[float] = None
        self._paused_total = 0.0
        self.is_playing = False
        self.is_paused = False

        self._lock = threading.RLock()

    # =========================================================================
    # CAPABILITY
    # =========================================================================

    @property
    def name(self) -> str:
        return self._name

    def play(self) -> None:
        with self._lock:
            if self.channel is not None:
                self.channel.stop()
            self.channel = self.sound.play()
            if self.channel is None:
                logger.error(f"No free mixer channel for '{self._name}'")
            self._started_at = time.monotonic()
            self._paused_at = None
            self._paused_total = 0.0
            self.is_playing = True
            self.is_paused = False
        logger.debug(f"[PLAY] '{self._name}' on channel {self.channel}")

    def pause(self) -> None:
        with self._lock:
            if not self.is_playing or self.is_paused:
                return
            if self.channel is not None:
                self.channel.pause()
            self._paused_at = time.monotonic()
            self.is_paused = True

    def resume(self) -> None:
        with self._lock:
            if not self.is_paused:
                return
            if self.channel is not None:
                self.channel.unpause()
            self._paused_total += time.monotonic() - self._paused_at
            self._paused_at = None
            self.is_paused = False

    def stop(self) -> None:
        with self._lock:
            self.sound.stop()
            self.channel = None
            self.is_playing = False
            self.is_paused = False
            self._started_at = None
            self._paused_at = None

    @property
    def volume(self) -> float:
        return float(self.sound.get_volume())

    @volume.setter
    def volume(self, value: float) -> None:
        self.sound.set_volume(clamp_volume(value))

    @property
    def duration_seconds(self) -> float:
        return self._length

    @property
    def position_seconds(self) -> float:
        with self._lock:
            if self._started_at is None:
                return 0.0
            now = self._paused_at if self._paused_at is not None else time.monotonic()
            elapsed = now - self._started_at - self._paused_total
            return max(0.0, min(elapsed, self._length))

    # =========================================================================
    # MONITORING
    # =========================================================================

    def poll(self) -> bool:
        """
        Detect natural end of playback.

        Returns:
            True if the track just finished (and `finished` was fired)
        """
        with self._lock:
            if not self.is_playing or self.is_paused or self.channel is None:
                return False
            if self.channel.get_busy() and self.channel.get_sound() is self.sound:
                return False
            self.channel = None
            self.is_playing = False
            self._paused_at = None
            # Pin the cursor at the end
            self._started_at = time.monotonic() - self._length
            self._paused_total = 0.0
        logger.info(f"'{self._name}' ended naturally")
        self.finished.fire()
        return True


class AudioEngine:
    """
    Owns the pygame mixer and the loaded tracks.

    Usage:
        engine = AudioEngine(scheduler)
        tracks = engine.load_files(["a.ogg", "b.ogg"])
        sequencer.populate(tracks)
        ...
        engine.shutdown()
    """

    def __init__(self, scheduler: Scheduler, init_mixer: bool = True):
        """
        Initialize the audio engine.

        Args:
            scheduler: Scheduler used to poll channels for natural track end
            init_mixer: Initialize pygame.mixer now (disable when the host already did)
        """
        self.scheduler = scheduler
        self.tracks: List[PygameTrack] = []
        self._monitor: Optional[TimerHandle] = None

        if init_mixer:
            pygame.mixer.init(
                frequency=SAMPLE_RATE,
                size=-16,
                channels=CHANNELS,
                buffer=MIXER_BUFFER_SIZE
            )
            pygame.mixer.set_num_channels(MIXER_NUM_CHANNELS)

        logger.info("AudioEngine initialized")

    # =========================================================================
    # FILE LOADING
    # =========================================================================

    def load_file(self, path: str) -> Optional[PygameTrack]:
        """
        Load one audio file.

        Returns:
            The loaded track, or None if the file could not be decoded
        """
        try:
            track = PygameTrack(path)
        except (pygame.error, FileNotFoundError) as e:
            logger.error(f"Error loading {os.path.basename(path)}: {e}")
            return None
        logger.info(f"Loaded '{track.name}' ({track.duration_seconds:.2f}s)")
        return track

    def load_files(self, paths: Iterable[str]) -> List[PygameTrack]:
        """Load several files in order, skipping the ones that fail."""
        loaded = []
        for path in paths:
            track = self.load_file(path)
            if track is not None:
                loaded.append(track)
        self.tracks = loaded
        self.start_monitor()
        return loaded

    # =========================================================================
    # MONITOR
    # =========================================================================

    def start_monitor(self) -> None:
        """Poll every loaded track for natural end on the scheduler."""
        if self._monitor is not None and self._monitor.active:
            return
        self._monitor = self.scheduler.call_every(MONITOR_INTERVAL, self._poll_tracks)

    def stop_monitor(self) -> None:
        if self._monitor is not None:
            self._monitor.cancel()
            self._monitor = None

    def _poll_tracks(self) -> None:
        for track in list(self.tracks):
            track.poll()

    def shutdown(self) -> None:
        """Stop every track and release the mixer."""
        logger.info("Shutting down AudioEngine...")
        self.stop_monitor()
        for track in self.tracks:
            track.stop()
        self.tracks = []
        if pygame.mixer.get_init():
            pygame.mixer.quit()


def find_audio_files(paths: Iterable[str]) -> List[str]:
    """
    Expand a mix of files and directories into an ordered list of audio files.

    Directories are scanned (not recursively) for SUPPORTED_FORMATS and their
    entries sorted by name; files are kept in the order given.
    """
    found = []
    for path in paths:
        if os.path.isdir(path):
            for entry in sorted(os.listdir(path)):
                if entry.lower().endswith(SUPPORTED_FORMATS):
                    found.append(os.path.join(path, entry))
        elif os.path.isfile(path):
            found.append(path)
        else:
            logger.warning(f"Not found: {path}")
    return found
