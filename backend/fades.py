"""
Fade Coordinator for FadeDeck.

Owns at most one fade-out session and one fade-in session at a time. During
a crossfade both are live: the outgoing track ramps to silence while the
incoming one ramps up to its original volume.

The coordinator never changes playback state. It reports back through two
callbacks:
- on_retired(track): a fade-out ran to completion and the track was stopped
- on_settled(track): a fade-in ran to completion

Interruption rules:
- Replacing or force-cancelling a fade-out stops that track outright.
  It was already leaving; it is never resurrected.
- A fade-in interrupted by stop() is redirected: the same track starts a
  fade-out from whatever volume it had reached, so there is no audible jump.
- Fading in a track that is currently fading out cancels that fade-out
  without stopping the track; it is restarted by the fade-in.
"""

import logging
import threading
from enum import Enum, auto
from typing import Callable, Optional

from .events import Connection
from .library import Track
from .scheduler import Scheduler
from .tween import Tween
from .audio import clamp_volume

logger = logging.getLogger("FadeDeck.Fades")


class FadeDirection(Enum):
    IN = auto()
    OUT = auto()


class FadeSession:
    """
    One running fade.

    Attributes:
        direction: FadeDirection.IN or FadeDirection.OUT
        track: The Track being faded
        started_at: Scheduler time the fade began
        duration_seconds: Length of the ramp
        cancelled: True once cancel() has been called
    """

    def __init__(self, direction: FadeDirection, track: Track, started_at: float,
                 duration_seconds: float, tween: Tween):
        self.direction = direction
        self.track = track
        self.started_at = started_at
        self.duration_seconds = duration_seconds
        self.tween = tween
        self.connection: Optional[Connection] = None
        self.cancelled = False
        self.completed = False

    @property
    def track_id(self) -> int:
        return self.track.id

    @property
    def active(self) -> bool:
        return not self.cancelled and not self.completed

    def cancel(self) -> None:
        """Halt interpolation and sever completion. Idempotent."""
        if self.cancelled:
            return
        self.cancelled = True
        self.tween.cancel()
        if self.connection is not None:
            self.connection.disconnect()

    def __repr__(self):
        return (f"<FadeSession {self.direction.name} track={self.track.name!r} "
                f"{self.duration_seconds:.2f}s active={self.active}>")


class FadeCoordinator:
    """
    Runs fade-in/fade-out sessions on a scheduler.

    The lock is shared with the owner (the Sequencer) so completion callbacks
    arriving from a scheduler thread serialize with public calls.
    """

    def __init__(self, scheduler: Scheduler, lock: Optional[threading.RLock] = None,
                 on_retired: Optional[Callable[[Track], None]] = None,
                 on_settled: Optional[Callable[[Track], None]] = None):
        self.scheduler = scheduler
        self.lock = lock or threading.RLock()
        self.on_retired = on_retired
        self.on_settled = on_settled

        self._fade_out: Optional[FadeSession] = None
        self._fade_in: Optional[FadeSession] = None

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def fading_out(self) -> Optional[FadeSession]:
        return self._fade_out

    @property
    def fading_in(self) -> Optional[FadeSession]:
        return self._fade_in

    @property
    def active(self) -> bool:
        return self._fade_out is not None or self._fade_in is not None

    # =========================================================================
    # FADES
    # =========================================================================

    def fade_out(self, track: Track, duration_seconds: float) -> FadeSession:
        """
        Ramp the track's volume from its current value to 0, then stop it.

        Any previous fade-out is cancelled first and its track stopped. If this
        track is the one fading in, that fade-in is cancelled so the ramp
        continues downward from the partial volume.
        """
        with self.lock:
            self.cancel_fade_out(stop_track=True)
            if self._fade_in is not None and self._fade_in.track is track:
                self.cancel(self._fade_in)

            resource = track.handle
            tween = Tween(self.scheduler, lambda: resource.volume, self._volume_setter(resource),
                          0.0, duration_seconds, lock=self.lock)
            session = FadeSession(FadeDirection.OUT, track, self.scheduler.now(),
                                  max(0.0, duration_seconds), tween)
            session.connection = tween.completed.once(lambda: self._fade_out_complete(session))
            self._fade_out = session

            logger.debug(f"[FADE-OUT] '{track.name}' from {resource.volume:.2f} over {session.duration_seconds:.2f}s")
            tween.start()
            return session

    def fade_in(self, track: Track, target_volume: float, duration_seconds: float) -> FadeSession:
        """
        Start the track at volume 0 and ramp it to target_volume.

        Any previous fade-in is cancelled first (its track is left as is).
        """
        with self.lock:
            if self._fade_in is not None:
                self.cancel(self._fade_in)
            if self._fade_out is not None and self._fade_out.track is track:
                # Same track requested again while leaving: restart it
                self.cancel(self._fade_out)

            resource = track.handle
            resource.volume = 0.0
            resource.play()

            tween = Tween(self.scheduler, lambda: resource.volume, self._volume_setter(resource),
                          clamp_volume(target_volume), duration_seconds, lock=self.lock)
            session = FadeSession(FadeDirection.IN, track, self.scheduler.now(),
                                  max(0.0, duration_seconds), tween)
            session.connection = tween.completed.once(lambda: self._fade_in_complete(session))
            self._fade_in = session

            logger.debug(f"[FADE-IN] '{track.name}' to {target_volume:.2f} over {session.duration_seconds:.2f}s")
            tween.start()
            return session

    def cancel(self, session: Optional[FadeSession]) -> None:
        """
        Cancel a session and leave its track where it is.

        Cancelling None, an already-cancelled or a finished session is a no-op.
        """
        if session is None:
            return
        with self.lock:
            session.cancel()
            if self._fade_out is session:
                self._fade_out = None
            if self._fade_in is session:
                self._fade_in = None

    def cancel_fade_out(self, stop_track: bool = True) -> Optional[Track]:
        """Cancel the active fade-out, stopping its track. Returns that track."""
        with self.lock:
            session = self._fade_out
            if session is None:
                return None
            self.cancel(session)
            if stop_track:
                session.track.handle.stop()
                logger.debug(f"[FADE-OUT] '{session.track.name}' interrupted, stopped")
            return session.track

    def redirect_fade_in(self, duration_seconds: float) -> Optional[FadeSession]:
        """
        Turn the active fade-in around into a fade-out from its current volume.

        Returns:
            The new fade-out session, or None if nothing was fading in
        """
        with self.lock:
            session = self._fade_in
            if session is None:
                return None
            self.cancel(session)
            logger.debug(f"[FADE-IN] '{session.track.name}' interrupted at "
                         f"{session.track.handle.volume:.2f}, redirecting to fade-out")
            return self.fade_out(session.track, duration_seconds)

    def cancel_all(self, stop_tracks: bool = True) -> None:
        """Tear down both sessions (used when the library is replaced)."""
        with self.lock:
            for session in (self._fade_out, self._fade_in):
                if session is None:
                    continue
                self.cancel(session)
                if stop_tracks:
                    session.track.handle.stop()

    # =========================================================================
    # COMPLETION
    # =========================================================================

    def _fade_out_complete(self, session: FadeSession) -> None:
        with self.lock:
            # Re-check under the lock: a cancel may have raced the scheduler
            if session.cancelled or self._fade_out is not session:
                return
            session.completed = True
            self._fade_out = None
            session.track.handle.stop()
        logger.debug(f"[FADE-OUT] '{session.track.name}' retired")
        if self.on_retired:
            self.on_retired(session.track)

    def _fade_in_complete(self, session: FadeSession) -> None:
        with self.lock:
            if session.cancelled or self._fade_in is not session:
                return
            session.completed = True
            self._fade_in = None
        logger.debug(f"[FADE-IN] '{session.track.name}' settled")
        if self.on_settled:
            self.on_settled(session.track)

    @staticmethod
    def _volume_setter(resource):
        def _set(value):
            resource.volume = value
        return _set
