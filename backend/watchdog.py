"""
Auto-advance watchdog.

Polls the current track's remaining time and fires once when it drops to
the crossfade window, so the next track can fade in while this one fades
out. It also listens to the resource's `finished` signal, which covers
tracks that end between polls or are shorter than the window allows.
"""

import os
import sys
import logging
from typing import Callable, Optional

# Add parent directory to path for config import
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from config import WATCHDOG_INTERVAL
from .events import Connection
from .library import Track
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger("FadeDeck.Watchdog")


class Watchdog:
    """
    Single-fire trigger for one track.

    Usage:
        dog = Watchdog(scheduler, track, threshold=2.0, on_trigger=advance)   # advance(dog)
        dog.arm()
        ...
        dog.disarm()   # idempotent
    """

    def __init__(self, scheduler: Scheduler, track: Track, threshold: float,
                 on_trigger: Callable[["Watchdog"], None], interval: float = WATCHDOG_INTERVAL):
        self.scheduler = scheduler
        self.track = track
        self.threshold = max(0.0, threshold)
        self.on_trigger = on_trigger
        self.interval = interval

        self._timer: Optional[TimerHandle] = None
        self._finished_conn: Optional[Connection] = None
        self.fired = False
        self.armed = False

    def arm(self) -> None:
        if self.armed or self.fired:
            return
        self.armed = True
        self._timer = self.scheduler.call_every(self.interval, self._check)
        self._finished_conn = self.track.handle.finished.once(self._fire)
        logger.debug(f"Watchdog armed for '{self.track.name}' (threshold={self.threshold:.2f}s)")

    def disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._finished_conn is not None:
            self._finished_conn.disconnect()
            self._finished_conn = None
        self.armed = False

    def _check(self) -> None:
        if not self.armed:
            return
        handle = self.track.handle
        remaining = handle.remaining_seconds
        if remaining <= self.threshold:
            logger.debug(f"Watchdog: '{self.track.name}' has {remaining:.2f}s left")
            self._fire()

    def _fire(self) -> None:
        if self.fired or not self.armed:
            return
        self.fired = True
        self.disarm()
        self.on_trigger(self)
