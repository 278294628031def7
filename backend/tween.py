"""
Linear interpolation of a numeric property over time.

A Tween reads the property once at start(), then steps it toward the target
on the scheduler until the duration has elapsed. cancel() freezes the
property at its last written value and severs `completed`.

Every write happens under `lock`. Pass the lock that guards the property's
owner so a step running on a scheduler thread can never land after cancel().
"""

import os
import sys
import logging
import threading
from typing import Callable, Optional

import numpy as np

# Add parent directory to path for config import
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from config import FADE_STEP_INTERVAL
from .events import Signal
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger("FadeDeck.Tween")


class Tween:
    """
    Interpolates getter/setter from its current value to `target`.

    Usage:
        tween = Tween(scheduler, lambda: res.volume, set_volume, 0.0, 2.0, lock=owner.lock)
        tween.completed.once(on_done)
        tween.start()
        ...
        tween.cancel()   # volume stays where it was
    """

    def __init__(self, scheduler: Scheduler, getter: Callable[[], float],
                 setter: Callable[[float], None], target: float, duration: float,
                 step_interval: float = FADE_STEP_INTERVAL, lock=None):
        self.scheduler = scheduler
        self.getter = getter
        self.setter = setter
        self.target = float(target)
        self.duration = max(0.0, float(duration))
        self.step_interval = step_interval
        self.lock = lock if lock is not None else threading.RLock()

        self.completed = Signal("tween_completed")

        self.start_value: Optional[float] = None
        self.started_at: Optional[float] = None
        self._timer: Optional[TimerHandle] = None
        self._cancelled = False
        self._done = False

    @property
    def running(self) -> bool:
        return self.started_at is not None and not self._done and not self._cancelled

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._done

    def value_at(self, elapsed: float) -> float:
        """Interpolated value `elapsed` seconds after start."""
        if self.duration <= 0:
            return self.target
        return float(np.interp(elapsed, [0.0, self.duration], [self.start_value, self.target]))

    def start(self) -> "Tween":
        with self.lock:
            if self.started_at is not None:
                return self
            self.start_value = float(self.getter())
            self.started_at = self.scheduler.now()

            if self.duration <= 0:
                # Jump now, report on the next scheduler pass
                self.setter(self.target)
                self._timer = self.scheduler.call_later(0.0, self._finish)
            else:
                self._timer = self.scheduler.call_every(self.step_interval, self._step)
        return self

    def cancel(self) -> None:
        """Stop interpolating. Idempotent; a no-op after completion."""
        with self.lock:
            if self._cancelled or self._done:
                return
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()
            self.completed.disconnect_all()

    def _step(self) -> None:
        with self.lock:
            if self._cancelled or self._done:
                return
            elapsed = self.scheduler.now() - self.started_at
            if elapsed < self.duration:
                self.setter(self.value_at(elapsed))
                return
        self._finish()

    def _finish(self) -> None:
        with self.lock:
            if self._cancelled or self._done:
                return
            self._done = True
            if self._timer is not None:
                self._timer.cancel()
            self.setter(self.target)
        self.completed.fire()
        self.completed.disconnect_all()
