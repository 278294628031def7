"""
Cancellable timers for FadeDeck.

Everything time-based in the sequencer (fade steps, the auto-advance
watchdog, channel polling) is a TimerHandle owned by a Scheduler. Handles
are single-fire (or periodic until cancelled), and cancel() is idempotent:
cancelling twice, or cancelling a timer that already fired, is a no-op.

Two schedulers share the same queue logic:

1. FrameScheduler: the host drives the clock with advance()/tick().
   - Good for: game-style frame loops, deterministic tests

2. ThreadedScheduler: a background thread runs due timers against
   time.monotonic().
   - Good for: the CLI host and the HTTP remote inlet
"""

import os
import sys
import time
import heapq
import itertools
import logging
import threading
from typing import Callable, List, Optional, Tuple

# Add parent directory to path for config import
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from config import SCHEDULER_TICK_INTERVAL

logger = logging.getLogger("FadeDeck.Scheduler")


class TimerHandle:
    """
    A scheduled callback.

    Attributes:
        callback: Function called with no arguments when the timer fires
        due: Scheduler time of the next firing
        interval: Period in seconds for repeating timers, None for one-shots
    """

    def __init__(self, callback: Callable[[], None], due: float, interval: Optional[float] = None):
        self.callback = callback
        self.due = due
        self.interval = interval
        self._lock = threading.Lock()
        self._cancelled = False
        self._fired = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        """True while the timer can still fire."""
        with self._lock:
            if self._cancelled:
                return False
            return self.interval is not None or not self._fired

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True

    def _claim(self) -> bool:
        """Atomically check the cancellation flag and mark a one-shot as fired."""
        with self._lock:
            if self._cancelled:
                return False
            if self.interval is None:
                if self._fired:
                    return False
                self._fired = True
            return True

    def __repr__(self):
        kind = f"every {self.interval}s" if self.interval is not None else "once"
        return f"<TimerHandle {kind} due={self.due:.3f} active={self.active}>"


class Scheduler:
    """Base class holding the timer queue. Subclasses provide the clock."""

    def __init__(self):
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._counter = itertools.count()
        self._queue_lock = threading.Lock()

    def now(self) -> float:
        raise NotImplementedError

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """
        Run callback once after delay seconds.

        A delay of 0 runs on the next scheduler pass, never inside this call.
        """
        handle = TimerHandle(callback, self.now() + max(0.0, delay))
        self._push(handle)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback every interval seconds until the handle is cancelled."""
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        handle = TimerHandle(callback, self.now() + interval, interval=interval)
        self._push(handle)
        return handle

    def pending(self) -> int:
        """Number of timers that can still fire."""
        with self._queue_lock:
            return sum(1 for _, _, handle in self._queue if handle.active)

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def run_due(self) -> int:
        """
        Run every timer due at the current time.

        Returns:
            Number of callbacks executed
        """
        now = self.now()
        count = 0
        while True:
            handle = self._pop_due(now)
            if handle is None:
                break
            if self._run(handle, now):
                count += 1
        return count

    def _run(self, handle: TimerHandle, now: float) -> bool:
        if not handle._claim():
            return False

        if handle.interval is not None:
            next_due = handle.due + handle.interval
            if next_due <= now:
                # Fell behind; don't replay every missed period
                next_due = now + handle.interval
            handle.due = next_due
            self._push(handle)

        try:
            handle.callback()
        except Exception as e:
            logger.error(f"Error in scheduled callback {handle.callback!r}: {e}")
        return True

    def _push(self, handle: TimerHandle) -> None:
        with self._queue_lock:
            heapq.heappush(self._queue, (handle.due, next(self._counter), handle))

    def _pop_due(self, now: float) -> Optional[TimerHandle]:
        with self._queue_lock:
            while self._queue and self._queue[0][0] <= now:
                _, _, handle = heapq.heappop(self._queue)
                if handle.cancelled:
                    continue
                return handle
        return None

    def _next_due(self) -> Optional[float]:
        with self._queue_lock:
            while self._queue and self._queue[0][2].cancelled:
                heapq.heappop(self._queue)
            if self._queue:
                return self._queue[0][0]
        return None


class FrameScheduler(Scheduler):
    """
    Scheduler whose clock only moves when the host says so.

    Usage:
        scheduler = FrameScheduler()
        scheduler.call_later(1.0, callback)
        scheduler.advance(0.5)   # nothing yet
        scheduler.advance(0.5)   # callback runs at t=1.0
    """

    def __init__(self, start: float = 0.0):
        super().__init__()
        self._clock = float(start)

    def now(self) -> float:
        return self._clock

    def tick(self) -> int:
        """Run whatever is due without moving the clock (zero-delay work)."""
        return self.run_due()

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running each timer at its own due time, in order.

        Args:
            seconds: How far to move the clock

        Returns:
            Number of callbacks executed
        """
        target = self._clock + max(0.0, seconds)
        count = 0
        while True:
            due = self._next_due()
            if due is None or due > target:
                break
            self._clock = max(self._clock, due)
            count += self.run_due()
        self._clock = target
        count += self.run_due()
        return count


class ThreadedScheduler(Scheduler):
    """Runs due timers from a daemon thread against the monotonic clock."""

    def __init__(self, tick_interval: float = SCHEDULER_TICK_INTERVAL):
        super().__init__()
        self.tick_interval = tick_interval
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def now(self) -> float:
        return time.monotonic()

    def start(self) -> None:
        """Start the scheduler thread (no-op if it is already running)."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="FadeDeckScheduler", daemon=True)
        self._thread.start()
        logger.info("Scheduler thread started")

    def shutdown(self, timeout: float = 1.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Scheduler thread stopped")

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.run_due()
            time.sleep(self.tick_interval)
        logger.debug("Scheduler thread exiting")
