"""
Lightweight signal/connection primitives.

A Signal holds a list of listeners. connect() returns a Connection that can
be severed at any time; once() returns a Connection that severs itself just
before its listener runs, so it is delivered at most once. Listener errors
are logged and never propagate into the code that fired the signal.
"""

import logging
import threading
from typing import Callable, List

logger = logging.getLogger("FadeDeck.Events")


class Connection:
    """Handle for one listener attached to a Signal."""

    def __init__(self, signal: "Signal", callback: Callable, once: bool = False):
        self._signal = signal
        self.callback = callback
        self.once = once
        self.connected = True

    def disconnect(self) -> None:
        """Detach the listener. Safe to call more than once."""
        if not self.connected:
            return
        self.connected = False
        self._signal._remove(self)

    def __repr__(self):
        state = "connected" if self.connected else "disconnected"
        return f"<Connection {self._signal.name} {state}>"


class Signal:
    """
    A named notification with any number of listeners.

    Usage:
        finished = Signal("finished")
        conn = finished.once(lambda: print("done"))
        finished.fire()   # prints "done", conn is now disconnected
        finished.fire()   # nothing
    """

    def __init__(self, name: str = "signal"):
        self.name = name
        self._connections: List[Connection] = []
        self._lock = threading.Lock()

    def connect(self, callback: Callable) -> Connection:
        conn = Connection(self, callback)
        with self._lock:
            self._connections.append(conn)
        return conn

    def once(self, callback: Callable) -> Connection:
        conn = Connection(self, callback, once=True)
        with self._lock:
            self._connections.append(conn)
        return conn

    def fire(self, *args) -> None:
        """Deliver to every listener connected at the time of the call."""
        with self._lock:
            snapshot = list(self._connections)

        for conn in snapshot:
            # A previous listener may have disconnected this one
            if not conn.connected:
                continue
            if conn.once:
                conn.disconnect()
            try:
                conn.callback(*args)
            except Exception as e:
                logger.error(f"Error in listener for {self.name}: {e}")

    def disconnect_all(self) -> None:
        with self._lock:
            snapshot = list(self._connections)
        for conn in snapshot:
            conn.disconnect()

    def _remove(self, conn: Connection) -> None:
        with self._lock:
            if conn in self._connections:
                self._connections.remove(conn)

    def __len__(self):
        with self._lock:
            return len(self._connections)
