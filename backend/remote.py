"""
Remote command inlet.

A RemoteInlet is the channel through which a remote authority tells the
sequencer what to play. Each message is a single optional track name: a
string means "play this track", None means "play the next one in the
queue". Transports (see web_server.py) parse their wire format and call
deliver().
"""

import logging
from typing import Callable, Optional

from .events import Connection, Signal

logger = logging.getLogger("FadeDeck.Remote")


class RemoteInlet:
    """In-process inlet. Subclasses add a transport in front of deliver()."""

    def __init__(self, name: str = "remote"):
        self.name = name
        self.received = Signal("remote_command")

    def connect(self, handler: Callable[[Optional[str]], None]) -> Connection:
        """Register the handler that receives every delivered message."""
        return self.received.connect(handler)

    def deliver(self, message) -> None:
        """Forward one message verbatim to the connected handlers."""
        logger.debug(f"[{self.name}] command received: {message!r}")
        self.received.fire(message)

    def close(self) -> None:
        self.received.disconnect_all()
