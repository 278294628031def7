"""
Audio resource capability.

The sequencer never talks to an audio engine directly. It drives objects
implementing AudioResource: something that can play, pause, resume and
stop, exposes a volume between 0 and 1, knows its duration and current
position, and fires `finished` when playback reaches the end on its own
(not when stop() is called).
"""

from abc import ABC, abstractmethod

from .events import Signal


class AudioResource(ABC):
    """A single playable track."""

    def __init__(self):
        # Fired with no arguments when playback ends naturally
        self.finished = Signal("finished")

    @property
    @abstractmethod
    def name(self) -> str:
        """Track name used for lookups."""

    @abstractmethod
    def play(self) -> None:
        """Start playback from the beginning."""

    @abstractmethod
    def pause(self) -> None:
        ...

    @abstractmethod
    def resume(self) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    @property
    @abstractmethod
    def volume(self) -> float:
        ...

    @volume.setter
    @abstractmethod
    def volume(self, value: float) -> None:
        ...

    @property
    @abstractmethod
    def duration_seconds(self) -> float:
        ...

    @property
    @abstractmethod
    def position_seconds(self) -> float:
        ...

    @property
    def remaining_seconds(self) -> float:
        return max(0.0, self.duration_seconds - self.position_seconds)

    def __repr__(self):
        return f"<{type(self).__name__} {self.name!r}>"


def clamp_volume(value: float) -> float:
    """Clamp a volume to the 0..1 range."""
    return max(0.0, min(1.0, float(value)))
