"""
Backend module for FadeDeck.

Contains the sequencer, fades, scheduling and the pygame/Flask adapters.
The sequencing modules are UI-agnostic and run against any AudioResource,
so they can be tested without a sound device.
"""

from .audio import AudioResource
from .errors import SequencerError, LibraryNotPopulated, TrackNotFound, NoCurrentTrack, InvalidResource
from .events import Signal, Connection
from .library import Library, Track
from .remote import RemoteInlet
from .scheduler import Scheduler, FrameScheduler, ThreadedScheduler, TimerHandle
from .sequencer import Sequencer, Configuration, PlaybackState

__all__ = [
    'AudioResource',
    'SequencerError',
    'LibraryNotPopulated',
    'TrackNotFound',
    'NoCurrentTrack',
    'InvalidResource',
    'Signal',
    'Connection',
    'Library',
    'Track',
    'RemoteInlet',
    'Scheduler',
    'FrameScheduler',
    'ThreadedScheduler',
    'TimerHandle',
    'Sequencer',
    'Configuration',
    'PlaybackState',
]
