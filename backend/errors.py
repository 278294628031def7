"""
Error taxonomy for the FadeDeck sequencer.

None of these reach the caller of a public Sequencer operation: they are
raised internally, caught at the API boundary, and logged. A failed
operation leaves playback state unchanged.
"""


class SequencerError(Exception):
    """Base class for all recoverable sequencer failures."""


class LibraryNotPopulated(SequencerError):
    """Play was requested before any track was registered."""


class TrackNotFound(SequencerError):
    """The requested track name could not be resolved."""


class NoCurrentTrack(SequencerError):
    """Resume or skip was requested while idle."""


class InvalidResource(SequencerError):
    """An object supplied to populate() or bind_remote() lacks the expected capability."""
