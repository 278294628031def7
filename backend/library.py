"""
Track library for FadeDeck.

The library is an ordered list of tracks. A track's id is its 1-based
position in the list at population time, so ids are dense and restart at 1
every time the library is repopulated. Names are not required to be unique;
lookups return the first match.
"""

import logging
from typing import Iterable, Iterator, List, Optional

from .audio import AudioResource
from .errors import InvalidResource

logger = logging.getLogger("FadeDeck.Library")


class Track:
    """
    One registered track.

    Attributes:
        id: 1-based position in the library
        name: Name used for lookups (taken from the resource)
        handle: The AudioResource that plays it
        original_volume: Resource volume captured at population time,
                         used as the fade-in target
    """

    def __init__(self, track_id: int, name: str, handle: AudioResource, original_volume: float):
        self.id = track_id
        self.name = name
        self.handle = handle
        self.original_volume = original_volume

    @classmethod
    def from_resource(cls, track_id: int, resource) -> "Track":
        """
        Build a Track from a playable resource.

        Raises:
            InvalidResource: if `resource` is not an AudioResource
        """
        if not isinstance(resource, AudioResource):
            raise InvalidResource(f"supplied object is not an AudioResource: {resource!r}")
        return cls(track_id, resource.name, resource, float(resource.volume))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'duration': self.handle.duration_seconds,
            'original_volume': self.original_volume,
        }

    def __repr__(self):
        return f"<Track {self.id} {self.name!r}>"


def as_entries(resources) -> list:
    """Materialize a resource collection, rejecting anything that is not iterable."""
    try:
        return list(resources)
    except TypeError:
        raise InvalidResource(
            f"expected a collection of AudioResources, got {type(resources).__name__}"
        ) from None


class Library:
    """Ordered registry of tracks, indexed 1..N."""

    def __init__(self):
        self._tracks: List[Track] = []

    def populate(self, resources: Iterable) -> int:
        """
        Replace the contents with tracks built from `resources`, in order.

        Entries that are not AudioResources are skipped with a warning and do
        not consume an id.

        Raises:
            InvalidResource: if `resources` is not iterable (contents untouched)

        Returns:
            Number of tracks registered
        """
        tracks: List[Track] = []
        for index, resource in enumerate(as_entries(resources)):
            try:
                track = Track.from_resource(len(tracks) + 1, resource)
            except InvalidResource as e:
                logger.warning(f"Skipping library entry #{index + 1}: {e}")
                continue
            tracks.append(track)
        self._tracks = tracks

        logger.info(f"Library populated with {len(self._tracks)} track(s)")
        return len(self._tracks)

    def clear(self) -> None:
        self._tracks = []

    def get(self, track_id) -> Optional[Track]:
        """Track with this id, or None if it is not in the current library."""
        if isinstance(track_id, bool) or not isinstance(track_id, int):
            return None
        if 1 <= track_id <= len(self._tracks):
            return self._tracks[track_id - 1]
        return None

    def find(self, name: str) -> Optional[Track]:
        """First track whose name matches exactly."""
        for track in self._tracks:
            if track.name == name:
                return track
        return None

    def position_of(self, name: str) -> Optional[int]:
        track = self.find(name)
        return track.id if track else None

    @property
    def last(self) -> Optional[Track]:
        return self._tracks[-1] if self._tracks else None

    @property
    def names(self) -> List[str]:
        return [track.name for track in self._tracks]

    def __len__(self) -> int:
        return len(self._tracks)

    def __iter__(self) -> Iterator[Track]:
        return iter(list(self._tracks))
