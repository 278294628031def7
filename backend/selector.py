"""
Track selection.

resolve() turns "play this name" or "play whatever is next" into a concrete
library entry. It only reads the library, so it can be called at any time
without touching playback state.
"""

from typing import Optional, Tuple

from .library import Library, Track


def resolve(requested_name: Optional[str], current_id: Optional[int],
            library: Library) -> Tuple[Optional[int], Optional[Track]]:
    """
    Resolve a play request to a track.

    With a name, the first track carrying that name wins. Without one, the
    track after the current track is chosen, wrapping to 1 after the last
    entry. With nothing current, the last entry is the reference, so a fresh
    queue starts at track 1.

    Names are matched by equality, so with duplicate names the reference
    position is the first track bearing the current track's name.

    Args:
        requested_name: Track name, or None for "next in queue"
        current_id: Id of the current track, or None when idle
        library: Library to search

    Returns:
        (track_id, track), or (None, None) if nothing matches
    """
    if requested_name is not None:
        track = library.find(requested_name)
        if track is None:
            return None, None
        return track.id, track

    if current_id is not None:
        reference = library.get(current_id)
    else:
        reference = library.last

    if reference is None:
        return None, None

    position = library.position_of(reference.name)
    if position is None:
        return None, None

    next_id = position + 1 if position < len(library) else 1
    return next_id, library.get(next_id)
