"""
Utility functions for FadeDeck.
"""

from .formatting import format_time, parse_time, format_duration, format_volume
from .preferences import get_playback_preferences, set_playback_preferences

__all__ = [
    'format_time',
    'parse_time',
    'format_duration',
    'format_volume',
    'get_playback_preferences',
    'set_playback_preferences',
]
