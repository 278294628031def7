"""
User preferences persisted as JSON.

Only playback settings live here (crossfade length, auto-advance); the CLI
reads them as defaults and writes them back with --remember.
"""

import os
import sys
import json
import math
import logging

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from config import DATA_DIR

logger = logging.getLogger("FadeDeck.Preferences")


def _get_prefs_dir():
    """Get the writable data directory for preferences."""
    if getattr(sys, 'frozen', False) and sys.platform == 'darwin':
        return os.path.join(os.path.expanduser("~"), "Library", "Application Support", "FadeDeck")
    return DATA_DIR

# Path to the preferences file
PREFS_FILE = os.path.join(_get_prefs_dir(), "user_preferences.json")


def load_preferences(path=None):
    """Load user preferences from JSON. Missing or unreadable files give {}."""
    path = path or PREFS_FILE
    if not os.path.exists(path):
        return {}

    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading preferences: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring preferences file with unexpected content: {path}")
        return {}
    return data


def save_preferences(prefs, path=None):
    """Merge a preferences dictionary into the JSON file."""
    path = path or PREFS_FILE
    try:
        data_dir = os.path.dirname(path)
        if data_dir:
            os.makedirs(data_dir, exist_ok=True)

        # Merge with existing
        current = load_preferences(path)
        current.update(prefs)

        with open(path, 'w') as f:
            json.dump(current, f, indent=2)
        logger.debug(f"Preferences saved to {path}")
    except OSError as e:
        logger.error(f"Error saving preferences: {e}")


def get_playback_preferences(path=None):
    """
    Saved playback settings, keyed like Configuration.to_dict().

    Entries with the wrong type are dropped.
    """
    prefs = load_preferences(path)
    result = {}
    crossfade = prefs.get("cross_fade_seconds")
    if (isinstance(crossfade, (int, float)) and not isinstance(crossfade, bool)
            and math.isfinite(crossfade) and crossfade >= 0):
        result["cross_fade_seconds"] = float(crossfade)
    auto = prefs.get("auto_play_next_track")
    if isinstance(auto, bool):
        result["auto_play_next_track"] = auto
    return result


def set_playback_preferences(cross_fade_seconds=None, auto_play_next_track=None, path=None):
    """Save the given playback settings (None leaves a setting untouched)."""
    update = {}
    if cross_fade_seconds is not None:
        update["cross_fade_seconds"] = float(cross_fade_seconds)
    if auto_play_next_track is not None:
        update["auto_play_next_track"] = bool(auto_play_next_track)
    if update:
        save_preferences(update, path)
