"""
Configuration constants for FadeDeck.

All tunable parameters in one place for easy adjustment and debugging.
Modify these values to fine-tune mixer behavior, fade smoothness, and the
remote control server.
"""

import sys
import os

# =============================================================================
# PATHS
# =============================================================================

# HELPER: Detect if we are running as a compiled exe or a script
def get_base_path():
    if getattr(sys, 'frozen', False):
        # We are running as an exe - use the folder the exe is sitting in
        return os.path.dirname(sys.executable)
    else:
        # We are running as a script - use the script's folder
        return os.path.dirname(os.path.abspath(__file__))

# ROOT DIR
BASE_DIR = get_base_path()

# Data directory for stored preferences
DATA_DIR = os.path.join(BASE_DIR, "data")

# Log directory (one timestamped file per run)
LOG_DIR = os.path.join(BASE_DIR, "logs")

# =============================================================================
# AUDIO MIXER SETTINGS
# =============================================================================

# Sample rate for the pygame mixer (Hz)
SAMPLE_RATE = 44100

# Number of audio channels (2 = stereo)
CHANNELS = 2

# Pygame mixer buffer size (lower = less latency, but more CPU)
MIXER_BUFFER_SIZE = 1024

# Number of mixer channels to allocate.
# A crossfade needs two (outgoing + incoming), the rest is headroom.
MIXER_NUM_CHANNELS = 8

# =============================================================================
# SEQUENCING DEFAULTS
# Used when a library is populated without an explicit configuration
# =============================================================================

# Automatically advance to the next track in the queue near the end of a track
DEFAULT_AUTO_PLAY_NEXT_TRACK = True

# Crossfade duration between outgoing and incoming track (seconds)
# 0 = hard cut (the outgoing track is stopped on the next scheduler tick)
DEFAULT_CROSSFADE_SECONDS = 2.0

# =============================================================================
# TIMING
# =============================================================================

# How often a running fade updates the volume (seconds)
# TUNABLE: Lower = smoother ramps, more scheduler work
FADE_STEP_INTERVAL = 0.05

# How often the auto-advance watchdog checks the remaining track time (seconds)
WATCHDOG_INTERVAL = 0.1

# How often the audio engine polls mixer channels for natural track end (seconds)
MONITOR_INTERVAL = 0.05

# Sleep between scheduler passes of the background scheduler thread (seconds)
SCHEDULER_TICK_INTERVAL = 0.01

# =============================================================================
# REMOTE CONTROL SERVER
# =============================================================================

# Bind address for the HTTP remote control inlet
REMOTE_HOST = "0.0.0.0"

# Default port for the HTTP remote control inlet
REMOTE_PORT = 8080

# =============================================================================
# FILE SETTINGS
# =============================================================================

# Supported audio formats
SUPPORTED_FORMATS = ('.mp3', '.wav', '.ogg', '.flac')
