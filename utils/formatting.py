"""
Formatting utilities for FadeDeck.

Used by the CLI prompt and log lines.
"""

import math
from typing import Iterable, Optional


def format_time(seconds: Optional[float], include_ms: bool = True) -> str:
    """
    Format seconds as a time string.

    Args:
        seconds: Time in seconds (None renders as "--")
        include_ms: Whether to include hundredths

    Returns:
        Formatted string like "1:23.45" or "1:23"
    """
    if seconds is None:
        return "--"
    if seconds < 0:
        seconds = 0

    minutes = int(seconds // 60)
    secs = seconds % 60

    if include_ms:
        return f"{minutes}:{secs:05.2f}"
    else:
        return f"{minutes}:{int(secs):02d}"


def parse_time(text: str) -> Optional[float]:
    """
    Parse a duration string to seconds.

    Accepts formats:
    - "1:23.45" (M:SS.ms) and "1:02:03" (H:MM:SS)
    - "2.5" or "2.5s" (seconds)
    - "1500ms" (milliseconds)

    Returns:
        Seconds (finite, never negative), or None if parsing failed
    """
    text = text.strip().lower()

    try:
        if text.endswith('ms'):
            value = float(text[:-2]) / 1000.0
        elif text.endswith('s'):
            value = float(text[:-1])
        elif ':' in text:
            parts = text.split(':')
            if len(parts) == 2:
                value = int(parts[0]) * 60 + float(parts[1])
            elif len(parts) == 3:
                value = int(parts[0]) * 3600 + int(parts[1]) * 60 + float(parts[2])
            else:
                return None
        else:
            value = float(text)
    except ValueError:
        return None

    if not math.isfinite(value) or value < 0:
        return None
    return value


def format_duration(seconds: float) -> str:
    """
    Format a duration for display.

    Returns:
        Formatted string like "2.980s" or "1m 23.4s"
    """
    if seconds < 60:
        return f"{seconds:.3f}s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    return f"{minutes}m {secs:.1f}s"


def format_volume(volume: float) -> str:
    """0.8 -> "80%"."""
    return f"{round(max(0.0, min(1.0, volume)) * 100)}%"


def format_status(snapshot: dict) -> str:
    """One-line status from Sequencer.snapshot()."""
    current = snapshot.get('current')
    if not current:
        return f"[{snapshot.get('state', 'idle')}]"
    line = (f"[{snapshot['state']}] #{current['id']} {current['name']}  "
            f"{format_time(snapshot.get('position', 0.0))} / {format_time(current['duration'])}")
    if 'volume' in snapshot:
        line += f"  vol {format_volume(snapshot['volume'])}"
    if snapshot.get('is_fading'):
        line += "  (fading)"
    return line


def format_track_list(names: Iterable[str], current: Optional[str] = None) -> str:
    """Numbered listing, current track marked with '>'."""
    lines = []
    for i, name in enumerate(names, start=1):
        marker = '>' if name == current else ' '
        lines.append(f"{marker} {i:3d}. {name}")
    return "\n".join(lines) if lines else "  (no tracks)"
