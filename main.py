#!/usr/bin/env python3
"""
FadeDeck - Playlist Player with Crossfades

Loads a set of audio files as a playlist and plays them in order, crossfading
from one track into the next. Tracks can be picked from the console or from
any device on the local network through the remote control page.

Usage:
    python main.py [PATH ...] [--crossfade S] [--no-autoplay] [--port N]
                   [--no-remote] [--remember] [--debug]

Console commands:
    play [NAME]   play NAME, or the next track when no name is given
    pause / resume / stop / skip
    list / status / help / quit
"""

import os
import sys

# Must be done BEFORE importing pygame (which happens in backend imports)
os.environ['PYGAME_HIDE_SUPPORT_PROMPT'] = "1"

import logging
import argparse
from datetime import datetime

# Ensure we can import from our package
sys.path.insert(0, os.path.dirname(__file__))

from config import LOG_DIR, REMOTE_PORT, DEFAULT_CROSSFADE_SECONDS, DEFAULT_AUTO_PLAY_NEXT_TRACK
from utils.formatting import parse_time, format_status, format_track_list
from utils.preferences import get_playback_preferences, set_playback_preferences

# =============================================================================
# UTILS
# =============================================================================

def setup_logging(debug: bool = False) -> logging.Logger:
    os.makedirs(LOG_DIR, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(LOG_DIR, f"fadedeck_{timestamp}.log")

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s.%(msecs)03d [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout), logging.FileHandler(log_file)]
    )
    return logging.getLogger("FadeDeck")


def _crossfade_arg(text: str) -> float:
    value = parse_time(text)
    if value is None:
        raise argparse.ArgumentTypeError(f"invalid duration: {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fadedeck", description="Playlist player with crossfades")
    parser.add_argument("paths", nargs="*", help="audio files or directories (played in order)")
    parser.add_argument("--crossfade", type=_crossfade_arg, default=None,
                        help="crossfade length, e.g. 2, 2.5s, 1500ms")
    parser.add_argument("--no-autoplay", action="store_true",
                        help="do not advance to the next track automatically")
    parser.add_argument("--port", type=int, default=REMOTE_PORT)
    parser.add_argument("--no-remote", action="store_true", help="do not start the web remote")
    parser.add_argument("--remember", action="store_true",
                        help="save --crossfade/--no-autoplay as the new defaults")
    parser.add_argument("--debug", action="store_true")
    return parser


def resolve_settings(args, saved=None) -> dict:
    """Command line beats saved preferences, which beat config.py defaults."""
    saved = saved or {}
    settings = {
        'cross_fade_seconds': saved.get('cross_fade_seconds', DEFAULT_CROSSFADE_SECONDS),
        'auto_play_next_track': saved.get('auto_play_next_track', DEFAULT_AUTO_PLAY_NEXT_TRACK),
    }
    if args.crossfade is not None:
        settings['cross_fade_seconds'] = args.crossfade
    if args.no_autoplay:
        settings['auto_play_next_track'] = False
    return settings

# =============================================================================
# CONSOLE
# =============================================================================

HELP_TEXT = """Commands:
  play [NAME]   play NAME, or the next track
  pause         pause the current track
  resume        resume the paused track
  stop          fade out the current track
  skip          crossfade into the next track
  list          show the playlist
  status        show what is playing
  quit          exit"""


def run_command(sequencer, line: str, out=None) -> bool:
    """
    Execute one console command.

    Returns:
        False when the console should exit
    """
    out = out or sys.stdout
    command, _, rest = line.strip().partition(' ')
    command = command.lower()
    rest = rest.strip()

    if not command:
        return True
    if command in ('quit', 'exit', 'q'):
        return False

    if command == 'play':
        sequencer.play(rest or None)
    elif command == 'pause':
        sequencer.pause()
    elif command == 'resume':
        sequencer.resume()
    elif command == 'stop':
        sequencer.stop()
    elif command in ('skip', 'next'):
        sequencer.skip()
    elif command in ('list', 'ls'):
        current = sequencer.current_track
        print(format_track_list(sequencer.library.names, current.name if current else None), file=out)
    elif command == 'status':
        print(format_status(sequencer.snapshot()), file=out)
    elif command in ('help', '?'):
        print(HELP_TEXT, file=out)
    else:
        print(f"Unknown command: {command} (try 'help')", file=out)
    return True


def console_loop(sequencer, stream=None) -> None:
    stream = stream or sys.stdin
    print("FadeDeck ready. Type 'help' for commands.")
    while True:
        print("> ", end="", flush=True)
        line = stream.readline()
        if not line:
            break
        if not run_command(sequencer, line):
            break

# =============================================================================
# MAIN
# =============================================================================

def main(argv=None):
    args = build_parser().parse_args(argv)

    logger = setup_logging(debug=args.debug)
    logger.info("FadeDeck Starting")

    # Late imports: pygame and flask are only needed for a real session
    from backend import Sequencer, Configuration, ThreadedScheduler
    from backend.audio_engine import AudioEngine, find_audio_files
    from backend.web_server import SharedPlaybackState, RemoteCommandServer

    settings = resolve_settings(args, get_playback_preferences())
    if args.remember:
        set_playback_preferences(**settings)
        logger.info(f"Saved playback defaults: {settings}")

    files = find_audio_files(args.paths)
    if not files:
        logger.warning("No audio files given; the playlist is empty")

    scheduler = ThreadedScheduler()
    engine = None
    server = None
    sequencer = None
    try:
        scheduler.start()
        engine = AudioEngine(scheduler)
        tracks = engine.load_files(files)

        sequencer = Sequencer(scheduler)
        count = sequencer.populate(tracks, Configuration.from_dict(settings))
        logger.info(f"Playlist ready: {count} track(s), {sequencer.configuration}")

        if not args.no_remote:
            shared = SharedPlaybackState()
            shared.attach(sequencer)
            server = RemoteCommandServer(shared, port=args.port)
            sequencer.bind_remote(server)
            try:
                print(f"Remote control: {server.start()}")
            except OSError as e:
                logger.error(f"Could not start remote control on port {args.port}: {e}")
                server = None

        console_loop(sequencer)

    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.exception(f"Critical Error: {e}")
        return 1
    finally:
        if server is not None:
            server.stop()
        if sequencer is not None:
            sequencer.shutdown()
        if engine is not None:
            engine.shutdown()
        scheduler.shutdown()
        logger.info("FadeDeck Exiting")
    return 0


if __name__ == "__main__":
    sys.exit(main())
