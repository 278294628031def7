"""Tests for formatting helpers and stored preferences."""

import json

import pytest

from utils.formatting import (
    format_duration, format_status, format_time, format_track_list, format_volume, parse_time,
)
from utils.preferences import (
    get_playback_preferences, load_preferences, save_preferences, set_playback_preferences,
)


class TestFormatting:

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0:00.00"), (83.456, "1:23.46"), (-4, "0:00.00"), (None, "--"),
    ])
    def test_format_time(self, seconds, expected) -> None:
        assert format_time(seconds) == expected

    def test_format_time_without_ms(self) -> None:
        assert format_time(83.9, include_ms=False) == "1:23"

    @pytest.mark.parametrize("text,expected", [
        ("2", 2.0), ("2.5s", 2.5), ("1500ms", 1.5), ("1:30", 90.0), ("1:00:05", 3605.0), (" 0 ", 0.0),
    ])
    def test_parse_time(self, text, expected) -> None:
        assert parse_time(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", ["", "abc", "-1", "1:2:3:4", "nan", "inf", "-inf", "infs", "1:inf"])
    def test_parse_time_rejects(self, text) -> None:
        assert parse_time(text) is None

    def test_format_duration(self) -> None:
        assert format_duration(2.98) == "2.980s"
        assert format_duration(83.4) == "1m 23.4s"

    def test_format_volume(self) -> None:
        assert format_volume(0.8) == "80%"
        assert format_volume(1.7) == "100%"

    def test_format_status(self) -> None:
        assert format_status({'state': 'idle', 'current': None}) == "[idle]"
        line = format_status({
            'state': 'playing', 'position': 61.0, 'is_fading': True,
            'current': {'id': 2, 'name': "B", 'duration': 120.0},
        })
        assert line == "[playing] #2 B  1:01.00 / 2:00.00  (fading)"

    def test_format_status_shows_volume(self) -> None:
        line = format_status({
            'state': 'playing', 'position': 5.0, 'volume': 0.4, 'is_fading': False,
            'current': {'id': 1, 'name': "A", 'duration': 10.0},
        })
        assert line == "[playing] #1 A  0:05.00 / 0:10.00  vol 40%"

    def test_format_track_list(self) -> None:
        listing = format_track_list(["A", "B"], current="B")
        assert listing.splitlines() == ["    1. A", ">   2. B"]
        assert format_track_list([]) == "  (no tracks)"


class TestPreferences:

    @pytest.fixture
    def prefs_file(self, tmp_path):
        return str(tmp_path / "prefs" / "user_preferences.json")

    def test_missing_file(self, prefs_file) -> None:
        assert load_preferences(prefs_file) == {}
        assert get_playback_preferences(prefs_file) == {}

    def test_round_trip_and_merge(self, prefs_file) -> None:
        save_preferences({"other": 1}, prefs_file)
        set_playback_preferences(cross_fade_seconds=3, auto_play_next_track=False, path=prefs_file)
        assert load_preferences(prefs_file)["other"] == 1
        assert get_playback_preferences(prefs_file) == {
            "cross_fade_seconds": 3.0, "auto_play_next_track": False,
        }

    def test_bad_values_are_dropped(self, prefs_file, tmp_path) -> None:
        save_preferences({"cross_fade_seconds": "slow", "auto_play_next_track": 1}, prefs_file)
        assert get_playback_preferences(prefs_file) == {}

    def test_infinite_crossfade_is_dropped(self, tmp_path) -> None:
        path = tmp_path / "prefs.json"
        path.write_text('{"cross_fade_seconds": Infinity, "auto_play_next_track": true}')
        assert get_playback_preferences(str(path)) == {"auto_play_next_track": True}

    def test_corrupt_file(self, tmp_path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{oops")
        assert load_preferences(str(path)) == {}
        path.write_text(json.dumps([1, 2]))
        assert load_preferences(str(path)) == {}
