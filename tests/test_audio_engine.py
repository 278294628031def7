"""Tests for the pygame adapter, run against a mocked Sound (no audio device)."""

from unittest.mock import MagicMock

import pytest

from backend import audio_engine
from backend.audio_engine import AudioEngine, PygameTrack, find_audio_files


class Clock:
    def __init__(self):
        self.t = 100.0

    def __call__(self):
        return self.t


@pytest.fixture
def clock(monkeypatch) -> Clock:
    c = Clock()
    monkeypatch.setattr(audio_engine.time, "monotonic", c)
    return c


@pytest.fixture
def sound() -> MagicMock:
    snd = MagicMock()
    snd.get_length.return_value = 30.0
    snd.get_volume.return_value = 0.7
    snd.play.return_value.get_sound.return_value = snd
    return snd


@pytest.fixture
def track(sound) -> PygameTrack:
    return PygameTrack("/music/Opening Theme.ogg", sound=sound)


class TestPygameTrack:

    def test_name_and_duration(self, track) -> None:
        assert track.name == "Opening Theme"
        assert track.duration_seconds == 30.0
        assert track.volume == 0.7

    def test_volume_is_clamped(self, track, sound) -> None:
        track.volume = 1.4
        sound.set_volume.assert_called_with(1.0)

    def test_position_follows_clock_and_pauses(self, track, clock) -> None:
        assert track.position_seconds == 0.0
        track.play()
        clock.t += 5.0
        assert track.position_seconds == pytest.approx(5.0)

        track.pause()
        clock.t += 10.0
        assert track.position_seconds == pytest.approx(5.0)
        track.channel.pause.assert_called_once()

        track.resume()
        clock.t += 1.0
        assert track.position_seconds == pytest.approx(6.0)

        clock.t += 100.0
        assert track.position_seconds == 30.0

    def test_stop_resets(self, track, sound, clock) -> None:
        track.play()
        clock.t += 3.0
        track.stop()
        sound.stop.assert_called_once()
        assert track.position_seconds == 0.0
        assert track.channel is None

    def test_poll_fires_finished_on_natural_end(self, track, clock) -> None:
        ended = []
        track.finished.connect(lambda: ended.append(True))
        track.play()

        track.channel.get_busy.return_value = True
        assert track.poll() is False

        track.channel.get_busy.return_value = False
        assert track.poll() is True
        assert ended == [True]
        assert track.position_seconds == pytest.approx(30.0)
        assert track.poll() is False

    def test_poll_ignores_paused_and_stopped(self, track) -> None:
        assert track.poll() is False
        track.play()
        track.pause()
        track.channel.get_busy.return_value = False
        assert track.poll() is False


class TestAudioEngine:

    def test_load_file_failure_returns_none(self, scheduler, tmp_path) -> None:
        engine = AudioEngine(scheduler, init_mixer=False)
        assert engine.load_file(str(tmp_path / "missing.ogg")) is None

    def test_monitor_polls_tracks(self, scheduler, track) -> None:
        engine = AudioEngine(scheduler, init_mixer=False)
        engine.tracks = [track]
        ended = []
        track.finished.connect(lambda: ended.append(True))
        track.play()
        track.channel.get_busy.return_value = False

        engine.start_monitor()
        engine.start_monitor()
        scheduler.advance(0.2)
        assert ended == [True]

        engine.stop_monitor()
        assert scheduler.pending() == 0


def test_find_audio_files(tmp_path) -> None:
    (tmp_path / "b.ogg").write_bytes(b"")
    (tmp_path / "a.MP3").write_bytes(b"")
    (tmp_path / "notes.txt").write_text("x")
    single = tmp_path / "single.wav"
    single.write_bytes(b"")

    found = find_audio_files([str(tmp_path), str(single), str(tmp_path / "nope")])
    names = [p.rsplit("/", 1)[-1] for p in found]
    assert names == ["a.MP3", "b.ogg", "single.wav", "single.wav"]
