"""Shared fixtures: a manual-clock scheduler and in-memory audio resources."""

import os
import sys

import pytest

# Make the flat-layout packages importable when running from a checkout
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from backend.audio import AudioResource, clamp_volume
from backend.scheduler import FrameScheduler
from backend.sequencer import Configuration, Sequencer


class FakeResource(AudioResource):
    """
    AudioResource whose playback cursor follows a FrameScheduler clock.

    Records every volume write and every transport call so tests can check
    fade curves and stop/play ordering.
    """

    def __init__(self, scheduler, name, duration=10.0, volume=1.0):
        super().__init__()
        self.scheduler = scheduler
        self._name = name
        self._duration = float(duration)
        self._volume = float(volume)

        self.playing = False
        self.paused = False
        self._offset = 0.0          # position when last (re)started
        self._started_at = None     # clock time of last (re)start
        self._end_timer = None

        self.calls = []
        self.volume_history = []

    @property
    def name(self):
        return self._name

    def play(self):
        self.calls.append('play')
        self._cancel_end()
        self.playing = True
        self.paused = False
        self._offset = 0.0
        self._started_at = self.scheduler.now()
        self._schedule_end()

    def pause(self):
        self.calls.append('pause')
        if not self.playing or self.paused:
            return
        self._offset = self.position_seconds
        self._started_at = None
        self.paused = True
        self._cancel_end()

    def resume(self):
        self.calls.append('resume')
        if not self.paused:
            return
        self.paused = False
        self._started_at = self.scheduler.now()
        self._schedule_end()

    def stop(self):
        self.calls.append('stop')
        self._cancel_end()
        self.playing = False
        self.paused = False
        self._offset = 0.0
        self._started_at = None

    @property
    def volume(self):
        return self._volume

    @volume.setter
    def volume(self, value):
        self._volume = clamp_volume(value)
        self.volume_history.append(self._volume)

    @property
    def duration_seconds(self):
        return self._duration

    @property
    def position_seconds(self):
        if self._started_at is None:
            return self._offset
        return min(self._duration, self._offset + self.scheduler.now() - self._started_at)

    def _schedule_end(self):
        remaining = self._duration - self.position_seconds
        self._end_timer = self.scheduler.call_later(remaining, self._end)

    def _cancel_end(self):
        if self._end_timer is not None:
            self._end_timer.cancel()
            self._end_timer = None

    def _end(self):
        self._end_timer = None
        self._offset = self._duration
        self._started_at = None
        self.playing = False
        self.finished.fire()


@pytest.fixture
def scheduler():
    return FrameScheduler()


@pytest.fixture
def make_resource(scheduler):
    def _make(name, duration=10.0, volume=1.0):
        return FakeResource(scheduler, name, duration, volume)
    return _make


@pytest.fixture
def resources(make_resource):
    """A, B and C: ten seconds each, B and C quieter than A."""
    return [
        make_resource("A", 10.0, 1.0),
        make_resource("B", 10.0, 0.8),
        make_resource("C", 10.0, 0.6),
    ]


@pytest.fixture
def sequencer(scheduler):
    seq = Sequencer(scheduler)
    yield seq
    seq.shutdown()


@pytest.fixture
def loaded(sequencer, resources):
    """Sequencer populated with A/B/C, auto-advance on, 2s crossfade."""
    sequencer.populate(resources, Configuration(auto_play_next_track=True, cross_fade_seconds=2.0))
    return sequencer
