"""Tests for the fade coordinator."""

import pytest

from backend.fades import FadeCoordinator, FadeDirection
from backend.library import Track


@pytest.fixture
def retired():
    return []


@pytest.fixture
def settled():
    return []


@pytest.fixture
def coordinator(scheduler, retired, settled) -> FadeCoordinator:
    return FadeCoordinator(scheduler, on_retired=retired.append, on_settled=settled.append)


@pytest.fixture
def tracks(resources):
    return [Track.from_resource(i, r) for i, r in enumerate(resources, start=1)]


def _is_smooth(history, max_step=0.06):
    return all(abs(b - a) <= max_step for a, b in zip(history, history[1:]))


class TestFadeIn:

    def test_tweens_write_under_the_coordinator_lock(self, coordinator, tracks) -> None:
        a, b = tracks[0], tracks[1]
        coordinator.fade_in(a, a.original_volume, 2.0)
        out = coordinator.fade_out(a, 2.0)
        inbound = coordinator.fade_in(b, b.original_volume, 2.0)
        assert out.tween.lock is coordinator.lock
        assert inbound.tween.lock is coordinator.lock

    def test_starts_silent_and_ramps_to_target(self, scheduler, coordinator, tracks, settled) -> None:
        b = tracks[1]
        session = coordinator.fade_in(b, b.original_volume, 2.0)

        assert session.direction is FadeDirection.IN
        assert b.handle.playing
        assert b.handle.volume_history[0] == 0.0

        scheduler.advance(1.0)
        assert b.handle.volume == pytest.approx(0.4, abs=0.05)

        scheduler.advance(2.0)
        assert b.handle.volume == pytest.approx(0.8)
        assert settled == [b]
        assert coordinator.fading_in is None

    def test_new_fade_in_replaces_previous(self, scheduler, coordinator, tracks, settled) -> None:
        first = coordinator.fade_in(tracks[0], 1.0, 2.0)
        coordinator.fade_in(tracks[1], 1.0, 2.0)
        assert first.cancelled
        scheduler.advance(5.0)
        assert settled == [tracks[1]]


class TestFadeOut:

    def test_ramps_down_then_stops_and_retires(self, scheduler, coordinator, tracks, retired) -> None:
        a = tracks[0]
        a.handle.play()
        coordinator.fade_out(a, 2.0)

        scheduler.advance(1.0)
        assert a.handle.playing
        assert 0.4 < a.handle.volume < 0.6

        scheduler.advance(2.0)
        assert a.handle.volume == 0.0
        assert not a.handle.playing
        assert retired == [a]
        assert _is_smooth(a.handle.volume_history)

    def test_zero_duration_completes_on_next_pass(self, scheduler, coordinator, tracks, retired) -> None:
        a = tracks[0]
        a.handle.play()
        coordinator.fade_out(a, 0.0)
        assert a.handle.volume == 0.0
        assert retired == []
        scheduler.tick()
        assert retired == [a]
        assert not a.handle.playing

    def test_replacing_fade_out_stops_previous_track(self, scheduler, coordinator, tracks, retired) -> None:
        a, b = tracks[0], tracks[1]
        a.handle.play()
        b.handle.play()
        first = coordinator.fade_out(a, 2.0)
        scheduler.advance(0.5)

        coordinator.fade_out(b, 2.0)
        assert first.cancelled
        assert not a.handle.playing

        scheduler.advance(5.0)
        assert retired == [b]


class TestInterruption:

    def test_cancel_fade_out_stops_track_and_never_retires(self, scheduler, coordinator, tracks, retired) -> None:
        a = tracks[0]
        a.handle.play()
        coordinator.fade_out(a, 2.0)
        scheduler.advance(0.5)

        assert coordinator.cancel_fade_out(stop_track=True) is a
        assert not a.handle.playing
        scheduler.advance(5.0)
        assert retired == []
        assert coordinator.cancel_fade_out() is None

    def test_cancel_is_idempotent(self, scheduler, coordinator, tracks) -> None:
        session = coordinator.fade_in(tracks[0], 1.0, 2.0)
        coordinator.cancel(session)
        coordinator.cancel(session)
        coordinator.cancel(None)
        assert not coordinator.active

    def test_redirect_fade_in_continues_from_partial_volume(self, scheduler, coordinator, tracks, settled, retired) -> None:
        a = tracks[0]
        coordinator.fade_in(a, 1.0, 2.0)
        scheduler.advance(1.0)
        partial = a.handle.volume

        session = coordinator.redirect_fade_in(2.0)
        assert session.direction is FadeDirection.OUT
        assert session.tween.start_value == pytest.approx(partial)
        assert coordinator.fading_in is None

        scheduler.advance(3.0)
        assert settled == []
        assert retired == [a]
        assert _is_smooth(a.handle.volume_history)

    def test_redirect_without_fade_in(self, coordinator) -> None:
        assert coordinator.redirect_fade_in(2.0) is None

    def test_fade_in_of_leaving_track_restarts_it(self, scheduler, coordinator, tracks, retired, settled) -> None:
        a = tracks[0]
        a.handle.play()
        coordinator.fade_out(a, 2.0)
        scheduler.advance(1.0)

        coordinator.fade_in(a, 1.0, 2.0)
        assert coordinator.fading_out is None
        assert a.handle.calls[-1] == 'play'

        scheduler.advance(3.0)
        assert retired == []
        assert settled == [a]
        assert a.handle.playing

    def test_cancel_all(self, scheduler, coordinator, tracks, retired, settled) -> None:
        a, b = tracks[0], tracks[1]
        a.handle.play()
        coordinator.fade_out(a, 2.0)
        coordinator.fade_in(b, 1.0, 2.0)

        coordinator.cancel_all(stop_tracks=True)
        assert not coordinator.active
        assert not a.handle.playing and not b.handle.playing
        scheduler.advance(5.0)
        assert retired == [] and settled == []
