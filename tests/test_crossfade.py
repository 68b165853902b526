"""
Crossfade scheduler driven directly on a channel pair.
"""

import pytest

from backend.channels import ChannelPair
from backend.crossfade import CrossfadeScheduler, FadePhase, fade_progress
from backend.models import Direction, PlayerState, Trigger, TransitionRequest


@pytest.fixture
def rig(catalog, loader, ticker, record):
    state = PlayerState()
    pair = ChannelPair(loader)
    pair.load_track(pair.active, catalog[0])
    loader.ready_all()
    pair.play(pair.active)
    scheduler = CrossfadeScheduler(pair, ticker.clock, state, catalog,
                                   crossfade_ms=1500, ready_timeout_ms=8000)
    events = record(scheduler, 'phase_change', 'complete', 'load_failed', 'fade_aborted')
    return state, pair, scheduler, events


def request_to(index):
    return TransitionRequest(Direction.NEXT, index, Trigger.MANUAL)


class TestFadeProgress:
    def test_clamped_linear(self):
        assert fade_progress(-5, 1500) == 0.0
        assert fade_progress(750, 1500) == 0.5
        assert fade_progress(4000, 1500) == 1.0

    def test_zero_duration_is_instant(self):
        assert fade_progress(0, 0) == 1.0


class TestPhases:
    def test_full_sequence(self, rig, loader, ticker):
        state, pair, scheduler, events = rig
        old_active, old_standby = pair.active, pair.standby

        assert scheduler.begin(request_to(1))
        assert state.transition_in_flight
        assert pair.standby.volume == 0.0

        loader.ready_all()
        ticker.run_for(1600)

        phases = [phase for phase, _ in events['phase_change']]
        assert phases == [FadePhase.PRELOADING, FadePhase.FADING, FadePhase.SWAPPED, FadePhase.IDLE]
        assert pair.active is old_standby
        assert pair.standby is old_active
        assert state.current_index == 1
        assert not state.transition_in_flight
        assert events['complete'] == [(request_to(1), False)]

    def test_old_active_paused_and_reset(self, rig, loader, ticker):
        state, pair, scheduler, events = rig
        old_active = pair.active
        scheduler.begin(request_to(1))
        loader.ready_all()
        ticker.run_for(1600)

        assert not old_active.handle.playing
        assert old_active.volume == 1.0
        assert pair.active.volume == 1.0
        assert pair.active.handle.playing

    def test_flag_held_until_swap(self, rig, loader, ticker):
        state, pair, scheduler, events = rig
        scheduler.begin(request_to(1))
        assert state.transition_in_flight
        loader.ready_all()
        ticker.run_for(700)
        assert scheduler.phase == FadePhase.FADING
        assert state.transition_in_flight

    def test_second_begin_refused_while_in_flight(self, rig):
        state, pair, scheduler, events = rig
        assert scheduler.begin(request_to(1))
        assert not scheduler.begin(request_to(2))
        assert len(events['phase_change']) == 1


class TestCrossfadeInvariant:
    def test_volumes_sum_to_one_every_frame(self, rig, loader, ticker):
        state, pair, scheduler, events = rig
        scheduler.begin(request_to(1))
        loader.ready_all()

        samples = []
        while scheduler.phase == FadePhase.FADING:
            ticker.step(16)
            if scheduler.phase == FadePhase.FADING:
                samples.append((pair.standby.volume, pair.active.volume))

        assert len(samples) > 50
        for standby_volume, active_volume in samples:
            assert 0.0 <= standby_volume <= 1.0
            assert 0.0 <= active_volume <= 1.0
            assert standby_volume + active_volume == pytest.approx(1.0)

    def test_fade_starts_from_current_active_volume(self, rig, loader, ticker):
        state, pair, scheduler, events = rig
        pair.set_volume(pair.active, 0.6)
        scheduler.begin(request_to(1))
        loader.ready_all()

        while scheduler.phase == FadePhase.FADING:
            ticker.step(16)
            if scheduler.phase == FadePhase.FADING:
                assert pair.standby.volume + pair.active.volume / 0.6 == pytest.approx(1.0)

    def test_standby_ramps_monotonically(self, rig, loader, ticker):
        state, pair, scheduler, events = rig
        scheduler.begin(request_to(1))
        standby_handle = loader.last
        loader.ready_all()
        ticker.run_for(1600)

        ramp = standby_handle.volume_history
        assert ramp[0] == 0.0
        assert ramp == sorted(ramp)
        assert ramp[-1] == 1.0


class TestSilentFade:
    def test_paused_transition_never_starts_output(self, rig, loader, ticker):
        state, pair, scheduler, events = rig
        pair.pause(pair.active)
        scheduler.begin(request_to(2), audible=False)
        standby_handle = loader.last
        loader.ready_all()
        ticker.run_for(1600)

        assert standby_handle.play_calls == 0
        assert state.current_index == 2
        phases = [phase for phase, _ in events['phase_change']]
        assert FadePhase.FADING in phases and FadePhase.SWAPPED in phases


class TestFallbacks:
    def test_blocked_standby_hard_switches(self, rig, loader, ticker):
        state, pair, scheduler, events = rig
        active_channel = pair.active
        scheduler.begin(request_to(1))
        loader.last.reject_play = True
        loader.ready_all()

        assert len(events['fade_aborted']) == 1
        assert events['complete'] == [(request_to(1), True)]
        assert pair.active is active_channel
        assert pair.active.handle.ref == "song2.mp3"
        assert pair.active.volume == 1.0
        assert pair.standby.handle is None
        assert state.current_index == 1
        assert not state.transition_in_flight
        assert FadePhase.FADING not in [phase for phase, _ in events['phase_change']]

    def test_ready_timeout_hard_switches(self, rig, loader, ticker):
        state, pair, scheduler, events = rig
        scheduler.begin(request_to(2))
        ticker.run_for(7900)
        assert scheduler.phase == FadePhase.PRELOADING

        ticker.run_for(200)
        assert len(events['fade_aborted']) == 1
        assert state.current_index == 2
        assert pair.active.handle.ref == "song3.mp3"
        assert not state.transition_in_flight

    def test_zero_timeout_waits_forever(self, catalog, loader, ticker):
        state = PlayerState()
        pair = ChannelPair(loader)
        pair.load_track(pair.active, catalog[0])
        scheduler = CrossfadeScheduler(pair, ticker.clock, state, catalog, ready_timeout_ms=0)
        scheduler.begin(request_to(1))
        ticker.run_for(60000, frame_ms=1000)
        assert scheduler.phase == FadePhase.PRELOADING
        assert state.transition_in_flight

    def test_target_load_error_abandons_transition(self, rig, loader, ticker):
        state, pair, scheduler, events = rig
        loader.fail_refs.add("song2.mp3")
        active_handle = pair.active.handle
        scheduler.begin(request_to(1))
        loader.ready_all()

        assert scheduler.phase == FadePhase.IDLE
        assert not state.transition_in_flight
        assert state.current_index == 0
        assert pair.active.handle is active_handle
        assert active_handle.playing
        request, error = events['load_failed'][0]
        assert request.target_index == 1
        assert error.ref == "song2.mp3"


class TestSettle:
    def test_settle_mid_fade_swaps_immediately(self, rig, loader, ticker):
        state, pair, scheduler, events = rig
        scheduler.begin(request_to(1))
        loader.ready_all()
        ticker.run_for(400)

        scheduler.settle()
        assert scheduler.phase == FadePhase.IDLE
        assert state.current_index == 1
        assert pair.active.volume == 1.0
        assert pair.standby.volume == 1.0
        assert not pair.standby.handle.playing

    def test_settle_while_preloading_hard_switches(self, rig):
        state, pair, scheduler, events = rig
        scheduler.begin(request_to(1))
        scheduler.settle()
        assert events['complete'] == [(request_to(1), True)]
        assert state.current_index == 1

    def test_settle_when_idle_does_nothing(self, rig):
        state, pair, scheduler, events = rig
        scheduler.settle()
        assert events['complete'] == []
