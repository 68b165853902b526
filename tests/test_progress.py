"""
Progress reporter: fill ratio, labels and the auto-advance window.
"""

import math

import pytest

from backend.channels import ChannelPair
from backend.models import PlayerState
from backend.progress import ProgressReporter, progress_ratio


@pytest.fixture
def rig(catalog, loader, ticker, record):
    state = PlayerState(is_playing=True)
    pair = ChannelPair(loader)
    pair.load_track(pair.active, catalog[0])
    loader.ready_all()
    reporter = ProgressReporter(pair, state, ticker.clock, crossfade_ms=1500)
    events = record(reporter, 'progress', 'auto_advance')
    return state, pair, reporter, events


class TestProgressRatio:
    def test_clamped(self):
        assert progress_ratio(5, 10) == 0.5
        assert progress_ratio(12, 10) == 1.0
        assert progress_ratio(-1, 10) == 0.0

    @pytest.mark.parametrize("duration", [None, 0, math.nan, math.inf])
    def test_unknown_duration(self, duration):
        assert progress_ratio(3, duration) == 0.0


class TestReporter:
    def test_emits_each_frame_while_playing(self, rig, ticker):
        state, pair, reporter, events = rig
        pair.active.position = 65.0 / 10
        reporter.start()
        ticker.run_for(48)
        assert len(events['progress']) == 3
        update = events['progress'][0][0]
        assert update.ratio == pytest.approx(0.65)
        assert update.elapsed_label == "0:06"
        assert update.duration_label == "0:10"

    def test_stops_when_not_playing(self, rig, ticker):
        state, pair, reporter, events = rig
        reporter.start()
        ticker.step()
        state.is_playing = False
        ticker.run_for(100)
        assert len(events['progress']) == 1
        assert not reporter.running

    def test_stop_cancels_next_frame(self, rig, ticker):
        state, pair, reporter, events = rig
        reporter.start()
        reporter.stop()
        ticker.run_for(100)
        assert events['progress'] == []

    def test_suspended_while_seeking(self, rig, ticker):
        state, pair, reporter, events = rig
        state.is_seeking = True
        reporter.start()
        ticker.run_for(100)
        assert events['progress'] == []
        assert reporter.running

    def test_start_twice_polls_once_per_frame(self, rig, ticker):
        state, pair, reporter, events = rig
        reporter.start()
        reporter.start()
        ticker.step()
        assert len(events['progress']) == 1


class TestAutoAdvanceWindow:
    def test_lead_is_crossfade_capped_at_two_seconds(self, rig, ticker):
        state, pair, reporter, events = rig
        assert reporter.auto_advance_lead == 1.5
        reporter.crossfade_ms = 5000
        assert reporter.auto_advance_lead == 2.0

    def test_fires_once_per_track(self, rig, ticker):
        state, pair, reporter, events = rig
        reporter.start()
        pair.active.position = 8.4
        ticker.step()
        assert events['auto_advance'] == []

        pair.active.position = 8.6
        ticker.run_for(160)
        assert len(events['auto_advance']) == 1

    def test_rearm(self, rig, ticker):
        state, pair, reporter, events = rig
        reporter.start()
        pair.active.position = 9.0
        ticker.step()
        reporter.rearm()
        ticker.step()
        assert len(events['auto_advance']) == 2

    def test_sample_does_not_emit(self, rig):
        state, pair, reporter, events = rig
        update = reporter.sample()
        assert update.ratio == 0.0
        assert events['progress'] == []
