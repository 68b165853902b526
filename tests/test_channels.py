"""
Channel pair: loading, volume clamping, role swaps and signal relay.
"""

import pytest

from backend.channels import ChannelPair, ChannelRole, clamp_volume
from backend.errors import PlaybackBlocked


@pytest.fixture
def pair(loader):
    return ChannelPair(loader)


class TestChannelPair:
    def test_two_channels_on_separate_slots(self, pair):
        assert pair.active.name == "A" and pair.active.slot == 0
        assert pair.standby.name == "B" and pair.standby.slot == 1
        assert pair.active.role == ChannelRole.ACTIVE
        assert pair.standby.role == ChannelRole.STANDBY

    def test_swap_roles(self, pair):
        a, b = pair.active, pair.standby
        pair.swap_roles()
        assert pair.active is b and pair.standby is a
        assert b.role == ChannelRole.ACTIVE
        assert a.role == ChannelRole.STANDBY

    def test_load_replaces_and_releases_handle(self, pair, catalog, loader):
        pair.load_track(pair.active, catalog[0])
        first = pair.active.handle
        pair.load_track(pair.active, catalog[1])
        assert first.released
        assert pair.active.handle.ref == "song2.mp3"
        assert pair.active.handle.slot == 0

    def test_load_keeps_channel_volume(self, pair, catalog):
        pair.set_volume(pair.standby, 0.0)
        pair.load_track(pair.standby, catalog[1])
        assert pair.standby.handle.volume == 0.0

    def test_volume_clamped(self, pair, catalog):
        pair.load_track(pair.active, catalog[0])
        pair.set_volume(pair.active, 1.7)
        assert pair.active.volume == 1.0
        pair.set_volume(pair.active, -0.2)
        assert pair.active.volume == 0.0
        assert pair.active.handle.volume_history[-2:] == [1.0, 0.0]

    def test_play_without_media_is_blocked(self, pair):
        with pytest.raises(PlaybackBlocked):
            pair.play(pair.active)

    def test_signals_carry_the_channel(self, pair, catalog, loader, record):
        events = record(pair, 'ready', 'metadata', 'ended', 'error')
        pair.load_track(pair.standby, catalog[2])
        loader.ready_all()
        pair.standby.handle.finish()
        assert events['metadata'] == [(pair.standby, 10.0)]
        assert events['ready'] == [(pair.standby,)]
        assert events['ended'] == [(pair.standby,)]

    def test_replaced_handle_goes_quiet(self, pair, catalog, loader, record):
        events = record(pair, 'ready')
        pair.load_track(pair.active, catalog[0])
        stale = pair.active.handle
        pair.load_track(pair.active, catalog[1])
        stale.make_ready()
        assert events['ready'] == []

    def test_raising_listener_does_not_starve_the_rest(self, pair, catalog, loader, record):
        def boom(channel):
            raise RuntimeError("listener failed")

        pair.on('ready', boom)
        events = record(pair, 'ready')
        pair.load_track(pair.active, catalog[0])
        loader.ready_all()
        assert events['ready'] == [(pair.active,)]

    def test_unload(self, pair, catalog):
        pair.load_track(pair.active, catalog[0])
        handle = pair.active.handle
        pair.unload(pair.active)
        assert handle.released
        assert pair.active.handle is None
        assert pair.active.position == 0.0
        assert pair.active.duration is None


class TestClampVolume:
    @pytest.mark.parametrize("value,expected", [
        (0.5, 0.5), (0, 0.0), (1, 1.0), (2.5, 1.0), (-1, 0.0), (float('nan'), 1.0),
    ])
    def test_clamp(self, value, expected):
        assert clamp_volume(value) == expected
