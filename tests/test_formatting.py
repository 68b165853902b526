import math

import pytest

from utils.formatting import format_time, format_track_counter


@pytest.mark.parametrize("seconds,expected", [
    (0, "0:00"),
    (9.99, "0:09"),
    (65, "1:05"),
    (600, "10:00"),
    (-4, "0:00"),
    (None, "0:00"),
    (math.nan, "0:00"),
    (math.inf, "0:00"),
])
def test_format_time(seconds, expected):
    assert format_time(seconds) == expected


def test_format_time_truncates_fractions():
    assert format_time(83.95) == "1:23"


def test_track_counter_is_one_based():
    assert format_track_counter(0, 3) == "1 / 3"
    assert format_track_counter(2, 3) == "3 / 3"
