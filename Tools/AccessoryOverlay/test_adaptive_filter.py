"""Tests for the One Euro filter and angle helpers."""

import math

import pytest

from .adaptive_filter import AdaptiveFilter, AngleFilter, shortest_angle_delta, wrap_angle
from .config import FilterSettings


def test_first_sample_passes_through():
    f = AdaptiveFilter(min_cutoff=0.05, beta=5.0)
    assert f.filter(42.0, 0.0) == 42.0
    assert f.value == 42.0
    assert f.derivative == 0.0


def test_constant_input_converges():
    f = AdaptiveFilter(min_cutoff=1.0, beta=0.0)
    f.filter(0.0, 0.0)

    value = None
    for i in range(1, 300):
        value = f.filter(10.0, i * 33.0)

    assert value == pytest.approx(10.0, abs=1e-3)


def test_constant_input_is_a_fixed_point():
    f = AdaptiveFilter(min_cutoff=0.5, beta=10.0)
    for i in range(20):
        assert f.filter(3.5, i * 16.0) == pytest.approx(3.5)


def test_output_lags_behind_a_step():
    f = AdaptiveFilter(min_cutoff=1.0, beta=0.0)
    f.filter(0.0, 0.0)
    value = f.filter(100.0, 33.0)
    assert 0.0 < value < 100.0


def test_equal_timestamps_keep_previous_rate():
    f = AdaptiveFilter(min_cutoff=1.0, beta=1.0)
    f.filter(1.0, 100.0)
    f.filter(2.0, 150.0)
    rate = f.rate
    assert rate == pytest.approx(20.0)

    value = f.filter(3.0, 150.0)

    assert math.isfinite(value)
    assert f.rate == rate


def test_out_of_order_timestamp_keeps_previous_rate():
    f = AdaptiveFilter()
    f.filter(1.0, 100.0)
    value = f.filter(2.0, 90.0)
    assert math.isfinite(value)
    assert f.rate == pytest.approx(30.0)


def test_filter_without_timestamps_uses_initial_rate():
    f = AdaptiveFilter(initial_rate_hz=60.0)
    f.filter(0.0)
    assert math.isfinite(f.filter(1.0))
    assert f.rate == 60.0


def test_higher_beta_follows_fast_motion_more_closely():
    slow = AdaptiveFilter(min_cutoff=0.5, beta=0.0)
    fast = AdaptiveFilter(min_cutoff=0.5, beta=10.0)
    for f in (slow, fast):
        f.filter(0.0, 0.0)

    assert fast.filter(500.0, 33.0) > slow.filter(500.0, 33.0)


def test_reset_starts_fresh():
    f = AdaptiveFilter()
    f.filter(1.0, 0.0)
    f.filter(5.0, 10.0)

    f.reset()

    assert f.value is None
    assert f.rate == pytest.approx(30.0)
    assert f.filter(-7.0, 500.0) == -7.0


def test_from_settings():
    f = AdaptiveFilter.from_settings(FilterSettings(min_cutoff=0.3, beta=2.0, d_cutoff=1.5))
    assert (f.min_cutoff, f.beta, f.d_cutoff) == (0.3, 2.0, 1.5)


def test_wrap_angle_range():
    assert wrap_angle(0.5) == pytest.approx(0.5)
    assert wrap_angle(2 * math.pi + 0.5) == pytest.approx(0.5)
    assert wrap_angle(-2 * math.pi - 0.5) == pytest.approx(-0.5)
    assert wrap_angle(math.pi) == pytest.approx(math.pi)
    assert wrap_angle(-math.pi) == pytest.approx(-math.pi)


@pytest.mark.parametrize("a, b", [
    (0.1, -3.1),
    (-3.1, 0.1),
    (3.1, -3.1),
    (0.0, 2 * math.pi),
    (-10.0, 10.0),
])
def test_shortest_delta_is_bounded(a, b):
    delta = shortest_angle_delta(a, b)
    assert -math.pi <= delta <= math.pi
    # a + delta lands on the same direction as b
    assert math.cos(a + delta) == pytest.approx(math.cos(b))
    assert math.sin(a + delta) == pytest.approx(math.sin(b))


def test_shortest_delta_across_the_seam_is_small():
    assert shortest_angle_delta(3.1, -3.1) == pytest.approx(2 * math.pi - 6.2)
    assert shortest_angle_delta(-3.1, 3.1) == pytest.approx(6.2 - 2 * math.pi)


def test_angle_filter_crosses_the_seam_the_short_way():
    f = AngleFilter(min_cutoff=1.0, beta=0.0)
    f.filter(3.1, 0.0)

    value = f.filter(-3.1, 33.0)

    # A naive filter would pull the value towards 0
    assert abs(value) > 3.0
    assert -math.pi <= value <= math.pi


def test_angle_filter_small_rotation_near_zero():
    f = AngleFilter(min_cutoff=1.0, beta=0.0)
    f.filter(0.1, 0.0)
    value = f.filter(-0.1, 33.0)
    assert -0.1 < value < 0.1


def test_angle_filter_converges_across_the_seam():
    f = AngleFilter(min_cutoff=1.0, beta=0.0)
    f.filter(3.0, 0.0)
    value = None
    for i in range(1, 300):
        value = f.filter(-3.0, i * 33.0)
    assert value == pytest.approx(-3.0, abs=1e-3)
