"""Tests for cover-fit coordinate mapping."""

import math

import pytest

from .coordinate_mapper import (
    CoordinateMapper,
    DisplayGeometry,
    InvalidGeometryError,
    cover_fit,
    map_normalized_point,
)
from .landmark_detector import Landmark


def test_square_video_in_square_display_is_linear():
    fit = cover_fit(1000, 1000, 1000, 1000)
    assert fit.scale == pytest.approx(1.0)
    assert fit.offset_x == 0.0
    assert fit.offset_y == 0.0

    point = map_normalized_point(0.25, 0.75, 1000, 1000, 1000, 1000)
    assert (point.x, point.y) == pytest.approx((250.0, 750.0))
    assert point.scale == pytest.approx(1.0)


def test_square_video_scaled_into_larger_square_display():
    point = map_normalized_point(0.5, 0.1, 800, 800, 400, 400)
    assert (point.x, point.y) == pytest.approx((400.0, 80.0))
    assert point.scale == pytest.approx(2.0)


def test_wider_video_is_cropped_symmetrically_on_the_sides():
    # 16:9 camera into a 3:4 portrait preview
    fit = cover_fit(720, 960, 1280, 720)

    assert fit.scale == pytest.approx(960 / 720)
    assert fit.offset_y == 0.0
    assert fit.displayed_height == pytest.approx(960)

    cropped_per_side = -fit.offset_x
    assert cropped_per_side > 0
    # Same amount hidden on the left and on the right
    right_overflow = fit.displayed_width + fit.offset_x - 720
    assert right_overflow == pytest.approx(cropped_per_side)


def test_wider_video_center_maps_to_display_center():
    point = map_normalized_point(0.5, 0.5, 720, 960, 1280, 720)
    assert (point.x, point.y) == pytest.approx((360.0, 480.0))


def test_taller_video_is_cropped_top_and_bottom():
    fit = cover_fit(1280, 720, 720, 1280)
    assert fit.offset_x == 0.0
    assert fit.offset_y < 0
    assert fit.displayed_width == pytest.approx(1280)


@pytest.mark.parametrize("dims", [
    (0, 100, 100, 100),
    (100, -1, 100, 100),
    (100, 100, 0, 100),
    (100, 100, 100, -5),
    (100, 100, math.nan, 100),
    (100, math.inf, 100, 100),
])
def test_degenerate_dimensions_raise(dims):
    with pytest.raises(InvalidGeometryError):
        cover_fit(*dims)


def test_invalid_geometry_is_a_value_error():
    with pytest.raises(ValueError):
        CoordinateMapper(DisplayGeometry(0, 0, 640, 480))


def test_mapper_maps_landmarks_and_measures_distance():
    mapper = CoordinateMapper(DisplayGeometry(1000, 1000, 1000, 1000))
    a = mapper.map(Landmark(0.4, 0.4))
    b = mapper.map(Landmark(0.6, 0.4))

    assert a == pytest.approx((400.0, 400.0))
    assert b == pytest.approx((600.0, 400.0))
    assert mapper.distance(a, b) == pytest.approx(200.0)
