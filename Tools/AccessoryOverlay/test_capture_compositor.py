"""Tests for preview fitting and capture composition."""

import numpy as np
import pytest

from .capture_compositor import compose_capture, compute_capture_crop, fit_cover
from .coordinate_mapper import DisplayGeometry
from .placement_tracker import SmoothedPlacement

RED = (0, 0, 255)


@pytest.fixture
def sprite():
    image = np.zeros((10, 10, 4), dtype=np.uint8)
    image[...] = (*RED, 255)
    return image


def striped_frame(width, height):
    """BGR frame whose blue channel encodes the column index."""
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    frame[..., 0] = (np.arange(width) % 256).astype(np.uint8)
    return frame


class TestCaptureCrop:
    def test_wider_video_crops_sides(self):
        crop = compute_capture_crop(1280, 720, 720, 960, padding_ratio=0.0)
        assert crop.width == pytest.approx(540.0)
        assert crop.x == pytest.approx(370.0)
        assert (crop.y, crop.height) == (0.0, 720.0)

    def test_padding_widens_the_cropped_axis(self):
        crop = compute_capture_crop(1280, 720, 720, 960, padding_ratio=0.08)
        assert crop.width == pytest.approx(540.0 * 1.08)
        assert crop.x == pytest.approx((1280 - 540.0 * 1.08) / 2)

    def test_taller_video_crops_top_and_bottom(self):
        crop = compute_capture_crop(720, 1280, 1000, 1000, padding_ratio=0.08)
        assert crop.height == pytest.approx(720 * 1.08)
        assert crop.y == pytest.approx((1280 - 720 * 1.08) / 2)
        assert (crop.x, crop.width) == (0.0, 720.0)

    def test_padding_never_exceeds_frame(self):
        crop = compute_capture_crop(1000, 1000, 1000, 1000, padding_ratio=0.5)
        assert (crop.x, crop.y, crop.width, crop.height) == (0.0, 0.0, 1000.0, 1000.0)


def test_fit_cover_fills_display():
    preview = fit_cover(striped_frame(1280, 720), 720, 960)
    assert preview.shape == (960, 720, 3)


def test_fit_cover_keeps_center_column():
    frame = striped_frame(200, 100)

    preview = fit_cover(frame, 100, 100)

    assert preview.shape == (100, 100, 3)
    # Display column 50 shows video column 100
    assert abs(int(preview[50, 50, 0]) - 100) <= 1


def test_capture_without_padding_matches_display(sprite):
    frame = np.zeros((100, 200, 3), dtype=np.uint8)
    geometry = DisplayGeometry(100, 100, 200, 100)

    capture = compose_capture(frame, geometry, [(sprite, None)], padding_ratio=0.0)
    assert capture.shape == (100, 100, 3)
    assert not capture.any()

    placement = SmoothedPlacement(50.0, 40.0, 20.0, 20.0, opacity=1.0)
    capture = compose_capture(frame, geometry, [(sprite, placement)], padding_ratio=0.0)
    assert tuple(capture[50, 50]) == RED


def test_padded_capture_keeps_overlay_on_same_video_content(sprite):
    frame = np.zeros((100, 200, 3), dtype=np.uint8)
    geometry = DisplayGeometry(100, 100, 200, 100)
    # Preview column 50 shows video column 100
    placement = SmoothedPlacement(50.0, 40.0, 20.0, 20.0, opacity=1.0)

    capture = compose_capture(frame, geometry, [(sprite, placement)], padding_ratio=0.2)

    # Crop starts at video column 40, so video column 100 is capture column 60
    assert capture.shape == (100, 120, 3)
    assert tuple(capture[50, 60]) == RED
    assert tuple(capture[50, 45]) == (0, 0, 0)


def test_capture_is_full_resolution(sprite):
    frame = np.zeros((100, 200, 3), dtype=np.uint8)
    # Display is half the video resolution
    geometry = DisplayGeometry(50, 50, 200, 100)
    placement = SmoothedPlacement(25.0, 20.0, 10.0, 10.0, opacity=1.0)

    capture = compose_capture(frame, geometry, [(sprite, placement)], padding_ratio=0.0)

    assert capture.shape == (100, 100, 3)
    # Placement scaled 2x: 20 px box centered at (50, 50)
    assert tuple(capture[50, 50]) == RED
    assert tuple(capture[50, 43]) == RED
    assert tuple(capture[50, 30]) == (0, 0, 0)


def test_capture_does_not_modify_frame(sprite):
    frame = np.zeros((100, 200, 3), dtype=np.uint8)
    geometry = DisplayGeometry(100, 100, 200, 100)
    compose_capture(frame, geometry, [(sprite, SmoothedPlacement(50.0, 40.0, 20.0, 20.0))])
    assert not frame.any()


def test_faded_out_overlay_is_skipped(sprite):
    frame = np.zeros((100, 200, 3), dtype=np.uint8)
    geometry = DisplayGeometry(100, 100, 200, 100)
    placement = SmoothedPlacement(50.0, 40.0, 20.0, 20.0, opacity=0.0)

    capture = compose_capture(frame, geometry, [(sprite, placement)], padding_ratio=0.0)

    assert not capture.any()
