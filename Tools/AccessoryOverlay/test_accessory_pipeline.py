"""Tests for the per-accessory detect / place / smooth / render loop."""

import numpy as np
import pytest

from .accessory_pipeline import AccessoryPipeline
from .config import default_crown_config, default_medal_config
from .coordinate_mapper import DisplayGeometry
from .landmark_detector import Landmark
from .placement_tracker import TrackerState

GEOMETRY = DisplayGeometry(100, 100, 100, 100)
FRAME = np.zeros((100, 100, 3), dtype=np.uint8)


def face_landmarks():
    landmarks = [None] * 478
    landmarks[33] = Landmark(0.45, 0.6)
    landmarks[263] = Landmark(0.55, 0.6)
    return landmarks


class FakeDetector:
    """Replays scripted results; an Exception instance is raised instead."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def __call__(self, frame, timestamp_ms):
        self.calls.append(timestamp_ms)
        result = self.results.pop(0) if self.results else []
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def sprite():
    return np.full((10, 10, 4), 255, dtype=np.uint8)


def make_pipeline(detector, sprite, config=None, fade=200.0):
    return AccessoryPipeline(config or default_crown_config(), detector, sprite, fade_duration_ms=fade)


def test_detection_draws_on_layer(sprite):
    pipeline = make_pipeline(FakeDetector([face_landmarks()]), sprite)

    result = pipeline.process(FRAME, GEOMETRY, 0.0)

    assert result is not None
    assert result.opacity == 1.0
    assert pipeline.layer.shape == (100, 100, 4)
    assert pipeline.layer[..., 3].any()
    assert pipeline.last_output is result
    assert pipeline.tracker.state == TrackerState.TRACKING


def test_no_subjects_leaves_layer_empty(sprite):
    pipeline = make_pipeline(FakeDetector([]), sprite)

    assert pipeline.process(FRAME, GEOMETRY, 0.0) is None
    assert not pipeline.layer.any()


def test_detector_exception_is_treated_as_no_detection(sprite):
    detector = FakeDetector([face_landmarks()], RuntimeError("landmarker crashed"))
    pipeline = make_pipeline(detector, sprite)
    pipeline.process(FRAME, GEOMETRY, 0.0)

    result = pipeline.process(FRAME, GEOMETRY, 100.0)

    # Falls back to fading the last placement
    assert result is not None
    assert result.opacity == pytest.approx(0.5)
    assert pipeline.detection_errors == 1
    assert pipeline.tracker.state == TrackerState.FADING


def test_overlay_disappears_after_fade(sprite):
    pipeline = make_pipeline(FakeDetector([face_landmarks()]), sprite)
    pipeline.process(FRAME, GEOMETRY, 0.0)

    assert pipeline.process(FRAME, GEOMETRY, 300.0) is None
    assert not pipeline.layer.any()


def test_invalid_geometry_skips_frame(sprite):
    pipeline = make_pipeline(FakeDetector([face_landmarks()], [face_landmarks()]), sprite)
    pipeline.process(FRAME, GEOMETRY, 0.0)

    result = pipeline.process(FRAME, DisplayGeometry(0, 100, 100, 100), 50.0)

    assert result is None
    assert not pipeline.layer.any()
    # Tracker keeps its state for the next valid frame
    assert pipeline.tracker.state == TrackerState.TRACKING


def test_step_respects_detection_rate(sprite):
    detector = FakeDetector()
    # 15 Hz: one run every ~66.7 ms
    pipeline = make_pipeline(detector, sprite)

    assert pipeline.step(FRAME, GEOMETRY, 0.0)
    assert not pipeline.step(FRAME, GEOMETRY, 30.0)
    assert not pipeline.step(FRAME, GEOMETRY, 60.0)
    assert pipeline.step(FRAME, GEOMETRY, 70.0)
    assert detector.calls == [0.0, 70.0]


def test_pipelines_are_paced_independently(sprite):
    crown = make_pipeline(FakeDetector(), sprite, default_crown_config())
    medal = make_pipeline(FakeDetector(), sprite, default_medal_config())

    ran = [(crown.step(FRAME, GEOMETRY, t), medal.step(FRAME, GEOMETRY, t)) for t in (0.0, 70.0, 100.0)]

    assert ran == [(True, True), (True, False), (False, True)]


def test_stop_resets_tracker_and_clears_layer(sprite):
    pipeline = make_pipeline(FakeDetector([face_landmarks()]), sprite)
    pipeline.process(FRAME, GEOMETRY, 0.0)

    pipeline.stop()

    assert not pipeline.is_running
    assert pipeline.tracker.state == TrackerState.EMPTY
    assert pipeline.last_output is None
    assert not pipeline.layer.any()
    assert not pipeline.step(FRAME, GEOMETRY, 1000.0)


def test_toggle_restarts_with_fresh_pacing(sprite):
    detector = FakeDetector()
    pipeline = make_pipeline(detector, sprite)
    pipeline.step(FRAME, GEOMETRY, 0.0)

    assert pipeline.toggle() is False
    assert pipeline.toggle() is True
    assert pipeline.step(FRAME, GEOMETRY, 10.0)
    assert detector.calls == [0.0, 10.0]


def test_disabled_accessory_starts_stopped(sprite):
    config = default_crown_config()
    config.enabled = False
    pipeline = make_pipeline(FakeDetector(), sprite, config)

    assert not pipeline.is_running
    assert not pipeline.step(FRAME, GEOMETRY, 0.0)


def test_layer_follows_display_size(sprite):
    pipeline = make_pipeline(FakeDetector(), sprite)
    pipeline.process(FRAME, GEOMETRY, 0.0)
    pipeline.process(FRAME, DisplayGeometry(80, 60, 100, 100), 100.0)
    assert pipeline.layer.shape == (60, 80, 4)
