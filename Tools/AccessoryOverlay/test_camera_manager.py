"""Tests for the camera wrapper with a fake VideoCapture."""

import numpy as np
import pytest

from . import camera_manager
from .camera_manager import CameraError, CameraManager


class FakeCapture:
    def __init__(self, index, opened=True, frames=None):
        self.index = index
        self.opened = opened
        self.frames = list(frames or [])
        self.props = {}
        self.released = False

    def isOpened(self):
        return self.opened and not self.released

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def get(self, prop):
        return self.props.get(prop, 0)

    def read(self):
        if not self.frames:
            return False, None
        return True, self.frames.pop(0)

    def release(self):
        self.released = True


def patch_capture(monkeypatch, **kwargs):
    created = []

    def factory(index):
        capture = FakeCapture(index, **kwargs)
        created.append(capture)
        return capture

    monkeypatch.setattr(camera_manager.cv2, "VideoCapture", factory)
    return created


def test_open_configures_device(monkeypatch):
    created = patch_capture(monkeypatch)
    camera = CameraManager(camera_index=1, width=640, height=480, fps=30)

    camera.open()

    assert camera.is_open
    assert created[0].index == 1
    assert camera.frame_size == (640, 480)


def test_open_failure_raises(monkeypatch):
    created = patch_capture(monkeypatch, opened=False)

    with pytest.raises(CameraError):
        CameraManager().open()
    assert created[0].released


def test_read_returns_frame_and_increasing_timestamps(monkeypatch):
    frames = [np.zeros((4, 4, 3), np.uint8), np.ones((4, 4, 3), np.uint8)]
    patch_capture(monkeypatch, frames=frames)

    with CameraManager() as camera:
        first, t1 = camera.read()
        second, t2 = camera.read()
        missing, t3 = camera.read()

    assert first is frames[0]
    assert second is frames[1]
    assert missing is None
    assert t1 <= t2 <= t3
    assert camera.frame_count == 2
    assert not camera.is_open


def test_read_when_closed_raises():
    with pytest.raises(CameraError):
        CameraManager().read()
