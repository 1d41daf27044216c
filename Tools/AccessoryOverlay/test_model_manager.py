"""Tests for model caching (network is never touched)."""

import pytest

from . import model_manager
from .config import AccessoryKind
from .model_manager import ModelDownloadError, ensure_model, get_model_cache_dir


@pytest.fixture(autouse=True)
def cache_home(tmp_path, monkeypatch):
    monkeypatch.setattr(model_manager.sys, "platform", "linux")
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
    monkeypatch.setattr(model_manager, "RETRY_DELAY", 0)
    return tmp_path


def test_cache_dir_is_created(cache_home):
    cache_dir = get_model_cache_dir()
    assert cache_dir == cache_home / "AccessoryOverlay" / "mediapipe_models"
    assert cache_dir.is_dir()


def test_cached_model_is_reused(monkeypatch):
    cached = get_model_cache_dir() / "hand_landmarker.task"
    cached.write_bytes(b"model")

    def fail(url, dest):
        raise AssertionError("should not download")

    monkeypatch.setattr(model_manager, "_download_model", fail)

    assert ensure_model(AccessoryKind.HAND) == str(cached)


def test_download_is_retried(monkeypatch):
    attempts = []

    def flaky(url, dest):
        attempts.append(url)
        if len(attempts) < 2:
            raise OSError("connection reset")
        dest.write_bytes(b"model")

    monkeypatch.setattr(model_manager, "_download_model", flaky)

    path = ensure_model(AccessoryKind.HEAD)

    assert path.endswith("face_landmarker.task")
    assert len(attempts) == 2


def test_download_gives_up(monkeypatch):
    def broken(url, dest):
        raise OSError("offline")

    monkeypatch.setattr(model_manager, "_download_model", broken)

    with pytest.raises(ModelDownloadError):
        ensure_model(AccessoryKind.TORSO)
