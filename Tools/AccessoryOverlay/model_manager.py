"""
MediaPipe model file manager.

Downloads and caches the MediaPipe Tasks landmarker models.
"""

import os
import sys
import time
import urllib.request
from pathlib import Path

from .config import (
    AccessoryKind,
    FACE_LANDMARKER_URL,
    POSE_LANDMARKER_URL,
    HAND_LANDMARKER_URL,
)
from .logger import get_logger

logger = get_logger("ModelManager")

MODEL_URLS: dict[AccessoryKind, str] = {
    AccessoryKind.HEAD: FACE_LANDMARKER_URL,
    AccessoryKind.TORSO: POSE_LANDMARKER_URL,
    AccessoryKind.HAND: HAND_LANDMARKER_URL,
}

MODEL_FILENAMES: dict[AccessoryKind, str] = {
    AccessoryKind.HEAD: "face_landmarker.task",
    AccessoryKind.TORSO: "pose_landmarker_lite.task",
    AccessoryKind.HAND: "hand_landmarker.task",
}

# Download settings
DOWNLOAD_TIMEOUT = 120  # seconds
DOWNLOAD_CHUNK_SIZE = 8192  # bytes
MAX_RETRIES = 3
RETRY_DELAY = 2  # seconds


class ModelDownloadError(RuntimeError):
    """Raised when a model cannot be downloaded."""
    pass


def get_model_cache_dir() -> Path:
    """
    Get the model cache directory.

    Returns:
        Path to model cache directory (creates if needed).
    """
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA", os.path.expanduser("~"))
    else:
        base = os.environ.get("XDG_CACHE_HOME", os.path.expanduser("~/.cache"))

    cache_dir = Path(base) / "AccessoryOverlay" / "mediapipe_models"
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def ensure_model(kind: AccessoryKind) -> str:
    """
    Ensure the landmarker model for an accessory kind is available.

    Downloads the model if not present in cache.

    Returns:
        Path to the model file.

    Raises:
        ModelDownloadError: If download fails after retries.
    """
    model_path = get_model_cache_dir() / MODEL_FILENAMES[kind]

    if model_path.exists():
        logger.debug(f"Using cached model: {model_path}")
        return str(model_path)

    url = MODEL_URLS[kind]
    logger.info(f"Downloading {kind.value} landmarker model from {url}")

    for attempt in range(1, MAX_RETRIES + 1):
        try:
            _download_model(url, model_path)
            logger.info(f"Model downloaded: {model_path}")
            return str(model_path)
        except OSError as e:
            logger.warning(f"Download attempt {attempt}/{MAX_RETRIES} failed: {e}")
            if attempt < MAX_RETRIES:
                time.sleep(RETRY_DELAY * attempt)
            else:
                raise ModelDownloadError(
                    f"Failed to download {kind.value} model after {MAX_RETRIES} attempts"
                ) from e

    raise ModelDownloadError("Model download failed")


def _download_model(url: str, dest_path: Path) -> None:
    """Download a model file through a temp file."""
    temp_path = dest_path.with_suffix(".tmp")

    try:
        request = urllib.request.Request(
            url,
            headers={"User-Agent": "AccessoryOverlay/1.0"}
        )

        with urllib.request.urlopen(request, timeout=DOWNLOAD_TIMEOUT) as response:
            total_size = int(response.headers.get("Content-Length", 0))
            downloaded = 0

            with open(temp_path, "wb") as f:
                while True:
                    chunk = response.read(DOWNLOAD_CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
                    downloaded += len(chunk)

        if total_size and downloaded != total_size:
            raise OSError(f"Incomplete download: {downloaded}/{total_size} bytes")

        temp_path.replace(dest_path)

    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise
