"""
Camera source for AccessoryOverlay.

Thin OpenCV VideoCapture wrapper handing out BGR frames with a
millisecond timestamp from a monotonic clock.
"""

import time
from typing import Optional

import cv2
import numpy as np

from .config import CAMERA_WIDTH, CAMERA_HEIGHT, CAMERA_FPS, DEFAULT_CAMERA_INDEX
from .logger import get_logger

logger = get_logger("CameraManager")


class CameraError(Exception):
    """Raised when camera operations fail."""
    pass


def now_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.perf_counter() * 1000.0


class CameraManager:
    """
    Manages webcam capture using OpenCV VideoCapture.

    Attributes:
        camera_index: Index of the camera device.
        width: Requested capture width in pixels.
        height: Requested capture height in pixels.
        fps: Requested frames per second.
    """

    def __init__(
        self,
        camera_index: int = DEFAULT_CAMERA_INDEX,
        width: int = CAMERA_WIDTH,
        height: int = CAMERA_HEIGHT,
        fps: int = CAMERA_FPS
    ):
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.fps = fps

        self._capture: Optional[cv2.VideoCapture] = None
        self._frame_count = 0

    @property
    def is_open(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    @property
    def frame_size(self) -> tuple[int, int]:
        """Actual (width, height) delivered by the device."""
        if self._capture is None:
            return (0, 0)
        return (
            int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def open(self) -> None:
        """
        Open the camera for capture.

        Raises:
            CameraError: If camera cannot be opened.
        """
        if self._capture is not None:
            logger.warning("Camera already open, closing first")
            self.close()

        logger.info(f"Opening camera {self.camera_index}...")
        capture = cv2.VideoCapture(self.camera_index)
        if not capture.isOpened():
            capture.release()
            raise CameraError(f"Failed to open camera {self.camera_index}")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        capture.set(cv2.CAP_PROP_FPS, self.fps)
        capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)  # Minimize latency

        self._capture = capture
        self._frame_count = 0

        actual_w, actual_h = self.frame_size
        logger.info(f"Camera opened: {actual_w}x{actual_h}")
        if (actual_w, actual_h) != (self.width, self.height):
            logger.warning(f"Requested {self.width}x{self.height}, got {actual_w}x{actual_h}")

    def close(self) -> None:
        """Close the camera and release resources."""
        if self._capture is not None:
            logger.info("Closing camera")
            self._capture.release()
            self._capture = None

    def read(self) -> tuple[Optional[np.ndarray], float]:
        """
        Read one BGR frame.

        Returns:
            (frame or None if the read failed, capture timestamp in ms).

        Raises:
            CameraError: If camera is not open.
        """
        if self._capture is None:
            raise CameraError("Camera is not open")

        ok, frame = self._capture.read()
        timestamp = now_ms()
        if not ok or frame is None:
            logger.warning("Failed to read frame from camera")
            return None, timestamp

        self._frame_count += 1
        return frame, timestamp

    def __enter__(self) -> "CameraManager":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
