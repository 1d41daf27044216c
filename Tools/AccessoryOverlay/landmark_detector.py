"""
Landmark detectors using MediaPipe Tasks.

Wraps the face, pose and hand landmarkers behind one interface that
returns plain Landmark sets, so the placement code never touches
MediaPipe result objects.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np

from .config import AccessoryKind, MEDIAPIPE_NUM_SUBJECTS
from .logger import get_logger

logger = get_logger("LandmarkDetector")


class DetectorError(Exception):
    """Raised when a landmarker cannot be created."""
    pass


@dataclass
class Landmark:
    """Single detector landmark, normalized to the source video frame."""
    x: float  # Normalized x [0, 1]
    y: float  # Normalized y [0, 1]
    z: float = 0.0  # Relative depth
    visibility: Optional[float] = None  # Pose only; None = not reported


LandmarkSet = Sequence[Optional[Landmark]]


def landmarks_from_result(
    kind: AccessoryKind, result: Any
) -> list[list[Landmark]]:
    """
    Convert a MediaPipe Tasks result to Landmark sets.

    Args:
        kind: Which landmarker produced the result.
        result: FaceLandmarkerResult, PoseLandmarkerResult or HandLandmarkerResult.

    Returns:
        One Landmark list per detected subject (possibly empty).
    """
    if kind == AccessoryKind.HEAD:
        raw_sets = getattr(result, "face_landmarks", None)
    elif kind == AccessoryKind.TORSO:
        raw_sets = getattr(result, "pose_landmarks", None)
    else:
        raw_sets = getattr(result, "hand_landmarks", None)

    if not raw_sets:
        return []

    # Only the pose model reports a meaningful visibility score
    keep_visibility = kind == AccessoryKind.TORSO

    subjects = []
    for raw_set in raw_sets:
        landmarks = []
        for lm in raw_set:
            visibility = getattr(lm, "visibility", None) if keep_visibility else None
            landmarks.append(Landmark(
                x=float(lm.x),
                y=float(lm.y),
                z=float(getattr(lm, "z", 0.0) or 0.0),
                visibility=None if visibility is None else float(visibility)
            ))
        subjects.append(landmarks)
    return subjects


class LandmarkDetector:
    """
    Landmark detector for one accessory kind using MediaPipe Tasks.

    Runs the landmarker in VIDEO mode, which keeps tracking state between
    frames and requires strictly increasing timestamps.
    """

    def __init__(
        self,
        kind: AccessoryKind,
        model_path: Optional[str] = None,
        num_subjects: int = MEDIAPIPE_NUM_SUBJECTS
    ):
        """
        Initialize landmark detector.

        Args:
            kind: Which landmarker to create (face, pose or hand).
            model_path: Path to the .task model. Downloaded to the cache if None.
            num_subjects: Maximum faces / poses / hands to detect.
        """
        self.kind = kind
        self.model_path = model_path
        self.num_subjects = num_subjects

        self._landmarker = None
        self._last_timestamp_ms = -1
        self._frame_count = 0

        logger.info(f"LandmarkDetector created ({kind.value}, max_subjects={num_subjects})")

    @property
    def is_initialized(self) -> bool:
        return self._landmarker is not None

    def initialize(self) -> None:
        """Create the MediaPipe landmarker."""
        if self._landmarker is not None:
            return

        try:
            from mediapipe.tasks import python as mp_python
            from mediapipe.tasks.python import vision as mp_vision
        except ImportError as e:
            raise DetectorError(
                "MediaPipe is required for landmark detection. "
                "Install with: pip install mediapipe"
            ) from e

        model_path = self.model_path
        if model_path is None:
            from .model_manager import ensure_model
            model_path = ensure_model(self.kind)

        base_options = mp_python.BaseOptions(model_asset_path=model_path)
        running_mode = mp_vision.RunningMode.VIDEO

        try:
            if self.kind == AccessoryKind.HEAD:
                options = mp_vision.FaceLandmarkerOptions(
                    base_options=base_options,
                    running_mode=running_mode,
                    num_faces=self.num_subjects
                )
                self._landmarker = mp_vision.FaceLandmarker.create_from_options(options)
            elif self.kind == AccessoryKind.TORSO:
                options = mp_vision.PoseLandmarkerOptions(
                    base_options=base_options,
                    running_mode=running_mode,
                    num_poses=self.num_subjects
                )
                self._landmarker = mp_vision.PoseLandmarker.create_from_options(options)
            else:
                options = mp_vision.HandLandmarkerOptions(
                    base_options=base_options,
                    running_mode=running_mode,
                    num_hands=self.num_subjects
                )
                self._landmarker = mp_vision.HandLandmarker.create_from_options(options)
        except Exception as e:
            logger.error(f"Failed to create {self.kind.value} landmarker: {e}")
            raise DetectorError(f"Failed to create {self.kind.value} landmarker") from e

        logger.info(f"MediaPipe {self.kind.value} landmarker initialized (VIDEO mode)")

    def close(self) -> None:
        """Release MediaPipe resources."""
        if self._landmarker:
            self._landmarker.close()
            self._landmarker = None
        logger.debug(f"LandmarkDetector closed ({self.kind.value})")

    def _next_timestamp(self, timestamp_ms: float) -> int:
        # VIDEO mode rejects repeated or decreasing timestamps
        ts = int(timestamp_ms)
        if ts <= self._last_timestamp_ms:
            ts = self._last_timestamp_ms + 1
        self._last_timestamp_ms = ts
        return ts

    def detect(self, rgb_image: np.ndarray, timestamp_ms: float) -> list[list[Landmark]]:
        """
        Detect landmarks in an RGB image.

        Args:
            rgb_image: RGB image as numpy array (H, W, 3).
            timestamp_ms: Frame timestamp in milliseconds.

        Returns:
            One Landmark list per detected subject, empty if nothing was found.
        """
        if self._landmarker is None:
            self.initialize()

        import mediapipe as mp

        if not rgb_image.flags['C_CONTIGUOUS']:
            rgb_image = np.ascontiguousarray(rgb_image)

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_image)
        result = self._landmarker.detect_for_video(mp_image, self._next_timestamp(timestamp_ms))
        self._frame_count += 1

        return landmarks_from_result(self.kind, result)

    def __call__(self, rgb_image: np.ndarray, timestamp_ms: float) -> list[list[Landmark]]:
        return self.detect(rgb_image, timestamp_ms)
