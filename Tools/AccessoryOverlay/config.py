"""
Configuration constants for AccessoryOverlay.

This module contains all tunable parameters for camera capture,
landmark detection, accessory placement, smoothing and capture.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Final, Optional


class AccessoryKind(Enum):
    """Body region an accessory is anchored to."""
    HEAD = "head"
    TORSO = "torso"
    HAND = "hand"


class RotationPolicy(Enum):
    """How the accessory angle is derived."""
    FOLLOW = "follow"    # Rotate with the anchor line (eye line, shoulder line)
    UPRIGHT = "upright"  # Always drawn at angle 0


class OffsetBasis(Enum):
    """Length the vertical offset ratio is multiplied with."""
    HEIGHT = "height"  # Drawn accessory height
    SCALE = "scale"    # Anchor distance (eye distance, shoulder width, hand scale)


class HeadAnchor(Enum):
    """Point the crown is anchored on."""
    EYES = "eyes"          # Midpoint between the eyes
    FOREHEAD = "forehead"  # Top-of-forehead face landmark


# Camera configuration
CAMERA_WIDTH: Final[int] = 1280
CAMERA_HEIGHT: Final[int] = 720
CAMERA_FPS: Final[int] = 30
DEFAULT_CAMERA_INDEX: Final[int] = 0

# Display surface (preview window) size
DISPLAY_WIDTH: Final[int] = 720
DISPLAY_HEIGHT: Final[int] = 960

# MediaPipe Tasks models
FACE_LANDMARKER_URL: Final[str] = "https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/1/face_landmarker.task"
POSE_LANDMARKER_URL: Final[str] = "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_lite/float16/1/pose_landmarker_lite.task"
HAND_LANDMARKER_URL: Final[str] = "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task"
MEDIAPIPE_NUM_SUBJECTS: Final[int] = 1

# Face landmark indices (MediaPipe face mesh topology)
FACE_LEFT_EYE: Final[int] = 33
FACE_RIGHT_EYE: Final[int] = 263
FACE_FOREHEAD: Final[int] = 10

# Pose landmark indices
POSE_LEFT_SHOULDER: Final[int] = 11
POSE_RIGHT_SHOULDER: Final[int] = 12

# Hand landmark indices
HAND_WRIST: Final[int] = 0
HAND_INDEX_MCP: Final[int] = 5
HAND_MIDDLE_MCP: Final[int] = 9
HAND_RING_MCP: Final[int] = 13
HAND_PINKY_MCP: Final[int] = 17

# =============================================================================
# Accessory placement
# =============================================================================
# Vertical offsets follow screen coordinates: positive moves the accessory
# down, negative raises it.

# Crown (eye distance based)
CROWN_SIZE_RATIO: Final[float] = 1.9
CROWN_Y_OFFSET_RATIO: Final[float] = -1.5  # Crown heights above the eye line
CROWN_DETECTION_FPS: Final[float] = 15.0

# Medal (shoulder width based)
MEDAL_SIZE_RATIO: Final[float] = 0.9
MEDAL_Y_OFFSET_RATIO: Final[float] = 0.5  # Below the collar line
MEDAL_DETECTION_FPS: Final[float] = 10.0
MEDAL_MIN_VISIBILITY: Final[float] = 0.5

# Trophy (wrist to finger base based)
TROPHY_SIZE_RATIO: Final[float] = 5.0
TROPHY_Y_OFFSET_RATIO: Final[float] = -2.5  # Above the palm
TROPHY_DETECTION_FPS: Final[float] = 10.0

# Default asset paths
CROWN_IMAGE_PATH: Final[str] = "assets/crown.png"
MEDAL_IMAGE_PATH: Final[str] = "assets/medal.png"
TROPHY_IMAGE_PATH: Final[str] = "assets/trophy.png"

# =============================================================================
# Smoothing (One Euro Filter parameters)
# =============================================================================
FILTER_INITIAL_RATE_HZ: Final[float] = 30.0  # Used until two timestamps are known
FILTER_D_CUTOFF: Final[float] = 1.0

CROWN_POSITION_MIN_CUTOFF: Final[float] = 0.05
CROWN_POSITION_BETA: Final[float] = 5.0
CROWN_ANGLE_MIN_CUTOFF: Final[float] = 0.1  # Rotation jitter is in radians, not pixels
CROWN_ANGLE_BETA: Final[float] = 5.0

MEDAL_POSITION_MIN_CUTOFF: Final[float] = 0.1
MEDAL_POSITION_BETA: Final[float] = 2.0
MEDAL_ANGLE_MIN_CUTOFF: Final[float] = 0.3
MEDAL_ANGLE_BETA: Final[float] = 2.0

TROPHY_POSITION_MIN_CUTOFF: Final[float] = 0.5
TROPHY_POSITION_BETA: Final[float] = 10.0  # Fast response for hand
TROPHY_ANGLE_MIN_CUTOFF: Final[float] = 0.5
TROPHY_ANGLE_BETA: Final[float] = 10.0

# Fade out after detection loss
FADE_DURATION_MS: Final[float] = 200.0
MIN_RENDER_OPACITY: Final[float] = 0.01

# Capture
CAPTURE_CROP_PADDING_RATIO: Final[float] = 0.08
CAPTURE_OUTPUT_DIR: Final[str] = "captures"
CAPTURE_FILENAME_PREFIX: Final[str] = "arframe"

# Logging
LOG_FILENAME: Final[str] = "accessory_overlay.log"
LOG_MAX_BYTES: Final[int] = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT: Final[int] = 3

# Exit codes
EXIT_SUCCESS: Final[int] = 0
EXIT_PROFILE_ERROR: Final[int] = 1
EXIT_CAMERA_ERROR: Final[int] = 2
EXIT_RUNTIME_ERROR: Final[int] = 3
EXIT_ASSET_ERROR: Final[int] = 4


@dataclass
class FilterSettings:
    """One Euro Filter parameters for a single placement field."""

    min_cutoff: float = 1.0  # Lower = smoother when still
    beta: float = 0.0  # Higher = more responsive when moving
    d_cutoff: float = FILTER_D_CUTOFF


@dataclass
class AccessoryConfig:
    """
    Everything the generic pipeline needs to place one accessory.

    Attributes:
        name: Accessory name used in logs and profile keys.
        kind: Body region, selects the anchor extraction.
        size_ratio: Accessory width per unit of anchor distance.
        y_offset_ratio: Vertical offset per unit of offset_basis.
        offset_basis: Length the vertical offset is measured in.
        rotation: Whether the accessory follows the anchor line.
        detection_fps: Target detection rate for this accessory.
        min_visibility: Visibility threshold for required anchors (None = unchecked).
        head_anchor: Crown anchor strategy (HEAD only).
        image_path: Overlay asset path.
        position_filter: Smoothing for x and y.
        size_filter: Smoothing for width and height.
        angle_filter: Smoothing for angle.
        enabled: Whether the accessory loop starts enabled.
    """

    name: str
    kind: AccessoryKind
    size_ratio: float
    y_offset_ratio: float
    offset_basis: OffsetBasis
    rotation: RotationPolicy = RotationPolicy.FOLLOW
    detection_fps: float = 15.0
    min_visibility: Optional[float] = None
    head_anchor: HeadAnchor = HeadAnchor.EYES
    image_path: str = ""
    position_filter: FilterSettings = field(default_factory=FilterSettings)
    size_filter: FilterSettings = field(default_factory=FilterSettings)
    angle_filter: FilterSettings = field(default_factory=FilterSettings)
    enabled: bool = True

    @property
    def detection_interval_ms(self) -> float:
        """Minimum time between two detector runs."""
        if self.detection_fps <= 0:
            return 0.0
        return 1000.0 / self.detection_fps


def default_crown_config() -> AccessoryConfig:
    """Crown anchored between the eyes, tilting with the head."""
    position = FilterSettings(CROWN_POSITION_MIN_CUTOFF, CROWN_POSITION_BETA)
    return AccessoryConfig(
        name="crown",
        kind=AccessoryKind.HEAD,
        size_ratio=CROWN_SIZE_RATIO,
        y_offset_ratio=CROWN_Y_OFFSET_RATIO,
        offset_basis=OffsetBasis.HEIGHT,
        rotation=RotationPolicy.FOLLOW,
        detection_fps=CROWN_DETECTION_FPS,
        image_path=CROWN_IMAGE_PATH,
        position_filter=position,
        size_filter=FilterSettings(CROWN_POSITION_MIN_CUTOFF, CROWN_POSITION_BETA),
        angle_filter=FilterSettings(CROWN_ANGLE_MIN_CUTOFF, CROWN_ANGLE_BETA),
    )


def default_medal_config() -> AccessoryConfig:
    """Medal hanging below the shoulder line."""
    return AccessoryConfig(
        name="medal",
        kind=AccessoryKind.TORSO,
        size_ratio=MEDAL_SIZE_RATIO,
        y_offset_ratio=MEDAL_Y_OFFSET_RATIO,
        offset_basis=OffsetBasis.SCALE,
        rotation=RotationPolicy.FOLLOW,
        detection_fps=MEDAL_DETECTION_FPS,
        min_visibility=MEDAL_MIN_VISIBILITY,
        image_path=MEDAL_IMAGE_PATH,
        position_filter=FilterSettings(MEDAL_POSITION_MIN_CUTOFF, MEDAL_POSITION_BETA),
        size_filter=FilterSettings(MEDAL_POSITION_MIN_CUTOFF, MEDAL_POSITION_BETA),
        angle_filter=FilterSettings(MEDAL_ANGLE_MIN_CUTOFF, MEDAL_ANGLE_BETA),
    )


def default_trophy_config() -> AccessoryConfig:
    """Trophy held upright above the palm."""
    return AccessoryConfig(
        name="trophy",
        kind=AccessoryKind.HAND,
        size_ratio=TROPHY_SIZE_RATIO,
        y_offset_ratio=TROPHY_Y_OFFSET_RATIO,
        offset_basis=OffsetBasis.SCALE,
        rotation=RotationPolicy.UPRIGHT,
        detection_fps=TROPHY_DETECTION_FPS,
        image_path=TROPHY_IMAGE_PATH,
        position_filter=FilterSettings(TROPHY_POSITION_MIN_CUTOFF, TROPHY_POSITION_BETA),
        size_filter=FilterSettings(TROPHY_POSITION_MIN_CUTOFF, TROPHY_POSITION_BETA),
        angle_filter=FilterSettings(TROPHY_ANGLE_MIN_CUTOFF, TROPHY_ANGLE_BETA),
    )
