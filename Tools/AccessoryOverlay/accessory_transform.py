"""
Accessory placement from detector landmarks.

One generic resolver turns an anchor set into a Placement; a small
extraction function per accessory kind picks the anchors out of the
detector's landmark list. Missing or low-visibility anchors are the
normal "nothing to place" signal and yield None, not an exception.
"""

import math
from dataclasses import dataclass
from typing import Callable, Optional

from .config import (
    AccessoryConfig,
    AccessoryKind,
    HeadAnchor,
    OffsetBasis,
    RotationPolicy,
    FACE_LEFT_EYE,
    FACE_RIGHT_EYE,
    FACE_FOREHEAD,
    POSE_LEFT_SHOULDER,
    POSE_RIGHT_SHOULDER,
    HAND_WRIST,
    HAND_INDEX_MCP,
    HAND_MIDDLE_MCP,
    HAND_RING_MCP,
    HAND_PINKY_MCP,
)
from .coordinate_mapper import CoordinateMapper, DisplayGeometry
from .landmark_detector import Landmark, LandmarkSet
from .logger import get_logger
from .placement_tracker import Placement

logger = get_logger("AccessoryTransform")

# Finger bases in the order they are preferred for measuring hand size
HAND_SCALE_PREFERENCE: tuple[int, ...] = (
    HAND_MIDDLE_MCP,
    HAND_INDEX_MCP,
    HAND_RING_MCP,
    HAND_PINKY_MCP,
)


@dataclass
class AnchorSet:
    """
    Landmarks a placement is computed from.

    Attributes:
        centroid: Points averaged into the anchor position.
        scale_pair: Two points whose distance sets the accessory size.
        angle_pair: Two points whose direction sets the rotation (None = upright).
    """
    centroid: list[Landmark]
    scale_pair: tuple[Landmark, Landmark]
    angle_pair: Optional[tuple[Landmark, Landmark]] = None


def get_landmark(landmarks: LandmarkSet, index: int) -> Optional[Landmark]:
    """Get landmark by index, None if the detector did not report it."""
    if 0 <= index < len(landmarks):
        return landmarks[index]
    return None


def is_visible(landmark: Landmark, min_visibility: Optional[float]) -> bool:
    """Check a landmark against a visibility threshold (missing score = visible)."""
    if min_visibility is None:
        return True
    visibility = landmark.visibility if landmark.visibility is not None else 1.0
    return visibility >= min_visibility


def extract_head_anchors(
    landmarks: LandmarkSet, config: AccessoryConfig
) -> Optional[AnchorSet]:
    """Eyes for size and tilt; eye midpoint or forehead for position."""
    left_eye = get_landmark(landmarks, FACE_LEFT_EYE)
    right_eye = get_landmark(landmarks, FACE_RIGHT_EYE)
    if left_eye is None or right_eye is None:
        return None

    if config.head_anchor == HeadAnchor.FOREHEAD:
        forehead = get_landmark(landmarks, FACE_FOREHEAD)
        if forehead is None:
            return None
        centroid = [forehead]
    else:
        centroid = [left_eye, right_eye]

    return AnchorSet(
        centroid=centroid,
        scale_pair=(left_eye, right_eye),
        angle_pair=(left_eye, right_eye)
    )


def extract_torso_anchors(
    landmarks: LandmarkSet, config: AccessoryConfig
) -> Optional[AnchorSet]:
    """Both shoulders, each visible enough. Angle runs right -> left shoulder."""
    left = get_landmark(landmarks, POSE_LEFT_SHOULDER)
    right = get_landmark(landmarks, POSE_RIGHT_SHOULDER)
    if left is None or right is None:
        return None
    if not (is_visible(left, config.min_visibility) and is_visible(right, config.min_visibility)):
        return None

    # The subject's right shoulder is on the image left, so right -> left
    # points along +x for a person facing the camera
    return AnchorSet(
        centroid=[left, right],
        scale_pair=(left, right),
        angle_pair=(right, left)
    )


def extract_hand_anchors(
    landmarks: LandmarkSet, config: AccessoryConfig
) -> Optional[AnchorSet]:
    """Wrist plus every available finger base; at least one base required."""
    wrist = get_landmark(landmarks, HAND_WRIST)
    if wrist is None or not is_visible(wrist, config.min_visibility):
        return None

    bases = {}
    for index in HAND_SCALE_PREFERENCE:
        lm = get_landmark(landmarks, index)
        if lm is not None and is_visible(lm, config.min_visibility):
            bases[index] = lm
    if not bases:
        return None

    scale_base = next(bases[i] for i in HAND_SCALE_PREFERENCE if i in bases)
    centroid = [wrist] + [bases[i] for i in sorted(bases)]

    return AnchorSet(
        centroid=centroid,
        scale_pair=(wrist, scale_base),
        angle_pair=(wrist, scale_base)
    )


AnchorExtractor = Callable[[LandmarkSet, AccessoryConfig], Optional[AnchorSet]]

ANCHOR_EXTRACTORS: dict[AccessoryKind, AnchorExtractor] = {
    AccessoryKind.HEAD: extract_head_anchors,
    AccessoryKind.TORSO: extract_torso_anchors,
    AccessoryKind.HAND: extract_hand_anchors,
}


def resolve_placement(
    config: AccessoryConfig,
    landmarks: Optional[LandmarkSet],
    geometry: DisplayGeometry,
    image_aspect: float
) -> Optional[Placement]:
    """
    Compute the placement of an accessory for one frame.

    Args:
        config: Accessory configuration (anchors, ratios, rotation policy).
        landmarks: First detected subject's landmarks, or None.
        geometry: Current display and video size.
        image_aspect: Asset height / width, locks the drawn aspect ratio.

    Returns:
        Placement in display pixels, or None if the anchors are missing.

    Raises:
        InvalidGeometryError: If the geometry has non-positive dimensions.
    """
    if not landmarks:
        return None

    anchors = ANCHOR_EXTRACTORS[config.kind](landmarks, config)
    if anchors is None:
        logger.debug(f"{config.name}: required anchors missing")
        return None

    mapper = CoordinateMapper(geometry)

    points = [mapper.map(lm) for lm in anchors.centroid]
    center_x = sum(p[0] for p in points) / len(points)
    center_y = sum(p[1] for p in points) / len(points)

    scale_a, scale_b = (mapper.map(lm) for lm in anchors.scale_pair)
    scale = mapper.distance(scale_a, scale_b)

    angle = 0.0
    if config.rotation == RotationPolicy.FOLLOW and anchors.angle_pair is not None:
        (ax, ay), (bx, by) = (mapper.map(lm) for lm in anchors.angle_pair)
        angle = math.atan2(by - ay, bx - ax)

    width = scale * config.size_ratio
    height = width * image_aspect

    basis = height if config.offset_basis == OffsetBasis.HEIGHT else scale

    return Placement(
        x=center_x,
        y=center_y + basis * config.y_offset_ratio,
        width=width,
        height=height,
        angle=angle
    )
