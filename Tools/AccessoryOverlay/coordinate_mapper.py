"""
Normalized detector coordinates to display pixels.

The camera frame is shown with a "cover" fit: scaled to fill the display
surface with the aspect ratio preserved, the overflowing axis cropped
symmetrically. Landmarks arrive normalized to the full camera frame, so
they must go through the same fit to line up with the preview.
"""

import math
from dataclasses import dataclass
from typing import NamedTuple

from .landmark_detector import Landmark


class InvalidGeometryError(ValueError):
    """Raised when display or video dimensions cannot describe a surface."""
    pass


@dataclass(frozen=True)
class DisplayGeometry:
    """Size of the display surface and of the underlying video frame."""
    display_width: float
    display_height: float
    video_width: float
    video_height: float


class CoverFit(NamedTuple):
    """How the video is laid out on the display surface."""
    scale: float
    offset_x: float
    offset_y: float
    displayed_width: float
    displayed_height: float


class MappedPoint(NamedTuple):
    """A landmark in display pixels plus the video-to-display scale."""
    x: float
    y: float
    scale: float


def _validate(display_w: float, display_h: float, video_w: float, video_h: float) -> None:
    for label, value in (
        ("display width", display_w),
        ("display height", display_h),
        ("video width", video_w),
        ("video height", video_h),
    ):
        if not math.isfinite(value) or value <= 0:
            raise InvalidGeometryError(f"Invalid {label}: {value}")


def cover_fit(display_w: float, display_h: float, video_w: float, video_h: float) -> CoverFit:
    """
    Compute the cover fit of a video inside a display surface.

    Args:
        display_w: Display surface width in pixels.
        display_h: Display surface height in pixels.
        video_w: Native video width in pixels.
        video_h: Native video height in pixels.

    Returns:
        CoverFit with the scale and the (possibly negative) offsets.

    Raises:
        InvalidGeometryError: If any dimension is zero, negative or not finite.
    """
    _validate(display_w, display_h, video_w, video_h)

    video_aspect = video_w / video_h
    display_aspect = display_w / display_h

    if video_aspect > display_aspect:
        # Video is wider: crop sides
        scale = display_h / video_h
        displayed_w = video_w * scale
        displayed_h = display_h
        offset_x = (display_w - displayed_w) / 2
        offset_y = 0.0
    else:
        # Video is taller: crop top/bottom
        scale = display_w / video_w
        displayed_w = display_w
        displayed_h = video_h * scale
        offset_x = 0.0
        offset_y = (display_h - displayed_h) / 2

    return CoverFit(scale, offset_x, offset_y, displayed_w, displayed_h)


def map_normalized_point(
    norm_x: float,
    norm_y: float,
    display_w: float,
    display_h: float,
    video_w: float,
    video_h: float
) -> MappedPoint:
    """Map a normalized video point to display pixels under a cover fit."""
    fit = cover_fit(display_w, display_h, video_w, video_h)
    return MappedPoint(
        x=norm_x * fit.displayed_width + fit.offset_x,
        y=norm_y * fit.displayed_height + fit.offset_y,
        scale=fit.scale,
    )


class CoordinateMapper:
    """Maps landmarks for one frame's geometry."""

    def __init__(self, geometry: DisplayGeometry):
        self.geometry = geometry
        self._fit = cover_fit(
            geometry.display_width,
            geometry.display_height,
            geometry.video_width,
            geometry.video_height,
        )

    @property
    def fit(self) -> CoverFit:
        return self._fit

    def map(self, landmark: Landmark) -> tuple[float, float]:
        """Map a landmark to (x, y) display pixels."""
        return (
            landmark.x * self._fit.displayed_width + self._fit.offset_x,
            landmark.y * self._fit.displayed_height + self._fit.offset_y,
        )

    @staticmethod
    def distance(a: tuple[float, float], b: tuple[float, float]) -> float:
        """Euclidean distance between two mapped points."""
        return math.hypot(b[0] - a[0], b[1] - a[1])
