"""
Preview and capture composition.

The preview shows the camera frame cover-fitted to the display. A capture
uses the full resolution frame cropped to the display aspect (with a
little padding) and redraws every visible accessory at that resolution.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

import cv2
import numpy as np

from .config import CAPTURE_CROP_PADDING_RATIO
from .coordinate_mapper import DisplayGeometry, cover_fit
from .logger import get_logger
from .overlay_renderer import OverlayRenderer
from .placement_tracker import SmoothedPlacement

logger = get_logger("CaptureCompositor")


@dataclass
class CaptureCrop:
    """Region of the camera frame that ends up in the capture, in video pixels."""
    x: float
    y: float
    width: float
    height: float


def fit_cover(frame: np.ndarray, display_w: int, display_h: int) -> np.ndarray:
    """
    Scale and center-crop a frame so it fills the display.

    Uses the same cover fit as the landmark coordinate mapping.
    """
    video_h, video_w = frame.shape[:2]
    fit = cover_fit(display_w, display_h, video_w, video_h)

    scaled_w = max(display_w, int(round(fit.displayed_width)))
    scaled_h = max(display_h, int(round(fit.displayed_height)))
    interpolation = cv2.INTER_AREA if fit.scale < 1.0 else cv2.INTER_LINEAR
    scaled = cv2.resize(frame, (scaled_w, scaled_h), interpolation=interpolation)

    x0 = (scaled_w - display_w) // 2
    y0 = (scaled_h - display_h) // 2
    return scaled[y0:y0 + display_h, x0:x0 + display_w].copy()


def compute_capture_crop(
    video_w: float,
    video_h: float,
    display_w: float,
    display_h: float,
    padding_ratio: float = CAPTURE_CROP_PADDING_RATIO
) -> CaptureCrop:
    """
    Crop of the camera frame matching the display aspect.

    The cropped axis is widened by padding_ratio but never past the frame.
    """
    target_aspect = display_w / display_h if display_w > 0 and display_h > 0 else video_w / video_h
    video_aspect = video_w / video_h

    sx, sy, sw, sh = 0.0, 0.0, float(video_w), float(video_h)
    if video_aspect > target_aspect:
        sw = min(video_w, video_h * target_aspect * (1 + padding_ratio))
        sx = (video_w - sw) / 2
    else:
        sh = min(video_h, video_w / target_aspect * (1 + padding_ratio))
        sy = (video_h - sh) / 2

    return CaptureCrop(sx, sy, sw, sh)


def compose_capture(
    frame: np.ndarray,
    geometry: DisplayGeometry,
    overlays: Iterable[tuple[np.ndarray, Optional[SmoothedPlacement]]],
    padding_ratio: float = CAPTURE_CROP_PADDING_RATIO,
    renderer: Optional[OverlayRenderer] = None
) -> np.ndarray:
    """
    Compose a full resolution photo with accessories.

    Args:
        frame: Full resolution BGR camera frame.
        geometry: Display geometry the placements were computed for.
        overlays: (BGRA asset, smoothed placement) per accessory.
        padding_ratio: Extra crop around the displayed region.
        renderer: Renderer to draw with.

    Returns:
        New BGR image.
    """
    renderer = renderer or OverlayRenderer()
    video_h, video_w = frame.shape[:2]

    crop = compute_capture_crop(
        video_w, video_h, geometry.display_width, geometry.display_height, padding_ratio
    )
    x0 = int(round(crop.x))
    y0 = int(round(crop.y))
    out_w = int(round(crop.width))
    out_h = int(round(crop.height))
    capture = frame[y0:y0 + out_h, x0:x0 + out_w].copy()

    # The crop in display pixels: placements are shifted into it, then
    # scaled to the capture resolution
    fit = cover_fit(geometry.display_width, geometry.display_height, video_w, video_h)
    region_x = crop.x * fit.scale + fit.offset_x
    region_y = crop.y * fit.scale + fit.offset_y
    source_size = (crop.width * fit.scale, crop.height * fit.scale)

    drawn = 0
    for image, placement in overlays:
        if placement is None:
            continue
        local = placement.translated(-region_x, -region_y)
        if renderer.render_scaled(image, local, placement.opacity, capture, source_size):
            drawn += 1

    logger.debug(f"Composed {capture.shape[1]}x{capture.shape[0]} capture with {drawn} overlays")
    return capture
