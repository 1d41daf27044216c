"""
Overlay renderer for accessory images.

Draws a BGRA asset onto a numpy surface with the rotation, scale and
opacity of a placement. Live preview uses one transparent BGRA layer per
accessory (cleared on every render); capture composition draws straight
onto the full resolution buffer.
"""

import math
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from .config import MIN_RENDER_OPACITY
from .logger import get_logger
from .placement_tracker import Placement

logger = get_logger("OverlayRenderer")


class OverlayImageError(Exception):
    """Raised when an overlay asset cannot be loaded."""
    pass


def ensure_bgra(image: np.ndarray) -> np.ndarray:
    """Return the image with an alpha channel (opaque if it had none)."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    return image


def load_overlay_image(path: Union[str, Path]) -> np.ndarray:
    """
    Load an overlay asset as BGRA.

    Raises:
        OverlayImageError: If the file is missing or not a readable image.
    """
    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None or image.size == 0:
        raise OverlayImageError(f"Failed to load overlay image: {path}")
    if image.dtype != np.uint8:
        # 16-bit PNGs
        image = (image / 257).astype(np.uint8)
    logger.debug(f"Loaded overlay {path} ({image.shape[1]}x{image.shape[0]})")
    return ensure_bgra(image)


def image_aspect(image: np.ndarray) -> float:
    """Height / width of an image."""
    h, w = image.shape[:2]
    return h / w


def create_layer(width: int, height: int) -> np.ndarray:
    """Create a fully transparent BGRA layer."""
    return np.zeros((height, width, 4), dtype=np.uint8)


def _composite_over(region: np.ndarray, bgr: np.ndarray, alpha: np.ndarray) -> None:
    """Composite source colors with per-pixel alpha over a region, in place."""
    src = bgr.astype(np.float32)
    if region.shape[2] == 4:
        dst_rgb = region[..., :3].astype(np.float32)
        dst_a = region[..., 3:4].astype(np.float32) / 255.0
        out_a = alpha + dst_a * (1.0 - alpha)
        out_rgb = (src * alpha + dst_rgb * dst_a * (1.0 - alpha)) / np.maximum(out_a, 1e-6)
        region[..., :3] = np.clip(out_rgb, 0, 255).astype(np.uint8)
        region[..., 3:4] = np.clip(out_a * 255.0, 0, 255).astype(np.uint8)
    else:
        dst = region.astype(np.float32)
        out = src * alpha + dst * (1.0 - alpha)
        region[...] = np.clip(out, 0, 255).astype(np.uint8)


def blend_layer(frame: np.ndarray, layer: np.ndarray) -> np.ndarray:
    """
    Alpha-composite a BGRA layer onto a BGR frame in place.

    Returns:
        The frame, for chaining.
    """
    if frame.shape[:2] != layer.shape[:2]:
        raise ValueError(
            f"Layer size {layer.shape[1]}x{layer.shape[0]} does not match "
            f"frame size {frame.shape[1]}x{frame.shape[0]}"
        )
    if not layer[..., 3].any():
        return frame
    alpha = layer[..., 3:4].astype(np.float32) / 255.0
    _composite_over(frame, layer[..., :3], alpha)
    return frame


class OverlayRenderer:
    """
    Draws accessory images at a placement.

    Attributes:
        min_opacity: Opacity at or below which nothing is drawn.
    """

    def __init__(self, min_opacity: float = MIN_RENDER_OPACITY):
        self.min_opacity = min_opacity

    @staticmethod
    def _affine_matrix(image: np.ndarray, placement: Placement) -> np.ndarray:
        """Asset pixels -> surface pixels: scale, rotate about center, move."""
        ih, iw = image.shape[:2]
        sx = placement.width / iw
        sy = placement.height / ih
        cos_a = math.cos(placement.angle)
        sin_a = math.sin(placement.angle)
        cx = placement.x
        cy = placement.y + placement.height / 2

        m = np.array([
            [cos_a * sx, -sin_a * sy, 0.0],
            [sin_a * sx, cos_a * sy, 0.0],
        ], dtype=np.float64)
        m[0, 2] = cx - (m[0, 0] * iw / 2 + m[0, 1] * ih / 2)
        m[1, 2] = cy - (m[1, 0] * iw / 2 + m[1, 1] * ih / 2)
        return m

    def _draw(
        self,
        image: np.ndarray,
        placement: Placement,
        opacity: float,
        surface: np.ndarray
    ) -> bool:
        if placement.width <= 0 or placement.height <= 0:
            return False

        image = ensure_bgra(image)
        ih, iw = image.shape[:2]
        m = self._affine_matrix(image, placement)

        # Only warp the bounding box of the rotated asset
        corners = np.array([[0, 0, 1], [iw, 0, 1], [0, ih, 1], [iw, ih, 1]], dtype=np.float64)
        projected = corners @ m.T
        h, w = surface.shape[:2]
        x0 = max(0, int(math.floor(projected[:, 0].min())))
        y0 = max(0, int(math.floor(projected[:, 1].min())))
        x1 = min(w, int(math.ceil(projected[:, 0].max())))
        y1 = min(h, int(math.ceil(projected[:, 1].max())))
        if x0 >= x1 or y0 >= y1:
            return False

        m[0, 2] -= x0
        m[1, 2] -= y0
        warped = cv2.warpAffine(
            image, m, (x1 - x0, y1 - y0),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(0, 0, 0, 0)
        )

        alpha = warped[..., 3:4].astype(np.float32) / 255.0 * float(opacity)
        _composite_over(surface[y0:y1, x0:x1], warped[..., :3], alpha)
        return True

    def render(
        self,
        image: Optional[np.ndarray],
        placement: Optional[Placement],
        opacity: float,
        surface: np.ndarray
    ) -> bool:
        """
        Clear a layer and draw the accessory on it.

        Args:
            image: BGRA asset.
            placement: Where to draw, None to leave the layer empty.
            opacity: Global alpha in [0, 1].
            surface: Dedicated BGRA layer for this accessory.

        Returns:
            True if anything was drawn.
        """
        surface[...] = 0
        if image is None or placement is None or opacity <= self.min_opacity:
            return False
        return self._draw(image, placement, min(opacity, 1.0), surface)

    def render_scaled(
        self,
        image: Optional[np.ndarray],
        placement: Optional[Placement],
        opacity: float,
        surface: np.ndarray,
        source_size: tuple[float, float]
    ) -> bool:
        """
        Draw a placement computed for another resolution onto a surface.

        Position and size are scaled by target / source per axis, the angle
        is kept. Existing surface content is drawn over, not cleared.

        Args:
            image: BGRA asset.
            placement: Placement in source pixels.
            opacity: Global alpha in [0, 1].
            surface: Target image (BGR or BGRA).
            source_size: (width, height) the placement was computed for.

        Returns:
            True if anything was drawn.
        """
        if image is None or placement is None or opacity <= self.min_opacity:
            return False
        source_w, source_h = source_size
        if source_w <= 0 or source_h <= 0:
            raise ValueError(f"Invalid source size: {source_w}x{source_h}")

        target_h, target_w = surface.shape[:2]
        scaled = placement.scaled(target_w / source_w, target_h / source_h)
        return self._draw(image, scaled, min(opacity, 1.0), surface)
