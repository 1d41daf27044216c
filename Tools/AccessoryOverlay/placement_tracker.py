"""
Placement tracker for temporal smoothing and fade-out of one accessory.

Smooths the five placement fields with One Euro Filters and keeps the
last placement on screen at decaying opacity for a short window after
the detector loses the subject, so single-frame dropouts do not flicker.
"""

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Optional

from .adaptive_filter import AdaptiveFilter, AngleFilter
from .config import AccessoryConfig, FADE_DURATION_MS, FilterSettings
from .logger import get_logger

logger = get_logger("PlacementTracker")


@dataclass
class Placement:
    """
    On-screen pose of an accessory, in display pixels.

    The drawn box is centered at (x, y + height / 2), so y is the top edge
    of the unrotated box. angle is in radians around the box center.
    """
    x: float
    y: float
    width: float
    height: float
    angle: float = 0.0

    def scaled(self, scale_x: float, scale_y: float) -> "Placement":
        """Scale position and size to another resolution. Angle is kept."""
        return replace(
            self,
            x=self.x * scale_x,
            y=self.y * scale_y,
            width=self.width * scale_x,
            height=self.height * scale_y
        )

    def translated(self, dx: float, dy: float) -> "Placement":
        return replace(self, x=self.x + dx, y=self.y + dy)


@dataclass
class SmoothedPlacement(Placement):
    """Tracker output: a placement plus its fade opacity."""
    opacity: float = 1.0


class TrackerState(Enum):
    """Lifecycle of a tracked accessory."""
    EMPTY = auto()     # Never seen or fully faded
    TRACKING = auto()  # Detected this update
    FADING = auto()    # Lost, opacity decaying


class PlacementTracker:
    """
    Smooths placements for one accessory and manages fade-out.

    Maintains 5 filters (x, y, width, height, angle). Filters are reset
    when the accessory has been lost for longer than the fade window.

    Attributes:
        fade_duration_ms: Time a lost placement stays visible while fading.
    """

    def __init__(
        self,
        position_filter: Optional[FilterSettings] = None,
        size_filter: Optional[FilterSettings] = None,
        angle_filter: Optional[FilterSettings] = None,
        fade_duration_ms: float = FADE_DURATION_MS,
        name: str = "accessory"
    ):
        """
        Initialize placement tracker.

        Args:
            position_filter: Settings for the x and y filters.
            size_filter: Settings for the width and height filters.
            angle_filter: Settings for the angle filter.
            fade_duration_ms: Fade window in milliseconds.
            name: Accessory name for logging.
        """
        position_filter = position_filter or FilterSettings()
        size_filter = size_filter or FilterSettings()
        angle_filter = angle_filter or FilterSettings()

        self.name = name
        self.fade_duration_ms = fade_duration_ms

        self._filter_x = AdaptiveFilter.from_settings(position_filter)
        self._filter_y = AdaptiveFilter.from_settings(position_filter)
        self._filter_width = AdaptiveFilter.from_settings(size_filter)
        self._filter_height = AdaptiveFilter.from_settings(size_filter)
        self._filter_angle = AngleFilter.from_settings(angle_filter)

        self._last_seen_ms: Optional[float] = None
        self._last_placement: Optional[Placement] = None
        self._opacity: float = 0.0
        self._state = TrackerState.EMPTY

    @classmethod
    def from_config(
        cls, config: AccessoryConfig, fade_duration_ms: float = FADE_DURATION_MS
    ) -> "PlacementTracker":
        return cls(
            position_filter=config.position_filter,
            size_filter=config.size_filter,
            angle_filter=config.angle_filter,
            fade_duration_ms=fade_duration_ms,
            name=config.name
        )

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def opacity(self) -> float:
        return self._opacity

    @property
    def last_placement(self) -> Optional[Placement]:
        """Last smoothed placement without opacity, None when empty."""
        return self._last_placement

    @property
    def current(self) -> Optional[SmoothedPlacement]:
        """Last smoothed placement at the current opacity, None when empty."""
        if self._last_placement is None or self._opacity <= 0:
            return None
        return self._with_opacity(self._last_placement, self._opacity)

    def _set_state(self, state: TrackerState) -> None:
        if state != self._state:
            logger.debug(f"{self.name}: {self._state.name} -> {state.name}")
            self._state = state

    def _filters(self) -> tuple[AdaptiveFilter, ...]:
        return (
            self._filter_x,
            self._filter_y,
            self._filter_width,
            self._filter_height,
            self._filter_angle,
        )

    @staticmethod
    def _with_opacity(placement: Placement, opacity: float) -> SmoothedPlacement:
        return SmoothedPlacement(
            x=placement.x,
            y=placement.y,
            width=placement.width,
            height=placement.height,
            angle=placement.angle,
            opacity=opacity
        )

    def update(
        self, candidate: Optional[Placement], timestamp_ms: float
    ) -> Optional[SmoothedPlacement]:
        """
        Integrate this frame's placement (or its absence).

        Args:
            candidate: Resolved placement, or None if nothing was detected.
            timestamp_ms: Frame timestamp in milliseconds.

        Returns:
            Smoothed placement with opacity, or None if nothing should be shown.
        """
        if candidate is not None:
            self._last_seen_ms = timestamp_ms
            self._opacity = 1.0
            self._last_placement = Placement(
                x=self._filter_x.filter(candidate.x, timestamp_ms),
                y=self._filter_y.filter(candidate.y, timestamp_ms),
                width=self._filter_width.filter(candidate.width, timestamp_ms),
                height=self._filter_height.filter(candidate.height, timestamp_ms),
                angle=self._filter_angle.filter(candidate.angle, timestamp_ms)
            )
            self._set_state(TrackerState.TRACKING)
            return self._with_opacity(self._last_placement, 1.0)

        if self._last_placement is None:
            return None

        elapsed = timestamp_ms - self._last_seen_ms
        if elapsed > self.fade_duration_ms:
            self._clear()
            return None

        self._opacity = max(0.0, min(1.0, 1.0 - elapsed / self.fade_duration_ms))
        self._set_state(TrackerState.FADING)
        return self._with_opacity(self._last_placement, self._opacity)

    def _clear(self) -> None:
        for f in self._filters():
            f.reset()
        self._last_placement = None
        self._last_seen_ms = None
        self._opacity = 0.0
        self._set_state(TrackerState.EMPTY)

    def reset(self) -> None:
        """Drop all smoothing and fade state (call when the loop stops)."""
        self._clear()
        logger.debug(f"{self.name}: tracker reset")
