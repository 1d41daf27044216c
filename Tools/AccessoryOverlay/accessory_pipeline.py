"""
Per-accessory detect / place / smooth / render loop.

Each accessory runs through the same pipeline, parameterized by its
AccessoryConfig. A pipeline owns its tracker and overlay layer, so
accessories share no mutable state and are paced independently.
"""

from typing import Callable, Optional, Sequence

import numpy as np

from .accessory_transform import resolve_placement
from .config import AccessoryConfig, FADE_DURATION_MS
from .coordinate_mapper import DisplayGeometry, InvalidGeometryError, cover_fit
from .landmark_detector import Landmark
from .logger import get_logger
from .overlay_renderer import OverlayRenderer, create_layer, image_aspect
from .placement_tracker import PlacementTracker, SmoothedPlacement

logger = get_logger("AccessoryPipeline")

# (rgb_frame, timestamp_ms) -> landmark sets, first subject first
Detector = Callable[[np.ndarray, float], Sequence[Sequence[Optional[Landmark]]]]


class AccessoryPipeline:
    """
    Runs one accessory at its own detection rate.

    Attributes:
        config: Accessory configuration.
        image: BGRA overlay asset.
        tracker: Smoothing and fade state for this accessory.
    """

    def __init__(
        self,
        config: AccessoryConfig,
        detector: Detector,
        image: np.ndarray,
        fade_duration_ms: float = FADE_DURATION_MS,
        renderer: Optional[OverlayRenderer] = None
    ):
        """
        Initialize the pipeline.

        Args:
            config: Accessory configuration.
            detector: Callable returning landmark sets for a frame.
            image: BGRA overlay asset.
            fade_duration_ms: Fade window for the tracker.
            renderer: Renderer shared with other pipelines (stateless).
        """
        self.config = config
        self.detector = detector
        self.image = image
        self.tracker = PlacementTracker.from_config(config, fade_duration_ms)
        self.renderer = renderer or OverlayRenderer()

        self._image_aspect = image_aspect(image)
        self._layer: Optional[np.ndarray] = None
        self._last_run_ms: Optional[float] = None
        self._running = config.enabled
        self._last_output: Optional[SmoothedPlacement] = None
        self._detection_errors = 0

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def layer(self) -> Optional[np.ndarray]:
        """BGRA layer with the accessory drawn at the last processed frame."""
        return self._layer

    @property
    def last_output(self) -> Optional[SmoothedPlacement]:
        return self._last_output

    @property
    def detection_errors(self) -> int:
        return self._detection_errors

    def start(self) -> None:
        """Resume the loop with fresh smoothing state."""
        if self._running:
            return
        self._running = True
        self._last_run_ms = None
        logger.info(f"{self.name}: started")

    def stop(self) -> None:
        """Stop the loop and drop smoothing momentum and the drawn overlay."""
        self._running = False
        self.tracker.reset()
        self._last_output = None
        self._last_run_ms = None
        if self._layer is not None:
            self._layer[...] = 0
        logger.info(f"{self.name}: stopped")

    def toggle(self) -> bool:
        """Start if stopped, stop if running. Returns the new running state."""
        if self._running:
            self.stop()
        else:
            self.start()
        return self._running

    def is_due(self, now_ms: float) -> bool:
        """Whether the detection interval has elapsed."""
        if self._last_run_ms is None:
            return True
        return now_ms - self._last_run_ms >= self.config.detection_interval_ms

    def _ensure_layer(self, geometry: DisplayGeometry) -> np.ndarray:
        width = int(round(geometry.display_width))
        height = int(round(geometry.display_height))
        if self._layer is None or self._layer.shape[:2] != (height, width):
            self._layer = create_layer(max(width, 1), max(height, 1))
        return self._layer

    def _detect(self, frame: np.ndarray, now_ms: float) -> Optional[Sequence[Optional[Landmark]]]:
        try:
            subjects = self.detector(frame, now_ms)
        except Exception as e:
            # Detector failures count as "nothing detected this frame"
            self._detection_errors += 1
            logger.warning(f"{self.name}: detection failed: {e}")
            return None
        if not subjects:
            return None
        return subjects[0]

    def process(
        self, frame: np.ndarray, geometry: DisplayGeometry, now_ms: float
    ) -> Optional[SmoothedPlacement]:
        """
        Run one detect / place / smooth / render cycle.

        Args:
            frame: RGB camera frame handed to the detector.
            geometry: Current display and video size.
            now_ms: Frame timestamp in milliseconds.

        Returns:
            The smoothed placement drawn this cycle, or None.
        """
        self._last_run_ms = now_ms
        landmarks = self._detect(frame, now_ms)

        try:
            cover_fit(
                geometry.display_width, geometry.display_height,
                geometry.video_width, geometry.video_height
            )
            layer = self._ensure_layer(geometry)
            candidate = resolve_placement(self.config, landmarks, geometry, self._image_aspect)
        except InvalidGeometryError as e:
            logger.warning(f"{self.name}: skipping frame: {e}")
            if self._layer is not None:
                self._layer[...] = 0
            self._last_output = None
            return None

        smoothed = self.tracker.update(candidate, now_ms)
        opacity = smoothed.opacity if smoothed is not None else 0.0
        self.renderer.render(self.image, smoothed, opacity, layer)
        self._last_output = smoothed
        return smoothed

    def step(
        self, frame: np.ndarray, geometry: DisplayGeometry, now_ms: float
    ) -> bool:
        """
        Process the frame if the accessory is running and due.

        Returns:
            True if a cycle ran.
        """
        if not self._running or not self.is_due(now_ms):
            return False
        self.process(frame, geometry, now_ms)
        return True
