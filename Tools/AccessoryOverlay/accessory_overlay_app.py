#!/usr/bin/env python3
"""
Accessory Overlay

Main entry point. Shows the camera feed with a crown, medal and trophy
placed on the detected face, shoulders and hand, and writes composed
photos on request.

Usage:
    python -m AccessoryOverlay.accessory_overlay_app [--profile <path>] [--camera <index>] [--debug]

Keys:
    c        capture a photo
    1/2/3    toggle crown / medal / trophy
    q, ESC   quit

Exit Codes:
    0 - Success
    1 - Profile error
    2 - Camera error
    3 - Runtime error
    4 - Asset error
"""

import argparse
import signal
import sys
import time
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from .accessory_pipeline import AccessoryPipeline
from .camera_manager import CameraManager, CameraError
from .capture_compositor import compose_capture, fit_cover
from .config import (
    EXIT_SUCCESS,
    EXIT_PROFILE_ERROR,
    EXIT_CAMERA_ERROR,
    EXIT_RUNTIME_ERROR,
    EXIT_ASSET_ERROR,
    CAPTURE_FILENAME_PREFIX,
)
from .coordinate_mapper import DisplayGeometry
from .landmark_detector import DetectorError, LandmarkDetector
from .logger import setup_logging, get_logger
from .model_manager import ModelDownloadError
from .overlay_renderer import OverlayImageError, OverlayRenderer, blend_layer, load_overlay_image
from .profile_loader import OverlayProfile, ProfileLoadError, create_default_profile, load_profile

WINDOW_NAME = "Accessory Overlay"

TOGGLE_KEYS: dict[int, str] = {
    ord('1'): "crown",
    ord('2'): "medal",
    ord('3'): "trophy",
}


class AccessoryOverlayApp:
    """Camera loop driving one AccessoryPipeline per accessory."""

    def __init__(
        self,
        profile: OverlayProfile,
        camera_index: Optional[int] = None,
        output_dir: Optional[str] = None,
        debug: bool = False
    ):
        """
        Initialize the application.

        Args:
            profile: Loaded profile.
            camera_index: Overrides the profile's camera index.
            output_dir: Overrides the profile's capture directory.
            debug: Draw FPS and tracker state on the preview.
        """
        self.profile = profile
        self.camera_index = profile.camera_index if camera_index is None else camera_index
        self.output_dir = Path(output_dir or profile.output_dir)
        self.debug = debug

        self._logger = get_logger("App")
        self._camera: Optional[CameraManager] = None
        self._detectors: list[LandmarkDetector] = []
        self._pipelines: list[AccessoryPipeline] = []
        self._renderer = OverlayRenderer()

        self._running = False
        self._frame_count = 0
        self._frame_errors = 0
        self._start_time = 0.0
        self._fps = 0.0
        self._last_fps_time = 0.0
        self._last_fps_frames = 0

        self._last_frame: Optional[np.ndarray] = None
        self._last_geometry: Optional[DisplayGeometry] = None

    @property
    def pipelines(self) -> list[AccessoryPipeline]:
        return self._pipelines

    def initialize(self) -> None:
        """
        Open the camera, load assets and create one pipeline per accessory.

        Raises:
            CameraError: If the camera cannot be opened.
            OverlayImageError: If an accessory asset cannot be loaded.
            DetectorError: If a landmarker cannot be created.
            ModelDownloadError: If a model is missing and cannot be fetched.
        """
        for config in self.profile.accessories:
            image = load_overlay_image(config.image_path)
            detector = LandmarkDetector(config.kind)
            detector.initialize()
            self._detectors.append(detector)
            self._pipelines.append(AccessoryPipeline(
                config,
                detector,
                image,
                fade_duration_ms=self.profile.fade_duration_ms,
                renderer=self._renderer
            ))
            self._logger.info(
                f"Accessory {config.name} ready ({config.detection_fps:.0f} Hz, "
                f"{'on' if config.enabled else 'off'})"
            )

        self._camera = CameraManager(camera_index=self.camera_index)
        self._camera.open()

    def run(self) -> None:
        """Run the main loop until quit or stop()."""
        self._running = True
        self._start_time = time.perf_counter()
        self._last_fps_time = self._start_time

        self._logger.info("Starting overlay loop...")

        try:
            while self._running:
                try:
                    self._process_frame()
                except CameraError:
                    raise
                except Exception as e:
                    # A bad frame must not end the session
                    self._frame_errors += 1
                    self._logger.exception(f"Frame processing failed: {e}")

                key = cv2.waitKey(1) & 0xFF
                if key != 0xFF:
                    self._handle_key(key)
        except KeyboardInterrupt:
            self._logger.info("Interrupted by user")
        finally:
            self.stop()

    def _process_frame(self) -> None:
        """Process a single frame."""
        if self._camera is None:
            return

        frame, timestamp_ms = self._camera.read()
        if frame is None:
            return

        self._frame_count += 1

        video_h, video_w = frame.shape[:2]
        geometry = DisplayGeometry(
            display_width=self.profile.display_width,
            display_height=self.profile.display_height,
            video_width=video_w,
            video_height=video_h
        )
        self._last_frame = frame
        self._last_geometry = geometry

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        preview = fit_cover(frame, self.profile.display_width, self.profile.display_height)

        for pipeline in self._pipelines:
            pipeline.step(rgb, geometry, timestamp_ms)
            if pipeline.is_running and pipeline.layer is not None:
                blend_layer(preview, pipeline.layer)

        self._update_fps()
        if self.debug:
            self._draw_debug(preview)

        cv2.imshow(WINDOW_NAME, preview)

    def _draw_debug(self, preview: np.ndarray) -> None:
        """Draw FPS and tracker states."""
        cv2.putText(
            preview, f"FPS: {self._fps:.1f}", (10, 30),
            cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 255, 255), 2
        )
        for i, pipeline in enumerate(self._pipelines):
            state = pipeline.tracker.state.name if pipeline.is_running else "OFF"
            cv2.putText(
                preview, f"{pipeline.name}: {state}", (10, 60 + i * 25),
                cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1
            )

    def _handle_key(self, key: int) -> None:
        if key in (ord('q'), 27):  # q or ESC
            self._logger.info("Quit key pressed")
            self._running = False
        elif key == ord('c'):
            self.capture()
        elif key in TOGGLE_KEYS:
            for pipeline in self._pipelines:
                if pipeline.name == TOGGLE_KEYS[key]:
                    running = pipeline.toggle()
                    self._logger.info(f"{pipeline.name} {'enabled' if running else 'disabled'}")

    def capture(self) -> Optional[Path]:
        """
        Compose the last frame with the visible accessories and write it.

        Returns:
            Path of the written image, or None if nothing was captured.
        """
        if self._last_frame is None or self._last_geometry is None:
            self._logger.warning("No frame to capture yet")
            return None

        overlays = [
            (p.image, p.tracker.current)
            for p in self._pipelines
            if p.is_running
        ]
        photo = compose_capture(
            self._last_frame,
            self._last_geometry,
            overlays,
            padding_ratio=self.profile.capture_padding_ratio,
            renderer=self._renderer
        )

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{CAPTURE_FILENAME_PREFIX}-{int(time.time() * 1000)}.png"
        if not cv2.imwrite(str(path), photo):
            self._logger.error(f"Failed to write capture: {path}")
            return None

        self._logger.info(f"Captured {photo.shape[1]}x{photo.shape[0]} photo: {path}")
        return path

    def _update_fps(self) -> None:
        """Update FPS calculation."""
        current_time = time.perf_counter()
        elapsed = current_time - self._last_fps_time

        if elapsed >= 1.0:
            self._fps = (self._frame_count - self._last_fps_frames) / elapsed
            self._last_fps_time = current_time
            self._last_fps_frames = self._frame_count

    def stop(self) -> None:
        """Stop the loop and release resources."""
        if not self._running and self._camera is None and not self._detectors:
            return
        self._running = False
        self._logger.info("Stopping accessory overlay...")

        for pipeline in self._pipelines:
            pipeline.stop()

        for detector in self._detectors:
            detector.close()
        self._detectors = []

        if self._camera:
            self._camera.close()
            self._camera = None

        cv2.destroyAllWindows()

        if self._frame_count > 0:
            elapsed = time.perf_counter() - self._start_time
            avg_fps = self._frame_count / elapsed if elapsed > 0 else 0
            self._logger.info(
                f"Stopped. Processed {self._frame_count} frames "
                f"in {elapsed:.1f}s ({avg_fps:.1f} FPS average, {self._frame_errors} frame errors)"
            )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Accessory Overlay - crown, medal and trophy on a live camera feed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0  Success
  1  Profile error (file not found, invalid JSON, invalid value)
  2  Camera error (camera not available)
  3  Runtime error (unexpected error)
  4  Asset error (overlay image or model missing)

Examples:
  accessory-overlay
  accessory-overlay --profile party.json --camera 1
  accessory-overlay --width 1080 --height 1440 --debug
"""
    )

    parser.add_argument(
        "--profile", "-p",
        default=None,
        help="Path to JSON profile file (default: built-in settings)"
    )

    parser.add_argument(
        "--camera", "-c",
        type=int,
        default=None,
        help="Camera index (default: from profile)"
    )

    parser.add_argument(
        "--width",
        type=int,
        default=None,
        help="Preview width in pixels (default: from profile)"
    )

    parser.add_argument(
        "--height",
        type=int,
        default=None,
        help="Preview height in pixels (default: from profile)"
    )

    parser.add_argument(
        "--output-dir", "-o",
        default=None,
        help="Directory for captured photos (default: from profile)"
    )

    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging and on-screen tracker state"
    )

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code.
    """
    args = parse_args(argv)

    logger = setup_logging(debug=args.debug)
    logger.info("Accessory Overlay starting...")

    try:
        profile = load_profile(args.profile) if args.profile else create_default_profile()
    except ProfileLoadError as e:
        logger.error(f"Failed to load profile: {e}")
        return EXIT_PROFILE_ERROR

    if args.width is not None:
        profile.display_width = args.width
    if args.height is not None:
        profile.display_height = args.height
    if profile.display_width <= 0 or profile.display_height <= 0:
        logger.error(f"Invalid display size {profile.display_width}x{profile.display_height}")
        return EXIT_PROFILE_ERROR

    app: Optional[AccessoryOverlayApp] = None

    try:
        app = AccessoryOverlayApp(
            profile=profile,
            camera_index=args.camera,
            output_dir=args.output_dir,
            debug=args.debug
        )

        def signal_handler(sig, frame):
            logger.info("Received shutdown signal")
            if app:
                app.stop()

        signal.signal(signal.SIGINT, signal_handler)
        # SIGTERM is not available on Windows
        if sys.platform != 'win32':
            signal.signal(signal.SIGTERM, signal_handler)

        app.initialize()
        app.run()

        return EXIT_SUCCESS

    except CameraError as e:
        logger.error(f"Camera error: {e}")
        return EXIT_CAMERA_ERROR
    except (OverlayImageError, ModelDownloadError, DetectorError) as e:
        logger.error(f"Asset error: {e}")
        return EXIT_ASSET_ERROR
    except Exception as e:
        logger.exception(f"Runtime error: {e}")
        return EXIT_RUNTIME_ERROR
    finally:
        if app:
            app.stop()


if __name__ == "__main__":
    sys.exit(main())
