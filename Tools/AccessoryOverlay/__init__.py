"""
AccessoryOverlay - Crown, medal and trophy overlays on a live camera feed.

Places image accessories on the face, shoulders and hand reported by
MediaPipe landmarkers, smooths them with One Euro filters and fades them
out briefly when tracking is lost.
"""

__version__ = "1.0.0"
__author__ = "AROverlay Team"

from .config import AccessoryConfig, AccessoryKind, FilterSettings
from .coordinate_mapper import CoordinateMapper, DisplayGeometry, InvalidGeometryError, cover_fit
from .adaptive_filter import AdaptiveFilter, AngleFilter, shortest_angle_delta, wrap_angle
from .placement_tracker import Placement, PlacementTracker, SmoothedPlacement, TrackerState
from .accessory_transform import resolve_placement
from .overlay_renderer import OverlayRenderer, OverlayImageError, load_overlay_image
from .accessory_pipeline import AccessoryPipeline
from .landmark_detector import Landmark, LandmarkDetector
from .profile_loader import OverlayProfile, ProfileLoadError, load_profile
from .camera_manager import CameraManager, CameraError

__all__ = [
    "AccessoryConfig",
    "AccessoryKind",
    "FilterSettings",
    "CoordinateMapper",
    "DisplayGeometry",
    "InvalidGeometryError",
    "cover_fit",
    "AdaptiveFilter",
    "AngleFilter",
    "shortest_angle_delta",
    "wrap_angle",
    "Placement",
    "PlacementTracker",
    "SmoothedPlacement",
    "TrackerState",
    "resolve_placement",
    "OverlayRenderer",
    "OverlayImageError",
    "load_overlay_image",
    "AccessoryPipeline",
    "Landmark",
    "LandmarkDetector",
    "OverlayProfile",
    "ProfileLoadError",
    "load_profile",
    "CameraManager",
    "CameraError",
]
