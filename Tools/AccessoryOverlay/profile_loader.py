"""
Profile loader for AccessoryOverlay.

Loads the tunable configuration surface from a JSON profile. Keys use
camelCase; every key is optional and falls back to config.py defaults.

Example:
    {
        "name": "Party",
        "fadeDurationMs": 250,
        "accessories": {
            "crown": {"sizeRatio": 2.1, "headAnchor": "forehead"},
            "medal": {"yOffsetRatio": -0.15, "minVisibility": 0.6},
            "trophy": {"enabled": false,
                       "filters": {"position": {"minCutoff": 0.8, "beta": 8}}}
        }
    }
"""

import json
import math
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional, Union

from .config import (
    AccessoryConfig,
    FilterSettings,
    HeadAnchor,
    CAPTURE_CROP_PADDING_RATIO,
    CAPTURE_OUTPUT_DIR,
    DEFAULT_CAMERA_INDEX,
    DISPLAY_HEIGHT,
    DISPLAY_WIDTH,
    FADE_DURATION_MS,
    default_crown_config,
    default_medal_config,
    default_trophy_config,
)
from .logger import get_logger

logger = get_logger("ProfileLoader")


class ProfileLoadError(Exception):
    """Raised when profile loading or validation fails."""
    pass


@dataclass
class OverlayProfile:
    """
    Profile configuration loaded from JSON.

    Attributes:
        name: Profile display name.
        camera_index: Camera device index.
        display_width: Preview surface width in pixels.
        display_height: Preview surface height in pixels.
        fade_duration_ms: Fade window shared by all accessories.
        capture_padding_ratio: Extra crop around the displayed region on capture.
        output_dir: Directory captures are written to.
        accessories: Accessory configurations in draw order.
    """

    name: str = "Default"
    camera_index: int = DEFAULT_CAMERA_INDEX
    display_width: int = DISPLAY_WIDTH
    display_height: int = DISPLAY_HEIGHT
    fade_duration_ms: float = FADE_DURATION_MS
    capture_padding_ratio: float = CAPTURE_CROP_PADDING_RATIO
    output_dir: str = CAPTURE_OUTPUT_DIR
    accessories: list[AccessoryConfig] = field(default_factory=list)

    def get_accessory(self, name: str) -> Optional[AccessoryConfig]:
        """
        Get an accessory configuration by name.

        Args:
            name: Accessory name (case-insensitive).

        Returns:
            AccessoryConfig if found, None otherwise.
        """
        name_lower = name.lower()
        for accessory in self.accessories:
            if accessory.name.lower() == name_lower:
                return accessory
        return None


def _number(
    data: dict[str, Any],
    key: str,
    default: float,
    minimum: Optional[float] = None,
    exclusive_minimum: bool = False
) -> float:
    """Read a finite number, falling back to the default when invalid."""
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        logger.warning(f"Invalid {key} {value!r}, using default: {default}")
        return default
    if minimum is not None:
        too_small = value <= minimum if exclusive_minimum else value < minimum
        if too_small:
            raise ProfileLoadError(f"{key} must be {'>' if exclusive_minimum else '>='} {minimum}, got {value}")
    return float(value)


def _parse_filter(data: Any, default: FilterSettings, label: str) -> FilterSettings:
    if data is None:
        return default
    if not isinstance(data, dict):
        logger.warning(f"Ignoring invalid filter settings for {label}")
        return default
    return FilterSettings(
        min_cutoff=_number(data, "minCutoff", default.min_cutoff, 0.0, exclusive_minimum=True),
        beta=_number(data, "beta", default.beta, 0.0),
        d_cutoff=_number(data, "dCutoff", default.d_cutoff, 0.0, exclusive_minimum=True)
    )


def _parse_accessory(
    data: dict[str, Any], default: AccessoryConfig, base_dir: Optional[Path]
) -> AccessoryConfig:
    """Apply one accessory's overrides to its defaults."""
    name = default.name

    enabled = data.get("enabled", default.enabled)
    if not isinstance(enabled, bool):
        logger.warning(f"Invalid {name}.enabled, using default: {default.enabled}")
        enabled = default.enabled

    image_path = data.get("imagePath", default.image_path)
    if not isinstance(image_path, str) or not image_path:
        image_path = default.image_path
    if base_dir is not None and "imagePath" in data and not Path(image_path).is_absolute():
        image_path = str(base_dir / image_path)

    min_visibility = default.min_visibility
    if "minVisibility" in data:
        raw = data["minVisibility"]
        if raw is None:
            min_visibility = None
        else:
            min_visibility = _number(data, "minVisibility", default.min_visibility or 0.0, 0.0)
            if min_visibility > 1.0:
                raise ProfileLoadError(f"{name}.minVisibility must be <= 1, got {min_visibility}")

    head_anchor = default.head_anchor
    if "headAnchor" in data:
        try:
            head_anchor = HeadAnchor(str(data["headAnchor"]).lower())
        except ValueError:
            raise ProfileLoadError(
                f"Invalid {name}.headAnchor: {data['headAnchor']} (expected 'eyes' or 'forehead')"
            )

    filters = data.get("filters") or {}
    if not isinstance(filters, dict):
        logger.warning(f"Ignoring invalid {name}.filters")
        filters = {}

    return replace(
        default,
        enabled=enabled,
        image_path=image_path,
        size_ratio=_number(data, "sizeRatio", default.size_ratio, 0.0, exclusive_minimum=True),
        y_offset_ratio=_number(data, "yOffsetRatio", default.y_offset_ratio),
        detection_fps=_number(data, "detectionFps", default.detection_fps, 0.0, exclusive_minimum=True),
        min_visibility=min_visibility,
        head_anchor=head_anchor,
        position_filter=_parse_filter(filters.get("position"), default.position_filter, f"{name}.position"),
        size_filter=_parse_filter(filters.get("size"), default.size_filter, f"{name}.size"),
        angle_filter=_parse_filter(filters.get("angle"), default.angle_filter, f"{name}.angle")
    )


def _parse_profile(data: dict[str, Any], base_dir: Optional[Path] = None) -> OverlayProfile:
    """
    Parse and validate profile data from dictionary.

    Args:
        data: Dictionary with camelCase profile properties.
        base_dir: Directory relative asset paths are resolved against.

    Returns:
        Validated OverlayProfile instance.

    Raises:
        ProfileLoadError: If a value is out of range.
    """
    if not isinstance(data, dict):
        raise ProfileLoadError("Profile root must be a JSON object")

    accessories_data = data.get("accessories", {})
    if not isinstance(accessories_data, dict):
        raise ProfileLoadError("accessories must be an object keyed by accessory name")

    defaults = [default_crown_config(), default_medal_config(), default_trophy_config()]
    known = {d.name for d in defaults}
    for unknown in set(accessories_data) - known:
        logger.warning(f"Ignoring unknown accessory: {unknown}")

    accessories = []
    for default in defaults:
        overrides = accessories_data.get(default.name, {})
        if not isinstance(overrides, dict):
            raise ProfileLoadError(f"Settings for {default.name} must be an object")
        accessories.append(_parse_accessory(overrides, default, base_dir))

    camera_index = data.get("cameraIndex", DEFAULT_CAMERA_INDEX)
    if not isinstance(camera_index, int) or isinstance(camera_index, bool):
        camera_index = DEFAULT_CAMERA_INDEX

    output_dir = data.get("outputDir", CAPTURE_OUTPUT_DIR)
    if not isinstance(output_dir, str) or not output_dir:
        output_dir = CAPTURE_OUTPUT_DIR

    padding = _number(data, "capturePaddingRatio", CAPTURE_CROP_PADDING_RATIO, 0.0)

    profile = OverlayProfile(
        name=str(data.get("name", "Default")),
        camera_index=camera_index,
        display_width=int(_number(data, "displayWidth", DISPLAY_WIDTH, 0.0, exclusive_minimum=True)),
        display_height=int(_number(data, "displayHeight", DISPLAY_HEIGHT, 0.0, exclusive_minimum=True)),
        fade_duration_ms=_number(data, "fadeDurationMs", FADE_DURATION_MS, 0.0, exclusive_minimum=True),
        capture_padding_ratio=padding,
        output_dir=output_dir,
        accessories=accessories
    )

    logger.info(f"Loaded profile: {profile.name}")
    logger.debug(f"  Display: {profile.display_width}x{profile.display_height}")
    logger.debug(f"  Fade duration: {profile.fade_duration_ms:.0f} ms")
    for accessory in profile.accessories:
        logger.debug(
            f"  {accessory.name}: enabled={accessory.enabled} size={accessory.size_ratio} "
            f"offset={accessory.y_offset_ratio} fps={accessory.detection_fps}"
        )

    return profile


def load_profile(profile_path: Union[str, Path]) -> OverlayProfile:
    """
    Load and validate a profile from a JSON file.

    Args:
        profile_path: Path to the JSON profile file.

    Returns:
        Validated OverlayProfile instance.

    Raises:
        ProfileLoadError: If file cannot be read or validation fails.
    """
    path = Path(profile_path)
    logger.info(f"Loading profile from: {path}")

    if not path.exists():
        raise ProfileLoadError(f"Profile file not found: {path}")

    if not path.is_file():
        raise ProfileLoadError(f"Profile path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ProfileLoadError(f"Invalid JSON in profile: {e}")
    except OSError as e:
        raise ProfileLoadError(f"Cannot read profile file: {e}")

    return _parse_profile(data, base_dir=path.parent)


def create_default_profile() -> OverlayProfile:
    """
    Create a default profile with standard settings.

    Returns:
        OverlayProfile with default values for all three accessories.
    """
    return OverlayProfile(
        accessories=[default_crown_config(), default_medal_config(), default_trophy_config()]
    )
