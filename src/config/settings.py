"""Smart zoom settings — timings, camera depth and analysis tuning.

Defaults live in config/smart_zoom.yaml. A few knobs can be overridden from
the environment (or a .env file) without touching the YAML:

  SMART_ZOOM_CONFIG          alternate YAML path
  SMART_ZOOM_FACE_DETECTION  true/false
  SMART_ZOOM_ZOOM_DEPTH      float
"""

import logging
import os
from dataclasses import dataclass, fields, replace

import yaml
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "config")
DEFAULT_CONFIG_PATH = os.path.join(CONFIG_DIR, "smart_zoom.yaml")

SKIN_MODES = ("add", "replace")


@dataclass(frozen=True)
class ZoomSettings:
    """All tunable smart zoom parameters in one place. Durations are seconds."""

    zoom_depth: float = 2.0
    cover_margin: float = 1.05
    centering_zoom_cap: float = 1.0

    initial_delay: float = 30.0
    move_duration: float = 15.0
    hold_face: float = 60.0
    hold_edge: float = 30.0
    repeat_delay: float = 180.0
    retry_backoff: float = 5.0

    tour_zoom: float = 2.0
    tour_move: float = 5.0
    tour_hold: float = 45.0
    tour_iterations: int = 2

    face_detection: bool = True
    analysis_size: int = 100
    window_fraction: float = 0.25
    stride_fraction: float = 0.10
    edge_points: int = 3
    contrast_threshold: float = 120.0
    colour_weight: float = 0.5
    edge_weight: float = 1.0
    skin_bonus: float = 40.0
    skin_mode: str = "add"

    def __post_init__(self):
        if self.zoom_depth < 1.0 or self.tour_zoom < 1.0:
            raise ValueError("zoom depths must be >= 1.0")
        if self.cover_margin < 1.0:
            raise ValueError(f"cover_margin must be >= 1.0, got {self.cover_margin}")
        if self.centering_zoom_cap < 1.0:
            raise ValueError(f"centering_zoom_cap must be >= 1.0, got {self.centering_zoom_cap}")
        if self.move_duration <= 0 or self.tour_move <= 0:
            raise ValueError("move durations must be positive")
        for name in ("initial_delay", "hold_face", "hold_edge", "repeat_delay",
                     "retry_backoff", "tour_hold"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.analysis_size < 8:
            raise ValueError(f"analysis_size too small: {self.analysis_size}")
        if not 0 < self.window_fraction <= 1 or not 0 < self.stride_fraction <= 1:
            raise ValueError("window and stride fractions must be in (0, 1]")
        if self.tour_iterations < 1:
            raise ValueError("tour_iterations must be at least 1")
        if self.edge_points < 1:
            raise ValueError("edge_points must be at least 1")
        if self.skin_mode not in SKIN_MODES:
            raise ValueError(f"skin_mode must be one of {SKIN_MODES}, got {self.skin_mode!r}")

    @property
    def window_size(self):
        """Pooling window side in analysis pixels."""
        return max(1, round(self.analysis_size * self.window_fraction))

    @property
    def stride(self):
        """Pooling window stride in analysis pixels."""
        return max(1, round(self.analysis_size * self.stride_fraction))


def _read_yaml(path):
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    return data.get("smart_zoom", {}) or {}


def _coerce(field, value):
    if field.type in (bool, "bool"):
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes", "on")
        return bool(value)
    if field.type in (int, "int"):
        return int(value)
    if field.type in (float, "float"):
        return float(value)
    return str(value)


def _env_overrides():
    overrides = {}
    face = os.getenv("SMART_ZOOM_FACE_DETECTION")
    if face:
        overrides["face_detection"] = face
    depth = os.getenv("SMART_ZOOM_ZOOM_DEPTH")
    if depth:
        overrides["zoom_depth"] = depth
    return overrides


def load_settings(path=None):
    """Load settings from YAML, then apply environment overrides.

    Args:
        path: Optional YAML path. Defaults to $SMART_ZOOM_CONFIG, then
              config/smart_zoom.yaml. A missing file means built-in defaults.

    Returns:
        ZoomSettings instance.

    Raises:
        ValueError: If a configured value is out of range.
    """
    if path is None:
        path = os.getenv("SMART_ZOOM_CONFIG", DEFAULT_CONFIG_PATH)

    raw = {}
    if os.path.exists(path):
        raw = _read_yaml(path)
    else:
        logger.info(f"No smart zoom config at {path}, using defaults")

    raw.update(_env_overrides())

    known = {f.name: f for f in fields(ZoomSettings)}
    values = {}
    for key, value in raw.items():
        field = known.get(key)
        if field is None:
            logger.warning(f"Ignoring unknown smart zoom setting '{key}'")
            continue
        values[key] = _coerce(field, value)

    return replace(ZoomSettings(), **values)
