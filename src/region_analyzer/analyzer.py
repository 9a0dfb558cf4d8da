"""Region analyzer — finds where the camera should look in a piece of artwork.

Order of preference:
  1. Faces (optional detector). The most confident face wins outright.
  2. Saliency. Colourfulness plus thresholded colour-edge contrast, with an
     optional skin-tone bonus, pooled into overlapping windows. The best
     non-overlapping windows become EDGE focal points.

Analysis never raises. Unreadable pixels and featureless images come back as
an empty FocalPointSet and the caller keeps the full-frame static display.
"""

import logging

import numpy as np

from src.common.errors import AnalysisUnavailable, DetectorLoadFailure, NoFeatureFound
from src.config.settings import ZoomSettings
from src.region_analyzer.face_detector import NullFaceDetector
from src.region_analyzer.focal import FocalKind, FocalPoint, FocalPointSet
from src.region_analyzer.pixels import load_pixel_buffer, natural_size

logger = logging.getLogger(__name__)

# Warning collection — caller can check why images were skipped
_warnings = []


def get_warnings():
    """Return list of warnings collected during analysis."""
    return list(_warnings)


def clear_warnings():
    """Clear the warning list."""
    _warnings.clear()


def _warn(message):
    logger.warning(message)
    _warnings.append(message)


# ---------------------------------------------------------------------------
# Score map
# ---------------------------------------------------------------------------

def skin_mask(rgb):
    """Boolean mask of pixels that look like skin (R > G > B with clear gaps)."""
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    return (
        (r > g) & (g > b)
        & (r > 95) & (g > 40) & (b > 20)
        & (r - g >= 15) & (r - b >= 15)
    )


def score_map(buffer, settings=None):
    """Per-pixel saliency scores for an RGBA buffer.

    Args:
        buffer: uint8 array of shape (N, N, 4).
        settings: ZoomSettings for weights, threshold and skin handling.

    Returns:
        float32 array of shape (N, N).
    """
    settings = settings or ZoomSettings()
    rgb = buffer[..., :3].astype(np.int32)

    colour = (rgb.max(axis=2) - rgb.min(axis=2)) * settings.colour_weight
    scores = colour.astype(np.float32)

    edges = np.zeros(scores.shape, dtype=np.float32)
    centre = rgb[1:-1, 1:-1]
    neighbours = (
        rgb[:-2, 1:-1],   # up
        rgb[2:, 1:-1],    # down
        rgb[1:-1, :-2],   # left
        rgb[1:-1, 2:],    # right
    )
    for other in neighbours:
        diff = np.abs(centre - other).sum(axis=2)
        edges[1:-1, 1:-1] += np.where(diff > settings.contrast_threshold, diff, 0)
    edges *= settings.edge_weight

    if settings.skin_bonus:
        skin = skin_mask(rgb)
        if settings.skin_mode == "replace":
            edges = np.where(skin, settings.skin_bonus, edges)
        else:
            edges = edges + skin * settings.skin_bonus

    return scores + edges


# ---------------------------------------------------------------------------
# Window pooling and selection
# ---------------------------------------------------------------------------

def _window_offsets(length, window, stride):
    # Last window is pinned to the far edge when the stride overshoots it
    offsets = list(range(0, length - window + 1, stride))
    if offsets and offsets[-1] != length - window:
        offsets.append(length - window)
    return offsets


def pool_windows(scores, window, stride):
    """Sum scores over overlapping square windows.

    Returns:
        List of (x, y, score) in row-major scan order.
    """
    n_rows, n_cols = scores.shape
    integral = np.zeros((n_rows + 1, n_cols + 1), dtype=np.float64)
    integral[1:, 1:] = scores.cumsum(axis=0).cumsum(axis=1)

    regions = []
    for y in _window_offsets(n_rows, window, stride):
        for x in _window_offsets(n_cols, window, stride):
            total = (integral[y + window, x + window] - integral[y, x + window]
                     - integral[y + window, x] + integral[y, x])
            regions.append((x, y, float(total)))
    return regions


def _overlaps(a, b, window):
    return (a[0] < b[0] + window and a[0] + window > b[0]
            and a[1] < b[1] + window and a[1] + window > b[1])


def select_regions(regions, window, count):
    """Greedy pick of the highest scoring non-overlapping windows.

    Ties keep row-major order. Windows scoring zero never qualify.
    """
    ordered = sorted(regions, key=lambda r: -r[2])  # sorted() is stable
    chosen = []
    for region in ordered:
        if region[2] <= 0:
            break
        if any(_overlaps(region, picked, window) for picked in chosen):
            continue
        chosen.append(region)
        if len(chosen) >= count:
            break
    return chosen


def saliency_points(buffer, settings=None):
    """EDGE focal points for a pixel buffer.

    Raises:
        NoFeatureFound: If the image is uniform or nothing scores.
    """
    settings = settings or ZoomSettings()
    size = buffer.shape[0]
    window, stride = settings.window_size, settings.stride

    regions = pool_windows(score_map(buffer, settings), window, stride)
    totals = [r[2] for r in regions]
    if not totals or max(totals) - min(totals) <= 1e-6:
        raise NoFeatureFound("Image is uniform, no region stands out")

    chosen = select_regions(regions, window, settings.edge_points)
    if not chosen:
        raise NoFeatureFound("No region passed the saliency threshold")

    points = [
        FocalPoint(
            kind=FocalKind.EDGE,
            x_pct=(x + window / 2.0) / size * 100.0,
            y_pct=(y + window / 2.0) / size * 100.0,
        )
        for x, y, _score in chosen
    ]
    while len(points) < settings.edge_points:
        points.append(points[-1])
    return points


def face_point(detections, width, height):
    """FACE focal point at the centre of the most confident detection."""
    best = max(detections, key=lambda d: d.confidence)
    cx, cy = best.center
    return FocalPoint(kind=FocalKind.FACE, x_pct=cx / width * 100.0, y_pct=cy / height * 100.0)


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

class RegionAnalyzer:
    """Runs face detection, then saliency, on one image at a time."""

    def __init__(self, detector=None, settings=None):
        self.detector = detector or NullFaceDetector()
        self.settings = settings or ZoomSettings()

    def _detect_faces(self, image):
        try:
            return self.detector.detect(image)
        except DetectorLoadFailure as e:
            _warn(f"Face detector failed, using saliency from now on: {e}")
            self.detector = NullFaceDetector()
            return []
        except Exception as e:
            _warn(f"Face detector error, using saliency from now on: {e}")
            self.detector = NullFaceDetector()
            return []

    def analyze(self, image):
        """Find focal points in an image.

        Args:
            image: PIL Image.

        Returns:
            FocalPointSet: one FACE point, up to edge_points EDGE points, or
            empty with a reason.
        """
        try:
            width, height = natural_size(image)
            buffer = load_pixel_buffer(image, self.settings.analysis_size)
        except AnalysisUnavailable as e:
            _warn(f"Analysis unavailable: {e}")
            return FocalPointSet.empty("unavailable")

        detections = self._detect_faces(image)
        if detections:
            point = face_point(detections, width, height)
            logger.info(f"Face found at ({point.x_pct:.1f}%, {point.y_pct:.1f}%)")
            return FocalPointSet(kind=FocalKind.FACE, points=(point,))

        try:
            points = saliency_points(buffer, self.settings)
        except NoFeatureFound as e:
            _warn(f"No focal region: {e}")
            return FocalPointSet.empty("no_feature")

        logger.info(f"Saliency picked {len(points)} regions")
        return FocalPointSet(kind=FocalKind.EDGE, points=tuple(points))


def analyze(image, detector=None, settings=None):
    """Convenience wrapper around RegionAnalyzer(...).analyze(image)."""
    return RegionAnalyzer(detector, settings).analyze(image)
