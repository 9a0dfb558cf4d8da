"""Face detector capability — optional, pluggable, silent when absent.

The region analyzer only needs `detect(image) -> [Detection]`. The OpenCV
Haar cascade is the stock implementation; NullFaceDetector stands in when
detection is disabled or the cascade cannot be loaded.
"""

import logging
from dataclasses import dataclass

import cv2
import numpy as np

from src.common.errors import DetectorLoadFailure

logger = logging.getLogger(__name__)

DEFAULT_CASCADE = "haarcascade_frontalface_default.xml"
SCALE_FACTOR = 1.1
MIN_NEIGHBORS = 5
MIN_SIZE_RATIO = 0.08  # smallest face side as a share of the shorter image side


@dataclass(frozen=True)
class Detection:
    """One detected face: box is (x, y, w, h) in native image pixels."""

    box: tuple
    confidence: float

    @property
    def center(self):
        x, y, w, h = self.box
        return x + w / 2.0, y + h / 2.0


class NullFaceDetector:
    """Detector that never finds anything. Analysis falls back to saliency."""

    available = False

    def detect(self, image):
        return []


class HaarFaceDetector:
    """Frontal face detector backed by an OpenCV Haar cascade."""

    available = True

    def __init__(self, cascade_path=None):
        if cascade_path is None:
            cascade_path = cv2.data.haarcascades + DEFAULT_CASCADE
        try:
            self.cascade = cv2.CascadeClassifier(cascade_path)
        except cv2.error as e:
            raise DetectorLoadFailure(f"Cannot load cascade {cascade_path}: {e}") from e
        if self.cascade.empty():
            raise DetectorLoadFailure(f"Failed to load Haar cascade from {cascade_path}")

    def detect(self, image):
        """Detect faces in a PIL image.

        Returns:
            List of Detection, confidence taken from the cascade level weights.

        Raises:
            DetectorLoadFailure: If OpenCV fails while running the cascade.
        """
        gray = np.asarray(image.convert("L"), dtype=np.uint8)
        side = int(min(gray.shape[:2]) * MIN_SIZE_RATIO)
        try:
            boxes, _levels, weights = self.cascade.detectMultiScale3(
                gray,
                scaleFactor=SCALE_FACTOR,
                minNeighbors=MIN_NEIGHBORS,
                minSize=(side, side),
                outputRejectLevels=True,
            )
        except cv2.error as e:
            raise DetectorLoadFailure(f"Haar cascade failed: {e}") from e

        detections = []
        for box, weight in zip(boxes, np.ravel(weights)):
            x, y, w, h = (int(v) for v in box)
            detections.append(Detection(box=(x, y, w, h), confidence=float(weight)))
        return detections


def load_face_detector(settings=None, cascade_path=None):
    """Build the face detector for a session.

    Returns NullFaceDetector when detection is disabled in settings, or when
    the cascade fails to load (logged once, then saliency only).
    """
    if settings is not None and not settings.face_detection:
        return NullFaceDetector()
    try:
        detector = HaarFaceDetector(cascade_path)
    except DetectorLoadFailure as e:
        logger.warning(f"Face detector unavailable, falling back to saliency: {e}")
        return NullFaceDetector()
    logger.info("Face detector loaded")
    return detector
