"""Pixel source — draws artwork into a small square RGBA buffer for analysis."""

import numpy as np
from PIL import Image

from src.common.errors import AnalysisUnavailable


def natural_size(image):
    """(width, height) of the source image, or raise AnalysisUnavailable."""
    if image is None:
        raise AnalysisUnavailable("No image to analyse")
    width, height = image.size
    if width <= 0 or height <= 0:
        raise AnalysisUnavailable(f"Image not decoded yet ({width}x{height})")
    return width, height


def load_pixel_buffer(image, size=100):
    """Downsample an image into a size x size RGBA array.

    The image is squashed to a square, so buffer coordinates map straight
    onto percentages of the native size.

    Args:
        image: PIL Image (any mode).
        size: Side of the square buffer in pixels.

    Returns:
        numpy uint8 array of shape (size, size, 4).

    Raises:
        AnalysisUnavailable: If the pixel data cannot be read.
    """
    natural_size(image)
    try:
        image.load()
        small = image.convert("RGBA").resize((size, size), Image.BILINEAR)
    except (OSError, ValueError) as e:
        raise AnalysisUnavailable(f"Pixel data unreadable: {e}") from e
    return np.asarray(small, dtype=np.uint8)
