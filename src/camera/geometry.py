"""Display geometry — viewport and artwork element sizes.

Two viewport presets:
  HORIZONTAL: 1920x1080, 16:9 landscape display
  VERTICAL:   1080x1920, 9:16 portrait display

The artwork element is laid out the way the album display frames it: 90% of
the viewport height at a 1.4:1 aspect, never wider than 90% of the viewport.
"""

from dataclasses import dataclass

from src.common.errors import InvalidViewport

ART_ASPECT = 1.4
ART_FILL = 0.9


@dataclass(frozen=True)
class Viewport:
    """Pixel size of the display surface."""

    width: float
    height: float

    @property
    def is_valid(self):
        return self.width > 0 and self.height > 0


@dataclass(frozen=True)
class ElementRect:
    """Unscaled on-screen bounding box of the artwork element."""

    width: float
    height: float

    @property
    def is_valid(self):
        return self.width > 0 and self.height > 0


HORIZONTAL = Viewport(width=1920, height=1080)
VERTICAL = Viewport(width=1080, height=1920)


def require_valid(viewport, rect):
    """Raise InvalidViewport unless both sizes are strictly positive."""
    if viewport is None or not viewport.is_valid:
        raise InvalidViewport(f"Unusable viewport: {viewport}")
    if rect is None or not rect.is_valid:
        raise InvalidViewport(f"Unusable element rect: {rect}")


def fit_art_rect(viewport, aspect=ART_ASPECT, fill=ART_FILL):
    """Size the artwork element for a viewport.

    Args:
        viewport: Viewport the element is centred in.
        aspect: Element width / height.
        fill: Maximum share of each viewport dimension the element may take.

    Returns:
        ElementRect.
    """
    height = viewport.height * fill
    width = height * aspect
    max_width = viewport.width * fill
    if width > max_width:
        width = max_width
        height = width / aspect
    return ElementRect(width=width, height=height)
