"""Camera transform solver — cover scale, focal translation and clamping.

The artwork element sits centred in the viewport and is scaled about its own
centre. A transform covers the viewport when the scaled element reaches past
every viewport edge:

    |translate| <= (scale * element_dim - viewport_dim) / 2   on both axes

That constraint is convex in (translate, scale), so interpolating between two
covering transforms with the same eased progress never exposes an edge.
"""

from src.camera.geometry import require_valid


class CameraTransform:
    """Camera pose: translation in pixels + uniform scale about the centre."""

    __slots__ = ("translate_x", "translate_y", "scale")

    def __init__(self, translate_x=0.0, translate_y=0.0, scale=1.0):
        self.translate_x = float(translate_x)
        self.translate_y = float(translate_y)
        self.scale = float(scale)

    def __eq__(self, other):
        if not isinstance(other, CameraTransform):
            return NotImplemented
        return (
            self.translate_x == other.translate_x
            and self.translate_y == other.translate_y
            and self.scale == other.scale
        )

    def __hash__(self):
        return hash((self.translate_x, self.translate_y, self.scale))

    def __repr__(self):
        return (f"CameraTransform(translate_x={self.translate_x:.3f}, "
                f"translate_y={self.translate_y:.3f}, scale={self.scale:.4f})")

    @property
    def is_identity(self):
        return self == IDENTITY

    def to_css(self):
        """Render as a CSS transform string for web compositors."""
        return (f"translate({self.translate_x:.2f}px, {self.translate_y:.2f}px) "
                f"scale({self.scale:.4f})")


IDENTITY = CameraTransform()


def interpolate(start, end, t):
    """Linear interpolation between two camera transforms.

    Args:
        start: CameraTransform at t=0.
        end: CameraTransform at t=1.
        t: Progress in [0.0, 1.0].

    Returns:
        New CameraTransform at the interpolated pose.
    """
    t = max(0.0, min(1.0, t))
    return CameraTransform(
        translate_x=start.translate_x + (end.translate_x - start.translate_x) * t,
        translate_y=start.translate_y + (end.translate_y - start.translate_y) * t,
        scale=start.scale + (end.scale - start.scale) * t,
    )


def cover_scale(viewport, rect, margin=1.05):
    """Minimum scale at which the element fully covers the viewport.

    Args:
        viewport: Viewport.
        rect: ElementRect (unscaled).
        margin: Safety factor > 1 so rounding never leaks background.

    Returns:
        Scale factor as float.

    Raises:
        InvalidViewport: If either size has a non-positive dimension.
    """
    require_valid(viewport, rect)
    return max(viewport.width / rect.width, viewport.height / rect.height) * margin


def target_scale(viewport, rect, zoom_depth, margin=1.05):
    """Cover scale pushed in by the configured zoom depth."""
    return cover_scale(viewport, rect, margin) * zoom_depth


def max_translation(rect, viewport, scale):
    """Largest (x, y) translation that keeps the viewport covered at a scale."""
    max_x = max(0.0, (rect.width * scale - viewport.width) / 2)
    max_y = max(0.0, (rect.height * scale - viewport.height) / 2)
    return max_x, max_y


def _clamp(value, limit):
    return max(-limit, min(limit, value))


def _centering_scale(shift_pct, element_dim, viewport_dim):
    # Scale at which a point shift_pct away from centre can sit mid-viewport.
    reach = 1.0 - 2.0 * abs(shift_pct) / 100.0
    if reach <= 0:
        return float("inf")
    return viewport_dim / (element_dim * reach)


def point_to_transform(point, rect, viewport, scale, max_scale=None):
    """Camera transform that brings a focal point towards the viewport centre.

    Args:
        point: FocalPoint with x_pct / y_pct in 0-100.
        rect: ElementRect (unscaled).
        viewport: Viewport.
        scale: Target scale (usually target_scale()).
        max_scale: Optional cap above `scale`. When given, the scale is raised
                   just enough to centre the point, but never past the cap.

    Returns:
        CameraTransform whose translation is clamped to keep full coverage.
    """
    require_valid(viewport, rect)
    shift_x_pct = 50.0 - point.x_pct
    shift_y_pct = 50.0 - point.y_pct

    if max_scale is not None and max_scale > scale:
        needed = max(
            _centering_scale(shift_x_pct, rect.width, viewport.width),
            _centering_scale(shift_y_pct, rect.height, viewport.height),
        )
        scale = min(max(scale, needed), max_scale)

    trans_x = (shift_x_pct / 100.0) * rect.width * scale
    trans_y = (shift_y_pct / 100.0) * rect.height * scale

    max_x, max_y = max_translation(rect, viewport, scale)
    return CameraTransform(
        translate_x=_clamp(trans_x, max_x),
        translate_y=_clamp(trans_y, max_y),
        scale=scale,
    )


def covers(transform, rect, viewport, tolerance=1e-6):
    """True when the transform leaves no viewport edge exposed."""
    if rect.width * transform.scale < viewport.width - tolerance:
        return False
    if rect.height * transform.scale < viewport.height - tolerance:
        return False
    max_x, max_y = max_translation(rect, viewport, transform.scale)
    return (abs(transform.translate_x) <= max_x + tolerance
            and abs(transform.translate_y) <= max_y + tolerance)
