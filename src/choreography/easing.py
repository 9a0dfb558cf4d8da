"""Easing curves for camera segments, keyed by name."""

import math


def linear(t):
    return t


def ease_in_out(t):
    """Cosine ease-in-out for t in [0,1]."""
    return 0.5 - 0.5 * math.cos(math.pi * t)


def cubic_bezier(x1, y1, x2, y2):
    """Build a CSS-style cubic-bezier easing function.

    Solves the curve's x(s) = t for s with Newton steps, falling back to
    bisection, then returns y(s).
    """
    def _coord(s, p1, p2):
        return 3 * (1 - s) ** 2 * s * p1 + 3 * (1 - s) * s ** 2 * p2 + s ** 3

    def _slope(s, p1, p2):
        return 3 * (1 - s) ** 2 * p1 + 6 * (1 - s) * s * (p2 - p1) + 3 * s ** 2 * (1 - p2)

    def ease(t):
        if t <= 0.0:
            return 0.0
        if t >= 1.0:
            return 1.0
        s = t
        for _ in range(8):
            err = _coord(s, x1, x2) - t
            if abs(err) < 1e-7:
                return _coord(s, y1, y2)
            d = _slope(s, x1, x2)
            if abs(d) < 1e-6:
                break
            s -= err / d
        lo, hi = 0.0, 1.0
        s = t
        for _ in range(40):
            x = _coord(s, x1, x2)
            if abs(x - t) < 1e-7:
                break
            if x < t:
                lo = s
            else:
                hi = s
            s = (lo + hi) / 2
        return _coord(s, y1, y2)

    return ease


# Smooth start, gentle settle.
standard = cubic_bezier(0.4, 0.0, 0.2, 1.0)

EASINGS = {
    "linear": linear,
    "inout": ease_in_out,
    "standard": standard,
}


def get_easing(name):
    """Look up an easing function, defaulting to the standard curve."""
    return EASINGS.get(name, standard)
