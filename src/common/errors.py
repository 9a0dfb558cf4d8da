"""Error taxonomy for the smart zoom core.

None of these are fatal. The orchestrator catches every one of them, logs it,
and falls back to the static full-frame display.
"""


class SmartZoomError(Exception):
    """Base class for recoverable smart zoom failures."""


class AnalysisUnavailable(SmartZoomError):
    """Pixel data could not be read (undecoded, truncated or missing image)."""


class NoFeatureFound(SmartZoomError):
    """The image is too uniform to yield any qualifying region."""


class DetectorLoadFailure(SmartZoomError):
    """The optional face detector could not be initialised or run."""


class InvalidViewport(SmartZoomError):
    """The viewport or element rect has a zero or negative dimension."""
