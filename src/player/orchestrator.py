"""Zoom orchestrator — decides when a camera cycle starts, stops and repeats.

States:
  IDLE         nothing scheduled, full-frame static display
  WAITING      pre-zoom delay (or retry backoff) timer pending
  RUNNING      one animation handle playing
  COOLING_DOWN repeat timer pending after a finished cycle

Any image change, mode change or teardown cancels everything and returns to
IDLE before the new image's pipeline is scheduled (last writer wins). The
corner tour plays `tour_iterations` times back to back before cooling down.
"""

import asyncio
import logging
from enum import Enum

from src.camera.geometry import HORIZONTAL, fit_art_rect
from src.camera.transform import point_to_transform, target_scale
from src.choreography.builder import build, corner_tour, timing_for
from src.common.errors import InvalidViewport
from src.config.settings import ZoomSettings, load_settings
from src.player.driver import AnimationDriver, CancellationToken
from src.region_analyzer.analyzer import RegionAnalyzer
from src.region_analyzer.face_detector import NullFaceDetector, load_face_detector
from src.region_analyzer.focal import FocalKind, FocalPointSet

logger = logging.getLogger(__name__)


class ZoomState(Enum):
    IDLE = "idle"
    WAITING = "waiting"
    RUNNING = "running"
    COOLING_DOWN = "cooling_down"


class DisplayMode(Enum):
    SMART_ZOOM = "smart_zoom"    # analysis-driven focal tour (now playing)
    CORNER_TOUR = "corner_tour"  # preset quadrant tour (library)
    STATIC = "static"            # never animate


class ZoomSession:
    """Everything one display session shares: settings, capabilities, timers.

    The session token is replaced whenever a cycle is cancelled or started, so
    every timer scheduled under an older token fires as a no-op.
    """

    def __init__(self, settings=None, detector=None, viewport_provider=None, rect_provider=None):
        self.settings = settings or ZoomSettings()
        self.analyzer = RegionAnalyzer(detector or NullFaceDetector(), self.settings)
        self.viewport_provider = viewport_provider or (lambda: HORIZONTAL)
        self.rect_provider = rect_provider or (lambda: fit_art_rect(self.viewport_provider()))
        self.token = CancellationToken()
        self.timers = set()
        self.image = None
        self.cached_analysis = None

    def renew_token(self):
        self.token.invalidate()
        self.token = CancellationToken()
        return self.token

    def schedule(self, delay, callback):
        """Run callback after delay seconds unless the session token changes."""
        token = self.token
        loop = asyncio.get_running_loop()
        holder = {}

        def _fire():
            self.timers.discard(holder["timer"])
            if token.valid:
                callback()

        holder["timer"] = loop.call_later(delay, _fire)
        self.timers.add(holder["timer"])
        return holder["timer"]

    def cancel_timers(self):
        for timer in self.timers:
            timer.cancel()
        self.timers.clear()


class ZoomOrchestrator:
    """State machine owning the single animation handle slot."""

    def __init__(self, sink, settings=None, detector=None, viewport_provider=None,
                 rect_provider=None, mode=DisplayMode.SMART_ZOOM):
        self.session = ZoomSession(settings, detector, viewport_provider, rect_provider)
        self.driver = AnimationDriver(sink)
        self.mode = mode
        self.state = ZoomState.IDLE
        self.handle = None
        self.retries_left = 1
        self.tour_repeats_left = self.session.settings.tour_iterations - 1
        self.deferred = False

    @classmethod
    def from_settings(cls, sink, settings=None, **kwargs):
        """Build an orchestrator with the face detector the settings ask for."""
        settings = settings or load_settings()
        return cls(sink, settings=settings, detector=load_face_detector(settings), **kwargs)

    @property
    def settings(self):
        return self.session.settings

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def show_image(self, image):
        """A new image has finished loading and is on screen."""
        self.cancel()
        self.session.image = image
        self.session.cached_analysis = None
        self.retries_left = 1
        self.tour_repeats_left = self.settings.tour_iterations - 1
        self._schedule_first_cycle()

    def set_mode(self, mode):
        """Switch display mode; restarts the pipeline for the current image."""
        self.cancel()
        self.mode = mode
        self.retries_left = 1
        self.tour_repeats_left = self.settings.tour_iterations - 1
        if self.session.image is not None:
            self._schedule_first_cycle()

    def viewport_changed(self):
        """Re-try a cycle that was deferred for lack of a usable viewport."""
        if self.deferred and self.session.image is not None:
            logger.info("Viewport changed, resuming deferred zoom cycle")
            self.deferred = False
            self._schedule(0, ZoomState.WAITING)

    def teardown(self):
        """Stop everything and forget the current image."""
        self.cancel()
        self.session.image = None
        self.session.cached_analysis = None

    def cancel(self):
        """Cancel timers and any running animation; reset to identity."""
        self.session.renew_token()
        self.session.cancel_timers()
        if self.handle is not None:
            self.handle.cancel()
            self.handle = None
        self.driver.stop()
        self.deferred = False
        self.state = ZoomState.IDLE

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _schedule(self, delay, state):
        self.state = state
        self.session.schedule(delay, self.run_cycle)

    def _schedule_first_cycle(self):
        if self.mode is DisplayMode.SMART_ZOOM:
            self._schedule(self.settings.initial_delay, ZoomState.WAITING)
        elif self.mode is DisplayMode.CORNER_TOUR:
            self._schedule(0, ZoomState.WAITING)

    def _retry_or_idle(self, reason):
        if self.retries_left > 0:
            self.retries_left -= 1
            logger.warning(f"Zoom cycle skipped ({reason}), retrying in {self.settings.retry_backoff}s")
            self._schedule(self.settings.retry_backoff, ZoomState.WAITING)
        else:
            logger.warning(f"Zoom cycle skipped ({reason}), staying static until the image changes")
            self.state = ZoomState.IDLE

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def _focal_points(self):
        if self.mode is DisplayMode.CORNER_TOUR:
            return FocalPointSet(kind=FocalKind.CORNER, points=tuple(corner_tour()))
        if self.session.cached_analysis is None:
            logger.info("Starting focal region analysis")
            self.session.cached_analysis = self.session.analyzer.analyze(self.session.image)
        return self.session.cached_analysis

    def _poses(self, focal_set):
        viewport = self.session.viewport_provider()
        rect = self.session.rect_provider()
        depth = self.settings.tour_zoom if focal_set.kind is FocalKind.CORNER else self.settings.zoom_depth
        scale = target_scale(viewport, rect, depth, self.settings.cover_margin)
        max_scale = scale * self.settings.centering_zoom_cap
        return [point_to_transform(p, rect, viewport, scale, max_scale) for p in focal_set]

    def run_cycle(self):
        """Analyse (once per image), solve, build and play one cycle.

        Runs synchronously inside a single timer callback. An unexpected
        error cancels the cycle and leaves the static display up.
        """
        try:
            self._run_cycle()
        except Exception:
            logger.exception("Zoom cycle failed, staying static")
            self.cancel()

    def _run_cycle(self):
        if self.mode is DisplayMode.STATIC or self.session.image is None:
            self.state = ZoomState.IDLE
            return

        focal_set = self._focal_points()
        if not focal_set:
            # Unreadable pixels may decode later; featureless art will not change.
            if focal_set.reason == "unavailable":
                self.session.cached_analysis = None
            self._retry_or_idle(focal_set.reason)
            return

        try:
            poses = self._poses(focal_set)
        except InvalidViewport as e:
            logger.warning(f"Deferring zoom cycle: {e}")
            self.state = ZoomState.IDLE
            self.deferred = True
            return

        timeline = build(poses, timing_for(focal_set.kind, self.settings))
        logger.info(f"Executing {focal_set.kind.value} zoom over {timeline.duration:.0f}s")

        self.driver.stop()
        token = self.session.renew_token()
        self.session.cancel_timers()
        self.handle = self.driver.play(timeline, token=token, on_finish=self._on_finish)
        self.state = ZoomState.RUNNING

    def _on_finish(self, handle):
        if handle is not self.handle:
            return
        self.handle = None
        self.retries_left = 1
        if self.mode is DisplayMode.CORNER_TOUR and self.tour_repeats_left > 0:
            self.tour_repeats_left -= 1
            self._schedule(0, ZoomState.WAITING)
            return
        self.tour_repeats_left = self.settings.tour_iterations - 1
        self._schedule(self.settings.repeat_delay, ZoomState.COOLING_DOWN)
