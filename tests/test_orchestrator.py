"""Tests for the zoom orchestrator (src/player/orchestrator.py).

Tests cover:
- full cycle: waiting -> running -> cooling down
- image swap and mode change cancel everything (last writer wins)
- single live handle, reset to identity before a new timeline
- empty analysis: one bounded retry, then static
- invalid viewport deferral and resume
- corner tour (back-to-back iterations) and static modes
- unexpected detector or cycle errors degrade to the static display
- teardown
"""

import asyncio
from dataclasses import replace
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from src.camera.geometry import HORIZONTAL, Viewport
from src.player.orchestrator import DisplayMode, ZoomOrchestrator, ZoomState
from src.player.sinks import RecordingSink
from src.region_analyzer.face_detector import Detection, NullFaceDetector
from src.region_analyzer.focal import FocalPointSet


def _events(sink):
    return [name for name, _ in sink.events]


@pytest.fixture
def sink():
    return RecordingSink()


@pytest_asyncio.fixture
async def orchestrator(sink, fast_settings):
    orch = ZoomOrchestrator(sink, settings=fast_settings)
    yield orch
    orch.teardown()


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

class TestCycle:

    @pytest.mark.asyncio
    async def test_show_image_waits_then_runs(self, orchestrator, sink, feature_image):
        orchestrator.show_image(feature_image)
        assert orchestrator.state is ZoomState.WAITING
        assert sink.plays == []

        await asyncio.sleep(0.1)
        assert orchestrator.state is ZoomState.RUNNING
        assert len(sink.plays) == 1
        assert orchestrator.handle.alive

    @pytest.mark.asyncio
    async def test_edge_cycle_has_three_stops(self, orchestrator, sink, feature_image):
        orchestrator.show_image(feature_image)
        await asyncio.sleep(0.1)
        timeline = sink.plays[0]
        assert len(timeline) == 8
        assert timeline.duration == pytest.approx(4 * 0.05 + 3 * 0.05)

    @pytest.mark.asyncio
    async def test_finished_cycle_cools_down(self, orchestrator, sink, feature_image):
        orchestrator.show_image(feature_image)
        await asyncio.sleep(0.6)
        assert orchestrator.state is ZoomState.COOLING_DOWN
        assert orchestrator.handle is None
        assert len(sink.plays) == 1

    @pytest.mark.asyncio
    async def test_analysis_is_cached_per_image(self, orchestrator, feature_image):
        analyzer = orchestrator.session.analyzer
        analyzer.analyze = MagicMock(side_effect=analyzer.analyze)
        orchestrator.show_image(feature_image)
        await asyncio.sleep(0.1)
        orchestrator.run_cycle()
        assert analyzer.analyze.call_count == 1

    @pytest.mark.asyncio
    async def test_face_cycle(self, sink, fast_settings, feature_image):
        detector = MagicMock()
        detector.detect.return_value = [Detection(box=(100, 100, 50, 50), confidence=0.8)]
        orch = ZoomOrchestrator(sink, settings=fast_settings, detector=detector)
        orch.show_image(feature_image)
        await asyncio.sleep(0.1)
        assert len(sink.plays[0]) == 4
        orch.teardown()


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class TestCancellation:

    @pytest.mark.asyncio
    async def test_image_swap_cancels_running_cycle(self, orchestrator, sink, feature_image, single_feature_image):
        orchestrator.show_image(feature_image)
        await asyncio.sleep(0.1)
        first = orchestrator.handle

        orchestrator.show_image(single_feature_image)
        assert first.cancelled
        assert orchestrator.state is ZoomState.WAITING
        assert orchestrator.driver.live_handles == 0
        assert sink.transform.is_identity
        assert orchestrator.session.cached_analysis is None

        await asyncio.sleep(0.1)
        assert orchestrator.state is ZoomState.RUNNING
        assert orchestrator.driver.live_handles == 1
        assert _events(sink) == ["play", "reset", "play"]

    @pytest.mark.asyncio
    async def test_restart_resets_before_new_timeline(self, orchestrator, sink, feature_image):
        orchestrator.show_image(feature_image)
        await asyncio.sleep(0.1)
        orchestrator.run_cycle()
        assert _events(sink) == ["play", "reset", "play"]
        assert orchestrator.driver.live_handles == 1

    @pytest.mark.asyncio
    async def test_mode_change_during_wait_drops_timer(self, orchestrator, sink, feature_image):
        orchestrator.show_image(feature_image)
        orchestrator.set_mode(DisplayMode.STATIC)
        await asyncio.sleep(0.1)
        assert sink.plays == []
        assert orchestrator.state is ZoomState.IDLE

    @pytest.mark.asyncio
    async def test_teardown_while_running(self, orchestrator, sink, feature_image):
        orchestrator.show_image(feature_image)
        await asyncio.sleep(0.1)
        orchestrator.teardown()
        assert orchestrator.state is ZoomState.IDLE
        assert orchestrator.handle is None
        assert _events(sink)[-1] == "reset"

        await asyncio.sleep(0.5)
        assert len(sink.plays) == 1
        assert orchestrator.state is ZoomState.IDLE

    @pytest.mark.asyncio
    async def test_stale_timer_is_noop(self, orchestrator, sink, feature_image):
        orchestrator.show_image(feature_image)
        stale_token = orchestrator.session.token
        orchestrator.cancel()
        assert not stale_token.valid
        await asyncio.sleep(0.1)
        assert sink.plays == []


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------

class TestFailures:

    @pytest.mark.asyncio
    async def test_uniform_image_retries_once_then_stays_static(self, orchestrator, sink, uniform_image):
        analyzer = orchestrator.session.analyzer
        analyzer.analyze = MagicMock(side_effect=analyzer.analyze)
        orchestrator.show_image(uniform_image)
        await asyncio.sleep(0.2)
        assert orchestrator.state is ZoomState.IDLE
        assert sink.plays == []
        # featureless result is cached, the retry does not re-scan
        assert analyzer.analyze.call_count == 1

    @pytest.mark.asyncio
    async def test_unavailable_pixels_rescanned_on_retry(self, orchestrator, sink, feature_image):
        analyzer = orchestrator.session.analyzer
        analyzer.analyze = MagicMock(return_value=FocalPointSet.empty("unavailable"))
        orchestrator.show_image(feature_image)
        await asyncio.sleep(0.2)
        assert analyzer.analyze.call_count == 2
        assert orchestrator.state is ZoomState.IDLE
        await asyncio.sleep(0.1)
        assert analyzer.analyze.call_count == 2

    @pytest.mark.asyncio
    async def test_new_image_rearms_retry(self, orchestrator, uniform_image, feature_image, sink):
        orchestrator.show_image(uniform_image)
        await asyncio.sleep(0.2)
        orchestrator.show_image(feature_image)
        await asyncio.sleep(0.1)
        assert orchestrator.state is ZoomState.RUNNING
        assert len(sink.plays) == 1

    @pytest.mark.asyncio
    async def test_crashing_detector_still_animates(self, sink, fast_settings, feature_image):
        detector = MagicMock()
        detector.detect.side_effect = RuntimeError("model crashed")
        orch = ZoomOrchestrator(sink, settings=fast_settings, detector=detector)
        orch.show_image(feature_image)
        await asyncio.sleep(0.1)
        assert orch.state is ZoomState.RUNNING
        assert len(sink.plays[0]) == 8
        orch.teardown()

    @pytest.mark.asyncio
    async def test_unexpected_cycle_error_falls_back_to_static(self, orchestrator, sink, feature_image):
        orchestrator.session.analyzer.analyze = MagicMock(side_effect=RuntimeError("boom"))
        orchestrator.show_image(feature_image)
        await asyncio.sleep(0.1)
        assert orchestrator.state is ZoomState.IDLE
        assert not orchestrator.session.timers
        assert orchestrator.handle is None
        assert sink.plays == []

    @pytest.mark.asyncio
    async def test_invalid_viewport_defers_until_resize(self, sink, fast_settings, feature_image):
        size = {"viewport": Viewport(0, 0)}
        orch = ZoomOrchestrator(sink, settings=fast_settings, viewport_provider=lambda: size["viewport"])
        orch.show_image(feature_image)
        await asyncio.sleep(0.1)
        assert orch.state is ZoomState.IDLE
        assert orch.deferred
        assert sink.plays == []

        size["viewport"] = HORIZONTAL
        orch.viewport_changed()
        await asyncio.sleep(0.05)
        assert orch.state is ZoomState.RUNNING
        assert not orch.deferred
        orch.teardown()

    @pytest.mark.asyncio
    async def test_viewport_change_without_deferral_is_ignored(self, orchestrator, feature_image):
        orchestrator.show_image(feature_image)
        orchestrator.viewport_changed()
        assert orchestrator.state is ZoomState.WAITING
        assert len(orchestrator.session.timers) == 1


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------

class TestModes:

    @pytest.mark.asyncio
    async def test_corner_tour_skips_analysis(self, sink, fast_settings, feature_image):
        orch = ZoomOrchestrator(sink, settings=fast_settings, mode=DisplayMode.CORNER_TOUR)
        orch.session.analyzer.analyze = MagicMock()
        orch.show_image(feature_image)
        await asyncio.sleep(0.05)
        assert orch.state is ZoomState.RUNNING
        orch.session.analyzer.analyze.assert_not_called()
        assert len(sink.plays[0]) == 10
        orch.teardown()

    @pytest.mark.asyncio
    async def test_corner_tour_plays_back_to_back(self, sink, fast_settings, feature_image):
        orch = ZoomOrchestrator(sink, settings=fast_settings, mode=DisplayMode.CORNER_TOUR)
        orch.show_image(feature_image)
        await asyncio.sleep(0.6)
        assert orch.state is ZoomState.RUNNING
        assert _events(sink) == ["play", "play"]

        await asyncio.sleep(0.45)
        assert orch.state is ZoomState.COOLING_DOWN
        assert len(sink.plays) == 2
        orch.teardown()

    @pytest.mark.asyncio
    async def test_single_tour_iteration_cools_down(self, sink, fast_settings, feature_image):
        settings = replace(fast_settings, tour_iterations=1)
        orch = ZoomOrchestrator(sink, settings=settings, mode=DisplayMode.CORNER_TOUR)
        orch.show_image(feature_image)
        await asyncio.sleep(0.6)
        assert orch.state is ZoomState.COOLING_DOWN
        assert len(sink.plays) == 1
        orch.teardown()

    @pytest.mark.asyncio
    async def test_smart_zoom_ignores_tour_iterations(self, orchestrator, sink, feature_image):
        orchestrator.show_image(feature_image)
        await asyncio.sleep(0.6)
        assert orchestrator.state is ZoomState.COOLING_DOWN
        assert len(sink.plays) == 1

    @pytest.mark.asyncio
    async def test_static_mode_never_animates(self, sink, fast_settings, feature_image):
        orch = ZoomOrchestrator(sink, settings=fast_settings, mode=DisplayMode.STATIC)
        orch.show_image(feature_image)
        await asyncio.sleep(0.1)
        assert orch.state is ZoomState.IDLE
        assert sink.plays == []
        orch.teardown()

    @pytest.mark.asyncio
    async def test_mode_switch_restarts_current_image(self, orchestrator, sink, feature_image):
        orchestrator.show_image(feature_image)
        await asyncio.sleep(0.1)
        orchestrator.set_mode(DisplayMode.CORNER_TOUR)
        assert _events(sink)[-1] == "reset"
        await asyncio.sleep(0.05)
        assert orchestrator.state is ZoomState.RUNNING
        assert len(sink.plays[-1]) == 10
        assert orchestrator.driver.live_handles == 1

    @pytest.mark.asyncio
    async def test_mode_switch_without_image_stays_idle(self, orchestrator):
        orchestrator.set_mode(DisplayMode.CORNER_TOUR)
        assert orchestrator.state is ZoomState.IDLE
        assert not orchestrator.session.timers


class TestFromSettings:

    def test_disabled_face_detection_uses_null_detector(self, sink, fast_settings):
        orch = ZoomOrchestrator.from_settings(sink, fast_settings)
        assert isinstance(orch.session.analyzer.detector, NullFaceDetector)
