"""Shared test fixtures for the smart zoom test suite."""

import shutil
import tempfile

import pytest
from PIL import Image, ImageDraw

from src.camera.geometry import ElementRect, Viewport
from src.config.settings import ZoomSettings

# Centres (in percent) of the coloured blocks drawn by `feature_image`
FEATURE_CENTRES = [(15.0, 15.0), (75.0, 25.0), (40.0, 75.0)]


@pytest.fixture
def tmp_dir():
    """Create a temporary directory that's cleaned up after the test."""
    d = tempfile.mkdtemp()
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def uniform_image():
    """A flat single-colour cover with nothing to look at."""
    return Image.new("RGB", (400, 400), (200, 40, 40))


@pytest.fixture
def feature_centres():
    return list(FEATURE_CENTRES)


@pytest.fixture
def feature_image():
    """Black 400x400 cover with three well separated red blocks."""
    img = Image.new("RGB", (400, 400), (0, 0, 0))
    draw = ImageDraw.Draw(img)
    for cx, cy in FEATURE_CENTRES:
        x, y = cx * 4, cy * 4
        draw.rectangle([x - 20, y - 20, x + 19, y + 19], fill=(255, 0, 0))
    return img


@pytest.fixture
def single_feature_image():
    """Black cover with one red block near the top-left."""
    img = Image.new("RGB", (400, 400), (0, 0, 0))
    ImageDraw.Draw(img).rectangle([40, 40, 79, 79], fill=(255, 0, 0))
    return img


@pytest.fixture
def viewport():
    return Viewport(width=1920, height=1080)


@pytest.fixture
def rect():
    return ElementRect(width=1000, height=700)


@pytest.fixture
def fast_settings():
    """Settings with timings short enough for event loop tests."""
    return ZoomSettings(
        initial_delay=0.02,
        move_duration=0.05,
        hold_face=0.05,
        hold_edge=0.05,
        repeat_delay=1.0,
        retry_backoff=0.02,
        tour_move=0.05,
        tour_hold=0.05,
        face_detection=False,
    )
