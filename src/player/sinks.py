"""Compositor sinks — whatever actually shows the camera motion.

The core never renders. It hands a Timeline to a sink and tells the sink to
snap back to identity when playback is cancelled.
"""

from src.camera.transform import IDENTITY


class CompositorSink:
    """Interface for animation sinks."""

    def play(self, timeline):
        """Start rendering a timeline from its first keyframe."""
        raise NotImplementedError

    def reset(self):
        """Drop any running animation and show the identity transform."""
        raise NotImplementedError


class RecordingSink(CompositorSink):
    """In-memory sink that logs calls. Used for headless runs and tests."""

    def __init__(self):
        self.events = []
        self.timeline = None
        self.transform = IDENTITY

    def play(self, timeline):
        self.events.append(("play", timeline))
        self.timeline = timeline
        self.transform = timeline.keyframes[0].transform

    def reset(self):
        self.events.append(("reset", None))
        self.timeline = None
        self.transform = IDENTITY

    @property
    def plays(self):
        return [payload for name, payload in self.events if name == "play"]
