"""Animation driver — plays one timeline at a time on the asyncio loop.

Playback sleeps through each segment (every move and every hold is a
suspension point). Cancelling a handle is immediate: its token goes invalid,
its task is cancelled and the sink snaps back to identity. A wake-up that
arrives after cancellation finds an invalid token and does nothing.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class CancellationToken:
    """One-way validity flag shared by everything scheduled for a cycle."""

    __slots__ = ("_valid",)

    def __init__(self):
        self._valid = True

    @property
    def valid(self):
        return self._valid

    def invalidate(self):
        self._valid = False


class AnimationHandle:
    """A single in-flight timeline playback."""

    def __init__(self, timeline, sink, token, on_finish=None):
        self.timeline = timeline
        self.sink = sink
        self.token = token
        self.on_finish = on_finish
        self.segment_index = 0
        self._task = None
        self._done = asyncio.get_running_loop().create_future()

    @property
    def alive(self):
        return self.token.valid and not self._done.done()

    @property
    def finished(self):
        return self._done.done() and self._done.result()

    @property
    def cancelled(self):
        return self._done.done() and not self._done.result()

    def start(self):
        self.sink.play(self.timeline)
        self._task = asyncio.ensure_future(self._run_safe())
        return self

    async def _run_safe(self):
        try:
            await self._run()
        except Exception:
            logger.exception("Animation playback failed")
            if not self._done.done():
                self.token.invalidate()
                self._done.set_result(False)
                self.sink.reset()

    async def _run(self):
        for index, (_start, _end, seconds) in enumerate(self.timeline.segments()):
            if not self.token.valid:
                return
            self.segment_index = index
            if seconds > 0:
                await asyncio.sleep(seconds)
        if not self.token.valid or self._done.done():
            return
        self._done.set_result(True)
        logger.info(f"Animation finished after {self.timeline.duration:.1f}s")
        if self.on_finish is not None:
            self.on_finish(self)

    def cancel(self):
        """Stop playback now and reset the sink. Safe to call repeatedly."""
        if self._done.done():
            return
        self.token.invalidate()
        self._done.set_result(False)
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.sink.reset()

    async def wait(self):
        """Wait for playback to end. True when finished, False when cancelled."""
        return await asyncio.shield(self._done)


class AnimationDriver:
    """Owns the sink and guarantees at most one live handle."""

    def __init__(self, sink):
        self.sink = sink
        self.active = None

    def play(self, timeline, token=None, on_finish=None):
        """Cancel whatever is playing, then start a new timeline.

        Args:
            timeline: Timeline to play.
            token: CancellationToken for this cycle. A fresh one if omitted.
            on_finish: Callback(handle) run on natural completion only.

        Returns:
            AnimationHandle.
        """
        self.stop()
        handle = AnimationHandle(timeline, self.sink, token or CancellationToken(), on_finish)
        self.active = handle
        return handle.start()

    def stop(self):
        """Cancel the active handle, if any."""
        if self.active is not None:
            self.active.cancel()
            self.active = None

    @property
    def live_handles(self):
        return 1 if self.active is not None and self.active.alive else 0
