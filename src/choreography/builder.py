"""Choreography builder — turns camera poses into a timed keyframe timeline.

Shape of every timeline:

    identity -> [move -> pose_i -> hold] x N -> move -> identity

Offsets come from the timing constants at build time, so changing a move or
hold duration never means recomputing percentages by hand.
"""

import bisect
from dataclasses import dataclass

from src.camera.transform import IDENTITY, interpolate
from src.choreography.easing import get_easing
from src.region_analyzer.focal import FocalKind, FocalPoint

MOVE_EASING = "standard"
HOLD_EASING = "linear"

CORNER_POINTS = ((25.0, 25.0), (75.0, 25.0), (75.0, 75.0), (25.0, 75.0))


@dataclass(frozen=True)
class ChoreographyTiming:
    """Seconds spent travelling between poses and resting on each pose."""

    move: float
    hold: float


@dataclass(frozen=True)
class Keyframe:
    """Pose at a normalised offset; easing applies to the segment that follows."""

    offset: float
    transform: object
    easing: str = MOVE_EASING


class Timeline:
    """Ordered keyframes plus the total duration in seconds."""

    def __init__(self, keyframes, duration):
        if len(keyframes) < 2:
            raise ValueError("A timeline needs at least two keyframes")
        if duration <= 0:
            raise ValueError(f"Timeline duration must be positive, got {duration}")
        self.keyframes = tuple(keyframes)
        self.duration = float(duration)
        self._offsets = [k.offset for k in self.keyframes]

    def __len__(self):
        return len(self.keyframes)

    def __repr__(self):
        return f"Timeline({len(self.keyframes)} keyframes, {self.duration:.1f}s)"

    @property
    def transforms(self):
        return [k.transform for k in self.keyframes]

    def segments(self):
        """Yield (start_keyframe, end_keyframe, seconds) for each segment."""
        for start, end in zip(self.keyframes, self.keyframes[1:]):
            yield start, end, (end.offset - start.offset) * self.duration

    def sample(self, seconds):
        """Eased camera transform at a point in time.

        Args:
            seconds: Elapsed time; clamped to [0, duration].

        Returns:
            CameraTransform.
        """
        offset = max(0.0, min(1.0, seconds / self.duration))
        if offset >= 1.0:
            return self.keyframes[-1].transform
        idx = bisect.bisect_right(self._offsets, offset) - 1
        start, end = self.keyframes[idx], self.keyframes[idx + 1]
        span = end.offset - start.offset
        local = (offset - start.offset) / span
        return interpolate(start.transform, end.transform, get_easing(start.easing)(local))


def timing_for(kind, settings):
    """Move/hold durations for a focal point kind."""
    if kind is FocalKind.FACE:
        return ChoreographyTiming(move=settings.move_duration, hold=settings.hold_face)
    if kind is FocalKind.CORNER:
        return ChoreographyTiming(move=settings.tour_move, hold=settings.tour_hold)
    return ChoreographyTiming(move=settings.move_duration, hold=settings.hold_edge)


def total_duration(pose_count, timing):
    """(N + 1) moves and N holds."""
    return (pose_count + 1) * timing.move + pose_count * timing.hold


def build(poses, timing):
    """Build a timeline visiting each pose in order.

    Args:
        poses: Sequence of CameraTransform, one per focal point.
        timing: ChoreographyTiming.

    Returns:
        Timeline starting and ending on the identity transform.

    Raises:
        ValueError: If there are no poses or the move duration is not positive.
    """
    poses = list(poses)
    if not poses:
        raise ValueError("Cannot choreograph an empty pose list")
    if timing.move <= 0:
        raise ValueError(f"Move duration must be positive, got {timing.move}")

    duration = total_duration(len(poses), timing)
    keyframes = [Keyframe(0.0, IDENTITY, MOVE_EASING)]
    elapsed = 0.0

    for pose in poses:
        elapsed += timing.move
        if timing.hold > 0:
            keyframes.append(Keyframe(elapsed / duration, pose, HOLD_EASING))
            elapsed += timing.hold
        keyframes.append(Keyframe(elapsed / duration, pose, MOVE_EASING))

    keyframes.append(Keyframe(1.0, IDENTITY, MOVE_EASING))
    return Timeline(keyframes, duration)


def corner_tour():
    """The four quadrant focal points visited in library mode, clockwise."""
    return [FocalPoint(kind=FocalKind.CORNER, x_pct=x, y_pct=y) for x, y in CORNER_POINTS]
