"""Focal point types produced by the region analyzer."""

from dataclasses import dataclass
from enum import Enum


class FocalKind(Enum):
    FACE = "face"
    EDGE = "edge"
    CORNER = "corner"  # preset quadrant tour, never produced by analysis


@dataclass(frozen=True)
class FocalPoint:
    """Region of interest as percentages (0-100) of the native image size."""

    kind: FocalKind
    x_pct: float
    y_pct: float


@dataclass(frozen=True)
class FocalPointSet:
    """Ordered, mutually non-overlapping focal points for one image.

    Empty sets carry the reason analysis was skipped: "unavailable" when the
    pixels could not be read, "no_feature" when nothing qualified.
    """

    kind: FocalKind
    points: tuple = ()
    reason: str = None

    def __bool__(self):
        return len(self.points) > 0

    def __len__(self):
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    @classmethod
    def empty(cls, reason, kind=FocalKind.EDGE):
        return cls(kind=kind, points=(), reason=reason)
