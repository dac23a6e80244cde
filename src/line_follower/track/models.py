"""Track data structures."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class TrackStyle(str, Enum):
    """Shape used when generating the track centerline."""

    SIMPLE = "simple"
    """Straight horizontal line across the canvas (open, for sensor tests)."""

    OVAL = "oval"
    """Ellipse centred on the canvas."""

    CUSTOM = "custom"
    """Closed Catmull-Rom circuit through the built-in control points."""


@dataclass(frozen=True)
class TrackPoint:
    """A single sample on the track centerline.

    Coordinates are canvas pixels; ``t`` is the sample's position along the
    closed track in ``[0, 1)``.
    """

    x: float
    """X coordinate."""

    y: float
    """Y coordinate."""

    t: float = 0.0
    """Progress parameter along the track [0.0, 1.0)."""

    def distance_to(self, x: float, y: float) -> float:
        """Euclidean distance from this point to ``(x, y)``."""
        return math.hypot(self.x - x, self.y - y)


@dataclass(frozen=True)
class StartLine:
    """Start/finish segment perpendicular to the track tangent at ``t = 0``."""

    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def center(self) -> tuple[float, float]:
        """Midpoint of the segment (the ``t = 0`` track point)."""
        return (self.x1 + self.x2) / 2.0, (self.y1 + self.y2) / 2.0
