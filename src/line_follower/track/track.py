"""Track — closed centerline with nearest-point and progress queries."""

from __future__ import annotations

import math
from collections.abc import Sequence

from line_follower.track.models import StartLine, TrackPoint, TrackStyle
from line_follower.track.spline import (
    DEFAULT_CONTROL_POINTS,
    SAMPLES_PER_SEGMENT,
    Point,
    sample_closed_spline,
)

LINE_WIDTH = 10
START_LINE_HALF_LENGTH = 50.0
ON_TRACK_TOLERANCE = 40.0

_SIMPLE_STEPS = 100
_OVAL_STEPS = 200


class Track:
    """Generates and owns the ordered centerline samples of the track.

    The full point sequence is regenerated whenever the canvas size changes;
    individual points are never edited in place.

    Args:
        width: Canvas width in pixels.
        height: Canvas height in pixels.
        style: Shape of the generated track.
        control_points: Ring used by :attr:`TrackStyle.CUSTOM`
            (first point repeated at the end).
        samples_per_segment: Spline samples between consecutive control points.
        line_width: Painted line width in pixels.
    """

    def __init__(
        self,
        width: float,
        height: float,
        style: TrackStyle = TrackStyle.CUSTOM,
        control_points: Sequence[Point] = DEFAULT_CONTROL_POINTS,
        samples_per_segment: int = SAMPLES_PER_SEGMENT,
        line_width: int = LINE_WIDTH,
    ) -> None:
        self.style = style
        self.line_width = line_width
        self._control_points = tuple(control_points)
        self._samples_per_segment = samples_per_segment
        self._width = width
        self._height = height
        self._points: list[TrackPoint] = []
        self._total_length = 0.0
        self._generate()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def points(self) -> list[TrackPoint]:
        """Ordered centerline samples (index order = travel order)."""
        return self._points

    @property
    def total_length(self) -> float:
        """Sum of distances between consecutive samples."""
        return self._total_length

    @property
    def size(self) -> tuple[float, float]:
        """Canvas dimensions the track was generated for."""
        return self._width, self._height

    def update_canvas(self, width: float, height: float) -> None:
        """Regenerate the track for a new canvas size; non-positive sizes are ignored."""
        if width <= 0 or height <= 0:
            return
        self._width = width
        self._height = height
        self._generate()

    def find_closest_point(self, x: float, y: float) -> tuple[TrackPoint, int, float]:
        """Linear scan for the sample nearest to ``(x, y)``.

        Returns:
            ``(point, index, distance)``.
        """
        best_index = 0
        best_distance = math.inf
        for i, pt in enumerate(self._points):
            d = pt.distance_to(x, y)
            if d < best_distance:
                best_distance = d
                best_index = i
        return self._points[best_index], best_index, best_distance

    def find_continuous_t(self, x: float, y: float) -> float:
        """Progress value for ``(x, y)``: nearest sample index / ``(count - 1)``."""
        if not self._points:
            return 0.0
        _, index, _ = self.find_closest_point(x, y)
        return self.progress_at(index)

    def progress_at(self, index: int) -> float:
        """Progress value of the sample at *index*: ``index / (count - 1)``."""
        if len(self._points) <= 1:
            return 0.0
        return index / (len(self._points) - 1)

    def is_on_track(self, x: float, y: float, tolerance: float = ON_TRACK_TOLERANCE) -> bool:
        """True when ``(x, y)`` lies within *tolerance* of the centerline."""
        _, _, distance = self.find_closest_point(x, y)
        return distance <= tolerance

    def point_at(self, t: float) -> TrackPoint:
        """Return the sample at progress *t* (clamped into [0, 1])."""
        t = min(max(t, 0.0), 1.0)
        index = min(int(t * (len(self._points) - 1)), len(self._points) - 1)
        return self._points[index]

    def tangent_at(self, index: int) -> tuple[float, float]:
        """Direction vector from sample *index* to the next sample (wrapping)."""
        here = self._points[index]
        nxt = self._points[(index + 1) % len(self._points)]
        return nxt.x - here.x, nxt.y - here.y

    def start_line(self, half_length: float = START_LINE_HALF_LENGTH) -> StartLine:
        """Segment perpendicular to the tangent at ``t = 0``, centred on the first sample."""
        p0 = self._points[0]
        p1 = self._points[1] if len(self._points) > 1 else p0
        dx = p1.x - p0.x
        dy = p1.y - p0.y
        length = math.hypot(dx, dy)
        if length == 0:
            length = 1.0

        perp_x = -dy / length
        perp_y = dx / length
        return StartLine(
            x1=p0.x + perp_x * half_length,
            y1=p0.y + perp_y * half_length,
            x2=p0.x - perp_x * half_length,
            y2=p0.y - perp_y * half_length,
        )

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _generate(self) -> None:
        if self.style is TrackStyle.SIMPLE:
            points = self._simple_points()
        elif self.style is TrackStyle.OVAL:
            points = self._oval_points()
        else:
            points = sample_closed_spline(
                self._control_points,
                self._width,
                self._height,
                samples_per_segment=self._samples_per_segment,
            )
        self._points = points
        self._total_length = sum(
            math.hypot(b.x - a.x, b.y - a.y) for a, b in zip(points, points[1:])
        )

    def _simple_points(self) -> list[TrackPoint]:
        y = float(int(self._height / 2))
        return [
            TrackPoint(x=(self._width - 100) * (i / _SIMPLE_STEPS) + 50, y=y, t=i / _SIMPLE_STEPS)
            for i in range(_SIMPLE_STEPS)
        ]

    def _oval_points(self) -> list[TrackPoint]:
        cx = self._width / 2
        cy = self._height / 2
        rx = self._width / 3
        ry = self._height / 3
        points: list[TrackPoint] = []
        for i in range(_OVAL_STEPS):
            t = i / _OVAL_STEPS
            angle = t * 2 * math.pi
            points.append(TrackPoint(x=cx + rx * math.cos(angle), y=cy + ry * math.sin(angle), t=t))
        return points
