"""Closed Catmull-Rom spline sampling over a ring of control points.

The control polygon is scaled uniformly into the target canvas (aspect ratio
preserved, centred, with a small margin on every side) and then sampled at a
fixed number of points per segment.  Samples are parameterised by index, not
by arc length, so ``t`` spacing is only approximately uniform in distance.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from line_follower.track.models import TrackPoint

Point = tuple[float, float]

# Built-in circuit on an 800x500 reference canvas.  The first point is the
# start/finish line and is repeated at the end to close the loop.
DEFAULT_CONTROL_POINTS: tuple[Point, ...] = (
    (120, 380),
    (80, 300),
    (90, 180),
    (160, 120),
    (300, 110),
    (450, 110),
    (550, 150),
    (600, 120),
    (680, 180),
    (650, 250),
    (580, 300),
    (650, 380),
    (550, 420),
    (450, 420),
    (350, 350),
    (280, 420),
    (180, 420),
    (120, 380),
)

MARGIN_FRACTION = 0.02
SAMPLES_PER_SEGMENT = 50


# ---------------------------------------------------------------------------
# Geometry primitives
# ---------------------------------------------------------------------------

def unique_ring(control_points: Sequence[Point]) -> list[Point]:
    """Return the control ring without the closing duplicate.

    Raises:
        ValueError: If fewer than 3 distinct ring points remain.
    """
    ring = [(float(x), float(y)) for x, y in control_points]
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring = ring[:-1]
    if len(ring) < 3:
        raise ValueError("A closed track needs at least 3 control points")
    return ring


def fit_to_canvas(
    control_points: Sequence[Point],
    width: float,
    height: float,
    margin: float = MARGIN_FRACTION,
) -> list[Point]:
    """Uniformly scale and centre *control_points* inside ``width x height``.

    The scale is the smaller of the independent X and Y factors so the aspect
    ratio is preserved; *margin* is the fraction of each dimension kept free
    on every side.

    Raises:
        ValueError: If the control points have a zero-area bounding box in
            both dimensions.
    """
    xs = [p[0] for p in control_points]
    ys = [p[1] for p in control_points]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    ref_w = max_x - min_x
    ref_h = max_y - min_y

    target_w = width * (1.0 - 2.0 * margin)
    target_h = height * (1.0 - 2.0 * margin)

    scale_x = target_w / ref_w if ref_w > 0 else math.inf
    scale_y = target_h / ref_h if ref_h > 0 else math.inf
    scale = min(scale_x, scale_y)
    if math.isinf(scale):
        raise ValueError("Control points are degenerate (all coincident)")

    offset_x = (width - ref_w * scale) / 2.0
    offset_y = (height - ref_h * scale) / 2.0
    return [
        ((x - min_x) * scale + offset_x, (y - min_y) * scale + offset_y)
        for x, y in control_points
    ]


def catmull_rom(p0: Point, p1: Point, p2: Point, p3: Point, u: float) -> Point:
    """Evaluate the uniform Catmull-Rom segment between *p1* and *p2* at ``u`` in [0, 1]."""
    u2 = u * u
    u3 = u2 * u
    a0 = -0.5 * u3 + u2 - 0.5 * u
    a1 = 1.5 * u3 - 2.5 * u2 + 1.0
    a2 = -1.5 * u3 + 2.0 * u2 + 0.5 * u
    a3 = 0.5 * u3 - 0.5 * u2
    return (
        a0 * p0[0] + a1 * p1[0] + a2 * p2[0] + a3 * p3[0],
        a0 * p0[1] + a1 * p1[1] + a2 * p2[1] + a3 * p3[1],
    )


def evaluate_closed(ring: Sequence[Point], t: float) -> Point:
    """Evaluate the closed spline through *ring* at global parameter ``t`` in [0, 1].

    Neighbour indices wrap around the ring, so the curve is continuous across
    the closing seam: ``evaluate_closed(ring, 1.0) == ring[0]``.
    """
    n = len(ring)
    scaled = t * n
    seg = math.floor(scaled)
    u = scaled - seg
    if seg >= n:
        seg = n - 1
        u = 1.0
    elif seg < 0:
        seg = 0
        u = 0.0

    return catmull_rom(
        ring[(seg - 1) % n],
        ring[seg % n],
        ring[(seg + 1) % n],
        ring[(seg + 2) % n],
        u,
    )


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------

def sample_closed_spline(
    control_points: Sequence[Point],
    width: float,
    height: float,
    samples_per_segment: int = SAMPLES_PER_SEGMENT,
    margin: float = MARGIN_FRACTION,
) -> list[TrackPoint]:
    """Generate the ordered centerline samples for a closed control polygon.

    Args:
        control_points: Ring of control points, first point repeated at the end.
        width: Target canvas width.
        height: Target canvas height.
        samples_per_segment: Samples between consecutive control points.
        margin: Free fraction kept on each side of the canvas.

    Returns:
        ``(len(ring) * samples_per_segment)`` :class:`TrackPoint` objects with
        ``t = i / total`` in ``[0, 1)``.

    Raises:
        ValueError: If *samples_per_segment* < 1 or the control ring is invalid.
    """
    if samples_per_segment < 1:
        raise ValueError("samples_per_segment must be >= 1")

    ring = unique_ring(control_points)
    scaled = fit_to_canvas(ring, width, height, margin)
    total = len(ring) * samples_per_segment

    points: list[TrackPoint] = []
    for i in range(total):
        t = i / total
        x, y = evaluate_closed(scaled, t)
        points.append(TrackPoint(x=x, y=y, t=t))
    return points
