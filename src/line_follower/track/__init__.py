"""Track geometry: spline generation, nearest-point and progress queries."""

from line_follower.track.models import StartLine, TrackPoint, TrackStyle
from line_follower.track.spline import DEFAULT_CONTROL_POINTS, evaluate_closed, sample_closed_spline
from line_follower.track.track import Track

__all__ = [
    "DEFAULT_CONTROL_POINTS",
    "StartLine",
    "Track",
    "TrackPoint",
    "TrackStyle",
    "evaluate_closed",
    "sample_closed_spline",
]
