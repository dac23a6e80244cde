"""Simulation configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from line_follower.track.models import TrackStyle


@dataclass
class GainLimits:
    """Inclusive ranges that gains and base velocity are clamped into."""

    kp: tuple[float, float] = (0.0, 5.0)
    ki: tuple[float, float] = (0.0, 5.0)
    kd: tuple[float, float] = (0.0, 5.0)
    kslip: tuple[float, float] = (0.0, 5.0)
    base_velocity: tuple[float, float] = (100.0, 4000.0)

    def clamp(self, name: str, value: float) -> float:
        """Clamp *value* into the range for *name*.

        Raises:
            ValueError: If *name* is not a limited parameter.
        """
        try:
            low, high = getattr(self, name)
        except AttributeError:
            raise ValueError(f"Unknown parameter: {name!r}") from None
        return min(max(value, low), high)


@dataclass
class SimulationConfig:
    """Engine settings.  Distances are canvas pixels, times simulated ms."""

    canvas_width: float = 900.0
    canvas_height: float = 680.0
    track_style: TrackStyle = TrackStyle.CUSTOM
    base_velocity: float = 200.0
    update_rate_ms: float = 50.0          # nominal tick length
    error_ceiling: float = 100.0          # |tracking error| is clamped to this
    history_capacity: int = 500
    auto_tune_interval_ticks: int = 10
    motor_test_speed: float = 120.0
    sensor_detection_margin: float = 5.0  # beyond half the line width
    limits: GainLimits = field(default_factory=GainLimits)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SimulationConfig:
        """Build a config from ``LINE_FOLLOWER_*`` variables, falling back to defaults.

        Reads ``LINE_FOLLOWER_CANVAS_WIDTH``, ``LINE_FOLLOWER_CANVAS_HEIGHT``
        and ``LINE_FOLLOWER_TICK_MS``.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            canvas_width=float(env.get("LINE_FOLLOWER_CANVAS_WIDTH", defaults.canvas_width)),
            canvas_height=float(env.get("LINE_FOLLOWER_CANVAS_HEIGHT", defaults.canvas_height)),
            update_rate_ms=float(env.get("LINE_FOLLOWER_TICK_MS", defaults.update_rate_ms)),
        )
