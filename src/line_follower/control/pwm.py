"""PWM motor model: dead zone, power-law response and rate-limited inertia."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass
class PWMConfig:
    """Motor/driver characteristics."""

    frequency_hz: float = 1000.0
    dead_zone_percent: float = 15.0   # below this duty the motor does not turn
    max_duty_percent: float = 100.0
    curve_exponent: float = 1.2       # > 1: concave response above the dead zone
    acceleration_per_ms: float = 3.0  # max speed change per simulated ms


class PWMSimulator:
    """Converts between target speeds and duty cycles and applies inertia."""

    def __init__(self, config: PWMConfig | None = None) -> None:
        self.config = config or PWMConfig()

    def speed_to_pwm(self, target_speed: float, max_speed: float) -> float:
        """Linear map of ``target_speed / max_speed`` onto ``[0, max_duty]``."""
        if max_speed <= 0:
            return 0.0
        normalized = min(max(target_speed / max_speed, 0.0), 1.0)
        return normalized * self.config.max_duty_percent

    def pwm_to_speed(self, duty_percent: float, max_speed: float) -> float:
        """Effective motor speed for *duty_percent*; exactly 0 inside the dead zone."""
        cfg = self.config
        duty = min(max(duty_percent, 0.0), cfg.max_duty_percent)
        if duty < cfg.dead_zone_percent:
            return 0.0
        normalized = (duty - cfg.dead_zone_percent) / (cfg.max_duty_percent - cfg.dead_zone_percent)
        return max_speed * normalized**cfg.curve_exponent

    def apply_inertia(self, current_speed: float, target_speed: float, delta_time_ms: float) -> float:
        """Move *current_speed* toward *target_speed* by at most ``acceleration * dt``."""
        if delta_time_ms <= 0:
            return current_speed
        max_change = self.config.acceleration_per_ms * delta_time_ms
        diff = target_speed - current_speed
        if abs(diff) <= max_change:
            return target_speed
        return current_speed + math.copysign(max_change, diff)
