"""Differential-drive pose integration and the sensor fan it carries."""

from __future__ import annotations

import math

from line_follower.robot.sensor import VirtualSensor

SENSOR_COUNT = 9
SENSOR_WEIGHTS = (-4, -3, -2, -1, 0, 1, 2, 3, 4)

DEFAULT_X = 400.0
DEFAULT_Y = 300.0


class Robot:
    """Differential-drive robot with a fixed fan of :data:`SENSOR_COUNT` sensors.

    Wheel speeds are in pixels per second of simulated time; :meth:`update`
    takes the tick length in milliseconds.

    Args:
        radius: Body radius in pixels.
        axle_length: Distance between the wheels in pixels.
    """

    def __init__(self, radius: float = 15.0, axle_length: float = 30.0) -> None:
        self.x = DEFAULT_X
        self.y = DEFAULT_Y
        self.angle = 0.0
        self.vel_left = 0.0
        self.vel_right = 0.0
        self.linear_vel = 0.0
        self.angular_vel = 0.0
        self.radius = radius
        self.axle_length = axle_length
        self.tracking_error = 0.0
        self._sensors = tuple(VirtualSensor(i, SENSOR_COUNT) for i in range(SENSOR_COUNT))
        self.refresh_sensor_positions()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def sensors(self) -> tuple[VirtualSensor, ...]:
        """The sensor fan, ordered by index."""
        return self._sensors

    def update(self, delta_time_ms: float) -> None:
        """Integrate one tick of differential-drive kinematics and move the sensors."""
        self.linear_vel = (self.vel_left + self.vel_right) / 2.0
        self.angular_vel = (self.vel_right - self.vel_left) / self.axle_length

        dt = delta_time_ms / 1000.0
        self.angle += self.angular_vel * dt
        self.x += self.linear_vel * math.cos(self.angle) * dt
        self.y += self.linear_vel * math.sin(self.angle) * dt

        self.refresh_sensor_positions()

    def refresh_sensor_positions(self) -> None:
        """Recompute every sensor position from the current pose."""
        for sensor in self._sensors:
            sensor.update_position(self.x, self.y, self.angle)

    def sensor_position(self, index: int) -> tuple[float, float]:
        """World position of sensor *index*.

        Raises:
            IndexError: If *index* is outside ``[0, SENSOR_COUNT)``.
        """
        if index < 0 or index >= len(self._sensors):
            raise IndexError(f"sensor index {index} out of range")
        sensor = self._sensors[index]
        return sensor.x, sensor.y

    def line_position(self) -> float:
        """Weighted line position over active sensors, in ``[-4, 4]``.

        Returns ``nan`` when no sensor sees the line; callers must check with
        :func:`math.isnan` instead of treating it as zero error.
        """
        active = [SENSOR_WEIGHTS[s.index] for s in self._sensors if s.detects_line]
        if not active:
            return math.nan
        return sum(active) / len(active)

    def stop(self) -> None:
        """Zero wheel and body velocities without moving the robot."""
        self.vel_left = 0.0
        self.vel_right = 0.0
        self.linear_vel = 0.0
        self.angular_vel = 0.0

    def place(self, x: float, y: float, angle: float) -> None:
        """Teleport the robot to a pose and refresh the sensors."""
        self.x = x
        self.y = y
        self.angle = angle
        self.refresh_sensor_positions()

    def reset(self) -> None:
        """Return to the default pose with zero velocity and error."""
        self.stop()
        self.tracking_error = 0.0
        self.place(DEFAULT_X, DEFAULT_Y, 0.0)
