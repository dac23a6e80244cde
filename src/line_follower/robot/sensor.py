"""One reflectance sensor in the robot's front fan."""

from __future__ import annotations

import math

SENSOR_SPACING_DEG = 15.0
SENSOR_DISTANCE = 25.0


class VirtualSensor:
    """A line sensor whose world position is a pure function of the robot pose.

    Sensors form a symmetric fan centred on the robot heading: the offset
    angle is ``(index - (total - 1) / 2) * SENSOR_SPACING_DEG``.  Detection is
    decided by the simulation engine; the sensor only stores the result.

    Args:
        index: Position in the fan, 0 = rightmost offset angle (most negative).
        total_sensors: Number of sensors in the fan.
    """

    def __init__(self, index: int, total_sensors: int) -> None:
        if not 0 <= index < total_sensors:
            raise IndexError(f"sensor index {index} out of range for {total_sensors} sensors")
        self.index = index
        self.total_sensors = total_sensors
        self.x = 0.0
        self.y = 0.0
        self.distance_to_line = 0.0
        self.detects_line = False

    @property
    def offset_angle(self) -> float:
        """Angle (radians) between the robot heading and this sensor."""
        offset_deg = (self.index - (self.total_sensors - 1) / 2.0) * SENSOR_SPACING_DEG
        return math.radians(offset_deg)

    def update_position(self, robot_x: float, robot_y: float, robot_angle: float) -> None:
        """Recompute the world position from the robot pose."""
        angle = robot_angle + self.offset_angle
        self.x = robot_x + SENSOR_DISTANCE * math.cos(angle)
        self.y = robot_y + SENSOR_DISTANCE * math.sin(angle)

    def __repr__(self) -> str:
        return (
            f"VirtualSensor(index={self.index}, x={self.x:.1f}, y={self.y:.1f}, "
            f"detects_line={self.detects_line})"
        )
