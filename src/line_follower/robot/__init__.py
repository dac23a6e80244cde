"""Differential-drive robot and its virtual line sensors."""

from line_follower.robot.robot import SENSOR_COUNT, Robot
from line_follower.robot.sensor import VirtualSensor

__all__ = ["SENSOR_COUNT", "Robot", "VirtualSensor"]
