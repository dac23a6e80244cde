"""Differential-drive kinematics and the weighted line position."""

from __future__ import annotations

import math

import pytest

from line_follower.robot.robot import DEFAULT_X, DEFAULT_Y, SENSOR_COUNT, Robot


@pytest.fixture
def robot() -> Robot:
    r = Robot()
    r.place(0.0, 0.0, 0.0)
    return r


class TestKinematics:
    def test_straight_line(self, robot):
        robot.vel_left = robot.vel_right = 100.0
        robot.update(1000)
        assert robot.x == pytest.approx(100.0)
        assert robot.y == pytest.approx(0.0)
        assert robot.linear_vel == 100.0
        assert robot.angular_vel == 0.0

    def test_spin_in_place(self, robot):
        """Opposite wheel speeds rotate without translating."""
        robot.vel_left = -30.0
        robot.vel_right = 30.0
        robot.update(500)
        assert robot.angular_vel == pytest.approx(2.0)
        assert robot.angle == pytest.approx(1.0)
        assert robot.x == pytest.approx(0.0)
        assert robot.y == pytest.approx(0.0)

    def test_heading_updated_before_translation(self, robot):
        robot.vel_left = 0.0
        robot.vel_right = 30.0
        robot.update(1000)
        # angle = 1 rad, translation of 15 px along the *new* heading
        assert robot.x == pytest.approx(15 * math.cos(1.0))
        assert robot.y == pytest.approx(15 * math.sin(1.0))

    def test_sensors_follow_pose(self, robot):
        robot.vel_left = robot.vel_right = 50.0
        robot.update(1000)
        x, y = robot.sensor_position(SENSOR_COUNT // 2)
        assert (x, y) == pytest.approx((75.0, 0.0))


class TestSensorsAndState:
    def test_sensor_position_out_of_range(self, robot):
        with pytest.raises(IndexError):
            robot.sensor_position(SENSOR_COUNT)
        with pytest.raises(IndexError):
            robot.sensor_position(-1)

    def test_line_position_nan_when_nothing_detected(self, robot):
        assert math.isnan(robot.line_position())

    def test_line_position_weighted_mean(self, robot):
        robot.sensors[5].detects_line = True
        robot.sensors[6].detects_line = True
        assert robot.line_position() == pytest.approx(1.5)

    def test_stop_keeps_pose(self, robot):
        robot.vel_left = robot.vel_right = 80.0
        robot.update(100)
        x = robot.x
        robot.stop()
        assert robot.vel_left == robot.vel_right == 0.0
        assert robot.linear_vel == 0.0
        assert robot.x == x

    def test_reset(self, robot):
        robot.tracking_error = 12.0
        robot.vel_left = 5.0
        robot.reset()
        assert (robot.x, robot.y, robot.angle) == (DEFAULT_X, DEFAULT_Y, 0.0)
        assert robot.tracking_error == 0.0
        assert robot.vel_left == 0.0
