"""SimulationEngine — per-tick orchestration of track, robot, controller and timing.

Race-path order inside one tick (each stage consumes the previous one):

1. nearest track point, progress and signed tracking error
2. sensor detections
3. controller correction
4. auto-tune step (every ``auto_tune_interval_ticks`` ticks, gains clamped after)
5. differential target speeds → PWM duty → motor response with inertia
6. kinematics integration
7. lap-manager update
8. telemetry append

A finished race stops the engine, parks the robot on the start line and
hands a :class:`~line_follower.race.models.RaceSummary` to the recorder
without waiting for it.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from enum import Enum

from line_follower.control.pid import SLIP_THRESHOLD, PIDController
from line_follower.control.pwm import PWMSimulator
from line_follower.race.lap_manager import LapManager
from line_follower.race.models import GainsSnapshot, RaceEvent, RaceEventKind, RaceSummary
from line_follower.race.recorder import RaceRecorder
from line_follower.robot.robot import Robot
from line_follower.simulation.config import SimulationConfig
from line_follower.telemetry.collector import TelemetryCollector
from line_follower.track.track import Track

_logger = logging.getLogger(__name__)


class OperationMode(str, Enum):
    STANDBY = "standby"
    MOTOR_TEST_LEFT = "motor_test_left"
    MOTOR_TEST_RIGHT = "motor_test_right"
    CALIBRATION = "calibration"
    FREE_RACE = "free_race"
    TEST_3_LAPS = "test_3_laps"
    OFFICIAL = "official"


_LAP_LIMITS = {
    OperationMode.FREE_RACE: 5,
    OperationMode.TEST_3_LAPS: 3,
    OperationMode.OFFICIAL: 1,
}

_AUTO_TUNE_MODES = frozenset({OperationMode.FREE_RACE, OperationMode.TEST_3_LAPS})

_MODE_LABELS = {
    OperationMode.STANDBY: "Standby",
    OperationMode.MOTOR_TEST_LEFT: "Motor test (left)",
    OperationMode.MOTOR_TEST_RIGHT: "Motor test (right)",
    OperationMode.CALIBRATION: "Calibration",
    OperationMode.FREE_RACE: "Free race",
    OperationMode.TEST_3_LAPS: "3-lap test",
    OperationMode.OFFICIAL: "Official",
}

_FACTOR_PARAMETERS = frozenset({"kp", "ki", "kd", "base_velocity"})


class GainsLockedError(RuntimeError):
    """Raised when gains are changed in a mode that locks them."""


@dataclass(frozen=True)
class TickResult:
    """What one call to :meth:`SimulationEngine.tick` did."""

    ticked: bool
    """False when the engine was stopped or paused."""

    mode: OperationMode
    error: float | None = None
    correction: float | None = None
    progress: float | None = None
    events: tuple[RaceEvent, ...] = ()


class SimulationEngine:
    """Owns and advances every simulation component.

    Parameters
    ----------
    config:
        Engine settings; defaults to :class:`SimulationConfig`.
    controller:
        Tracking controller; a default PD controller when omitted.
    pwm:
        Motor model; defaults to :class:`PWMSimulator`.
    recorder:
        Receives the race summary at race finish; defaults to a
        :class:`RaceRecorder` over an in-memory ranking.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        controller: PIDController | None = None,
        pwm: PWMSimulator | None = None,
        recorder: RaceRecorder | None = None,
    ) -> None:
        self.config = config or SimulationConfig()
        cfg = self.config
        self.robot = Robot()
        self.track = Track(cfg.canvas_width, cfg.canvas_height, style=cfg.track_style)
        self.controller = controller or PIDController()
        self.pwm = pwm or PWMSimulator()
        self.lap_manager = LapManager()
        self.telemetry = TelemetryCollector(cfg.history_capacity)
        self.recorder = recorder or RaceRecorder()

        self.base_velocity = cfg.base_velocity
        self.update_rate_ms = cfg.update_rate_ms
        self.motor_test_speed = cfg.motor_test_speed

        self.is_running = False
        self.is_paused = False
        self.mode = OperationMode.STANDBY
        self.auto_tune_enabled = False
        self.track_progress = 0.0
        self.left_pwm_duty = 0.0
        self.right_pwm_duty = 0.0
        self.last_summary: RaceSummary | None = None

        self.error_history: deque[float] = deque(maxlen=cfg.history_capacity)
        self.correction_history: deque[float] = deque(maxlen=cfg.history_capacity)
        self.left_vel_history: deque[float] = deque(maxlen=cfg.history_capacity)
        self.right_vel_history: deque[float] = deque(maxlen=cfg.history_capacity)
        self.position_history: deque[tuple[float, float]] = deque(maxlen=cfg.history_capacity)

        self._auto_tune_counter = 0
        self.position_robot_at_start_line()

    # ------------------------------------------------------------------
    # Mode and lifecycle
    # ------------------------------------------------------------------

    @staticmethod
    def can_adjust_gains(mode: OperationMode) -> bool:
        """Whether gains and base velocity may change while in *mode*."""
        return mode is not OperationMode.OFFICIAL

    @property
    def gains_locked(self) -> bool:
        return not self.can_adjust_gains(self.mode)

    def set_mode(self, mode: OperationMode) -> None:
        """Switch mode: resets lap timing and applies the mode's lap limit."""
        self.mode = OperationMode(mode)
        self.lap_manager.reset()
        self.lap_manager.lap_limit = _LAP_LIMITS.get(self.mode, 0)
        self.auto_tune_enabled = self.mode in _AUTO_TUNE_MODES
        self._auto_tune_counter = 0
        if self.mode is OperationMode.STANDBY:
            self.robot.vel_left = 0.0
            self.robot.vel_right = 0.0
        _logger.info("Mode set to %s (lap limit %d)", self.mode.value, self.lap_manager.lap_limit)

    def start(self) -> None:
        """Begin ticking with fresh lap timing and telemetry."""
        self.is_running = True
        self.is_paused = False
        self.lap_manager.reset()
        self.telemetry.reset()
        _logger.info("Simulation started in %s mode", self.mode.value)

    def pause(self) -> None:
        self.is_paused = True

    def resume(self) -> None:
        self.is_paused = False

    def stop(self) -> None:
        """Halt ticking, zero the motors and clear controller history and graphs."""
        self.is_running = False
        self.is_paused = False
        self.robot.stop()
        self.left_pwm_duty = 0.0
        self.right_pwm_duty = 0.0
        self.controller.reset()
        self.clear_history()
        _logger.info("Simulation stopped")

    def reset(self) -> None:
        """Stop, clear lap timing and telemetry, and park the robot on the start line."""
        self.stop()
        self.lap_manager.reset()
        self.telemetry.reset()
        self.robot.tracking_error = 0.0
        self.track_progress = 0.0
        self.position_robot_at_start_line()

    def resize_canvas(self, width: float, height: float) -> None:
        """Regenerate the track; the robot is re-placed only while stopped."""
        if width <= 0 or height <= 0:
            return
        self.track.update_canvas(width, height)
        if not self.is_running:
            self.position_robot_at_start_line()

    def clear_history(self) -> None:
        self.error_history.clear()
        self.correction_history.clear()
        self.left_vel_history.clear()
        self.right_vel_history.clear()
        self.position_history.clear()

    # ------------------------------------------------------------------
    # Gains
    # ------------------------------------------------------------------

    def update_gains(
        self,
        kp: float | None = None,
        ki: float | None = None,
        kd: float | None = None,
        kslip: float | None = None,
        base_velocity: float | None = None,
    ) -> None:
        """Manually set gains and/or base velocity, clamped into the configured limits.

        Raises:
            GainsLockedError: If the current mode locks gains.
        """
        self._require_unlocked()
        limits = self.config.limits
        self.controller.set_gains(
            kp=None if kp is None else limits.clamp("kp", kp),
            ki=None if ki is None else limits.clamp("ki", ki),
            kd=None if kd is None else limits.clamp("kd", kd),
            kslip=None if kslip is None else limits.clamp("kslip", kslip),
        )
        if base_velocity is not None:
            self.base_velocity = limits.clamp("base_velocity", base_velocity)

    def apply_gain_factor(self, parameter: str, factor: float) -> float:
        """Multiply one of ``kp``, ``ki``, ``kd``, ``base_velocity`` by *factor* and clamp.

        Returns the new value.

        Raises:
            GainsLockedError: If the current mode locks gains.
            ValueError: For an unknown parameter or a non-positive factor.
        """
        self._require_unlocked()
        if parameter not in _FACTOR_PARAMETERS:
            raise ValueError(f"Unknown parameter: {parameter!r}")
        if not math.isfinite(factor) or factor <= 0:
            raise ValueError(f"factor must be a positive number, got {factor!r}")

        limits = self.config.limits
        if parameter == "base_velocity":
            self.base_velocity = limits.clamp(parameter, self.base_velocity * factor)
            return self.base_velocity

        value = limits.clamp(parameter, getattr(self.controller, parameter) * factor)
        self.controller.set_gains(**{parameter: value})
        return value

    def _require_unlocked(self) -> None:
        if self.gains_locked:
            _logger.warning("Gain change rejected: locked in %s mode", self.mode.value)
            raise GainsLockedError(f"Gains are locked in {self.mode.value} mode")

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> TickResult:
        """Advance the simulation by one tick of ``update_rate_ms``."""
        if not self.is_running or self.is_paused:
            return TickResult(ticked=False, mode=self.mode)

        rate = self.update_rate_ms

        if self.mode is OperationMode.STANDBY:
            self.robot.vel_left = 0.0
            self.robot.vel_right = 0.0
            self.left_pwm_duty = 0.0
            self.right_pwm_duty = 0.0
            return TickResult(ticked=True, mode=self.mode)

        if self.mode is OperationMode.CALIBRATION:
            self._update_sensor_detections()
            return TickResult(ticked=True, mode=self.mode)

        if self.mode in (OperationMode.MOTOR_TEST_LEFT, OperationMode.MOTOR_TEST_RIGHT):
            if self.mode is OperationMode.MOTOR_TEST_LEFT:
                self._apply_motor_command(self.motor_test_speed, 0.0)
            else:
                self._apply_motor_command(0.0, self.motor_test_speed)
            self.robot.update(rate)
            return TickResult(ticked=True, mode=self.mode)

        # 1. geometry
        point, index, _ = self.track.find_closest_point(self.robot.x, self.robot.y)
        self.track_progress = self.track.progress_at(index)
        error = self._signed_error(point.x, point.y, index, self.robot.x, self.robot.y)
        self.robot.tracking_error = error

        # 2. sensors
        self._update_sensor_detections()

        # 3-4. controller
        correction = self.controller.calculate(error, rate)
        self._try_auto_tune(error)

        # 5. motors
        delta = correction * (self.base_velocity / 100.0)
        top = self.base_velocity * 1.5
        target_left = min(max(self.base_velocity - delta, 0.0), top)
        target_right = min(max(self.base_velocity + delta, 0.0), top)
        self._apply_motor_command(target_left, target_right)

        # 6. kinematics
        self.robot.update(rate)

        # 7. laps
        events = self.lap_manager.update(self.track_progress, rate)

        # 8. telemetry
        self.telemetry.add(
            self.lap_manager.total_elapsed_time,
            error,
            correction,
            self.robot.vel_left,
            self.robot.vel_right,
        )
        self.error_history.append(error)
        self.correction_history.append(correction)
        self.left_vel_history.append(self.robot.vel_left)
        self.right_vel_history.append(self.robot.vel_right)
        self.position_history.append((self.robot.x, self.robot.y))

        if any(e.kind is RaceEventKind.RACE_FINISHED for e in events):
            self._finish_race()

        return TickResult(
            ticked=True,
            mode=self.mode,
            error=error,
            correction=correction,
            progress=self.track_progress,
            events=tuple(events),
        )

    def tracking_error_at(self, x: float, y: float) -> float:
        """Signed, clamped tracking error for a robot at ``(x, y)``.

        Positive when the point lies on the positive side of the track
        tangent (``tangent x offset > 0``), negative on the other side.
        """
        point, index, _ = self.track.find_closest_point(x, y)
        return self._signed_error(point.x, point.y, index, x, y)

    # ------------------------------------------------------------------
    # Placement and status
    # ------------------------------------------------------------------

    def position_robot_at_start_line(self) -> None:
        """Park the robot on ``t = 0`` facing against increasing ``t``.

        That heading matches the error sign convention: a positive
        correction turns the robot back toward the line.
        """
        here = self.track.point_at(0.0)
        ahead = self.track.point_at(0.01)
        dx = ahead.x - here.x
        dy = ahead.y - here.y
        self.robot.place(here.x, here.y, math.atan2(dy, dx) + math.pi)

    def gains_snapshot(self) -> GainsSnapshot:
        g = self.controller.gains
        return GainsSnapshot(kp=g.kp, ki=g.ki, kd=g.kd, kslip=g.kslip, base_velocity=self.base_velocity)

    def mode_status(self) -> str:
        return _MODE_LABELS[self.mode]

    def lap_status(self) -> str:
        return self.lap_manager.status()

    def diagnostic(self) -> str:
        return self.controller.diagnose(self.robot.tracking_error)

    def status_info(self) -> str:
        r = self.robot
        return (
            f"Pos: ({r.x:.1f}, {r.y:.1f}) | "
            f"Angle: {math.degrees(r.angle):.1f}° | "
            f"Vel: L={r.vel_left:.1f} R={r.vel_right:.1f} | "
            f"Error: {r.tracking_error:.2f}"
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _signed_error(self, px: float, py: float, index: int, x: float, y: float) -> float:
        tx, ty = self.track.tangent_at(index)
        rx = x - px
        ry = y - py
        error = math.hypot(rx, ry)
        if tx * ry - ty * rx <= 0:
            error = -error
        ceiling = self.config.error_ceiling
        return min(max(error, -ceiling), ceiling)

    def _update_sensor_detections(self) -> None:
        threshold = self.track.line_width / 2 + self.config.sensor_detection_margin
        for sensor in self.robot.sensors:
            _, _, distance = self.track.find_closest_point(sensor.x, sensor.y)
            sensor.distance_to_line = distance
            sensor.detects_line = distance <= threshold

    def _apply_motor_command(self, target_left: float, target_right: float) -> None:
        max_speed = max(1.0, self.base_velocity * 1.5)
        rate = self.update_rate_ms

        self.left_pwm_duty = self.pwm.speed_to_pwm(target_left, max_speed)
        self.right_pwm_duty = self.pwm.speed_to_pwm(target_right, max_speed)

        left = self.pwm.pwm_to_speed(self.left_pwm_duty, max_speed)
        right = self.pwm.pwm_to_speed(self.right_pwm_duty, max_speed)

        self.robot.vel_left = self.pwm.apply_inertia(self.robot.vel_left, left, rate)
        self.robot.vel_right = self.pwm.apply_inertia(self.robot.vel_right, right, rate)

    def _try_auto_tune(self, error: float) -> None:
        if not self.auto_tune_enabled or self.gains_locked or self.mode not in _AUTO_TUNE_MODES:
            return

        self._auto_tune_counter += 1
        if self._auto_tune_counter < max(1, self.config.auto_tune_interval_ticks):
            return
        self._auto_tune_counter = 0

        gains = self.controller.auto_adjust(error, slipping=abs(error) > SLIP_THRESHOLD)
        limits = self.config.limits
        self.controller.set_gains(
            kp=limits.clamp("kp", gains.kp),
            ki=limits.clamp("ki", gains.ki),
            kd=limits.clamp("kd", gains.kd),
            kslip=limits.clamp("kslip", gains.kslip),
        )

    def _finish_race(self) -> None:
        self.is_running = False
        self.is_paused = False
        self.robot.stop()
        self.left_pwm_duty = 0.0
        self.right_pwm_duty = 0.0
        self.position_robot_at_start_line()

        summary = RaceSummary(
            mode=self.mode.value,
            total_time_ms=self.lap_manager.total_elapsed_time,
            lap_times=[lap.lap_time for lap in self.lap_manager.laps],
            gains=self.gains_snapshot(),
            mean_error=self.telemetry.mean_error(),
            mean_velocity=self.telemetry.mean_velocity(),
            errors=list(self.error_history),
            positions=list(self.position_history),
        )
        self.last_summary = summary
        _logger.info(
            "Race finished: %d laps in %.2fms; submitting summary %s",
            summary.laps_completed, summary.total_time_ms, summary.id,
        )
        self.recorder.submit(summary)
