"""Thread-safe facade over the engine for the Web API."""

from __future__ import annotations

import logging
import math
import threading

from line_follower.race.models import LapRecord, RaceEvent
from line_follower.race.recorder import RaceRecorder, RankingBoard
from line_follower.simulation.config import SimulationConfig
from line_follower.simulation.engine import OperationMode, SimulationEngine
from line_follower.simulation.runner import SimulationRunner
from line_follower.web.schemas import (
    CommandResponse,
    GainFactorResponse,
    GainsOut,
    GainsUpdateRequest,
    LapRecordOut,
    ModeResponse,
    PointOut,
    RaceEventOut,
    RankingEntry,
    RankingResponse,
    SensorState,
    StartLineOut,
    StateResponse,
    TelemetryResponse,
    TickResponse,
    TrackResponse,
)

_logger = logging.getLogger(__name__)

COMMANDS = ("start", "pause", "resume", "stop", "reset")


class SimulationService:
    """Owns one engine, its ranking board and (optionally) a background runner.

    Every engine access goes through the runner's lock so API calls never
    interleave with a tick.

    Parameters
    ----------
    config:
        Engine settings; defaults to :class:`SimulationConfig`.
    autorun:
        When True, ``start``/``resume`` also start the wall-clock runner and
        ``stop``/``reset`` halt it.  When False the simulation only advances
        through :meth:`advance`.
    """

    def __init__(self, config: SimulationConfig | None = None, autorun: bool = False) -> None:
        self.ranking_board = RankingBoard()
        self.engine = SimulationEngine(config, recorder=RaceRecorder(self.ranking_board))
        self._lock = threading.Lock()
        self.runner = SimulationRunner(self.engine, lock=self._lock)
        self.autorun = autorun

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def state(self) -> StateResponse:
        with self._lock:
            e = self.engine
            r = e.robot
            g = e.gains_snapshot()
            line_position = r.line_position()
            return StateResponse(
                x=r.x,
                y=r.y,
                angle=r.angle,
                vel_left=r.vel_left,
                vel_right=r.vel_right,
                linear_vel=r.linear_vel,
                angular_vel=r.angular_vel,
                error=r.tracking_error,
                correction=e.controller.last_correction,
                progress=e.track_progress,
                left_pwm_duty=e.left_pwm_duty,
                right_pwm_duty=e.right_pwm_duty,
                line_position=None if math.isnan(line_position) else line_position,
                sensors=[
                    SensorState(
                        index=s.index,
                        x=s.x,
                        y=s.y,
                        distance_to_line=s.distance_to_line,
                        detects_line=s.detects_line,
                    )
                    for s in r.sensors
                ],
                mode=e.mode,
                mode_status=e.mode_status(),
                is_running=e.is_running,
                is_paused=e.is_paused,
                gains=GainsOut(
                    kp=g.kp, ki=g.ki, kd=g.kd, kslip=g.kslip, base_velocity=g.base_velocity
                ),
                gains_locked=e.gains_locked,
                auto_tune_enabled=e.auto_tune_enabled,
                current_lap=e.lap_manager.current_lap,
                lap_limit=e.lap_manager.lap_limit,
                lap_status=e.lap_status(),
                laps=[_lap_out(lap) for lap in e.lap_manager.laps],
                status_info=e.status_info(),
                diagnostic=e.diagnostic(),
            )

    def track(self) -> TrackResponse:
        with self._lock:
            t = self.engine.track
            width, height = t.size
            line = t.start_line()
            return TrackResponse(
                width=width,
                height=height,
                style=t.style.value,
                line_width=t.line_width,
                total_length=t.total_length,
                start_line=StartLineOut(x1=line.x1, y1=line.y1, x2=line.x2, y2=line.y2),
                points=[PointOut(x=p.x, y=p.y, t=p.t) for p in t.points],
            )

    def telemetry(self) -> TelemetryResponse:
        with self._lock:
            e = self.engine
            return TelemetryResponse(
                errors=list(e.error_history),
                corrections=list(e.correction_history),
                vel_left=list(e.left_vel_history),
                vel_right=list(e.right_vel_history),
                mean_error=e.telemetry.mean_error(),
                mean_velocity=e.telemetry.mean_velocity(),
                oscillation=e.telemetry.oscillation(),
            )

    def ranking(self, limit: int = 10) -> RankingResponse:
        entries = [
            RankingEntry(
                id=s.id,
                mode=s.mode,
                total_time_ms=s.total_time_ms,
                laps_completed=s.laps_completed,
                best_lap=s.best_lap,
                mean_error=s.mean_error,
                recorded_at=s.recorded_at.isoformat(),
                is_record=s.is_record,
            )
            for s in self.ranking_board.top(limit)
        ]
        return RankingResponse(best_time=self.ranking_board.best_time(), entries=entries)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def command(self, name: str) -> CommandResponse:
        """Run one lifecycle command.

        Raises
        ------
        ValueError
            If *name* is not one of :data:`COMMANDS`.
        """
        if name not in COMMANDS:
            raise ValueError(f"Unknown command: {name!r}")

        if name in ("stop", "reset"):
            self.runner.stop()

        with self._lock:
            getattr(self.engine, name)()
            running = self.engine.is_running
            paused = self.engine.is_paused

        if self.autorun and running and not paused:
            self.runner.start()
        _logger.info("Command %s -> running=%s paused=%s", name, running, paused)
        return CommandResponse(command=name, is_running=running, is_paused=paused)

    def set_mode(self, mode: OperationMode) -> ModeResponse:
        with self._lock:
            e = self.engine
            e.set_mode(mode)
            return ModeResponse(
                mode=e.mode,
                lap_limit=e.lap_manager.lap_limit,
                gains_locked=e.gains_locked,
                auto_tune_enabled=e.auto_tune_enabled,
            )

    def update_gains(self, req: GainsUpdateRequest) -> GainsOut:
        """Apply a manual gain update.

        Raises
        ------
        GainsLockedError
            In a mode that locks gains.
        """
        with self._lock:
            self.engine.update_gains(
                kp=req.kp,
                ki=req.ki,
                kd=req.kd,
                kslip=req.kslip,
                base_velocity=req.base_velocity,
            )
            g = self.engine.gains_snapshot()
        return GainsOut(kp=g.kp, ki=g.ki, kd=g.kd, kslip=g.kslip, base_velocity=g.base_velocity)

    def apply_gain_factor(self, parameter: str, factor: float) -> GainFactorResponse:
        with self._lock:
            value = self.engine.apply_gain_factor(parameter, factor)
        return GainFactorResponse(parameter=parameter, value=value)

    def advance(self, count: int) -> TickResponse:
        """Run up to *count* ticks synchronously; stops early once the engine stops."""
        events: list[RaceEventOut] = []
        ticked = 0
        with self._lock:
            for _ in range(count):
                result = self.engine.tick()
                if not result.ticked:
                    break
                ticked += 1
                events.extend(_event_out(ev) for ev in result.events)
            running = self.engine.is_running
        return TickResponse(ticks=ticked, is_running=running, events=events)

    def shutdown(self) -> None:
        self.runner.stop()
        self.engine.recorder.join()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _lap_out(lap: LapRecord) -> LapRecordOut:
    return LapRecordOut(lap_number=lap.lap_number, lap_time=lap.lap_time, total_time=lap.total_time)


def _event_out(event: RaceEvent) -> RaceEventOut:
    return RaceEventOut(
        kind=event.kind.value,
        elapsed_ms=event.elapsed_ms,
        lap=_lap_out(event.lap) if event.lap is not None else None,
    )
