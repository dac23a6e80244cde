"""Pydantic request/response schemas for the simulator Web API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from line_follower.simulation.engine import OperationMode


class HealthResponse(BaseModel):
    status: str
    version: str


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


class SensorState(BaseModel):
    index: int
    x: float
    y: float
    distance_to_line: float
    detects_line: bool


class LapRecordOut(BaseModel):
    lap_number: int
    lap_time: float
    total_time: float


class GainsOut(BaseModel):
    kp: float
    ki: float
    kd: float
    kslip: float
    base_velocity: float


class StateResponse(BaseModel):
    x: float
    y: float
    angle: float
    vel_left: float
    vel_right: float
    linear_vel: float
    angular_vel: float
    error: float
    correction: float
    progress: float
    left_pwm_duty: float
    right_pwm_duty: float
    line_position: float | None
    """Weighted sensor position; ``None`` when no sensor sees the line."""
    sensors: list[SensorState]
    mode: OperationMode
    mode_status: str
    is_running: bool
    is_paused: bool
    gains: GainsOut
    gains_locked: bool
    auto_tune_enabled: bool
    current_lap: int
    lap_limit: int
    lap_status: str
    laps: list[LapRecordOut]
    status_info: str
    diagnostic: str


# ---------------------------------------------------------------------------
# Track / telemetry
# ---------------------------------------------------------------------------


class PointOut(BaseModel):
    x: float
    y: float
    t: float


class StartLineOut(BaseModel):
    x1: float
    y1: float
    x2: float
    y2: float


class TrackResponse(BaseModel):
    width: float
    height: float
    style: str
    line_width: float
    total_length: float
    start_line: StartLineOut
    points: list[PointOut]


class TelemetryResponse(BaseModel):
    errors: list[float]
    corrections: list[float]
    vel_left: list[float]
    vel_right: list[float]
    mean_error: float
    mean_velocity: float
    oscillation: float


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class CommandResponse(BaseModel):
    command: str
    is_running: bool
    is_paused: bool


class ModeRequest(BaseModel):
    mode: OperationMode


class ModeResponse(BaseModel):
    mode: OperationMode
    lap_limit: int
    gains_locked: bool
    auto_tune_enabled: bool


class GainsUpdateRequest(BaseModel):
    """Any subset of the gains; values outside the configured limits are clamped."""

    kp: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    ki: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    kd: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    kslip: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    base_velocity: float | None = Field(default=None, gt=0, allow_inf_nan=False)


class GainFactorRequest(BaseModel):
    parameter: Literal["kp", "ki", "kd", "base_velocity"]
    factor: float = Field(gt=0, allow_inf_nan=False)


class GainFactorResponse(BaseModel):
    parameter: str
    value: float


class TickRequest(BaseModel):
    count: int = Field(default=1, ge=1, le=10_000)


class RaceEventOut(BaseModel):
    kind: str
    elapsed_ms: float
    lap: LapRecordOut | None = None


class TickResponse(BaseModel):
    ticks: int
    """Ticks that actually advanced the simulation."""
    is_running: bool
    events: list[RaceEventOut]


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


class RankingEntry(BaseModel):
    id: str
    mode: str
    total_time_ms: float
    laps_completed: int
    best_lap: float
    mean_error: float
    recorded_at: str
    is_record: bool


class RankingResponse(BaseModel):
    best_time: float
    entries: list[RankingEntry]
