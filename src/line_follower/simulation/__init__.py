"""Simulation package: configuration, the per-tick engine and the periodic runner."""

from line_follower.simulation.config import GainLimits, SimulationConfig
from line_follower.simulation.engine import (
    GainsLockedError,
    OperationMode,
    SimulationEngine,
    TickResult,
)
from line_follower.simulation.runner import SimulationRunner

__all__ = [
    "GainLimits",
    "GainsLockedError",
    "OperationMode",
    "SimulationConfig",
    "SimulationEngine",
    "SimulationRunner",
    "TickResult",
]
