"""Bounded per-tick samples and the aggregates built on them."""

from __future__ import annotations

import csv
import io
import math
from collections import deque
from dataclasses import dataclass

HISTORY_CAPACITY = 500


@dataclass(frozen=True)
class TelemetrySample:
    """One tick of controller telemetry."""

    time_ms: float
    """Milliseconds since the first collected sample."""

    error: float
    correction: float
    vel_left: float
    vel_right: float


class TelemetryCollector:
    """Keeps the most recent *capacity* samples; oldest are dropped first.

    Args:
        capacity: Maximum number of retained samples.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._samples: deque[TelemetrySample] = deque(maxlen=capacity)
        self._origin: float | None = None

    def add(
        self,
        elapsed_ms: float,
        error: float,
        correction: float,
        vel_left: float,
        vel_right: float,
    ) -> TelemetrySample:
        """Append a sample stamped relative to the first one collected."""
        if self._origin is None:
            self._origin = elapsed_ms
        sample = TelemetrySample(
            time_ms=elapsed_ms - self._origin,
            error=error,
            correction=correction,
            vel_left=vel_left,
            vel_right=vel_right,
        )
        self._samples.append(sample)
        return sample

    def samples(self) -> list[TelemetrySample]:
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def reset(self) -> None:
        self._samples.clear()
        self._origin = None

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def mean_error(self) -> float:
        """Mean absolute error (0 when empty)."""
        if not self._samples:
            return 0.0
        return sum(abs(s.error) for s in self._samples) / len(self._samples)

    def mean_velocity(self) -> float:
        """Mean of the per-sample wheel-average speed."""
        if not self._samples:
            return 0.0
        return sum((s.vel_left + s.vel_right) / 2 for s in self._samples) / len(self._samples)

    def oscillation(self) -> float:
        """Standard deviation of ``|error|``; 0 with fewer than two samples."""
        if len(self._samples) < 2:
            return 0.0
        mean = self.mean_error()
        variance = sum((abs(s.error) - mean) ** 2 for s in self._samples) / len(self._samples)
        return math.sqrt(variance)

    def error_derivatives(self) -> list[float]:
        """Successive error differences between retained samples."""
        errors = [s.error for s in self._samples]
        return [b - a for a, b in zip(errors, errors[1:])]

    def export_csv(self) -> str:
        """Render the samples as CSV with a header row."""
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(["time_ms", "error", "correction", "vel_left", "vel_right"])
        for s in self._samples:
            writer.writerow([
                f"{s.time_ms:.2f}",
                f"{s.error:.2f}",
                f"{s.correction:.2f}",
                f"{s.vel_left:.2f}",
                f"{s.vel_right:.2f}",
            ])
        return buf.getvalue()
