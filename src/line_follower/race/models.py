"""Race data models: lap records, race events and the race summary record."""

from __future__ import annotations

import dataclasses
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LapRecord:
    """One completed circuit.  Times are simulated milliseconds."""

    lap_number: int
    """1-based lap number."""

    lap_time: float
    """Lap duration measured against the interpolated crossing instant."""

    total_time: float
    """Elapsed race clock at the interpolated crossing instant."""

    recorded_at: datetime = field(default_factory=_utcnow)
    """Wall-clock time the record was created."""

    def __str__(self) -> str:
        return f"Lap {self.lap_number}: {self.lap_time:.2f}ms (total {self.total_time:.2f}ms)"


class RaceEventKind(str, Enum):
    RACE_STARTED = "race_started"
    LAP_COMPLETED = "lap_completed"
    RACE_FINISHED = "race_finished"


@dataclass(frozen=True)
class RaceEvent:
    """Notification emitted by :class:`~line_follower.race.lap_manager.LapManager`."""

    kind: RaceEventKind
    elapsed_ms: float
    """Race clock when the event happened."""

    lap: LapRecord | None = None
    """The completed lap for ``LAP_COMPLETED`` and ``RACE_FINISHED``."""


@dataclass(frozen=True)
class GainsSnapshot:
    """Controller configuration captured at race finish."""

    kp: float
    ki: float
    kd: float
    kslip: float = 0.0
    base_velocity: float = 0.0


@dataclass
class RaceSummary:
    """Record handed to the ranking collaborator when a race finishes.

    ``lap_times`` keeps insertion order; :meth:`to_dict` / :meth:`from_dict`
    round-trip every field losslessly.
    """

    mode: str
    total_time_ms: float
    lap_times: list[float]
    gains: GainsSnapshot
    mean_error: float
    mean_velocity: float
    errors: list[float] = field(default_factory=list)
    positions: list[tuple[float, float]] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    recorded_at: datetime = field(default_factory=_utcnow)
    is_record: bool = False

    @property
    def laps_completed(self) -> int:
        return len(self.lap_times)

    @property
    def best_lap(self) -> float:
        return min(self.lap_times) if self.lap_times else 0.0

    @property
    def worst_lap(self) -> float:
        return max(self.lap_times) if self.lap_times else 0.0

    @property
    def average_lap(self) -> float:
        return sum(self.lap_times) / len(self.lap_times) if self.lap_times else 0.0

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict."""
        d = dataclasses.asdict(self)
        d["recorded_at"] = self.recorded_at.isoformat()
        d["positions"] = [list(p) for p in self.positions]
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, d: dict) -> RaceSummary:
        """Rebuild a summary from :meth:`to_dict` output."""
        return cls(
            mode=str(d["mode"]),
            total_time_ms=float(d["total_time_ms"]),
            lap_times=[float(t) for t in d["lap_times"]],
            gains=GainsSnapshot(**d["gains"]),
            mean_error=float(d["mean_error"]),
            mean_velocity=float(d["mean_velocity"]),
            errors=[float(e) for e in d.get("errors", [])],
            positions=[(float(x), float(y)) for x, y in d.get("positions", [])],
            id=str(d["id"]),
            recorded_at=datetime.fromisoformat(d["recorded_at"]),
            is_record=bool(d.get("is_record", False)),
        )

    def __str__(self) -> str:
        stamp = self.recorded_at.strftime("%d/%m %H:%M")
        return (
            f"[{stamp}] {self.mode}: {self.laps_completed} laps - "
            f"{self.total_time_ms:.0f}ms - best {self.best_lap:.0f}ms"
        )
