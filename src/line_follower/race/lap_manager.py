"""LapManager — start-line crossing detection from a sampled progress signal.

State machine::

    NOT_STARTED ──(t in start band)──▶ RACING ──(lap limit reached)──▶ FINISHED

Progress ``t`` is sampled once per tick.  A crossing is any of three
patterns between the previous and current sample, accepted only while
racing and only once the current lap has lasted at least
``min_lap_time_ms``:

* wraparound       previous > 0.8,  current < 0.2
* negative jump    previous > 0.95, current < 0.05
* positive jump    previous < 0.05, current > 0.95

The crossing instant is recovered by linear interpolation inside the tick so
lap times do not carry tick-length quantisation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from line_follower.race.models import LapRecord, RaceEvent, RaceEventKind

_logger = logging.getLogger(__name__)

START_BAND = 0.05
MIN_LAP_TIME_MS = 3000.0


class RaceState(str, Enum):
    NOT_STARTED = "not_started"
    RACING = "racing"
    FINISHED = "finished"


class LapManager:
    """Tracks laps and race timing.

    Args:
        lap_limit: Laps after which the race finishes; 0 = unlimited.
        min_lap_time_ms: Crossings earlier than this into a lap are ignored.
    """

    def __init__(self, lap_limit: int = 0, min_lap_time_ms: float = MIN_LAP_TIME_MS) -> None:
        self._listeners: list[Callable[[RaceEvent], None]] = []
        self._lap_limit = 0
        self.lap_limit = lap_limit
        self.min_lap_time_ms = min_lap_time_ms
        self.reset()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def lap_limit(self) -> int:
        return self._lap_limit

    @lap_limit.setter
    def lap_limit(self, value: int) -> None:
        if value < 0:
            raise ValueError("lap_limit must be >= 0")
        self._lap_limit = value

    @property
    def state(self) -> RaceState:
        return self._state

    @property
    def laps(self) -> tuple[LapRecord, ...]:
        """Completed laps in order."""
        return tuple(self._laps)

    @property
    def current_lap(self) -> int:
        return self._current_lap

    @property
    def current_lap_start_time(self) -> float:
        return self._current_lap_start_time

    @property
    def total_elapsed_time(self) -> float:
        return self._total_elapsed_time

    @property
    def has_crossed_start_line(self) -> bool:
        return self._state is not RaceState.NOT_STARTED

    @property
    def is_race_finished(self) -> bool:
        return self._state is RaceState.FINISHED

    @property
    def previous_progress(self) -> float:
        return self._previous_t

    def register_listener(self, callback: Callable[[RaceEvent], None]) -> None:
        """Register *callback* to receive every :class:`RaceEvent` as it is emitted."""
        self._listeners.append(callback)

    def reset(self) -> None:
        """Clear laps and timing; the lap limit and listeners are kept."""
        self._laps: list[LapRecord] = []
        self._state = RaceState.NOT_STARTED
        self._current_lap = 0
        self._current_lap_start_time = 0.0
        self._total_elapsed_time = 0.0
        self._previous_t = 0.0

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def update(self, progress: float, delta_time_ms: float) -> list[RaceEvent]:
        """Advance the clock by *delta_time_ms* and process the sample *progress*.

        Returns the events emitted during this tick (also delivered to
        registered listeners).  A no-op once the race is finished.
        """
        if self._state is RaceState.FINISHED:
            return []

        events: list[RaceEvent] = []
        self._total_elapsed_time += delta_time_ms
        t = progress % 1.0

        if self._state is RaceState.NOT_STARTED and (t < START_BAND or t > 1.0 - START_BAND):
            self._state = RaceState.RACING
            self._current_lap = 1
            self._current_lap_start_time = self._total_elapsed_time
            _logger.info("Race started at t=%.4f (clock %.1fms)", t, self._total_elapsed_time)
            events.append(self._emit(RaceEvent(RaceEventKind.RACE_STARTED, self._total_elapsed_time)))

        prev = self._previous_t
        negative_jump = prev > 1.0 - START_BAND and t < START_BAND
        positive_jump = prev < START_BAND and t > 1.0 - START_BAND
        wraparound = prev > 0.8 and t < 0.2

        if self._state is RaceState.RACING and (wraparound or negative_jump or positive_jump):
            lap_elapsed = self._total_elapsed_time - self._current_lap_start_time
            if lap_elapsed < self.min_lap_time_ms:
                _logger.debug(
                    "Ignoring crossing %.4f -> %.4f after %.1fms (< %.0fms)",
                    prev, t, lap_elapsed, self.min_lap_time_ms,
                )
            else:
                if positive_jump:
                    # Passed 1.0 going backwards: distance left to 1.0 is after the line.
                    after = 1.0 - t
                    before = prev
                else:
                    after = t
                    before = 1.0 - prev
                fraction_after = after / (after + before) if after + before > 0 else 0.0
                crossing_time = self._total_elapsed_time - delta_time_ms * fraction_after
                _logger.info(
                    "Crossing %.4f -> %.4f interpolated to %.2fms (-%.2fms)",
                    prev, t, crossing_time, self._total_elapsed_time - crossing_time,
                )
                events.extend(self._complete_lap(crossing_time))

        self._previous_t = t
        return events

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def current_lap_elapsed(self) -> float:
        """Milliseconds into the current lap (0 before the start)."""
        if not self.has_crossed_start_line:
            return 0.0
        return self._total_elapsed_time - self._current_lap_start_time

    def best_lap(self) -> LapRecord | None:
        return min(self._laps, key=lambda lap: lap.lap_time, default=None)

    def worst_lap(self) -> LapRecord | None:
        return max(self._laps, key=lambda lap: lap.lap_time, default=None)

    def average_lap_time(self) -> float:
        if not self._laps:
            return 0.0
        return sum(lap.lap_time for lap in self._laps) / len(self._laps)

    def status(self) -> str:
        """Human-readable lap status line."""
        if not self.has_crossed_start_line:
            return "Waiting for start..."
        lap_info = f"Lap {self._current_lap}"
        if self._lap_limit > 0:
            lap_info += f" / {self._lap_limit}"
        time_info = f"Time: {self._total_elapsed_time:.1f}ms"
        best = self.best_lap()
        if best is not None:
            time_info += f" | Best: {best.lap_time:.1f}ms"
        if self.is_race_finished:
            time_info += " | Finished"
        return f"{lap_info} | {time_info}"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _complete_lap(self, crossing_time: float) -> list[RaceEvent]:
        record = LapRecord(
            lap_number=self._current_lap,
            lap_time=crossing_time - self._current_lap_start_time,
            total_time=crossing_time,
        )
        self._laps.append(record)
        _logger.info("Lap %d: %.2fms (total %.2fms)", record.lap_number, record.lap_time, record.total_time)
        events = [self._emit(RaceEvent(RaceEventKind.LAP_COMPLETED, crossing_time, record))]

        if self._lap_limit > 0 and self._current_lap >= self._lap_limit:
            self._state = RaceState.FINISHED
            _logger.info("Race finished after %d laps (clock %.2fms)", self._current_lap, crossing_time)
            events.append(self._emit(RaceEvent(RaceEventKind.RACE_FINISHED, crossing_time, record)))
            return events

        self._current_lap += 1
        self._current_lap_start_time = crossing_time
        return events

    def _emit(self, event: RaceEvent) -> RaceEvent:
        for cb in self._listeners:
            cb(event)
        return event
