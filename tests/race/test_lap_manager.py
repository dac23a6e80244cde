"""LapManager: start detection, crossing patterns, minimum lap time, interpolation."""

from __future__ import annotations

import pytest

from line_follower.race.lap_manager import LapManager, RaceState
from line_follower.race.models import RaceEventKind


def feed(lm: LapManager, progress: list[float], dt: float) -> list:
    events = []
    for t in progress:
        events.extend(lm.update(t, dt))
    return events


# ---------------------------------------------------------------------------
# Start
# ---------------------------------------------------------------------------

class TestStart:
    def test_waits_outside_start_band(self):
        lm = LapManager()
        lm.update(0.5, 100)
        assert lm.state is RaceState.NOT_STARTED
        assert lm.current_lap == 0
        assert lm.status() == "Waiting for start..."

    def test_starts_inside_band(self):
        lm = LapManager()
        lm.update(0.5, 100)
        events = lm.update(0.97, 100)
        assert lm.state is RaceState.RACING
        assert lm.current_lap == 1
        assert lm.current_lap_start_time == pytest.approx(200.0)
        assert [e.kind for e in events] == [RaceEventKind.RACE_STARTED]

    def test_negative_lap_limit_rejected(self):
        with pytest.raises(ValueError):
            LapManager(lap_limit=-1)


# ---------------------------------------------------------------------------
# Crossings
# ---------------------------------------------------------------------------

class TestCrossing:
    def test_wraparound_interpolated(self):
        """Crossing 0.97 -> 0.01 lands a quarter of the tick before the sample."""
        lm = LapManager()
        feed(lm, [0.02, 0.50, 0.97, 0.01], dt=3000)
        assert len(lm.laps) == 1
        lap = lm.laps[0]
        assert lap.lap_number == 1
        assert lap.total_time == pytest.approx(11250.0)
        assert lap.lap_time == pytest.approx(8250.0)
        assert lm.current_lap == 2
        assert lm.current_lap_start_time == pytest.approx(11250.0)

    def test_positive_jump(self):
        """Backwards pass 0.02 -> 0.98 also counts, interpolated from the 1.0 side."""
        lm = LapManager()
        lm.update(0.0, 1000)
        lm.update(0.02, 4000)
        lm.update(0.98, 1000)
        assert len(lm.laps) == 1
        assert lm.laps[0].total_time == pytest.approx(5500.0)
        assert lm.laps[0].lap_time == pytest.approx(4500.0)

    def test_crossing_before_minimum_lap_time_ignored(self):
        lm = LapManager()
        feed(lm, [0.02, 0.50, 0.97, 0.01], dt=500)
        assert lm.laps == ()
        assert lm.current_lap == 1

    def test_total_elapsed_accumulates(self):
        lm = LapManager()
        feed(lm, [0.3, 0.4, 0.5], dt=50)
        assert lm.total_elapsed_time == pytest.approx(150.0)
        assert lm.previous_progress == 0.5

    def test_progress_wrapped_into_unit_interval(self):
        lm = LapManager()
        lm.update(1.01, 100)
        assert lm.previous_progress == pytest.approx(0.01)
        assert lm.state is RaceState.RACING


# ---------------------------------------------------------------------------
# Finish and statistics
# ---------------------------------------------------------------------------

CYCLE = [0.25, 0.5, 0.75, 0.9, 0.0]


class TestLapLimit:
    def test_finishes_at_limit(self):
        lm = LapManager(lap_limit=3)
        events = feed(lm, [0.0] + CYCLE * 4, dt=1000)
        assert len(lm.laps) == 3
        assert [lap.lap_time for lap in lm.laps] == pytest.approx([5000.0, 5000.0, 5000.0])
        assert lm.is_race_finished
        assert events[-1].kind is RaceEventKind.RACE_FINISHED
        assert events[-1].elapsed_ms == pytest.approx(16000.0)

    def test_updates_after_finish_are_noops(self):
        lm = LapManager(lap_limit=1)
        feed(lm, [0.0] + CYCLE, dt=1000)
        clock = lm.total_elapsed_time
        assert feed(lm, CYCLE * 2, dt=1000) == []
        assert len(lm.laps) == 1
        assert lm.total_elapsed_time == clock

    def test_status_line(self):
        lm = LapManager(lap_limit=3)
        feed(lm, [0.0] + CYCLE, dt=1000)
        assert lm.status() == "Lap 2 / 3 | Time: 6000.0ms | Best: 5000.0ms"

    def test_statistics(self):
        lm = LapManager()
        lm.update(0.0, 1000)
        feed(lm, CYCLE, dt=1000)
        feed(lm, [0.25, 0.5, 0.75, 0.8, 0.85, 0.9, 0.0], dt=1000)
        assert lm.best_lap().lap_time == pytest.approx(5000.0)
        assert lm.worst_lap().lap_time == pytest.approx(7000.0)
        assert lm.average_lap_time() == pytest.approx(6000.0)
        assert lm.current_lap_elapsed() == pytest.approx(0.0)

    def test_listener_receives_events(self):
        received = []
        lm = LapManager(lap_limit=1)
        lm.register_listener(received.append)
        feed(lm, [0.0] + CYCLE, dt=1000)
        assert [e.kind for e in received] == [
            RaceEventKind.RACE_STARTED,
            RaceEventKind.LAP_COMPLETED,
            RaceEventKind.RACE_FINISHED,
        ]

    def test_reset_keeps_limit(self):
        lm = LapManager(lap_limit=2)
        feed(lm, [0.0] + CYCLE, dt=1000)
        lm.reset()
        assert lm.laps == ()
        assert lm.state is RaceState.NOT_STARTED
        assert lm.total_elapsed_time == 0.0
        assert lm.lap_limit == 2
