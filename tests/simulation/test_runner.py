"""SimulationRunner background ticking (4 tests)."""

from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock

import pytest

from line_follower.simulation.runner import SimulationRunner


def _wait_for(predicate, timeout: float = 1.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_runner_ticks_engine():
    engine = MagicMock()
    runner = SimulationRunner(engine, interval_ms=5)
    runner.start()
    assert _wait_for(lambda: engine.tick.call_count >= 3)
    runner.stop()

    assert not runner.is_alive
    assert runner.ticks >= 3


def test_runner_survives_tick_errors():
    engine = MagicMock()
    engine.tick.side_effect = RuntimeError("boom")
    runner = SimulationRunner(engine, interval_ms=5)
    runner.start()
    assert _wait_for(lambda: engine.tick.call_count >= 2)
    runner.stop()


def test_runner_ticks_under_shared_lock():
    lock = threading.Lock()
    engine = MagicMock()
    seen = []
    engine.tick.side_effect = lambda: seen.append(lock.locked())
    runner = SimulationRunner(engine, interval_ms=5, lock=lock)
    runner.start()
    assert _wait_for(lambda: len(seen) >= 1)
    runner.stop()
    assert all(seen)


def test_runner_rejects_non_positive_interval():
    engine = MagicMock()
    engine.update_rate_ms = 0
    with pytest.raises(ValueError):
        SimulationRunner(engine)
