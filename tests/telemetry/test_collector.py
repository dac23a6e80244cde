"""TelemetryCollector: capacity, aggregates and CSV export."""

from __future__ import annotations

import pytest

from line_follower.telemetry.collector import TelemetryCollector


@pytest.fixture
def collector() -> TelemetryCollector:
    c = TelemetryCollector(capacity=5)
    c.add(1000.0, 2.0, 4.0, 190.0, 210.0)
    c.add(1050.0, -4.0, -8.0, 210.0, 190.0)
    c.add(1100.0, 6.0, 12.0, 180.0, 220.0)
    return c


def test_time_relative_to_first_sample(collector):
    assert [s.time_ms for s in collector.samples()] == [0.0, 50.0, 100.0]


def test_capacity_drops_oldest():
    c = TelemetryCollector(capacity=3)
    for i in range(5):
        c.add(i * 50.0, float(i), 0.0, 0.0, 0.0)
    assert len(c) == 3
    assert [s.error for s in c.samples()] == [2.0, 3.0, 4.0]


def test_invalid_capacity():
    with pytest.raises(ValueError):
        TelemetryCollector(capacity=0)


def test_aggregates(collector):
    assert collector.mean_error() == pytest.approx(4.0)
    assert collector.mean_velocity() == pytest.approx(200.0)
    assert collector.oscillation() == pytest.approx((8 / 3) ** 0.5)
    assert collector.error_derivatives() == [-6.0, 10.0]


def test_empty_aggregates():
    c = TelemetryCollector()
    assert c.mean_error() == 0.0
    assert c.mean_velocity() == 0.0
    assert c.oscillation() == 0.0
    assert c.error_derivatives() == []


def test_export_csv(collector):
    lines = collector.export_csv().splitlines()
    assert lines[0] == "time_ms,error,correction,vel_left,vel_right"
    assert lines[2] == "50.00,-4.00,-8.00,210.00,190.00"
    assert len(lines) == 4


def test_reset_restarts_clock(collector):
    collector.reset()
    assert len(collector) == 0
    collector.add(5000.0, 0.0, 0.0, 0.0, 0.0)
    assert collector.samples()[0].time_ms == 0.0
