"""SimulationConfig defaults, gain limits and environment overrides."""

from __future__ import annotations

import pytest

from line_follower.simulation.config import GainLimits, SimulationConfig
from line_follower.track.models import TrackStyle


def test_defaults():
    cfg = SimulationConfig()
    assert (cfg.canvas_width, cfg.canvas_height) == (900.0, 680.0)
    assert cfg.update_rate_ms == 50.0
    assert cfg.track_style is TrackStyle.CUSTOM


def test_from_env_overrides():
    cfg = SimulationConfig.from_env(
        {
            "LINE_FOLLOWER_CANVAS_WIDTH": "1200",
            "LINE_FOLLOWER_CANVAS_HEIGHT": "800",
            "LINE_FOLLOWER_TICK_MS": "20",
        }
    )
    assert (cfg.canvas_width, cfg.canvas_height, cfg.update_rate_ms) == (1200.0, 800.0, 20.0)


def test_from_env_falls_back_to_defaults():
    cfg = SimulationConfig.from_env({})
    assert cfg == SimulationConfig()


def test_from_env_reads_process_environment(monkeypatch):
    monkeypatch.setenv("LINE_FOLLOWER_TICK_MS", "25")
    assert SimulationConfig.from_env().update_rate_ms == 25.0


class TestGainLimits:
    def test_clamp(self):
        limits = GainLimits()
        assert limits.clamp("kp", 9.0) == 5.0
        assert limits.clamp("kd", -1.0) == 0.0
        assert limits.clamp("ki", 0.3) == 0.3
        assert limits.clamp("base_velocity", 50.0) == 100.0
        assert limits.clamp("base_velocity", 5000.0) == 4000.0

    def test_unknown_parameter(self):
        with pytest.raises(ValueError):
            GainLimits().clamp("gain", 1.0)
