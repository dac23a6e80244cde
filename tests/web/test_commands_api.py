"""Command endpoints: lifecycle, mode, gains and synchronous ticking."""

from __future__ import annotations

import pytest


def test_start_pause_resume_stop(client):
    data = client.post("/api/commands/start").json()
    assert data == {"command": "start", "is_running": True, "is_paused": False}

    assert client.post("/api/commands/pause").json()["is_paused"] is True
    assert client.post("/api/commands/resume").json()["is_paused"] is False

    data = client.post("/api/commands/stop").json()
    assert data["is_running"] is False


def test_unknown_command_404(client):
    assert client.post("/api/commands/launch").status_code == 404


def test_reset_clears_telemetry(client):
    client.put("/api/mode", json={"mode": "free_race"})
    client.post("/api/commands/start")
    client.post("/api/tick", json={"count": 3})
    client.post("/api/commands/reset")
    state = client.get("/api/state").json()
    assert state["is_running"] is False
    assert client.get("/api/telemetry").json()["errors"] == []


# ---------------------------------------------------------------------------
# Mode
# ---------------------------------------------------------------------------

def test_put_mode(client):
    data = client.put("/api/mode", json={"mode": "test_3_laps"}).json()
    assert data["lap_limit"] == 3
    assert data["auto_tune_enabled"] is True
    assert data["gains_locked"] is False


def test_put_mode_invalid(client):
    assert client.put("/api/mode", json={"mode": "turbo"}).status_code == 422


# ---------------------------------------------------------------------------
# Gains
# ---------------------------------------------------------------------------

def test_put_gains_clamped(client):
    resp = client.put("/api/gains", json={"kp": 10.0, "kd": 1.5})
    assert resp.status_code == 200
    data = resp.json()
    assert data["kp"] == 5.0
    assert data["kd"] == 1.5
    assert data["ki"] == 0.0


def test_put_gains_negative_rejected(client):
    assert client.put("/api/gains", json={"kp": -1.0}).status_code == 422


def test_gains_locked_in_official(client):
    client.put("/api/mode", json={"mode": "official"})
    resp = client.put("/api/gains", json={"kp": 1.0})
    assert resp.status_code == 423
    resp = client.post("/api/gains/factor", json={"parameter": "kp", "factor": 1.1})
    assert resp.status_code == 423
    assert client.get("/api/state").json()["gains"]["kp"] == 2.0


def test_gain_factor(client):
    resp = client.post("/api/gains/factor", json={"parameter": "kp", "factor": 2.0})
    assert resp.status_code == 200
    assert resp.json() == {"parameter": "kp", "value": pytest.approx(4.0)}


@pytest.mark.parametrize(
    "body",
    [
        {"parameter": "kslip", "factor": 1.1},
        {"parameter": "kp", "factor": 0.0},
        {"parameter": "kp", "factor": -2.0},
    ],
)
def test_gain_factor_invalid(client, body):
    assert client.post("/api/gains/factor", json=body).status_code == 422


# ---------------------------------------------------------------------------
# Tick
# ---------------------------------------------------------------------------

def test_tick_when_stopped_advances_nothing(client):
    data = client.post("/api/tick", json={"count": 5}).json()
    assert data["ticks"] == 0
    assert data["is_running"] is False


def test_tick_advances_race(client):
    client.put("/api/mode", json={"mode": "free_race"})
    client.post("/api/commands/start")
    data = client.post("/api/tick", json={"count": 5}).json()
    assert data["ticks"] == 5
    assert data["is_running"] is True
    assert data["events"][0]["kind"] == "race_started"

    state = client.get("/api/state").json()
    assert state["current_lap"] == 1
    assert state["lap_status"].startswith("Lap 1 / 5")


def test_tick_count_validated(client):
    assert client.post("/api/tick", json={"count": 0}).status_code == 422
