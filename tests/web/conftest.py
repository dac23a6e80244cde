"""Shared fixtures for web tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from line_follower.simulation.config import SimulationConfig
from line_follower.web.app import app, get_service
from line_follower.web.service import SimulationService


@pytest.fixture
def service():
    """Fresh service per test; the simulation only advances through /api/tick."""
    svc = SimulationService(SimulationConfig(), autorun=False)
    yield svc
    svc.shutdown()


@pytest.fixture
def client(service):
    """FastAPI test client bound to *service*."""
    app.dependency_overrides[get_service] = lambda: service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
