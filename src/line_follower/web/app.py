"""FastAPI Web application: simulator state, commands, tuning and ranking."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException

from line_follower import __version__
from line_follower.simulation.config import SimulationConfig
from line_follower.simulation.engine import GainsLockedError
from line_follower.web.schemas import (
    CommandResponse,
    GainFactorRequest,
    GainFactorResponse,
    GainsOut,
    GainsUpdateRequest,
    HealthResponse,
    ModeRequest,
    ModeResponse,
    RankingResponse,
    StateResponse,
    TelemetryResponse,
    TickRequest,
    TickResponse,
    TrackResponse,
)
from line_follower.web.service import SimulationService

load_dotenv()  # loads .env from project root; must run before env vars are consumed

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

_AUTORUN = os.environ.get("LINE_FOLLOWER_AUTORUN", "1") not in ("0", "false", "no")

_service = SimulationService(SimulationConfig.from_env(), autorun=_AUTORUN)


def get_service() -> SimulationService:
    return _service


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    _service.shutdown()


app = FastAPI(title="Line Follower Simulator", version=__version__, lifespan=_lifespan)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


@app.get("/api/state", response_model=StateResponse)
def get_state(svc: SimulationService = Depends(get_service)) -> StateResponse:
    return svc.state()


@app.get("/api/track", response_model=TrackResponse)
def get_track(svc: SimulationService = Depends(get_service)) -> TrackResponse:
    return svc.track()


@app.get("/api/telemetry", response_model=TelemetryResponse)
def get_telemetry(svc: SimulationService = Depends(get_service)) -> TelemetryResponse:
    return svc.telemetry()


@app.post("/api/commands/{name}", response_model=CommandResponse)
def run_command(name: str, svc: SimulationService = Depends(get_service)) -> CommandResponse:
    """Lifecycle command: start, pause, resume, stop or reset."""
    try:
        return svc.command(name)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.put("/api/mode", response_model=ModeResponse)
def put_mode(req: ModeRequest, svc: SimulationService = Depends(get_service)) -> ModeResponse:
    return svc.set_mode(req.mode)


@app.put("/api/gains", response_model=GainsOut)
def put_gains(req: GainsUpdateRequest, svc: SimulationService = Depends(get_service)) -> GainsOut:
    """Manually set gains; rejected with 423 while the mode locks them."""
    try:
        return svc.update_gains(req)
    except GainsLockedError as exc:
        raise HTTPException(status_code=423, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.post("/api/gains/factor", response_model=GainFactorResponse)
def post_gain_factor(
    req: GainFactorRequest, svc: SimulationService = Depends(get_service)
) -> GainFactorResponse:
    try:
        return svc.apply_gain_factor(req.parameter, req.factor)
    except GainsLockedError as exc:
        raise HTTPException(status_code=423, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.post("/api/tick", response_model=TickResponse)
def post_tick(req: TickRequest, svc: SimulationService = Depends(get_service)) -> TickResponse:
    """Advance the simulation synchronously by up to ``count`` ticks."""
    return svc.advance(req.count)


@app.get("/api/ranking", response_model=RankingResponse)
def get_ranking(limit: int = 10, svc: SimulationService = Depends(get_service)) -> RankingResponse:
    if limit < 1:
        raise HTTPException(status_code=422, detail="limit must be >= 1")
    return svc.ranking(limit)
