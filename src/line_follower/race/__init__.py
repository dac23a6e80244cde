"""Lap timing, race events and the finished-race summary.

Public API
----------
LapManager     - start-line crossing state machine
LapRecord      - one completed lap
RaceEvent      - race started / lap completed / race finished notification
RaceSummary    - record handed to the ranking collaborator
RaceRecorder   - fire-and-forget submission of summaries
RankingBoard   - in-memory ranking sink
"""

from line_follower.race.lap_manager import LapManager, RaceState
from line_follower.race.models import (
    GainsSnapshot,
    LapRecord,
    RaceEvent,
    RaceEventKind,
    RaceSummary,
)
from line_follower.race.recorder import RaceRecorder, RaceSink, RankingBoard

__all__ = [
    "GainsSnapshot",
    "LapManager",
    "LapRecord",
    "RaceEvent",
    "RaceEventKind",
    "RaceRecorder",
    "RaceSink",
    "RaceState",
    "RaceSummary",
    "RankingBoard",
]
