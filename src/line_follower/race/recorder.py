"""Race recorder — hands finished-race summaries to a ranking sink.

Submission is fire-and-forget on a daemon thread: the simulation tick never
waits for the sink, and sink failures are logged instead of raised.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from line_follower.race.models import RaceSummary

_logger = logging.getLogger(__name__)


class RaceSink(Protocol):
    """Anything that can durably accept a :class:`RaceSummary`."""

    def save(self, summary: RaceSummary) -> None: ...


class RankingBoard:
    """In-memory ranking ordered by ascending total race time.

    Thread-safe: :meth:`save` runs on the recorder thread while readers may
    query from elsewhere.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[RaceSummary] = []

    def save(self, summary: RaceSummary) -> None:
        """Insert *summary*; flags it as a record when it beats every previous entry."""
        with self._lock:
            if not self._entries or summary.total_time_ms < self._entries[0].total_time_ms:
                summary.is_record = True
            self._entries.append(summary)
            self._entries.sort(key=lambda s: s.total_time_ms)

    def ranking(self) -> list[RaceSummary]:
        with self._lock:
            return list(self._entries)

    def top(self, n: int = 10) -> list[RaceSummary]:
        with self._lock:
            return self._entries[:n]

    def best_time(self) -> float:
        with self._lock:
            return self._entries[0].total_time_ms if self._entries else 0.0

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RaceRecorder:
    """Submits summaries to *sink* without blocking the caller.

    Parameters
    ----------
    sink:
        Object with ``save(summary)``; defaults to a fresh :class:`RankingBoard`.
    """

    def __init__(self, sink: RaceSink | None = None) -> None:
        self.sink: RaceSink = sink if sink is not None else RankingBoard()
        self._threads: list[threading.Thread] = []

    def submit(self, summary: RaceSummary) -> None:
        """Start a daemon thread that saves *summary*; returns immediately."""
        thread = threading.Thread(
            target=self._save, args=(summary,), daemon=True, name="RaceRecorder"
        )
        self._threads = [t for t in self._threads if t.is_alive()]
        self._threads.append(thread)
        thread.start()

    def join(self, timeout: float | None = 2.0) -> None:
        """Wait for pending submissions (used by tests and shutdown)."""
        for thread in list(self._threads):
            thread.join(timeout=timeout)
        self._threads = [t for t in self._threads if t.is_alive()]

    def _save(self, summary: RaceSummary) -> None:
        try:
            self.sink.save(summary)
        except Exception:
            _logger.exception("Failed to save race %s", summary.id)
            return
        _logger.info(
            "Race saved: %.2fms over %d laps", summary.total_time_ms, summary.laps_completed
        )
