"""SimulationRunner — drives :meth:`SimulationEngine.tick` from a background thread."""

from __future__ import annotations

import logging
import threading
import time

from line_follower.simulation.engine import SimulationEngine

_logger = logging.getLogger(__name__)


class SimulationRunner:
    """Calls ``engine.tick()`` every *interval_ms* wall-clock milliseconds.

    Each tick runs under *lock* so other threads (the web API) can read or
    command the engine between ticks.  A tick that raises is logged and the
    loop keeps going.

    Parameters
    ----------
    engine:
        The engine to advance.
    interval_ms:
        Wall-clock period; defaults to the engine's ``update_rate_ms``.
    lock:
        Shared lock guarding the engine; a private one when omitted.
    """

    def __init__(
        self,
        engine: SimulationEngine,
        interval_ms: float | None = None,
        lock: threading.Lock | None = None,
    ) -> None:
        self._engine = engine
        period = engine.update_rate_ms if interval_ms is None else interval_ms
        if period <= 0:
            raise ValueError("interval_ms must be > 0")
        self._interval = period / 1000.0
        self.lock = lock or threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._ticks = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def ticks(self) -> int:
        """Ticks performed since construction."""
        return self._ticks

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background tick thread (no-op when already running)."""
        if self.is_alive:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="SimulationRunner")
        self._thread.start()
        _logger.info("Runner started at %.1fms per tick", self._interval * 1000.0)

    def stop(self) -> None:
        """Signal the tick thread to stop and join it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
            _logger.info("Runner stopped after %d ticks", self._ticks)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self) -> None:
        while not self._stop_event.is_set():
            t0 = time.monotonic()
            try:
                with self.lock:
                    self._engine.tick()
            except Exception:
                _logger.exception("Simulation tick failed")
            self._ticks += 1
            wait = self._interval - (time.monotonic() - t0)
            if wait > 0:
                self._stop_event.wait(wait)
