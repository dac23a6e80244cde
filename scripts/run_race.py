"""Headless race runner — ticks the simulator as fast as possible and prints laps.

Usage:
    uv run python scripts/run_race.py
    uv run python scripts/run_race.py --mode test_3_laps --max-ticks 20000
    uv run python scripts/run_race.py --kp 1.5 --kd 1.2 --base-velocity 250 --csv out.csv
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from line_follower.race.models import RaceEventKind  # noqa: E402
from line_follower.simulation.config import SimulationConfig  # noqa: E402
from line_follower.simulation.engine import OperationMode, SimulationEngine  # noqa: E402
from line_follower.track.models import TrackStyle  # noqa: E402

_RACE_MODES = [OperationMode.FREE_RACE, OperationMode.TEST_3_LAPS, OperationMode.OFFICIAL]


def main() -> None:
    ap = argparse.ArgumentParser(description="Line follower simulator — headless race")
    ap.add_argument(
        "--mode",
        choices=[m.value for m in _RACE_MODES],
        default=OperationMode.OFFICIAL.value,
        help="Race mode (sets the lap limit)",
    )
    ap.add_argument(
        "--style",
        choices=[s.value for s in TrackStyle],
        default=TrackStyle.CUSTOM.value,
        help="Track layout",
    )
    ap.add_argument("--max-ticks", type=int, default=50_000, help="Give up after this many ticks")
    ap.add_argument("--kp", type=float, default=None, help="Proportional gain")
    ap.add_argument("--ki", type=float, default=None, help="Integral gain")
    ap.add_argument("--kd", type=float, default=None, help="Derivative gain")
    ap.add_argument("--base-velocity", type=float, default=None, help="Base wheel speed (px/s)")
    ap.add_argument("--csv", default="", help="Write telemetry CSV to this path")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = SimulationConfig.from_env()
    config.track_style = TrackStyle(args.style)
    engine = SimulationEngine(config)
    engine.update_gains(kp=args.kp, ki=args.ki, kd=args.kd, base_velocity=args.base_velocity)
    engine.set_mode(OperationMode(args.mode))
    engine.start()

    print(f"Mode      : {engine.mode_status()}")
    print(f"Track     : {config.track_style.value} ({engine.track.total_length:.0f} px)")
    g = engine.gains_snapshot()
    print(f"Gains     : Kp={g.kp:.2f} Ki={g.ki:.2f} Kd={g.kd:.2f} base={g.base_velocity:.0f}")
    print()

    ticks = 0
    while engine.is_running and ticks < args.max_ticks:
        result = engine.tick()
        ticks += 1
        for event in result.events:
            if event.kind is RaceEventKind.LAP_COMPLETED and event.lap is not None:
                print(f"  {event.lap}", flush=True)

    engine.recorder.join()
    summary = engine.last_summary
    print()
    if summary is None:
        print(f"Race did not finish within {ticks} ticks.  {engine.lap_status()}", file=sys.stderr)
    else:
        print(f"Finished  : {summary.laps_completed} lap(s) in {summary.total_time_ms:.2f}ms")
        print(f"Best lap  : {summary.best_lap:.2f}ms")
        print(f"Mean |err|: {summary.mean_error:.2f}px")

    if args.csv:
        with open(args.csv, "w", encoding="utf-8", newline="") as fh:
            fh.write(engine.telemetry.export_csv())
        print(f"Telemetry : {args.csv}")

    if summary is None:
        sys.exit(1)


if __name__ == "__main__":
    main()
