"""RankingBoard ordering and fire-and-forget RaceRecorder submission."""

from __future__ import annotations

import logging
import threading
from unittest.mock import MagicMock

from line_follower.race.models import GainsSnapshot, RaceSummary
from line_follower.race.recorder import RaceRecorder, RankingBoard


def summary(total: float) -> RaceSummary:
    return RaceSummary(
        mode="official",
        total_time_ms=total,
        lap_times=[total],
        gains=GainsSnapshot(kp=2.0, ki=0.0, kd=0.9),
        mean_error=1.0,
        mean_velocity=200.0,
    )


class TestRankingBoard:
    def test_sorted_ascending(self):
        board = RankingBoard()
        for t in (9000.0, 7000.0, 8000.0):
            board.save(summary(t))
        assert [s.total_time_ms for s in board.ranking()] == [7000.0, 8000.0, 9000.0]
        assert board.best_time() == 7000.0
        assert board.count() == 3

    def test_record_flag(self):
        board = RankingBoard()
        first, slower, faster = summary(8000.0), summary(9000.0), summary(6000.0)
        board.save(first)
        board.save(slower)
        board.save(faster)
        assert first.is_record
        assert not slower.is_record
        assert faster.is_record

    def test_top_and_clear(self):
        board = RankingBoard()
        for t in range(1, 15):
            board.save(summary(float(t)))
        assert len(board.top()) == 10
        assert len(board.top(3)) == 3
        board.clear()
        assert board.count() == 0
        assert board.best_time() == 0.0


class TestRaceRecorder:
    def test_submit_saves_in_background(self):
        board = RankingBoard()
        recorder = RaceRecorder(board)
        recorder.submit(summary(5000.0))
        recorder.join()
        assert board.count() == 1

    def test_submit_does_not_block(self):
        release = threading.Event()
        sink = MagicMock()
        sink.save.side_effect = lambda s: release.wait(2.0)

        recorder = RaceRecorder(sink)
        recorder.submit(summary(5000.0))  # returns while save is still blocked
        assert not release.is_set()
        release.set()
        recorder.join()
        sink.save.assert_called_once()

    def test_sink_failure_is_logged(self, caplog):
        sink = MagicMock()
        sink.save.side_effect = OSError("disk full")
        recorder = RaceRecorder(sink)
        with caplog.at_level(logging.ERROR, logger="line_follower.race.recorder"):
            recorder.submit(summary(5000.0))
            recorder.join()
        assert "Failed to save race" in caplog.text

    def test_default_sink_is_ranking_board(self):
        assert isinstance(RaceRecorder().sink, RankingBoard)
