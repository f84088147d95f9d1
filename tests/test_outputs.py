"""Tests for DataFrame exports of engine history."""

import pandas as pd

from leanline import SimulationEngine
from leanline.export import (
    buffer_summary_frame,
    completions_frame,
    flow_frame,
    metrics_frame,
    station_summary_frame,
    timeline_frame,
)

from conftest import make_line


class TestMetricsFrame:
    """Per-sample log as a DataFrame."""

    def test_columns_and_rows(self, steady_line):
        engine = SimulationEngine(steady_line, seed=1)
        engine.run(200)
        df = metrics_frame(engine)
        assert len(df) == 20
        for column in ("time", "throughput", "wip", "lead_time", "S3_pieces", "B2_count"):
            assert column in df.columns
        assert (df["wip"] <= engine.wip_cap).all()

    def test_csv_export(self, steady_line, tmp_path):
        engine = SimulationEngine(steady_line, seed=1)
        engine.run(150)
        path = tmp_path / "metrics.csv"
        metrics_frame(engine).to_csv(path, index=False)
        df = pd.read_csv(path)
        assert df["time"].iloc[0] == 105


class TestCompletionsFrame:
    """One row per exiting piece."""

    def test_counted_flag(self, steady_line):
        engine = SimulationEngine(steady_line, seed=1)
        engine.run(200)
        df = completions_frame(engine)
        assert len(df) == engine.completed_count
        assert df.loc[df["time"] <= 100, "counted"].eq(False).all()
        assert df.loc[df["time"] > 100, "counted"].all()

    def test_empty(self, single_station_line):
        engine = SimulationEngine(single_station_line, seed=1)
        df = completions_frame(engine)
        assert df.empty
        assert list(df.columns) == ["piece_id", "time", "lead_time", "counted"]


class TestFlowFrame:
    """Cumulative entries and exits."""

    def test_in_line_matches_wip(self):
        engine = SimulationEngine(make_line([2, 5, 3], capacities=[2, 2], wip=5), seed=1)
        engine.run(300)
        df = flow_frame(engine)
        assert df["time"].is_monotonic_increasing
        assert df["in_line"].iloc[-1] == engine.total_wip()
        assert df["cumulative_exited"].iloc[-1] == engine.completed_count
        assert (df["in_line"] <= 5).all()


class TestTimelineFrame:
    """Gantt rows per machine per tick."""

    def test_rows_per_tick(self, steady_line):
        engine = SimulationEngine(steady_line, seed=1, record_timeline=True)
        engine.run(10)
        df = timeline_frame(engine)
        assert len(df) == 30
        assert set(df["status"]) <= {"free", "occupied", "blocked"}


class TestSummaries:
    """Station and buffer summaries."""

    def test_station_summary(self, steady_line):
        engine = SimulationEngine(steady_line, seed=1)
        engine.run(100)
        df = station_summary_frame(engine)
        assert list(df["station"]) == ["S1", "S2", "S3"]
        assert (df["total_time"] == 100).all()
        assert (df["utilization_pct"] <= 100).all()

    def test_buffer_summary(self, blocking_line):
        engine = SimulationEngine(blocking_line, seed=1)
        engine.run(50)
        df = buffer_summary_frame(engine)
        assert df["capacity"].iloc[0] == 0
        assert df["avg_util_pct"].iloc[0] == 0.0
