"""CLI and runner tests for leanline."""

from pathlib import Path

import pytest

from leanline.run import main, run_resolved, run_simulation


class TestRunResolved:
    """Programmatic runs from a resolved config."""

    def test_frames_and_summary(self, loader):
        resolved = loader.resolve_run("balanced_1h")
        resolved.run.ticks = 500
        results = run_resolved(resolved)

        assert results.engine.current_time == 500
        assert results.run_id is None
        assert set(results.frames) == {"metrics", "completions", "flow", "stations", "buffers"}
        assert results.summary["completed_pieces"] == results.engine.completed_count
        assert results.summary["wip_cap"] == 9

    def test_timeline_frame_when_recorded(self, loader):
        resolved = loader.resolve_run("balanced_1h")
        resolved.run.ticks = 20
        resolved.run.record_timeline = True
        results = run_resolved(resolved)
        assert len(results.frames["timeline"]) == 20 * 5

    def test_save_to_db(self, loader, tmp_path: Path):
        resolved = loader.resolve_run("balanced_1h")
        resolved.run.ticks = 100
        results = run_resolved(resolved, save_to_db=True, db_path=str(tmp_path / "r.duckdb"))
        assert results.run_id == 1


class TestRunSimulation:
    """run_simulation() prints a summary."""

    def test_prints_summary(self, config_dir: Path, capsys):
        results = run_simulation(
            "bottleneck_1h", str(config_dir), save_to_db=False, ticks=400, seed=3
        )
        out = capsys.readouterr().out
        assert "SIMULATION COMPLETE" in out
        assert "Throughput:" in out
        assert results.engine.current_time == 400

    def test_seed_override_is_reproducible(self, config_dir: Path):
        a = run_simulation("high_volatility_1h", str(config_dir), save_to_db=False, ticks=600, seed=5)
        b = run_simulation("high_volatility_1h", str(config_dir), save_to_db=False, ticks=600, seed=5)
        assert a.engine.completions == b.engine.completions


class TestMain:
    """argparse entry point."""

    def test_run_with_export(self, config_dir: Path, tmp_path: Path, capsys):
        main(
            [
                "run",
                "--run", "balanced_1h",
                "--config", str(config_dir),
                "--ticks", "200",
                "--no-db",
                "--export",
                "--output", str(tmp_path / "out"),
            ]
        )
        exported = sorted(p.name.split("_")[0] for p in (tmp_path / "out").glob("*.csv"))
        assert exported == ["buffers", "completions", "flow", "metrics", "stations"]
        assert "Exported:" in capsys.readouterr().out

    def test_lines(self, config_dir: Path, capsys):
        main(["lines", "--config", str(config_dir)])
        out = capsys.readouterr().out
        assert "bottleneck" in out
        assert "balanced_1h" in out

    def test_validate_ok(self, config_dir: Path, capsys):
        main(["validate", "--run", "high_volatility_1h", "--config", str(config_dir)])
        assert "OK:" in capsys.readouterr().out

    def test_validate_invalid(self, tmp_path: Path, capsys):
        (tmp_path / "lines").mkdir()
        (tmp_path / "lines" / "bad.yaml").write_text("stations: [{}, {}]\nbuffers: []\n")
        (tmp_path / "runs").mkdir()
        (tmp_path / "runs" / "bad_run.yaml").write_text("line: bad\n")
        with pytest.raises(SystemExit):
            main(["validate", "--run", "bad_run", "--config", str(tmp_path)])
        assert "INVALID" in capsys.readouterr().out
