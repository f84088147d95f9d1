"""DuckDB writer for persisting simulation results."""

import hashlib
import json
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import duckdb
import pandas as pd

from leanline.export import (
    buffer_summary_frame,
    completions_frame,
    station_summary_frame,
)
from leanline.loader import ConfigLoader
from leanline.storage.schema import create_tables

if TYPE_CHECKING:
    from leanline.engine import SimulationEngine
    from leanline.loader import ResolvedConfig

__version__ = "0.1.0"

# Log-row columns stored as first-class metrics columns
CORE_METRIC_COLUMNS = ("time", "throughput", "wip", "lead_time")


class DuckDBWriter:
    """Writes simulation results to DuckDB database."""

    def __init__(self, db_path: Path):
        """Initialize writer and ensure schema exists.

        Args:
            db_path: Path to DuckDB database file
        """
        self.db_path = db_path
        self.conn = duckdb.connect(str(db_path))
        create_tables(self.conn)

    def store_run(
        self,
        resolved: "ResolvedConfig",
        engine: "SimulationEngine",
        started_at: Optional[datetime] = None,
    ) -> int:
        """Store complete simulation results.

        Args:
            resolved: Resolved configuration used for the simulation
            engine: Engine after the run (history is read, not modified)
            started_at: Wall-clock start of the run (default: now)

        Returns:
            run_id of the stored simulation
        """
        run_id = self._insert_simulation_run(resolved, started_at or datetime.now())
        self._insert_metrics(run_id, engine.history.log)
        self._insert_frame(run_id, "completions", self._completions(engine))
        self._insert_frame(run_id, "station_summary", station_summary_frame(engine))
        self._insert_frame(run_id, "buffer_summary", buffer_summary_frame(engine))
        self._insert_summary(run_id, engine)

        self.conn.execute(
            "UPDATE simulation_runs SET completed_at = ? WHERE run_id = ?",
            [datetime.now(), run_id],
        )
        return run_id

    def _insert_simulation_run(self, resolved: "ResolvedConfig", started_at: datetime) -> int:
        """Insert parent record and return run_id."""
        config_json = json.dumps(
            {
                "run": {
                    "name": resolved.run.name,
                    "line": resolved.run.line,
                    "ticks": resolved.run.ticks,
                    "random_seed": resolved.run.random_seed,
                    "overrides": resolved.run.overrides,
                },
                "line": ConfigLoader.line_to_dict(resolved.line),
            },
            default=str,
        )
        config_hash = hashlib.sha256(config_json.encode()).hexdigest()[:16]

        run_id = self.conn.execute(
            "SELECT nextval('seq_simulation_runs_id')"
        ).fetchone()[0]

        self.conn.execute(
            """
            INSERT INTO simulation_runs (
                run_id, run_name, line_name, config_hash, started_at, ticks,
                random_seed, wip_cap, warmup_period, config_snapshot, leanline_version
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                run_id,
                resolved.run.name,
                resolved.line.name,
                config_hash,
                started_at,
                resolved.run.ticks,
                resolved.run.random_seed,
                resolved.line.wip,
                resolved.line.warmup_period,
                config_json,
                __version__,
            ],
        )
        return run_id

    def _insert_metrics(self, run_id: int, log: list) -> None:
        if not log:
            return
        df_insert = pd.DataFrame(
            {
                "sim_time": [row["time"] for row in log],
                "throughput": [float(row["throughput"]) for row in log],
                "wip": [row["wip"] for row in log],
                "lead_time": [float(row["lead_time"]) for row in log],
                "detail": [
                    json.dumps(
                        {k: v for k, v in row.items() if k not in CORE_METRIC_COLUMNS},
                        default=str,
                    )
                    for row in log
                ],
            }
        )
        self._insert_frame(run_id, "metrics", df_insert)

    @staticmethod
    def _completions(engine: "SimulationEngine") -> pd.DataFrame:
        return completions_frame(engine).rename(columns={"time": "sim_time"})

    def _insert_frame(self, run_id: int, table: str, df: pd.DataFrame) -> None:
        """Bulk insert a DataFrame whose columns match the table (minus run_id)."""
        if df.empty:
            return
        df_insert = df.copy()
        df_insert.insert(0, "run_id", run_id)
        columns = ", ".join(df_insert.columns)

        self.conn.register("insert_df", df_insert)
        self.conn.execute(f"INSERT INTO {table} ({columns}) SELECT {columns} FROM insert_df")
        self.conn.unregister("insert_df")

    def _insert_summary(self, run_id: int, engine: "SimulationEngine") -> None:
        self.conn.execute(
            """
            INSERT INTO run_summary (
                run_id, completed_pieces, throughput_per_hour, avg_lead_time,
                final_wip, converged
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                run_id,
                engine.completed_count,
                engine.throughput(),
                engine.average_lead_time(),
                engine.total_wip(),
                engine.is_converged,
            ],
        )

    def close(self) -> None:
        self.conn.close()
