"""Persist finished line runs in DuckDB and read them back.

One file holds any number of runs; every table is keyed by ``run_id``.
``v_run_comparison`` lines up the headline results of all stored runs, so
different WIP caps or buffer sizes on the same line can be compared with
a single query.
"""

import json
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import duckdb
import pandas as pd

from leanline.storage.schema import create_tables

if TYPE_CHECKING:
    from leanline.engine import SimulationEngine
    from leanline.loader import ResolvedConfig

DEFAULT_DB_PATH = Path("./leanline_results.duckdb")


def get_db_path() -> Path:
    return DEFAULT_DB_PATH


def connect(db_path: Path | str | None = None) -> duckdb.DuckDBPyConnection:
    """Open the results database, creating the schema if it is missing."""
    conn = duckdb.connect(str(Path(db_path) if db_path else DEFAULT_DB_PATH))
    create_tables(conn)
    return conn


def save_results(
    resolved: "ResolvedConfig",
    engine: "SimulationEngine",
    db_path: Path | str | None = None,
) -> int:
    """Store a finished engine under a new run_id and return it."""
    from leanline.storage.writer import DuckDBWriter

    writer = DuckDBWriter(Path(db_path) if db_path else DEFAULT_DB_PATH)
    try:
        return writer.store_run(resolved, engine)
    finally:
        writer.close()


def compare_runs(
    db_path: Path | str | None = None,
    line_name: Optional[str] = None,
) -> pd.DataFrame:
    """Headline results per run, best throughput first.

    Args:
        db_path: Results database (default: ./leanline_results.duckdb)
        line_name: Only runs of this line
    """
    query = "SELECT * FROM v_run_comparison"
    params = []
    if line_name is not None:
        query += " WHERE line_name = ?"
        params.append(line_name)
    query += " ORDER BY throughput_per_hour DESC, run_id"

    conn = connect(db_path)
    try:
        return conn.execute(query, params).df()
    finally:
        conn.close()


def load_metrics(run_id: int, db_path: Path | str | None = None) -> pd.DataFrame:
    """Metric samples of one run with the JSON detail expanded into columns."""
    conn = connect(db_path)
    try:
        df = conn.execute(
            """
            SELECT sim_time, throughput, wip, lead_time, detail
            FROM metrics WHERE run_id = ? ORDER BY sim_time
            """,
            [run_id],
        ).df()
    finally:
        conn.close()

    if df.empty:
        return df.drop(columns=["detail"])
    detail = pd.DataFrame([json.loads(d) if d else {} for d in df["detail"]])
    return pd.concat([df.drop(columns=["detail"]), detail], axis=1)


__all__ = [
    "DEFAULT_DB_PATH",
    "compare_runs",
    "connect",
    "get_db_path",
    "load_metrics",
    "save_results",
]
