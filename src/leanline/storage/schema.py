"""DuckDB schema definitions for simulation results storage."""

SCHEMA_DDL = """
-- 1. SIMULATION_RUNS: Parent record for each simulation
CREATE TABLE IF NOT EXISTS simulation_runs (
    run_id INTEGER PRIMARY KEY,
    run_name VARCHAR NOT NULL,
    line_name VARCHAR NOT NULL,
    config_hash VARCHAR NOT NULL,
    started_at TIMESTAMP NOT NULL,
    completed_at TIMESTAMP,
    ticks INTEGER NOT NULL,
    random_seed INTEGER,
    wip_cap INTEGER NOT NULL,
    warmup_period INTEGER NOT NULL,
    -- Config snapshot (JSON blob)
    config_snapshot JSON NOT NULL,
    leanline_version VARCHAR,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- 2. METRICS: Periodic samples
CREATE TABLE IF NOT EXISTS metrics (
    run_id INTEGER NOT NULL REFERENCES simulation_runs(run_id),
    sim_time INTEGER NOT NULL,
    throughput DOUBLE NOT NULL,
    wip INTEGER NOT NULL,
    lead_time DOUBLE NOT NULL,
    -- Per-station/per-buffer columns of the log row
    detail JSON
);

-- 3. COMPLETIONS: One row per piece leaving the line
CREATE TABLE IF NOT EXISTS completions (
    run_id INTEGER NOT NULL REFERENCES simulation_runs(run_id),
    piece_id VARCHAR NOT NULL,
    sim_time INTEGER NOT NULL,
    lead_time INTEGER NOT NULL,
    counted BOOLEAN NOT NULL
);

-- 4. STATION_SUMMARY: Time counters per station
CREATE TABLE IF NOT EXISTS station_summary (
    run_id INTEGER NOT NULL REFERENCES simulation_runs(run_id),
    station VARCHAR NOT NULL,
    batch_size INTEGER NOT NULL,
    parallel_machines INTEGER NOT NULL,
    working_time INTEGER NOT NULL,
    processing_time INTEGER NOT NULL,
    total_time INTEGER NOT NULL,
    utilization_pct DOUBLE,
    UNIQUE(run_id, station)
);

-- 5. BUFFER_SUMMARY: Occupancy per buffer
CREATE TABLE IF NOT EXISTS buffer_summary (
    run_id INTEGER NOT NULL REFERENCES simulation_runs(run_id),
    buffer_id VARCHAR NOT NULL,
    capacity INTEGER NOT NULL,
    level INTEGER NOT NULL,
    cumulative_fill BIGINT NOT NULL,
    avg_util_pct DOUBLE,
    UNIQUE(run_id, buffer_id)
);

-- 6. RUN_SUMMARY: Pre-aggregated results
CREATE TABLE IF NOT EXISTS run_summary (
    run_id INTEGER PRIMARY KEY REFERENCES simulation_runs(run_id),
    completed_pieces INTEGER DEFAULT 0,
    throughput_per_hour DOUBLE,
    avg_lead_time DOUBLE,
    final_wip INTEGER,
    converged BOOLEAN
);

CREATE SEQUENCE IF NOT EXISTS seq_simulation_runs_id START 1;
"""

INDEX_DDL = """
CREATE INDEX IF NOT EXISTS idx_runs_started_at ON simulation_runs(started_at);
CREATE INDEX IF NOT EXISTS idx_metrics_run_time ON metrics(run_id, sim_time);
CREATE INDEX IF NOT EXISTS idx_completions_run ON completions(run_id, sim_time);
"""

VIEW_DDL = """
-- Run comparison view
CREATE OR REPLACE VIEW v_run_comparison AS
SELECT r.run_id, r.run_name, r.line_name, r.wip_cap, r.started_at,
       s.completed_pieces, s.throughput_per_hour, s.avg_lead_time,
       s.final_wip, s.converged
FROM simulation_runs r
JOIN run_summary s ON r.run_id = s.run_id;
"""


def create_tables(conn) -> None:
    """Create all tables, indexes, and views in the database.

    Args:
        conn: DuckDB connection
    """
    conn.execute(SCHEMA_DDL)
    conn.execute(INDEX_DDL)
    conn.execute(VIEW_DDL)
