"""Tabular views of engine history for CSV export and storage."""

from typing import TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from leanline.engine import SimulationEngine


def metrics_frame(engine: "SimulationEngine") -> pd.DataFrame:
    """Full per-sample log (one row every ``log_step`` ticks after warm-up)."""
    return pd.DataFrame(engine.history.log)


def completions_frame(engine: "SimulationEngine") -> pd.DataFrame:
    """One row per piece that left the line."""
    df = pd.DataFrame(
        [
            {"piece_id": c.piece_id, "time": c.time, "lead_time": c.lead_time}
            for c in engine.completions
        ],
        columns=["piece_id", "time", "lead_time"],
    )
    df["counted"] = df["time"] > engine.warmup_period
    return df


def flow_frame(engine: "SimulationEngine") -> pd.DataFrame:
    """Cumulative entries into the first station and exits from the last."""
    entries = pd.DataFrame(
        [(r.time, r.count) for r in engine.entries], columns=["time", "entered"]
    )
    exits = pd.DataFrame(
        [(r.time, r.count) for r in engine.exits], columns=["time", "exited"]
    )
    entries = entries.groupby("time", as_index=False).sum()
    exits = exits.groupby("time", as_index=False).sum()

    df = pd.merge(entries, exits, on="time", how="outer").fillna(0)
    df = df.sort_values("time").reset_index(drop=True)
    df["entered"] = df["entered"].astype(int)
    df["exited"] = df["exited"].astype(int)
    df["cumulative_entered"] = df["entered"].cumsum()
    df["cumulative_exited"] = df["exited"].cumsum()
    df["in_line"] = df["cumulative_entered"] - df["cumulative_exited"]
    return df


def timeline_frame(engine: "SimulationEngine") -> pd.DataFrame:
    """Per-tick machine states (empty unless the engine records a timeline)."""
    return pd.DataFrame(
        [
            {
                "time": e.time,
                "station": e.station,
                "machine": e.machine,
                "status": e.status.value,
                "batch": e.batch,
                "remaining_time": e.remaining_time,
            }
            for e in engine.timeline
        ],
        columns=["time", "station", "machine", "status", "batch", "remaining_time"],
    )


def station_summary_frame(engine: "SimulationEngine") -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "station": s.id,
                "batch_size": s.batch_size,
                "parallel_machines": len(s.machines),
                "working_time": s.working_time,
                "processing_time": s.processing_time,
                "total_time": s.total_time,
                "utilization_pct": round(s.utilization_pct, 1),
            }
            for s in engine.stations
        ]
    )


def buffer_summary_frame(engine: "SimulationEngine") -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "buffer_id": b.id,
                "capacity": b.capacity,
                "level": len(b),
                "cumulative_fill": b.cumulative_fill,
                "avg_util_pct": round(b.average_utilization(engine.current_time), 1),
            }
            for b in engine.buffers
        ],
        columns=["buffer_id", "capacity", "level", "cumulative_fill", "avg_util_pct"],
    )
