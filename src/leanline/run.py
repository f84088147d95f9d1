"""Entry point for running simulations."""

import argparse
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from leanline.engine import SimulationEngine
from leanline.errors import ConfigurationError
from leanline.export import (
    buffer_summary_frame,
    completions_frame,
    flow_frame,
    metrics_frame,
    station_summary_frame,
    timeline_frame,
)
from leanline.loader import ConfigLoader, ResolvedConfig
from leanline.logging_config import enable_console_logging
from leanline.validation import validate_line_config


@dataclass
class RunResults:
    """Everything produced by one simulation run."""

    engine: SimulationEngine
    frames: Dict[str, pd.DataFrame] = field(default_factory=dict)
    summary: Dict[str, Any] = field(default_factory=dict)
    run_id: Optional[int] = None


def run_resolved(
    resolved: ResolvedConfig,
    save_to_db: bool = False,
    db_path: str | None = None,
) -> RunResults:
    """Simulate a resolved configuration for ``resolved.run.ticks`` ticks.

    Args:
        resolved: Run + line configuration
        save_to_db: If True, save results to DuckDB database
        db_path: Custom path for DuckDB file

    Returns:
        RunResults with the engine, exportable frames and a summary
    """
    started_at = datetime.now()
    engine = SimulationEngine(
        resolved.line,
        seed=resolved.run.random_seed,
        record_timeline=resolved.run.record_timeline,
    )
    engine.run(resolved.run.ticks)

    frames = {
        "metrics": metrics_frame(engine),
        "completions": completions_frame(engine),
        "flow": flow_frame(engine),
        "stations": station_summary_frame(engine),
        "buffers": buffer_summary_frame(engine),
    }
    if resolved.run.record_timeline:
        frames["timeline"] = timeline_frame(engine)

    littles = engine.littles_law()
    summary = {
        "run": resolved.run.name,
        "line": resolved.line.name,
        "ticks": engine.current_time,
        "completed_pieces": engine.completed_count,
        "throughput_per_hour": engine.throughput(),
        "avg_lead_time": engine.average_lead_time(),
        "final_wip": engine.total_wip(),
        "wip_cap": engine.wip_cap,
        "converged": engine.is_converged,
        "convergence_message": engine.convergence.message,
        "littles_law_error": littles.relative_error,
        "milestones": len(engine.milestones),
    }

    results = RunResults(engine=engine, frames=frames, summary=summary)

    if save_to_db:
        from leanline.storage import DEFAULT_DB_PATH
        from leanline.storage.writer import DuckDBWriter

        path = Path(db_path) if db_path else DEFAULT_DB_PATH
        writer = DuckDBWriter(path)
        try:
            results.run_id = writer.store_run(resolved, engine, started_at=started_at)
        finally:
            writer.close()

    return results


def run_simulation(
    run_name: str = "balanced_1h",
    config_dir: str = "config",
    save_to_db: bool = True,
    db_path: str | None = None,
    ticks: Optional[int] = None,
    seed: Optional[int] = None,
) -> RunResults:
    """Run a simulation with the given run config name.

    Args:
        run_name: Name of the run config (without .yaml extension)
        config_dir: Path to config directory
        save_to_db: If True, save results to DuckDB database
        db_path: Custom path for DuckDB file
        ticks: Override the run's tick count
        seed: Override the run's random seed

    Returns:
        RunResults of the simulation
    """
    loader = ConfigLoader(config_dir)
    resolved = loader.resolve_run(run_name)
    if ticks is not None:
        resolved.run.ticks = ticks
    if seed is not None:
        resolved.run.random_seed = seed

    print(f"Running '{resolved.run.name}' on line '{resolved.line.name}' "
          f"({resolved.run.ticks} ticks, seed={resolved.run.random_seed})")

    results = run_resolved(resolved, save_to_db=save_to_db, db_path=db_path)
    summary = results.summary

    print("\n--- SIMULATION COMPLETE ---")
    print(f"Completed Pieces:  {summary['completed_pieces']:,}")
    print(f"Throughput:        {summary['throughput_per_hour']:.1f} pieces/hour")
    print(f"Avg Lead Time:     {summary['avg_lead_time']:.1f} s")
    print(f"WIP (cap):         {summary['final_wip']} ({summary['wip_cap']})")
    print(f"Status:            {summary['convergence_message']}")
    print(f"Little's Law err:  {summary['littles_law_error'] * 100:.1f}%")

    stations = results.frames["stations"]
    if not stations.empty:
        print("\n--- Station Utilisation (%) ---")
        print(stations.set_index("station")[["working_time", "total_time", "utilization_pct"]])

    buffers = results.frames["buffers"]
    if not buffers.empty:
        print("\n--- Buffer Occupancy ---")
        print(buffers.set_index("buffer_id")[["capacity", "level", "avg_util_pct"]])

    if results.run_id is not None:
        print(f"\nSaved to DuckDB as run_id={results.run_id}")

    return results


def _run_command(args: argparse.Namespace) -> None:
    """Handle 'run' subcommand."""
    results = run_simulation(
        args.run,
        args.config,
        save_to_db=not args.no_db,
        db_path=args.db_path,
        ticks=args.ticks,
        seed=args.seed,
    )

    if args.export:
        output_dir = Path(args.output)
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

        for name, df in results.frames.items():
            path = output_dir / f"{name}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Exported: {path} ({len(df)} rows)")


def _lines_command(args: argparse.Namespace) -> None:
    """Handle 'lines' subcommand."""
    loader = ConfigLoader(args.config)
    print("Lines:")
    for name in loader.list_lines():
        line = loader.load_line(name)
        print(f"  {name:<20} {len(line.stations)} stations, wip={line.wip}  {line.description}")
    print("Runs:")
    for name in loader.list_runs():
        print(f"  {name}")


def _validate_command(args: argparse.Namespace) -> None:
    """Handle 'validate' subcommand."""
    loader = ConfigLoader(args.config)
    try:
        resolved = loader.resolve_run(args.run)
        warnings = validate_line_config(resolved.line)
    except ConfigurationError as exc:
        print(f"INVALID: {exc}")
        sys.exit(1)

    print(f"OK: run '{resolved.run.name}' -> line '{resolved.line.name}'")
    for warning in warnings:
        print(f"  warning: {warning}")


def main(argv: Optional[list] = None):
    """CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        description="CONWIP serial production line simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  run         Run a simulation from config (default behavior)
  lines       List line and run configurations
  validate    Resolve and validate a run config without simulating

Examples:
  python -m leanline run --run balanced_1h
  python -m leanline run --run bottleneck_1h --ticks 7200 --export
  python -m leanline validate --run high_volatility_1h
        """,
    )

    parser.add_argument(
        "--log-level",
        default=None,
        help="Log to stderr at this level (DEBUG, INFO, WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # === 'run' subcommand ===
    run_parser = subparsers.add_parser(
        "run",
        help="Run simulation from config",
        description="Run a simulation from YAML configuration files.",
    )
    run_parser.add_argument(
        "--run",
        default="balanced_1h",
        help="Run config name (default: balanced_1h)",
    )
    run_parser.add_argument(
        "--config",
        default="config",
        help="Config directory path (default: config)",
    )
    run_parser.add_argument(
        "--export",
        action="store_true",
        help="Export results to CSV files",
    )
    run_parser.add_argument(
        "--output",
        default="output",
        help="Output directory for CSV export (default: output)",
    )
    run_parser.add_argument(
        "--no-db",
        action="store_true",
        help="Skip saving to DuckDB database",
    )
    run_parser.add_argument(
        "--db-path",
        default=None,
        help="Custom path for DuckDB file (default: ./leanline_results.duckdb)",
    )
    run_parser.add_argument("--ticks", type=int, default=None, help="Override tick count")
    run_parser.add_argument("--seed", type=int, default=None, help="Override random seed")
    run_parser.set_defaults(func=_run_command)

    # === 'lines' subcommand ===
    lines_parser = subparsers.add_parser("lines", help="List line and run configs")
    lines_parser.add_argument("--config", default="config", help="Config directory path")
    lines_parser.set_defaults(func=_lines_command)

    # === 'validate' subcommand ===
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a run config",
        description="Resolve a run config and check the line it simulates.",
    )
    validate_parser.add_argument("--run", required=True, help="Run config name (required)")
    validate_parser.add_argument("--config", default="config", help="Config directory path")
    validate_parser.set_defaults(func=_validate_command)

    args = parser.parse_args(argv)
    if args.log_level:
        enable_console_logging(args.log_level)

    # Handle no subcommand (default to run)
    if args.command is None:
        args = run_parser.parse_args([])
    args.func(args)


if __name__ == "__main__":
    main()
