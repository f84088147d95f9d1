"""YAML configuration loader with name-based resolution."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from leanline.errors import ConfigurationError
from leanline.models import (
    BufferConfig,
    DistributionParams,
    LineConfig,
    StationConfig,
)


@dataclass
class DefaultsConfig:
    """Global defaults loaded from config/defaults.yaml."""

    simulation: Dict[str, Any] = field(default_factory=dict)
    line: Dict[str, Any] = field(default_factory=dict)
    station: Dict[str, Any] = field(default_factory=dict)
    buffer: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RunConfig:
    """Run-level configuration."""

    name: str
    line: str
    ticks: int = 3600
    random_seed: Optional[int] = 42
    record_timeline: bool = False
    overrides: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ResolvedConfig:
    """Fully resolved configuration ready for simulation."""

    run: RunConfig
    line: LineConfig


class ConfigLoader:
    """Loads and resolves YAML configuration files.

    Layout of ``config_dir``::

        defaults.yaml
        lines/<name>.yaml
        runs/<name>.yaml
    """

    def __init__(self, config_dir: Path | str = "config"):
        self.config_dir = Path(config_dir)
        self.defaults = self.load_defaults()

    def load_defaults(self) -> DefaultsConfig:
        """Load global defaults from config/defaults.yaml."""
        path = self.config_dir / "defaults.yaml"
        if not path.exists():
            return DefaultsConfig()
        data = self._load_yaml(path)
        return DefaultsConfig(
            simulation=data.get("simulation", {}),
            line=data.get("line", {}),
            station=data.get("station", {}),
            buffer=data.get("buffer", {}),
        )

    def load_line(self, name: str) -> LineConfig:
        """Load a line configuration by name."""
        path = self.config_dir / "lines" / f"{name}.yaml"
        data = self._load_yaml(path)
        data.setdefault("name", name)
        return self.line_from_dict(data)

    def load_run(self, name: str) -> RunConfig:
        """Load a run configuration by name."""
        path = self.config_dir / "runs" / f"{name}.yaml"
        data = self._load_yaml(path)
        sim_defaults = self.defaults.simulation
        if "line" not in data:
            raise ConfigurationError(f"Run '{name}' does not reference a line")
        return RunConfig(
            name=data.get("name", name),
            line=data["line"],
            ticks=data.get("ticks", sim_defaults.get("ticks", 3600)),
            random_seed=data.get("random_seed", sim_defaults.get("random_seed", 42)),
            record_timeline=data.get(
                "record_timeline", sim_defaults.get("record_timeline", False)
            ),
            overrides=data.get("overrides") or {},
        )

    def resolve_run(self, run_name: str) -> ResolvedConfig:
        """Fully resolve a run config into the line it simulates."""
        run = self.load_run(run_name)
        line = self.load_line(run.line)
        if run.overrides:
            line = self.apply_overrides(line, run.overrides)
        return ResolvedConfig(run=run, line=line)

    def list_lines(self) -> List[str]:
        return sorted(p.stem for p in (self.config_dir / "lines").glob("*.yaml"))

    def list_runs(self) -> List[str]:
        return sorted(p.stem for p in (self.config_dir / "runs").glob("*.yaml"))

    def line_from_dict(self, data: Dict[str, Any]) -> LineConfig:
        """Build a LineConfig from plain data, filling gaps from defaults.

        Buffers may be given as ``{id, capacity}`` mappings or bare capacities.
        """
        line_defaults = self.defaults.line
        station_defaults = self.defaults.station
        buffer_defaults = self.defaults.buffer

        try:
            stations = []
            for i, raw in enumerate(data.get("stations", [])):
                merged = {**station_defaults, **raw}
                params = {
                    **station_defaults.get("params", {}),
                    **(raw.get("params") or {}),
                }
                merged["params"] = DistributionParams(**params)
                merged.setdefault("id", f"S{i + 1}")
                stations.append(StationConfig(**merged))

            buffers = []
            for i, raw in enumerate(data.get("buffers", [])):
                if not isinstance(raw, dict):
                    raw = {"capacity": raw}
                merged = {**buffer_defaults, **raw}
                merged.setdefault("id", f"B{i + 1}")
                buffers.append(BufferConfig(**merged))

            return LineConfig(
                name=data.get("name", "line"),
                description=data.get("description", ""),
                stations=stations,
                buffers=buffers,
                wip=data.get("wip", line_defaults.get("wip", 9)),
                warmup_period=data.get(
                    "warmup_period", line_defaults.get("warmup_period", 0)
                ),
                log_step=data.get("log_step", line_defaults.get("log_step", 5)),
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid line configuration: {exc}") from exc

    @staticmethod
    def line_to_dict(line: LineConfig) -> Dict[str, Any]:
        """Plain (YAML/JSON-safe) representation of a line."""
        return line.model_dump(mode="json")

    def apply_overrides(self, base: LineConfig, overrides: Dict[str, Any]) -> LineConfig:
        """Apply run-level overrides to a line config.

        Top-level keys replace line fields; ``stations`` and ``buffers`` map
        ids to partial settings (a bare number for a buffer is its capacity).
        """
        data = self.line_to_dict(base)

        for key in ("name", "description", "wip", "warmup_period", "log_step"):
            if key in overrides:
                data[key] = overrides[key]

        stations_by_id = {s["id"]: s for s in data["stations"]}
        for station_id, station_over in (overrides.get("stations") or {}).items():
            if station_id not in stations_by_id:
                raise ConfigurationError(f"Override for unknown station: {station_id}")
            target = stations_by_id[station_id]
            for key, value in station_over.items():
                if key == "params":
                    target["params"].update(value)
                else:
                    target[key] = value

        buffers_by_id = {b["id"]: b for b in data["buffers"]}
        for buffer_id, buffer_over in (overrides.get("buffers") or {}).items():
            if buffer_id not in buffers_by_id:
                raise ConfigurationError(f"Override for unknown buffer: {buffer_id}")
            if isinstance(buffer_over, dict):
                buffers_by_id[buffer_id].update(buffer_over)
            else:
                buffers_by_id[buffer_id]["capacity"] = buffer_over

        return self.line_from_dict(data)

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load a YAML file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            return yaml.safe_load(f) or {}
