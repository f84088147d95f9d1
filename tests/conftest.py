"""Shared test fixtures for leanline tests."""

from pathlib import Path
from typing import List, Optional

import pytest

from leanline import (
    BufferConfig,
    ConfigLoader,
    DistributionKind,
    DistributionParams,
    LineConfig,
    SimulationEngine,
    StationConfig,
)


def make_line(
    means: List[float],
    capacities: Optional[List[int]] = None,
    wip: int = 9,
    warmup_period: int = 0,
    log_step: int = 5,
    batch_sizes: Optional[List[int]] = None,
    parallel: Optional[List[int]] = None,
) -> LineConfig:
    """Deterministic line with one station per mean."""
    n = len(means)
    capacities = capacities if capacities is not None else [2] * (n - 1)
    batch_sizes = batch_sizes or [1] * n
    parallel = parallel or [1] * n
    return LineConfig(
        name="test",
        stations=[
            StationConfig(
                id=f"S{i + 1}",
                distribution=DistributionKind.DETERMINISTIC,
                params=DistributionParams(mean=mean),
                batch_size=batch_sizes[i],
                parallel_machines=parallel[i],
            )
            for i, mean in enumerate(means)
        ],
        buffers=[BufferConfig(id=f"B{i + 1}", capacity=c) for i, c in enumerate(capacities)],
        wip=wip,
        warmup_period=warmup_period,
        log_step=log_step,
    )


@pytest.fixture
def config_dir() -> Path:
    """Path to production config directory."""
    return Path(__file__).parent.parent / "config"


@pytest.fixture
def loader(config_dir: Path) -> ConfigLoader:
    """ConfigLoader instance."""
    return ConfigLoader(config_dir)


@pytest.fixture
def single_station_line() -> LineConfig:
    """One deterministic station (5 ticks), wip 1."""
    return make_line([5], capacities=[], wip=1)


@pytest.fixture
def steady_line() -> LineConfig:
    """Three deterministic 5-tick stations, buffers of 2, wip 3, warm-up 100."""
    return make_line([5, 5, 5], capacities=[2, 2], wip=3, warmup_period=100)


@pytest.fixture
def blocking_line() -> LineConfig:
    """Fast station feeding a slow one through a zero-capacity buffer."""
    return make_line([2, 5], capacities=[0], wip=10)


@pytest.fixture
def bottleneck_engine(loader: ConfigLoader) -> SimulationEngine:
    """Stochastic 5-station line from config, seeded."""
    return SimulationEngine(loader.load_line("bottleneck"), seed=42)
