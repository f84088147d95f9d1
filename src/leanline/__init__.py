"""Discrete-time CONWIP serial production line simulator."""

import logging

from leanline.buffer import Buffer
from leanline.config import (
    BufferConfig,
    ConfigLoader,
    DefaultsConfig,
    DistributionKind,
    DistributionParams,
    LineConfig,
    ResolvedConfig,
    RunConfig,
    StationConfig,
    validate_line_config,
)
from leanline.engine import SimulationEngine
from leanline.errors import ConfigurationError, StepPreconditionError
from leanline.logging_config import enable_console_logging, set_level
from leanline.models import (
    CompletionRecord,
    ConvergenceStatus,
    LineSnapshot,
    MachineStatus,
    Piece,
    StepResult,
)
from leanline.sampler import sample
from leanline.station import Machine, Station

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Config
    "ConfigLoader",
    "DefaultsConfig",
    "RunConfig",
    "ResolvedConfig",
    "LineConfig",
    "StationConfig",
    "BufferConfig",
    "DistributionKind",
    "DistributionParams",
    "validate_line_config",
    # Errors
    "ConfigurationError",
    "StepPreconditionError",
    # Engine
    "SimulationEngine",
    "Station",
    "Machine",
    "Buffer",
    "sample",
    # Models
    "Piece",
    "MachineStatus",
    "CompletionRecord",
    "ConvergenceStatus",
    "LineSnapshot",
    "StepResult",
    # Logging
    "enable_console_logging",
    "set_level",
]
