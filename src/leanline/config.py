"""Configuration schemas - re-exports for convenience."""

from leanline.loader import ConfigLoader, DefaultsConfig, ResolvedConfig, RunConfig
from leanline.models import (
    BufferConfig,
    DistributionKind,
    DistributionParams,
    LineConfig,
    StationConfig,
)
from leanline.validation import validate_line_config

__all__ = [
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
]
