"""Semantic validation of line configurations."""

import logging
import math
from typing import List

from leanline.errors import ConfigurationError
from leanline.models import DistributionKind, LineConfig
from leanline.sampler import MIN_OEE

logger = logging.getLogger(__name__)


def validate_line_config(config: LineConfig) -> List[str]:
    """Check that a line can be simulated.

    Raises:
        ConfigurationError: on the first problem that makes the line
            malformed or guaranteed to deadlock.

    Returns:
        Advisory warnings for settings that are accepted but adjusted.
    """
    warnings: List[str] = []
    stations = config.stations

    if not stations:
        raise ConfigurationError(f"Line '{config.name}' has no stations")
    if len(config.buffers) != len(stations) - 1:
        raise ConfigurationError(
            f"Line '{config.name}' needs {len(stations) - 1} buffers "
            f"for {len(stations)} stations, got {len(config.buffers)}"
        )
    if config.wip < 1:
        raise ConfigurationError(f"wip must be >= 1, got {config.wip}")
    if config.warmup_period < 0:
        raise ConfigurationError(
            f"warmup_period must be >= 0, got {config.warmup_period}"
        )
    if config.log_step < 1:
        raise ConfigurationError(f"log_step must be >= 1, got {config.log_step}")

    seen = set()
    for station in stations:
        if station.id in seen:
            raise ConfigurationError(f"Duplicate station id: {station.id}")
        seen.add(station.id)

        if station.batch_size < 1:
            raise ConfigurationError(
                f"Station {station.id}: batch_size must be >= 1, got {station.batch_size}"
            )
        if station.parallel_machines < 1:
            raise ConfigurationError(
                f"Station {station.id}: parallel_machines must be >= 1, "
                f"got {station.parallel_machines}"
            )
        if not 0 < station.oee <= 1:
            raise ConfigurationError(
                f"Station {station.id}: oee must be in (0, 1], got {station.oee}"
            )
        if station.oee < MIN_OEE:
            warnings.append(
                f"Station {station.id}: oee {station.oee} is below {MIN_OEE} "
                f"and will be clamped to {MIN_OEE}"
            )
        if station.batch_size > config.wip:
            raise ConfigurationError(
                f"Station {station.id}: batch_size {station.batch_size} exceeds "
                f"wip cap {config.wip}, the batch could never fill"
            )
        _validate_distribution(station.id, station.distribution, station.params)

    for i, buf in enumerate(config.buffers):
        upstream, downstream = stations[i], stations[i + 1]
        if buf.capacity < 0:
            raise ConfigurationError(
                f"Buffer {buf.id}: capacity must be >= 0, got {buf.capacity}"
            )
        if buf.capacity == 0:
            if upstream.batch_size != downstream.batch_size:
                raise ConfigurationError(
                    f"Buffer {buf.id}: zero-capacity hand-off between "
                    f"{upstream.id} (batch {upstream.batch_size}) and "
                    f"{downstream.id} (batch {downstream.batch_size}) needs equal batch sizes"
                )
            continue
        if buf.capacity < upstream.batch_size:
            raise ConfigurationError(
                f"Buffer {buf.id}: capacity {buf.capacity} is smaller than "
                f"the {upstream.id} batch size {upstream.batch_size}"
            )
        if buf.capacity < downstream.batch_size:
            raise ConfigurationError(
                f"Buffer {buf.id}: capacity {buf.capacity} is smaller than "
                f"the {downstream.id} batch size {downstream.batch_size}"
            )
        reachable = _max_reachable_fill(
            buf.capacity, upstream.batch_size, downstream.batch_size
        )
        if reachable < downstream.batch_size:
            raise ConfigurationError(
                f"Buffer {buf.id}: batches of {upstream.batch_size} from {upstream.id} "
                f"never fill {downstream.batch_size} for {downstream.id} "
                f"within capacity {buf.capacity}"
            )

    # Entry releases whole first-station batches while they fit under the cap
    entry_batch = stations[0].batch_size
    line_holding = entry_batch * (config.wip // entry_batch)
    for upstream, downstream in zip(stations, stations[1:]):
        pushes = math.ceil(downstream.batch_size / upstream.batch_size)
        needed = upstream.batch_size * pushes
        if needed > line_holding:
            raise ConfigurationError(
                f"Station {downstream.id}: a batch of {downstream.batch_size} needs "
                f"{needed} pieces from {upstream.id}, but wip {config.wip} admits "
                f"at most {line_holding}"
            )

    for message in warnings:
        logger.warning(message)
    return warnings


def _validate_distribution(station_id: str, kind: DistributionKind, params) -> None:
    if kind == DistributionKind.NORMAL and params.variance < 0:
        raise ConfigurationError(
            f"Station {station_id}: variance must be >= 0, got {params.variance}"
        )
    if kind in (DistributionKind.UNIFORM, DistributionKind.TRIANGULAR):
        if params.min > params.max:
            raise ConfigurationError(
                f"Station {station_id}: min {params.min} > max {params.max}"
            )
    if kind == DistributionKind.TRIANGULAR:
        if params.min == params.max:
            raise ConfigurationError(
                f"Station {station_id}: triangular distribution needs min < max"
            )
        if not params.min <= params.mode <= params.max:
            raise ConfigurationError(
                f"Station {station_id}: mode {params.mode} outside "
                f"[{params.min}, {params.max}]"
            )
    if kind == DistributionKind.EXPONENTIAL and params.mean <= 0:
        raise ConfigurationError(
            f"Station {station_id}: exponential mean must be > 0, got {params.mean}"
        )


def _max_reachable_fill(capacity: int, push: int, pop: int) -> int:
    """Highest level a buffer reaches when filled ``push`` and drained ``pop`` at a time."""
    seen = {0}
    frontier = [0]
    while frontier:
        level = frontier.pop()
        moves = []
        if level + push <= capacity:
            moves.append(level + push)
        if level >= pop:
            moves.append(level - pop)
        for nxt in moves:
            if nxt not in seen:
                seen.add(nxt)
                frontier.append(nxt)
    return max(seen)
