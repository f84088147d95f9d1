"""Derived line metrics and the steady-state detector.

Throughput is reported in pieces per hour with one tick taken as one second.
The convergence test is a heuristic: a low coefficient of variation over
recent throughput samples suggests, but does not prove, stationarity.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from leanline.models import CompletionRecord, ConvergenceStatus

SECONDS_PER_HOUR = 3600

# Number of most recent lead times averaged for the reported lead time
LEAD_TIME_WINDOW = 20

# Throughput samples considered by the convergence test
CONVERGENCE_WINDOW = 50
CV_THRESHOLD = 0.05

# Relative tolerance for the Little's Law sanity check
LITTLES_LAW_TOLERANCE = 0.15

# Completed-piece counts and clock values announced as milestones
MILESTONE_PIECES = (100, 500, 1000, 5000)
MILESTONE_TIMES = (1000, 5000, 10000)


def throughput_from_count(completed: int, current_time: int, warmup_period: int) -> float:
    """Pieces/hour given the number of post-warm-up completions."""
    if current_time <= warmup_period:
        return 0.0
    window = current_time - warmup_period
    return completed / window * SECONDS_PER_HOUR


def throughput(
    completions: Sequence[CompletionRecord],
    current_time: int,
    warmup_period: int = 0,
) -> float:
    """Pieces/hour counting only completions after the warm-up period."""
    counted = sum(1 for c in completions if c.time > warmup_period)
    return throughput_from_count(counted, current_time, warmup_period)


def average_lead_time(lead_times: Sequence[float], window: int = LEAD_TIME_WINDOW) -> float:
    """Mean of the most recent ``window`` lead times (0 if none yet)."""
    recent = list(lead_times[-window:])
    if not recent:
        return 0.0
    return sum(recent) / len(recent)


def coefficient_of_variation(values: Sequence[float]) -> Optional[float]:
    """Population stddev / mean, or None when the mean is zero."""
    if not values:
        return None
    mean = sum(values) / len(values)
    if mean == 0:
        return None
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance) / mean


def check_convergence(
    throughput_samples: Sequence[float],
    current_time: int,
    warmup_period: int = 0,
    window: int = CONVERGENCE_WINDOW,
    threshold: float = CV_THRESHOLD,
) -> ConvergenceStatus:
    """Declare steady state when recent throughput samples barely vary."""
    if len(throughput_samples) < window or current_time <= warmup_period:
        return ConvergenceStatus(False, "Simulation running: collecting data...")

    recent = list(throughput_samples[-window:])
    cv = coefficient_of_variation(recent)
    if cv is None:
        return ConvergenceStatus(False, "Waiting for stabilization...")

    if cv < threshold:
        return ConvergenceStatus(True, f"Steady state reached (throughput CV: {cv:.3f})", cv)
    return ConvergenceStatus(False, f"Not stable (CV: {cv:.3f}). Continuing...", cv)


def warmup_status(current_time: int, warmup_period: int) -> ConvergenceStatus:
    return ConvergenceStatus(False, f"Warm-up period: {current_time} / {warmup_period}")


def lead_time_histogram(
    lead_times: Sequence[float], bins: int = 10
) -> List[Tuple[str, int]]:
    """Equal-width histogram of lead times as (label, count) pairs."""
    if not lead_times:
        return []
    low = min(lead_times)
    high = max(lead_times)
    width = (high - low) / bins or 1

    counts = [0] * bins
    for lt in lead_times:
        index = min(int((lt - low) // width), bins - 1)
        counts[index] += 1

    labels = [
        f"{round(low + i * width)}-{round(low + (i + 1) * width)}" for i in range(bins)
    ]
    return list(zip(labels, counts))


@dataclass
class LittlesLawCheck:
    """Comparison of observed WIP with throughput x lead time."""

    observed_wip: float
    expected_wip: float
    relative_error: float
    tolerance: float

    @property
    def within_tolerance(self) -> bool:
        return self.relative_error <= self.tolerance


def littles_law_check(
    wip: float,
    throughput_per_hour: float,
    lead_time: float,
    tolerance: float = LITTLES_LAW_TOLERANCE,
) -> LittlesLawCheck:
    """L = lambda x W with lambda in pieces/tick and W in ticks."""
    expected = throughput_per_hour / SECONDS_PER_HOUR * lead_time
    if wip == 0:
        error = 0.0 if expected == 0 else math.inf
    else:
        error = abs(expected - wip) / wip
    return LittlesLawCheck(
        observed_wip=wip,
        expected_wip=expected,
        relative_error=error,
        tolerance=tolerance,
    )


@dataclass
class MetricsHistory:
    """Periodic metric samples and the full per-sample log."""

    throughput: List[Tuple[int, float]] = field(default_factory=list)
    wip: List[Tuple[int, int]] = field(default_factory=list)
    lead_time: List[Tuple[int, float]] = field(default_factory=list)
    log: List[dict] = field(default_factory=list)

    def record(self, time: int, throughput_value: float, wip: int, lead_time: float) -> None:
        self.throughput.append((time, round(throughput_value)))
        self.wip.append((time, wip))
        self.lead_time.append((time, round(lead_time, 1)))

    def throughput_values(self) -> List[float]:
        return [v for _, v in self.throughput]

    def clear(self) -> None:
        self.throughput.clear()
        self.wip.clear()
        self.lead_time.clear()
        self.log.clear()
