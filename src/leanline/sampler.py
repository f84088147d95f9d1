"""Processing-time sampling for stations.

Each call consumes a fixed amount of randomness for its distribution kind
(deterministic: none, normal: two draws plus rejected zeros, others: one),
so that a seeded ``random.Random`` reproduces the same line timeline.
"""

import math
import random
from typing import Optional

from leanline.models import DistributionKind, DistributionParams

# OEE values below this floor are clamped to avoid division blow-up
MIN_OEE = 0.01


def effective_oee(oee: float) -> float:
    """OEE actually used to inflate processing times."""
    return max(oee, MIN_OEE)


def sample_base_time(
    kind: DistributionKind,
    params: DistributionParams,
    rng: random.Random,
) -> float:
    """Draw a nominal processing time (before OEE and rounding)."""
    if kind == DistributionKind.NORMAL:
        # Box-Muller; exact zeros are rejected so log(u) stays finite
        u = 0.0
        v = 0.0
        while u == 0.0:
            u = rng.random()
        while v == 0.0:
            v = rng.random()
        z = math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)
        return params.mean + z * math.sqrt(params.variance)

    if kind == DistributionKind.EXPONENTIAL:
        return -params.mean * math.log(1.0 - rng.random())

    if kind == DistributionKind.UNIFORM:
        return rng.random() * (params.max - params.min) + params.min

    if kind == DistributionKind.TRIANGULAR:
        low, high, mode = params.min, params.max, params.mode
        f = (mode - low) / (high - low)
        u = rng.random()
        if u < f:
            return low + math.sqrt(u * (high - low) * (mode - low))
        return high - math.sqrt((1.0 - u) * (high - low) * (high - mode))

    return params.mean


def sample(
    kind: DistributionKind,
    params: DistributionParams,
    oee: float,
    rng: Optional[random.Random] = None,
) -> int:
    """Sample a processing duration in whole ticks (always >= 1).

    The nominal time is divided by the (clamped) OEE and rounded half up.
    """
    rng = rng or random.Random()
    base = sample_base_time(kind, params, rng)
    effective = math.floor(base / effective_oee(oee) + 0.5)
    return max(1, int(effective))
