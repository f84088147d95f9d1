"""Pydantic schemas for line configuration and runtime records."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


class DistributionKind(str, Enum):
    """Processing-time distributions a station can sample from."""

    DETERMINISTIC = "deterministic"
    UNIFORM = "uniform"
    NORMAL = "normal"
    EXPONENTIAL = "exponential"
    TRIANGULAR = "triangular"


class MachineStatus(str, Enum):
    """Lifecycle of a machine: FREE -> OCCUPIED -> BLOCKED -> FREE."""

    FREE = "free"
    OCCUPIED = "occupied"
    BLOCKED = "blocked"


# --- Configuration ---


class DistributionParams(BaseModel):
    """Distribution parameters (ticks). Only those used by the kind matter."""

    mean: float = 5.0
    variance: float = 1.0
    min: float = 2.0
    max: float = 8.0
    mode: float = 5.0


class StationConfig(BaseModel):
    """One station of the line."""

    id: str
    distribution: DistributionKind = DistributionKind.DETERMINISTIC
    params: DistributionParams = Field(default_factory=DistributionParams)
    oee: float = 1.0  # Overall Equipment Effectiveness in (0, 1]
    batch_size: int = 1
    parallel_machines: int = 1


class BufferConfig(BaseModel):
    """Buffer between two consecutive stations (capacity 0 = direct hand-off)."""

    id: str
    capacity: int = 2


class LineConfig(BaseModel):
    """Complete line: stations, buffers between them and CONWIP settings."""

    name: str = "line"
    description: str = ""
    stations: List[StationConfig] = Field(default_factory=list)
    buffers: List[BufferConfig] = Field(default_factory=list)
    wip: int = 9  # CONWIP cap
    warmup_period: int = 0  # Ticks before metrics count
    log_step: int = 5  # Ticks between metric samples


# --- Runtime records ---


@dataclass(frozen=True)
class Piece:
    """A unit of work inside the line."""

    uid: str
    created_at: int


@dataclass(frozen=True)
class CompletionRecord:
    """A piece leaving the last station."""

    time: int
    lead_time: int
    piece_id: str = ""


@dataclass(frozen=True)
class FlowRecord:
    """Pieces entering (first station) or leaving (last station) at a tick."""

    time: int
    count: int


@dataclass(frozen=True)
class ConvergenceStatus:
    """Advisory output of the steady-state detector."""

    converged: bool
    message: str
    cv: Optional[float] = None


# --- Snapshots (read-only views handed out between ticks) ---


@dataclass(frozen=True)
class MachineSnapshot:
    status: MachineStatus
    batch: Tuple[str, ...]
    remaining_time: int


@dataclass(frozen=True)
class StationSnapshot:
    id: str
    batch_size: int
    machines: Tuple[MachineSnapshot, ...]
    working_time: int
    processing_time: int
    total_time: int

    @property
    def occupancy(self) -> int:
        return sum(len(m.batch) for m in self.machines)


@dataclass(frozen=True)
class BufferSnapshot:
    id: str
    capacity: int
    pieces: Tuple[str, ...]
    cumulative_fill: int

    @property
    def occupancy(self) -> int:
        return len(self.pieces)


@dataclass(frozen=True)
class LineSnapshot:
    """Consistent view of the whole line at a tick boundary."""

    time: int
    stations: Tuple[StationSnapshot, ...]
    buffers: Tuple[BufferSnapshot, ...]
    completed_count: int
    wip_cap: int
    total_wip: int
    throughput: float
    average_lead_time: float
    piece_locations: Tuple[Tuple[str, str], ...] = ()
    converged: bool = False


@dataclass(frozen=True)
class StepResult:
    """Outcome of one tick."""

    completions: Tuple[CompletionRecord, ...]
    snapshot: LineSnapshot


@dataclass
class TimelineEntry:
    """Machine state at one tick (Gantt data)."""

    time: int
    station: str
    machine: int
    status: MachineStatus
    batch: str = ""
    remaining_time: int = 0


@dataclass
class Milestone:
    """A notable point in the run (piece count or clock reached)."""

    time: int
    kind: str  # "pieces" or "time"
    value: int
