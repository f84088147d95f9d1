"""Stations and the parallel machines they hold."""

import random
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence

from leanline.errors import StepPreconditionError
from leanline.models import (
    MachineSnapshot,
    MachineStatus,
    Piece,
    StationConfig,
    StationSnapshot,
)
from leanline.sampler import sample


@dataclass
class Machine:
    """One processing unit; holds at most one batch.

    ``batch`` is empty iff ``status`` is FREE. A BLOCKED machine has
    ``remaining_time == 0`` and keeps its batch until the engine moves it on.
    """

    status: MachineStatus = MachineStatus.FREE
    batch: List[Piece] = field(default_factory=list)
    remaining_time: int = 0

    @property
    def label(self) -> str:
        return "+".join(p.uid for p in self.batch)

    def snapshot(self) -> MachineSnapshot:
        return MachineSnapshot(
            status=self.status,
            batch=tuple(p.uid for p in self.batch),
            remaining_time=self.remaining_time,
        )


class Station:
    """A position in the line with 1..N identical machines.

    The engine drives the station through per-tick hooks; the station never
    advances on its own.
    """

    def __init__(self, config: StationConfig, rng: random.Random):
        self.cfg = config
        self.id = config.id
        self.batch_size = config.batch_size
        self.rng = rng
        self.machines: List[Machine] = [
            Machine() for _ in range(config.parallel_machines)
        ]

        # Tick counters
        self.working_time = 0  # ticks with at least one loaded machine
        self.processing_time = 0  # ticks with at least one timer running
        self.total_time = 0

    def reset(self) -> None:
        self.machines = [Machine() for _ in range(self.cfg.parallel_machines)]
        self.working_time = 0
        self.processing_time = 0
        self.total_time = 0

    def advance_timers(self) -> None:
        """Count down every running timer by one tick."""
        self.total_time += 1
        working = False
        processing = False

        for machine in self.machines:
            if not machine.batch:
                continue
            working = True
            if machine.remaining_time > 0:
                machine.remaining_time -= 1
                processing = True
                if machine.remaining_time == 0:
                    self.on_timer_expired(machine)

        if working:
            self.working_time += 1
        if processing:
            self.processing_time += 1

    def try_start_batch(self, machine: Machine, batch: Sequence[Piece]) -> bool:
        """Load a full batch into a free machine and sample its duration.

        Returns False (and leaves the machine untouched) if it is not free.
        """
        if machine.status != MachineStatus.FREE:
            return False
        if len(batch) != self.batch_size:
            raise StepPreconditionError(
                f"Station {self.id}: batch of {len(batch)} != batch size {self.batch_size}"
            )
        machine.batch = list(batch)
        machine.status = MachineStatus.OCCUPIED
        machine.remaining_time = sample(
            self.cfg.distribution, self.cfg.params, self.cfg.oee, self.rng
        )
        return True

    def on_timer_expired(self, machine: Machine) -> None:
        """Finished batch waits for the engine to move it downstream."""
        machine.status = MachineStatus.BLOCKED

    def release(self, machine: Machine) -> List[Piece]:
        """Hand the finished batch over and free the machine."""
        batch = machine.batch
        machine.batch = []
        machine.remaining_time = 0
        machine.status = MachineStatus.FREE
        return batch

    def free_machines(self) -> Iterator[Machine]:
        return (m for m in self.machines if m.status == MachineStatus.FREE)

    def blocked_machines(self) -> Iterator[Machine]:
        return (m for m in self.machines if m.status == MachineStatus.BLOCKED)

    def find_handoff(self, batch_size: int) -> Optional[Machine]:
        """First blocked machine whose batch a downstream station can take whole."""
        return next(
            (m for m in self.blocked_machines() if len(m.batch) == batch_size),
            None,
        )

    def count(self, status: MachineStatus) -> int:
        return sum(1 for m in self.machines if m.status == status)

    @property
    def occupancy(self) -> int:
        return sum(len(m.batch) for m in self.machines)

    @property
    def utilization_pct(self) -> float:
        """Share of ticks with at least one loaded machine."""
        if self.total_time == 0:
            return 0.0
        return self.working_time / self.total_time * 100.0

    def snapshot(self) -> StationSnapshot:
        return StationSnapshot(
            id=self.id,
            batch_size=self.batch_size,
            machines=tuple(m.snapshot() for m in self.machines),
            working_time=self.working_time,
            processing_time=self.processing_time,
            total_time=self.total_time,
        )
