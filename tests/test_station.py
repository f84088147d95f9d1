"""Tests for stations and their machines."""

import random

import pytest

from leanline.errors import StepPreconditionError
from leanline.models import (
    DistributionKind,
    DistributionParams,
    MachineStatus,
    Piece,
    StationConfig,
)
from leanline.station import Station


def make_station(mean=3, batch_size=1, parallel=1) -> Station:
    config = StationConfig(
        id="S1",
        distribution=DistributionKind.DETERMINISTIC,
        params=DistributionParams(mean=mean),
        batch_size=batch_size,
        parallel_machines=parallel,
    )
    return Station(config, random.Random(0))


def batch(n, prefix="P"):
    return [Piece(uid=f"{prefix}{i}", created_at=0) for i in range(n)]


class TestMachineLifecycle:
    """FREE -> OCCUPIED -> BLOCKED -> FREE."""

    def test_start_batch_occupies_machine(self):
        station = make_station(mean=3)
        machine = station.machines[0]
        assert station.try_start_batch(machine, batch(1))
        assert machine.status == MachineStatus.OCCUPIED
        assert machine.remaining_time == 3

    def test_timer_expiry_blocks(self):
        station = make_station(mean=2)
        machine = station.machines[0]
        station.try_start_batch(machine, batch(1))
        station.advance_timers()
        assert machine.status == MachineStatus.OCCUPIED
        station.advance_timers()
        assert machine.status == MachineStatus.BLOCKED
        assert machine.remaining_time == 0
        assert len(machine.batch) == 1

    def test_release_frees_machine(self):
        station = make_station(mean=1)
        machine = station.machines[0]
        station.try_start_batch(machine, batch(1))
        station.advance_timers()
        released = station.release(machine)
        assert [p.uid for p in released] == ["P0"]
        assert machine.status == MachineStatus.FREE
        assert machine.batch == []

    def test_busy_machine_rejects_batch(self):
        station = make_station()
        machine = station.machines[0]
        station.try_start_batch(machine, batch(1))
        assert not station.try_start_batch(machine, batch(1, prefix="Q"))
        assert machine.batch[0].uid == "P0"

    def test_wrong_batch_size_raises(self):
        station = make_station(batch_size=2)
        with pytest.raises(StepPreconditionError):
            station.try_start_batch(station.machines[0], batch(1))


class TestParallelMachines:
    """Stations hold several independent machines."""

    def test_machines_are_independent(self):
        station = make_station(mean=2, parallel=2)
        first, second = station.machines
        station.try_start_batch(first, batch(1))
        station.advance_timers()
        station.try_start_batch(second, batch(1, prefix="Q"))
        station.advance_timers()
        assert first.status == MachineStatus.BLOCKED
        assert second.status == MachineStatus.OCCUPIED
        assert station.count(MachineStatus.BLOCKED) == 1
        assert len(list(station.free_machines())) == 0

    def test_occupancy_counts_pieces(self):
        station = make_station(batch_size=2, parallel=2)
        station.try_start_batch(station.machines[0], batch(2))
        assert station.occupancy == 2

    def test_find_handoff_matches_batch_size(self):
        station = make_station(mean=1, batch_size=2)
        station.try_start_batch(station.machines[0], batch(2))
        station.advance_timers()
        assert station.find_handoff(2) is station.machines[0]
        assert station.find_handoff(1) is None


class TestCounters:
    """Working and processing time accounting."""

    def test_blocked_counts_as_working_not_processing(self):
        station = make_station(mean=1)
        station.try_start_batch(station.machines[0], batch(1))
        station.advance_timers()  # processes and blocks
        station.advance_timers()  # blocked
        station.advance_timers()  # blocked
        assert station.total_time == 3
        assert station.processing_time == 1
        assert station.working_time == 3

    def test_idle_ticks(self):
        station = make_station()
        station.advance_timers()
        station.advance_timers()
        assert station.working_time == 0
        assert station.utilization_pct == 0.0

    def test_reset_clears_state(self):
        station = make_station()
        station.try_start_batch(station.machines[0], batch(1))
        station.advance_timers()
        station.reset()
        assert station.total_time == 0
        assert station.machines[0].status == MachineStatus.FREE
