"""Discrete-time engine for a CONWIP-controlled serial production line.

One ``step()`` advances the clock by one tick and runs, in this order:

1. timer advance on every station (first station first)
2. downstream push of finished (BLOCKED) batches
3. upstream pull into FREE machines (CONWIP-gated at the entry)
4. buffer utilisation accounting

The order is part of the deterministic contract: with the same configuration
and the same seeded random source, two engines produce identical timelines.
"""

import logging
import random
from typing import List, Optional

from leanline import metrics
from leanline.buffer import Buffer
from leanline.errors import StepPreconditionError
from leanline.models import (
    CompletionRecord,
    ConvergenceStatus,
    FlowRecord,
    LineConfig,
    LineSnapshot,
    MachineStatus,
    Milestone,
    StepResult,
    TimelineEntry,
)
from leanline.station import Machine, Station
from leanline.tracker import PieceTracker
from leanline.validation import validate_line_config

logger = logging.getLogger(__name__)


class SimulationEngine:
    """Owns the whole line state; nothing else mutates it.

    Args:
        config: Line configuration, validated here (raises ConfigurationError).
        seed: Seed for a private ``random.Random`` (ignored if ``rng`` given).
        rng: Random source shared by all stations, in station order.
        record_timeline: Keep per-tick machine states (Gantt data).
    """

    def __init__(
        self,
        config: LineConfig,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        record_timeline: bool = False,
    ):
        self.config_warnings = validate_line_config(config)
        self.config = config
        self.rng = rng if rng is not None else random.Random(seed)
        self.record_timeline = record_timeline

        self.stations: List[Station] = [Station(s, self.rng) for s in config.stations]
        self.buffers: List[Buffer] = [Buffer(b.id, b.capacity) for b in config.buffers]
        self.tracker = PieceTracker()
        self.history = metrics.MetricsHistory()

        self._initialized = False
        self.reset()

    # --- Lifecycle ---

    def reset(self, seed: Optional[int] = None) -> None:
        """Empty the line and rewind the clock, keeping the configuration.

        Args:
            seed: Optional new seed for the random source.
        """
        if seed is not None:
            self.rng.seed(seed)

        for station in self.stations:
            station.reset()
        for buf in self.buffers:
            buf.clear()
        self.tracker.reset()
        self.history.clear()

        self.current_time = 0
        self.completed_count = 0
        self.completions: List[CompletionRecord] = []
        self.lead_times: List[int] = []  # post-warm-up only
        self.entries: List[FlowRecord] = []
        self.exits: List[FlowRecord] = []
        self.timeline: List[TimelineEntry] = []
        self.milestones: List[Milestone] = []
        self.convergence = ConvergenceStatus(False, "Not started")
        self._counted_completions = 0

        self._initialized = True
        logger.debug("Engine reset for line '%s'", self.config.name)

    @property
    def wip_cap(self) -> int:
        return self.config.wip

    @property
    def warmup_period(self) -> int:
        return self.config.warmup_period

    @property
    def piece_counter(self) -> int:
        return self.tracker.piece_counter

    @property
    def is_converged(self) -> bool:
        return self.convergence.converged

    # --- Stepping ---

    def step(self) -> StepResult:
        """Advance one tick and return its completions plus a snapshot."""
        completions = self._tick()
        return StepResult(completions=tuple(completions), snapshot=self.snapshot())

    def run(self, ticks: int) -> List[CompletionRecord]:
        """Advance ``ticks`` ticks; return every completion in that span."""
        completed: List[CompletionRecord] = []
        for _ in range(ticks):
            completed.extend(self._tick())
        return completed

    def _tick(self) -> List[CompletionRecord]:
        if not getattr(self, "_initialized", False):
            raise StepPreconditionError("Engine state is not initialised; call reset()")

        completions: List[CompletionRecord] = []

        # Release at time zero so work entering an empty line is stamped t=0
        if self.current_time == 0:
            self._pull_upstream()

        self.current_time += 1

        for station in self.stations:
            station.advance_timers()

        self._push_downstream(completions)
        self._pull_upstream()

        for buf in self.buffers:
            buf.record_fill()

        if self.record_timeline:
            self._record_timeline()
        self._check_milestones(completions)
        if self.current_time % self.config.log_step == 0:
            self._update_metrics()

        return completions

    def _push_downstream(self, completions: List[CompletionRecord]) -> None:
        last = len(self.stations) - 1
        for index, station in enumerate(self.stations):
            for machine in list(station.blocked_machines()):
                if index == last:
                    self._complete_batch(station, machine, completions)
                    continue

                buf = self.buffers[index]
                if buf.is_bufferless:
                    # Picked up by the downstream pull as a direct hand-off
                    continue
                if buf.try_push(machine.batch):
                    batch = station.release(machine)
                    self.tracker.move(batch, buf.id)

    def _complete_batch(
        self,
        station: Station,
        machine: Machine,
        completions: List[CompletionRecord],
    ) -> None:
        now = self.current_time
        batch = station.release(machine)
        for piece in batch:
            lead_time = self.tracker.complete(piece, now)
            record = CompletionRecord(time=now, lead_time=lead_time, piece_id=piece.uid)
            self.completions.append(record)
            completions.append(record)
            if now > self.warmup_period:
                self.lead_times.append(lead_time)
                self._counted_completions += 1

        self.completed_count += len(batch)
        self.exits.append(FlowRecord(time=now, count=len(batch)))

    def _pull_upstream(self) -> None:
        for index, station in enumerate(self.stations):
            for machine in station.machines:
                if machine.status != MachineStatus.FREE:
                    continue
                if index == 0:
                    self._release_into(station, machine)
                else:
                    self._pull_into(index, station, machine)

    def _release_into(self, station: Station, machine: Machine) -> None:
        """Admit a new batch from the external supply if CONWIP allows it."""
        if self.total_wip() + station.batch_size > self.wip_cap:
            return
        batch = [
            self.tracker.mint(self.current_time, station.id)
            for _ in range(station.batch_size)
        ]
        station.try_start_batch(machine, batch)
        self.entries.append(FlowRecord(time=self.current_time, count=len(batch)))

    def _pull_into(self, index: int, station: Station, machine: Machine) -> None:
        buf = self.buffers[index - 1]
        if buf.capacity > 0:
            batch = buf.try_pop(station.batch_size)
            if batch is None:
                return
        else:
            upstream = self.stations[index - 1]
            source = upstream.find_handoff(station.batch_size)
            if source is None:
                return
            batch = upstream.release(source)

        station.try_start_batch(machine, batch)
        self.tracker.move(batch, station.id)

    # --- Metrics ---

    def total_wip(self) -> int:
        """Pieces inside the line (machines + buffers), excluding the supply."""
        return sum(s.occupancy for s in self.stations) + sum(len(b) for b in self.buffers)

    def throughput(self) -> float:
        """Post-warm-up pieces per hour."""
        return metrics.throughput_from_count(
            self._counted_completions, self.current_time, self.warmup_period
        )

    def average_lead_time(self) -> float:
        return metrics.average_lead_time(self.lead_times)

    def littles_law(self, tolerance: float = metrics.LITTLES_LAW_TOLERANCE) -> metrics.LittlesLawCheck:
        """Compare sampled mean WIP with throughput x mean post-warm-up lead time."""
        if self.history.wip:
            observed = sum(w for _, w in self.history.wip) / len(self.history.wip)
        else:
            observed = float(self.total_wip())
        lead = sum(self.lead_times) / len(self.lead_times) if self.lead_times else 0.0
        return metrics.littles_law_check(observed, self.throughput(), lead, tolerance)

    def _update_metrics(self) -> None:
        if self.current_time <= self.warmup_period:
            self.convergence = metrics.warmup_status(self.current_time, self.warmup_period)
            return

        tp = self.throughput()
        wip = self.total_wip()
        lead = self.average_lead_time()
        self.history.record(self.current_time, tp, wip, lead)
        self.history.log.append(self._log_row(tp, wip, lead))
        self.convergence = metrics.check_convergence(
            self.history.throughput_values(), self.current_time, self.warmup_period
        )

    def _log_row(self, throughput: float, wip: int, lead_time: float) -> dict:
        """One row of the exportable per-sample log."""
        row = {
            "time": self.current_time,
            "warmup_period": self.warmup_period,
            "throughput": round(throughput),
            "wip": wip,
            "lead_time": round(lead_time, 1),
            "wip_cap": self.wip_cap,
        }
        for buf in self.buffers:
            row[f"{buf.id}_capacity"] = buf.capacity

        for station in self.stations:
            cfg = station.cfg
            prefix = station.id
            row[f"{prefix}_dist"] = cfg.distribution.value
            row[f"{prefix}_mean"] = cfg.params.mean
            row[f"{prefix}_oee"] = round(cfg.oee, 2)
            row[f"{prefix}_batch"] = cfg.batch_size
            row[f"{prefix}_parallel"] = cfg.parallel_machines
            row[f"{prefix}_var"] = cfg.params.variance
            row[f"{prefix}_min"] = cfg.params.min
            row[f"{prefix}_max"] = cfg.params.max
            row[f"{prefix}_mode"] = cfg.params.mode

            blocked = station.count(MachineStatus.BLOCKED)
            row[f"{prefix}_free"] = station.count(MachineStatus.FREE)
            row[f"{prefix}_busy"] = station.count(MachineStatus.OCCUPIED) + blocked
            row[f"{prefix}_blocked"] = blocked
            row[f"{prefix}_pieces"] = "_".join(
                p.uid for m in station.machines for p in m.batch
            )

        for buf in self.buffers:
            row[f"{buf.id}_count"] = len(buf)
            row[f"{buf.id}_pieces"] = "_".join(p.uid for p in buf.pieces)
            row[f"{buf.id}_avg_util"] = round(buf.average_utilization(self.current_time), 1)

        return row

    def _check_milestones(self, completions: List[CompletionRecord]) -> None:
        now = self.current_time
        if completions:
            before = self.completed_count - len(completions)
            for target in metrics.MILESTONE_PIECES:
                if before < target <= self.completed_count:
                    self.milestones.append(Milestone(time=now, kind="pieces", value=target))
                    logger.info("Milestone: %d pieces completed at t=%d", target, now)
        if now in metrics.MILESTONE_TIMES:
            self.milestones.append(Milestone(time=now, kind="time", value=now))
            logger.info("Milestone: simulation reached t=%d", now)

    # --- Read-only views ---

    def _record_timeline(self) -> None:
        for station in self.stations:
            for i, machine in enumerate(station.machines):
                self.timeline.append(
                    TimelineEntry(
                        time=self.current_time,
                        station=station.id,
                        machine=i,
                        status=machine.status,
                        batch=machine.label,
                        remaining_time=machine.remaining_time,
                    )
                )

    def station(self, station_id: str) -> Station:
        for station in self.stations:
            if station.id == station_id:
                return station
        raise KeyError(station_id)

    def snapshot(self) -> LineSnapshot:
        """Immutable view of the line at the current tick boundary."""
        return LineSnapshot(
            time=self.current_time,
            stations=tuple(s.snapshot() for s in self.stations),
            buffers=tuple(b.snapshot() for b in self.buffers),
            completed_count=self.completed_count,
            wip_cap=self.wip_cap,
            total_wip=self.total_wip(),
            throughput=self.throughput(),
            average_lead_time=self.average_lead_time(),
            piece_locations=self.tracker.locations(),
            converged=self.is_converged,
        )
