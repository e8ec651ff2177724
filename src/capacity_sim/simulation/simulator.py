"""
Pipeline Simulator: advances orders through finite-capacity stages day by day.

This module enforces:
- Finite Capacity: a stage never holds more orders than max_capacity
- Fixed Priority: urgent > high > normal > low, then deadline, then order id
- Transfer Step: an order finishing a stage joins the next queue and becomes
  eligible transfer_delay_days later
- Determinism: the result is a pure function of the pipeline, the orders,
  the horizon and the start date
"""

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from capacity_sim.errors import DataIntegrityError
from capacity_sim.pipeline.core import Order, OrderQueueSnapshot, Stage
from capacity_sim.pipeline.model import StageModel

logger = logging.getLogger(__name__)

DEFAULT_TRANSFER_DELAY_DAYS = 1
PENDING_STAGE = "Pending"


class ScheduleStatus(enum.Enum):
    COMPLETE = "complete"  # Every required stage ends within the horizon
    IN_PROGRESS = "in_progress"  # Admitted somewhere, not finished
    UNSCHEDULED = "unscheduled"  # Never admitted within the horizon


@dataclass(frozen=True)
class DailyOccupancy:
    """Load on one stage for one simulated day."""

    stage_name: str
    stage_order: int
    day: int
    date: date
    in_progress: int
    queued: int
    capacity: int

    @property
    def demand(self) -> int:
        return self.in_progress + self.queued

    @property
    def is_overflow(self) -> bool:
        """Zero-capacity sentinel: utilization is unbounded."""
        return self.capacity <= 0

    @property
    def utilization_percent(self) -> float:
        if self.is_overflow:
            return float("inf")
        return self.demand / self.capacity * 100


@dataclass(frozen=True)
class StageAssignment:
    stage: str
    duration_days: int
    start_day: int | None = None
    end_day: int | None = None
    estimated_start: date | None = None
    estimated_end: date | None = None

    @property
    def is_scheduled(self) -> bool:
        return self.start_day is not None


@dataclass(frozen=True)
class OrderSchedule:
    order: Order
    assignments: tuple[StageAssignment, ...]
    status: ScheduleStatus
    current_stage: str = PENDING_STAGE

    @property
    def start_date(self) -> date | None:
        return self.assignments[0].estimated_start if self.assignments else None

    @property
    def end_date(self) -> date | None:
        if self.status != ScheduleStatus.COMPLETE:
            return None
        return self.assignments[-1].estimated_end


@dataclass(frozen=True)
class SkippedOrder:
    order_id: str
    reason: str


@dataclass
class SimulationResult:
    start_date: date
    horizon_days: int
    stages: list[Stage]
    schedules: list[OrderSchedule]
    occupancy: dict[str, list[DailyOccupancy]]
    skipped_orders: list[SkippedOrder] = field(default_factory=list)

    @property
    def dates(self) -> list[date]:
        return [self.start_date + timedelta(days=d) for d in range(self.horizon_days)]

    def get_schedule(self, order_id: str) -> OrderSchedule | None:
        for schedule in self.schedules:
            if schedule.order.id == order_id:
                return schedule
        return None

    def active_orders_on_day(self, day: int) -> int:
        """Orders holding a slot anywhere in the pipeline on ``day``."""
        return sum(series[day].in_progress for series in self.occupancy.values())


@dataclass
class _OrderTrack:
    """Mutable per-order bookkeeping while the simulation runs."""

    order: Order
    position: int  # Index in the fixed priority ordering
    starts: list[int | None]
    ends: list[int | None]
    current_stage: str = PENDING_STAGE


@dataclass
class _QueueEntry:
    key: tuple[int, int]  # (seeded first, fixed priority position)
    ready_day: int
    track: _OrderTrack
    step: int
    elapsed_days: int = 0


@dataclass
class _SlotHolder:
    track: _OrderTrack
    step: int
    remaining: int


@dataclass
class StageState:
    """Slots and waiting line of one stage."""

    stage: Stage
    in_progress: list[_SlotHolder] = field(default_factory=list)
    queue: list[_QueueEntry] = field(default_factory=list)

    def enqueue(self, entry: _QueueEntry) -> None:
        self.queue.append(entry)
        # Stable sort keeps the fixed priority ordering intact
        self.queue.sort(key=lambda e: e.key)

    def pop_eligible(self, day: int) -> _QueueEntry | None:
        for i, entry in enumerate(self.queue):
            if entry.ready_day <= day:
                return self.queue.pop(i)
        return None

    @property
    def has_free_slot(self) -> bool:
        return len(self.in_progress) < self.stage.max_capacity


def validate_order(order: Order, stage_index: dict[str, int]) -> None:
    """
    Check that an order can be simulated against the pipeline.

    Raises:
        DataIntegrityError: empty or malformed stage requirements, unknown
            stages, or stages listed against pipeline order.
    """
    if not order.required_stages:
        raise DataIntegrityError(order.id, "has no required stages")
    if order.elapsed_days < 0:
        raise DataIntegrityError(
            order.id, f"has negative elapsed days {order.elapsed_days}"
        )

    last_index = -1
    for req in order.required_stages:
        if req.stage_name not in stage_index:
            raise DataIntegrityError(
                order.id, f"requires unknown stage {req.stage_name!r}"
            )
        if req.duration_days < 1:
            raise DataIntegrityError(
                order.id,
                f"stage {req.stage_name} has invalid duration {req.duration_days}",
            )
        index = stage_index[req.stage_name]
        if index < last_index:
            raise DataIntegrityError(
                order.id, "required stages are out of pipeline order"
            )
        last_index = index


def prioritize(orders: Iterable[Order]) -> list[Order]:
    """Fixed queue ordering used for the whole run."""
    return sorted(orders, key=lambda o: o.sort_key)


class PipelineSimulator:
    """
    Discrete, day-granularity flow-shop simulation.

    Each day runs three phases over the stages in pipeline order:
    completions, admissions, then occupancy recording. Upstream completions
    are therefore visible to downstream admission on the same day, subject to
    the transfer delay.
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        config = config or {}
        self.transfer_delay_days = int(
            config.get("transfer_delay_days", DEFAULT_TRANSFER_DELAY_DAYS)
        )
        if self.transfer_delay_days < 0:
            raise ValueError(
                f"transfer_delay_days must be >= 0, got {self.transfer_delay_days}"
            )

    def simulate(
        self,
        stage_model: StageModel,
        orders: OrderQueueSnapshot | Iterable[Order],
        horizon_days: int,
        start_date: date,
    ) -> SimulationResult:
        """
        Run the pipeline forward from ``start_date``.

        Args:
            stage_model: Validated stage pipeline
            orders: Snapshot (or plain iterable) of active orders
            horizon_days: Number of days to simulate (>= 1)
            start_date: Calendar date of day 0

        Returns:
            SimulationResult with per-order schedules, per-stage daily
            occupancy and the orders rejected as malformed.
        """
        if horizon_days < 1:
            raise ValueError(f"horizon_days must be >= 1, got {horizon_days}")
        stage_model.validate()

        if isinstance(orders, OrderQueueSnapshot):
            orders = orders.orders

        stages = stage_model.stages
        stage_index = stage_model.stage_index
        states = {stage.name: StageState(stage) for stage in stages}

        # 1. Reject malformed orders, keep the rest in fixed priority order
        skipped: list[SkippedOrder] = []
        tracks: list[_OrderTrack] = []
        for order in prioritize(orders):
            try:
                validate_order(order, stage_index)
            except DataIntegrityError as exc:
                logger.warning("Skipping order: %s", exc)
                skipped.append(SkippedOrder(exc.order_id, exc.reason))
                continue
            n_steps = len(order.required_stages)
            tracks.append(
                _OrderTrack(order, len(tracks), [None] * n_steps, [None] * n_steps)
            )

        # 2. Every order starts in the queue of its first required stage.
        # Orders already being worked on go ahead of the waiting line.
        for track in tracks:
            order = track.order
            seeded = 0 if order.in_progress else 1
            states[order.required_stages[0].stage_name].enqueue(
                _QueueEntry(
                    key=(seeded, track.position),
                    ready_day=0,
                    track=track,
                    step=0,
                    elapsed_days=order.elapsed_days if order.in_progress else 0,
                )
            )

        occupancy: dict[str, list[DailyOccupancy]] = {s.name: [] for s in stages}

        # 3. Day loop
        for day in range(horizon_days):
            current = start_date + timedelta(days=day)
            self._complete(states, day)
            self._admit(states, day)
            for stage in stages:
                state = states[stage.name]
                if day == 0:
                    for holder in state.in_progress:
                        holder.track.current_stage = stage.name
                occupancy[stage.name].append(
                    DailyOccupancy(
                        stage_name=stage.name,
                        stage_order=stage.order,
                        day=day,
                        date=current,
                        in_progress=len(state.in_progress),
                        queued=len(state.queue),
                        capacity=stage.max_capacity,
                    )
                )

        schedules = [self._build_schedule(track, start_date) for track in tracks]

        logger.debug(
            "Simulated %d orders over %d days (%d skipped)",
            len(tracks),
            horizon_days,
            len(skipped),
        )

        return SimulationResult(
            start_date=start_date,
            horizon_days=horizon_days,
            stages=stages,
            schedules=schedules,
            occupancy=occupancy,
            skipped_orders=skipped,
        )

    def _complete(self, states: dict[str, StageState], day: int) -> None:
        """Phase a: burn one day of work and hand finished orders downstream."""
        for state in states.values():
            still_running: list[_SlotHolder] = []
            for holder in state.in_progress:
                holder.remaining -= 1
                if holder.remaining > 0:
                    still_running.append(holder)
                    continue

                track = holder.track
                track.ends[holder.step] = day
                next_step = holder.step + 1
                if next_step < len(track.order.required_stages):
                    next_stage = track.order.required_stages[next_step].stage_name
                    states[next_stage].enqueue(
                        _QueueEntry(
                            key=(1, track.position),
                            ready_day=day + self.transfer_delay_days,
                            track=track,
                            step=next_step,
                        )
                    )
            state.in_progress = still_running

    def _admit(self, states: dict[str, StageState], day: int) -> None:
        """Phase b: fill free slots from the head of each eligible queue."""
        for state in states.values():
            while state.has_free_slot:
                entry = state.pop_eligible(day)
                if entry is None:
                    break
                duration = entry.track.order.required_stages[entry.step].duration_days
                entry.track.starts[entry.step] = day - entry.elapsed_days
                state.in_progress.append(
                    _SlotHolder(
                        track=entry.track,
                        step=entry.step,
                        remaining=max(1, duration - entry.elapsed_days),
                    )
                )

    def _build_schedule(self, track: _OrderTrack, start_date: date) -> OrderSchedule:
        def to_date(day: int | None) -> date | None:
            return None if day is None else start_date + timedelta(days=day)

        assignments = tuple(
            StageAssignment(
                stage=req.stage_name,
                duration_days=req.duration_days,
                start_day=track.starts[i],
                end_day=track.ends[i],
                estimated_start=to_date(track.starts[i]),
                estimated_end=to_date(track.ends[i]),
            )
            for i, req in enumerate(track.order.required_stages)
        )

        if all(end is not None for end in track.ends):
            status = ScheduleStatus.COMPLETE
        elif any(start is not None for start in track.starts):
            status = ScheduleStatus.IN_PROGRESS
        else:
            status = ScheduleStatus.UNSCHEDULED

        return OrderSchedule(
            order=track.order,
            assignments=assignments,
            status=status,
            current_stage=track.current_stage,
        )
