"""
Tests for the post-run capacity auditor.
"""

from datetime import date, timedelta

from capacity_sim.pipeline.core import Order, Stage, StageRequirement
from capacity_sim.simulation.monitor import CapacityAuditor
from capacity_sim.simulation.simulator import (
    DailyOccupancy,
    OrderSchedule,
    ScheduleStatus,
    SimulationResult,
    StageAssignment,
)

START = date(2025, 1, 6)
STAGES = [Stage("A", 1, 2), Stage("B", 2, 1)]


def occupancy(in_progress: dict[str, list[int]]) -> dict[str, list[DailyOccupancy]]:
    return {
        stage.name: [
            DailyOccupancy(
                stage_name=stage.name,
                stage_order=stage.order,
                day=day,
                date=START + timedelta(days=day),
                in_progress=count,
                queued=0,
                capacity=stage.max_capacity,
            )
            for day, count in enumerate(in_progress[stage.name])
        ]
        for stage in STAGES
    }


def schedule(order_id: str, *spans: tuple[int | None, int | None]) -> OrderSchedule:
    names = [s.name for s in STAGES][: len(spans)]
    order = Order(
        id=order_id,
        required_stages=tuple(StageRequirement(name, 1) for name in names),
    )
    assignments = tuple(
        StageAssignment(stage=name, duration_days=1, start_day=start, end_day=end)
        for name, (start, end) in zip(names, spans)
    )
    return OrderSchedule(order, assignments, ScheduleStatus.IN_PROGRESS)


def build(schedules: list[OrderSchedule], in_progress: dict[str, list[int]]):
    return SimulationResult(START, 3, STAGES, schedules, occupancy(in_progress))


def test_clean_run_passes():
    result = build([schedule("O1", (0, 1), (2, 3))], {"A": [1, 0, 0], "B": [0, 0, 1]})
    assert CapacityAuditor().audit(result) == []


def test_over_admission_reported():
    result = build([], {"A": [1, 3, 0], "B": [0, 0, 0]})
    violations = CapacityAuditor().check_capacity(result)
    assert len(violations) == 1
    assert "Over-admission at A on day 1" in violations[0]


def test_admission_at_zero_capacity_reported():
    result = SimulationResult(
        START,
        1,
        [Stage("A", 1, 0)],
        [],
        {
            "A": [
                DailyOccupancy("A", 1, 0, START, in_progress=1, queued=0, capacity=0)
            ]
        },
    )
    assert len(CapacityAuditor().check_capacity(result)) == 1


def test_early_transfer_reported():
    # B started on the day A finished, skipping the one-day transfer
    result = build([schedule("O1", (0, 1), (1, 2))], {"A": [1, 0, 0], "B": [0, 1, 0]})
    violations = CapacityAuditor().check_sequencing(result)
    assert len(violations) == 1
    assert "Order O1 entered B on day 1" in violations[0]


def test_same_day_transfer_allowed_without_delay():
    result = build([schedule("O1", (0, 1), (1, 2))], {"A": [1, 0, 0], "B": [0, 1, 0]})
    assert CapacityAuditor({"transfer_delay_days": 0}).check_sequencing(result) == []


def test_audit_combines_both_checks():
    result = build([schedule("O1", (0, 1), (1, 2))], {"A": [3, 0, 0], "B": [0, 1, 0]})
    assert len(CapacityAuditor().audit(result)) == 2
