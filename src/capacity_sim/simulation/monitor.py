from typing import Any

from capacity_sim.simulation.simulator import SimulationResult


class CapacityAuditor:
    """Enforces the slot and sequencing constraints on a finished simulation."""

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        config = config or {}
        self.transfer_delay_days = int(config.get("transfer_delay_days", 1))

    def check_capacity(self, result: SimulationResult) -> list[str]:
        """Admitted orders never exceed max_capacity on any day."""
        violations: list[str] = []
        for stage_name, series in result.occupancy.items():
            for record in series:
                if record.in_progress > max(record.capacity, 0):
                    violations.append(
                        f"Over-admission at {stage_name} on day {record.day}: "
                        f"{record.in_progress} > {record.capacity}"
                    )
        return violations

    def check_sequencing(self, result: SimulationResult) -> list[str]:
        violations: list[str] = []
        # No teleportation: a stage cannot start before the previous one ended
        # plus the transfer step
        for schedule in result.schedules:
            previous_end: int | None = None
            for assignment in schedule.assignments:
                start = assignment.start_day
                if start is None:
                    break
                if previous_end is not None and (
                    start < previous_end + self.transfer_delay_days
                ):
                    violations.append(
                        f"Order {schedule.order.id} entered {assignment.stage} "
                        f"on day {start}, before transfer from day {previous_end}"
                    )
                if assignment.end_day is None:
                    break
                previous_end = assignment.end_day
        return violations

    def audit(self, result: SimulationResult) -> list[str]:
        return self.check_capacity(result) + self.check_sequencing(result)
