"""Day-stepped pipeline simulation."""

from capacity_sim.simulation.monitor import CapacityAuditor
from capacity_sim.simulation.simulator import (
    DailyOccupancy,
    OrderSchedule,
    PipelineSimulator,
    ScheduleStatus,
    SimulationResult,
    SkippedOrder,
    StageAssignment,
)

__all__ = [
    "CapacityAuditor",
    "DailyOccupancy",
    "OrderSchedule",
    "PipelineSimulator",
    "ScheduleStatus",
    "SimulationResult",
    "SkippedOrder",
    "StageAssignment",
]
