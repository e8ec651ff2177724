"""Capacity analysis orchestration."""

from capacity_sim.service.capacity_analysis import (
    CapacityAnalysisResult,
    CapacityAnalysisService,
    PlanningPeriod,
)

__all__ = ["CapacityAnalysisResult", "CapacityAnalysisService", "PlanningPeriod"]
