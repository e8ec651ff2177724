"""Forecasting, recommendations and resource figures built on simulation output."""

from capacity_sim.analysis.forecast import (
    ForecastAnalyzer,
    ForecastPoint,
    ForecastResult,
    StageSummary,
)
from capacity_sim.analysis.recommendations import (
    Recommendation,
    RecommendationEngine,
    Severity,
)
from capacity_sim.analysis.resources import ResourceAllocation

__all__ = [
    "ForecastAnalyzer",
    "ForecastPoint",
    "ForecastResult",
    "Recommendation",
    "RecommendationEngine",
    "ResourceAllocation",
    "Severity",
    "StageSummary",
]
