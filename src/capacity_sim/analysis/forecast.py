"""
Forecast Analyzer: turns simulated daily occupancy into planning figures.

Per stage it reports the day-0 ("now") load, the first sustained overflow
and a recommended capacity; per day it reports pipeline totals and the
bottleneck stage.

Series are held as [stages, days] arrays with stages in pipeline order, so
row index order is also the bottleneck tie-break order.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import numpy as np

from capacity_sim.simulation.simulator import SimulationResult

logger = logging.getLogger(__name__)

# Consecutive days of demand > capacity before an overflow is "sustained".
# Fixed policy, not read from config.
SUSTAINED_OVERFLOW_DAYS = 3

DEFAULT_TRAILING_WINDOW_DAYS = 7
DEFAULT_CAPACITY_GROWTH_FACTOR = 1.1

# Decimal places kept before rounding recommendations up (float noise guard)
_CEIL_PRECISION = 6


@dataclass(frozen=True)
class StageSummary:
    name: str
    stage_order: int
    current_load: int
    backlog: int
    max_capacity: int
    utilization_percent: float
    recommended_capacity: int
    projected_overflow_date: date | None = None
    first_over_capacity_date: date | None = None

    @property
    def is_overflow(self) -> bool:
        """Zero-capacity sentinel (utilization is +inf)."""
        return self.max_capacity <= 0


@dataclass(frozen=True)
class ForecastPoint:
    date: date
    total_demand: int
    total_capacity: int
    utilization_percent: float
    bottleneck_stage: str | None = None


@dataclass
class ForecastResult:
    stage_summaries: list[StageSummary] = field(default_factory=list)
    forecast_series: list[ForecastPoint] = field(default_factory=list)
    recommended_capacity: dict[str, int] = field(default_factory=dict)


def utilization_matrix(demand: np.ndarray, capacity: np.ndarray) -> np.ndarray:
    """demand / capacity * 100, with +inf wherever capacity is zero."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(capacity > 0, demand / capacity * 100, np.inf)


def find_sustained_overflow(
    overflow_flags: np.ndarray, run_length: int = SUSTAINED_OVERFLOW_DAYS
) -> int | None:
    """
    Index of the first day starting a run of ``run_length`` overflow days.

    A run that would extend past the end of the series does not count.
    """
    flags = np.asarray(overflow_flags, dtype=np.int64)
    if flags.size < run_length:
        return None
    window_sums = np.convolve(flags, np.ones(run_length, dtype=np.int64), "valid")
    hits = np.flatnonzero(window_sums == run_length)
    return int(hits[0]) if hits.size else None


def recommend_capacity(
    demand: np.ndarray,
    capacity: np.ndarray,
    window: int = DEFAULT_TRAILING_WINDOW_DAYS,
    growth_factor: float = DEFAULT_CAPACITY_GROWTH_FACTOR,
) -> np.ndarray:
    """
    ceil(trailing average demand * growth_factor), never below current capacity.

    Args:
        demand: [stages, days] demand matrix
        capacity: [stages] current max_capacity
        window: trailing days to average (the whole series if shorter)
    """
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")
    window_len = min(window, demand.shape[1])
    trailing_avg = demand[:, -window_len:].mean(axis=1)
    recommended = np.ceil(np.round(trailing_avg * growth_factor, _CEIL_PRECISION))
    return np.maximum(recommended.astype(np.int64), capacity)


class ForecastAnalyzer:
    """
    Derives utilization, overflow and bottleneck figures from a simulation.
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        config = config or {}
        self.window = int(
            config.get("trailing_window_days", DEFAULT_TRAILING_WINDOW_DAYS)
        )
        self.growth_factor = float(
            config.get("capacity_growth_factor", DEFAULT_CAPACITY_GROWTH_FACTOR)
        )

    def analyze(
        self, simulation: SimulationResult, window: int | None = None
    ) -> ForecastResult:
        """
        Summarize a simulation run.

        Args:
            simulation: Output of PipelineSimulator.simulate
            window: Trailing window for recommended capacity (defaults to config)

        Returns:
            ForecastResult with stage summaries, the per-day forecast series
            and recommended capacity per stage.
        """
        stages = simulation.stages
        if not stages:
            return ForecastResult()

        window = self.window if window is None else window
        dates = simulation.dates

        # Shape: [Stages, Days]
        demand = np.array(
            [[r.demand for r in simulation.occupancy[s.name]] for s in stages],
            dtype=np.int64,
        )
        capacity = np.array([s.max_capacity for s in stages], dtype=np.int64)

        utilization = utilization_matrix(demand, capacity[:, None])
        over_capacity = demand > capacity[:, None]
        recommended = recommend_capacity(demand, capacity, window, self.growth_factor)

        summaries: list[StageSummary] = []
        for i, stage in enumerate(stages):
            day0 = simulation.occupancy[stage.name][0]

            overflow_idx = find_sustained_overflow(over_capacity[i])
            first_over = np.flatnonzero(over_capacity[i])

            summaries.append(
                StageSummary(
                    name=stage.name,
                    stage_order=stage.order,
                    current_load=day0.demand,
                    backlog=day0.queued,
                    max_capacity=stage.max_capacity,
                    # Day 0 is authoritative "now"
                    utilization_percent=day0.utilization_percent,
                    recommended_capacity=int(recommended[i]),
                    projected_overflow_date=(
                        dates[overflow_idx] if overflow_idx is not None else None
                    ),
                    first_over_capacity_date=(
                        dates[int(first_over[0])] if first_over.size else None
                    ),
                )
            )

        total_demand = demand.sum(axis=0)
        total_capacity = int(capacity.sum())
        total_utilization = utilization_matrix(
            total_demand, np.full(total_demand.shape, total_capacity)
        )

        # Idle stages never compete for bottleneck, zero capacity included
        candidates = np.where(demand > 0, utilization, -np.inf)

        series: list[ForecastPoint] = []
        for d, day in enumerate(dates):
            bottleneck = None
            if total_demand[d] > 0:
                # argmax returns the first maximum: the upstream-most stage
                bottleneck = stages[int(np.argmax(candidates[:, d]))].name
            series.append(
                ForecastPoint(
                    date=day,
                    total_demand=int(total_demand[d]),
                    total_capacity=total_capacity,
                    utilization_percent=float(total_utilization[d]),
                    bottleneck_stage=bottleneck,
                )
            )

        overflowing = [s.name for s in summaries if s.projected_overflow_date]
        if overflowing:
            logger.info("Sustained overflow projected for: %s", ", ".join(overflowing))

        return ForecastResult(
            stage_summaries=summaries,
            forecast_series=series,
            recommended_capacity={s.name: s.recommended_capacity for s in summaries},
        )
