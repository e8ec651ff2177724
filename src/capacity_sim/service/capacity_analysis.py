"""
Capacity Analysis Service: one call per planning period.

Runs the simulator, the forecast analyzer and the recommendation engine over
a (StageModel, OrderQueueSnapshot) pair and assembles the result contract
consumed by the dashboard. No I/O happens here; inputs arrive as snapshots.
"""

import enum
import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Any

from capacity_sim.analysis.forecast import ForecastAnalyzer, ForecastPoint, StageSummary
from capacity_sim.analysis.recommendations import (
    Recommendation,
    RecommendationEngine,
    render,
)
from capacity_sim.analysis.resources import (
    ResourceAllocation,
    estimate_allocation,
    from_pools,
)
from capacity_sim.config.loader import load_capacity_config
from capacity_sim.errors import ConfigurationError, ForecastHorizonExceeded
from capacity_sim.pipeline.core import OrderQueueSnapshot
from capacity_sim.pipeline.model import StageModel
from capacity_sim.pipeline.snapshot import compute_snapshot_hash
from capacity_sim.simulation.monitor import CapacityAuditor
from capacity_sim.simulation.simulator import (
    OrderSchedule,
    PipelineSimulator,
    SkippedOrder,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_HORIZON_DAYS = 365
DEFAULT_TIMEOUT_SECONDS = 30.0


class PlanningPeriod(enum.Enum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"


DEFAULT_PLANNING_PERIODS = {
    PlanningPeriod.WEEK.value: 7,
    PlanningPeriod.MONTH.value: 30,
    PlanningPeriod.QUARTER.value: 90,
}


def check_horizon(horizon_days: int, maximum: int) -> int:
    """Raise ForecastHorizonExceeded when the horizon is above the maximum."""
    if horizon_days > maximum:
        raise ForecastHorizonExceeded(horizon_days, maximum)
    return horizon_days


def _percent(value: float) -> float | None:
    """One decimal place; the overflow sentinel renders as None."""
    if math.isinf(value):
        return None
    return round(value, 1)


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class CapacityAnalysisResult:
    """Immutable analysis output; cached instances are shared between callers."""

    period: str | None
    start_date: date | None
    horizon_days: int
    stages: tuple[StageSummary, ...] = ()
    schedule: tuple[OrderSchedule, ...] = ()
    capacity_forecast: tuple[ForecastPoint, ...] = ()
    recommendations: tuple[Recommendation, ...] = ()
    resource_allocation: tuple[ResourceAllocation, ...] = ()
    skipped_orders: tuple[SkippedOrder, ...] = ()
    horizon_clamped: bool = False
    snapshot_hash: str = ""
    error: str | None = None

    @classmethod
    def empty(
        cls,
        error: str,
        period: str | None,
        horizon_days: int,
        snapshot_hash: str = "",
    ) -> "CapacityAnalysisResult":
        return cls(
            period=period,
            start_date=None,
            horizon_days=horizon_days,
            snapshot_hash=snapshot_hash,
            error=error,
        )

    @property
    def recommendation_messages(self) -> list[str]:
        return render(self.recommendations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "start_date": _iso(self.start_date),
            "horizon_days": self.horizon_days,
            "horizon_clamped": self.horizon_clamped,
            "stages": [
                {
                    "name": s.name,
                    "stage_order": s.stage_order,
                    "current_load": s.current_load,
                    "max_capacity": s.max_capacity,
                    "utilization_percent": _percent(s.utilization_percent),
                    "overflow": s.is_overflow,
                    "projected_overflow_date": _iso(s.projected_overflow_date),
                    "recommended_capacity": s.recommended_capacity,
                }
                for s in self.stages
            ],
            "schedule": [
                {
                    "order_id": sched.order.id,
                    "order_number": sched.order.order_number,
                    "customer_name": sched.order.customer_name,
                    "priority": sched.order.priority.value,
                    "start_date": _iso(sched.start_date),
                    "end_date": _iso(sched.end_date),
                    "current_stage": sched.current_stage,
                    "status": sched.status.value,
                    "stages": [
                        {
                            "stage": a.stage,
                            "estimated_start": _iso(a.estimated_start),
                            "estimated_end": _iso(a.estimated_end),
                            "duration_days": a.duration_days,
                        }
                        for a in sched.assignments
                    ],
                }
                for sched in self.schedule
            ],
            "capacity_forecast": [
                {
                    "date": p.date.isoformat(),
                    "total_demand": p.total_demand,
                    "total_capacity": p.total_capacity,
                    "utilization_percent": _percent(p.utilization_percent),
                    "bottleneck_stage": p.bottleneck_stage,
                }
                for p in self.capacity_forecast
            ],
            "recommendations": self.recommendation_messages,
            "resource_allocation": [
                {
                    "resource_type": r.resource_type,
                    "allocated": r.allocated,
                    "available": r.available,
                    "efficiency": r.efficiency,
                }
                for r in self.resource_allocation
            ],
            "skipped_orders": len(self.skipped_orders),
            "skipped_order_details": [
                {"order_id": s.order_id, "reason": s.reason}
                for s in self.skipped_orders
            ],
            "snapshot_hash": self.snapshot_hash,
            "error": self.error,
        }


class CapacityAnalysisService:
    """
    Orchestrates simulation, forecasting and recommendations for a snapshot.

    Each call builds its own simulation state, so calls for different
    periods can run side by side. Results are cached per snapshot content
    hash, horizon and start date when ``cache_results`` is enabled.
    """

    def __init__(
        self,
        stage_model: StageModel,
        snapshot: OrderQueueSnapshot,
        config: dict[str, Any] | None = None,
    ) -> None:
        self.stage_model = stage_model
        self.snapshot = snapshot
        self.config = config if config is not None else load_capacity_config()

        self.simulator = PipelineSimulator(self.config)
        self.analyzer = ForecastAnalyzer(self.config)
        self.engine = RecommendationEngine()
        self.auditor = CapacityAuditor(self.config)

        self.planning_periods: dict[str, int] = dict(
            self.config.get("planning_periods", DEFAULT_PLANNING_PERIODS)
        )
        self.max_horizon_days = int(
            self.config.get("max_horizon_days", DEFAULT_MAX_HORIZON_DAYS)
        )
        self.cache_results = bool(self.config.get("cache_results", True))
        self.timeout_seconds = float(
            self.config.get("analysis_timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
        )
        self.resource_config: list[dict[str, Any]] = self.config.get("resources", [])

        self.snapshot_hash = compute_snapshot_hash(stage_model, snapshot)
        self._cache: dict[tuple[str, str, int, date], CapacityAnalysisResult] = {}

    def horizon_for(self, period: str | PlanningPeriod) -> int:
        key = period.value if isinstance(period, PlanningPeriod) else str(period)
        if key not in self.planning_periods:
            raise ValueError(
                f"Unknown planning period {key!r}; "
                f"expected one of {sorted(self.planning_periods)}"
            )
        return int(self.planning_periods[key])

    def get_analysis(
        self, period: str | PlanningPeriod = "month", start_date: date | None = None
    ) -> CapacityAnalysisResult:
        """Capacity analysis over the horizon mapped to ``period``."""
        label = period.value if isinstance(period, PlanningPeriod) else str(period)
        return self._run(self.horizon_for(period), start_date, label)

    def analyze_horizon(
        self, horizon_days: int, start_date: date | None = None
    ) -> CapacityAnalysisResult:
        """Capacity analysis over an explicit number of days."""
        return self._run(horizon_days, start_date, None)

    def get_analyses(
        self,
        periods: list[str],
        start_date: date | None = None,
        timeout_seconds: float | None = None,
    ) -> dict[str, CapacityAnalysisResult]:
        """
        Run several periods in parallel and join the results.

        Raises:
            TimeoutError: the joined results were not ready within the deadline.
        """
        if not periods:
            return {}
        # Fail fast on bad input before spawning workers
        for period in periods:
            self.horizon_for(period)

        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        deadline = time.monotonic() + timeout

        pool = ThreadPoolExecutor(max_workers=len(periods))
        try:
            futures = {p: pool.submit(self.get_analysis, p, start_date) for p in periods}
            results: dict[str, CapacityAnalysisResult] = {}
            for period, future in futures.items():
                remaining = max(0.0, deadline - time.monotonic())
                results[period] = future.result(timeout=remaining)
            return results
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def _run(
        self, horizon_days: int, start_date: date | None, period: str | None
    ) -> CapacityAnalysisResult:
        if horizon_days < 1:
            raise ValueError(f"horizon_days must be >= 1, got {horizon_days}")

        try:
            self.stage_model.validate()
        except ConfigurationError as exc:
            logger.error("Capacity analysis aborted: %s", exc)
            return CapacityAnalysisResult.empty(
                str(exc), period, horizon_days, self.snapshot_hash
            )

        start = start_date or self.snapshot.as_of
        cache_key = (self.snapshot_hash, period or "", horizon_days, start)
        if self.cache_results and cache_key in self._cache:
            return self._cache[cache_key]

        horizon_clamped = False
        try:
            check_horizon(horizon_days, self.max_horizon_days)
        except ForecastHorizonExceeded as exc:
            logger.warning("%s; clamping to %d days", exc, exc.maximum)
            horizon_days = exc.maximum
            horizon_clamped = True

        simulation = self.simulator.simulate(
            self.stage_model, self.snapshot, horizon_days, start
        )
        for violation in self.auditor.audit(simulation):
            logger.error("Simulation invariant violated: %s", violation)

        forecast = self.analyzer.analyze(simulation)
        recommendations = self.engine.classify(
            forecast.stage_summaries, forecast.forecast_series
        )

        if self.snapshot.resources:
            resources = from_pools(self.snapshot.resources)
        else:
            resources = estimate_allocation(
                simulation.active_orders_on_day(0), self.resource_config
            )

        result = CapacityAnalysisResult(
            period=period,
            start_date=start,
            horizon_days=horizon_days,
            stages=tuple(forecast.stage_summaries),
            schedule=tuple(simulation.schedules),
            capacity_forecast=tuple(forecast.forecast_series),
            recommendations=tuple(recommendations),
            resource_allocation=tuple(resources),
            skipped_orders=tuple(simulation.skipped_orders),
            horizon_clamped=horizon_clamped,
            snapshot_hash=self.snapshot_hash,
        )

        logger.info(
            "Capacity analysis %s: %d days from %s, %d orders scheduled, "
            "%d skipped, %d recommendations",
            period or "custom",
            horizon_days,
            start.isoformat(),
            len(simulation.schedules),
            len(simulation.skipped_orders),
            len(recommendations),
        )

        if self.cache_results:
            self._cache[cache_key] = result
        return result
