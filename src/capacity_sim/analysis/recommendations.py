"""
Recommendation Engine: severity-ranked capacity findings.

Severity is decided from numeric thresholds first and only then rendered to
text, so callers never have to inspect message wording to sort or filter.
"""

import enum
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from capacity_sim.analysis.forecast import ForecastPoint, StageSummary

CRITICAL_UTILIZATION_PERCENT = 100.0
WARNING_UTILIZATION_PERCENT = 90.0

BALANCED_MESSAGE = "Production capacity is well-balanced across all stages."


class Severity(enum.Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.CRITICAL: 0, Severity.WARNING: 1, Severity.INFO: 2}


@dataclass(frozen=True)
class Recommendation:
    severity: Severity
    message: str
    stage_name: str | None = None
    stage_order: int | None = None


def classify_utilization(
    utilization_percent: float, overflow_projected: bool = False
) -> Severity | None:
    """
    Threshold partition for current-state alarms.

    Returns None below the warning threshold; whether an info note is due
    depends on the recommended capacity, not on utilization.
    """
    if overflow_projected or utilization_percent >= CRITICAL_UTILIZATION_PERCENT:
        return Severity.CRITICAL
    if utilization_percent >= WARNING_UTILIZATION_PERCENT:
        return Severity.WARNING
    return None


def _format_percent(value: float) -> str:
    return f"{value:.1f}%"


class RecommendationEngine:
    """Classifies forecast findings into ordered recommendations."""

    def classify_stage(
        self, summary: StageSummary, horizon_end: date | None
    ) -> Recommendation | None:
        severity = classify_utilization(
            summary.utilization_percent, summary.projected_overflow_date is not None
        )

        if severity == Severity.CRITICAL:
            if summary.is_overflow:
                message = f"Stage {summary.name} has no capacity"
                if summary.current_load:
                    message += f"; {summary.current_load} orders are blocked"
                if summary.projected_overflow_date is not None:
                    message += (
                        "; projected sustained overflow starting "
                        f"{summary.projected_overflow_date.isoformat()}"
                    )
                message += "."
            elif summary.projected_overflow_date is not None:
                message = (
                    f"Stage {summary.name} is at or exceeds capacity; "
                    "projected sustained overflow starting "
                    f"{summary.projected_overflow_date.isoformat()}."
                )
            else:
                message = f"Stage {summary.name} is at or exceeds capacity."
        elif severity == Severity.WARNING:
            message = (
                f"Stage {summary.name} is approaching capacity "
                f"({_format_percent(summary.utilization_percent)})."
            )
        elif summary.recommended_capacity > summary.max_capacity:
            severity = Severity.INFO
            target = summary.first_over_capacity_date or horizon_end
            message = (
                f"Stage {summary.name} should plan for increased capacity to "
                f"{summary.recommended_capacity}"
            )
            message += f" by {target.isoformat()}." if target else "."
        else:
            return None

        return Recommendation(
            severity=severity,
            message=message,
            stage_name=summary.name,
            stage_order=summary.stage_order,
        )

    def classify_forecast(
        self, forecast_series: list[ForecastPoint], stage_orders: dict[str, int]
    ) -> Recommendation | None:
        """Warning for the first day total load reaches the warning level."""
        for point in forecast_series:
            if point.bottleneck_stage is None:
                continue
            if point.utilization_percent < WARNING_UTILIZATION_PERCENT:
                continue
            day = point.date.isoformat()
            if math.isinf(point.utilization_percent):
                message = f"Pipeline has no capacity on {day}"
            else:
                message = (
                    "Pipeline load reaches "
                    f"{_format_percent(point.utilization_percent)} on {day}"
                )
            message += f"; bottleneck is stage {point.bottleneck_stage}."
            return Recommendation(
                severity=Severity.WARNING,
                message=message,
                stage_name=point.bottleneck_stage,
                stage_order=stage_orders.get(point.bottleneck_stage),
            )
        return None

    def classify(
        self,
        stage_summaries: list[StageSummary],
        forecast_series: list[ForecastPoint],
    ) -> list[Recommendation]:
        """
        Build the recommendation list, critical first.

        Within a severity bucket stages keep ascending pipeline order.
        """
        horizon_end = forecast_series[-1].date if forecast_series else None

        recommendations = []
        for summary in sorted(stage_summaries, key=lambda s: s.stage_order):
            recommendation = self.classify_stage(summary, horizon_end)
            if recommendation is not None:
                recommendations.append(recommendation)

        stage_orders = {s.name: s.stage_order for s in stage_summaries}
        forward = self.classify_forecast(forecast_series, stage_orders)
        if forward is not None:
            recommendations.append(forward)

        if not recommendations and stage_summaries:
            recommendations.append(Recommendation(Severity.INFO, BALANCED_MESSAGE))

        # Stable sort: for one stage the current-state finding precedes the
        # forward alert; stage-less notes go last
        return sorted(
            recommendations,
            key=lambda r: (
                r.severity.rank,
                math.inf if r.stage_order is None else r.stage_order,
            ),
        )


def render(recommendations: Iterable[Recommendation]) -> list[str]:
    return [r.message for r in recommendations]
