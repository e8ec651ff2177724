"""
Tests for recommendation severity and ordering.
"""

from datetime import date, timedelta

import pytest

from capacity_sim.analysis.forecast import ForecastPoint, StageSummary
from capacity_sim.analysis.recommendations import (
    BALANCED_MESSAGE,
    RecommendationEngine,
    Severity,
    classify_utilization,
    render,
)

START = date(2025, 1, 6)
HORIZON_END = START + timedelta(days=29)


def summary(
    name: str = "Cutting",
    order: int = 1,
    utilization: float = 50.0,
    max_capacity: int = 4,
    recommended: int | None = None,
    current_load: int = 2,
    overflow_date: date | None = None,
    first_over: date | None = None,
) -> StageSummary:
    return StageSummary(
        name=name,
        stage_order=order,
        current_load=current_load,
        backlog=0,
        max_capacity=max_capacity,
        utilization_percent=utilization,
        recommended_capacity=max_capacity if recommended is None else recommended,
        projected_overflow_date=overflow_date,
        first_over_capacity_date=first_over,
    )


def series() -> list[ForecastPoint]:
    return [
        ForecastPoint(START + timedelta(days=d), 0, 10, 0.0) for d in range(30)
    ]


@pytest.mark.parametrize(
    "utilization, expected",
    [
        (0.0, None),
        (50.0, None),
        (89.9, None),
        (90.0, Severity.WARNING),
        (99.9, Severity.WARNING),
        (100.0, Severity.CRITICAL),
        (150.0, Severity.CRITICAL),
        (float("inf"), Severity.CRITICAL),
    ],
)
def test_threshold_partition(utilization, expected):
    assert classify_utilization(utilization) == expected


def test_projected_overflow_forces_critical():
    assert classify_utilization(10.0, overflow_projected=True) == Severity.CRITICAL


def test_severity_ranks():
    ranks = [s.rank for s in (Severity.CRITICAL, Severity.WARNING, Severity.INFO)]
    assert ranks == sorted(ranks)


class TestClassifyStage:
    @pytest.fixture
    def engine(self) -> RecommendationEngine:
        return RecommendationEngine()

    def test_healthy_stage_yields_nothing(self, engine):
        assert engine.classify_stage(summary(utilization=89.9), HORIZON_END) is None

    def test_warning_message(self, engine):
        rec = engine.classify_stage(summary(utilization=95.0), HORIZON_END)
        assert rec.severity == Severity.WARNING
        assert rec.message == "Stage Cutting is approaching capacity (95.0%)."
        assert rec.stage_name == "Cutting"

    def test_critical_message(self, engine):
        rec = engine.classify_stage(summary(utilization=125.0), HORIZON_END)
        assert rec.severity == Severity.CRITICAL
        assert rec.message == "Stage Cutting is at or exceeds capacity."

    def test_critical_with_projected_overflow(self, engine):
        overflow = START + timedelta(days=4)
        rec = engine.classify_stage(
            summary(utilization=75.0, overflow_date=overflow), HORIZON_END
        )
        assert rec.severity == Severity.CRITICAL
        assert rec.message == (
            "Stage Cutting is at or exceeds capacity; "
            "projected sustained overflow starting 2025-01-10."
        )

    def test_zero_capacity_message(self, engine):
        rec = engine.classify_stage(
            summary(
                name="Finishing",
                utilization=float("inf"),
                max_capacity=0,
                current_load=3,
            ),
            HORIZON_END,
        )
        assert rec.severity == Severity.CRITICAL
        assert rec.message == "Stage Finishing has no capacity; 3 orders are blocked."

    def test_zero_capacity_message_keeps_overflow_date(self, engine):
        rec = engine.classify_stage(
            summary(
                name="Finishing",
                utilization=float("inf"),
                max_capacity=0,
                current_load=0,
                overflow_date=START + timedelta(days=2),
            ),
            HORIZON_END,
        )
        assert rec.severity == Severity.CRITICAL
        assert rec.message == (
            "Stage Finishing has no capacity; "
            "projected sustained overflow starting 2025-01-08."
        )

    def test_info_only_when_recommendation_exceeds_capacity(self, engine):
        assert engine.classify_stage(summary(recommended=4), HORIZON_END) is None

        rec = engine.classify_stage(summary(recommended=6), HORIZON_END)
        assert rec.severity == Severity.INFO
        assert rec.message == (
            "Stage Cutting should plan for increased capacity to 6 by 2025-02-04."
        )

    def test_info_targets_first_over_capacity_day(self, engine):
        rec = engine.classify_stage(
            summary(recommended=6, first_over=START + timedelta(days=1)), HORIZON_END
        )
        assert rec.message.endswith("by 2025-01-07.")


class TestClassify:
    def test_critical_then_warning_then_info(self):
        summaries = [
            summary("QC", 5, utilization=120.0),
            summary("Design", 1, recommended=9),
            summary("Assembly", 3, utilization=92.0),
            summary("Cutting", 2, utilization=100.0),
            summary("Finishing", 4, utilization=10.0),
        ]
        recs = RecommendationEngine().classify(summaries, series())

        assert [(r.severity, r.stage_name) for r in recs] == [
            (Severity.CRITICAL, "Cutting"),
            (Severity.CRITICAL, "QC"),
            (Severity.WARNING, "Assembly"),
            (Severity.INFO, "Design"),
        ]

    def test_balanced_fallback(self):
        summaries = [summary("Design", 1), summary("Cutting", 2, utilization=30.0)]
        recs = RecommendationEngine().classify(summaries, series())

        assert len(recs) == 1
        assert recs[0].severity == Severity.INFO
        assert recs[0].stage_name is None
        assert render(recs) == [BALANCED_MESSAGE]

    def test_no_stages_no_recommendations(self):
        assert RecommendationEngine().classify([], []) == []

    def test_info_without_forecast_series(self):
        recs = RecommendationEngine().classify([summary(recommended=6)], [])
        assert recs[0].message == "Stage Cutting should plan for increased capacity to 6."


class TestForwardAlert:
    @staticmethod
    def loaded_series(
        utilizations: list[float], bottleneck: str = "Cutting"
    ) -> list[ForecastPoint]:
        return [
            ForecastPoint(
                START + timedelta(days=d),
                total_demand=1,
                total_capacity=10,
                utilization_percent=u,
                bottleneck_stage=bottleneck,
            )
            for d, u in enumerate(utilizations)
        ]

    def test_first_day_at_warning_level(self):
        series = self.loaded_series([40.0, 89.9, 90.0, 120.0])
        recs = RecommendationEngine().classify([summary("Cutting", 2)], series)

        assert len(recs) == 1
        assert recs[0].severity == Severity.WARNING
        assert recs[0].stage_name == "Cutting"
        assert recs[0].message == (
            "Pipeline load reaches 90.0% on 2025-01-08; bottleneck is stage Cutting."
        )

    def test_quiet_forecast_raises_nothing(self):
        series = self.loaded_series([40.0, 89.9])
        recs = RecommendationEngine().classify([summary("Cutting", 2)], series)
        assert render(recs) == [BALANCED_MESSAGE]

    def test_idle_days_are_skipped(self):
        series = [ForecastPoint(START, 0, 0, float("inf"))]
        assert RecommendationEngine().classify_forecast(series, {}) is None

    def test_zero_total_capacity(self):
        series = self.loaded_series([float("inf")], bottleneck="Design")
        rec = RecommendationEngine().classify_forecast(series, {"Design": 1})
        assert rec.message == (
            "Pipeline has no capacity on 2025-01-06; bottleneck is stage Design."
        )
        assert rec.stage_order == 1

    def test_pipeline_order_within_warnings(self):
        summaries = [
            summary("Design", 1, utilization=10.0),
            summary("Cutting", 2, utilization=10.0),
            summary("Assembly", 3, utilization=95.0),
        ]
        recs = RecommendationEngine().classify(summaries, self.loaded_series([95.0]))

        assert [(r.severity, r.stage_name) for r in recs] == [
            (Severity.WARNING, "Cutting"),
            (Severity.WARNING, "Assembly"),
        ]

    def test_current_finding_precedes_forward_alert(self):
        summaries = [summary("Cutting", 2, utilization=95.0)]
        recs = RecommendationEngine().classify(summaries, self.loaded_series([95.0]))

        assert [r.message for r in recs] == [
            "Stage Cutting is approaching capacity (95.0%).",
            "Pipeline load reaches 95.0% on 2025-01-06; bottleneck is stage Cutting.",
        ]
