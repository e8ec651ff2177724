from datetime import date

import pytest

from capacity_sim.errors import ConfigurationError
from capacity_sim.pipeline.core import Order, Priority, Stage, StageRequirement
from capacity_sim.pipeline.model import StageModel


def test_stage_creation():
    stage = Stage(name="Assembly", order=3, max_capacity=12)
    assert stage.name == "Assembly"
    assert stage.max_capacity == 12
    assert stage.target_duration_days == 3


def test_stage_requires_name():
    with pytest.raises(ValueError):
        Stage(name="", order=1, max_capacity=1)


def test_order_creation():
    order = Order(
        id="ord-1",
        priority=Priority.HIGH,
        deadline=date(2025, 3, 10),
        required_stages=(StageRequirement("Cutting", 2), StageRequirement("QC", 1)),
        order_number="SO-1",
    )
    assert order.required_stages[0].stage_name == "Cutting"
    assert order.in_progress is False
    assert order.elapsed_days == 0


def test_order_requires_id():
    with pytest.raises(ValueError):
        Order(id="")


def test_priority_parse():
    assert Priority.parse("urgent") == Priority.URGENT
    assert Priority.parse(" HIGH ") == Priority.HIGH
    assert Priority.parse(Priority.LOW) == Priority.LOW
    # Unrecognized values fall back to normal
    assert Priority.parse("rush") == Priority.NORMAL
    assert Priority.parse(None) == Priority.NORMAL


def test_priority_ranks():
    ranks = [p.rank for p in (Priority.URGENT, Priority.HIGH, Priority.NORMAL, Priority.LOW)]
    assert ranks == sorted(ranks)


def test_order_sort_key_undated_last():
    dated = Order(id="b", deadline=date(2030, 1, 1))
    undated = Order(id="a")
    urgent = Order(id="z", priority=Priority.URGENT)
    ordered = sorted([undated, dated, urgent], key=lambda o: o.sort_key)
    assert [o.id for o in ordered] == ["z", "b", "a"]


def test_order_sort_key_id_tiebreak():
    ordered = sorted([Order(id="O3"), Order(id="O2")], key=lambda o: o.sort_key)
    assert [o.id for o in ordered] == ["O2", "O3"]


class TestStageModel:
    def test_stages_in_pipeline_order(self):
        model = StageModel(
            [
                Stage("QC", 5, 8),
                Stage("Design", 1, 20),
                Stage("Assembly", 3, 12),
            ]
        )
        assert [s.name for s in model.stages] == ["Design", "Assembly", "QC"]
        assert model.stage_index == {"Design": 0, "Assembly": 1, "QC": 2}
        assert "QC" in model
        assert len(model) == 3

    def test_duplicate_stage_name(self):
        model = StageModel([Stage("Design", 1, 20)])
        with pytest.raises(ConfigurationError):
            model.add_stage(Stage("Design", 2, 5))

    def test_duplicate_stage_order(self):
        model = StageModel([Stage("Design", 1, 20)])
        with pytest.raises(ConfigurationError):
            model.add_stage(Stage("Cutting", 1, 5))

    def test_negative_capacity(self):
        with pytest.raises(ConfigurationError):
            StageModel([Stage("Design", 1, -1)])

    def test_zero_capacity_is_allowed(self):
        model = StageModel([Stage("Finishing", 4, 0)])
        model.validate()
        assert model.get_stage("Finishing").max_capacity == 0

    def test_empty_model_fails_validation(self):
        with pytest.raises(ConfigurationError):
            StageModel().validate()

    def test_get_missing_stage(self):
        assert StageModel().get_stage("Nope") is None
