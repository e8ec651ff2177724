from collections.abc import Iterable

from capacity_sim.errors import ConfigurationError
from capacity_sim.pipeline.core import Stage


class StageModel:
    """
    The container for the static structure of the production pipeline.
    Maps stage names to pipeline indices for O(1) access.
    """

    def __init__(self, stages: Iterable[Stage] = ()) -> None:
        self._stages: dict[str, Stage] = {}
        self._orders: set[int] = set()
        for stage in stages:
            self.add_stage(stage)

    def add_stage(self, stage: Stage) -> None:
        if stage.name in self._stages:
            raise ConfigurationError(f"Stage {stage.name} already exists")
        if stage.order in self._orders:
            raise ConfigurationError(
                f"Stage order {stage.order} is used by more than one stage"
            )
        if stage.max_capacity < 0:
            raise ConfigurationError(
                f"Stage {stage.name} has negative capacity {stage.max_capacity}"
            )
        self._stages[stage.name] = stage
        self._orders.add(stage.order)

    def validate(self) -> None:
        """A usable pipeline has at least one stage."""
        if not self._stages:
            raise ConfigurationError("No production stages defined")

    @property
    def stages(self) -> list[Stage]:
        """Stages in pipeline order."""
        return sorted(self._stages.values(), key=lambda s: s.order)

    @property
    def stage_index(self) -> dict[str, int]:
        return {stage.name: i for i, stage in enumerate(self.stages)}

    def get_stage(self, name: str) -> Stage | None:
        return self._stages.get(name)

    def __len__(self) -> int:
        return len(self._stages)

    def __contains__(self, name: object) -> bool:
        return name in self._stages
