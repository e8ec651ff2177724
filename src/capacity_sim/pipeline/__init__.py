"""Pipeline structure and order snapshot types."""

from capacity_sim.pipeline.core import (
    Order,
    OrderQueueSnapshot,
    Priority,
    ResourcePool,
    Stage,
    StageRequirement,
)
from capacity_sim.pipeline.model import StageModel

__all__ = [
    "Order",
    "OrderQueueSnapshot",
    "Priority",
    "ResourcePool",
    "Stage",
    "StageModel",
    "StageRequirement",
]
