"""Resource allocation figures: allocated vs. available per resource type."""

import math
from dataclasses import dataclass
from typing import Any

from capacity_sim.pipeline.core import ResourcePool

# Decimal places kept before rounding allocations up (float noise guard)
_CEIL_PRECISION = 6


@dataclass(frozen=True)
class ResourceAllocation:
    resource_type: str
    allocated: float
    available: float
    efficiency: float  # allocated / available, percent


def allocation_efficiency(allocated: float, available: float) -> float:
    """Direct ratio in percent, one decimal; nothing available reports 0.0."""
    if available <= 0:
        return 0.0
    return round(allocated / available * 100, 1)


def from_pools(pools: tuple[ResourcePool, ...]) -> list[ResourceAllocation]:
    return [
        ResourceAllocation(
            resource_type=p.resource_type,
            allocated=p.allocated,
            available=p.available,
            efficiency=allocation_efficiency(p.allocated, p.available),
        )
        for p in pools
    ]


def estimate_allocation(
    active_orders: int, resource_config: list[dict[str, Any]]
) -> list[ResourceAllocation]:
    """
    Derive allocation from the number of orders holding a stage slot.

    Each configured resource type consumes ``units_per_order`` for every
    active order, rounded up to whole units.
    """
    allocations = []
    for entry in resource_config:
        available = float(entry.get("available", 0))
        per_order = float(entry.get("units_per_order", 1.0))
        allocated = float(math.ceil(round(active_orders * per_order, _CEIL_PRECISION)))
        allocations.append(
            ResourceAllocation(
                resource_type=str(entry["resource_type"]),
                allocated=allocated,
                available=available,
                efficiency=allocation_efficiency(allocated, available),
            )
        )
    return allocations
