"""
Content hashing for input snapshots.

The analysis service caches results per snapshot. Cache keys are derived from
the content of the stage pipeline and the order queue, never from wall-clock
time, so repeated requests against the same data hit the same entry.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from capacity_sim.pipeline.core import Order, OrderQueueSnapshot, ResourcePool, Stage
from capacity_sim.pipeline.model import StageModel


def serialize_stage(stage: Stage) -> dict[str, Any]:
    """Serialize a Stage to a JSON-compatible dict."""
    return {
        "name": stage.name,
        "stage_order": stage.order,
        "max_capacity": stage.max_capacity,
        "target_duration": stage.target_duration_days,
    }


def serialize_order(order: Order) -> dict[str, Any]:
    """Serialize an Order to a JSON-compatible dict."""
    return {
        "id": order.id,
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "priority": order.priority.value,
        "deadline": order.deadline.isoformat() if order.deadline else None,
        "in_progress": order.in_progress,
        "elapsed_days": order.elapsed_days,
        "stages": [
            {"stage": req.stage_name, "duration_days": req.duration_days}
            for req in order.required_stages
        ],
    }


def serialize_resource(pool: ResourcePool) -> dict[str, Any]:
    return {
        "resource_type": pool.resource_type,
        "allocated": pool.allocated,
        "available": pool.available,
    }


def compute_snapshot_hash(
    stage_model: StageModel, snapshot: OrderQueueSnapshot
) -> str:
    """
    Compute a hash of the analysis inputs.

    Orders are hashed in id order so that the same queue delivered in a
    different sequence maps to the same key.

    Returns:
        16-character hex hash string
    """
    payload = {
        "as_of": snapshot.as_of.isoformat(),
        "stages": [serialize_stage(s) for s in stage_model.stages],
        "orders": [
            serialize_order(o) for o in sorted(snapshot.orders, key=lambda o: o.id)
        ],
        "resources": [serialize_resource(r) for r in snapshot.resources],
    }
    # Serialize deterministically (sorted keys)
    payload_str = json.dumps(payload, sort_keys=True)
    return hashlib.sha256(payload_str.encode()).hexdigest()[:16]
