import json
import logging
from datetime import date
from pathlib import Path
from typing import Any

from capacity_sim.pipeline.core import (
    Order,
    OrderQueueSnapshot,
    Priority,
    ResourcePool,
    Stage,
    StageRequirement,
)
from capacity_sim.pipeline.model import StageModel

logger = logging.getLogger(__name__)

# Stand-ins for unreadable day counts; the simulator rejects both
INVALID_DURATION_DAYS = 0
INVALID_ELAPSED_DAYS = -1


def _load_json_object(final_path: Path) -> dict[str, Any]:
    with open(final_path) as f:
        data = json.load(f)
        if not isinstance(data, dict):
            raise TypeError(f"Expected dict from {final_path}, got {type(data)}")
        return data


def load_capacity_config(config_path: str | None = None) -> dict[str, Any]:
    """
    Loads the capacity analysis runtime configuration.
    If no path is provided, looks for capacity_config.json in the config directory.
    """
    if config_path is None:
        # Default to the file next to this script
        final_path = Path(__file__).parent / "capacity_config.json"
    else:
        final_path = Path(config_path)

    return _load_json_object(final_path)


def load_snapshot(
    snapshot_path: str | None = None, config: dict[str, Any] | None = None
) -> tuple[StageModel, OrderQueueSnapshot]:
    """
    Loads a stage pipeline and order queue exported by the production store.
    If no path is provided, uses the bundled sample_snapshot.json.
    """
    if snapshot_path is None:
        final_path = Path(__file__).parent / "sample_snapshot.json"
    else:
        final_path = Path(snapshot_path)

    payload = _load_json_object(final_path)
    if config is None:
        config = load_capacity_config()

    stage_model = build_stage_model(payload.get("stages", []), config)
    snapshot = build_snapshot(payload, stage_model, config)
    return stage_model, snapshot


def _parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    # Accept full ISO timestamps, keep the calendar day
    return date.fromisoformat(str(value)[:10])


def _whole_days(value: Any) -> int | None:
    """A whole number of days, or None when the value is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _elapsed_days(row: dict[str, Any]) -> int:
    raw = row.get("elapsed_days", 0)
    days = _whole_days(raw)
    if days is None:
        logger.warning("Unreadable elapsed_days %r for order %s", raw, row.get("id"))
        return INVALID_ELAPSED_DAYS
    return days


def build_stage_model(
    rows: list[dict[str, Any]], config: dict[str, Any]
) -> StageModel:
    """
    Build the pipeline from stage rows.

    Rows without an explicit max_capacity fall back to the per-name defaults
    in the config, then to default_stage_capacity.
    """
    capacities = config.get("default_stage_capacities", {})
    fallback_capacity = int(config.get("default_stage_capacity", 10))
    default_duration = int(config.get("default_duration_days", 3))

    model = StageModel()
    for row in rows:
        name = str(row["name"])
        max_capacity = row.get("max_capacity")
        if max_capacity is None:
            max_capacity = capacities.get(name, fallback_capacity)
        model.add_stage(
            Stage(
                name=name,
                order=int(row["stage_order"]),
                max_capacity=int(max_capacity),
                target_duration_days=int(
                    row.get("target_duration") or default_duration
                ),
            )
        )
    return model


def _build_requirements(
    rows: list[dict[str, Any]], stage_model: StageModel, default_duration: int
) -> tuple[StageRequirement, ...]:
    requirements = []
    for row in rows:
        stage_name = str(row.get("stage", ""))
        duration = row.get("duration_days")
        if duration is None:
            # Unknown stages keep the global default; the simulator rejects them
            stage = stage_model.get_stage(stage_name)
            duration = stage.target_duration_days if stage else default_duration
        days = _whole_days(duration)
        if days is None:
            logger.warning(
                "Unreadable duration %r for stage %s", duration, stage_name
            )
            days = INVALID_DURATION_DAYS
        requirements.append(StageRequirement(stage_name, days))
    return tuple(requirements)


def build_snapshot(
    payload: dict[str, Any], stage_model: StageModel, config: dict[str, Any]
) -> OrderQueueSnapshot:
    """
    Build an immutable order snapshot from raw records.

    Malformed stage lists are passed through untouched so the simulator can
    reject and count them. Unreadable day counts become values the simulator
    rejects, so one bad row never aborts the load.
    """
    default_duration = int(config.get("default_duration_days", 3))

    orders = []
    for row in payload.get("orders", []):
        orders.append(
            Order(
                id=str(row["id"]),
                priority=Priority.parse(row.get("priority")),
                deadline=_parse_date(row.get("deadline")),
                required_stages=_build_requirements(
                    row.get("stages") or [], stage_model, default_duration
                ),
                order_number=str(row.get("order_number") or ""),
                customer_name=str(row.get("customer_name") or ""),
                in_progress=bool(row.get("in_progress", False)),
                elapsed_days=_elapsed_days(row),
            )
        )

    resources = tuple(
        ResourcePool(
            resource_type=str(r["resource_type"]),
            allocated=float(r["allocated"]),
            available=float(r["available"]),
        )
        for r in payload.get("resources", [])
    )

    as_of = _parse_date(payload.get("as_of"))
    if as_of is None:
        raise ValueError("Snapshot is missing its as_of date")

    return OrderQueueSnapshot(as_of=as_of, orders=tuple(orders), resources=resources)
