"""
Production Capacity Analysis Runner.

Usage:
    poetry run python run_analysis.py                              # Sample snapshot, month
    poetry run python run_analysis.py --period quarter             # 90-day horizon
    poetry run python run_analysis.py --snapshot data/snapshot.json --output out.json
"""

import argparse
import json
import time
from datetime import date

from capacity_sim.config.loader import load_capacity_config, load_snapshot
from capacity_sim.errors import ConfigurationError
from capacity_sim.service.capacity_analysis import (
    CapacityAnalysisResult,
    CapacityAnalysisService,
    PlanningPeriod,
)


def main() -> None:
    """Run a capacity analysis over a production snapshot."""
    parser = argparse.ArgumentParser(
        description="Production Capacity Analysis Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  poetry run python run_analysis.py --period week
  poetry run python run_analysis.py --snapshot snapshot.json --start-date 2025-03-03
        """,
    )

    parser.add_argument(
        "--snapshot",
        type=str,
        default=None,
        help="Snapshot JSON with stages and orders (default: bundled sample)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Capacity config JSON (default: bundled capacity_config.json)",
    )
    parser.add_argument(
        "--period",
        type=str,
        choices=[p.value for p in PlanningPeriod],
        default=PlanningPeriod.MONTH.value,
        help="Planning period (default: month)",
    )
    parser.add_argument(
        "--start-date",
        type=date.fromisoformat,
        default=None,
        help="Day 0 of the simulation (default: the snapshot's as_of date)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the result JSON to this file instead of stdout",
    )

    args = parser.parse_args()

    config = load_capacity_config(args.config)

    try:
        stage_model, snapshot = load_snapshot(args.snapshot, config)
    except ConfigurationError as exc:
        result = CapacityAnalysisResult.empty(str(exc), args.period, 0)
    else:
        print(
            f"Analyzing {len(snapshot.orders)} orders across "
            f"{len(stage_model)} stages (Period={args.period})..."
        )
        start_time = time.time()
        service = CapacityAnalysisService(stage_model, snapshot, config)
        result = service.get_analysis(args.period, args.start_date)
        print(f"Analysis completed in {time.time() - start_time:.2f} seconds.")

    payload = json.dumps(result.to_dict(), indent=2)
    if args.output:
        with open(args.output, "w") as f:
            f.write(payload)
        print(f"Result saved to {args.output}")
    else:
        print(payload)

    if result.recommendations:
        print("\nRecommendations:")
        for recommendation in result.recommendations:
            print(f"  [{recommendation.severity.value.upper()}] {recommendation.message}")


if __name__ == "__main__":
    main()
