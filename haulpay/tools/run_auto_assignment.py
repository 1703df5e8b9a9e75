"""Run the scheduled auto-assignment sweep once.

Usage:
    python -m haulpay.tools.run_auto_assignment
    python -m haulpay.tools.run_auto_assignment --org acme   # one org, ignores the schedule
    python -m haulpay.tools.run_auto_assignment --now-ms 1717200000000
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from haulpay.adapters.persistence.database import async_session_factory, engine
from haulpay.adapters.persistence.repositories import SqlRouteAssignmentRepository
from haulpay.application.use_cases.auto_assignment import (
    RunScheduledAutoAssignmentUseCase,
    SweepResult,
)
from haulpay.config import settings
from haulpay.infrastructure.api.dependencies import build_sweep

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


async def run(org_id: str | None = None, now_ms: int | None = None) -> list[SweepResult]:
    async with async_session_factory() as session:
        sweep = build_sweep(session)
        if org_id is not None:
            results = [await sweep.execute(org_id)]
        else:
            scheduled = RunScheduledAutoAssignmentUseCase(
                route_repo=SqlRouteAssignmentRepository(session),
                sweep=sweep,
                default_interval_minutes=settings.auto_assign_default_interval_minutes,
            )
            results = await scheduled.execute(now_ms)
        await session.commit()
    await engine.dispose()
    return results


def main():
    parser = argparse.ArgumentParser(description="Run the HaulPay auto-assignment sweep")
    parser.add_argument(
        "--org", type=str, default=None,
        help="Sweep a single organization now, regardless of its schedule",
    )
    parser.add_argument(
        "--now-ms", type=int, default=None,
        help="Override the current time (epoch milliseconds)",
    )
    args = parser.parse_args()

    results = asyncio.run(run(args.org, args.now_ms))
    if not results:
        logger.info("No organizations due for auto-assignment")
    for r in results:
        logger.info(
            "%s: %d assigned, %d skipped, %d errors", r.org_id, r.assigned, r.skipped, r.errors
        )


if __name__ == "__main__":
    main()
