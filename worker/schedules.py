"""Temporal Schedules for the periodic alert workflows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from temporalio.client import (
    Client,
    Schedule,
    ScheduleActionStartWorkflow,
    ScheduleAlreadyRunningError,
    ScheduleIntervalSpec,
    ScheduleOverlapPolicy,
    SchedulePolicy,
    ScheduleSpec,
)

from worker.config import WorkerSettings
from worker.workflows import (
    DispatchAlertsWorkflow,
    ReconcileAlertsWorkflow,
    SweepExpiredDatesWorkflow,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeriodicRun:
    schedule_id: str
    workflow_run: Any
    every: timedelta


def periodic_runs(settings: WorkerSettings) -> list[PeriodicRun]:
    return [
        PeriodicRun(
            "date-alerts-dispatch",
            DispatchAlertsWorkflow.run,
            timedelta(minutes=settings.DISPATCH_INTERVAL_MINUTES),
        ),
        PeriodicRun(
            "date-alerts-reconcile",
            ReconcileAlertsWorkflow.run,
            timedelta(hours=settings.RECONCILE_INTERVAL_HOURS),
        ),
        PeriodicRun(
            "date-alerts-sweep",
            SweepExpiredDatesWorkflow.run,
            timedelta(hours=settings.SWEEP_INTERVAL_HOURS),
        ),
    ]


def build_schedule(run: PeriodicRun, task_queue: str) -> Schedule:
    """Interval schedule; a run still in progress makes the next one skip."""
    return Schedule(
        action=ScheduleActionStartWorkflow(
            run.workflow_run,
            id=f"{run.schedule_id}-run",
            task_queue=task_queue,
        ),
        spec=ScheduleSpec(intervals=[ScheduleIntervalSpec(every=run.every)]),
        policy=SchedulePolicy(overlap=ScheduleOverlapPolicy.SKIP),
    )


async def ensure_schedules(client: Client, settings: WorkerSettings) -> list[str]:
    """Create the periodic schedules that do not exist yet."""
    created: list[str] = []
    for run in periodic_runs(settings):
        try:
            await client.create_schedule(
                run.schedule_id,
                build_schedule(run, settings.WORKER_TASK_QUEUE),
            )
            created.append(run.schedule_id)
            logger.info("Created schedule %s (every %s)", run.schedule_id, run.every)
        except ScheduleAlreadyRunningError:
            logger.info("Schedule %s already exists", run.schedule_id)
    return created


__all__ = ["PeriodicRun", "build_schedule", "ensure_schedules", "periodic_runs"]
