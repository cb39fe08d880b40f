"""Temporal Worker entry point.

This worker polls the date-alerts queue for workflow and activity tasks and
makes sure the periodic dispatch/reconcile/sweep schedules exist.
"""
import asyncio
import logging
import signal
from concurrent.futures import ThreadPoolExecutor

from temporalio.client import Client
from temporalio.worker import Worker

from worker.activities import (
    dispatch_due_alerts,
    process_contract_dates,
    reconcile_alerts,
    sweep_expired_dates,
)
from worker.config import WorkerSettings
from worker.schedules import ensure_schedules
from worker.workflows import (
    DispatchAlertsWorkflow,
    ProcessContractDatesWorkflow,
    ReconcileAlertsWorkflow,
    SweepExpiredDatesWorkflow,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger("worker")


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    """Install signal handlers for graceful shutdown."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:  # pragma: no cover - Windows
            signal.signal(sig, lambda *_: stop_event.set())


async def run_worker() -> None:
    """Run the Temporal worker."""
    settings = WorkerSettings()

    logger.info("Starting worker: %r", settings)

    client = await Client.connect(
        settings.TEMPORAL_ADDRESS,
        namespace=settings.TEMPORAL_NAMESPACE
    )

    if settings.CREATE_SCHEDULES:
        await ensure_schedules(client, settings)

    # Thread pool for sync activities
    activity_executor = ThreadPoolExecutor(max_workers=settings.ACTIVITY_MAX_WORKERS)

    worker = Worker(
        client,
        task_queue=settings.WORKER_TASK_QUEUE,
        workflows=[
            DispatchAlertsWorkflow,
            ReconcileAlertsWorkflow,
            SweepExpiredDatesWorkflow,
            ProcessContractDatesWorkflow,
        ],
        activities=[
            dispatch_due_alerts,
            reconcile_alerts,
            sweep_expired_dates,
            process_contract_dates,
        ],
        activity_executor=activity_executor,
    )

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    logger.info("Worker running, polling for tasks...")
    worker_task = asyncio.create_task(worker.run())

    await stop_event.wait()
    logger.info("Shutdown signal received, stopping worker...")

    worker_task.cancel()
    await asyncio.gather(worker_task, return_exceptions=True)
    activity_executor.shutdown(wait=True)
    logger.info("Worker stopped")


def main() -> None:
    """Main entry point."""
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
