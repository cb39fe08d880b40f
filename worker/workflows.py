"""Temporal Workflows for the contract date alert engine.

Three periodic workflows are started by Temporal Schedules (see
worker/schedules.py); ProcessContractDatesWorkflow is started on demand after
a contract analysis completes.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from worker.activities import (
        dispatch_due_alerts,
        process_contract_dates,
        reconcile_alerts,
        sweep_expired_dates,
    )


@workflow.defn
class DispatchAlertsWorkflow:
    """Send every due alert.

    Retrying the activity is safe: alerts already sent are no longer due and
    alerts claimed by a previous attempt are skipped until their claim expires.
    """

    @workflow.run
    async def run(self) -> dict:
        report = await workflow.execute_activity(
            dispatch_due_alerts,
            start_to_close_timeout=timedelta(minutes=30),
            retry_policy=RetryPolicy(
                maximum_attempts=3,
                initial_interval=timedelta(seconds=5),
                backoff_coefficient=2.0,
            ),
        )
        workflow.logger.info(
            f"Dispatch run: {report['sent']} sent, {report['skipped']} skipped, "
            f"{report['failed']} failed"
        )
        return report


@workflow.defn
class ReconcileAlertsWorkflow:
    """Create missing alerts for active dates inside the horizon."""

    @workflow.run
    async def run(self) -> int:
        created = await workflow.execute_activity(
            reconcile_alerts,
            start_to_close_timeout=timedelta(minutes=10),
            retry_policy=RetryPolicy(maximum_attempts=3),
        )
        workflow.logger.info(f"Reconciliation created {created} alerts")
        return created


@workflow.defn
class SweepExpiredDatesWorkflow:
    """Prune past contract dates and their alerts."""

    @workflow.run
    async def run(self) -> dict:
        report = await workflow.execute_activity(
            sweep_expired_dates,
            start_to_close_timeout=timedelta(minutes=10),
            retry_policy=RetryPolicy(maximum_attempts=3),
        )
        workflow.logger.info(f"Sweep removed {report['dates_removed']} dates")
        return report


@workflow.defn
class ProcessContractDatesWorkflow:
    """Extract dates for one contract and schedule its alerts."""

    @workflow.run
    async def run(self, contract_id: str) -> dict:
        workflow.logger.info(f"Processing contract {contract_id} for dates")

        created = await workflow.execute_activity(
            process_contract_dates,
            contract_id,
            start_to_close_timeout=timedelta(minutes=5),
            retry_policy=RetryPolicy(
                maximum_attempts=3,
                initial_interval=timedelta(seconds=2),
                backoff_coefficient=2.0,
                maximum_interval=timedelta(seconds=30),
                non_retryable_error_types=["ContractNotFoundError"],
            ),
        )

        return {
            "status": "completed",
            "contract_id": contract_id,
            "alerts_created": created,
        }


__all__ = [
    "DispatchAlertsWorkflow",
    "ProcessContractDatesWorkflow",
    "ReconcileAlertsWorkflow",
    "SweepExpiredDatesWorkflow",
]
