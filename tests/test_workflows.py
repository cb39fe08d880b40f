"""Tests for Temporal workflows of the date alert engine."""

from __future__ import annotations

from uuid import uuid4

import pytest
from temporalio import activity
from temporalio.client import WorkflowFailureError
from temporalio.testing import WorkflowEnvironment
from temporalio.worker import Worker

from app.services.errors import ContractNotFoundError
from worker.workflows import (
    DispatchAlertsWorkflow,
    ProcessContractDatesWorkflow,
    ReconcileAlertsWorkflow,
    SweepExpiredDatesWorkflow,
)

# Track activity calls for verification
activity_calls: list[tuple[str, tuple]] = []


@activity.defn(name="dispatch_due_alerts")
async def mock_dispatch_due_alerts() -> dict:
    activity_calls.append(("dispatch_due_alerts", ()))
    return {"due": 2, "sent": 1, "skipped": 1, "failed": 0, "sent_alert_ids": ["a-1"]}


@activity.defn(name="reconcile_alerts")
async def mock_reconcile_alerts() -> int:
    activity_calls.append(("reconcile_alerts", ()))
    return 4


@activity.defn(name="sweep_expired_dates")
async def mock_sweep_expired_dates() -> dict:
    activity_calls.append(("sweep_expired_dates", ()))
    return {"dates_removed": 2, "alerts_removed": 5, "dangling_removed": 0, "contracts_touched": 1}


@activity.defn(name="process_contract_dates")
async def mock_process_contract_dates(contract_id: str) -> int:
    activity_calls.append(("process_contract_dates", (contract_id,)))
    return 3


@activity.defn(name="process_contract_dates")
async def missing_contract_dates(contract_id: str) -> int:
    activity_calls.append(("process_contract_dates", (contract_id,)))
    raise ContractNotFoundError(contract_id)


async def _run(workflow_cls, activities, *args):
    async with await WorkflowEnvironment.start_time_skipping() as env:
        async with Worker(
            env.client,
            task_queue="test-queue",
            workflows=[workflow_cls],
            activities=activities,
        ):
            return await env.client.execute_workflow(
                workflow_cls.run,
                *args,
                id=f"test-workflow-{uuid4()}",
                task_queue="test-queue",
            )


class TestAlertWorkflows:
    @pytest.fixture(autouse=True)
    def reset_activity_calls(self):
        activity_calls.clear()

    @pytest.mark.asyncio
    async def test_dispatch_workflow_returns_report(self):
        result = await _run(DispatchAlertsWorkflow, [mock_dispatch_due_alerts])

        assert result["sent"] == 1
        assert result["sent_alert_ids"] == ["a-1"]
        assert activity_calls == [("dispatch_due_alerts", ())]

    @pytest.mark.asyncio
    async def test_reconcile_workflow_returns_created_count(self):
        assert await _run(ReconcileAlertsWorkflow, [mock_reconcile_alerts]) == 4

    @pytest.mark.asyncio
    async def test_sweep_workflow_returns_report(self):
        result = await _run(SweepExpiredDatesWorkflow, [mock_sweep_expired_dates])
        assert result["dates_removed"] == 2

    @pytest.mark.asyncio
    async def test_process_contract_workflow(self):
        result = await _run(ProcessContractDatesWorkflow, [mock_process_contract_dates], "c-123")

        assert result == {"status": "completed", "contract_id": "c-123", "alerts_created": 3}
        assert activity_calls == [("process_contract_dates", ("c-123",))]

    @pytest.mark.asyncio
    async def test_missing_contract_is_not_retried(self):
        with pytest.raises(WorkflowFailureError):
            await _run(ProcessContractDatesWorkflow, [missing_contract_dates], "gone")

        assert activity_calls == [("process_contract_dates", ("gone",))]


class TestWorkflowDefinition:
    @pytest.mark.parametrize(
        "workflow_cls",
        [
            DispatchAlertsWorkflow,
            ReconcileAlertsWorkflow,
            SweepExpiredDatesWorkflow,
            ProcessContractDatesWorkflow,
        ],
    )
    def test_workflow_has_defn_decorator(self, workflow_cls):
        assert hasattr(workflow_cls, "__temporal_workflow_definition")
        assert callable(workflow_cls.run)
