"""User alert listing and administrative alert endpoints."""

import logging
import math

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.db import repository
from app.db.session import get_db, get_sync_db_dependency
from app.deps import get_scheduler, get_sweeper
from app.routes.dates import to_http_error
from app.schemas.api import (
    AlertResponse,
    AlertStatsResponse,
    ContractDateResponse,
    ForceAlertRequest,
    SweepResponse,
    UpcomingAlertResponse,
    WorkflowStartedResponse,
)
from app.services.errors import AlertError
from app.services.scheduler import AlertScheduler
from app.services.sweeper import CleanupSweeper
from worker.workflows import DispatchAlertsWorkflow, ProcessContractDatesWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["alerts"])
admin_router = APIRouter(prefix="/api/admin/alerts", tags=["admin"])


def _temporal(request: Request):
    temporal = getattr(request.app.state, "temporal", None)
    if temporal is None:
        raise HTTPException(status_code=503, detail="Workflow service unavailable")
    return temporal


@router.get("/users/{user_id}/alerts/upcoming", response_model=list[UpcomingAlertResponse])
def user_upcoming_alerts(
    user_id: str,
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_sync_db_dependency),
):
    """Pending alerts that fire within the next ``days`` days."""
    now = utcnow()
    return [
        UpcomingAlertResponse(
            contract_id=contract.id,
            contract_type=contract.contract_type,
            alert=AlertResponse.model_validate(alert),
            date=ContractDateResponse.model_validate(contract_date),
            days_until_alert=math.ceil((alert.scheduled_at - now).total_seconds() / 86400),
        )
        for alert, contract_date, contract in repository.user_upcoming_alerts(db, user_id, now, days)
    ]


@admin_router.post("/process/{contract_id}", response_model=WorkflowStartedResponse, status_code=202)
async def process_contract(contract_id: str, request: Request):
    """Extract dates for a contract and schedule its alerts."""
    temporal = _temporal(request)
    workflow_id = f"contract-dates-{contract_id}"
    await temporal.start_workflow(
        ProcessContractDatesWorkflow.run,
        contract_id,
        id=workflow_id,
        task_queue=settings.WORKER_TASK_QUEUE,
    )
    logger.info("Started date processing workflow for contract %s", contract_id)
    return WorkflowStartedResponse(workflow_ids=[workflow_id])


@admin_router.post("/process-all", response_model=WorkflowStartedResponse, status_code=202)
async def process_all_contracts(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Start date processing for every contract that has no dates yet."""
    temporal = _temporal(request)
    result = await db.execute(repository.contracts_without_dates_query())
    workflow_ids = []
    for contract_id in result.scalars().all():
        workflow_id = f"contract-dates-{contract_id}"
        await temporal.start_workflow(
            ProcessContractDatesWorkflow.run,
            contract_id,
            id=workflow_id,
            task_queue=settings.WORKER_TASK_QUEUE,
        )
        workflow_ids.append(workflow_id)
    logger.info("Started date processing for %d contracts", len(workflow_ids))
    return WorkflowStartedResponse(workflow_ids=workflow_ids)


@admin_router.post("/check-now", response_model=WorkflowStartedResponse, status_code=202)
async def check_now(request: Request):
    """Trigger an immediate dispatcher run."""
    temporal = _temporal(request)
    workflow_id = f"date-alerts-dispatch-manual-{utcnow():%Y%m%dT%H%M%S}"
    await temporal.start_workflow(
        DispatchAlertsWorkflow.run,
        id=workflow_id,
        task_queue=settings.WORKER_TASK_QUEUE,
    )
    return WorkflowStartedResponse(workflow_ids=[workflow_id])


@admin_router.post("/force", response_model=AlertResponse, status_code=201)
def force_create_alert(
    body: ForceAlertRequest,
    db: Session = Depends(get_sync_db_dependency),
    scheduler: AlertScheduler = Depends(get_scheduler),
):
    """Create a fresh active alert, ignoring the horizon and past-offset rules."""
    try:
        alert = scheduler.force_create_alert(
            db,
            contract_id=body.contract_id,
            date_id=body.date_id,
            offset_days=body.offset_days,
        )
    except AlertError as e:
        raise to_http_error(e)
    return AlertResponse.model_validate(alert)


@admin_router.get("/stats", response_model=AlertStatsResponse)
def alert_stats(db: Session = Depends(get_sync_db_dependency)):
    return AlertStatsResponse(**repository.alert_stats(db, utcnow()))


@admin_router.post("/cleanup", response_model=SweepResponse)
def cleanup(
    db: Session = Depends(get_sync_db_dependency),
    sweeper: CleanupSweeper = Depends(get_sweeper),
):
    """Run the sweeper now."""
    report = sweeper.sweep(db)
    return SweepResponse(**report.__dict__)
