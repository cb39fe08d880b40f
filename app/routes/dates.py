"""Contract date and alert toggle endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, selectinload

from app.core.clock import to_naive_utc, utcnow
from app.db import repository
from app.db.models import Contract, ContractDate
from app.db.session import get_db, get_sync_db_dependency
from app.deps import get_scheduler
from app.schemas.api import (
    AlertResponse,
    AlertToggleRequest,
    ContractDateCreate,
    ContractDateResponse,
    ContractDateUpdate,
)
from app.services.errors import (
    AlertError,
    ContractDateNotFoundError,
    ContractNotFoundError,
    InvalidOffsetError,
)
from app.services.scheduler import AlertScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contracts", tags=["dates"])


def to_http_error(exc: AlertError) -> HTTPException:
    """Map a domain error to an HTTP error."""
    if isinstance(exc, (ContractNotFoundError, ContractDateNotFoundError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidOffsetError):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=409, detail=str(exc))


def _require_date(db: Session, contract_id: str, date_id: str) -> ContractDate:
    contract_date = repository.get_date(db, date_id)
    if contract_date is None or contract_date.contract_id != contract_id:
        raise to_http_error(ContractDateNotFoundError(contract_id, date_id))
    return contract_date


@router.get("/{contract_id}/dates", response_model=list[ContractDateResponse])
async def list_dates(contract_id: str, db: AsyncSession = Depends(get_db)):
    """All dates of a contract with their alerts, soonest first."""
    result = await db.execute(select(Contract.id).where(Contract.id == contract_id))
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Contract not found")

    result = await db.execute(
        select(ContractDate)
        .where(ContractDate.contract_id == contract_id)
        .options(selectinload(ContractDate.alerts))
        .order_by(ContractDate.date)
    )
    return [ContractDateResponse.model_validate(d) for d in result.scalars().all()]


@router.get("/{contract_id}/dates/upcoming", response_model=list[ContractDateResponse])
def upcoming_dates(
    contract_id: str,
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_sync_db_dependency),
):
    """Active dates within the next ``days`` days."""
    contract = repository.get_contract(db, contract_id)
    if contract is None:
        raise HTTPException(status_code=404, detail="Contract not found")
    return [
        ContractDateResponse.model_validate(d)
        for d in repository.upcoming_dates(contract, utcnow(), days_ahead=days)
    ]


@router.post("/{contract_id}/dates", response_model=ContractDateResponse, status_code=201)
def add_date(
    contract_id: str,
    body: ContractDateCreate,
    db: Session = Depends(get_sync_db_dependency),
):
    """Add a date by hand. Alerts follow on the next reconciliation pass."""
    if repository.get_contract(db, contract_id) is None:
        raise HTTPException(status_code=404, detail="Contract not found")

    contract_date = repository.add_date(
        db,
        contract_id=contract_id,
        date_type=body.date_type,
        date=to_naive_utc(body.date),
        description=body.description,
        source_clause=body.source_clause,
    )
    logger.info("Added %s date %s to contract %s", body.date_type.value, contract_date.id, contract_id)
    return ContractDateResponse.model_validate(contract_date)


@router.patch("/{contract_id}/dates/{date_id}", response_model=ContractDateResponse)
def update_date(
    contract_id: str,
    date_id: str,
    body: ContractDateUpdate,
    db: Session = Depends(get_sync_db_dependency),
):
    """Edit a date; unsent alerts are rescheduled when the date moves."""
    contract_date = _require_date(db, contract_id, date_id)
    repository.update_date(
        db,
        contract_date,
        date=to_naive_utc(body.date) if body.date is not None else None,
        description=body.description,
        is_active=body.is_active,
    )
    return ContractDateResponse.model_validate(contract_date)


@router.delete("/{contract_id}/dates/{date_id}", status_code=204)
def delete_date(
    contract_id: str,
    date_id: str,
    db: Session = Depends(get_sync_db_dependency),
):
    """Delete a date and all of its alerts."""
    if not repository.remove_date(db, contract_id=contract_id, date_id=date_id):
        raise HTTPException(status_code=404, detail="Contract date not found")
    logger.info("Removed date %s from contract %s", date_id, contract_id)


@router.put(
    "/{contract_id}/dates/{date_id}/alerts/{offset_days}",
    response_model=AlertResponse,
)
def toggle_alert(
    contract_id: str,
    date_id: str,
    offset_days: int,
    body: AlertToggleRequest,
    db: Session = Depends(get_sync_db_dependency),
    scheduler: AlertScheduler = Depends(get_scheduler),
):
    """Enable or disable the reminder ``offset_days`` before a date."""
    try:
        alert = scheduler.toggle_alert(
            db,
            contract_id=contract_id,
            date_id=date_id,
            offset_days=offset_days,
            is_active=body.is_active,
        )
    except AlertError as e:
        raise to_http_error(e)
    return AlertResponse.model_validate(alert)
