"""API request/response models for contract date and alert endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.domain import DateType


class AlertResponse(BaseModel):
    """One reminder alert."""

    id: str
    contract_date_id: str
    offset_days: int
    scheduled_at: datetime
    is_active: bool
    dispatched: bool
    dispatched_at: Optional[datetime] = None
    attempts: int = 0

    model_config = {"from_attributes": True}


class ContractDateResponse(BaseModel):
    """A contract date with its alerts."""

    id: str
    contract_id: str
    date_type: DateType
    date: datetime
    description: str
    source_clause: str
    is_active: bool
    alerts: list[AlertResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class ContractDateCreate(BaseModel):
    date_type: DateType
    date: datetime
    description: str = Field(min_length=1)
    source_clause: str = ""


class ContractDateUpdate(BaseModel):
    date: Optional[datetime] = None
    description: Optional[str] = Field(default=None, min_length=1)
    is_active: Optional[bool] = None


class AlertToggleRequest(BaseModel):
    is_active: bool


class ForceAlertRequest(BaseModel):
    contract_id: str
    date_id: str
    offset_days: int


class UpcomingAlertResponse(BaseModel):
    """A pending alert for one of the user's contracts."""

    contract_id: str
    contract_type: str
    alert: AlertResponse
    date: ContractDateResponse
    days_until_alert: int


class AlertStatsResponse(BaseModel):
    total_active_alerts: int
    alerts_due_today: int
    alerts_due_this_week: int
    total_contracts_with_dates: int


class SweepResponse(BaseModel):
    dates_removed: int
    alerts_removed: int
    dangling_removed: int
    contracts_touched: int


class WorkflowStartedResponse(BaseModel):
    workflow_ids: list[str]
    status: str = "started"
