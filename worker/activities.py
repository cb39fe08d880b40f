"""Temporal Activities for the contract date alert engine.

This module contains the activities executed by the worker:
- reconcile_alerts: create missing alerts for dates inside the horizon
- dispatch_due_alerts: claim, send and confirm every due alert
- sweep_expired_dates: delete past dates together with their alerts
- process_contract_dates: extract dates for one contract, then reconcile it
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from temporalio import activity

from app.core.config import settings
from app.db.session import get_sync_db
from app.deps import claim_ttl, get_extraction_bridge, get_notifier, get_scheduler, get_sweeper
from app.services.dispatcher import AlertDispatcher
from app.services.extraction import process_contract_for_dates

logger = logging.getLogger(__name__)


@activity.defn
def reconcile_alerts() -> int:
    """Bring the alert set of every contract up to date.

    Returns:
        Number of alerts created.
    """
    with get_sync_db() as db:
        created = get_scheduler().reconcile(db)
    logger.info("Reconciliation pass created %d alerts", created)
    return created


@activity.defn
def dispatch_due_alerts() -> dict[str, Any]:
    """Send every due alert exactly once.

    Each alert is claimed in its own transaction before the notifier is
    called, so overlapping runs and multiple workers cannot double-send.

    Returns:
        Dict form of the DispatchReport.
    """
    dispatcher = AlertDispatcher(
        get_notifier(),
        session_scope=get_sync_db,
        timeout_s=settings.NOTIFIER_TIMEOUT_S,
        max_attempts=settings.ALERT_MAX_ATTEMPTS,
        claim_ttl=claim_ttl(),
    )
    try:
        return asdict(dispatcher.run_once())
    finally:
        dispatcher.close()


@activity.defn
def sweep_expired_dates() -> dict[str, Any]:
    """Delete contract dates that are in the past, with their alerts."""
    with get_sync_db() as db:
        report = get_sweeper().sweep(db)
    return asdict(report)


@activity.defn
def process_contract_dates(contract_id: str) -> int:
    """Run date extraction and reconciliation for one freshly analyzed contract.

    Args:
        contract_id: UUID of the contract.

    Returns:
        Number of alerts created.

    Raises:
        ContractNotFoundError: If the contract does not exist.
    """
    with get_sync_db() as db:
        created = process_contract_for_dates(
            db,
            contract_id,
            bridge=get_extraction_bridge(),
            scheduler=get_scheduler(),
        )
    logger.info("Processed contract %s for dates: %d alerts created", contract_id, created)
    return created


__all__ = [
    "dispatch_due_alerts",
    "process_contract_dates",
    "reconcile_alerts",
    "sweep_expired_dates",
]
