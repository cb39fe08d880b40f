"""Cleanup sweeper: prunes dates whose day has passed, with their alerts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.clock import Clock, utcnow
from app.db import repository

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    dates_removed: int = 0
    alerts_removed: int = 0
    dangling_removed: int = 0
    contracts_touched: int = 0


class CleanupSweeper:
    """Deletes ContractDates with ``date < now``; never touches future dates."""

    def __init__(self, clock: Clock = utcnow):
        self._clock = clock

    def sweep(self, db: Session, now: Optional[datetime] = None) -> SweepReport:
        now = now or self._clock()
        report = SweepReport()
        contracts: set[str] = set()

        for contract_date in repository.find_expired_dates(db, now):
            report.alerts_removed += len(contract_date.alerts)
            contracts.add(contract_date.contract_id)
            db.delete(contract_date)
            report.dates_removed += 1
        db.flush()

        report.dangling_removed = repository.delete_dangling_alerts(db)
        report.contracts_touched = len(contracts)

        logger.info(
            "Swept %d expired dates (%d alerts, %d dangling) across %d contracts",
            report.dates_removed,
            report.alerts_removed,
            report.dangling_removed,
            report.contracts_touched,
        )
        return report


__all__ = ["CleanupSweeper", "SweepReport"]
