"""Alert scheduler: keeps the right set of reminder alerts in place.

Two policies live here on purpose:

- ``reconcile`` is conservative. It only creates alerts for active dates inside
  the horizon, never for an offset whose fire time has already passed, and it
  never touches an alert that exists (active, disabled or sent).
- ``toggle_alert`` is an explicit user action. It always upserts, so
  re-enabling an offset whose fire time has passed yields an alert that is due
  on the very next dispatcher pass.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.clock import Clock, utcnow
from app.db import repository
from app.db.models import ContractDate, DateAlert
from app.schemas.domain import REMINDER_OFFSETS
from app.services.errors import (
    AlertAlreadyDispatchedError,
    ContractDateNotFoundError,
    ContractNotFoundError,
    validate_offset,
)

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 90


class AlertScheduler:
    """Creates and toggles alerts for contract dates."""

    def __init__(self, horizon_days: int = DEFAULT_HORIZON_DAYS, clock: Clock = utcnow):
        self.horizon_days = horizon_days
        self._clock = clock

    def reconcile(
        self,
        db: Session,
        *,
        contract_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """Create missing alerts for active dates within the horizon.

        Idempotent: a second run with no state change creates nothing and
        rewrites no ``scheduled_at``. Returns the number of alerts created.
        """
        now = now or self._clock()
        created = 0

        for contract_date in repository.list_active_dates(
            db, now, self.horizon_days, contract_id=contract_id
        ):
            existing = {alert.offset_days for alert in contract_date.alerts}
            for offset in REMINDER_OFFSETS:
                if offset in existing:
                    continue
                candidate = repository.scheduled_time(contract_date.date, offset)
                if candidate < now:
                    continue
                repository.upsert_alert(db, contract_date, offset, is_active=True)
                created += 1
                logger.info(
                    "Created alert %dd before %s on contract %s (scheduled %s)",
                    offset,
                    contract_date.id,
                    contract_date.contract_id,
                    candidate.isoformat(),
                )

        if created:
            logger.info("Reconciliation created %d alerts", created)
        return created

    def _require_date(self, db: Session, contract_id: str, date_id: str) -> ContractDate:
        if repository.get_contract(db, contract_id) is None:
            raise ContractNotFoundError(contract_id)
        contract_date = repository.get_date(db, date_id)
        if contract_date is None or contract_date.contract_id != contract_id:
            raise ContractDateNotFoundError(contract_id, date_id)
        return contract_date

    def toggle_alert(
        self,
        db: Session,
        *,
        contract_id: str,
        date_id: str,
        offset_days: int,
        is_active: bool,
    ) -> DateAlert:
        """Enable or disable one reminder offset for a date."""
        offset_days = validate_offset(offset_days)
        contract_date = self._require_date(db, contract_id, date_id)

        alert = repository.upsert_alert(db, contract_date, offset_days, is_active=is_active)
        logger.info(
            "Alert %dd before %s on contract %s set active=%s (scheduled %s)",
            offset_days,
            date_id,
            contract_id,
            is_active,
            alert.scheduled_at.isoformat(),
        )
        return alert

    def force_create_alert(
        self,
        db: Session,
        *,
        contract_id: str,
        date_id: str,
        offset_days: int,
    ) -> DateAlert:
        """Replace the alert for ``(date, offset)`` with a fresh active one.

        Operational/testing hook: ignores the horizon and the past-offset skip.
        A sent alert is never reset.
        """
        offset_days = validate_offset(offset_days)
        contract_date = self._require_date(db, contract_id, date_id)

        existing = repository.get_alert(db, date_id, offset_days)
        if existing is not None:
            if existing.dispatched:
                raise AlertAlreadyDispatchedError(date_id, offset_days)
            contract_date.alerts.remove(existing)
            db.flush()

        alert = repository.upsert_alert(db, contract_date, offset_days, is_active=True)
        logger.info(
            "Force-created alert %dd before %s on contract %s (scheduled %s)",
            offset_days,
            date_id,
            contract_id,
            alert.scheduled_at.isoformat(),
        )
        return alert


__all__ = ["AlertScheduler", "DEFAULT_HORIZON_DAYS"]
