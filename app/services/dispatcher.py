"""Alert dispatcher: fires due alerts exactly once each.

Each due alert goes through claim -> notify -> confirm/release, every step in
its own short transaction:

1. ``claim_alert`` is a conditional UPDATE that rechecks the alert is still
   due and unclaimed. Only one dispatcher run, on any instance, can win it.
2. The notifier is called outside any transaction, bounded by a timeout.
3. Success flips ``dispatched`` to true for the claim holder. Failure releases
   the claim so the next run retries; ``dispatched`` stays false.

A run that dies between claim and confirm leaves a claim that expires after
``claim_ttl``, after which the alert is due again.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from app.core.clock import Clock, utcnow
from app.db import repository
from app.db.models import DateAlert
from app.db.session import get_sync_db
from app.schemas.domain import DateAlertInfo
from app.services.notifier import Notifier

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractContextManager[Session]]


@dataclass
class DispatchReport:
    due: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    sent_alert_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _Delivery:
    recipient_email: str
    recipient_name: str
    contract_id: str
    contract_type: str
    info: DateAlertInfo


def days_until(date: datetime, now: datetime) -> int:
    """Whole days from ``now`` to ``date``, rounded up, never negative."""
    return max(0, math.ceil((date - now) / timedelta(days=1)))


class AlertDispatcher:
    """Polls for due alerts and hands them to the notifier."""

    def __init__(
        self,
        notifier: Notifier,
        *,
        session_scope: SessionScope = get_sync_db,
        clock: Clock = utcnow,
        timeout_s: float = 30.0,
        max_attempts: int = 0,
        claim_ttl: timedelta = timedelta(minutes=15),
    ):
        self.notifier = notifier
        self._session = session_scope
        self._clock = clock
        self.timeout_s = timeout_s
        self.max_attempts = max_attempts
        self.claim_ttl = claim_ttl
        self._executor: Optional[ThreadPoolExecutor] = None

    def run_once(self, now: Optional[datetime] = None) -> DispatchReport:
        """One dispatcher pass over every contract."""
        now = now or self._clock()
        report = DispatchReport()

        with self._session() as db:
            due_ids = [
                alert.id
                for alert in repository.find_due_alerts(
                    db, now, max_attempts=self.max_attempts, claim_ttl=self.claim_ttl
                )
            ]
        report.due = len(due_ids)
        logger.info("Dispatcher found %d due alerts at %s", report.due, now.isoformat())

        for alert_id in due_ids:
            outcome = self._dispatch_one(alert_id, now)
            if outcome == "sent":
                report.sent += 1
                report.sent_alert_ids.append(alert_id)
            elif outcome == "skipped":
                report.skipped += 1
            else:
                report.failed += 1

        logger.info(
            "Dispatcher run complete: %d sent, %d skipped, %d failed",
            report.sent,
            report.skipped,
            report.failed,
        )
        return report

    def _dispatch_one(self, alert_id: str, now: datetime) -> str:
        token = str(uuid4())

        with self._session() as db:
            claimed = repository.claim_alert(
                db, alert_id, token=token, now=now, claim_ttl=self.claim_ttl
            )
        if not claimed:
            logger.info("Alert %s already claimed or sent, skipping", alert_id)
            return "skipped"

        with self._session() as db:
            delivery = self._resolve(db, alert_id, now)

        if delivery is None:
            self._release(alert_id, token, "contract date or recipient missing")
            return "failed"

        try:
            self._notify_with_timeout(delivery)
        except FuturesTimeout:
            logger.warning("Notifier timed out after %.1fs for alert %s", self.timeout_s, alert_id)
            self._release(alert_id, token, f"notifier timed out after {self.timeout_s}s")
            return "failed"
        except Exception as e:
            logger.warning("Failed to send alert %s: %s", alert_id, e)
            self._release(alert_id, token, str(e) or type(e).__name__)
            return "failed"

        with self._session() as db:
            confirmed = repository.confirm_dispatch(db, alert_id, token=token, now=now)
        if not confirmed:
            # Claim expired and was taken over while the notifier was running
            logger.warning("Alert %s sent but claim was lost before confirmation", alert_id)
        logger.info(
            "Alert %s sent for contract %s (%s in %d days)",
            alert_id,
            delivery.contract_id,
            delivery.info.description,
            delivery.info.days_until,
        )
        return "sent"

    def _resolve(self, db: Session, alert_id: str, now: datetime) -> Optional[_Delivery]:
        alert = db.get(DateAlert, alert_id)
        if alert is None:
            return None
        contract_date = alert.contract_date
        if contract_date is None:
            logger.warning("Contract date not found for alert %s", alert_id)
            return None
        contract = contract_date.contract
        user = contract.user if contract is not None else None
        if user is None or not user.email:
            logger.warning("No recipient for contract %s, alert %s", contract_date.contract_id, alert_id)
            return None

        return _Delivery(
            recipient_email=user.email,
            recipient_name=user.display_name or user.email,
            contract_id=contract.id,
            contract_type=contract.contract_type,
            info=DateAlertInfo(
                date_type=contract_date.date_type,
                date=contract_date.date,
                description=contract_date.description,
                clause=contract_date.source_clause or None,
                days_until=days_until(contract_date.date, now),
            ),
        )

    def _notify_with_timeout(self, delivery: _Delivery) -> None:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="notifier")
        future = self._executor.submit(
            self.notifier.send_date_alert,
            delivery.recipient_email,
            delivery.recipient_name,
            delivery.contract_id,
            delivery.contract_type,
            delivery.info,
        )
        try:
            future.result(timeout=self.timeout_s)
        except FuturesTimeout:
            # The hung call keeps its thread; later alerts get a fresh one
            future.cancel()
            self._executor.shutdown(wait=False)
            self._executor = None
            raise

    def close(self) -> None:
        """Release the notifier thread without waiting on a hung delivery."""
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def _release(self, alert_id: str, token: str, error: str) -> None:
        with self._session() as db:
            repository.release_claim(db, alert_id, token=token, error=error)


__all__ = ["AlertDispatcher", "DispatchReport", "days_until"]
