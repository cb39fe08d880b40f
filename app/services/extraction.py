"""Extraction bridge: AI-extracted candidate dates -> stored ContractDates.

Only ``high`` confidence candidates start active (and so get scheduled);
``medium`` and ``low`` ones are stored inactive for the user to review.
Extractor failures never escape: the contract just ends up with no dates.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.core.clock import to_naive_utc
from app.db import repository
from app.db.models import Contract, ContractDate
from app.schemas.domain import Confidence, DateExtractionResult, ExtractedDate
from app.services.errors import ContractNotFoundError
from app.services.scheduler import AlertScheduler

logger = logging.getLogger(__name__)

Extractor = Callable[[str, str], DateExtractionResult]


def parse_candidate_date(value: str) -> Optional[datetime]:
    """Parse an ISO date or datetime; ``None`` if unparsable."""
    try:
        return to_naive_utc(datetime.fromisoformat(value.strip()))
    except (AttributeError, ValueError):
        return None


class ExtractionBridge:
    def __init__(self, extractor: Extractor):
        self.extractor = extractor

    def _extract(self, contract: Contract) -> list[ExtractedDate]:
        try:
            result = self.extractor(contract.contract_text, contract.contract_type)
        except Exception as e:
            logger.error("Date extraction failed for contract %s: %s", contract.id, e)
            return []
        if result is None or not result.dates:
            logger.info("No dates extracted for contract %s", contract.id)
            return []
        return list(result.dates)

    def extract_and_store(self, db: Session, contract: Contract) -> list[ContractDate]:
        """Run the extractor and store each usable candidate on the contract."""
        stored: list[ContractDate] = []
        for candidate in self._extract(contract):
            when = parse_candidate_date(candidate.date)
            if when is None:
                logger.warning(
                    "Skipping extracted date %r on contract %s: not an ISO date",
                    candidate.date,
                    contract.id,
                )
                continue
            stored.append(
                repository.add_date(
                    db,
                    contract_id=contract.id,
                    date_type=candidate.date_type,
                    date=when,
                    description=candidate.description,
                    source_clause=candidate.clause,
                    is_active=candidate.confidence == Confidence.high,
                )
            )

        if stored:
            logger.info(
                "Extracted and saved %d dates for contract %s (%d active)",
                len(stored),
                contract.id,
                sum(1 for d in stored if d.is_active),
            )
        return stored


def process_contract_for_dates(
    db: Session,
    contract_id: str,
    *,
    bridge: ExtractionBridge,
    scheduler: AlertScheduler,
    now: Optional[datetime] = None,
) -> int:
    """Extract dates for a freshly analyzed contract, then reconcile its alerts.

    Extraction only runs when the contract has no dates yet. Returns the
    number of alerts created.
    """
    contract = repository.get_contract(db, contract_id)
    if contract is None:
        raise ContractNotFoundError(contract_id)

    if not contract.dates:
        bridge.extract_and_store(db, contract)

    return scheduler.reconcile(db, contract_id=contract_id, now=now)


__all__ = ["Extractor", "ExtractionBridge", "parse_candidate_date", "process_contract_for_dates"]
