"""Tests for the extraction bridge and contract processing."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from app.db import repository
from app.db.models import ContractDate, DateAlert
from app.schemas.domain import Confidence, DateExtractionResult, DateType, ExtractedDate
from app.services.errors import ContractNotFoundError
from app.services.extraction import ExtractionBridge, parse_candidate_date, process_contract_for_dates
from app.services.scheduler import AlertScheduler
from tests.conftest import NOW


def _result(*dates):
    return DateExtractionResult(dates=list(dates))


def _candidate(date, confidence=Confidence.high, date_type=DateType.end_date):
    return ExtractedDate(
        date_type=date_type,
        date=date,
        description=f"{date_type.value} on {date}",
        clause="See section 4.",
        confidence=confidence,
    )


class TestParseCandidateDate:
    def test_iso_date(self):
        assert parse_candidate_date("2026-03-11") == datetime(2026, 3, 11)

    def test_aware_datetime_becomes_naive_utc(self):
        assert parse_candidate_date("2026-03-11T10:00:00+02:00") == datetime(2026, 3, 11, 8, 0)

    @pytest.mark.parametrize("value", ["", "next Tuesday", "2026-13-01", None])
    def test_unparsable(self, value):
        assert parse_candidate_date(value) is None


class TestExtractAndStore:
    def test_only_high_confidence_starts_active(self, db_session, contract):
        extractor = MagicMock(
            return_value=_result(
                _candidate("2026-03-11", Confidence.high),
                _candidate("2026-04-01", Confidence.medium, DateType.renewal_date),
                _candidate("2026-05-01", Confidence.low, DateType.review_date),
            )
        )

        stored = ExtractionBridge(extractor).extract_and_store(db_session, contract)

        extractor.assert_called_once_with(contract.contract_text, "service agreement")
        assert [d.is_active for d in stored] == [True, False, False]
        assert stored[0].date == datetime(2026, 3, 11)
        assert stored[0].source_clause == "See section 4."

    def test_extractor_failure_yields_no_dates(self, db_session, contract):
        extractor = MagicMock(side_effect=RuntimeError("LLM unavailable"))

        stored = ExtractionBridge(extractor).extract_and_store(db_session, contract)

        assert stored == []
        assert db_session.scalars(select(ContractDate)).all() == []

    def test_unparsable_candidate_skipped(self, db_session, contract):
        extractor = MagicMock(
            return_value=_result(_candidate("sometime in spring"), _candidate("2026-03-20"))
        )

        stored = ExtractionBridge(extractor).extract_and_store(db_session, contract)

        assert len(stored) == 1
        assert stored[0].date == datetime(2026, 3, 20)

    def test_empty_result(self, db_session, contract):
        stored = ExtractionBridge(MagicMock(return_value=_result())).extract_and_store(
            db_session, contract
        )
        assert stored == []


class TestProcessContractForDates:
    def test_extracts_then_schedules(self, db_session, contract):
        end = (NOW + timedelta(days=10)).date().isoformat()
        bridge = ExtractionBridge(MagicMock(return_value=_result(_candidate(end))))

        created = process_contract_for_dates(
            db_session, contract.id, bridge=bridge, scheduler=AlertScheduler(), now=NOW
        )
        db_session.commit()

        assert created == 3
        offsets = {a.offset_days for a in db_session.scalars(select(DateAlert))}
        assert offsets == {1, 3, 7}

    def test_medium_confidence_dates_get_no_alerts(self, db_session, contract):
        end = (NOW + timedelta(days=10)).date().isoformat()
        bridge = ExtractionBridge(MagicMock(return_value=_result(_candidate(end, Confidence.medium))))

        created = process_contract_for_dates(
            db_session, contract.id, bridge=bridge, scheduler=AlertScheduler(), now=NOW
        )

        assert created == 0
        assert len(db_session.scalars(select(ContractDate)).all()) == 1

    def test_existing_dates_skip_extraction(self, db_session, contract):
        repository.add_date(
            db_session,
            contract_id=contract.id,
            date_type=DateType.end_date,
            date=NOW + timedelta(days=10),
            description="Entered by hand",
        )
        db_session.commit()
        extractor = MagicMock()

        created = process_contract_for_dates(
            db_session,
            contract.id,
            bridge=ExtractionBridge(extractor),
            scheduler=AlertScheduler(),
            now=NOW,
        )

        extractor.assert_not_called()
        assert created == 3

    def test_unknown_contract(self, db_session):
        with pytest.raises(ContractNotFoundError):
            process_contract_for_dates(
                db_session,
                "missing",
                bridge=ExtractionBridge(MagicMock()),
                scheduler=AlertScheduler(),
                now=NOW,
            )
