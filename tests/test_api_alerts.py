"""Tests for user alert listing and admin alert endpoints."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from app.core.clock import utcnow
from app.db import repository
from app.db.models import ContractDate
from app.main import app
from app.schemas.domain import DateType
from worker.workflows import DispatchAlertsWorkflow, ProcessContractDatesWorkflow


@pytest.fixture
def end_date(db_session, contract):
    contract_date = repository.add_date(
        db_session,
        contract_id=contract.id,
        date_type=DateType.end_date,
        date=utcnow() + timedelta(days=10),
        description="Agreement ends",
    )
    db_session.commit()
    return contract_date


class TestUserUpcomingAlerts:
    def test_lists_pending_alerts(self, api_client, db_session, contract, end_date):
        repository.upsert_alert(db_session, end_date, 7, is_active=True)
        repository.upsert_alert(db_session, end_date, 1, is_active=False)
        db_session.commit()

        response = api_client.get(f"/api/users/{contract.user_id}/alerts/upcoming")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["contract_id"] == contract.id
        assert data[0]["contract_type"] == "service agreement"
        assert data[0]["alert"]["offset_days"] == 7
        assert data[0]["days_until_alert"] == 3
        assert data[0]["date"]["description"] == "Agreement ends"

    def test_unknown_user_has_none(self, api_client):
        response = api_client.get("/api/users/nobody/alerts/upcoming")
        assert response.status_code == 200
        assert response.json() == []


class TestProcessContracts:
    def test_process_contract_starts_workflow(self, api_client, mock_temporal):
        app.state.temporal = mock_temporal

        response = api_client.post("/api/admin/alerts/process/c-42")

        assert response.status_code == 202
        assert response.json() == {"workflow_ids": ["contract-dates-c-42"], "status": "started"}
        mock_temporal.start_workflow.assert_awaited_once()
        args, kwargs = mock_temporal.start_workflow.call_args
        assert args == (ProcessContractDatesWorkflow.run, "c-42")
        assert kwargs["id"] == "contract-dates-c-42"

    def test_process_contract_without_temporal(self, api_client):
        app.state.temporal = None

        response = api_client.post("/api/admin/alerts/process/c-42")

        assert response.status_code == 503

    def test_process_all_skips_contracts_with_dates(
        self, api_client, db_session, mock_temporal, contract, end_date
    ):
        bare = repository.create_contract(db_session, user_id=contract.user_id, contract_type="lease")
        db_session.commit()
        app.state.temporal = mock_temporal

        response = api_client.post("/api/admin/alerts/process-all")

        assert response.status_code == 202
        assert response.json()["workflow_ids"] == [f"contract-dates-{bare.id}"]
        assert mock_temporal.start_workflow.await_count == 1

    def test_process_all_uses_async_session(self, api_client, db_session, mock_temporal, contract):
        from app.db.session import get_sync_db_dependency

        def no_sync_session():
            raise AssertionError("sync session opened on the event loop")

        app.dependency_overrides[get_sync_db_dependency] = no_sync_session
        app.state.temporal = mock_temporal

        response = api_client.post("/api/admin/alerts/process-all")

        assert response.status_code == 202
        assert response.json()["workflow_ids"] == [f"contract-dates-{contract.id}"]

    def test_check_now_starts_dispatch(self, api_client, mock_temporal):
        app.state.temporal = mock_temporal

        response = api_client.post("/api/admin/alerts/check-now")

        assert response.status_code == 202
        assert response.json()["workflow_ids"][0].startswith("date-alerts-dispatch-manual-")
        assert mock_temporal.start_workflow.call_args.args[0] == DispatchAlertsWorkflow.run


class TestForceCreate:
    def test_force_create(self, api_client, contract, end_date):
        response = api_client.post(
            "/api/admin/alerts/force",
            json={"contract_id": contract.id, "date_id": end_date.id, "offset_days": 30},
        )

        assert response.status_code == 201
        assert response.json()["is_active"] is True

    def test_force_create_sent_alert_conflicts(self, api_client, db_session, contract, end_date):
        alert = repository.upsert_alert(db_session, end_date, 7, is_active=True)
        alert.dispatched = True
        db_session.commit()

        response = api_client.post(
            "/api/admin/alerts/force",
            json={"contract_id": contract.id, "date_id": end_date.id, "offset_days": 7},
        )

        assert response.status_code == 409

    def test_force_create_invalid_offset(self, api_client, contract, end_date):
        response = api_client.post(
            "/api/admin/alerts/force",
            json={"contract_id": contract.id, "date_id": end_date.id, "offset_days": 10},
        )
        assert response.status_code == 400


class TestStatsAndCleanup:
    def test_stats(self, api_client, db_session, end_date):
        repository.upsert_alert(db_session, end_date, 7, is_active=True)
        repository.upsert_alert(db_session, end_date, 1, is_active=True)
        db_session.commit()

        response = api_client.get("/api/admin/alerts/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total_active_alerts"] == 2
        assert data["alerts_due_this_week"] == 1
        assert data["total_contracts_with_dates"] == 1

    def test_cleanup(self, api_client, db_session, contract, end_date):
        repository.add_date(
            db_session,
            contract_id=contract.id,
            date_type=DateType.payment_due,
            date=utcnow() - timedelta(days=1),
            description="Paid",
        )
        db_session.commit()

        response = api_client.post("/api/admin/alerts/cleanup")

        assert response.status_code == 200
        assert response.json()["dates_removed"] == 1
        db_session.expire_all()
        assert [d.id for d in db_session.scalars(select(ContractDate))] == [end_date.id]
