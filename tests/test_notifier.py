"""Tests for the Resend e-mail notifier."""

import json
from datetime import datetime

import httpx
import pytest

from app.schemas.domain import DateAlertInfo, DateType
from app.services.notifier import (
    RESEND_API_URL,
    Notifier,
    NotifierError,
    ResendNotifier,
    render_alert_email,
)


@pytest.fixture
def info():
    return DateAlertInfo(
        date_type=DateType.termination_notice,
        date=datetime(2026, 3, 8),
        description="Last day to cancel <renewal>",
        clause="Notice must be given 30 days in advance.",
        days_until=7,
    )


def _notifier(handler, api_key="re_test"):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ResendNotifier(api_key, "alerts@example.com", base_url="https://app.example.com/", client=client)


class TestRenderAlertEmail:
    def test_subject_names_date_type_and_days(self, info):
        subject, _ = render_alert_email("Ana", "c-1", "lease", info, "https://app.example.com")
        assert subject == "Contract alert: Termination Notice Deadline in 7 days"

    def test_subject_for_tomorrow_and_today(self, info):
        tomorrow = info.model_copy(update={"days_until": 1})
        today = info.model_copy(update={"days_until": 0})
        assert render_alert_email("Ana", "c", "lease", tomorrow, "x")[0].endswith("in 1 day")
        assert render_alert_email("Ana", "c", "lease", today, "x")[0].endswith("is today")

    def test_body_escapes_and_links(self, info):
        _, body = render_alert_email("Ana", "c-1", "lease", info, "https://app.example.com/")
        assert "Last day to cancel &lt;renewal&gt;" in body
        assert "https://app.example.com/dashboard/contracts/c-1" in body
        assert "March 08, 2026" in body
        assert "Notice must be given 30 days in advance." in body

    def test_body_without_clause(self, info):
        _, body = render_alert_email(
            "Ana", "c-1", "lease", info.model_copy(update={"clause": None}), "x"
        )
        assert "&ldquo;" not in body


class TestResendNotifier:
    def test_is_a_notifier(self):
        assert isinstance(ResendNotifier("key", "from@example.com"), Notifier)

    def test_posts_email(self, info):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["Authorization"]
            captured["payload"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email-1"})

        _notifier(handler).send_date_alert("ana@example.com", "Ana", "c-1", "lease", info)

        assert captured["url"] == RESEND_API_URL
        assert captured["auth"] == "Bearer re_test"
        payload = captured["payload"]
        assert payload["from"] == "alerts@example.com"
        assert payload["to"] == ["ana@example.com"]
        assert payload["subject"].startswith("Contract alert:")
        assert "Dear Ana" in payload["html"]

    def test_rejected_request_raises(self, info):
        def handler(request):
            return httpx.Response(422, json={"message": "invalid to address"})

        with pytest.raises(NotifierError, match="422"):
            _notifier(handler).send_date_alert("bad", "Ana", "c-1", "lease", info)

    def test_transport_error_raises(self, info):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NotifierError, match="request failed"):
            _notifier(handler).send_date_alert("ana@example.com", "Ana", "c-1", "lease", info)

    def test_missing_api_key(self, info):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(NotifierError, match="RESEND_API_KEY"):
            _notifier(handler, api_key="").send_date_alert(
                "ana@example.com", "Ana", "c-1", "lease", info
            )
