"""Alert delivery: notifier interface and the Resend e-mail implementation."""

from __future__ import annotations

import html
import logging
from typing import Protocol, runtime_checkable

import httpx

from app.core.config import settings
from app.schemas.domain import DATE_TYPE_LABELS, DateAlertInfo

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class NotifierError(Exception):
    """Raised when an alert could not be delivered."""

    pass


@runtime_checkable
class Notifier(Protocol):
    """Contract for alert delivery implementations."""

    def send_date_alert(
        self,
        recipient_email: str,
        recipient_name: str,
        contract_id: str,
        contract_type: str,
        info: DateAlertInfo,
    ) -> None:
        ...


def _subject(info: DateAlertInfo) -> str:
    label = DATE_TYPE_LABELS[info.date_type]
    if info.days_until == 0:
        return f"Contract alert: {label} is today"
    unit = "day" if info.days_until == 1 else "days"
    return f"Contract alert: {label} in {info.days_until} {unit}"


def render_alert_email(
    recipient_name: str,
    contract_id: str,
    contract_type: str,
    info: DateAlertInfo,
    base_url: str,
) -> tuple[str, str]:
    """Build (subject, html body) for one date alert."""
    esc = html.escape
    link = f"{base_url.rstrip('/')}/dashboard/contracts/{contract_id}"
    clause = (
        f'<p style="font-size: 14px; color: #555;"><em>&ldquo;{esc(info.clause)}&rdquo;</em></p>'
        if info.clause
        else ""
    )
    body = f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; color: #333333;">
  <p>Dear {esc(recipient_name)},</p>
  <p>Your {esc(contract_type)} contract has an upcoming
     <strong>{esc(DATE_TYPE_LABELS[info.date_type])}</strong>
     on <strong>{info.date:%B %d, %Y}</strong> ({info.days_until} days from now).</p>
  <p>{esc(info.description)}</p>
  {clause}
  <p><a href="{esc(link)}">View contract</a></p>
</body>
</html>"""
    return _subject(info), body


class ResendNotifier(Notifier):
    """Send alert e-mails through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        *,
        base_url: str = "http://localhost:3000",
        timeout_s: float = 30.0,
        client: httpx.Client | None = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.base_url = base_url
        self._client = client or httpx.Client(timeout=timeout_s)

    def send_date_alert(
        self,
        recipient_email: str,
        recipient_name: str,
        contract_id: str,
        contract_type: str,
        info: DateAlertInfo,
    ) -> None:
        if not self.api_key:
            raise NotifierError("RESEND_API_KEY is not configured")

        subject, body = render_alert_email(
            recipient_name, contract_id, contract_type, info, self.base_url
        )
        try:
            response = self._client.post(
                RESEND_API_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.from_email,
                    "to": [recipient_email],
                    "subject": subject,
                    "html": body,
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NotifierError(
                f"Resend rejected alert for contract {contract_id}: "
                f"{exc.response.status_code} {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise NotifierError(f"Resend request failed for contract {contract_id}: {exc}") from exc

        logger.info("Sent %s alert for contract %s to %s", info.date_type.value, contract_id, recipient_email)

    def close(self) -> None:
        self._client.close()


def build_notifier() -> ResendNotifier:
    """Build the notifier from application settings."""
    return ResendNotifier(
        settings.RESEND_API_KEY,
        settings.ALERT_FROM_EMAIL,
        base_url=settings.APP_BASE_URL,
        timeout_s=settings.NOTIFIER_TIMEOUT_S,
    )


__all__ = [
    "Notifier",
    "NotifierError",
    "ResendNotifier",
    "build_notifier",
    "render_alert_email",
]
