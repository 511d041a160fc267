from __future__ import annotations

import logging

import httpx

from app.application.ports.notification_sender import NotificationSenderPort


class ResendEmailSender(NotificationSenderPort):
    def __init__(
        self,
        api_key: str | None,
        from_email: str,
        endpoint: str = "https://api.resend.com/emails",
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._endpoint = endpoint
        self._client = client or httpx.Client(timeout=10.0)
        self._logger = logging.getLogger(__name__)

    def send_email(self, to: list[str], subject: str, html: str) -> None:
        if not self._api_key:
            self._logger.warning("RESEND_API_KEY not configured; skipping email", extra={"reason": subject})
            return
        recipients = [r for r in to if r]
        if not recipients:
            return

        payload = {
            "from": self._from_email,
            "to": recipients,
            "subject": subject,
            "html": html,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        resp = self._client.post(self._endpoint, json=payload, headers=headers)
        if resp.status_code >= 400:
            self._logger.error(
                "Resend email send failed",
                extra={"status": resp.status_code, "error": resp.text, "reason": subject},
            )
            resp.raise_for_status()
