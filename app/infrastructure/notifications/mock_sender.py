from __future__ import annotations

import logging

from app.application.ports.notification_sender import NotificationSenderPort


class LoggingNotificationSender(NotificationSenderPort):
    def __init__(self) -> None:
        self.sent: list[tuple[list[str], str]] = []
        self._logger = logging.getLogger(__name__)

    def send_email(self, to: list[str], subject: str, html: str) -> None:
        self.sent.append((list(to), subject))
        self._logger.info("WOULD_SEND_EMAIL", extra={"reason": subject, "status": ",".join(to)})
