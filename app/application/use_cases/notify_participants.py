from __future__ import annotations

import logging

from app.application.ports.notification_sender import NotificationSenderPort
from app.domain.entities.order import Order

SUBJECTS = {
    "requested": "New appointment request",
    "confirmed": "Your appointment is confirmed",
    "proposed": "New times proposed for your appointment",
    "rejected": "Your appointment request was declined",
    "scheduled": "Appointment time accepted",
    "completed": "Service completed",
    "paid": "Payment received",
}


class NotifyParticipantsUseCase:
    """Fire-and-forget e-mails about bookings. Failures are logged, never raised."""

    def __init__(self, sender: NotificationSenderPort, business_name: str = "Marketplace") -> None:
        self._sender = sender
        self._business_name = business_name
        self._logger = logging.getLogger(__name__)

    def execute(self, event: str, order: Order, notify_buyer: bool = True, notify_seller: bool = True) -> None:
        recipients = []
        if notify_buyer and order.customer_email:
            recipients.append(order.customer_email)
        if notify_seller and order.seller_email:
            recipients.append(order.seller_email)
        if not recipients:
            return

        subject = f"{self._business_name}: {SUBJECTS.get(event, 'Order update')}"
        try:
            self._sender.send_email(recipients, subject, self._render(event, order))
        except Exception as e:
            self._logger.exception(
                "Notification failed",
                extra={"order_id": order.id, "status": event, "error": str(e)},
            )

    def _render(self, event: str, order: Order) -> str:
        lines = [f"<p>Order <strong>{order.id}</strong> is now <strong>{order.status.value}</strong>.</p>", "<ul>"]
        for booking in order.bookings:
            when = booking.appointment_at.strftime("%A %d %B %Y, %H:%M") if booking.appointment_at else "-"
            lines.append(f"<li>{booking.title}: {when} ({booking.appointment_status.value})</li>")
            if event == "proposed" and booking.appointment_alternates:
                options = ", ".join(a.strftime("%d %B %H:%M") for a in booking.appointment_alternates)
                lines.append(f"<li>Proposed times: {options}</li>")
        lines.append("</ul>")
        return "\n".join(lines)
