"""
Notification Service

Booking confirmations are simulated: nothing is sent over SMS or email,
the message is written to the log and kept in ``sent`` for inspection.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from app.config import settings

if TYPE_CHECKING:
    from app.core.scheduling.types import Booking

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    """A simulated outbound message."""

    channel: str
    recipient: str
    body: str
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationService:
    """Simulated booking notifications."""

    def __init__(self, max_kept: int = 100):
        """Initialize notification service.

        Args:
            max_kept: How many simulated messages to keep in memory
        """
        self.sent: list[Notification] = []
        self._max_kept = max_kept

    async def send_booking_confirmation(self, booking: "Booking") -> Notification:
        """Simulate sending a booking confirmation to the patient.

        Args:
            booking: The committed booking

        Returns:
            The simulated notification
        """
        local = booking.slot.astimezone(settings.clinic_tz)
        body = (
            f"Consulta confirmada. Protocolo {booking.protocol}, "
            f"{booking.doctor_name or 'médico'} em {local.strftime('%d/%m/%Y às %H:%M')}."
        )
        notification = Notification(
            channel="simulated",
            recipient=booking.patient_name,
            body=body,
        )

        self.sent.append(notification)
        if len(self.sent) > self._max_kept:
            self.sent = self.sent[-self._max_kept:]

        logger.info(f"[simulated notification] to={booking.patient_name} protocol={booking.protocol}")
        return notification


# Singleton
_service: Optional[NotificationService] = None


def get_notification_service() -> NotificationService:
    """Get singleton NotificationService."""
    global _service
    if _service is None:
        _service = NotificationService()
    return _service
