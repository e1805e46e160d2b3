"""
Availability Service.

Combines generated slots with committed bookings to produce a doctor's
free slots, and performs the booking transaction with a last-moment
availability re-check.
"""

import logging
import secrets
import string
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional

from app.config import settings
from app.core.errors import SlotUnavailableError
from app.core.scheduling.repository import DoctorRepository
from app.core.scheduling.slots import generate_slots
from app.core.scheduling.types import Booking, PatientData
from app.infra.notifications import NotificationService, get_notification_service

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase


def _utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def generate_protocol(length: int = 7) -> str:
    """Random human-shareable booking code, e.g. ``P-4K7Q2ZD``."""
    return "P-" + "".join(secrets.choice(_BASE36) for _ in range(length))


class AvailabilityService:
    """
    Free-slot listing and booking commit.

    The re-check in ``book_appointment`` only fails fast; the repository's
    atomic ``create_booking`` is what guarantees a slot is never booked
    twice.
    """

    def __init__(
        self,
        repository: DoctorRepository,
        notifier: Optional[NotificationService] = None,
        clock: Callable[[], datetime] = _utcnow,
        horizon_days: Optional[int] = None,
        step_minutes: Optional[int] = None,
        tz: Optional[tzinfo] = None,
    ):
        """Initialize service.

        Args:
            repository: Doctor/booking storage
            notifier: Simulated confirmation sender (defaults to singleton)
            clock: Source of "now" (timezone-aware)
            horizon_days: Days ahead to offer (defaults to settings)
            step_minutes: Slot granularity (defaults to settings)
            tz: Zone of the weekly schedules (defaults to settings)
        """
        self.repository = repository
        self._notifier = notifier
        self._clock = clock
        self.horizon_days = (
            settings.booking_horizon_days if horizon_days is None else horizon_days
        )
        self.step_minutes = (
            settings.slot_duration_minutes if step_minutes is None else step_minutes
        )
        if self.step_minutes <= 0:
            raise ValueError(f"step_minutes must be positive, got {self.step_minutes}")
        self.tz = tz or settings.clinic_tz

    def _get_notifier(self) -> NotificationService:
        if self._notifier is None:
            self._notifier = get_notification_service()
        return self._notifier

    async def list_available_slots(self, doctor_id: int) -> list[datetime]:
        """Free slots for a doctor, recomputed on every call.

        Args:
            doctor_id: Doctor identifier

        Returns:
            Aware UTC datetimes in ascending order

        Raises:
            DoctorNotFoundError: If the doctor is unknown
        """
        doctor = await self.repository.find_doctor_by_id(doctor_id)
        generated = generate_slots(
            doctor,
            now=self._clock(),
            horizon_days=self.horizon_days,
            step_minutes=self.step_minutes,
            tz=self.tz,
        )

        bookings = await self.repository.find_bookings_by_doctor(doctor_id)
        reserved = {b.slot for b in bookings}

        return [slot for slot in generated if slot not in reserved]

    async def book_appointment(
        self,
        doctor_id: int,
        slot: datetime,
        patient: PatientData,
    ) -> Booking:
        """Book a slot for a patient.

        Args:
            doctor_id: Doctor identifier
            slot: Requested instant (timezone-aware)
            patient: Collected patient fields

        Returns:
            The committed Booking

        Raises:
            DoctorNotFoundError: If the doctor is unknown
            SlotUnavailableError: If the slot is no longer offered
            BookingConflictError: If another booking won the race
        """
        slot = slot.astimezone(timezone.utc)

        available = await self.list_available_slots(doctor_id)
        if slot not in available:
            logger.info(f"Slot {slot.isoformat()} no longer available for doctor {doctor_id}")
            raise SlotUnavailableError(
                f"Slot {slot.isoformat()} unavailable for doctor {doctor_id}"
            )

        protocol = generate_protocol()
        booking = await self.repository.create_booking(doctor_id, slot, protocol, patient)
        logger.info(
            f"Booking {booking.protocol} created for doctor {doctor_id} at {slot.isoformat()}"
        )

        try:
            await self._get_notifier().send_booking_confirmation(booking)
        except Exception as e:
            logger.error(f"Failed to send simulated confirmation for {booking.protocol}: {e}")

        return booking

    async def list_slots_by_specialty(
        self,
        specialty: str,
        doctor_id: Optional[int] = None,
    ) -> dict[str, list[dict]]:
        """Free slots across the doctors of a specialty, grouped by local date.

        Args:
            specialty: Specialty filter (case-insensitive, partial)
            doctor_id: Restrict to one doctor of that specialty

        Returns:
            ``{"YYYY-MM-DD": [{"doctor_id", "doctor_name", "date_time"}, ...]}``
            with dates and entries in chronological order
        """
        doctors = await self.repository.find_doctors(specialty=specialty)
        if doctor_id is not None:
            doctors = [d for d in doctors if d.id == doctor_id]

        entries: list[tuple[datetime, dict]] = []
        for doctor in doctors:
            for slot in await self.list_available_slots(doctor.id):
                entries.append((
                    slot,
                    {
                        "doctor_id": doctor.id,
                        "doctor_name": doctor.name,
                        "date_time": slot,
                    },
                ))

        entries.sort(key=lambda item: (item[0], item[1]["doctor_id"]))

        grouped: dict[str, list[dict]] = {}
        for slot, entry in entries:
            key = slot.astimezone(self.tz).date().isoformat()
            grouped.setdefault(key, []).append(entry)
        return grouped
