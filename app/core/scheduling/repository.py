"""
Doctor/Availability Repository.

Read access to doctors, their weekly hours and committed bookings, plus
the atomic write that creates a booking. The scheduling core depends on
``DoctorRepository`` only; backends are swappable.
"""

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional

from app.core.errors import BookingConflictError, DoctorNotFoundError
from app.core.scheduling.types import Booking, Doctor, PatientData

logger = logging.getLogger(__name__)


class DoctorRepository(ABC):
    """
    Storage contract for the scheduling core.

    ``create_booking`` must check and insert within one atomic unit so
    that two concurrent callers targeting the same (doctor, instant)
    cannot both succeed.
    """

    @abstractmethod
    async def find_doctor_by_id(self, doctor_id: int) -> Doctor:
        """Return the doctor with its weekly hours.

        Raises:
            DoctorNotFoundError: If the id is unknown
        """

    @abstractmethod
    async def find_doctors(
        self,
        specialty: Optional[str] = None,
        city: Optional[str] = None,
    ) -> list[Doctor]:
        """Find doctors by specialty and/or city (case-insensitive, partial)."""

    @abstractmethod
    async def list_specialties(self) -> list[str]:
        """Distinct specialty names, sorted."""

    @abstractmethod
    async def find_bookings_by_doctor(self, doctor_id: int) -> list[Booking]:
        """All bookings for a doctor."""

    @abstractmethod
    async def create_booking(
        self,
        doctor_id: int,
        slot: datetime,
        protocol: str,
        patient: PatientData,
    ) -> Booking:
        """Atomically create a booking.

        Raises:
            DoctorNotFoundError: If the doctor is unknown
            BookingConflictError: If (doctor, slot) is already booked
        """


def matches(value: Optional[str], wanted: Optional[str]) -> bool:
    """Case-insensitive partial match. An empty filter matches everything."""
    if not wanted or not wanted.strip():
        return True
    if value is None:
        return False
    return wanted.strip().casefold() in value.casefold()


class InMemoryDoctorRepository(DoctorRepository):
    """
    Process-local repository.

    Bookings are serialised by an ``asyncio.Lock``; suitable for tests
    and single-instance deployments.
    """

    def __init__(self, doctors: Optional[Iterable[Doctor]] = None):
        self._doctors: dict[int, Doctor] = {}
        self._bookings: list[Booking] = []
        self._lock = asyncio.Lock()
        self._next_booking_id = 1

        for doctor in doctors or []:
            self.add_doctor(doctor)

    def add_doctor(self, doctor: Doctor) -> None:
        """Register or replace a doctor (administrative seeding)."""
        self._doctors[doctor.id] = doctor

    async def find_doctor_by_id(self, doctor_id: int) -> Doctor:
        doctor = self._doctors.get(doctor_id)
        if doctor is None:
            raise DoctorNotFoundError(doctor_id)
        return copy.deepcopy(doctor)

    async def find_doctors(
        self,
        specialty: Optional[str] = None,
        city: Optional[str] = None,
    ) -> list[Doctor]:
        found = [
            d for d in self._doctors.values()
            if matches(d.specialty, specialty) and matches(d.city, city)
        ]
        found.sort(key=lambda d: d.id)
        return [copy.deepcopy(d) for d in found]

    async def list_specialties(self) -> list[str]:
        return sorted({d.specialty for d in self._doctors.values()})

    async def find_bookings_by_doctor(self, doctor_id: int) -> list[Booking]:
        return [copy.copy(b) for b in self._bookings if b.doctor_id == doctor_id]

    async def create_booking(
        self,
        doctor_id: int,
        slot: datetime,
        protocol: str,
        patient: PatientData,
    ) -> Booking:
        async with self._lock:
            doctor = self._doctors.get(doctor_id)
            if doctor is None:
                raise DoctorNotFoundError(doctor_id)

            if any(b.doctor_id == doctor_id and b.slot == slot for b in self._bookings):
                logger.warning(f"Booking conflict for doctor {doctor_id} at {slot.isoformat()}")
                raise BookingConflictError(
                    f"Slot {slot.isoformat()} already booked for doctor {doctor_id}"
                )

            booking = Booking(
                id=self._next_booking_id,
                protocol=protocol,
                doctor_id=doctor_id,
                doctor_name=doctor.name,
                slot=slot,
                patient_name=patient.patient_name,
                patient_birth=patient.patient_birth,
                specialty=patient.specialty,
                reason=patient.reason,
            )
            self._next_booking_id += 1
            self._bookings.append(booking)

        return copy.copy(booking)
