"""Domain types for doctors, schedules and bookings."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Optional


def _utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WeeklyAvailabilityWindow:
    """Recurring working hours on one weekday.

    ``weekday`` counts from Sunday: 0 = Sunday ... 6 = Saturday.
    """

    weekday: int
    start: time
    end: time

    def __post_init__(self):
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"weekday must be in 0..6, got {self.weekday}")

    def contains(self, moment: time) -> bool:
        """Check if a time of day falls inside the window (both ends inclusive)."""
        return self.start <= moment <= self.end


@dataclass
class Doctor:
    """Doctor with the recurring weekly schedule."""

    id: int
    name: str
    specialty: str
    city: Optional[str] = None
    crm: Optional[str] = None
    hours: list[WeeklyAvailabilityWindow] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Summary used in session data and API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "specialty": self.specialty,
            "city": self.city,
            "crm": self.crm,
        }


@dataclass
class PatientData:
    """Patient fields collected before committing a booking."""

    patient_name: str
    patient_birth: date
    specialty: str
    reason: str


@dataclass
class Booking:
    """A committed appointment. Immutable once created."""

    protocol: str
    doctor_id: int
    slot: datetime  # aware, UTC
    patient_name: str
    patient_birth: date
    specialty: str
    reason: str
    doctor_name: Optional[str] = None
    id: Optional[int] = None
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "protocol": self.protocol,
            "doctor_id": self.doctor_id,
            "doctor_name": self.doctor_name,
            "slot": self.slot.isoformat(),
            "patient_name": self.patient_name,
            "patient_birth": self.patient_birth.isoformat(),
            "specialty": self.specialty,
            "reason": self.reason,
            "created_at": self.created_at.isoformat(),
        }
