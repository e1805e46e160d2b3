"""SQLAlchemy-backed doctor repository."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import (
    BookingConflictError,
    DoctorNotFoundError,
    InfrastructureError,
)
from app.core.scheduling.repository import DoctorRepository
from app.core.scheduling.types import (
    Booking,
    Doctor,
    PatientData,
    WeeklyAvailabilityWindow,
)
from app.models.database import BookingModel, DoctorHoursModel, DoctorModel

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # Drivers without time zone support hand back naive UTC values
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_doctor(row: DoctorModel) -> Doctor:
    return Doctor(
        id=row.id,
        name=row.name,
        specialty=row.specialty,
        city=row.city,
        crm=row.crm,
        hours=[
            WeeklyAvailabilityWindow(weekday=h.weekday, start=h.start, end=h.end)
            for h in row.hours
        ],
    )


def _to_booking(row: BookingModel, doctor_name: Optional[str] = None) -> Booking:
    return Booking(
        id=row.id,
        protocol=row.protocol,
        doctor_id=row.doctor_id,
        doctor_name=doctor_name,
        slot=_as_utc(row.slot),
        patient_name=row.patient_name,
        patient_birth=row.patient_birth,
        specialty=row.specialty,
        reason=row.reason,
        created_at=_as_utc(row.created_at) if row.created_at else datetime.now(timezone.utc),
    )


class SQLAlchemyDoctorRepository(DoctorRepository):
    """
    Repository over PostgreSQL.

    ``create_booking`` runs in one transaction: the doctor row is locked
    with ``SELECT ... FOR UPDATE`` so concurrent bookings for the same
    doctor are serialised, and the (doctor_id, slot) unique constraint
    rejects anything that still slips through.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_doctor_by_id(self, doctor_id: int) -> Doctor:
        try:
            async with self._session_factory() as session:
                row = await session.get(DoctorModel, doctor_id)
                if row is None:
                    raise DoctorNotFoundError(doctor_id)
                return _to_doctor(row)
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load doctor {doctor_id}: {e}") from e

    async def find_doctors(
        self,
        specialty: Optional[str] = None,
        city: Optional[str] = None,
    ) -> list[Doctor]:
        query = select(DoctorModel).order_by(DoctorModel.id)
        if specialty and specialty.strip():
            query = query.where(DoctorModel.specialty.ilike(f"%{specialty.strip()}%"))
        if city and city.strip():
            query = query.where(DoctorModel.city.ilike(f"%{city.strip()}%"))

        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return [_to_doctor(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to search doctors: {e}") from e

    async def list_specialties(self) -> list[str]:
        query = select(DoctorModel.specialty).distinct().order_by(DoctorModel.specialty)
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to list specialties: {e}") from e

    async def find_bookings_by_doctor(self, doctor_id: int) -> list[Booking]:
        query = select(BookingModel).where(BookingModel.doctor_id == doctor_id)
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return [_to_booking(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load bookings for doctor {doctor_id}: {e}") from e

    async def create_booking(
        self,
        doctor_id: int,
        slot: datetime,
        protocol: str,
        patient: PatientData,
    ) -> Booking:
        slot = slot.astimezone(timezone.utc)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    doctor = await session.scalar(
                        select(DoctorModel)
                        .where(DoctorModel.id == doctor_id)
                        .with_for_update()
                    )
                    if doctor is None:
                        raise DoctorNotFoundError(doctor_id)

                    taken = await session.scalar(
                        select(func.count(BookingModel.id)).where(
                            BookingModel.doctor_id == doctor_id,
                            BookingModel.slot == slot,
                        )
                    )
                    if taken:
                        raise BookingConflictError(
                            f"Slot {slot.isoformat()} already booked for doctor {doctor_id}"
                        )

                    row = BookingModel(
                        protocol=protocol,
                        doctor_id=doctor_id,
                        slot=slot,
                        patient_name=patient.patient_name,
                        patient_birth=patient.patient_birth,
                        specialty=patient.specialty,
                        reason=patient.reason,
                    )
                    session.add(row)
                    await session.flush()
                    await session.refresh(row)
                    booking = _to_booking(row, doctor.name)

        except IntegrityError as e:
            logger.warning(f"Booking conflict for doctor {doctor_id} at {slot.isoformat()}: {e}")
            raise BookingConflictError(
                f"Slot {slot.isoformat()} already booked for doctor {doctor_id}"
            ) from e
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to create booking: {e}") from e

        return booking


async def seed_doctors(
    session_factory: async_sessionmaker[AsyncSession],
    doctors: list[Doctor],
) -> int:
    """Insert doctors that are not in the table yet. Returns count inserted."""
    inserted = 0
    async with session_factory() as session:
        async with session.begin():
            for doctor in doctors:
                exists = await session.scalar(
                    select(func.count(DoctorModel.id)).where(DoctorModel.name == doctor.name)
                )
                if exists:
                    continue
                session.add(
                    DoctorModel(
                        name=doctor.name,
                        crm=doctor.crm,
                        specialty=doctor.specialty,
                        city=doctor.city,
                        hours=[
                            DoctorHoursModel(weekday=w.weekday, start=w.start, end=w.end)
                            for w in doctor.hours
                        ],
                    )
                )
                inserted += 1
    return inserted
