"""Tests for the SQLAlchemy doctor repository over an async SQLite file."""

import pytest
import pytest_asyncio
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.errors import (
    BookingConflictError,
    ConflictError,
    DoctorNotFoundError,
    InfrastructureError,
)
from app.core.scheduling.availability import AvailabilityService
from app.core.scheduling.demo import demo_doctors
from app.core.scheduling.sql_repository import SQLAlchemyDoctorRepository, seed_doctors
from app.core.scheduling.types import PatientData
from app.models.database import Base, BookingModel

FIRST_SLOT = datetime(2026, 5, 11, 12, 30, tzinfo=timezone.utc)


def make_patient(name: str = "Maria Silva") -> PatientData:
    return PatientData(
        patient_name=name,
        patient_birth=date(1990, 5, 15),
        specialty="Cardiologia",
        reason="Dor no peito",
    )


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'clinic-test.sqlite'}")
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def sql_repository(session_factory):
    await seed_doctors(session_factory, demo_doctors())
    return SQLAlchemyDoctorRepository(session_factory)


class TestSeedDoctors:
    """Test seeding of the doctors table."""

    @pytest.mark.asyncio
    async def test_inserts_once(self, session_factory):
        assert await seed_doctors(session_factory, demo_doctors()) == 3
        assert await seed_doctors(session_factory, demo_doctors()) == 0


class TestSQLAlchemyDoctorRepository:
    """Test SQLAlchemyDoctorRepository against a real database."""

    @pytest.mark.asyncio
    async def test_find_doctor_maps_hours(self, sql_repository):
        doctor = await sql_repository.find_doctor_by_id(1)
        expected = demo_doctors()[0]

        assert doctor.name == "Dra. Ana Souza"
        assert doctor.crm == expected.crm
        assert doctor.city == "São Paulo"
        assert sorted((h.weekday, h.start, h.end) for h in doctor.hours) == sorted(
            (h.weekday, h.start, h.end) for h in expected.hours
        )

    @pytest.mark.asyncio
    async def test_unknown_doctor(self, sql_repository):
        with pytest.raises(DoctorNotFoundError):
            await sql_repository.find_doctor_by_id(99)

    @pytest.mark.asyncio
    async def test_find_doctors_partial_case_insensitive(self, sql_repository):
        doctors = await sql_repository.find_doctors(specialty="DERMATO")
        assert [d.id for d in doctors] == [2, 3]

    @pytest.mark.asyncio
    async def test_find_doctors_by_city(self, sql_repository):
        doctors = await sql_repository.find_doctors(specialty="Dermatologia", city="paulo")
        assert [d.name for d in doctors] == ["Dr. Pedro Costa"]

    @pytest.mark.asyncio
    async def test_find_doctors_blank_filters(self, sql_repository):
        assert len(await sql_repository.find_doctors(specialty="  ", city="")) == 3

    @pytest.mark.asyncio
    async def test_list_specialties(self, sql_repository):
        assert await sql_repository.list_specialties() == ["Cardiologia", "Dermatologia"]

    @pytest.mark.asyncio
    async def test_create_booking(self, sql_repository):
        booking = await sql_repository.create_booking(1, FIRST_SLOT, "P-AAAAAAA", make_patient())

        assert booking.id is not None
        assert booking.doctor_name == "Dra. Ana Souza"
        assert booking.slot == FIRST_SLOT
        assert booking.slot.tzinfo is not None
        assert booking.created_at.tzinfo is not None

        stored = await sql_repository.find_bookings_by_doctor(1)
        assert len(stored) == 1
        assert stored[0].protocol == "P-AAAAAAA"
        assert stored[0].slot == FIRST_SLOT
        assert stored[0].patient_birth == date(1990, 5, 15)
        assert stored[0].reason == "Dor no peito"

    @pytest.mark.asyncio
    async def test_non_utc_slot_stored_as_utc(self, sql_repository, clinic_tz):
        await sql_repository.create_booking(
            1, FIRST_SLOT.astimezone(clinic_tz), "P-AAAAAAA", make_patient()
        )

        with pytest.raises(BookingConflictError):
            await sql_repository.create_booking(1, FIRST_SLOT, "P-BBBBBBB", make_patient("João"))

    @pytest.mark.asyncio
    async def test_duplicate_slot_rejected(self, sql_repository):
        await sql_repository.create_booking(1, FIRST_SLOT, "P-AAAAAAA", make_patient())

        with pytest.raises(BookingConflictError):
            await sql_repository.create_booking(1, FIRST_SLOT, "P-BBBBBBB", make_patient("João"))

        assert len(await sql_repository.find_bookings_by_doctor(1)) == 1

    @pytest.mark.asyncio
    async def test_same_slot_other_doctor(self, sql_repository):
        await sql_repository.create_booking(1, FIRST_SLOT, "P-AAAAAAA", make_patient())
        await sql_repository.create_booking(3, FIRST_SLOT, "P-BBBBBBB", make_patient("João"))

        assert len(await sql_repository.find_bookings_by_doctor(3)) == 1

    @pytest.mark.asyncio
    async def test_integrity_error_becomes_conflict(self, sql_repository):
        """A constraint violation at commit time is reported as a booking conflict."""
        await sql_repository.create_booking(1, FIRST_SLOT, "P-AAAAAAA", make_patient())
        later = FIRST_SLOT + timedelta(minutes=30)

        with pytest.raises(BookingConflictError):
            await sql_repository.create_booking(1, later, "P-AAAAAAA", make_patient("João"))

        assert len(await sql_repository.find_bookings_by_doctor(1)) == 1

    @pytest.mark.asyncio
    async def test_booking_unknown_doctor(self, sql_repository):
        with pytest.raises(DoctorNotFoundError):
            await sql_repository.create_booking(99, FIRST_SLOT, "P-AAAAAAA", make_patient())

    @pytest.mark.asyncio
    async def test_unique_constraint_on_doctor_and_slot(self, sql_repository, session_factory):
        rows = [
            BookingModel(
                protocol=protocol,
                doctor_id=1,
                slot=FIRST_SLOT,
                patient_name="Maria Silva",
                patient_birth=date(1990, 5, 15),
                specialty="Cardiologia",
                reason="Dor no peito",
            )
            for protocol in ("P-AAAAAAA", "P-BBBBBBB")
        ]

        async with session_factory() as session:
            session.add_all(rows)
            with pytest.raises(IntegrityError):
                await session.commit()

        async with session_factory() as session:
            assert await session.scalar(select(func.count(BookingModel.id))) == 0

    @pytest.mark.asyncio
    async def test_database_errors_become_infrastructure_errors(self, db_engine):
        # Tables were never created
        repository = SQLAlchemyDoctorRepository(
            async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)
        )

        with pytest.raises(InfrastructureError):
            await repository.find_doctors(specialty="Cardiologia")


class TestAvailabilityOverSQL:
    """The availability service gives the same answers on the SQL backend."""

    @pytest.fixture
    def sql_availability(self, sql_repository, notifier, now, clinic_tz):
        return AvailabilityService(
            sql_repository,
            notifier=notifier,
            clock=lambda: now,
            horizon_days=30,
            step_minutes=30,
            tz=clinic_tz,
        )

    @pytest.mark.asyncio
    async def test_booked_slot_disappears(self, sql_availability):
        slots = await sql_availability.list_available_slots(1)
        assert slots[0] == FIRST_SLOT
        assert len(slots) == 130

        booking = await sql_availability.book_appointment(1, FIRST_SLOT, make_patient())

        assert booking.protocol.startswith("P-")
        remaining = await sql_availability.list_available_slots(1)
        assert FIRST_SLOT not in remaining
        assert len(remaining) == 129

    @pytest.mark.asyncio
    async def test_second_booking_conflicts(self, sql_availability):
        await sql_availability.book_appointment(1, FIRST_SLOT, make_patient())

        with pytest.raises(ConflictError):
            await sql_availability.book_appointment(1, FIRST_SLOT, make_patient("João"))
