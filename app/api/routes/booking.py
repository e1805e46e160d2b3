"""
Booking REST Endpoints.

Form-based alternative to the conversation: specialties, doctors, free
schedules and booking submission, all backed by the same availability
service.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from app.config import settings
from app.core.errors import ConflictError, NotFoundError
from app.core.scheduling.availability import AvailabilityService
from app.core.scheduling.engine import get_availability_service
from app.core.scheduling.types import PatientData

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/booking", tags=["Booking"])

NO_SCHEDULES_MESSAGE = "Não há vagas disponíveis para a especialidade nos próximos {days} dias."
SCHEDULES_FOUND_MESSAGE = "Agendas encontradas."
BOOKED_MESSAGE = "Agendamento realizado com sucesso."


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SpecialtyResponse(CamelModel):
    name: str


class DoctorResponse(CamelModel):
    id: int
    name: str
    specialty: str
    city: Optional[str] = None
    crm: Optional[str] = None


class ScheduleEntry(CamelModel):
    doctor_id: int = Field(..., alias="doctorId")
    doctor_name: str = Field(..., alias="doctorName")
    date_time: datetime = Field(..., alias="dateTime")


class SchedulesResponse(CamelModel):
    message: str
    schedules: dict[str, list[ScheduleEntry]]


class BookRequest(CamelModel):
    doctor_id: int = Field(..., alias="doctorId", gt=0)
    slot: datetime = Field(..., description="Slot instant; naive values are read in the clinic time zone")
    patient_name: str = Field(..., alias="patientName", min_length=1, max_length=200)
    patient_birth: date = Field(..., alias="patientBirth", examples=["1990-05-15"])
    reason: str = Field(..., min_length=1, max_length=1000)
    specialty: Optional[str] = None


class BookResponse(CamelModel):
    message: str
    protocol: str
    doctor_name: str = Field(..., alias="doctorName")
    date_time: datetime = Field(..., alias="dateTime")
    patient_name: str = Field(..., alias="patientName")


@router.get(
    "/specialties",
    response_model=list[SpecialtyResponse],
    summary="List specialties",
)
async def list_specialties(
    service: AvailabilityService = Depends(get_availability_service),
) -> list[SpecialtyResponse]:
    names = await service.repository.list_specialties()
    return [SpecialtyResponse(name=name) for name in names]


@router.get(
    "/doctors",
    response_model=list[DoctorResponse],
    summary="List doctors by specialty and/or city",
)
async def list_doctors(
    specialty: Optional[str] = Query(default=None, max_length=100),
    city: Optional[str] = Query(default=None, max_length=100),
    service: AvailabilityService = Depends(get_availability_service),
) -> list[DoctorResponse]:
    doctors = await service.repository.find_doctors(specialty=specialty, city=city)
    logger.debug(f"Doctors found for specialty={specialty!r} city={city!r}: {len(doctors)}")
    return [DoctorResponse(**d.to_dict()) for d in doctors]


@router.get(
    "/schedules",
    response_model=SchedulesResponse,
    summary="Free schedules for a specialty",
)
async def list_schedules(
    specialty: str = Query(..., min_length=1, max_length=100),
    doctor_id: Optional[int] = Query(default=None, alias="doctorId"),
    service: AvailabilityService = Depends(get_availability_service),
) -> SchedulesResponse:
    """Free slots grouped by local date (``YYYY-MM-DD``)."""
    grouped = await service.list_slots_by_specialty(specialty, doctor_id=doctor_id)

    if not grouped:
        return SchedulesResponse(
            message=NO_SCHEDULES_MESSAGE.format(days=settings.booking_horizon_days),
            schedules={},
        )

    return SchedulesResponse(
        message=SCHEDULES_FOUND_MESSAGE,
        schedules={
            day: [ScheduleEntry(**entry) for entry in entries]
            for day, entries in grouped.items()
        },
    )


@router.post(
    "/book",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
    responses={
        201: {"description": "Booking confirmed"},
        404: {"description": "Doctor not found"},
        409: {"description": "Slot no longer available"},
        422: {"description": "Invalid payload"},
    },
)
async def book(
    request: BookRequest,
    service: AvailabilityService = Depends(get_availability_service),
) -> BookResponse:
    slot = request.slot
    if slot.tzinfo is None:
        slot = slot.replace(tzinfo=settings.clinic_tz)

    if request.patient_birth > datetime.now(settings.clinic_tz).date():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Data de nascimento não pode estar no futuro.",
        )

    try:
        doctor = await service.repository.find_doctor_by_id(request.doctor_id)
        patient = PatientData(
            patient_name=request.patient_name.strip(),
            patient_birth=request.patient_birth,
            specialty=request.specialty or doctor.specialty,
            reason=request.reason.strip(),
        )
        booking = await service.book_appointment(doctor.id, slot, patient)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.user_message)
    except ConflictError as e:
        logger.warning(f"Booking rejected for doctor {request.doctor_id}: {e}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.user_message)

    return BookResponse(
        message=BOOKED_MESSAGE,
        protocol=booking.protocol,
        doctor_name=booking.doctor_name or doctor.name,
        date_time=booking.slot.astimezone(timezone.utc),
        patient_name=booking.patient_name,
    )
