"""Tests for Conversation Flow Manager."""

import pytest
from unittest.mock import AsyncMock, patch
from datetime import date, datetime, timezone

from app.core.errors import BookingConflictError, DoctorNotFoundError, ValidationError
from app.core.scheduling.flow import parse_birthdate, parse_datetime_input
from app.core.scheduling.types import PatientData
from app.core.session.models import SessionData
from app.core.session.state import ConversationStep

FIRST_SLOT = datetime(2026, 5, 11, 12, 30, tzinfo=timezone.utc)
SECOND_SLOT = datetime(2026, 5, 11, 13, 0, tzinfo=timezone.utc)


def session_at(step: ConversationStep, **data) -> SessionData:
    return SessionData(session_id="test-session", step=step, data=data)


def ready_to_book() -> SessionData:
    return session_at(
        ConversationStep.AWAITING_REASON,
        patient_name="Maria Silva",
        specialty="Cardiologia",
        doctor_id=1,
        doctor_name="Dra. Ana Souza",
        available_slots=[FIRST_SLOT.isoformat(), SECOND_SLOT.isoformat()],
        slot=FIRST_SLOT.isoformat(),
        patient_birth="1990-05-15",
    )


class TestParsers:
    """Test input parsing helpers."""

    def test_datetime_iso_with_offset(self, clinic_tz):
        assert parse_datetime_input("2026-05-11T09:30:00-03:00", clinic_tz) == FIRST_SLOT

    def test_datetime_naive_is_clinic_time(self, clinic_tz):
        assert parse_datetime_input("2026-05-11 09:30", clinic_tz) == FIRST_SLOT

    def test_datetime_brazilian_format(self, clinic_tz):
        assert parse_datetime_input("11/05/2026 09:30", clinic_tz) == FIRST_SLOT

    def test_datetime_garbage(self, clinic_tz):
        assert parse_datetime_input("amanhã cedo", clinic_tz) is None

    def test_birthdate_formats(self):
        today = date(2026, 5, 11)
        assert parse_birthdate("1990-05-15", today) == date(1990, 5, 15)
        assert parse_birthdate("15/05/1990", today) == date(1990, 5, 15)

    @pytest.mark.parametrize("text", ["1990-02-30", "15-05-1990", "ontem", "", "2030-01-01"])
    def test_birthdate_invalid(self, text):
        with pytest.raises(ValidationError):
            parse_birthdate(text, date(2026, 5, 11))


class TestConversationFlow:
    """Test ConversationFlow step handlers."""

    # === Name / specialty ===

    @pytest.mark.asyncio
    async def test_name_advances(self, flow):
        session = session_at(ConversationStep.AWAITING_NAME)

        result = await flow.process(session, "  Maria Silva ")

        assert result.next_step == ConversationStep.AWAITING_SPECIALTY
        assert session.step == ConversationStep.AWAITING_SPECIALTY
        assert session.data["patient_name"] == "Maria Silva"
        assert "Maria Silva" in result.reply

    @pytest.mark.asyncio
    async def test_empty_name_reprompts(self, flow):
        session = session_at(ConversationStep.AWAITING_NAME)

        result = await flow.process(session, "   ")

        assert result.next_step == ConversationStep.AWAITING_NAME
        assert session.data == {}

    @pytest.mark.asyncio
    async def test_specialty_lists_doctors(self, flow):
        session = session_at(ConversationStep.AWAITING_SPECIALTY, patient_name="Maria Silva")

        result = await flow.process(session, "dermatologia")

        assert result.next_step == ConversationStep.AWAITING_DOCTOR
        assert [d["id"] for d in session.data["doctors"]] == [2, 3]
        assert "1. Dr. Bruno Lima" in result.reply

    @pytest.mark.asyncio
    async def test_unknown_specialty_stays(self, flow):
        session = session_at(ConversationStep.AWAITING_SPECIALTY, patient_name="Maria Silva")

        result = await flow.process(session, "Ortopedia")

        assert result.next_step == ConversationStep.AWAITING_SPECIALTY
        assert "Ortopedia" in result.reply
        assert "doctors" not in session.data

    # === Doctor ===

    @pytest.fixture
    def choosing_doctor(self):
        return session_at(
            ConversationStep.AWAITING_DOCTOR,
            patient_name="Maria Silva",
            specialty="Dermatologia",
            doctors=[
                {"id": 2, "name": "Dr. Bruno Lima", "specialty": "Dermatologia"},
                {"id": 3, "name": "Dr. Pedro Costa", "specialty": "Dermatologia"},
            ],
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["0", "3", "abc", "-1", "", "²", "①"])
    async def test_invalid_doctor_choice(self, flow, choosing_doctor, text):
        before = dict(choosing_doctor.data)

        result = await flow.process(choosing_doctor, text)

        assert result.next_step == ConversationStep.AWAITING_DOCTOR
        assert "1 a 2" in result.reply
        assert choosing_doctor.data == before

    @pytest.mark.asyncio
    async def test_doctor_choice_offers_slots(self, flow, choosing_doctor):
        result = await flow.process(choosing_doctor, "2")

        assert result.next_step == ConversationStep.AWAITING_SLOT
        assert choosing_doctor.data["doctor_id"] == 3
        assert choosing_doctor.data["doctor_name"] == "Dr. Pedro Costa"
        assert len(choosing_doctor.data["available_slots"]) == 10
        assert "1. 11/05 às 09:30" in result.reply

    @pytest.mark.asyncio
    async def test_doctor_without_slots_back_to_specialty(self, flow, availability, choosing_doctor):
        with patch.object(availability, "list_available_slots", AsyncMock(return_value=[])):
            result = await flow.process(choosing_doctor, "1")

        assert result.next_step == ConversationStep.AWAITING_SPECIALTY
        assert "Dr. Bruno Lima" in result.reply
        assert "doctor_id" not in choosing_doctor.data

    # === Slot ===

    @pytest.fixture
    def choosing_slot(self):
        return session_at(
            ConversationStep.AWAITING_SLOT,
            patient_name="Maria Silva",
            doctor_id=1,
            available_slots=[FIRST_SLOT.isoformat(), SECOND_SLOT.isoformat()],
        )

    @pytest.mark.asyncio
    async def test_slot_by_index(self, flow, choosing_slot):
        result = await flow.process(choosing_slot, "2")

        assert result.next_step == ConversationStep.AWAITING_BIRTHDATE
        assert datetime.fromisoformat(choosing_slot.data["slot"]) == SECOND_SLOT

    @pytest.mark.asyncio
    async def test_slot_by_datetime(self, flow, choosing_slot):
        result = await flow.process(choosing_slot, "2026-05-11 09:30")

        assert result.next_step == ConversationStep.AWAITING_BIRTHDATE
        assert datetime.fromisoformat(choosing_slot.data["slot"]) == FIRST_SLOT

    @pytest.mark.asyncio
    async def test_slot_not_offered(self, flow, choosing_slot):
        result = await flow.process(choosing_slot, "2026-05-11 15:00")

        assert result.next_step == ConversationStep.AWAITING_SLOT
        assert "indisponível" in result.reply.lower()
        assert "slot" not in choosing_slot.data

    @pytest.mark.asyncio
    async def test_slot_index_out_of_range(self, flow, choosing_slot):
        result = await flow.process(choosing_slot, "3")

        assert result.next_step == ConversationStep.AWAITING_SLOT
        assert "slot" not in choosing_slot.data

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["de manhã", "²", "①"])
    async def test_slot_garbage(self, flow, choosing_slot, text):
        result = await flow.process(choosing_slot, text)

        assert result.next_step == ConversationStep.AWAITING_SLOT
        assert "formato" in result.reply.lower()
        assert "slot" not in choosing_slot.data

    # === Birth date ===

    @pytest.mark.asyncio
    async def test_birthdate_advances(self, flow):
        session = session_at(ConversationStep.AWAITING_BIRTHDATE, slot=FIRST_SLOT.isoformat())

        result = await flow.process(session, "15/05/1990")

        assert result.next_step == ConversationStep.AWAITING_REASON
        assert session.data["patient_birth"] == "1990-05-15"

    @pytest.mark.asyncio
    async def test_future_birthdate_reprompts(self, flow):
        session = session_at(ConversationStep.AWAITING_BIRTHDATE)

        result = await flow.process(session, "2027-01-01")

        assert result.next_step == ConversationStep.AWAITING_BIRTHDATE
        assert "AAAA-MM-DD" in result.reply

    # === Reason / booking ===

    @pytest.mark.asyncio
    async def test_empty_reason_reprompts(self, flow):
        session = ready_to_book()

        result = await flow.process(session, "")

        assert result.next_step == ConversationStep.AWAITING_REASON

    @pytest.mark.asyncio
    async def test_booking_completes(self, flow, repository):
        session = ready_to_book()

        result = await flow.process(session, "Dor no peito")

        assert result.next_step == ConversationStep.COMPLETED
        assert result.booking is not None
        assert result.booking.protocol in result.reply
        assert "11/05/2026 às 09:30" in result.reply
        assert len(await repository.find_bookings_by_doctor(1)) == 1

    @pytest.mark.asyncio
    async def test_conflict_reoffers_fresh_slots(self, flow, availability):
        session = ready_to_book()
        await availability.book_appointment(1, FIRST_SLOT, _other_patient())

        result = await flow.process(session, "Dor no peito")

        assert result.next_step == ConversationStep.AWAITING_SLOT
        assert "não está mais disponível" in result.reply
        assert "slot" not in session.data
        assert FIRST_SLOT.isoformat() not in session.data["available_slots"]
        assert session.data["patient_birth"] == "1990-05-15"

    @pytest.mark.asyncio
    async def test_conflict_with_no_slots_left(self, flow, availability):
        session = ready_to_book()

        with patch.object(
            availability, "book_appointment", AsyncMock(side_effect=BookingConflictError("taken"))
        ), patch.object(availability, "list_available_slots", AsyncMock(return_value=[])):
            result = await flow.process(session, "Dor no peito")

        assert result.next_step == ConversationStep.AWAITING_SPECIALTY
        assert "doctor_id" not in session.data

    @pytest.mark.asyncio
    async def test_doctor_gone_aborts(self, flow, availability):
        session = ready_to_book()

        with patch.object(
            availability, "book_appointment", AsyncMock(side_effect=DoctorNotFoundError(1))
        ):
            result = await flow.process(session, "Dor no peito")

        assert result.next_step == ConversationStep.ABORTED
        assert "Médico não encontrado" in result.reply

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self, flow, availability):
        session = ready_to_book()

        with patch.object(
            availability, "book_appointment", AsyncMock(side_effect=RuntimeError("db down"))
        ):
            with pytest.raises(RuntimeError):
                await flow.process(session, "Dor no peito")


def _other_patient() -> PatientData:
    return PatientData(
        patient_name="João Pereira",
        patient_birth=date(1985, 1, 20),
        specialty="Cardiologia",
        reason="Check-up",
    )
