"""
Conversation Flow Manager.

Per-step handlers of the booking state machine. Each handler validates
the user's input for the current step, calls the directory and the
availability service when the step needs them, and returns the next
step and reply. Invalid input raises ValidationError, which becomes a
reprompt in the same step with the session data untouched.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Callable, Optional

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.scheduling.availability import AvailabilityService
from app.core.scheduling.response import ResponseGenerator, get_response_generator
from app.core.scheduling.types import Booking, PatientData
from app.core.session.models import SessionData
from app.core.session.state import ConversationStep, can_transition

logger = logging.getLogger(__name__)

SLOT_INPUT_FORMATS = ("%Y-%m-%d %H:%M", "%d/%m/%Y %H:%M")
BIRTHDATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y")


def _utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


@dataclass
class FlowResult:
    """Outcome of one conversation turn."""

    next_step: ConversationStep
    reply: str
    booking: Optional[Booking] = None


def parse_datetime_input(text: str, tz: tzinfo) -> Optional[datetime]:
    """Parse a date-time typed by the user into an aware UTC instant.

    Accepts ``YYYY-MM-DD HH:MM``, ``DD/MM/YYYY HH:MM`` or ISO 8601.
    Naive values are read in ``tz``. Returns None when nothing matches.
    """
    text = text.strip()
    candidate = None
    for fmt in SLOT_INPUT_FORMATS:
        try:
            candidate = datetime.strptime(text, fmt)
            break
        except ValueError:
            continue

    if candidate is None:
        try:
            candidate = datetime.fromisoformat(text)
        except ValueError:
            return None

    if candidate.tzinfo is None:
        candidate = candidate.replace(tzinfo=tz)
    return candidate.astimezone(timezone.utc)


def parse_birthdate(text: str, today: date) -> date:
    """Parse a birth date written as ``YYYY-MM-DD`` or ``DD/MM/YYYY``.

    Raises:
        ValidationError: If the date is malformed, impossible or in the future
    """
    for fmt in BIRTHDATE_FORMATS:
        try:
            parsed = datetime.strptime(text.strip(), fmt).date()
        except ValueError:
            continue
        if parsed > today:
            raise ValidationError(f"Birth date {parsed.isoformat()} is in the future")
        return parsed
    raise ValidationError(f"Invalid birth date: {text!r}")


class ConversationFlow:
    """
    State machine for the booking conversation.

    Collected data lives in ``session.data``; see SessionData for the
    keys. Handlers only write to it once the input is valid.
    """

    def __init__(
        self,
        availability: AvailabilityService,
        response_generator: Optional[ResponseGenerator] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize flow manager.

        Args:
            availability: Slot listing and booking service
            response_generator: Reply templates (defaults to singleton)
            clock: Source of "now" for birth date checks
        """
        self.availability = availability
        self.repository = availability.repository
        self.responses = response_generator or get_response_generator()
        self._clock = clock

        self._handlers = {
            ConversationStep.AWAITING_NAME: self._handle_name,
            ConversationStep.AWAITING_SPECIALTY: self._handle_specialty,
            ConversationStep.AWAITING_DOCTOR: self._handle_doctor,
            ConversationStep.AWAITING_SLOT: self._handle_slot,
            ConversationStep.AWAITING_BIRTHDATE: self._handle_birthdate,
            ConversationStep.AWAITING_REASON: self._handle_reason,
        }

    async def process(self, session: SessionData, message: str) -> FlowResult:
        """Run one turn and move the session to the next step.

        Args:
            session: Current session (mutated in place)
            message: User's message

        Returns:
            FlowResult with next step and reply
        """
        handler = self._handlers.get(session.step)
        if handler is None:
            raise ValueError(f"No handler for step {session.step.value}")

        try:
            result = await handler(session, message.strip())
        except ValidationError as e:
            logger.debug(f"Invalid input at {session.step.value}: {e}")
            return FlowResult(next_step=session.step, reply=e.user_message)

        if not can_transition(session.step, result.next_step):
            raise ValueError(
                f"Invalid transition {session.step.value} -> {result.next_step.value}"
            )

        logger.debug(f"Session {session.session_id}: {session.step.value} -> {result.next_step.value}")
        session.step = result.next_step
        return result

    # === Step handlers ===

    async def _handle_name(self, session: SessionData, text: str) -> FlowResult:
        if not text:
            raise ValidationError("Empty name", self.responses.ask_name_again())

        session.data["patient_name"] = text
        return FlowResult(
            next_step=ConversationStep.AWAITING_SPECIALTY,
            reply=self.responses.ask_specialty(text),
        )

    async def _handle_specialty(self, session: SessionData, text: str) -> FlowResult:
        if not text:
            raise ValidationError("Empty specialty", self.responses.ask_specialty_again())

        doctors = await self.repository.find_doctors(specialty=text)
        if not doctors:
            logger.info(f"No doctors for specialty {text!r}")
            return FlowResult(
                next_step=ConversationStep.AWAITING_SPECIALTY,
                reply=self.responses.no_doctors(text),
            )

        summaries = [d.to_dict() for d in doctors]
        session.data["specialty"] = text
        session.data["doctors"] = summaries
        return FlowResult(
            next_step=ConversationStep.AWAITING_DOCTOR,
            reply=self.responses.doctor_list(summaries),
        )

    async def _handle_doctor(self, session: SessionData, text: str) -> FlowResult:
        doctors = session.data.get("doctors", [])
        invalid = self.responses.invalid_doctor(len(doctors))

        if not text.isdecimal():
            raise ValidationError(f"Non-numeric doctor choice {text!r}", invalid)
        index = int(text)
        if not 1 <= index <= len(doctors):
            raise ValidationError(f"Doctor index {index} out of range", invalid)

        doctor = doctors[index - 1]
        slots = await self.availability.list_available_slots(doctor["id"])
        if not slots:
            session.data.pop("doctors", None)
            return FlowResult(
                next_step=ConversationStep.AWAITING_SPECIALTY,
                reply=self.responses.no_slots(doctor["name"]),
            )

        session.data["doctor_id"] = doctor["id"]
        session.data["doctor_name"] = doctor["name"]
        session.data["specialty"] = doctor["specialty"]
        self._offer_slots(session, slots)
        return FlowResult(
            next_step=ConversationStep.AWAITING_SLOT,
            reply=self.responses.slot_list(slots),
        )

    async def _handle_slot(self, session: SessionData, text: str) -> FlowResult:
        if not text:
            raise ValidationError("Empty slot", self.responses.invalid_slot_format())

        offered = [datetime.fromisoformat(s) for s in session.data.get("available_slots", [])]

        if text.isdecimal():
            index = int(text)
            if not 1 <= index <= len(offered):
                raise ValidationError(
                    f"Slot index {index} out of range", self.responses.slot_not_offered()
                )
            slot = offered[index - 1]
        else:
            slot = parse_datetime_input(text, self.responses.tz)
            if slot is None:
                raise ValidationError(
                    f"Unparseable slot input {text!r}", self.responses.invalid_slot_format()
                )
            if slot not in offered:
                raise ValidationError(
                    f"Slot {slot.isoformat()} was not offered", self.responses.slot_not_offered()
                )

        session.data["slot"] = slot.isoformat()
        return FlowResult(
            next_step=ConversationStep.AWAITING_BIRTHDATE,
            reply=self.responses.ask_birthdate(),
        )

    async def _handle_birthdate(self, session: SessionData, text: str) -> FlowResult:
        today = self._clock().astimezone(self.responses.tz).date()
        try:
            birth = parse_birthdate(text, today)
        except ValidationError as e:
            raise ValidationError(str(e), self.responses.invalid_birthdate()) from e

        session.data["patient_birth"] = birth.isoformat()
        return FlowResult(
            next_step=ConversationStep.AWAITING_REASON,
            reply=self.responses.ask_reason(),
        )

    async def _handle_reason(self, session: SessionData, text: str) -> FlowResult:
        if not text:
            raise ValidationError("Empty reason", self.responses.ask_reason_again())

        data = session.data
        data["reason"] = text
        doctor_id = data["doctor_id"]
        patient = PatientData(
            patient_name=data["patient_name"],
            patient_birth=date.fromisoformat(data["patient_birth"]),
            specialty=data["specialty"],
            reason=text,
        )

        try:
            booking = await self.availability.book_appointment(
                doctor_id,
                datetime.fromisoformat(data["slot"]),
                patient,
            )
        except ConflictError as e:
            logger.warning(f"Session {session.session_id}: slot taken before commit ({e})")
            return await self._reoffer_slots(session)
        except NotFoundError as e:
            logger.warning(f"Session {session.session_id}: booking aborted ({e})")
            return FlowResult(
                next_step=ConversationStep.ABORTED,
                reply=self.responses.booking_aborted(e.user_message),
            )

        data["protocol"] = booking.protocol
        return FlowResult(
            next_step=ConversationStep.COMPLETED,
            reply=self.responses.booking_confirmed(
                booking.protocol,
                booking.doctor_name or data.get("doctor_name", ""),
                booking.slot,
            ),
            booking=booking,
        )

    # === Helpers ===

    def _offer_slots(self, session: SessionData, slots: list[datetime]) -> None:
        """Remember the slots shown to the user."""
        shown = slots[: self.responses.max_slots_shown]
        session.data["available_slots"] = [s.isoformat() for s in shown]

    async def _reoffer_slots(self, session: SessionData) -> FlowResult:
        """Go back to slot selection after losing a booking race."""
        session.data.pop("slot", None)
        slots = await self.availability.list_available_slots(session.data["doctor_id"])
        if not slots:
            for key in ("doctor_id", "doctor_name", "doctors", "available_slots"):
                session.data.pop(key, None)
            return FlowResult(
                next_step=ConversationStep.AWAITING_SPECIALTY,
                reply=self.responses.slot_taken_none_left(),
            )

        self._offer_slots(session, slots)
        return FlowResult(
            next_step=ConversationStep.AWAITING_SLOT,
            reply=self.responses.slot_taken(slots),
        )
