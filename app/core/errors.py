"""Scheduling error hierarchy.

Every error carries a patient-facing ``user_message`` (pt-BR) so callers
can surface it without leaking internal detail.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base class for scheduling failures."""

    user_message = "Não foi possível concluir a operação."

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        if user_message is not None:
            self.user_message = user_message


class ValidationError(SchedulingError):
    """Malformed user input. Recovered by reprompting."""

    user_message = "Entrada inválida. Tente novamente."


class NotFoundError(SchedulingError):
    """A referenced entity does not exist."""

    user_message = "Registro não encontrado."


class DoctorNotFoundError(NotFoundError):
    """Raised when a doctor id is unknown."""

    user_message = "Médico não encontrado."

    def __init__(self, doctor_id: int):
        super().__init__(f"Doctor {doctor_id} not found")
        self.doctor_id = doctor_id


class ConflictError(SchedulingError):
    """The requested slot was taken between offer and commit."""

    user_message = "Este horário não está mais disponível. Escolha outro."


class SlotUnavailableError(ConflictError):
    """Raised by the service-level re-check before committing."""
    pass


class BookingConflictError(ConflictError):
    """Raised by the repository when (doctor, instant) is already booked."""
    pass


class InfrastructureError(SchedulingError):
    """Storage or collaborator failure. Not recoverable within a conversation."""

    user_message = "Houve um erro interno no agendamento."
