"""
Response Generator for the booking conversation.

Template-based pt-BR replies. Dates are shown in the clinic time zone.
"""

import logging
from datetime import datetime, tzinfo
from typing import Optional

from app.config import settings

logger = logging.getLogger(__name__)


class ResponseGenerator:
    """Builds every user-facing message of the booking flow."""

    def __init__(self, tz: Optional[tzinfo] = None, max_slots_shown: Optional[int] = None):
        """Initialize generator.

        Args:
            tz: Zone used to display instants (defaults to settings)
            max_slots_shown: Cap on listed slots (defaults to settings)
        """
        self.tz = tz or settings.clinic_tz
        self.max_slots_shown = (
            settings.max_slots_shown if max_slots_shown is None else max_slots_shown
        )

    # === Formatting ===

    def format_slot(self, slot: datetime) -> str:
        """Short form, e.g. ``15/05 às 09:30``."""
        return slot.astimezone(self.tz).strftime("%d/%m às %H:%M")

    def format_slot_full(self, slot: datetime) -> str:
        """Long form, e.g. ``15/05/2026 às 09:30``."""
        return slot.astimezone(self.tz).strftime("%d/%m/%Y às %H:%M")

    # === Prompts ===

    def opening(self) -> str:
        return "Bem-vindo ao agendamento! Qual é o seu **nome completo**?"

    def ask_name_again(self) -> str:
        return "Por favor, me diga seu **nome completo** para começarmos o agendamento."

    def ask_specialty(self, patient_name: str) -> str:
        return (
            f"Ótimo, {patient_name}. Qual **especialidade** você precisa? "
            "(Ex: Cardiologia, Dermatologia)"
        )

    def ask_specialty_again(self) -> str:
        return "Por favor, informe a **especialidade** desejada (Ex: Cardiologia, Dermatologia)."

    def no_doctors(self, specialty: str) -> str:
        return (
            f'Não encontramos médicos para "{specialty}". '
            "Por favor, tente outra especialidade ou digite 'recomeçar'."
        )

    def doctor_list(self, doctors: list[dict]) -> str:
        """List doctors as a numbered menu.

        Args:
            doctors: Doctor summaries with ``name`` and ``specialty``
        """
        noun = "médico" if len(doctors) == 1 else "médicos"
        lines = [f"Encontrei {len(doctors)} {noun}. Digite o **NÚMERO** do médico que você prefere:"]
        for index, doctor in enumerate(doctors, start=1):
            lines.append(f"{index}. {doctor['name']} (Especialidade: {doctor['specialty']})")
        return "\n".join(lines)

    def invalid_doctor(self, count: int) -> str:
        if count == 1:
            return "Número do médico inválido. Digite 1 para escolher o médico da lista."
        return f"Número do médico inválido. Digite um número de 1 a {count}."

    def slot_list(self, slots: list[datetime]) -> str:
        """Numbered list of the first slots offered."""
        shown = slots[: self.max_slots_shown]
        lines = [
            "Horários disponíveis (digite o **NÚMERO** ou a data/hora exata AAAA-MM-DD HH:MM):",
            "",
        ]
        for index, slot in enumerate(shown, start=1):
            lines.append(f"{index}. {self.format_slot(slot)}")
        return "\n".join(lines)

    def no_slots(self, doctor_name: Optional[str] = None) -> str:
        who = f"{doctor_name} não tem" if doctor_name else "Não há"
        return (
            f"{who} horários disponíveis nos próximos {settings.booking_horizon_days} dias. "
            "Por favor, informe outra **especialidade** ou digite 'recomeçar'."
        )

    def invalid_slot_format(self) -> str:
        return (
            "Formato de horário inválido. Por favor, digite o NÚMERO do horário "
            "ou a data/hora no formato AAAA-MM-DD HH:MM."
        )

    def slot_not_offered(self) -> str:
        return (
            "Horário indisponível ou já passou. Por favor, selecione um horário válido "
            "da lista ou digite 'recomeçar'."
        )

    def ask_birthdate(self) -> str:
        return "Quase lá! Por favor, me informe a sua **data de nascimento** (AAAA-MM-DD)."

    def invalid_birthdate(self) -> str:
        return "Data de nascimento inválida. Use o formato AAAA-MM-DD (ex: 1990-05-15)."

    def ask_reason(self) -> str:
        return "Qual o **motivo principal** da consulta?"

    def ask_reason_again(self) -> str:
        return "Por favor, descreva brevemente o **motivo** da consulta."

    # === Outcomes ===

    def booking_confirmed(self, protocol: str, doctor_name: str, slot: datetime) -> str:
        return (
            "✅ **AGENDAMENTO CONFIRMADO!**\n\n"
            f"**Protocolo:** {protocol}\n"
            f"**Médico:** {doctor_name}\n"
            f"**Horário:** {self.format_slot_full(slot)}\n\n"
            "Obrigado! Digite 'recomeçar' para um novo agendamento."
        )

    def slot_taken(self, slots: list[datetime]) -> str:
        return (
            "Este horário não está mais disponível. Escolha outro.\n\n"
            + self.slot_list(slots)
        )

    def slot_taken_none_left(self) -> str:
        return (
            "Este horário não está mais disponível e o médico não tem outros horários livres. "
            "Por favor, informe outra **especialidade** ou digite 'recomeçar'."
        )

    def booking_aborted(self, detail: str) -> str:
        return f"❌ {detail} Digite 'recomeçar' para tentar novamente."

    def goodbye(self) -> str:
        return "Tudo bem, saindo do agendamento. Até logo!"

    def internal_error(self) -> str:
        return "❌ Houve um erro interno no agendamento. Digite 'recomeçar' para tentar novamente."


# Singleton
_generator: Optional[ResponseGenerator] = None


def get_response_generator() -> ResponseGenerator:
    """Get singleton ResponseGenerator."""
    global _generator
    if _generator is None:
        _generator = ResponseGenerator()
    return _generator
