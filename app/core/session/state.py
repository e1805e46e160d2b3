"""Booking conversation state machine."""

from enum import Enum
from typing import Set


class ConversationStep(str, Enum):
    """Steps of the booking conversation."""

    # Information gathering
    AWAITING_NAME = "awaiting_name"
    AWAITING_SPECIALTY = "awaiting_specialty"
    AWAITING_DOCTOR = "awaiting_doctor"
    AWAITING_SLOT = "awaiting_slot"
    AWAITING_BIRTHDATE = "awaiting_birthdate"
    AWAITING_REASON = "awaiting_reason"

    # Terminal states
    COMPLETED = "completed"
    ABORTED = "aborted"


INITIAL_STEP = ConversationStep.AWAITING_NAME


# Valid state transitions. Staying in the same step (reprompt) is always allowed.
VALID_TRANSITIONS: dict[ConversationStep, Set[ConversationStep]] = {
    ConversationStep.AWAITING_NAME: {
        ConversationStep.AWAITING_SPECIALTY,
    },
    ConversationStep.AWAITING_SPECIALTY: {
        ConversationStep.AWAITING_DOCTOR,
    },
    ConversationStep.AWAITING_DOCTOR: {
        ConversationStep.AWAITING_SLOT,
        ConversationStep.AWAITING_SPECIALTY,  # Doctor has no free slots
    },
    ConversationStep.AWAITING_SLOT: {
        ConversationStep.AWAITING_BIRTHDATE,
    },
    ConversationStep.AWAITING_BIRTHDATE: {
        ConversationStep.AWAITING_REASON,
    },
    ConversationStep.AWAITING_REASON: {
        ConversationStep.COMPLETED,
        ConversationStep.AWAITING_SLOT,  # Slot taken meanwhile
        ConversationStep.AWAITING_SPECIALTY,  # Slot taken and none left
        ConversationStep.ABORTED,
    },
    ConversationStep.COMPLETED: set(),
    ConversationStep.ABORTED: set(),
}


def can_transition(from_step: ConversationStep, to_step: ConversationStep) -> bool:
    """Check if a transition is valid."""
    if from_step == to_step and not is_terminal_step(from_step):
        return True
    return to_step in VALID_TRANSITIONS.get(from_step, set())


def get_valid_transitions(step: ConversationStep) -> Set[ConversationStep]:
    """Get all valid transitions from a step."""
    return VALID_TRANSITIONS.get(step, set())


def is_terminal_step(step: ConversationStep) -> bool:
    """Check if step is terminal (session is discarded)."""
    return step in {
        ConversationStep.COMPLETED,
        ConversationStep.ABORTED,
    }
