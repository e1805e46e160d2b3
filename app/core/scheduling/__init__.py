"""
Scheduling Module

Provides the slot generator, doctor repositories, availability service,
conversation flow and the scheduling engine of the booking assistant.

Usage:
    from app.core.scheduling import process_message

    # Process a chat message
    response = await process_message(
        message="Maria Silva",
        session_id="abc-123",
    )
    print(response.reply)  # Bot's reply
    print(response.exit)  # User asked to leave the conversation
"""

# Domain types
from app.core.scheduling.types import (
    Booking,
    Doctor,
    PatientData,
    WeeklyAvailabilityWindow,
)

# Slot Generator
from app.core.scheduling.slots import generate_slots

# Repository
from app.core.scheduling.repository import (
    DoctorRepository,
    InMemoryDoctorRepository,
)

# Availability Service
from app.core.scheduling.availability import (
    AvailabilityService,
    generate_protocol,
)

# Response Generator
from app.core.scheduling.response import (
    ResponseGenerator,
    get_response_generator,
)

# Conversation Flow
from app.core.scheduling.flow import (
    ConversationFlow,
    FlowResult,
)

# Scheduling Engine (main orchestrator)
from app.core.scheduling.engine import (
    SchedulingEngine,
    EngineResponse,
    get_availability_service,
    get_doctor_repository,
    get_scheduling_engine,
    process_message,
)

__all__ = [
    # Domain types
    "Booking",
    "Doctor",
    "PatientData",
    "WeeklyAvailabilityWindow",
    # Slot Generator
    "generate_slots",
    # Repository
    "DoctorRepository",
    "InMemoryDoctorRepository",
    # Availability Service
    "AvailabilityService",
    "generate_protocol",
    # Response Generator
    "ResponseGenerator",
    "get_response_generator",
    # Conversation Flow
    "ConversationFlow",
    "FlowResult",
    # Scheduling Engine
    "SchedulingEngine",
    "EngineResponse",
    "get_availability_service",
    "get_doctor_repository",
    "get_scheduling_engine",
    "process_message",
]
