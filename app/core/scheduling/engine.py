"""
Scheduling Engine - Main Orchestrator.

Runs one conversation turn: global commands, session load/save and the
conversation flow. Any unexpected failure tears the session down so the
conversation never resumes past an internal error.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from app.config import settings
from app.core.scheduling.availability import AvailabilityService
from app.core.scheduling.demo import demo_doctors
from app.core.scheduling.flow import ConversationFlow
from app.core.scheduling.repository import DoctorRepository, InMemoryDoctorRepository
from app.core.scheduling.response import ResponseGenerator, get_response_generator
from app.core.session.models import SessionData
from app.core.session.state import ConversationStep, INITIAL_STEP, is_terminal_step
from app.core.session.store import SessionStore, get_session_store

logger = logging.getLogger(__name__)


@dataclass
class EngineResponse:
    """Response from scheduling engine."""

    reply: str
    session_id: str
    step: Optional[ConversationStep] = None
    exit: bool = False
    error: bool = False
    protocol: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        result = {
            "reply": self.reply,
            "session_id": self.session_id,
            "exit": self.exit,
        }
        if self.step is not None:
            result["step"] = self.step.value
        if self.protocol:
            result["protocol"] = self.protocol
        return result


class SchedulingEngine:
    """
    Main orchestrator for the booking assistant.

    Coordinates:
    - Global reset/exit commands
    - Session storage
    - Conversation flow (directory lookups, availability, booking)
    """

    def __init__(
        self,
        availability: AvailabilityService,
        session_store: Optional[SessionStore] = None,
        response_generator: Optional[ResponseGenerator] = None,
        flow: Optional[ConversationFlow] = None,
    ):
        """Initialize engine.

        Args:
            availability: Slot listing and booking service
            session_store: Session backend (defaults to singleton)
            response_generator: Reply templates (defaults to singleton)
            flow: Conversation flow (built from the above by default)
        """
        self.availability = availability
        self._session_store = session_store
        self.responses = response_generator or get_response_generator()
        self.flow = flow or ConversationFlow(availability, self.responses)
        self.reset_keywords = settings.reset_keywords_set
        self.exit_keywords = settings.exit_keywords_set

    async def _get_session_store(self) -> SessionStore:
        """Get session store."""
        if self._session_store is None:
            self._session_store = await get_session_store()
        return self._session_store

    async def process(
        self,
        message: Optional[str],
        session_id: Optional[str] = None,
    ) -> EngineResponse:
        """Process a user message.

        Args:
            message: User's message (may be empty on first contact)
            session_id: Client-supplied session id; generated if absent

        Returns:
            EngineResponse with bot reply and flags for the transport
        """
        session_id = session_id or uuid.uuid4().hex
        text = (message or "").strip()
        command = text.lower()

        try:
            store = await self._get_session_store()

            if command in self.exit_keywords:
                await store.delete(session_id)
                logger.info(f"Session {session_id} exited by user")
                return EngineResponse(
                    reply=self.responses.goodbye(),
                    session_id=session_id,
                    exit=True,
                )

            session = await store.get(session_id)
            if session is None or command in self.reset_keywords:
                return await self._restart(store, session_id)

            result = await self.flow.process(session, text)

            if is_terminal_step(result.next_step):
                await store.delete(session_id)
                logger.info(f"Session {session_id} finished at {result.next_step.value}")
            else:
                await store.save(session)

            return EngineResponse(
                reply=result.reply,
                session_id=session_id,
                step=result.next_step,
                protocol=result.booking.protocol if result.booking else None,
            )

        except Exception as e:
            logger.error(f"Error processing message for session {session_id}: {e}", exc_info=True)
            await self._teardown(session_id)
            return EngineResponse(
                reply=self.responses.internal_error(),
                session_id=session_id,
                error=True,
            )

    async def _restart(self, store: SessionStore, session_id: str) -> EngineResponse:
        """Start the conversation over with nothing collected."""
        session = SessionData(session_id=session_id)
        session.reset()
        await store.save(session)
        logger.debug(f"Session {session_id} started")
        return EngineResponse(
            reply=self.responses.opening(),
            session_id=session_id,
            step=INITIAL_STEP,
        )

    async def _teardown(self, session_id: str) -> None:
        """Drop the session after an internal error."""
        try:
            store = await self._get_session_store()
            await store.delete(session_id)
        except Exception as e:
            logger.error(f"Failed to delete session {session_id} after error: {e}", exc_info=True)


# Singletons
_repository: Optional[DoctorRepository] = None
_availability: Optional[AvailabilityService] = None
_engine: Optional[SchedulingEngine] = None


def get_doctor_repository() -> DoctorRepository:
    """
    Get singleton DoctorRepository for the configured storage backend.

    ``memory`` keeps everything in process (seeded with demo doctors when
    enabled); ``database`` uses PostgreSQL through SQLAlchemy.
    """
    global _repository
    if _repository is None:
        if settings.storage_backend == "database":
            from app.core.scheduling.sql_repository import SQLAlchemyDoctorRepository
            from app.infra.database import get_session_factory

            _repository = SQLAlchemyDoctorRepository(get_session_factory())
        else:
            doctors = demo_doctors() if settings.seed_demo_data else []
            _repository = InMemoryDoctorRepository(doctors)
        logger.info(f"Using {settings.storage_backend} doctor repository")
    return _repository


def get_availability_service() -> AvailabilityService:
    """Get singleton AvailabilityService."""
    global _availability
    if _availability is None:
        _availability = AvailabilityService(get_doctor_repository())
    return _availability


def get_scheduling_engine() -> SchedulingEngine:
    """Get singleton SchedulingEngine."""
    global _engine
    if _engine is None:
        _engine = SchedulingEngine(get_availability_service())
    return _engine


async def process_message(
    message: Optional[str],
    session_id: Optional[str] = None,
) -> EngineResponse:
    """Convenience function to process a message.

    Args:
        message: User's message
        session_id: Optional session ID

    Returns:
        EngineResponse
    """
    engine = get_scheduling_engine()
    return await engine.process(message, session_id)
