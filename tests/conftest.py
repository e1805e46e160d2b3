"""Shared fixtures: demo doctors, a fixed clock and in-memory backends."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from app.core.scheduling.availability import AvailabilityService
from app.core.scheduling.demo import demo_doctors
from app.core.scheduling.engine import SchedulingEngine
from app.core.scheduling.flow import ConversationFlow
from app.core.scheduling.repository import InMemoryDoctorRepository
from app.core.scheduling.response import ResponseGenerator
from app.core.session.store import InMemorySessionStore
from app.infra.notifications import NotificationService


@pytest.fixture
def clinic_tz():
    return ZoneInfo("America/Sao_Paulo")


@pytest.fixture
def now():
    """Monday 2026-05-11, 09:00 in São Paulo."""
    return datetime(2026, 5, 11, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repository():
    return InMemoryDoctorRepository(demo_doctors())


@pytest.fixture
def notifier():
    return NotificationService()


@pytest.fixture
def availability(repository, notifier, now, clinic_tz):
    return AvailabilityService(
        repository,
        notifier=notifier,
        clock=lambda: now,
        horizon_days=30,
        step_minutes=30,
        tz=clinic_tz,
    )


@pytest.fixture
def responses(clinic_tz):
    return ResponseGenerator(tz=clinic_tz, max_slots_shown=10)


@pytest.fixture
def flow(availability, responses, now):
    return ConversationFlow(availability, responses, clock=lambda: now)


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def engine(availability, session_store, responses, flow):
    return SchedulingEngine(
        availability,
        session_store=session_store,
        response_generator=responses,
        flow=flow,
    )
