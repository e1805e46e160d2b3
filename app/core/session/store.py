"""
Conversation session storage.

The scheduling engine depends on ``SessionStore`` only. Backends:
- InMemorySessionStore: process-local dict (tests, single instance)
- RedisSessionStore: shared store for multi-instance deployments

Key pattern (Redis): scheduler:v1:session:{session_id}
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.config import settings
from app.core.errors import InfrastructureError
from app.infra.redis import APP_PREFIX, get_redis
from .models import SessionData

logger = logging.getLogger(__name__)

SESSION_PREFIX = f"{APP_PREFIX}session:"


def _utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class SessionStore(ABC):
    """Get/save/delete conversation sessions by id."""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[SessionData]:
        """Return the session or None if absent."""

    @abstractmethod
    async def save(self, session: SessionData) -> None:
        """Create or overwrite a session."""

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Delete a session. Returns True if it existed."""


class InMemorySessionStore(SessionStore):
    """
    Process-local session store.

    Sessions are lost on restart and are not shared between instances.
    Stored as JSON so callers never share mutable state with the store.
    """

    def __init__(self):
        self._sessions: dict[str, str] = {}

    async def get(self, session_id: str) -> Optional[SessionData]:
        raw = self._sessions.get(session_id)
        if raw is None:
            return None
        return SessionData.from_json(raw)

    async def save(self, session: SessionData) -> None:
        session.updated_at = _utcnow()
        self._sessions[session.session_id] = session.to_json()

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore(SessionStore):
    """
    Redis-backed session store with TTL.

    Redis failures raise InfrastructureError: a conversation must not
    silently restart because its state could not be read.
    """

    def __init__(self, redis_client: Redis, ttl: Optional[int] = None):
        self.redis = redis_client
        self.ttl = ttl or settings.redis_session_ttl

    def _key(self, session_id: str) -> str:
        """Generate Redis key."""
        return f"{SESSION_PREFIX}{session_id}"

    async def get(self, session_id: str) -> Optional[SessionData]:
        try:
            data = await self.redis.get(self._key(session_id))
        except RedisError as e:
            logger.error(f"Failed to get session {session_id}: {e}")
            raise InfrastructureError(f"Session read failed: {e}") from e

        if data is None:
            return None
        return SessionData.from_json(data)

    async def save(self, session: SessionData) -> None:
        session.updated_at = _utcnow()
        try:
            await self.redis.setex(self._key(session.session_id), self.ttl, session.to_json())
        except RedisError as e:
            logger.error(f"Failed to save session {session.session_id}: {e}")
            raise InfrastructureError(f"Session write failed: {e}") from e
        logger.debug(f"Session saved: {session.session_id}")

    async def delete(self, session_id: str) -> bool:
        try:
            deleted = await self.redis.delete(self._key(session_id))
        except RedisError as e:
            logger.error(f"Failed to delete session {session_id}: {e}")
            raise InfrastructureError(f"Session delete failed: {e}") from e

        if deleted:
            logger.debug(f"Session deleted: {session_id}")
        return bool(deleted)


# Singleton
_store: Optional[SessionStore] = None


async def get_session_store() -> SessionStore:
    """
    Get singleton SessionStore.

    Uses Redis when reachable, otherwise falls back to process memory.
    """
    global _store
    if _store is None:
        redis = await get_redis()
        if redis is not None:
            _store = RedisSessionStore(redis)
            logger.info("Using Redis session store")
        else:
            _store = InMemorySessionStore()
            logger.warning("Redis unavailable, using in-memory session store")
    return _store
