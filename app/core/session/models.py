"""Conversation session data."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .state import ConversationStep, INITIAL_STEP


def _utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


@dataclass
class SessionData:
    """
    Per-session booking conversation state.

    ``data`` holds the partial booking collected so far; all values are
    JSON-serialisable so the session can live in Redis:

    - patient_name, specialty, reason: str
    - doctor_id: int
    - doctors: list of doctor summaries shown to the user
    - slot: ISO 8601 instant
    - available_slots: ISO 8601 instants offered to the user
    - patient_birth: YYYY-MM-DD
    """

    session_id: str
    step: ConversationStep = INITIAL_STEP
    data: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def reset(self) -> None:
        """Back to the first step with nothing collected."""
        self.step = INITIAL_STEP
        self.data = {}
        self.updated_at = _utcnow()

    def to_json(self) -> str:
        """Convert to JSON string for Redis storage."""
        return json.dumps({
            "session_id": self.session_id,
            "step": self.step.value,
            "data": self.data,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        })

    @classmethod
    def from_json(cls, json_str: str) -> "SessionData":
        """Create from JSON string."""
        data = json.loads(json_str)
        return cls(
            session_id=data["session_id"],
            step=ConversationStep(data.get("step", INITIAL_STEP.value)),
            data=data.get("data", {}),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return json.loads(self.to_json())
