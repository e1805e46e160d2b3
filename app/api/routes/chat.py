"""
Booking Conversation Endpoint.

One conversation turn per request. The client keeps ``sessionId`` across
turns; ``exit`` tells it to leave the booking chat.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.core.scheduling.engine import SchedulingEngine, get_scheduling_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Agendamento"])


class AgendamentoRequest(BaseModel):
    """Conversation turn request."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(
        default="",
        max_length=2000,
        description="User's message (empty on first contact)",
        examples=["Maria Silva"],
    )
    session_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        alias="sessionId",
        description="Opaque client-side session identifier",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    )


class AgendamentoResponse(BaseModel):
    """Conversation turn response."""

    reply: str = Field(..., description="Bot's reply")
    exit: bool = Field(default=False, description="Client should leave the booking chat")
    step: Optional[str] = Field(default=None, description="Current conversation step")
    protocol: Optional[str] = Field(default=None, description="Protocol of a confirmed booking")


@router.post(
    "/agendamento",
    response_model=AgendamentoResponse,
    status_code=status.HTTP_200_OK,
    summary="Send a booking conversation message",
    responses={
        200: {"description": "Successful turn"},
        500: {"description": "Internal error; the session was discarded"},
    },
)
async def agendamento(
    request: AgendamentoRequest,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """
    Process one booking conversation turn.

    Internal errors discard the session and return 500 with a restart
    message in ``reply``.
    """
    response = await engine.process(request.message, request.session_id)

    body = AgendamentoResponse(
        reply=response.reply,
        exit=response.exit,
        step=response.step.value if response.step else None,
        protocol=response.protocol,
    )

    if response.error:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(mode="json"),
        )
    return body
