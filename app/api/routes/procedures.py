"""
Procedure Audit Endpoint.

Takes text already extracted from a medical order (PDF text or OCR
output) and reports which catalog procedure it names and whether it is
authorized automatically or sent to audit.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from app.core.procedures import KeywordProcedureMatcher, analyze_text, get_procedure_matcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/procedures", tags=["Procedures"])


class AnalyzeRequest(BaseModel):
    """Text to analyze."""

    text: str = Field(
        ...,
        min_length=1,
        max_length=20000,
        description="Text extracted from the medical order",
        examples=["Solicito ressonância magnética de crânio"],
    )


class MatchedProcedure(BaseModel):
    id: int
    code: str
    name: str


class AnalyzeResponse(BaseModel):
    """Analysis result. Decision fields are present only when found."""

    model_config = ConfigDict(populate_by_name=True)

    found: bool
    request_id: Optional[str] = Field(default=None, alias="requestId")
    message: Optional[str] = None
    matched: Optional[MatchedProcedure] = None
    confidence: Optional[float] = None
    audit_required: Optional[bool] = None
    authorized: Optional[bool] = None
    reason: Optional[str] = None
    estimated_days: Optional[int] = None


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Identify a procedure and its audit decision",
)
async def analyze(
    request: AnalyzeRequest,
    matcher: KeywordProcedureMatcher = Depends(get_procedure_matcher),
):
    """
    Match the text against the procedure catalog.

    Returns ``found: false`` with a message when no procedure is
    recognized; otherwise the matched procedure, the match confidence and
    the authorization decision.
    """
    result = analyze_text(request.text, matcher)
    if not result["found"]:
        return AnalyzeResponse(**result)

    request_id = str(uuid.uuid4())
    logger.info(
        f"Procedure analysis {request_id}: {result['matched']['code']} "
        f"authorized={result['authorized']}"
    )
    return AnalyzeResponse(request_id=request_id, **result)
