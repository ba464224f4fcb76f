"""Consensus REST endpoints.

Endpoints:
- POST /sections/{section_id}/consensus          — synthesize a PENDING consensus
- GET  /sections/{section_id}/consensus          — current consensus for the section
- POST /sections/{section_id}/consensus/approve  — record the caller's approval
- POST /sections/{section_id}/consensus/reject   — reject a pending consensus

When the section has an open conflict record its differences are passed to
the model so the merged statement addresses them.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from alignai.api.auth import AuthContext, current_profile, get_async_session, require_section_access
from alignai.api.deps import completion_provider
from alignai.api.routes.alignment import parse_error_response, provider_error_response
from alignai.consensus.approval import approve_consensus, reject_consensus
from alignai.consensus.synthesizer import synthesize_consensus
from alignai.db.models import Consensus, ConflictResolutionStatus
from alignai.db.queries import get_conflict, get_consensus
from alignai.errors import (
    AnalysisParseError,
    ConsensusStateError,
    InsufficientDataError,
    LLMProviderError,
    NotFoundError,
)
from alignai.pipeline.completion import CompletionProvider
from alignai.schemas import ConflictAnalysis

logger = logging.getLogger(__name__)

consensus_router = APIRouter(prefix="/sections/{section_id}/consensus", tags=["consensus"])


class SynthesizeRequest(BaseModel):
    use_open_conflict: bool = True


class ConsensusResponse(BaseModel):
    id: str
    section_id: str
    merged_content: str
    reasoning: str
    confidence: float
    status: str
    approved_by: list[str]
    updated_at: str


def _consensus(record: Consensus) -> ConsensusResponse:
    return ConsensusResponse(
        id=str(record.id),
        section_id=str(record.section_id),
        merged_content=record.merged_content,
        reasoning=record.reasoning,
        confidence=record.confidence,
        status=record.status.value,
        approved_by=list(record.approved_by or []),
        updated_at=record.updated_at.isoformat(),
    )


async def _open_conflict_analysis(session: AsyncSession, section_id: uuid.UUID) -> ConflictAnalysis | None:
    record = await get_conflict(session, section_id)
    if record is None or record.resolution_status is not ConflictResolutionStatus.open:
        return None
    try:
        return ConflictAnalysis.model_validate(record.analysis)
    except ValidationError:
        logger.warning("Stored conflict analysis for section %s is malformed; ignoring it", section_id)
        return None


@consensus_router.post(
    "",
    response_model=ConsensusResponse,
    status_code=201,
    operation_id="synthesize_consensus",
    responses={502: {"description": "Unparseable model output"}, 503: {"description": "Provider error"}},
)
async def synthesize_endpoint(
    section_id: uuid.UUID,
    body: SynthesizeRequest | None = None,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
    completion: CompletionProvider = Depends(completion_provider),
):
    await require_section_access(session, section_id, user, write=True)
    use_conflict = body.use_open_conflict if body is not None else True
    conflict = await _open_conflict_analysis(session, section_id) if use_conflict else None
    try:
        record = await synthesize_consensus(session, section_id, completion, conflict)
    except InsufficientDataError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except LLMProviderError as exc:
        logger.warning("Consensus for section %s: provider error: %s", section_id, exc)
        return provider_error_response(exc)
    except AnalysisParseError as exc:
        logger.warning("Consensus for section %s: unparseable output: %s", section_id, exc)
        return parse_error_response(exc)
    return _consensus(record)


@consensus_router.get("", response_model=ConsensusResponse, operation_id="get_consensus")
async def get_consensus_endpoint(
    section_id: uuid.UUID,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> ConsensusResponse:
    await require_section_access(session, section_id, user)
    record = await get_consensus(session, section_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No consensus for section '{section_id}'.")
    return _consensus(record)


@consensus_router.post("/approve", response_model=ConsensusResponse, operation_id="approve_consensus")
async def approve_endpoint(
    section_id: uuid.UUID,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> ConsensusResponse:
    await require_section_access(session, section_id, user, write=True)
    try:
        record = await approve_consensus(session, section_id, user.user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ConsensusStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _consensus(record)


@consensus_router.post("/reject", response_model=ConsensusResponse, operation_id="reject_consensus")
async def reject_endpoint(
    section_id: uuid.UUID,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> ConsensusResponse:
    await require_section_access(session, section_id, user, write=True)
    try:
        record = await reject_consensus(session, section_id, user.user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ConsensusStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _consensus(record)
