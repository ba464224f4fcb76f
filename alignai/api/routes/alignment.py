"""Alignment and conflict REST endpoints.

Endpoints:
- GET  /sections/{section_id}/alignment        — run conflict detection for a section
- POST /sections/{section_id}/conflict/dismiss — dismiss the section's conflict record
- GET  /projects/{project_id}/alignment        — per-section alignment dashboard

Section alignment returns one of four statuses.  insufficient_data, aligned
and conflict come back as 200 with the detector result; provider_error is a
503 so callers can tell "the model is down" apart from "the team agrees".
A model reply that cannot be parsed is a 502 carrying the raw text.
"""

from __future__ import annotations

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from alignai.alignment.dashboard import ProjectAlignment, project_alignment
from alignai.api.auth import AuthContext, current_profile, get_async_session, require_project_access, require_section_access
from alignai.api.deps import completion_provider
from alignai.conflict.detector import detect_conflict, dismiss_conflict
from alignai.errors import AnalysisParseError, DimensionMismatchError, LLMProviderError
from alignai.pipeline.completion import CompletionProvider
from alignai.schemas import AlignmentStatus, ConflictResult

logger = logging.getLogger(__name__)

alignment_router = APIRouter(tags=["alignment"])


class ConflictRecordResponse(BaseModel):
    section_id: str
    resolution_status: str
    severity: str | None
    similarity_score: float | None


def provider_error_response(exc: LLMProviderError) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"status": AlignmentStatus.provider_error.value, "detail": str(exc)},
    )


def parse_error_response(exc: AnalysisParseError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={"detail": str(exc), "raw_text": exc.raw_text},
    )


@alignment_router.get(
    "/sections/{section_id}/alignment",
    response_model=ConflictResult,
    operation_id="check_section_alignment",
    responses={502: {"description": "Unparseable model output"}, 503: {"description": "Provider error"}},
)
async def section_alignment_endpoint(
    section_id: uuid.UUID,
    threshold: Annotated[float | None, Query(ge=-1.0, le=1.0)] = None,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
    completion: CompletionProvider = Depends(completion_provider),
):
    await require_section_access(session, section_id, user)
    try:
        return await detect_conflict(session, section_id, completion, threshold)
    except LLMProviderError as exc:
        logger.warning("Section %s alignment: provider error: %s", section_id, exc)
        return provider_error_response(exc)
    except AnalysisParseError as exc:
        logger.warning("Section %s alignment: unparseable analysis: %s", section_id, exc)
        return parse_error_response(exc)
    except DimensionMismatchError as exc:
        logger.error("Section %s alignment: incompatible stored embeddings: %s", section_id, exc)
        raise HTTPException(status_code=500, detail="Stored embeddings have incompatible dimensions.") from exc


@alignment_router.post(
    "/sections/{section_id}/conflict/dismiss",
    response_model=ConflictRecordResponse,
    operation_id="dismiss_conflict",
)
async def dismiss_conflict_endpoint(
    section_id: uuid.UUID,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> ConflictRecordResponse:
    await require_section_access(session, section_id, user, write=True)
    record = await dismiss_conflict(session, section_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No conflict recorded for section '{section_id}'.")
    return ConflictRecordResponse(
        section_id=str(record.section_id),
        resolution_status=record.resolution_status.value,
        severity=record.severity,
        similarity_score=record.similarity_score,
    )


@alignment_router.get(
    "/projects/{project_id}/alignment",
    response_model=ProjectAlignment,
    operation_id="get_project_alignment",
)
async def project_alignment_endpoint(
    project_id: uuid.UUID,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> ProjectAlignment:
    await require_project_access(session, project_id, user)
    return await project_alignment(session, project_id)
