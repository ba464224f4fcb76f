"""Response submission and retrieval REST endpoints.

Endpoints:
- POST /responses                        — submit (embedded) or save a draft (not embedded)
- GET  /responses?section_id=            — submitted responses with author names, oldest first
- GET  /responses/{response_id}/similar  — other submitted responses ranked by cosine similarity

A failed embedding does not fail the submission: the response is stored and
``embedding_skipped`` is true in the body.
"""

from __future__ import annotations

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from alignai.api.auth import AuthContext, current_profile, get_async_session, require_section_access
from alignai.api.deps import embedding_provider
from alignai.config import settings
from alignai.db.models import Response
from alignai.db.queries import display_name, list_submitted_responses, to_vector
from alignai.errors import DimensionMismatchError
from alignai.pipeline.embedder import EmbeddingProvider
from alignai.pipeline.similarity import rank_most_similar
from alignai.responses.submission import submit_response

logger = logging.getLogger(__name__)

responses_router = APIRouter(prefix="/responses", tags=["responses"])


class SubmitResponseRequest(BaseModel):
    section_id: uuid.UUID
    content: str = Field(min_length=1)
    is_draft: bool = False


class ResponseItem(BaseModel):
    id: str
    section_id: str
    user_id: str
    author: str | None = None
    content: str
    is_draft: bool
    has_embedding: bool
    created_at: str
    updated_at: str


class SubmitResponseResponse(BaseModel):
    response: ResponseItem
    created: bool
    embedding_skipped: bool


class SimilarResponse(BaseModel):
    id: str
    author: str
    similarity: float


class SimilarResponsesResponse(BaseModel):
    response_id: str
    matches: list[SimilarResponse]


def _item(row: Response, author: str | None = None) -> ResponseItem:
    return ResponseItem(
        id=str(row.id),
        section_id=str(row.section_id),
        user_id=row.user_id,
        author=author,
        content=row.content,
        is_draft=row.is_draft,
        has_embedding=row.embedding is not None,
        created_at=row.created_at.isoformat(),
        updated_at=row.updated_at.isoformat(),
    )


@responses_router.post("", response_model=SubmitResponseResponse, operation_id="submit_response")
async def submit_response_endpoint(
    body: SubmitResponseRequest,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
    embedder: EmbeddingProvider = Depends(embedding_provider),
) -> SubmitResponseResponse:
    await require_section_access(session, body.section_id, user, write=True)
    try:
        result = await submit_response(
            session, embedder, body.section_id, user.user_id, body.content, is_draft=body.is_draft
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return SubmitResponseResponse(
        response=_item(result.response),
        created=result.created,
        embedding_skipped=result.embedding_skipped,
    )


@responses_router.get("", response_model=list[ResponseItem], operation_id="list_responses")
async def list_responses_endpoint(
    section_id: Annotated[uuid.UUID, Query(description="Section to list submitted responses for")],
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> list[ResponseItem]:
    await require_section_access(session, section_id, user)
    rows = await list_submitted_responses(session, section_id)
    return [
        _item(row, display_name(profile, f"Team member {i}"))
        for i, (row, profile) in enumerate(rows, start=1)
    ]


@responses_router.get(
    "/{response_id}/similar",
    response_model=SimilarResponsesResponse,
    operation_id="rank_similar_responses",
)
async def similar_responses_endpoint(
    response_id: uuid.UUID,
    top_k: Annotated[int | None, Query(ge=0, le=50)] = None,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> SimilarResponsesResponse:
    target = await session.get(Response, response_id)
    if target is None:
        raise HTTPException(status_code=404, detail=f"Response '{response_id}' not found.")
    await require_section_access(session, target.section_id, user)

    target_vector = to_vector(target.embedding)
    if target_vector is None:
        raise HTTPException(status_code=409, detail="Response has no embedding to compare.")

    rows = await list_submitted_responses(session, target.section_id)
    authors: dict[str, str] = {}
    candidates = []
    for i, (row, profile) in enumerate(rows, start=1):
        vector = to_vector(row.embedding)
        if row.id == target.id or vector is None:
            continue
        authors[str(row.id)] = display_name(profile, f"Team member {i}")
        candidates.append((str(row.id), vector))

    try:
        ranked = rank_most_similar(
            target_vector,
            candidates,
            top_k=top_k if top_k is not None else settings.similar_responses_top_k,
        )
    except DimensionMismatchError as exc:
        logger.error("Similar responses: incompatible stored embeddings in section %s: %s", target.section_id, exc)
        raise HTTPException(status_code=500, detail="Stored embeddings have incompatible dimensions.") from exc

    return SimilarResponsesResponse(
        response_id=str(response_id),
        matches=[SimilarResponse(id=m.id, author=authors[m.id], similarity=m.similarity) for m in ranked],
    )
