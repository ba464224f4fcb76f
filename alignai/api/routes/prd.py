"""PRD export REST endpoints.

Endpoints:
- POST /projects/{project_id}/prd         — full PRD markdown plus structured section data
- GET  /projects/{project_id}/prd/stream  — PRD markdown streamed as Server-Sent Events

Stream event types:
- "sections" — structured section data, sent once before any text
- "delta"    — a markdown fragment
- "error"    — provider failure mid-stream; the stream ends after it
- "done"     — normal end of stream
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import AsyncGenerator

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sse_starlette.sse import EventSourceResponse

from alignai.api.auth import AuthContext, current_profile, get_async_session, require_project_access
from alignai.api.deps import completion_provider
from alignai.api.routes.alignment import provider_error_response
from alignai.errors import LLMProviderError
from alignai.pipeline.completion import CompletionProvider
from alignai.prd.export import collect_approved_consensus, generate_prd, stream_prd, structured_sections

logger = logging.getLogger(__name__)

prd_router = APIRouter(prefix="/projects/{project_id}/prd", tags=["prd"])


class PRDResponse(BaseModel):
    project_id: str
    markdown: str
    structured_data: dict[str, str]


@prd_router.post(
    "",
    response_model=PRDResponse,
    operation_id="generate_prd",
    responses={503: {"description": "Provider error"}},
)
async def generate_prd_endpoint(
    project_id: uuid.UUID,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
    completion: CompletionProvider = Depends(completion_provider),
):
    await require_project_access(session, project_id, user)
    try:
        document = await generate_prd(session, project_id, completion)
    except LLMProviderError as exc:
        logger.warning("PRD export for project %s: provider error: %s", project_id, exc)
        return provider_error_response(exc)
    return PRDResponse(
        project_id=document.project_id,
        markdown=document.markdown,
        structured_data=document.structured_data,
    )


@prd_router.get(
    "/stream",
    summary="Stream the PRD as Server-Sent Events",
    response_class=EventSourceResponse,
    operation_id="stream_prd",
)
async def stream_prd_endpoint(
    project_id: uuid.UUID,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
    completion: CompletionProvider = Depends(completion_provider),
) -> EventSourceResponse:
    await require_project_access(session, project_id, user)
    sections = await collect_approved_consensus(session, project_id)

    async def event_generator() -> AsyncGenerator[dict, None]:
        yield {"event": "sections", "data": json.dumps(structured_sections(sections))}
        try:
            async for fragment in stream_prd(sections, completion):
                yield {"event": "delta", "data": json.dumps({"text": fragment})}
        except LLMProviderError as exc:
            logger.warning("PRD stream for project %s: provider error: %s", project_id, exc)
            yield {"event": "error", "data": json.dumps({"status": "provider_error", "detail": str(exc)})}
        yield {"event": "done", "data": ""}

    return EventSourceResponse(event_generator(), ping=25)
