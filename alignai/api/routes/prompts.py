"""Discovery prompt REST endpoints.

Endpoints:
- GET  /prompts/{category}     — static catalog entry (system prompt + default questions)
- POST /prompts/personalized   — questions tailored to project context, catalog fallback
- POST /prompts/follow-up      — 2-3 follow-up questions for a draft answer

An unknown category is a 404 at this edge; inside the core it is fatal.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from alignai.api.auth import AuthContext, require_user
from alignai.api.deps import completion_provider
from alignai.errors import UnknownCategoryError
from alignai.pipeline.completion import CompletionProvider
from alignai.prompts.catalog import SECTION_INFO, get_prompt_catalog_entry, resolve_category
from alignai.prompts.questions import generate_follow_up_questions, get_personalized_questions

logger = logging.getLogger(__name__)

prompts_router = APIRouter(prefix="/prompts", tags=["prompts"])


class CatalogEntryResponse(BaseModel):
    category: str
    title: str
    description: str
    system_prompt: str
    questions: list[str]


class PersonalizedQuestionsRequest(BaseModel):
    category: str
    project_context: str | None = None


class FollowUpRequest(BaseModel):
    category: str
    response: str = Field(min_length=1)


class QuestionsResponse(BaseModel):
    category: str
    questions: list[str]


def _category_or_404(category: str):
    try:
        return resolve_category(category)
    except UnknownCategoryError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@prompts_router.get("/{category}", response_model=CatalogEntryResponse, operation_id="get_prompt_catalog_entry")
async def get_catalog_entry_endpoint(
    category: str,
    user: AuthContext = Depends(require_user),
) -> CatalogEntryResponse:
    resolved = _category_or_404(category)
    entry = get_prompt_catalog_entry(resolved)
    info = SECTION_INFO[resolved]
    return CatalogEntryResponse(
        category=resolved.value,
        title=info.title,
        description=info.description,
        system_prompt=entry["system_prompt"],
        questions=entry["questions"],
    )


@prompts_router.post(
    "/personalized", response_model=QuestionsResponse, operation_id="get_personalized_questions"
)
async def personalized_questions_endpoint(
    body: PersonalizedQuestionsRequest,
    user: AuthContext = Depends(require_user),
    completion: CompletionProvider = Depends(completion_provider),
) -> QuestionsResponse:
    resolved = _category_or_404(body.category)
    questions = await get_personalized_questions(resolved, body.project_context, completion)
    return QuestionsResponse(category=resolved.value, questions=questions)


@prompts_router.post("/follow-up", response_model=QuestionsResponse, operation_id="generate_follow_up_questions")
async def follow_up_questions_endpoint(
    body: FollowUpRequest,
    user: AuthContext = Depends(require_user),
    completion: CompletionProvider = Depends(completion_provider),
) -> QuestionsResponse:
    resolved = _category_or_404(body.category)
    questions = await generate_follow_up_questions(resolved, body.response, completion)
    return QuestionsResponse(category=resolved.value, questions=questions)
