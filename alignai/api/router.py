"""Top-level FastAPI APIRouter for the AlignAI REST API (v1).

Prefix:  /api/v1

Sub-routers included:
- teams_router      — teams, members, projects, sections
- prompts_router    — discovery prompts and generated questions
- responses_router  — response submission, listing, similarity ranking
- alignment_router  — section conflict detection, project dashboard
- consensus_router  — consensus synthesis and approval
- prd_router        — PRD export (JSON and SSE stream)
"""

from __future__ import annotations

from fastapi import APIRouter

from alignai.api.routes.alignment import alignment_router
from alignai.api.routes.consensus import consensus_router
from alignai.api.routes.prd import prd_router
from alignai.api.routes.prompts import prompts_router
from alignai.api.routes.responses import responses_router
from alignai.api.routes.teams import teams_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(teams_router)
api_router.include_router(prompts_router)
api_router.include_router(responses_router)
api_router.include_router(alignment_router)
api_router.include_router(consensus_router)
api_router.include_router(prd_router)
