"""Team and project REST endpoints.

Endpoints:
- POST /teams                          — create a team; caller becomes owner
- GET  /teams                          — teams the caller belongs to
- POST /teams/{team_id}/members        — owner adds a member
- POST /teams/{team_id}/projects       — create a project with its seven sections
- GET  /teams/{team_id}/projects       — projects of a team
- GET  /projects/{project_id}/sections — sections in display order
"""

from __future__ import annotations

import logging
import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from alignai.api.auth import (
    AuthContext,
    current_profile,
    get_async_session,
    require_project_access,
    require_team_role,
)
from alignai.db.models import Project, Team, TeamMember, TeamRole
from alignai.db.queries import list_sections
from alignai.prompts.catalog import SECTION_INFO
from alignai.teams.service import add_member, create_project, create_team

logger = logging.getLogger(__name__)

teams_router = APIRouter(tags=["teams"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class CreateTeamRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class TeamResponse(BaseModel):
    id: str
    name: str
    role: str | None = None
    created_at: str


class AddMemberRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)
    role: TeamRole = TeamRole.member


class MemberResponse(BaseModel):
    team_id: str
    user_id: str
    role: str


class CreateProjectRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""


class ProjectResponse(BaseModel):
    id: str
    team_id: str
    name: str
    description: str
    created_by: str
    created_at: str


class SectionResponse(BaseModel):
    id: str
    project_id: str
    category: str
    title: str
    description: str
    position: int


def _project(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=str(project.id),
        team_id=str(project.team_id),
        name=project.name,
        description=project.description,
        created_by=project.created_by,
        created_at=project.created_at.isoformat(),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@teams_router.post("/teams", response_model=TeamResponse, status_code=201, operation_id="create_team")
async def create_team_endpoint(
    body: CreateTeamRequest,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> TeamResponse:
    try:
        team = await create_team(session, body.name, user.user_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TeamResponse(
        id=str(team.id), name=team.name, role=TeamRole.owner.value, created_at=team.created_at.isoformat()
    )


@teams_router.get("/teams", response_model=list[TeamResponse], operation_id="list_teams")
async def list_teams_endpoint(
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> list[TeamResponse]:
    result = await session.execute(
        sa.select(Team, TeamMember.role)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(TeamMember.user_id == user.user_id)
        .order_by(Team.created_at.asc())
    )
    return [
        TeamResponse(id=str(team.id), name=team.name, role=role.value, created_at=team.created_at.isoformat())
        for team, role in result.all()
    ]


@teams_router.post(
    "/teams/{team_id}/members",
    response_model=MemberResponse,
    status_code=201,
    operation_id="add_team_member",
)
async def add_member_endpoint(
    team_id: uuid.UUID,
    body: AddMemberRequest,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> MemberResponse:
    await require_team_role(session, team_id, user, owner=True)
    try:
        member = await add_member(session, team_id, body.user_id, body.role)
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail=f"User '{body.user_id}' is already a member.") from None
    return MemberResponse(team_id=str(team_id), user_id=member.user_id, role=member.role.value)


@teams_router.post(
    "/teams/{team_id}/projects",
    response_model=ProjectResponse,
    status_code=201,
    operation_id="create_project",
)
async def create_project_endpoint(
    team_id: uuid.UUID,
    body: CreateProjectRequest,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> ProjectResponse:
    await require_team_role(session, team_id, user, write=True)
    try:
        project = await create_project(session, team_id, body.name, user.user_id, body.description)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _project(project)


@teams_router.get(
    "/teams/{team_id}/projects",
    response_model=list[ProjectResponse],
    operation_id="list_projects",
)
async def list_projects_endpoint(
    team_id: uuid.UUID,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> list[ProjectResponse]:
    await require_team_role(session, team_id, user)
    result = await session.execute(
        sa.select(Project).where(Project.team_id == team_id).order_by(Project.created_at.desc())
    )
    return [_project(p) for p in result.scalars().all()]


@teams_router.get(
    "/projects/{project_id}/sections",
    response_model=list[SectionResponse],
    operation_id="list_sections",
)
async def list_sections_endpoint(
    project_id: uuid.UUID,
    user: AuthContext = Depends(current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> list[SectionResponse]:
    await require_project_access(session, project_id, user)
    sections = await list_sections(session, project_id)
    return [
        SectionResponse(
            id=str(s.id),
            project_id=str(s.project_id),
            category=s.category.value,
            title=s.title,
            description=SECTION_INFO[s.category].description,
            position=s.position,
        )
        for s in sections
    ]
