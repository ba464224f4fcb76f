"""Row-level queries shared by the service layer and the REST routes.

Every function takes the caller's AsyncSession so that one request runs in
one session.  Functions here never commit; the caller owns the unit of work.
"""

from __future__ import annotations

import uuid
from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from alignai.db.models import (
    Conflict,
    Consensus,
    Profile,
    Project,
    Response,
    Section,
    TeamMember,
    TeamRole,
)
from alignai.schemas import TeamResponse


def to_vector(value) -> list[float] | None:
    """Normalise a stored embedding (numpy array on pgvector, list on JSON) to list[float]."""
    if value is None:
        return None
    return [float(x) for x in value]


def display_name(profile: Profile | None, fallback: str) -> str:
    if profile is not None:
        if profile.name:
            return profile.name
        if profile.email:
            return profile.email
    return fallback


async def get_section(session: AsyncSession, section_id: uuid.UUID) -> Section | None:
    return await session.get(Section, section_id)


async def get_project(session: AsyncSession, project_id: uuid.UUID) -> Project | None:
    return await session.get(Project, project_id)


async def get_team_role(session: AsyncSession, team_id: uuid.UUID, user_id: str) -> TeamRole | None:
    """Return the user's role in the team, or None if they are not a member."""
    result = await session.execute(
        sa.select(TeamMember.role).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def list_sections(session: AsyncSession, project_id: uuid.UUID) -> Sequence[Section]:
    result = await session.execute(
        sa.select(Section).where(Section.project_id == project_id).order_by(Section.position.asc())
    )
    return result.scalars().all()


async def find_response(session: AsyncSession, section_id: uuid.UUID, user_id: str) -> Response | None:
    result = await session.execute(
        sa.select(Response).where(Response.section_id == section_id, Response.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def list_submitted_responses(
    session: AsyncSession, section_id: uuid.UUID
) -> list[tuple[Response, Profile | None]]:
    """Non-draft responses for a section with their author profiles, oldest first."""
    result = await session.execute(
        sa.select(Response, Profile)
        .outerjoin(Profile, Profile.id == Response.user_id)
        .where(Response.section_id == section_id, Response.is_draft.is_(False))
        .order_by(Response.created_at.asc(), Response.id.asc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def load_team_responses(session: AsyncSession, section_id: uuid.UUID) -> list[TeamResponse]:
    """Submitted responses for a section in the pipeline's input shape."""
    rows = await list_submitted_responses(session, section_id)
    return [
        TeamResponse(
            id=str(response.id),
            user_id=response.user_id,
            display_name=display_name(profile, f"Team member {i}"),
            content=response.content,
            embedding=to_vector(response.embedding),
        )
        for i, (response, profile) in enumerate(rows, start=1)
    ]


async def get_consensus(session: AsyncSession, section_id: uuid.UUID) -> Consensus | None:
    result = await session.execute(sa.select(Consensus).where(Consensus.section_id == section_id))
    return result.scalar_one_or_none()


async def get_conflict(session: AsyncSession, section_id: uuid.UUID) -> Conflict | None:
    result = await session.execute(sa.select(Conflict).where(Conflict.section_id == section_id))
    return result.scalar_one_or_none()


async def count_submitted_by_section(session: AsyncSession, project_id: uuid.UUID) -> dict[uuid.UUID, int]:
    """Submitted response count per section of a project (sections with none are absent)."""
    result = await session.execute(
        sa.select(Response.section_id, sa.func.count(Response.id))
        .join(Section, Section.id == Response.section_id)
        .where(Section.project_id == project_id, Response.is_draft.is_(False))
        .group_by(Response.section_id)
    )
    return {section_id: count for section_id, count in result.all()}


async def upsert_profile(session: AsyncSession, user_id: str, email: str, name: str) -> Profile:
    """Create or refresh the profile row used for display names."""
    profile = await session.get(Profile, user_id)
    if profile is None:
        profile = Profile(id=user_id, email=email, name=name)
        session.add(profile)
    else:
        if email:
            profile.email = email
        if name:
            profile.name = name
    return profile
