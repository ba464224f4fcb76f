"""Team, membership, and project creation.

A new project is seeded with one Section per SectionCategory, in catalog
order, so every project asks the same seven discovery questions.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from alignai.db.models import Project, Section, SectionCategory, Team, TeamMember, TeamRole
from alignai.prompts.catalog import SECTION_INFO

logger = logging.getLogger(__name__)


async def create_team(session: AsyncSession, name: str, owner_id: str) -> Team:
    """Create a team and make *owner_id* its owner, in one transaction."""
    name = name.strip()
    if not name:
        raise ValueError("Team name is required")

    team = Team(name=name)
    session.add(team)
    await session.flush()
    session.add(TeamMember(team_id=team.id, user_id=owner_id, role=TeamRole.owner))
    await session.commit()

    logger.info("Team %s created by %s", team.id, owner_id)
    return team


async def add_member(
    session: AsyncSession, team_id: uuid.UUID, user_id: str, role: TeamRole = TeamRole.member
) -> TeamMember:
    member = TeamMember(team_id=team_id, user_id=user_id, role=role)
    session.add(member)
    await session.commit()
    return member


async def create_project(
    session: AsyncSession,
    team_id: uuid.UUID,
    name: str,
    created_by: str,
    description: str = "",
) -> Project:
    """Create a project and seed its sections."""
    name = name.strip()
    if not name:
        raise ValueError("Project name is required")

    project = Project(team_id=team_id, name=name, description=description.strip(), created_by=created_by)
    session.add(project)
    await session.flush()

    for position, category in enumerate(SectionCategory):
        session.add(Section(
            project_id=project.id,
            category=category,
            title=SECTION_INFO[category].title,
            position=position,
        ))
    await session.commit()

    logger.info("Project %s created in team %s", project.id, team_id)
    return project
