"""Project alignment dashboard.

Per-section alignment uses the same weakest-link score as the conflict
detector (minimum pairwise cosine similarity of embedded responses), computed
from stored embeddings only; the dashboard never calls an LLM.
"""

from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from alignai.db.models import (
    Conflict,
    ConflictResolutionStatus,
    Consensus,
    ConsensusStatus,
    Section,
)
from alignai.db.queries import count_submitted_by_section, list_sections, load_team_responses
from alignai.pipeline.similarity import pairwise_similarities


class SectionAlignment(BaseModel):
    section_id: str
    category: str
    title: str
    score: float | None
    response_count: int
    has_consensus: bool
    has_conflicts: bool


class ProjectAlignment(BaseModel):
    project_id: str
    overall_score: float | None
    section_scores: list[SectionAlignment]
    total_responses: int
    pending_conflicts: int
    approved_consensus_count: int
    last_updated: str


def alignment_score(vectors: list[list[float]]) -> float | None:
    """Minimum pairwise similarity, or None with fewer than two vectors."""
    if len(vectors) < 2:
        return None
    return min(pairwise_similarities(vectors))


async def project_alignment(session: AsyncSession, project_id: uuid.UUID) -> ProjectAlignment:
    sections = await list_sections(session, project_id)
    counts = await count_submitted_by_section(session, project_id)
    section_ids = [s.id for s in sections]

    approved_result = await session.execute(
        sa.select(Consensus.section_id).where(
            Consensus.section_id.in_(section_ids),
            Consensus.status == ConsensusStatus.approved,
        )
    )
    approved = set(approved_result.scalars().all())

    open_result = await session.execute(
        sa.select(Conflict.section_id).where(
            Conflict.section_id.in_(section_ids),
            Conflict.resolution_status == ConflictResolutionStatus.open,
        )
    )
    open_conflicts = set(open_result.scalars().all())

    section_scores = []
    for section in sections:
        section_scores.append(await _section_alignment(session, section, counts, approved, open_conflicts))

    scored = [s.score for s in section_scores if s.score is not None]
    return ProjectAlignment(
        project_id=str(project_id),
        overall_score=sum(scored) / len(scored) if scored else None,
        section_scores=section_scores,
        total_responses=sum(counts.values()),
        pending_conflicts=len(open_conflicts),
        approved_consensus_count=len(approved),
        last_updated=datetime.datetime.now(datetime.timezone.utc).isoformat(),
    )


async def _section_alignment(
    session: AsyncSession,
    section: Section,
    counts: dict[uuid.UUID, int],
    approved: set[uuid.UUID],
    open_conflicts: set[uuid.UUID],
) -> SectionAlignment:
    responses = await load_team_responses(session, section.id)
    vectors = [list(r.embedding) for r in responses if r.embedding is not None]
    return SectionAlignment(
        section_id=str(section.id),
        category=section.category.value,
        title=section.title,
        score=alignment_score(vectors),
        response_count=counts.get(section.id, 0),
        has_consensus=section.id in approved,
        has_conflicts=section.id in open_conflicts,
    )
