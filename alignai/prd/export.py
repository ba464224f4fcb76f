"""Product requirements document export.

The PRD is written by the completion provider from each section's APPROVED
consensus.  Sections without approved consensus appear as "Not specified".
generate_prd() returns the whole document; stream_prd() yields fragments
for Server-Sent Events delivery.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import AsyncIterator

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from alignai.db.models import Consensus, ConsensusStatus, Section, SectionCategory
from alignai.db.queries import get_project
from alignai.errors import NotFoundError
from alignai.pipeline.completion import CompletionProvider
from alignai.prompts.catalog import SYSTEM_PROMPTS
from alignai.prompts.templates import NOT_SPECIFIED, build_prd_prompt

logger = logging.getLogger(__name__)

_PRD_MAX_TOKENS = 8192
_PRD_TEMPERATURE = 0.6


@dataclass
class PRDDocument:
    project_id: str
    markdown: str
    structured_data: dict[str, str]


async def collect_approved_consensus(
    session: AsyncSession, project_id: uuid.UUID
) -> dict[SectionCategory, str]:
    """Approved consensus text per category for a project.

    Raises:
        NotFoundError: If the project does not exist.
    """
    if await get_project(session, project_id) is None:
        raise NotFoundError(f"Project '{project_id}' not found.")

    result = await session.execute(
        sa.select(Section.category, Consensus.merged_content)
        .join(Consensus, Consensus.section_id == Section.id)
        .where(Section.project_id == project_id, Consensus.status == ConsensusStatus.approved)
    )
    return {category: content for category, content in result.all()}


def structured_sections(sections: dict[SectionCategory, str]) -> dict[str, str]:
    return {category.value: sections.get(category) or NOT_SPECIFIED for category in SectionCategory}


async def generate_prd(
    session: AsyncSession, project_id: uuid.UUID, completion: CompletionProvider
) -> PRDDocument:
    sections = await collect_approved_consensus(session, project_id)
    logger.info("PRD export: project %s with %d approved section(s)", project_id, len(sections))
    markdown = await completion.complete(
        SYSTEM_PROMPTS["prd_writer"],
        build_prd_prompt(sections),
        max_tokens=_PRD_MAX_TOKENS,
        temperature=_PRD_TEMPERATURE,
    )
    return PRDDocument(
        project_id=str(project_id),
        markdown=markdown,
        structured_data=structured_sections(sections),
    )


async def stream_prd(
    sections: dict[SectionCategory, str], completion: CompletionProvider
) -> AsyncIterator[str]:
    """Yield PRD markdown fragments as the model produces them.

    Takes the already-collected approved sections so no database session is
    held open while the model streams.
    """
    async for fragment in completion.stream(
        SYSTEM_PROMPTS["prd_writer"],
        build_prd_prompt(sections),
        max_tokens=_PRD_MAX_TOKENS,
        temperature=_PRD_TEMPERATURE,
    ):
        yield fragment
